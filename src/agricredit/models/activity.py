"""
Activity model for PostgreSQL storage.

One row per accepted submission, written once with its verification
metadata and never updated by the submission pipeline.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from agricredit.db.base import Base


class Activity(Base):
    """Logged farming activity with anti-fraud verification results."""

    __tablename__ = "activities"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    user_id: Mapped[str] = mapped_column(String(64), index=True)

    activity_type: Mapped[str] = mapped_column(String(32), index=True)
    crop_name: Mapped[Optional[str]] = mapped_column(String(100))
    area: Mapped[Optional[str]] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(Text, default="")
    raw_text: Mapped[Optional[str]] = mapped_column(Text)
    transcription: Mapped[Optional[str]] = mapped_column(Text)

    # Claimed location
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    location_accuracy: Mapped[Optional[float]] = mapped_column(Float)

    # Verification
    verification_status: Mapped[str] = mapped_column(String(16), default="pending")
    fraud_score: Mapped[int] = mapped_column(Integer, default=0)
    flagged_for_review: Mapped[bool] = mapped_column(Boolean, default=False)
    verification_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB)

    credits_earned: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )

    __table_args__ = (
        Index("ix_activities_user_created", "user_id", "created_at"),
        Index("ix_activities_verification", "verification_status", "fraud_score"),
    )
