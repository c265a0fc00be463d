"""
Pytest fixtures for AgriCredit backend tests.
"""

import os
from collections.abc import AsyncGenerator, Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DATABASE_URL", "")
os.environ.setdefault("SARVAM_API_KEY", "")
os.environ.setdefault("GROQ_API_KEY", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from agricredit.repositories.memory_activity_repository import InMemoryActivityRepository  # noqa: E402
from agricredit.schemas.activity import (  # noqa: E402
    ActivityRecord,
    ActivityType,
    ExtractedActivity,
    GeoLocation,
    VerificationStatus,
)
from agricredit.services.audio_analysis import AudioReference  # noqa: E402
from agricredit.services.submission_pipeline import SubmissionPipeline  # noqa: E402

NOW = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)

SAMPLE_TEXT = "Applied organic compost to 2 acres of rice fields"


@pytest.fixture
def now() -> datetime:
    """Fixed wall-clock time for history window checks."""
    return NOW


@pytest.fixture
def history() -> InMemoryActivityRepository:
    """Empty in-memory activity history."""
    return InMemoryActivityRepository()


@pytest.fixture
def make_record() -> Callable[..., ActivityRecord]:
    """Factory for past activity records relative to NOW."""

    def _make(
        user_id: str = "farmer-1",
        minutes_ago: float = 60 * 48,
        activity_type: ActivityType = ActivityType.ORGANIC_INPUT,
        crop_name: Optional[str] = None,
        location: Optional[GeoLocation] = None,
        credits_earned: int = 50,
    ) -> ActivityRecord:
        return ActivityRecord(
            id=str(uuid4()),
            user_id=user_id,
            activity_type=activity_type,
            crop_name=crop_name,
            description="Past activity",
            location=location,
            created_at=NOW - timedelta(minutes=minutes_ago),
            credits_earned=credits_earned,
            verification_status=VerificationStatus.VERIFIED,
        )

    return _make


@pytest.fixture
def make_audio(tmp_path: Path) -> Callable[[int], AudioReference]:
    """Factory writing a fake recording of the given size to disk."""

    def _make(size: int, name: str = "recording.webm") -> AudioReference:
        path = tmp_path / f"{uuid4().hex}-{name}"
        path.write_bytes(b"\x1a" * size)
        return AudioReference(path=path, filename=name)

    return _make


@pytest.fixture
def extracted_activity() -> ExtractedActivity:
    """Extraction result for SAMPLE_TEXT."""
    return ExtractedActivity(
        activity_type=ActivityType.ORGANIC_INPUT,
        crop_name="rice",
        area="2 acres",
        description="Applied organic compost to rice fields",
    )


@pytest.fixture
def extraction_service(extracted_activity: ExtractedActivity) -> AsyncMock:
    """Mock extraction client returning a fixed record."""
    service = AsyncMock()
    service.extract = AsyncMock(return_value=extracted_activity)
    return service


@pytest.fixture
def transcription_service() -> AsyncMock:
    """Mock speech-to-text client returning SAMPLE_TEXT."""
    service = AsyncMock()
    service.transcribe = AsyncMock(return_value=SAMPLE_TEXT)
    return service


@pytest.fixture
def pipeline(
    history: InMemoryActivityRepository,
    transcription_service: AsyncMock,
    extraction_service: AsyncMock,
) -> SubmissionPipeline:
    """Pipeline over the in-memory history with mocked AI clients and a fixed clock."""
    return SubmissionPipeline(
        history,
        transcription_service=transcription_service,
        extraction_service=extraction_service,
        clock=lambda: NOW,
    )


@pytest.fixture
async def app(history: InMemoryActivityRepository, pipeline: SubmissionPipeline) -> AsyncGenerator[Any, None]:
    """FastAPI application wired to the test history and pipeline."""
    from agricredit.api.deps import get_submission_pipeline
    from agricredit.main import app as fastapi_app
    from agricredit.repositories.provider import get_activity_repository

    fastapi_app.dependency_overrides[get_activity_repository] = lambda: history
    fastapi_app.dependency_overrides[get_submission_pipeline] = lambda: pipeline
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Identity header set by the upstream auth gateway."""
    return {"X-User-Id": "farmer-1"}


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Create mock database session."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    return session
