"""
Audio authenticity heuristics.

Estimates whether an uploaded recording is a plausible live recording from
its file size alone. Duration is NOT decoded from the container: it is
approximated as ``size / BYTES_PER_SECOND`` for the expected webm/opus codec
(~10-15 KB per second). This is a crude proxy: the checks are
meant to catch empty, truncated or placeholder uploads, not acoustic fakes.

The analyzer never rejects on its own. Its score feeds the submission
pipeline's pre-transcription short-circuit and the aggregate fraud score.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel, Field, PrivateAttr

from agricredit.core.exceptions import AudioAnalysisError

logger = structlog.get_logger(__name__)


class AudioConfig:
    """Audio heuristic configuration."""

    BYTES_PER_SECOND = 12_000  # Average webm/opus bitrate

    MIN_DURATION_SECONDS = 3.0
    RECOMMENDED_DURATION_SECONDS = 5.0
    MIN_FILE_SIZE_BYTES = 5_000
    SMALL_FILE_SIZE_BYTES = 10_000
    MIN_BYTES_PER_SECOND = 1_000

    TOO_SHORT_SCORE = 30
    SHORT_SCORE = 15
    TINY_FILE_SCORE = 30
    SMALL_FILE_SCORE = 10
    LOW_QUALITY_SCORE = 15

    GOOD_QUALITY_BELOW = 20
    FAIR_QUALITY_BELOW = 40


class AudioQuality(str, Enum):
    """Coarse quality tier derived from the heuristic score."""

    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class AudioReference(BaseModel):
    """
    A recorded audio file held for the duration of one submission.

    The submission pipeline owns the file and releases it on every exit path.
    """

    path: Path
    filename: Optional[str] = None

    _released: bool = PrivateAttr(default=False)

    @property
    def name(self) -> str:
        return self.filename or self.path.name

    @property
    def released(self) -> bool:
        return self._released

    def size_bytes(self) -> int:
        return os.stat(self.path).st_size

    def release(self) -> bool:
        """
        Delete the underlying file once.

        Returns True if this call removed the file.
        """
        if self._released:
            return False
        self._released = True
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error("audio_cleanup_failed", path=str(self.path), error=str(e))
            return False
        return True


class AudioAnalysisResult(BaseModel):
    """Heuristic assessment of a recording."""

    score: int = Field(0, ge=0, le=100)
    quality: AudioQuality = AudioQuality.GOOD
    reasons: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0
    file_size_bytes: int = 0
    is_live: bool = False
    has_background_noise: bool = False


def estimate_duration(file_size_bytes: int) -> float:
    """Approximate recording length in seconds from its size."""
    return file_size_bytes / AudioConfig.BYTES_PER_SECOND


def quality_tier(score: int) -> AudioQuality:
    if score < AudioConfig.GOOD_QUALITY_BELOW:
        return AudioQuality.GOOD
    if score < AudioConfig.FAIR_QUALITY_BELOW:
        return AudioQuality.FAIR
    return AudioQuality.POOR


class AudioHeuristicAnalyzer:
    """Size/duration heuristics for uploaded recordings."""

    def analyze_size(self, file_size_bytes: int) -> AudioAnalysisResult:
        """Score a recording of the given size. Rules accumulate."""
        score = 0
        reasons: list[str] = []
        duration = estimate_duration(file_size_bytes)

        if duration < AudioConfig.MIN_DURATION_SECONDS:
            score += AudioConfig.TOO_SHORT_SCORE
            reasons.append(f"Audio too short ({duration:.1f}s), minimum 3 seconds")
        elif duration < AudioConfig.RECOMMENDED_DURATION_SECONDS:
            score += AudioConfig.SHORT_SCORE
            reasons.append(f"Audio is short ({duration:.1f}s), recommended minimum 5 seconds")

        if file_size_bytes < AudioConfig.MIN_FILE_SIZE_BYTES:
            score += AudioConfig.TINY_FILE_SCORE
            reasons.append("Audio file too small, may be empty or fake")
        elif file_size_bytes < AudioConfig.SMALL_FILE_SIZE_BYTES:
            score += AudioConfig.SMALL_FILE_SCORE
            reasons.append("Audio file is very small, recording may be too short")

        # Durations under a second are divided by 1s
        bytes_per_second = file_size_bytes / max(duration, 1.0)
        if bytes_per_second < AudioConfig.MIN_BYTES_PER_SECOND:
            score += AudioConfig.LOW_QUALITY_SCORE
            reasons.append("Low audio quality detected")

        score = min(score, 100)
        has_background_noise = (
            duration > AudioConfig.RECOMMENDED_DURATION_SECONDS
            and file_size_bytes > AudioConfig.SMALL_FILE_SIZE_BYTES
        )

        return AudioAnalysisResult(
            score=score,
            quality=quality_tier(score),
            reasons=reasons,
            duration_seconds=round(duration, 2),
            file_size_bytes=file_size_bytes,
            is_live=has_background_noise and score < AudioConfig.GOOD_QUALITY_BELOW,
            has_background_noise=has_background_noise,
        )

    def analyze(self, audio: AudioReference) -> AudioAnalysisResult:
        """
        Analyze an audio file on disk.

        Raises:
            AudioAnalysisError: If the file cannot be read.
        """
        try:
            file_size = audio.size_bytes()
        except OSError as e:
            logger.error("audio_analysis_failed", audio=audio.name, error=str(e))
            raise AudioAnalysisError(f"Audio analysis failed: {e}") from e

        result = self.analyze_size(file_size)
        logger.info(
            "audio_analyzed",
            audio=audio.name,
            size_bytes=file_size,
            duration_seconds=result.duration_seconds,
            score=result.score,
            quality=result.quality.value,
        )
        return result
