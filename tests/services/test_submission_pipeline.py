"""
Tests for the submission pipeline.

End-to-end runs over the in-memory history with mocked speech-to-text and
extraction clients:
- Accepted, flagged and rejected submissions
- Stage ordering (what runs after a rejection)
- Audio file cleanup on every exit path
"""

from datetime import timedelta
from unittest.mock import patch

import httpx
import pytest

from agricredit.core.exceptions import (
    AudioAnalysisError,
    InvalidLocationError,
    SubmissionRejectedError,
    TranscriptionError,
)
from agricredit.schemas.activity import ActivityType, ExtractedActivity, GeoLocation, VerificationStatus
from agricredit.services.audio_analysis import AudioReference
from agricredit.services.speech_to_text import TranscriptionService
from agricredit.services.submission_pipeline import SubmissionPipeline

SAMPLE_TEXT = "Applied organic compost to 2 acres of rice fields"
FARM = GeoLocation(latitude=12.9716, longitude=77.5946, accuracy=10)


@pytest.mark.unit
class TestTextSubmissions:
    """Text-only submissions."""

    async def test_new_user_verified(self, pipeline, history, now):
        result = await pipeline.submit("farmer-1", text=SAMPLE_TEXT, location=FARM)

        assert result.accepted
        assert result.verification_status == VerificationStatus.VERIFIED
        assert result.fraud_score == 0
        assert result.reasons == []
        # 50 x 1.2 (rice) x 1.2 (2 acres) x 1.15 (quality 65) = 82.8
        assert result.credits_awarded == 83

        stored = await history.list_recent("farmer-1")
        assert len(stored) == 1
        record = stored[0]
        assert record == result.activity
        assert record.activity_type == ActivityType.ORGANIC_INPUT
        assert record.description == SAMPLE_TEXT
        assert record.raw_text == SAMPLE_TEXT
        assert record.transcription is None
        assert record.location == FARM
        assert record.created_at == now
        assert record.verification_metadata["quality_score"] == 65
        assert record.verification_metadata["raw_fraud_score"] == 0

    async def test_missing_location_penalty(self, pipeline):
        result = await pipeline.submit("farmer-1", text=SAMPLE_TEXT)
        assert result.fraud_score == 10
        assert result.reasons == ["No location provided"]
        assert result.verification_status == VerificationStatus.VERIFIED

    async def test_manual_overrides(self, pipeline, history):
        result = await pipeline.submit("farmer-1", text=SAMPLE_TEXT, location=FARM, crop="Cotton", area="5 acres")
        assert result.activity.crop_name == "Cotton"
        assert result.activity.area == "5 acres"
        assert result.activity.verification_metadata["manual_inputs"] == {"crop": "Cotton", "area": "5 acres"}
        # 50 x 1.3 x 1.5 x 1.15 = 112.125
        assert result.credits_awarded == 112

    async def test_requires_text_or_audio(self, pipeline, history, extraction_service):
        with pytest.raises(SubmissionRejectedError):
            await pipeline.submit("farmer-1", text="   ")
        extraction_service.extract.assert_not_awaited()
        assert await history.list_recent("farmer-1") == []

    async def test_low_quality_rejected_before_extraction(self, pipeline, history, extraction_service):
        with pytest.raises(SubmissionRejectedError, match="meaningful description"):
            await pipeline.submit("farmer-1", text="hello ok testing um")
        extraction_service.extract.assert_not_awaited()
        assert await history.list_recent("farmer-1") == []

    async def test_non_farming_extraction_rejected(self, pipeline, extraction_service):
        extraction_service.extract.return_value = ExtractedActivity(description="Sprayed neem oil")
        with pytest.raises(SubmissionRejectedError, match="does not appear to describe a farming activity"):
            await pipeline.submit("farmer-1", text="Sprayed neem oil")

    async def test_zero_credits_rejected(self, pipeline, history, extraction_service):
        # quality 45: valid content but below the bar for "other" activities
        extraction_service.extract.return_value = ExtractedActivity(description="placeholder")
        with pytest.raises(SubmissionRejectedError, match="Unable to award credits"):
            await pipeline.submit("farmer-1", text="We watered the field today morning", location=FARM)
        assert await history.list_recent("farmer-1") == []

    async def test_invalid_location_rejected(self, pipeline, history):
        with pytest.raises(InvalidLocationError) as exc_info:
            await pipeline.submit("farmer-1", text=SAMPLE_TEXT, location=GeoLocation(latitude=95, longitude=77))
        assert exc_info.value.fraud_score == 100
        assert "Invalid latitude" in exc_info.value.reasons
        assert await history.list_recent("farmer-1") == []

    async def test_rapid_submissions(self, history, transcription_service, extraction_service, now):
        """Sixth activity inside ten minutes trips the burst rule and is refused."""
        ticks = iter([now + timedelta(minutes=i) for i in range(6)])
        pipeline = SubmissionPipeline(
            history,
            transcription_service=transcription_service,
            extraction_service=extraction_service,
            clock=lambda: next(ticks),
        )

        first = await pipeline.submit("farmer-1", text=SAMPLE_TEXT)
        assert first.verification_status == VerificationStatus.VERIFIED

        for _ in range(4):
            result = await pipeline.submit("farmer-1", text=SAMPLE_TEXT)
            # missing location (10) + same type within the hour (30)
            assert result.fraud_score == 40
            assert result.verification_status == VerificationStatus.FLAGGED

        with pytest.raises(SubmissionRejectedError) as exc_info:
            await pipeline.submit("farmer-1", text=SAMPLE_TEXT)

        assert exc_info.value.fraud_score == 80
        assert "Suspicious: 5 activities in last 10 minutes" in exc_info.value.reasons
        assert len(await history.list_recent("farmer-1")) == 5

    async def test_users_are_independent(self, pipeline, history, make_record):
        for minutes in range(1, 6):
            await history.create(make_record(user_id="farmer-2", minutes_ago=minutes))
        result = await pipeline.submit("farmer-1", text=SAMPLE_TEXT, location=FARM)
        assert result.fraud_score == 0


@pytest.mark.unit
class TestAudioSubmissions:
    """Voice submissions and audio cleanup."""

    async def test_transcribed_audio_accepted(self, pipeline, make_audio, transcription_service):
        audio = make_audio(60_000)
        result = await pipeline.submit("farmer-1", audio=audio, location=FARM, language="kn")

        transcription_service.transcribe.assert_awaited_once_with(audio, "kn")
        assert result.activity.transcription == SAMPLE_TEXT
        assert result.activity.raw_text == SAMPLE_TEXT
        # Extracted description kept for voice submissions
        assert result.activity.description == "Applied organic compost to rice fields"
        assert result.activity.verification_metadata["audio_analysis"]["score"] == 0
        assert not audio.path.exists()

    async def test_fake_audio_rejected_before_transcription(self, pipeline, make_audio, transcription_service):
        audio = make_audio(1_000)
        with pytest.raises(SubmissionRejectedError, match="Audio verification failed"):
            await pipeline.submit("farmer-1", audio=audio, text=SAMPLE_TEXT)
        transcription_service.transcribe.assert_not_awaited()
        assert not audio.path.exists()

    async def test_suspicious_audio_counted_in_aggregate(self, pipeline, make_audio):
        """Audio score below the short-circuit still adds to the fraud score."""
        audio = make_audio(8_000)
        result = await pipeline.submit("farmer-1", audio=audio)
        # audio (40) + missing location (10)
        assert result.fraud_score == 50
        assert result.verification_status == VerificationStatus.FLAGGED
        assert not audio.path.exists()

    async def test_transcription_failure_uses_text(self, pipeline, make_audio, transcription_service):
        transcription_service.transcribe.side_effect = TranscriptionError("service unavailable")
        audio = make_audio(60_000)
        result = await pipeline.submit("farmer-1", audio=audio, text=SAMPLE_TEXT, location=FARM)
        assert result.activity.transcription is None
        assert result.activity.raw_text == SAMPLE_TEXT
        assert not audio.path.exists()

    async def test_transcription_failure_without_text(self, pipeline, history, make_audio, transcription_service):
        transcription_service.transcribe.side_effect = TranscriptionError("service unavailable")
        audio = make_audio(60_000)
        with pytest.raises(SubmissionRejectedError, match="no description provided"):
            await pipeline.submit("farmer-1", audio=audio)
        assert not audio.path.exists()
        assert await history.list_recent("farmer-1") == []

    async def test_malformed_transcription_reply_uses_text(self, history, extraction_service, make_audio, now):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=["unexpected"])

        audio = make_audio(60_000)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            pipeline = SubmissionPipeline(
                history,
                transcription_service=TranscriptionService(api_key="k", http_client=client),
                extraction_service=extraction_service,
                clock=lambda: now,
            )
            result = await pipeline.submit("farmer-1", audio=audio, text=SAMPLE_TEXT, location=FARM)

        assert result.accepted
        assert result.activity.transcription is None
        assert result.activity.raw_text == SAMPLE_TEXT
        assert not audio.path.exists()

    async def test_not_farming_voice_rejected(self, pipeline, make_audio, extraction_service):
        extraction_service.extract.return_value = ExtractedActivity(description="NOT_FARMING: casual greeting")
        audio = make_audio(60_000)
        with pytest.raises(SubmissionRejectedError):
            await pipeline.submit("farmer-1", audio=audio)
        assert not audio.path.exists()

    async def test_unexpected_error_still_releases_audio(self, pipeline, make_audio, extraction_service):
        extraction_service.extract.side_effect = RuntimeError("boom")
        audio = make_audio(60_000)
        with pytest.raises(RuntimeError):
            await pipeline.submit("farmer-1", audio=audio)
        assert audio.released
        assert not audio.path.exists()

    async def test_unreadable_audio(self, pipeline, tmp_path):
        audio = AudioReference(path=tmp_path / "vanished.webm")
        with pytest.raises(AudioAnalysisError):
            await pipeline.submit("farmer-1", audio=audio)
        assert audio.released

    async def test_audio_released_once(self, pipeline, make_audio):
        audio = make_audio(60_000)
        with patch.object(AudioReference, "release", autospec=True, side_effect=AudioReference.release) as release:
            await pipeline.submit("farmer-1", audio=audio, location=FARM)
        release.assert_called_once_with(audio)
        assert not audio.path.exists()
