"""
Activity Submission Pipeline.

Turns a raw submission (text and/or voice recording) into a verified,
credited activity record. Stages run in a fixed order and any rejecting
stage stops the run:

1. Input check         - text or audio required
2. Audio heuristics    - score >= 60 rejects before transcription
3. Transcription       - falls back to typed text when it fails
4. Content quality     - meaningless or non-farming text rejects
5. Extraction          - structured fields (never fatal)
6. Anti-fraud checks   - location, frequency, pattern, audio summed
7. Fraud gate          - unclamped score >= 70 rejects
8. Credits             - 0 credits rejects
9. Persist             - one append-only record

The audio file is released exactly once on every exit path. Nothing is
persisted unless every stage passes.
"""

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

import structlog

from agricredit.core.config import settings
from agricredit.core.exceptions import InvalidLocationError, SubmissionRejectedError, TranscriptionError
from agricredit.repositories.provider import ActivityHistoryProtocol
from agricredit.schemas.activity import (
    ActivityRecord,
    ExtractedActivity,
    GeoLocation,
    SubmissionResult,
    VerificationOutcome,
)
from agricredit.services.audio_analysis import AudioAnalysisResult, AudioHeuristicAnalyzer, AudioReference
from agricredit.services.content_validation import ContentQualityScorer
from agricredit.services.credit_calculator import CreditCalculator
from agricredit.services.nlp_extraction import ExtractionService, is_valid_farming_extraction
from agricredit.services.speech_to_text import TranscriptionService
from agricredit.services.verification import FraudAggregator

logger = structlog.get_logger(__name__)


AUDIO_WARNING_SCORE = 30

MSG_INPUT_REQUIRED = "Audio recording or description is required"
MSG_AUDIO_FAILED_NO_TEXT = "Audio processing failed and no description provided"
MSG_TEXT_REQUIRED = "Description or valid audio transcription is required"
MSG_LOW_QUALITY = (
    "Please provide a meaningful description of your farming activity. Your input is too short, "
    "meaningless, or does not appear to be related to farming."
)
MSG_NOT_FARMING = (
    "The provided content does not appear to describe a farming activity. "
    "Please describe an actual sustainable farming practice."
)
MSG_NO_CREDITS = "Unable to award credits. Please provide a more detailed description of your farming activity."
MSG_INVALID_LOCATION = "Invalid location coordinates"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionPipeline:
    """Orchestrates verification and crediting of one activity submission."""

    def __init__(
        self,
        history: ActivityHistoryProtocol,
        transcription_service: Optional[TranscriptionService] = None,
        extraction_service: Optional[ExtractionService] = None,
        audio_analyzer: Optional[AudioHeuristicAnalyzer] = None,
        content_scorer: Optional[ContentQualityScorer] = None,
        credit_calculator: Optional[CreditCalculator] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.history = history
        self.transcription_service = transcription_service or TranscriptionService()
        self.extraction_service = extraction_service or ExtractionService()
        self.audio_analyzer = audio_analyzer or AudioHeuristicAnalyzer()
        self.content_scorer = content_scorer or ContentQualityScorer()
        self.credit_calculator = credit_calculator or CreditCalculator()
        self.fraud_aggregator = FraudAggregator(history)
        self.clock = clock

    async def submit(
        self,
        user_id: str,
        text: Optional[str] = None,
        audio: Optional[AudioReference] = None,
        location: Optional[GeoLocation] = None,
        crop: Optional[str] = None,
        area: Optional[str] = None,
        language: Optional[str] = None,
    ) -> SubmissionResult:
        """
        Process one submission end to end.

        Raises:
            SubmissionRejectedError: When any stage refuses the submission.
            AudioAnalysisError: If the audio file cannot be inspected.
        """
        submission_id = str(uuid4())
        with structlog.contextvars.bound_contextvars(submission_id=submission_id, user_id=user_id):
            try:
                return await self._run(submission_id, user_id, text, audio, location, crop, area, language)
            except SubmissionRejectedError as e:
                logger.info("submission_rejected", reason=e.message, fraud_score=e.fraud_score)
                raise
            finally:
                if audio is not None and audio.release():
                    logger.debug("audio_released", audio=audio.name)

    async def _run(
        self,
        submission_id: str,
        user_id: str,
        text: Optional[str],
        audio: Optional[AudioReference],
        location: Optional[GeoLocation],
        crop: Optional[str],
        area: Optional[str],
        language: Optional[str],
    ) -> SubmissionResult:
        now = self.clock()
        typed_text = (text or "").strip()

        # 1. Input check
        if audio is None and not typed_text:
            raise SubmissionRejectedError(MSG_INPUT_REQUIRED)

        # 2-3. Audio heuristics and transcription
        raw_text = typed_text
        transcription: Optional[str] = None
        audio_result: Optional[AudioAnalysisResult] = None
        if audio is not None:
            audio_result = self._check_audio(audio)
            transcription = await self._transcribe(audio, language, typed_text)
            if transcription:
                raw_text = transcription

        if not raw_text:
            raise SubmissionRejectedError(MSG_TEXT_REQUIRED)

        # 4. Content quality
        quality_score = self.content_scorer.score(raw_text)
        if not self.content_scorer.is_valid(raw_text):
            raise SubmissionRejectedError(MSG_LOW_QUALITY)

        # 5. Extraction and manual overrides
        extracted = await self.extraction_service.extract(raw_text)
        extracted = self._apply_overrides(extracted, crop, area, typed_text if audio is None else None)
        if not is_valid_farming_extraction(extracted):
            raise SubmissionRejectedError(MSG_NOT_FARMING)

        # 6-7. Anti-fraud checks and gate
        outcome = await self.fraud_aggregator.assess(
            user_id,
            extracted.activity_type,
            extracted.crop_name,
            location,
            now,
            audio_result=audio_result,
        )
        self._gate(outcome)

        # 8. Credits
        credits = self.credit_calculator.calculate(
            extracted.activity_type,
            crop_name=extracted.crop_name,
            area=extracted.area,
            description=extracted.description,
            quality_score=quality_score,
        )
        if credits == 0:
            raise SubmissionRejectedError(MSG_NO_CREDITS, reasons=outcome.reasons, fraud_score=outcome.fraud_score)

        # 9. Persist
        record = ActivityRecord(
            id=submission_id,
            user_id=user_id,
            activity_type=extracted.activity_type,
            crop_name=extracted.crop_name,
            area=extracted.area,
            description=extracted.description,
            raw_text=raw_text,
            transcription=transcription,
            location=location,
            created_at=now,
            credits_earned=credits,
            verification_status=outcome.verification_status,
            fraud_score=outcome.fraud_score,
            flagged_for_review=outcome.flagged,
            verification_metadata={
                "extracted": extracted.model_dump(mode="json"),
                "manual_inputs": {"crop": crop, "area": area},
                "audio_analysis": audio_result.model_dump(mode="json") if audio_result else None,
                "verification_reasons": outcome.reasons,
                "quality_score": quality_score,
                "raw_fraud_score": outcome.raw_score,
            },
        )
        saved = await self.history.create(record)

        logger.info(
            "submission_accepted",
            activity_type=saved.activity_type.value,
            credits=credits,
            fraud_score=outcome.fraud_score,
            verification_status=outcome.verification_status.value,
        )

        return SubmissionResult(
            accepted=True,
            credits_awarded=credits,
            verification_status=outcome.verification_status,
            fraud_score=outcome.fraud_score,
            reasons=outcome.reasons,
            activity=saved,
        )

    def _check_audio(self, audio: AudioReference) -> AudioAnalysisResult:
        """Reject clearly fake recordings before transcription."""
        result = self.audio_analyzer.analyze(audio)
        if result.score >= settings.AUDIO_REJECT_SCORE:
            raise SubmissionRejectedError(
                f"Audio verification failed: {', '.join(result.reasons)}",
                reasons=result.reasons,
            )
        if result.score >= AUDIO_WARNING_SCORE:
            logger.warning("audio_quality_warning", score=result.score, reasons=result.reasons)
        return result

    async def _transcribe(self, audio: AudioReference, language: Optional[str], typed_text: str) -> Optional[str]:
        """Transcribe audio; fall back to typed text when transcription fails."""
        try:
            return await self.transcription_service.transcribe(audio, language)
        except TranscriptionError as e:
            if not typed_text:
                raise SubmissionRejectedError(MSG_AUDIO_FAILED_NO_TEXT) from e
            logger.warning("transcription_failed_using_text", error=e.message)
            return None

    @staticmethod
    def _apply_overrides(
        extracted: ExtractedActivity,
        crop: Optional[str],
        area: Optional[str],
        description: Optional[str],
    ) -> ExtractedActivity:
        updates = {}
        if crop:
            updates["crop_name"] = crop
        if area:
            updates["area"] = area
        if description:
            updates["description"] = description
        return extracted.model_copy(update=updates) if updates else extracted

    def _gate(self, outcome: VerificationOutcome) -> None:
        if not self.fraud_aggregator.should_reject(outcome):
            return
        if not outcome.location_valid:
            raise InvalidLocationError(MSG_INVALID_LOCATION, reasons=outcome.reasons, fraud_score=outcome.fraud_score)
        raise SubmissionRejectedError(
            f"Activity verification failed: {', '.join(outcome.reasons)}",
            reasons=outcome.reasons,
            fraud_score=outcome.fraud_score,
        )
