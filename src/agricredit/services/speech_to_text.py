"""
Speech-to-Text Service using Sarvam AI.

Sarvam AI is optimized for Indian languages (Hindi, Kannada, Marathi, ...).
Supports webm, mp3, wav, m4a, ogg and flac uploads.
https://docs.sarvam.ai/api-reference-docs/speech-to-text/transcribe
"""

import asyncio
from typing import Optional

import httpx
import structlog

from agricredit.core.config import settings
from agricredit.core.exceptions import TranscriptionError
from agricredit.services.audio_analysis import AudioReference

logger = structlog.get_logger(__name__)


DEFAULT_LANGUAGE = "en-IN"

# Profile language codes -> Sarvam AI language codes
LANGUAGE_MAP = {
    "en": "en-IN",
    "kn": "kn-IN",
    "hi": "hi-IN",
    "ta": "ta-IN",
    "te": "te-IN",
    "ml": "ml-IN",
    "mr": "mr-IN",
    "bn": "bn-IN",
    "gu": "gu-IN",
    "pa": "pa-IN",
    "ur": "ur-IN",
}

MIME_TYPES = {
    "webm": "audio/webm",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "m4a": "audio/m4a",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
}


def map_language_code(language_code: Optional[str]) -> Optional[str]:
    """Convert 'en'/'kn' style codes to Sarvam's 'en-IN'/'kn-IN' format."""
    if not language_code:
        return None
    if "-" in language_code:
        return language_code
    return LANGUAGE_MAP.get(language_code.lower())


def get_mime_type(file_name: str) -> str:
    ext = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    return MIME_TYPES.get(ext, "audio/webm")


class TranscriptionService:
    """
    Client for the Sarvam AI speech-to-text API.

    Never deletes the audio file; the caller owns its lifecycle.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.SARVAM_API_KEY
        self.api_url = api_url or settings.SARVAM_API_URL
        self.http_client = http_client

    def resolve_language(self, language: Optional[str]) -> str:
        """Explicit language, then SARVAM_LANGUAGE, then English (India)."""
        resolved = map_language_code(language)
        if not resolved and settings.SARVAM_LANGUAGE:
            resolved = map_language_code(settings.SARVAM_LANGUAGE) or settings.SARVAM_LANGUAGE
        return resolved or DEFAULT_LANGUAGE

    async def transcribe(self, audio: AudioReference, language: Optional[str] = None) -> str:
        """
        Transcribe an audio file.

        Raises:
            TranscriptionError: On missing configuration, unreadable audio,
                API failure or an empty transcript.
        """
        if not self.api_key:
            raise TranscriptionError("Sarvam AI API key not configured (SARVAM_API_KEY)")

        try:
            audio_bytes = await asyncio.to_thread(audio.path.read_bytes)
        except OSError as e:
            raise TranscriptionError(f"Audio file not found: {audio.name}") from e

        language_code = self.resolve_language(language)
        files = {"file": (audio.name, audio_bytes, get_mime_type(audio.name))}
        data = {"language_code": language_code}
        if settings.SARVAM_MODEL:
            data["model"] = settings.SARVAM_MODEL

        logger.info(
            "transcription_requested",
            audio=audio.name,
            size_bytes=len(audio_bytes),
            language_code=language_code,
        )

        try:
            if self.http_client is not None:
                response = await self._post(self.http_client, files, data)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, files, data)
        except httpx.HTTPError as e:
            logger.error("transcription_request_failed", error=str(e))
            raise TranscriptionError(f"Speech-to-Text failed: {e}") from e

        if response.status_code != 200:
            message = self._error_message(response)
            logger.error("transcription_api_error", status=response.status_code, error=message[:200])
            raise TranscriptionError(message, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise TranscriptionError("Sarvam AI returned a non-JSON response") from e
        if not isinstance(payload, dict):
            logger.error("transcription_unexpected_payload", payload_type=type(payload).__name__)
            raise TranscriptionError("Sarvam AI returned an unexpected response body")

        transcript = payload.get("transcript") or payload.get("text") or payload.get("transcription")
        if not transcript or not str(transcript).strip():
            logger.warning("transcription_empty", request_id=payload.get("request_id"))
            raise TranscriptionError("Sarvam AI returned empty transcription")

        logger.info(
            "transcription_completed",
            request_id=payload.get("request_id"),
            language_code=payload.get("language_code"),
            transcript_length=len(transcript),
        )
        return str(transcript).strip()

    async def _post(self, client: httpx.AsyncClient, files: dict, data: dict) -> httpx.Response:
        return await client.post(
            self.api_url,
            headers={"api-subscription-key": str(self.api_key)},
            files=files,
            data=data,
            timeout=settings.EXTERNAL_API_TIMEOUT_SECONDS,
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Best-effort error text from the several error shapes the API returns."""
        message = f"Sarvam AI transcription failed: HTTP {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            return f"{message}. {response.text}" if response.text else message

        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                return error.get("message") or error.get("code") or message
            if isinstance(error, str):
                return error
            if body.get("message"):
                return body["message"]
        elif isinstance(body, str):
            return body
        return message
