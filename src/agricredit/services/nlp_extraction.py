"""
Structured activity extraction using an LLM.

Sends the (possibly transcribed) text to an OpenAI-compatible chat
completions endpoint (Groq) and parses activity type, crop, area and a
cleaned description. Handles English, Kannada and Marathi input.

Extraction is non-fatal: any failure degrades to a fallback record of type
``other`` carrying the truncated input.
"""

import json
import re
from typing import Optional

import httpx
import structlog

from agricredit.core.config import settings
from agricredit.core.exceptions import ExtractionError
from agricredit.schemas.activity import ActivityType, ExtractedActivity

logger = structlog.get_logger(__name__)


FALLBACK_DESCRIPTION_LENGTH = 200
MIN_OTHER_DESCRIPTION_LENGTH = 20
# Matches the crop_name / area column width
MAX_FIELD_LENGTH = 100
NOT_FARMING_MARKERS = ("not_farming", "not a farming", "not farming")

SYSTEM_PROMPT = (
    "You are a helpful assistant that extracts structured farming activity data from text in "
    "multiple languages, including English, Kannada (ಕನ್ನಡ), and Marathi (मराठी). The text may "
    "come from voice transcriptions, so handle speech artifacts, filler words, and incomplete "
    "sentences. Always return valid JSON only. Preserve the original language in crop names and "
    "descriptions. If the text is not about farming activities (e.g. \"hello\"/\"ಹಲೋ\"/\"नमस्कार\", "
    "\"test\"/\"ಪರೀಕ್ಷೆ\"/\"चाचणी\", meaningless text), return activity_type as \"other\" and "
    "include \"NOT_FARMING\" in the description field."
)

USER_PROMPT_TEMPLATE = """Extract farming activity information from the following text. It may be a voice transcription in English, Kannada or Marathi with filler words or incomplete sentences.

Return ONLY a valid JSON object with these exact fields:
{{
  "activity_type": one of "organic_input", "water_conservation", "soil_health", "pest_management", "crop_rotation", or "other" (use "other" only for a valid farming activity that fits no other category),
  "crop_name": the crop name if mentioned (preserve original language), or null,
  "area": the area/land size if mentioned (e.g. "2 acres", "5 hectares", "2 ಎಕರೆ", "2 एकर"), or null,
  "description": a cleaned, concise description of the activity. If the text is not about farming, include "NOT_FARMING".
}}

Text: "{text}"

Return ONLY the JSON object, no other text."""

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def fallback_extraction(text: str) -> ExtractedActivity:
    """Best-effort record used whenever extraction fails."""
    return ExtractedActivity(
        activity_type=ActivityType.OTHER,
        crop_name=None,
        area=None,
        description=text[:FALLBACK_DESCRIPTION_LENGTH],
    )


def has_not_farming_marker(description: str) -> bool:
    lowered = description.lower()
    return any(marker in lowered for marker in NOT_FARMING_MARKERS)


def _optional_text(value) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()[:MAX_FIELD_LENGTH].strip() or None


def parse_extraction_reply(reply: str, source_text: str) -> ExtractedActivity:
    """
    Parse the model's reply into an ExtractedActivity.

    Raises:
        ExtractionError: If no JSON object can be parsed from the reply.
    """
    match = _JSON_OBJECT.search(reply or "")
    if not match:
        raise ExtractionError("Failed to extract JSON from NLP response")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Invalid JSON in NLP response: {e}") from e
    if not isinstance(data, dict):
        raise ExtractionError("NLP response is not a JSON object")

    try:
        activity_type = ActivityType(data.get("activity_type"))
    except ValueError:
        activity_type = ActivityType.OTHER

    description = str(data.get("description") or "").strip()
    if not description:
        description = source_text[:FALLBACK_DESCRIPTION_LENGTH]

    if has_not_farming_marker(description):
        activity_type = ActivityType.OTHER
        description = "NOT_FARMING: " + description

    return ExtractedActivity(
        activity_type=activity_type,
        crop_name=_optional_text(data.get("crop_name")),
        area=_optional_text(data.get("area")),
        description=description,
    )


def is_valid_farming_extraction(extracted: ExtractedActivity) -> bool:
    """Check that the extracted record still describes a farming activity."""
    if has_not_farming_marker(extracted.description):
        return False
    if extracted.activity_type == ActivityType.OTHER and len(extracted.description) < MIN_OTHER_DESCRIPTION_LENGTH:
        return False
    return True


class ExtractionService:
    """Client for LLM-based activity extraction."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.GROQ_API_KEY
        self.api_url = api_url or settings.GROQ_API_URL
        self.model = model or settings.GROQ_MODEL
        self.http_client = http_client

    async def extract(self, text: str) -> ExtractedActivity:
        """Extract structured activity data. Never raises."""
        try:
            reply = await self._complete(text)
            extracted = parse_extraction_reply(reply, text)
        except (ExtractionError, httpx.HTTPError) as e:
            logger.warning("extraction_failed_using_fallback", error=str(e))
            return fallback_extraction(text)

        logger.info(
            "activity_extracted",
            activity_type=extracted.activity_type.value,
            crop_name=extracted.crop_name,
            area=extracted.area,
        )
        return extracted

    async def _complete(self, text: str) -> str:
        if not self.api_key:
            raise ExtractionError("GROQ_API_KEY is not configured")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": USER_PROMPT_TEMPLATE.format(text=text)},
            ],
            "temperature": 0.3,
            "max_tokens": 500,
        }

        if self.http_client is not None:
            response = await self._post(self.http_client, payload)
        else:
            async with httpx.AsyncClient() as client:
                response = await self._post(client, payload)

        response.raise_for_status()
        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ExtractionError(f"Unexpected completion response: {e}") from e
        if content is None:
            return ""
        if not isinstance(content, str):
            raise ExtractionError(f"Completion content is {type(content).__name__}, expected text")
        return content

    async def _post(self, client: httpx.AsyncClient, payload: dict) -> httpx.Response:
        return await client.post(
            self.api_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json=payload,
            timeout=settings.EXTERNAL_API_TIMEOUT_SECONDS,
        )
