"""
Lumina Calendar — Smart Event Parser.

Turns a free-text request ("Dinner with Sophie tomorrow at 7pm") into a
structured event suggestion using the configured LLM provider.

Exactly one LLM round-trip per call: no retries, no caching. Every failure
is logged and reported as a typed result; nothing is raised past this module
and no partial suggestion is ever returned.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum

from dateutil.parser import isoparse
from pydantic import BaseModel, ValidationError, field_validator

from src.core.date_window import to_wall_clock
from src.core.llm import complete
from src.data.models import CalendarEvent

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Contract with the LLM
# ---------------------------------------------------------------------------


class SmartEventSuggestion(BaseModel):
    """Structured event extracted from natural language.

    JSON example:
    {
        "title": "Dinner",
        "description": "At Gusto",
        "startDate": "2024-01-02T19:00:00Z",
        "endDate": "2024-01-02T20:00:00Z"
    }

    Dates are kept as the exact ISO-8601 text the service returned.
    """
    title: str
    description: str = ""
    startDate: str
    endDate: str

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("title must not be blank")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def description_default(cls, v: str | None) -> str:
        return v or ""

    @field_validator("startDate", "endDate")
    @classmethod
    def iso_datetime(cls, v: str) -> str:
        isoparse(v)  # raises ValueError on malformed text
        return v


RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "description": {"type": "string"},
        "startDate": {"type": "string", "description": "ISO 8601 string"},
        "endDate": {"type": "string", "description": "ISO 8601 string"},
    },
    "required": ["title", "startDate", "endDate"],
}

_SYSTEM_PROMPT = """\
You are an event extraction engine for a calendar app.
Parse the user's natural language into a single structured calendar event.

Reference date (today): {reference}.

- "title" = short title for the calendar event.
- "description" = any extra details (location, people, notes), or "".
- "startDate" and "endDate" must be ISO 8601 date-time strings.
- Interpret relative dates ("tomorrow", "next Monday") relative to the reference date.
- If no duration is mentioned, assume one hour.
- Return ONLY the JSON object. No markdown, no explanation, no extra text.
"""


# ---------------------------------------------------------------------------
# Result type
# ---------------------------------------------------------------------------


class ParseFailure(str, Enum):
    EMPTY_INPUT = "empty_input"
    SERVICE_ERROR = "service_error"
    TIMEOUT = "timeout"
    EMPTY_RESPONSE = "empty_response"
    INVALID_JSON = "invalid_json"
    SCHEMA_MISMATCH = "schema_mismatch"


@dataclass(frozen=True)
class SmartParseResult:
    """Either a suggestion or a failure kind, never both."""

    suggestion: SmartEventSuggestion | None = None
    failure: ParseFailure | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.suggestion is not None

    @classmethod
    def success(cls, suggestion: SmartEventSuggestion) -> SmartParseResult:
        return cls(suggestion=suggestion)

    @classmethod
    def failed(cls, failure: ParseFailure, detail: str = "") -> SmartParseResult:
        return cls(failure=failure, detail=detail)


# ---------------------------------------------------------------------------
# Response Cleaning Functions
# ---------------------------------------------------------------------------


def _clean_llm_response(raw_text: str) -> str:
    """Remove markdown code block delimiters from LLM's raw response."""
    cleaned_text = raw_text.strip()
    if cleaned_text.startswith("```json"):
        cleaned_text = cleaned_text.removeprefix("```json")
    elif cleaned_text.startswith("```"):
        cleaned_text = cleaned_text.removeprefix("```")
    if cleaned_text.endswith("```"):
        cleaned_text = cleaned_text.removesuffix("```")
    return cleaned_text.strip()


def _validate_response(raw_text: str | None) -> SmartParseResult:
    """Decode and schema-check the LLM reply."""
    cleaned = _clean_llm_response(raw_text or "")
    if not cleaned:
        logger.warning("LLM returned empty content")
        return SmartParseResult.failed(ParseFailure.EMPTY_RESPONSE)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse LLM response as JSON: %s — raw: '%s'", exc, cleaned)
        return SmartParseResult.failed(ParseFailure.INVALID_JSON, str(exc))

    if not isinstance(data, dict):
        logger.warning("LLM returned unexpected type: %s", type(data).__name__)
        return SmartParseResult.failed(
            ParseFailure.SCHEMA_MISMATCH, f"expected object, got {type(data).__name__}",
        )

    try:
        suggestion = SmartEventSuggestion.model_validate(data)
    except ValidationError as exc:
        logger.warning("LLM response does not match event schema: %s", exc)
        return SmartParseResult.failed(ParseFailure.SCHEMA_MISMATCH, str(exc))

    logger.info(
        "Parsed smart event: %s from %s to %s",
        suggestion.title, suggestion.startDate, suggestion.endDate,
    )
    return SmartParseResult.success(suggestion)


# ---------------------------------------------------------------------------
# Parser function
# ---------------------------------------------------------------------------


async def parse_smart_event(
    text: str,
    reference: datetime,
    timeout: float | None = None,
) -> SmartParseResult:
    """Parse free text into a SmartEventSuggestion using the configured LLM.

    Args:
        text: The user's request. Callers should reject blank input first.
        reference: The instant relative expressions resolve against.
        timeout: Seconds to wait for the LLM; defaults to LLM_TIMEOUT_SECONDS.
    """
    if not text or not text.strip():
        return SmartParseResult.failed(ParseFailure.EMPTY_INPUT)

    if timeout is None:
        from src.config import settings
        timeout = settings.LLM_TIMEOUT_SECONDS

    try:
        raw_text = await complete(
            system=_SYSTEM_PROMPT.format(reference=reference.isoformat()),
            user_message=text.strip(),
            max_tokens=512,
            response_schema=RESPONSE_SCHEMA,
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.error("LLM call timed out after %ss", timeout)
        return SmartParseResult.failed(ParseFailure.TIMEOUT, f"no reply within {timeout}s")
    except Exception as exc:
        logger.error("LLM call failed in parse_smart_event: %s", exc)
        return SmartParseResult.failed(ParseFailure.SERVICE_ERROR, str(exc))

    logger.debug("LLM raw response: %s", raw_text)
    return _validate_response(raw_text)


# ---------------------------------------------------------------------------
# Suggestion → event
# ---------------------------------------------------------------------------


def suggestion_to_event(
    suggestion: SmartEventSuggestion,
    event_id: str,
    color: str,
    tz: tzinfo | None = None,
) -> CalendarEvent:
    """Build a CalendarEvent from a validated suggestion.

    Raises ValueError if either date cannot be parsed.
    """
    return CalendarEvent(
        id=event_id,
        title=suggestion.title,
        description=suggestion.description,
        start=to_wall_clock(suggestion.startDate, tz),
        end=to_wall_clock(suggestion.endDate, tz),
        color=color,
    )
