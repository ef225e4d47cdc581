"""
ToDoozies Core — Natural-language date parser.

Turns a due-date phrase ("tomorrow", "in 3 weeks", "next friday",
"March 3") into a date with a confidence score. Strategies run in a fixed
priority order and the first match wins. Parsing never raises: empty or
unrecognized input comes back as a ParseFailed value.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Literal

from dateutil import parser as date_parser
from pydantic import BaseModel, Field

from src.core.calendar_day import (
    add_days,
    add_months,
    add_weeks,
    now_local,
    start_of_day,
    weekday_number,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Result contract
# ---------------------------------------------------------------------------

KEYWORD_CONFIDENCE = 0.9
DETECTED_CONFIDENCE = 0.8
WEEKDAY_MENTION_CONFIDENCE = 0.7


class ParseSuccess(BaseModel):
    """A single confident reading of the input."""
    kind: Literal["success"] = "success"
    date: datetime
    confidence: float = Field(ge=0.0, le=1.0)


class ParseAmbiguous(BaseModel):
    """Several plausible readings; callers may take the first."""
    kind: Literal["ambiguous"] = "ambiguous"
    candidates: list[datetime]
    suggestions: list[str] = []


class ParseFailed(BaseModel):
    kind: Literal["failed"] = "failed"
    reason: str


DateParseResult = ParseSuccess | ParseAmbiguous | ParseFailed


def resolve_parse_result(result: DateParseResult) -> datetime | None:
    """Collapse a parse result to one date (first candidate when ambiguous)."""
    if isinstance(result, ParseSuccess):
        return result.date
    if isinstance(result, ParseAmbiguous):
        return result.candidates[0] if result.candidates else None
    return None


# ---------------------------------------------------------------------------
# Vocabulary
# ---------------------------------------------------------------------------

# Index + 1 is the weekday number (Sunday = 1)
WEEKDAY_NAMES = [
    "sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
]

_MONTH_WORDS = (
    r"jan(uary)?|feb(ruary)?|mar(ch)?|apr(il)?|may|june?|july?|aug(ust)?"
    r"|sep(t(ember)?)?|oct(ober)?|nov(ember)?|dec(ember)?"
)

# Only hand text to the fuzzy parser when it carries an explicit date
_EXPLICIT_DATE_RE = re.compile(
    rf"\b({_MONTH_WORDS})\b"
    r"|\b\d{1,2}[/.\-]\d{1,2}([/.\-]\d{2,4})?\b"
    r"|\b\d{4}-\d{1,2}-\d{1,2}\b",
)


def _next_weekday(weekday: int, now: datetime) -> datetime:
    """Start of the next ``weekday`` strictly after today."""
    days_ahead = weekday - weekday_number(now)
    if days_ahead <= 0:
        days_ahead += 7
    return add_days(start_of_day(now), days_ahead)


# ---------------------------------------------------------------------------
# Strategies (each returns None when it does not apply)
# ---------------------------------------------------------------------------

def _parse_keyword(text: str, now: datetime) -> datetime | None:
    today = start_of_day(now)
    if text == "today":
        return today
    if text == "tomorrow":
        return add_days(today, 1)
    if text == "yesterday":
        return add_days(today, -1)
    if text == "next week":
        return add_weeks(now, 1)
    if text == "next month":
        return add_months(now, 1)
    return None


def _parse_in_offset(text: str, now: datetime) -> datetime | None:
    """'in 3 days', 'in 1 week', 'in 2 months'."""
    tokens = text.split()
    if len(tokens) < 3 or tokens[0] != "in":
        return None
    try:
        amount = int(tokens[1])
    except ValueError:
        return None

    unit = tokens[2]
    try:
        if unit.startswith("day"):
            return add_days(now, amount)
        if unit.startswith("week"):
            return add_weeks(now, amount)
        if unit.startswith("month"):
            return add_months(now, amount)
    except (OverflowError, ValueError) as exc:
        logger.debug("Offset '%s' is outside the supported date range: %s", text, exc)
    return None


def _parse_next_weekday(text: str, now: datetime) -> datetime | None:
    """'next monday'."""
    if not text.startswith("next "):
        return None
    name = text.removeprefix("next ").strip()
    if name not in WEEKDAY_NAMES:
        return None
    return _next_weekday(WEEKDAY_NAMES.index(name) + 1, now)


def _parse_explicit_date(text: str, now: datetime) -> datetime | None:
    """'March 3', '3/14', '2026-05-01', 'dec 24 2026'."""
    if not _EXPLICIT_DATE_RE.search(text.lower()):
        return None
    try:
        parsed = date_parser.parse(text, fuzzy=True, default=start_of_day(now).replace(tzinfo=None))
    except (ValueError, OverflowError) as exc:
        logger.debug("Explicit date detection failed for '%s': %s", text, exc)
        return None
    if parsed.tzinfo is None and now.tzinfo is not None:
        parsed = parsed.replace(tzinfo=now.tzinfo)
    return parsed


def _parse_weekday_mention(text: str, now: datetime) -> datetime | None:
    """Any weekday name anywhere in the text, e.g. 'by friday please'."""
    for index, name in enumerate(WEEKDAY_NAMES):
        if name in text:
            return _next_weekday(index + 1, now)
    return None


# ---------------------------------------------------------------------------
# Parser function
# ---------------------------------------------------------------------------

def parse_date(text: str, now: datetime | None = None) -> DateParseResult:
    """Parse free text into a date with a confidence score.

    Args:
        text: User input such as "tomorrow" or "in 2 weeks".
        now: Reference instant; defaults to the configured local clock.

    Returns:
        ParseSuccess, ParseAmbiguous or ParseFailed. Never raises.
    """
    now = now or now_local()
    normalized = (text or "").strip().lower()

    if not normalized:
        return ParseFailed(reason="Empty input")

    strategies = (
        ("keyword", _parse_keyword, normalized, KEYWORD_CONFIDENCE),
        ("in-offset", _parse_in_offset, normalized, KEYWORD_CONFIDENCE),
        ("next-weekday", _parse_next_weekday, normalized, KEYWORD_CONFIDENCE),
        ("explicit-date", _parse_explicit_date, text.strip(), DETECTED_CONFIDENCE),
        ("weekday-mention", _parse_weekday_mention, normalized, WEEKDAY_MENTION_CONFIDENCE),
    )
    for name, strategy, value, confidence in strategies:
        result = strategy(value, now)
        if result is not None:
            logger.debug("Parsed '%s' via %s → %s", text, name, result.isoformat())
            return ParseSuccess(date=result, confidence=confidence)

    logger.info("Could not parse date from '%s'", text)
    return ParseFailed(reason="Could not parse date")
