"""Validation of wizard answers.

Each parser turns one raw answer (typed text or a clicked option value)
into the typed slot value, or raises ``FieldValidationError`` carrying the
corrective message. Numeric slots reject values <= 0.
"""
import datetime as dt
import math
import re
from decimal import Decimal
from typing import Any, Callable, Optional

import dateparser

from core import prompts
from core.extractors import extract_time, extract_weekdays
from models.draft import Category, Importance, PendingField, Weekday


_HOURS_SUFFIX_RE = re.compile(r"\s*(?:hours?|hrs?|h)$")
_PLAIN_AMOUNT_RE = re.compile(r"\d+(?:\.\d+)?")


class FieldValidationError(ValueError):
    """An answer was rejected; the same slot stays pending."""

    def __init__(self, field: PendingField, message: Optional[str] = None):
        super().__init__(message or prompts.CORRECTIONS[field])
        self.field = field
        self.message = message or prompts.CORRECTIONS[field]


def _text(field: PendingField, raw: str, today: dt.date) -> str:
    value = raw.strip()
    if not value:
        raise FieldValidationError(field)
    return value


def _category(field: PendingField, raw: str, today: dt.date) -> Category:
    wanted = raw.strip().lower()
    for category in Category:
        if category.value.lower() == wanted:
            return category
    raise FieldValidationError(field)


def _amount(field: PendingField, raw: str, today: dt.date) -> Decimal:
    cleaned = raw.strip().lstrip("$").replace(",", "").strip()
    # Plain digits only: no sign, exponent or NaN/Infinity
    if not _PLAIN_AMOUNT_RE.fullmatch(cleaned):
        raise FieldValidationError(field)
    value = Decimal(cleaned)
    if value <= 0:
        raise FieldValidationError(field)
    return value


def _days(field: PendingField, raw: str, today: dt.date) -> list[Weekday]:
    parts = [part.strip() for part in raw.split(",") if part.strip()]
    if parts and all(part.isdigit() for part in parts):
        try:
            return sorted({Weekday(int(part)) for part in parts})
        except ValueError:
            raise FieldValidationError(field)
    days = extract_weekdays(raw)
    if not days:
        raise FieldValidationError(field)
    return days


def _start_time(field: PendingField, raw: str, today: dt.date) -> str:
    value = extract_time(raw)
    if value is None:
        raise FieldValidationError(field)
    return value


def _duration(field: PendingField, raw: str, today: dt.date) -> float:
    cleaned = _HOURS_SUFFIX_RE.sub("", raw.strip().lower())
    try:
        value = float(cleaned)
    except ValueError:
        raise FieldValidationError(field)
    if not math.isfinite(value) or value <= 0:
        raise FieldValidationError(field)
    return value


def _date(field: PendingField, raw: str, today: dt.date) -> dt.date:
    value = raw.strip()
    if not value:
        raise FieldValidationError(field)
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        pass
    parsed = dateparser.parse(
        value,
        settings={
            "RELATIVE_BASE": dt.datetime.combine(today, dt.time()),
            "PREFER_DATES_FROM": "future",
        },
    )
    if parsed is None:
        raise FieldValidationError(field)
    return parsed.date()


def _importance(field: PendingField, raw: str, today: dt.date) -> Importance:
    wanted = raw.strip().lower()
    for level in Importance:
        if wanted in (str(level.value), level.label.lower()):
            return level
    raise FieldValidationError(field)


_PARSERS: dict[PendingField, Callable[[PendingField, str, dt.date], Any]] = {
    PendingField.TITLE: _text,
    PendingField.SUBJECT_NAME: _text,
    PendingField.SUBJECT: _text,
    PendingField.CATEGORY: _category,
    PendingField.AMOUNT: _amount,
    PendingField.DAYS: _days,
    PendingField.START_TIME: _start_time,
    PendingField.DURATION_HOURS: _duration,
    PendingField.DATE: _date,
    PendingField.IMPORTANCE: _importance,
}


def parse_field_value(field: PendingField, raw: str, today: Optional[dt.date] = None) -> Any:
    parser = _PARSERS.get(field)
    if parser is None:
        raise ValueError(f"{field.value!r} is not an answerable slot")
    return parser(field, raw, today or dt.date.today())
