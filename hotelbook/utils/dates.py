from datetime import date, datetime, timedelta
from typing import Iterator, List, Union

from ..exceptions import BookingValidationError

DateLike = Union[date, datetime, str]


def _parse_iso(text: str) -> date:
    if len(text) == 10:
        return date.fromisoformat(text)
    if len(text) > 10 and text[10] in "T ":
        # fromisoformat only learned the Z suffix in 3.11
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text).date()
    raise ValueError(text)


def to_day(value: DateLike) -> date:
    """
    Normalize a date, datetime or ISO string to a calendar day.

    Ledger keys are days; any time-of-day component is dropped so entries
    written from different inputs compare equal. Anything else is a
    BookingValidationError.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return _parse_iso(value.strip())
        except ValueError:
            raise BookingValidationError(f"Invalid date: {value!r}", details={"value": value})
    raise BookingValidationError(
        f"Expected a date, got {type(value).__name__}",
        details={"type": type(value).__name__},
    )


def iter_nights(start: date, end: date) -> Iterator[date]:
    """Yield each day from start (inclusive) to end (exclusive)."""
    current = start
    while current < end:
        yield current
        current += timedelta(days=1)


def nights_between(start: date, end: date) -> List[date]:
    return list(iter_nights(start, end))
