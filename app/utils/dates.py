"""
Timestamp helpers shared by the normalizer and the stores.

Gateways hand back ISO-8601 with a trailing Z, ISO-8601 with offsets, plain
"YYYY-MM-DD HH:MM:SS" strings and Unix epochs. Everything is folded to an
aware UTC datetime; naive values are taken to be UTC.
"""
from datetime import date, datetime, time, timezone
from typing import Any, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d",
    "%d/%m/%Y %H:%M:%S",
)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a datetime, epoch number or date string into aware UTC. None if unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            return None
    elif isinstance(value, str):
        dt = _parse_string(value.strip())
        if dt is None:
            return None
    else:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_string(text: str) -> Optional[datetime]:
    if not text:
        return None
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.fromisoformat(iso)
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def to_iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat()


def start_of(bound) -> Optional[datetime]:
    """Lower range bound: a date covers the day from 00:00:00 UTC."""
    if bound is None:
        return None
    if isinstance(bound, datetime):
        return parse_timestamp(bound)
    return datetime.combine(bound, time.min, tzinfo=timezone.utc)


def end_of(bound) -> Optional[datetime]:
    """Upper range bound: a date covers the day up to 23:59:59.999999 UTC."""
    if bound is None:
        return None
    if isinstance(bound, datetime):
        return parse_timestamp(bound)
    return datetime.combine(bound, time.max, tzinfo=timezone.utc)
