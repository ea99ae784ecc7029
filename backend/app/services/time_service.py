"""Time specification conversion — raw exact/fuzzy input to canonical UTC instants.

Exact input carries ``start_time`` / ``end_time`` as ISO-8601 strings with an
offset. Fuzzy input carries ``period_granularity`` and ``period_start``; the end
is derived from a fixed duration per granularity. No input means unscheduled.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from app.errors import ValidationFailed

PERIOD_DURATIONS = {
    "morning": timedelta(hours=4),
    "afternoon": timedelta(hours=4),
    "evening": timedelta(hours=4),
    "night": timedelta(hours=8),
    "day": timedelta(hours=12),
    "weekend": timedelta(hours=48),
}


def _parse_instant(value: str, field: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError, AttributeError):
        raise ValidationFailed(f"{field} must be an ISO-8601 timestamp with offset")
    if parsed.tzinfo is None:
        raise ValidationFailed(f"{field} must include a timezone offset")
    return parsed.astimezone(timezone.utc)


def convert(time_input: Optional[dict[str, Any]]) -> tuple[Optional[datetime], Optional[datetime]]:
    """Return (start_utc, end_utc) for a time specification; (None, None) when unscheduled."""
    if not time_input:
        return None, None

    granularity = time_input.get("period_granularity")
    if granularity:
        duration = PERIOD_DURATIONS.get(str(granularity).lower())
        if duration is None:
            raise ValidationFailed(f"Unknown period granularity: {granularity}")
        if not time_input.get("period_start"):
            raise ValidationFailed("period_start is required with period_granularity")
        if time_input.get("start_time") or time_input.get("end_time"):
            raise ValidationFailed("Fuzzy and exact times cannot be combined")
        start = _parse_instant(time_input["period_start"], "period_start")
        return start, start + duration

    if time_input.get("period_start"):
        raise ValidationFailed("period_granularity is required with period_start")

    start_raw = time_input.get("start_time")
    if not start_raw:
        raise ValidationFailed("start_time is required for an exact time")
    start = _parse_instant(start_raw, "start_time")
    end = _parse_instant(time_input["end_time"], "end_time") if time_input.get("end_time") else None
    if end is not None and end < start:
        raise ValidationFailed("end_time must not be before start_time")
    return start, end


def to_epoch_seconds(value: Optional[datetime]) -> Optional[int]:
    """Epoch seconds for the pointer time key; naive values are read as UTC (SQLite)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())
