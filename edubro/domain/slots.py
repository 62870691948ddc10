from __future__ import annotations

import re
from datetime import date, datetime
from typing import List, Optional, Union

from edubro.core.errors import ValidationFailedError
from edubro.domain.model import Slot

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def normalize_date(value: Union[str, date, datetime, None]) -> str:
    """
    מחזיר תאריך בפורמט YYYY-MM-DD – מקבל גם מחרוזת וגם date/datetime.
    """
    if value is None or value == "":
        raise ValidationFailedError("Date is required")
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(value[:10]).isoformat()
    except (TypeError, ValueError):
        raise ValidationFailedError("Invalid date format")


def parse_hour(time_str: Optional[str]) -> int:
    """
    "HH:00" → שעה. הסלוטים בשעות עגולות בלבד, דקות שאינן 00 נדחות.
    """
    if not time_str or not isinstance(time_str, str):
        raise ValidationFailedError("Start time is required")
    match = _TIME_RE.match(time_str.strip())
    if not match:
        raise ValidationFailedError(f"Invalid time format: {time_str!r}")
    hour = int(match.group(1))
    if not 0 <= hour <= 24:
        raise ValidationFailedError(f"Invalid time format: {time_str!r}")
    if match.group(2) != "00":
        raise ValidationFailedError(f"Times must be on the hour: {time_str!r}")
    return hour


def format_hour(hour: int) -> str:
    return f"{hour:02d}:00"


def default_end_time(start_time: str) -> str:
    """
    אם לא נשלחה שעת סיום – שעה אחרי ההתחלה.
    """
    return format_hour(parse_hour(start_time) + 1)


def hour_starts(start_time: str, end_time: str) -> List[str]:
    """
    פירוק טווח לשעות עגולות: "10:00"-"13:00" → ["10:00", "11:00", "12:00"].
    """
    start_hour = parse_hour(start_time)
    end_hour = parse_hour(end_time)
    if end_hour <= start_hour:
        raise ValidationFailedError("End time must be after start time")
    return [format_hour(h) for h in range(start_hour, end_hour)]


def expand_hour_slots(start_time: str, end_time: str) -> List[Slot]:
    return [
        Slot(start_time=s, end_time=format_hour(parse_hour(s) + 1))
        for s in hour_starts(start_time, end_time)
    ]


def session_start(date_str: str, start_time: str) -> datetime:
    return datetime.fromisoformat(f"{date_str}T{format_hour(parse_hour(start_time))}:00")
