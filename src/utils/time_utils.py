# src/utils/time_utils.py
from datetime import date, datetime, time, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo
from core.config import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def clinic_timezone(name: Optional[str] = None) -> tzinfo:
    name = name or settings.CLINIC_TIMEZONE
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def combine_schedule(
    scheduled_date: Optional[date],
    scheduled_time: Optional[time],
    tz_name: Optional[str] = None,
) -> Optional[datetime]:
    """
    Appointment dates and times are clinic wall-clock values; convert them to
    an aware UTC datetime using the clinic timezone.
    """
    if scheduled_date is None:
        return None
    local = datetime.combine(
        scheduled_date, scheduled_time or time.min, tzinfo=clinic_timezone(tz_name)
    )
    return local.astimezone(timezone.utc)
