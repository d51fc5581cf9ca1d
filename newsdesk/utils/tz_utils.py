from datetime import datetime, timezone
from zoneinfo import ZoneInfo
from typing import Optional

DEFAULT_TIMEZONE = "Asia/Kolkata"


def utc_to_local(dt_utc: datetime, tz_name: str = DEFAULT_TIMEZONE) -> datetime:
    """Converte datetime UTC para timezone local."""
    if dt_utc.tzinfo is None:
        dt_utc = dt_utc.replace(tzinfo=timezone.utc)
    return dt_utc.astimezone(ZoneInfo(tz_name))


def iso_to_local_date(iso_ts: Optional[str], tz_name: str = DEFAULT_TIMEZONE) -> Optional[str]:
    """Converte string ISO (em UTC) para data local 'YYYY-MM-DD'."""
    if not iso_ts:
        return None
    try:
        dt_utc = datetime.fromisoformat(iso_ts)
    except ValueError:
        return None
    return utc_to_local(dt_utc, tz_name).strftime("%Y-%m-%d")


def today_local(tz_name: str = DEFAULT_TIMEZONE) -> str:
    return utc_to_local(datetime.now(timezone.utc), tz_name).strftime("%Y-%m-%d")
