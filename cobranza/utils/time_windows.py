from datetime import datetime, date, timedelta, timezone
from zoneinfo import ZoneInfo

from cobranza.config import DEFAULT_TENANT_TZ


def resolve_tenant_tz(tenant_id: str | None = None) -> ZoneInfo:
    """
    TZ del tenant. Por ahora todos comparten la TZ por defecto de config;
    el día que el tenant tenga su propia TZ, se lee acá.
    """
    return ZoneInfo(DEFAULT_TENANT_TZ)


def to_ymd_in_tz(dt: datetime, tz: ZoneInfo) -> str:
    """datetime (aware o naive=UTC) → YYYY-MM-DD en la TZ dada."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz).date().isoformat()


def today_in_tz(tz: ZoneInfo) -> str:
    return to_ymd_in_tz(datetime.now(timezone.utc), tz)


def parse_ymd(s: str | None) -> date | None:
    if not s or not isinstance(s, str):
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def add_days(ymd: str, days: int) -> str:
    # aritmética de calendario pura: sin bordes DST
    return (date.fromisoformat(ymd) + timedelta(days=days)).isoformat()


def prev_day(ymd: str) -> str:
    return add_days(ymd, -1)


def compact_ymd(ymd: str) -> str:
    """YYYY-MM-DD → YYYYMMDD (clave de cierres)."""
    return ymd.replace("-", "")


def days_between(earlier: str, later: str) -> int:
    return (date.fromisoformat(later) - date.fromisoformat(earlier)).days
