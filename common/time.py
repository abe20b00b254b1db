from __future__ import annotations

from datetime import datetime, timezone


def now_ms() -> float:
    return datetime.now(tz=timezone.utc).timestamp() * 1000.0


def log_stamp(ts_ms: float) -> str:
    """Local time as ``YYYY-MM-DD HH:MM:SS.fff`` for activity-log lines."""
    dt = datetime.fromtimestamp(ts_ms / 1000.0)
    return dt.strftime("%Y-%m-%d %H:%M:%S.") + f"{dt.microsecond // 1000:03d}"


def file_stamp(ts_ms: float) -> str:
    """Local time as ``YYYYMMDD_HHMMSSfff`` for snapshot filenames."""
    dt = datetime.fromtimestamp(ts_ms / 1000.0)
    return dt.strftime("%Y%m%d_%H%M%S") + f"{dt.microsecond // 1000:03d}"
