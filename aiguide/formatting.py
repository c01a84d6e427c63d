"""Display helpers: timestamps, durations, chat transcripts."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any


def to_datetime(value: Any) -> datetime | None:
    """Normalize epoch seconds/milliseconds, ISO strings or datetimes to UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        # Anything below 1e11 is taken as seconds.
        seconds = value if value < 1e11 else value / 1000
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def format_iso_with_offset(value: Any, offset_minutes: int = 8 * 60) -> str | None:
    """Format as ``YYYY-MM-DDTHH:MM:SS+HH:MM`` in a fixed UTC offset."""
    dt = to_datetime(value)
    if dt is None:
        return None
    tz = timezone(timedelta(minutes=offset_minutes))
    return dt.astimezone(tz).replace(microsecond=0).isoformat()


def format_millis(millis: int | None, offset_minutes: int = 8 * 60) -> str | None:
    if not millis:
        return None
    return format_iso_with_offset(
        datetime.fromtimestamp(millis / 1000, tz=timezone.utc), offset_minutes
    )


def human_duration(ms: int) -> str:
    s = ms // 1000
    m = s // 60
    h = m // 60
    if h:
        return f"{h}h {m % 60}m"
    if m:
        return f"{m}m {s % 60}s"
    return f"{s}s"


def strip_system_messages(chat_data: Any) -> Any:
    """Return chat messages without ``role == "system"`` entries.

    Accepts a list of messages, an object with a ``messages`` list, or a
    ``{"0": msg, "1": msg}`` mapping (returned as a list in key order).
    Other shapes are returned unchanged.
    """

    def is_system(message: Any) -> bool:
        return isinstance(message, dict) and str(message.get("role") or "").lower() == "system"

    if isinstance(chat_data, list):
        return [m for m in chat_data if not is_system(m)]

    if isinstance(chat_data, dict) and isinstance(chat_data.get("messages"), list):
        return {**chat_data, "messages": strip_system_messages(chat_data["messages"])}

    if isinstance(chat_data, dict) and chat_data and all(
        str(k).isdigit() for k in chat_data
    ):
        ordered = [v for _, v in sorted(chat_data.items(), key=lambda kv: int(kv[0]))]
        return [m for m in ordered if not is_system(m)]

    return chat_data
