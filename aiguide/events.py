"""Structured session lifecycle events.

Events are logged to the ``session_events`` logger as JSON, one line per
event. Consumers attach their own handlers (CloudWatch JSON formatter,
Firehose, etc.).

Usage in route handlers::

    from .. import events
    events.session_event(
        activity_id=events.Activity.EXPIRE,
        status_id=events.Status.SUCCESS,
        severity_id=events.Severity.LOW,
        session_id="abc123",
        message="Session expired after 1h 0m idle",
    )
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

logger = logging.getLogger("session_events")


class EventClass:
    SESSION_ACTIVITY = 6001


class Activity:
    CREATE = 1
    ACCESS = 2
    UPDATE = 3
    EXPIRE = 4
    END = 5
    LIST = 6


class Status:
    SUCCESS = 1
    FAILURE = 2


class Severity:
    INFORMATIONAL = 1
    LOW = 2
    MEDIUM = 3
    HIGH = 4


_ACTIVITY_NAMES = {
    Activity.CREATE: "Create",
    Activity.ACCESS: "Access",
    Activity.UPDATE: "Update",
    Activity.EXPIRE: "Expire",
    Activity.END: "End",
    Activity.LIST: "List",
}

_SEVERITY_NAMES = {
    Severity.INFORMATIONAL: "Informational",
    Severity.LOW: "Low",
    Severity.MEDIUM: "Medium",
    Severity.HIGH: "High",
}

_PRODUCT = {
    "name": "aiguide-sessions",
    "version": "0.1.0",
    "vendor_name": "AI Guide",
}


def emit(event: dict[str, Any]) -> None:
    """Log an event as JSON.  Never raises."""
    try:
        logger.info(json.dumps(event, default=str))
    except Exception:
        pass


def session_event(
    *,
    activity_id: int,
    status_id: int,
    severity_id: int = Severity.INFORMATIONAL,
    session_id: str | None = None,
    message: str = "",
    extra_metadata: dict[str, Any] | None = None,
) -> None:
    event: dict[str, Any] = {
        "class_uid": EventClass.SESSION_ACTIVITY,
        "class_name": "Session Activity",
        "activity_id": activity_id,
        "activity_name": _ACTIVITY_NAMES.get(activity_id, "Other"),
        "severity_id": severity_id,
        "severity": _SEVERITY_NAMES.get(severity_id, "Unknown"),
        "status_id": status_id,
        "status": "Success" if status_id == Status.SUCCESS else "Failure",
        "time": int(time.time() * 1000),
        "metadata": {
            "product": _PRODUCT,
            **(extra_metadata or {}),
        },
        "message": message,
    }
    if session_id:
        event["session"] = {"uid": session_id}
    emit(event)
