"""Visitor session lifecycle: create, access (keep-alive + idle expiry), update, end.

Expiry is lazy: a session is only checked, and deleted when idle, at the
moment it is accessed. The check-then-delete is a conditional delete on the
timestamps that were read, so a concurrent refresh wins over a stale expiry.

Every operation returns a result object carrying an ``Outcome``; store
failures and timeouts are turned into ``Outcome.UNAVAILABLE`` here and never
propagate to the caller.
"""

from __future__ import annotations

import asyncio
import base64
import enum
import hashlib
import hmac
import json
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, TypeVar

from .config import Settings
from .formatting import format_millis, human_duration
from .store import (
    SERVER_TIMESTAMP,
    ConditionFailed,
    DocumentNotFound,
    DocumentStore,
    StoreError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SESSION_ID_LENGTH = 12
STATUS_ACTIVE = "active"
STATUS_ENDED = "ended"
DEFAULT_END_REASON = "ended"

_ACCESS_ATTEMPTS = 3
_PING_ID = "__ping__"
_NO_STORE = "Document store is not initialized."


class Outcome(str, enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    BAD_REQUEST = "bad_request"
    ENDED = "ended"
    UNAVAILABLE = "unavailable"


class Persistence(str, enum.Enum):
    """Whether the create write reached the store."""

    PERSISTED = "persisted"
    FAILED = "failed"
    NOT_ATTEMPTED = "not_attempted"


@dataclass(frozen=True)
class SessionConfig:
    """Fixed at process start and handed to the SessionStore."""

    idle_ms: int = 3_600_000
    secret: str = "change-me-in-production"
    store_timeout: float = 10.0

    @classmethod
    def from_settings(cls, s: Settings) -> SessionConfig:
        return cls(
            idle_ms=s.session_idle_ms,
            secret=s.session_id_secret,
            store_timeout=s.store_timeout_seconds,
        )


@dataclass
class Session:
    id: str
    payload: Any
    created_at: int
    updated_at: int
    last_accessed_at: int
    status: str = STATUS_ACTIVE
    ended_at: int | None = None
    end_reason: str | None = None

    @property
    def last_active(self) -> int:
        return max(self.updated_at or 0, self.last_accessed_at or 0)

    @property
    def is_ended(self) -> bool:
        return self.status == STATUS_ENDED

    @classmethod
    def from_doc(cls, session_id: str, doc: dict[str, Any]) -> Session:
        return cls(
            id=session_id,
            payload=_decode_payload(doc.get("payload")),
            created_at=int(doc.get("created_at") or 0),
            updated_at=int(doc.get("updated_at") or 0),
            last_accessed_at=int(doc.get("last_accessed_at") or 0),
            status=doc.get("status") or STATUS_ACTIVE,
            ended_at=doc.get("ended_at"),
            end_reason=doc.get("end_reason"),
        )

    def to_json(self, offset_minutes: int = 8 * 60) -> dict[str, Any]:
        return {
            "chatData": self.payload,
            "status": self.status,
            "createdAt": format_millis(self.created_at, offset_minutes),
            "updatedAt": format_millis(self.updated_at, offset_minutes),
            "lastAccessedAt": format_millis(self.last_accessed_at, offset_minutes),
            "endedAt": format_millis(self.ended_at, offset_minutes),
            "endReason": self.end_reason,
        }


@dataclass(frozen=True)
class Result:
    outcome: Outcome
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK


@dataclass(frozen=True)
class CreateResult(Result):
    session_id: str = ""
    payload: Any = None
    persistence: Persistence = Persistence.NOT_ATTEMPTED

    @property
    def persisted(self) -> bool:
        return self.persistence is Persistence.PERSISTED


@dataclass(frozen=True)
class AccessResult(Result):
    session: Session | None = None
    idle_ms: int | None = None


@dataclass(frozen=True)
class UpdateResult(Result):
    pass


@dataclass(frozen=True)
class EndResult(Result):
    session: Session | None = None
    already_ended: bool = False


@dataclass(frozen=True)
class ListResult(Result):
    sessions: list[Session] = field(default_factory=list)


def generate_session_id(
    secret: str, *, timestamp: int | None = None, nonce: str | None = None
) -> str:
    """Derive a short URL-safe id from a timestamp and a random nonce.

    Uniqueness comes from the nonce; the HMAC key only keeps ids opaque.
    """
    if timestamp is None:
        timestamp = time.time_ns()
    if nonce is None:
        nonce = secrets.token_hex(8)
    digest = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}:{nonce}".encode("utf-8"),
        hashlib.sha256,
    ).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")[:SESSION_ID_LENGTH]


def looks_like_json(value: Any) -> bool:
    return isinstance(value, str) and value.strip()[:1] in ("{", "[", '"')


def coerce_payload(value: Any) -> Any:
    """Parse JSON-looking strings; anything else is returned unchanged."""
    if looks_like_json(value):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def _decode_payload(raw: Any) -> Any:
    # Records written by older clients may hold plain, non-JSON text.
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _encode_payload(payload: Any) -> str:
    try:
        return json.dumps(payload)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Payload is not JSON-serializable: {e}") from e


class SessionStore:
    """Session operations over an injected DocumentStore.

    Holds no session state of its own; the store client is shared and
    owned by the application.
    """

    def __init__(
        self,
        store: DocumentStore | None,
        config: SessionConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config or SessionConfig()

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def has_store(self) -> bool:
        return self._store is not None

    async def _call(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._config.store_timeout)
        except asyncio.TimeoutError as e:
            raise StoreError(
                f"Document store did not respond within {self._config.store_timeout}s"
            ) from e

    async def ping(self) -> bool:
        if self._store is None:
            return False
        try:
            await self._call(self._store.get(_PING_ID))
        except StoreError as e:
            logger.error("Document store ping failed: %s", e)
            return False
        return True

    async def create(self, payload: Any = None) -> CreateResult:
        session_id = generate_session_id(self._config.secret)
        payload = coerce_payload(payload)

        try:
            encoded = _encode_payload(payload)
        except ValueError as e:
            return CreateResult(Outcome.BAD_REQUEST, error=str(e), session_id=session_id)

        if self._store is None:
            return CreateResult(
                Outcome.OK,
                error=_NO_STORE,
                session_id=session_id,
                payload=payload,
                persistence=Persistence.NOT_ATTEMPTED,
            )

        try:
            await self._call(
                self._store.set(
                    session_id,
                    {
                        "payload": encoded,
                        "created_at": SERVER_TIMESTAMP,
                        "updated_at": SERVER_TIMESTAMP,
                        "last_accessed_at": SERVER_TIMESTAMP,
                        "status": STATUS_ACTIVE,
                    },
                )
            )
        except StoreError as e:
            logger.error("Session write failed for %s: %s", session_id, e)
            return CreateResult(
                Outcome.OK,
                error=str(e),
                session_id=session_id,
                payload=payload,
                persistence=Persistence.FAILED,
            )

        return CreateResult(
            Outcome.OK,
            session_id=session_id,
            payload=payload,
            persistence=Persistence.PERSISTED,
        )

    async def access(self, session_id: str | None) -> AccessResult:
        """Read a session, expiring it if idle, otherwise refreshing its access time."""
        if not session_id:
            return AccessResult(Outcome.BAD_REQUEST, error="Missing session id")
        if self._store is None:
            return AccessResult(Outcome.UNAVAILABLE, error=_NO_STORE)

        try:
            for _ in range(_ACCESS_ATTEMPTS):
                result = await self._access_once(session_id)
                if result is not None:
                    return result
        except StoreError as e:
            logger.error("Session access failed for %s: %s", session_id, e)
            return AccessResult(Outcome.UNAVAILABLE, error=str(e))

        logger.error(
            "Session access for %s gave up after %d conflicting writes",
            session_id,
            _ACCESS_ATTEMPTS,
        )
        return AccessResult(
            Outcome.UNAVAILABLE, error="Session is being modified concurrently"
        )

    async def _access_once(self, session_id: str) -> AccessResult | None:
        # None means a concurrent write invalidated what was read.
        doc = await self._call(self._store.get(session_id))
        if doc is None:
            return AccessResult(Outcome.NOT_FOUND)

        session = Session.from_doc(session_id, doc)
        if session.is_ended:
            return AccessResult(Outcome.OK, session=session)

        last_active = session.last_active
        idle = max(0, self._store.now() - last_active)
        logger.debug(
            "Session %s timing: idle=%s limit=%s",
            session_id,
            human_duration(idle),
            human_duration(self._config.idle_ms),
        )

        if last_active and idle >= self._config.idle_ms:
            try:
                deleted = await self._call(
                    self._store.delete(
                        session_id,
                        expected={
                            "updated_at": doc.get("updated_at"),
                            "last_accessed_at": doc.get("last_accessed_at"),
                        },
                    )
                )
            except ConditionFailed:
                return None
            if not deleted:
                return AccessResult(Outcome.NOT_FOUND)
            return AccessResult(Outcome.EXPIRED, idle_ms=idle)

        try:
            refreshed = await self._call(
                self._store.update(
                    session_id,
                    {"last_accessed_at": SERVER_TIMESTAMP},
                    expected={"status": doc.get("status")},
                )
            )
        except DocumentNotFound:
            return AccessResult(Outcome.NOT_FOUND)
        except ConditionFailed:
            return None
        return AccessResult(
            Outcome.OK, session=Session.from_doc(session_id, refreshed), idle_ms=idle
        )

    async def update(self, session_id: str | None, payload: Any) -> UpdateResult:
        """Replace the payload. Does not count as visitor activity for expiry."""
        if not session_id or payload is None:
            return UpdateResult(
                Outcome.BAD_REQUEST, error="Missing required params: session and payload"
            )

        try:
            encoded = _encode_payload(coerce_payload(payload))
        except ValueError as e:
            return UpdateResult(Outcome.BAD_REQUEST, error=str(e))

        if self._store is None:
            return UpdateResult(Outcome.UNAVAILABLE, error=_NO_STORE)

        try:
            doc = await self._call(self._store.get(session_id))
            if doc is None:
                return UpdateResult(Outcome.NOT_FOUND)
            if doc.get("status") == STATUS_ENDED:
                return UpdateResult(Outcome.ENDED, error="Session has ended")
            await self._call(
                self._store.update(
                    session_id,
                    {"payload": encoded, "updated_at": SERVER_TIMESTAMP},
                    expected={"status": doc.get("status")},
                )
            )
        except DocumentNotFound:
            return UpdateResult(Outcome.NOT_FOUND)
        except ConditionFailed:
            # Only status is compared, so the session was ended meanwhile.
            return UpdateResult(Outcome.ENDED, error="Session has ended")
        except StoreError as e:
            logger.error("Session update failed for %s: %s", session_id, e)
            return UpdateResult(Outcome.UNAVAILABLE, error=str(e))
        return UpdateResult(Outcome.OK)

    async def end(
        self, session_id: str | None, reason: str = DEFAULT_END_REASON
    ) -> EndResult:
        """Mark a session as ended. Ending twice keeps the first end."""
        if not session_id:
            return EndResult(Outcome.BAD_REQUEST, error="Missing session id")
        if self._store is None:
            return EndResult(Outcome.UNAVAILABLE, error=_NO_STORE)

        try:
            doc = await self._call(self._store.get(session_id))
            if doc is None:
                return EndResult(Outcome.NOT_FOUND)
            if doc.get("status") != STATUS_ENDED:
                try:
                    doc = await self._call(
                        self._store.update(
                            session_id,
                            {
                                "status": STATUS_ENDED,
                                "ended_at": SERVER_TIMESTAMP,
                                "end_reason": reason or DEFAULT_END_REASON,
                            },
                            expected={"status": doc.get("status")},
                        )
                    )
                    return EndResult(Outcome.OK, session=Session.from_doc(session_id, doc))
                except ConditionFailed:
                    doc = await self._call(self._store.get(session_id))
                    if doc is None:
                        return EndResult(Outcome.NOT_FOUND)
        except DocumentNotFound:
            return EndResult(Outcome.NOT_FOUND)
        except StoreError as e:
            logger.error("Session end failed for %s: %s", session_id, e)
            return EndResult(Outcome.UNAVAILABLE, error=str(e))

        return EndResult(
            Outcome.OK, session=Session.from_doc(session_id, doc), already_ended=True
        )

    async def list(self, limit: int) -> ListResult:
        if self._store is None:
            return ListResult(Outcome.UNAVAILABLE, error=_NO_STORE)
        try:
            docs = await self._call(
                self._store.list(limit=max(1, limit), order_by="created_at")
            )
        except StoreError as e:
            logger.error("Session listing failed: %s", e)
            return ListResult(Outcome.UNAVAILABLE, error=str(e))
        return ListResult(
            Outcome.OK, sessions=[Session.from_doc(d["id"], d) for d in docs]
        )
