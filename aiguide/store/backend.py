"""Document store backends."""

from __future__ import annotations

import copy
import time
from typing import Any, Callable, Protocol, runtime_checkable


class _ServerTimestamp:
    """Sentinel replaced by the store's clock when a document is written."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class StoreError(Exception):
    """The document store failed or is unreachable."""


class DocumentNotFound(StoreError):
    """A partial update addressed a document that does not exist."""


class ConditionFailed(StoreError):
    """The document exists but did not match the expected field values."""


def now_millis() -> int:
    return int(time.time() * 1000)


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for the session document store."""

    def now(self) -> int:
        """Current time on the store's clock, in epoch milliseconds."""
        ...

    async def get(self, doc_id: str) -> dict[str, Any] | None:
        """Load a document by ID. Returns None if absent."""
        ...

    async def set(self, doc_id: str, fields: dict[str, Any]) -> None:
        """Create or overwrite a document."""
        ...

    async def update(
        self,
        doc_id: str,
        fields: dict[str, Any],
        *,
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Merge fields into an existing document and return the result.

        Raises DocumentNotFound if absent, ConditionFailed if ``expected``
        does not match.
        """
        ...

    async def delete(
        self, doc_id: str, *, expected: dict[str, Any] | None = None
    ) -> bool:
        """Delete a document. Returns True if a document was removed.

        An absent document is not an error. Raises ConditionFailed if the
        document exists but does not match ``expected``.
        """
        ...

    async def list(self, *, limit: int, order_by: str) -> list[dict[str, Any]]:
        """Return up to ``limit`` documents ordered by ``order_by`` ascending."""
        ...


class InMemoryDocumentStore:
    """In-memory document store for development/testing.

    Not suitable for production: documents are lost on restart and not
    shared across processes. No operation awaits, so each one is atomic
    with respect to other coroutines.
    """

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._docs: dict[str, dict[str, Any]] = {}
        self._clock = clock or now_millis

    def now(self) -> int:
        return self._clock()

    def _resolve(self, fields: dict[str, Any]) -> dict[str, Any]:
        now = self.now()
        return {
            k: (now if v is SERVER_TIMESTAMP else copy.deepcopy(v))
            for k, v in fields.items()
        }

    def _matches(self, doc: dict[str, Any], expected: dict[str, Any] | None) -> bool:
        if not expected:
            return True
        return all(doc.get(k) == v for k, v in expected.items())

    async def get(self, doc_id: str) -> dict[str, Any] | None:
        doc = self._docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def set(self, doc_id: str, fields: dict[str, Any]) -> None:
        self._docs[doc_id] = self._resolve(fields)

    async def update(
        self,
        doc_id: str,
        fields: dict[str, Any],
        *,
        expected: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        doc = self._docs.get(doc_id)
        if doc is None:
            raise DocumentNotFound(doc_id)
        if not self._matches(doc, expected):
            raise ConditionFailed(doc_id)
        doc.update(self._resolve(fields))
        return copy.deepcopy(doc)

    async def delete(
        self, doc_id: str, *, expected: dict[str, Any] | None = None
    ) -> bool:
        doc = self._docs.get(doc_id)
        if doc is None:
            return False
        if not self._matches(doc, expected):
            raise ConditionFailed(doc_id)
        del self._docs[doc_id]
        return True

    async def list(self, *, limit: int, order_by: str) -> list[dict[str, Any]]:
        docs = sorted(
            ({"id": k, **v} for k, v in self._docs.items()),
            key=lambda d: d.get(order_by) or 0,
        )
        return copy.deepcopy(docs[:limit])
