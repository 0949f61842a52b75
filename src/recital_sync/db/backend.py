"""Document backend protocol.

Defines the interface the services use to reach the remote document store:
session sign-in, direct reads, writes, and live ordered queries. The
in-memory backend is for tests and local runs; the PostgreSQL backend is
the deployed store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..models import SortDirection


class _ServerTimestamp:
    """Sentinel replaced by the backend clock at write time."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class StoredDocument:
    """One document as returned by a read or a snapshot."""

    id: str
    data: Dict[str, Any] = field(default_factory=dict)


SnapshotCallback = Callable[[List[StoredDocument]], None]
ErrorCallback = Callable[[BaseException], None]
Unsubscribe = Callable[[], None]


class DocumentBackend(Protocol):
    """Protocol for the remote document store.

    Services depend on this, not on any specific implementation.
    """

    async def current_user(self) -> Optional[str]:
        """uid of an already-authenticated session, or None."""
        ...

    async def sign_in_with_token(self, token: str) -> str:
        """Sign in with a bearer credential. Raises AuthError."""
        ...

    async def sign_in_anonymously(self) -> str:
        """Create an anonymous session. Raises AuthError."""
        ...

    async def get_document(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one document. Returns None when it does not exist."""
        ...

    async def set_document(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Write a document under a caller-chosen id, replacing any existing one."""
        ...

    async def add_document(self, path: str, data: Dict[str, Any]) -> str:
        """Write a document under a backend-generated id. Returns the id."""
        ...

    def listen(
        self,
        path: str,
        order_field: str,
        direction: SortDirection,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        """Open a live query.

        on_snapshot receives the full ordered document list after every
        change; on_error is called at most once and ends the query.
        """
        ...

    async def close(self) -> None:
        ...


def server_timestamp_fields(data: Dict[str, Any]) -> List[str]:
    """Names of fields holding SERVER_TIMESTAMP."""
    return [key for key, value in data.items() if value is SERVER_TIMESTAMP]


def sort_documents(
    docs: List[StoredDocument],
    order_field: str,
    direction: SortDirection,
) -> List[StoredDocument]:
    """Order documents by a field.

    A missing or null value counts as newer than any present one, so a
    write still waiting on its timestamp sorts first in a descending query
    and last in an ascending one. Ties keep their existing order.
    """
    def key(doc: StoredDocument):
        value = doc.data.get(order_field)
        if value is None:
            return (1, datetime.min)
        return (0, value)

    return sorted(docs, key=key, reverse=direction == SortDirection.DESC)
