"""In-memory document backend for tests and local runs.

Stores documents per collection path in insertion order. Snapshots and
errors are handed to listeners through loop.call_soon, so every delivery
crosses one event-loop turn the way a network round trip would. Deliveries
already scheduled when a listener unsubscribes are still made; discarding
them is the subscriber's job.
"""

import asyncio
import copy
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..errors import AuthError, BackendError
from ..models import SortDirection
from .backend import (
    ErrorCallback,
    SERVER_TIMESTAMP,
    SnapshotCallback,
    StoredDocument,
    Unsubscribe,
    sort_documents,
)

logger = logging.getLogger(__name__)


class _Listener:
    """One live query registered with the in-memory backend."""

    def __init__(
        self,
        path: str,
        order_field: str,
        direction: SortDirection,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ):
        self.path = path
        self.order_field = order_field
        self.direction = direction
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True


class InMemoryBackend:
    """In-process document store implementing DocumentBackend.

    Failure injection flags let tests drive every error path:
    fail_token_sign_in, fail_anonymous_sign_in, fail_reads, fail_writes,
    fail_listens.
    """

    def __init__(
        self,
        tokens: Optional[Dict[str, str]] = None,
        session_uid: Optional[str] = None,
    ):
        """
        Args:
            tokens: Accepted bearer credentials mapped to their uid
            session_uid: uid of a session that is already signed in
        """
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.tokens: Dict[str, str] = dict(tokens or {})
        self.fail_token_sign_in = False
        self.fail_anonymous_sign_in = False
        self.fail_reads = False
        self.fail_writes = False
        self.fail_listens = False
        self.closed = False
        self._uid = session_uid
        self._listeners: List[_Listener] = []
        self._last_timestamp: Optional[datetime] = None

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    async def current_user(self) -> Optional[str]:
        return self._uid

    async def sign_in_with_token(self, token: str) -> str:
        if self.fail_token_sign_in:
            raise AuthError("token sign-in unavailable")
        uid = self.tokens.get(token)
        if uid is None:
            raise AuthError("invalid bearer credential")
        self._uid = uid
        return uid

    async def sign_in_anonymously(self) -> str:
        if self.fail_anonymous_sign_in:
            raise AuthError("anonymous sign-in disabled")
        self._uid = f"anon-{uuid4().hex[:16]}"
        return self._uid

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    async def get_document(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        if self.fail_reads:
            raise BackendError(f"read of {path}/{doc_id} rejected")
        data = self.collections.get(path, {}).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    async def set_document(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        if self.fail_writes:
            raise BackendError(f"write to {path} rejected")
        self.collections.setdefault(path, {})[doc_id] = self._resolve(data)
        self._notify(path)

    async def add_document(self, path: str, data: Dict[str, Any]) -> str:
        doc_id = uuid4().hex
        await self.set_document(path, doc_id, data)
        return doc_id

    def documents(self, path: str) -> List[StoredDocument]:
        """All documents of a collection in insertion order."""
        return [
            StoredDocument(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self.collections.get(path, {}).items()
        ]

    # -------------------------------------------------------------------------
    # Live queries
    # -------------------------------------------------------------------------

    def listen(
        self,
        path: str,
        order_field: str,
        direction: SortDirection,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Unsubscribe:
        loop = asyncio.get_running_loop()
        listener = _Listener(path, order_field, direction, on_snapshot, on_error)

        if self.fail_listens:
            loop.call_soon(on_error, BackendError(f"live query on {path} rejected"))
            listener.active = False
            return lambda: None

        self._listeners.append(listener)
        loop.call_soon(listener.on_snapshot, self._snapshot(listener))

        def unsubscribe() -> None:
            listener.active = False
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def break_listeners(self, path: str, error: Optional[BaseException] = None) -> int:
        """Fail every live query on a collection. Returns how many were failed."""
        loop = asyncio.get_running_loop()
        error = error or BackendError(f"channel for {path} lost")
        broken = [l for l in self._listeners if l.path == path]
        for listener in broken:
            listener.active = False
            self._listeners.remove(listener)
            loop.call_soon(listener.on_error, error)
        return len(broken)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def close(self) -> None:
        for listener in self._listeners:
            listener.active = False
        self._listeners.clear()
        self.closed = True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _now(self) -> datetime:
        """Strictly increasing UTC clock."""
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _resolve(self, data: Dict[str, Any]) -> Dict[str, Any]:
        stored = copy.deepcopy({k: v for k, v in data.items() if v is not SERVER_TIMESTAMP})
        for key, value in data.items():
            if value is SERVER_TIMESTAMP:
                stored[key] = self._now()
        return stored

    def _snapshot(self, listener: _Listener) -> List[StoredDocument]:
        return sort_documents(
            self.documents(listener.path), listener.order_field, listener.direction
        )

    def _notify(self, path: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        for listener in self._listeners:
            if listener.path == path:
                loop.call_soon(listener.on_snapshot, self._snapshot(listener))
        logger.debug(f"Notified listeners of {path}")
