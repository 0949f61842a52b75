"""
PostgreSQL Document Backend

Documents are JSONB rows in one table keyed by (collection path, id). A
trigger publishes each write's collection path on a NOTIFY channel; one
autocommit connection LISTENs on it and is watched by the event loop.
Live queries re-run their ordered SELECT when their collection changes.

psycopg2 is blocking, so every statement runs through asyncio.to_thread.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional
from uuid import uuid4

import psycopg2
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT

from ..errors import AuthError, BackendError
from ..models import SortDirection
from .backend import (
    ErrorCallback,
    SnapshotCallback,
    StoredDocument,
    Unsubscribe,
    server_timestamp_fields,
)
from .connection import CONNECT_OPTIONS, get_connection, get_connection_string

logger = logging.getLogger(__name__)

NOTIFY_CHANNEL = "recital_documents"

UPSERT_SQL = """
    INSERT INTO documents (collection, id, data)
    VALUES (
        %s, %s,
        %s::jsonb || COALESCE(
            (SELECT jsonb_object_agg(k, to_jsonb(clock_timestamp()))
             FROM unnest(%s::text[]) AS k),
            '{}'::jsonb
        )
    )
    ON CONFLICT (collection, id) DO UPDATE SET
        data = EXCLUDED.data,
        written_at = clock_timestamp()
"""


class _LiveQuery:
    """A live ordered query over one collection.

    Refreshes are serialized: at most one SELECT is in flight, and changes
    that arrive meanwhile collapse into a single follow-up SELECT. Snapshots
    therefore reach the callback in the order the store produced them.
    """

    def __init__(
        self,
        backend: "PostgresBackend",
        path: str,
        order_field: str,
        direction: SortDirection,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ):
        self.backend = backend
        self.path = path
        self.order_field = order_field
        self.direction = direction
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True
        self._dirty = False
        self._task: Optional[asyncio.Task] = None

    def refresh(self) -> None:
        if not self.active:
            return
        self._dirty = True
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._run())

    def fail(self, error: BaseException) -> None:
        if not self.active:
            return
        self.stop()
        self.on_error(error)

    def stop(self) -> None:
        self.active = False
        self.backend._forget(self)

    async def _run(self) -> None:
        while self._dirty and self.active:
            self._dirty = False
            try:
                docs = await asyncio.to_thread(
                    self.backend._select, self.path, self.order_field, self.direction
                )
            except psycopg2.Error as e:
                logger.error(f"Live query on {self.path} failed: {e}")
                self.fail(BackendError(str(e)))
                return
            if self.active:
                self.on_snapshot(docs)


class PostgresBackend:
    """DocumentBackend over PostgreSQL with LISTEN/NOTIFY change delivery."""

    def __init__(self, dsn: str, session_uid: Optional[str] = None):
        """
        Args:
            dsn: libpq connection string
            session_uid: uid of a session that is already signed in
        """
        self.dsn = dsn
        self._uid = session_uid
        self._queries: List[_LiveQuery] = []
        self._listen_conn = None
        self._listen_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @classmethod
    def from_config(cls, backend_config: Dict[str, Any]) -> "PostgresBackend":
        return cls(
            dsn=get_connection_string(backend_config),
            session_uid=backend_config.get("session_uid"),
        )

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    async def current_user(self) -> Optional[str]:
        return self._uid

    async def sign_in_with_token(self, token: str) -> str:
        try:
            uid = await asyncio.to_thread(self._lookup_token, token)
        except psycopg2.Error as e:
            raise AuthError(f"token sign-in failed: {e}") from e
        if uid is None:
            raise AuthError("invalid bearer credential")
        self._uid = uid
        return uid

    async def sign_in_anonymously(self) -> str:
        uid = f"anon-{uuid4().hex[:16]}"
        try:
            await asyncio.to_thread(self._insert_anonymous_user, uid)
        except psycopg2.Error as e:
            raise AuthError(f"anonymous sign-in failed: {e}") from e
        self._uid = uid
        return uid

    def _lookup_token(self, token: str) -> Optional[str]:
        with get_connection(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT uid FROM auth_tokens WHERE token = %s", (token,))
                row = cur.fetchone()
                return row["uid"] if row else None

    def _insert_anonymous_user(self, uid: str) -> None:
        with get_connection(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO auth_users (uid, anonymous) VALUES (%s, TRUE)",
                    (uid,),
                )

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    async def get_document(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(self._select_one, path, doc_id)
        except psycopg2.Error as e:
            raise BackendError(f"read of {path}/{doc_id} failed: {e}") from e

    async def set_document(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self._upsert, path, doc_id, data)
        except psycopg2.Error as e:
            raise BackendError(f"write to {path} failed: {e}") from e

    async def add_document(self, path: str, data: Dict[str, Any]) -> str:
        doc_id = uuid4().hex
        await self.set_document(path, doc_id, data)
        return doc_id

    def _select_one(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with get_connection(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "SELECT data FROM documents WHERE collection = %s AND id = %s",
                    (path, doc_id),
                )
                row = cur.fetchone()
                return row["data"] if row else None

    def _upsert(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        stamped = server_timestamp_fields(data)
        payload = {k: v for k, v in data.items() if k not in stamped}
        with get_connection(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    UPSERT_SQL,
                    (path, doc_id, json.dumps(payload, default=str), stamped),
                )

    def _select(
        self, path: str, order_field: str, direction: SortDirection
    ) -> List[StoredDocument]:
        # Direction comes from the enum, never from user text
        order = "DESC" if direction == SortDirection.DESC else "ASC"
        with get_connection(self.dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT id, data FROM documents
                    WHERE collection = %s
                    ORDER BY data->>%s {order}
                    """,
                    (path, order_field),
                )
                return [StoredDocument(id=row["id"], data=row["data"]) for row in cur.fetchall()]

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
        self._loop = asyncio.get_running_loop()
        query = _LiveQuery(self, path, order_field, direction, on_snapshot, on_error)
        self._queries.append(query)

        if self._listen_conn is None and (self._listen_task is None or self._listen_task.done()):
            self._listen_task = self._loop.create_task(self._open_listener())
        query.refresh()
        return query.stop

    async def _open_listener(self) -> None:
        try:
            conn = await asyncio.to_thread(self._connect_listener)
        except psycopg2.Error as e:
            logger.error(f"Could not open notification channel: {e}")
            for query in list(self._queries):
                query.fail(BackendError(f"notification channel unavailable: {e}"))
            return

        self._listen_conn = conn
        self._loop.add_reader(conn, self._drain_notifications)
        logger.info(f"Listening on {NOTIFY_CHANNEL}")
        # Catch writes that landed between the first SELECT and LISTEN
        for query in list(self._queries):
            query.refresh()

    def _connect_listener(self):
        conn = psycopg2.connect(self.dsn, options=CONNECT_OPTIONS)
        conn.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
        with conn.cursor() as cur:
            cur.execute(f"LISTEN {NOTIFY_CHANNEL}")
        return conn

    def _drain_notifications(self) -> None:
        conn = self._listen_conn
        try:
            conn.poll()
        except psycopg2.Error as e:
            logger.error(f"Notification channel lost: {e}")
            self._close_listener()
            for query in list(self._queries):
                query.fail(BackendError(f"notification channel lost: {e}"))
            return

        changed = set()
        while conn.notifies:
            changed.add(conn.notifies.pop(0).payload)
        for query in list(self._queries):
            if query.path in changed:
                query.refresh()

    def _forget(self, query: _LiveQuery) -> None:
        if query in self._queries:
            self._queries.remove(query)

    def _close_listener(self) -> None:
        if self._listen_conn is not None:
            if self._loop is not None:
                self._loop.remove_reader(self._listen_conn)
            self._listen_conn.close()
            self._listen_conn = None

    async def close(self) -> None:
        for query in list(self._queries):
            query.stop()
        if self._listen_task is not None and not self._listen_task.done():
            self._listen_task.cancel()
        self._close_listener()
