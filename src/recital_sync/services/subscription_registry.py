"""
Subscription Registry

Opens and closes live queries and turns backend snapshot callbacks into
cancellable streams. Each snapshot is the full ordered result of the
query, never a diff.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional, Set

from ..config import collection_path
from ..db import DocumentBackend, StoredDocument
from ..errors import BackendError, RecitalSyncError, SubscriptionError
from ..models import SortDirection
from .identity_service import IdentityBootstrap

logger = logging.getLogger(__name__)

Transform = Callable[[List[StoredDocument]], List[Any]]

# Queue marker for "no more snapshots"
_CLOSED = object()


class SubscriptionClosed(RecitalSyncError):
    """Raised by Subscription.get() once the subscription has ended."""

    pass


class Subscription:
    """
    Handle for one live query.

    Snapshots are queued in the order the backend emits them. After
    cancel(), queued snapshots are dropped and late deliveries from the
    backend are discarded, so nothing more is ever returned. A backend
    error ends the stream with a single SubscriptionError.

    Usage:
        async with registry.subscribe("stories") as sub:
            async for stories in sub:
                render(stories)
    """

    def __init__(
        self,
        registry: "SubscriptionRegistry",
        collection: str,
        order_field: str,
        direction: SortDirection,
        transform: Optional[Transform] = None,
    ):
        self.registry = registry
        self.collection = collection
        self.order_field = order_field
        self.direction = direction
        self.transform = transform
        self.latest: Optional[List[Any]] = None
        self.delivered = 0
        self.discarded = 0
        self._queue: asyncio.Queue = asyncio.Queue()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._cancelled = False
        self._finished = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def finished(self) -> bool:
        """True once cancelled or ended by an error."""
        return self._cancelled or self._finished

    # -------------------------------------------------------------------------
    # Consumer side
    # -------------------------------------------------------------------------

    async def get(self, timeout: Optional[float] = None) -> List[Any]:
        """
        Wait for the next snapshot.

        Args:
            timeout: Seconds to wait; None waits indefinitely

        Raises:
            SubscriptionError: The live query failed (raised once)
            SubscriptionClosed: The subscription was cancelled or has ended
            asyncio.TimeoutError: No snapshot arrived within timeout
        """
        if self._cancelled:
            raise SubscriptionClosed(f"subscription to {self.collection} is cancelled")

        if timeout is None:
            item = await self._queue.get()
        else:
            item = await asyncio.wait_for(self._queue.get(), timeout)

        if item is _CLOSED or self._cancelled:
            self._queue.put_nowait(_CLOSED)
            raise SubscriptionClosed(f"subscription to {self.collection} has ended")
        if isinstance(item, SubscriptionError):
            raise item
        return item

    def __aiter__(self):
        return self

    async def __anext__(self) -> List[Any]:
        try:
            return await self.get()
        except SubscriptionClosed:
            raise StopAsyncIteration

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.cancel()

    def cancel(self) -> None:
        """Stop the live query. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)
        self._detach()
        logger.debug(f"Cancelled subscription to {self.collection}")

    # -------------------------------------------------------------------------
    # Backend side
    # -------------------------------------------------------------------------

    def _attach(self, unsubscribe: Callable[[], None]) -> None:
        self._unsubscribe = unsubscribe
        if self.finished:
            self._detach()

    def _detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.registry._release(self)

    def _on_snapshot(self, docs: List[StoredDocument]) -> None:
        if self.finished:
            self.discarded += 1
            logger.debug(f"Discarded late snapshot for {self.collection}")
            return
        try:
            items = self.transform(docs) if self.transform else list(docs)
        except Exception as e:
            # Malformed stored record or a failing transform
            self._on_error(e)
            return
        self.latest = items
        self.delivered += 1
        self._queue.put_nowait(items)

    def _on_error(self, error: BaseException) -> None:
        if self.finished:
            return
        self._finished = True
        logger.error(f"Live query on {self.collection} failed: {error}")
        self._queue.put_nowait(SubscriptionError(self.collection, error))
        self._queue.put_nowait(_CLOSED)
        self._detach()


class SubscriptionRegistry:
    """Opens live queries against the content collections."""

    def __init__(self, backend: DocumentBackend, auth: IdentityBootstrap, app_id: str):
        self.backend = backend
        self.auth = auth
        self.app_id = app_id
        self._active: Set[Subscription] = set()

    @property
    def active_count(self) -> int:
        return len(self._active)

    def subscribe(
        self,
        collection: str,
        order_field: str = "createdAt",
        direction: SortDirection = SortDirection.DESC,
        transform: Optional[Transform] = None,
    ) -> Subscription:
        """
        Open one live query.

        Raises:
            NotReadyError: Identity bootstrap has not completed
        """
        self.auth.require_ready()
        path = collection_path(self.app_id, collection)
        subscription = Subscription(self, collection, order_field, direction, transform)
        self._active.add(subscription)

        try:
            unsubscribe = self.backend.listen(
                path,
                order_field,
                direction,
                subscription._on_snapshot,
                subscription._on_error,
            )
        except BackendError as e:
            subscription._on_error(e)
            return subscription

        subscription._attach(unsubscribe)
        logger.debug(f"Subscribed to {path} ordered by {order_field} {direction.value}")
        return subscription

    def close_all(self) -> None:
        """Cancel every open subscription."""
        for subscription in list(self._active):
            subscription.cancel()

    def _release(self, subscription: Subscription) -> None:
        self._active.discard(subscription)
