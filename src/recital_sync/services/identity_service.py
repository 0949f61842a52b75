"""
Identity Service

Establishes the backend session and resolves the caller identity that
authored content is attributed to.
"""

import asyncio
import logging
from typing import AsyncIterator, List, Optional
from uuid import uuid4

from ..config import Settings
from ..db import DocumentBackend
from ..errors import BackendError, NotReadyError
from ..models import AuthState, Identity, IdentitySource

logger = logging.getLogger(__name__)


class IdentityBootstrap:
    """
    Resolves the caller identity once per process.

    Resolution order:
    1. An already-authenticated backend session is reused.
    2. The bearer credential from settings, when one is configured.
    3. Anonymous sign-in.
    4. A locally generated id (degraded mode, nothing persisted).

    Sign-in failures are logged and fall through to the next step; they
    are never raised. The readiness stream publishes exactly one
    ready=True event, and identity only ever moves from None to a value.
    """

    def __init__(self, backend: DocumentBackend, settings: Settings):
        self.backend = backend
        self.auth_token = settings.auth_token
        self._state = AuthState()
        self._watchers: List[asyncio.Queue] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state.ready

    @property
    def identity(self) -> Optional[Identity]:
        return self._state.identity

    async def start(self) -> AuthState:
        """Run bootstrap. Repeat calls await the first run."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._resolve())
        # Callers may time out or be cancelled; the resolution keeps running
        return await asyncio.shield(self._task)

    async def wait_ready(self, timeout: Optional[float] = None) -> Identity:
        """Start bootstrap if needed and return the resolved identity."""
        await asyncio.wait_for(self.start(), timeout)
        return self.require_ready()

    def require_ready(self) -> Identity:
        """Return the identity, or raise NotReadyError before bootstrap completes."""
        if not self._state.ready or self._state.identity is None:
            raise NotReadyError("identity bootstrap has not completed")
        return self._state.identity

    async def watch(self) -> AsyncIterator[AuthState]:
        """Yield the current state, then each change, ending after ready."""
        queue: asyncio.Queue = asyncio.Queue()
        self._watchers.append(queue)
        try:
            state = self._state
            yield state
            while not state.ready:
                state = await queue.get()
                yield state
        finally:
            self._watchers.remove(queue)

    async def _resolve(self) -> AuthState:
        identity = await self._sign_in()
        self._publish(AuthState(identity=identity, ready=True))
        logger.info(
            f"Identity ready: {identity.id} (source={identity.source.value})"
        )
        return self._state

    async def _sign_in(self) -> Identity:
        try:
            uid = await self.backend.current_user()
        except BackendError as e:
            logger.warning(f"Could not read existing session: {e}")
            uid = None
        if uid:
            return Identity(id=uid, source=IdentitySource.SESSION)

        if self.auth_token:
            try:
                uid = await self.backend.sign_in_with_token(self.auth_token)
                return Identity(id=uid, source=IdentitySource.TOKEN)
            except BackendError as e:
                logger.warning(f"Token sign-in failed, trying anonymous: {e}")

        try:
            uid = await self.backend.sign_in_anonymously()
            return Identity(id=uid, source=IdentitySource.ANONYMOUS)
        except BackendError as e:
            logger.warning(f"Anonymous sign-in failed: {e}")

        uid = str(uuid4())
        logger.warning(f"Using local identity {uid}; authored content will not be tied to a session")
        return Identity(id=uid, source=IdentitySource.LOCAL)

    def _publish(self, state: AuthState) -> None:
        if self._state.ready:
            return
        if self._state.identity is not None and state.identity is None:
            return
        self._state = state
        for queue in self._watchers:
            queue.put_nowait(state)
