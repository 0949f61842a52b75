"""
Application Wiring

Builds the core from settings and runs the initialization phase:
identity bootstrap to ready, then sample-data seeding exactly once,
before the repository is handed to the presentation layer.
"""

import logging
from typing import Optional

from .config import Settings
from .db import DocumentBackend, create_backend
from .models import Identity, SeedOutcome
from .services import (
    ContentRepository,
    IdentityBootstrap,
    SeedProvisioner,
    SubscriptionRegistry,
)

logger = logging.getLogger(__name__)


class RecitalApp:
    """
    The content-synchronization core.

    Usage:
        async with RecitalApp.from_settings(Settings.from_env()) as app:
            async for stories in app.repository.stories.subscribe():
                ...
    """

    def __init__(self, backend: DocumentBackend, settings: Settings):
        self.settings = settings
        self.backend = backend
        self.auth = IdentityBootstrap(backend, settings)
        self.registry = SubscriptionRegistry(backend, self.auth, settings.app_id)
        self.repository = ContentRepository(
            backend, self.registry, self.auth, settings.app_id
        )
        self.seeder = SeedProvisioner(self.repository)
        self.seed_outcome: Optional[SeedOutcome] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RecitalApp":
        return cls(create_backend(settings), settings)

    @property
    def identity(self) -> Optional[Identity]:
        return self.auth.identity

    async def start(self, seed: bool = True, timeout: Optional[float] = None) -> Identity:
        """
        Bootstrap identity and, when asked, seed sample content.

        Returns:
            The resolved identity
        """
        identity = await self.auth.wait_ready(timeout)
        if seed:
            self.seed_outcome = await self.seeder.seed_if_absent(identity)
        logger.info(f"App {self.settings.app_id} started as {identity.id}")
        return identity

    async def close(self) -> None:
        self.registry.close_all()
        await self.backend.close()

    async def __aenter__(self) -> "RecitalApp":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
