"""
Runtime Configuration

Settings are read from the hosting environment once at process start and
then passed explicitly to every component. Nothing below this module reads
os.environ directly.
"""

import json
import os
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .errors import ConfigError

DEFAULT_APP_ID = "default-app-id"

# Environment variable names
ENV_BACKEND_CONFIG = "RECITAL_BACKEND_CONFIG"
ENV_APP_ID = "RECITAL_APP_ID"
ENV_AUTH_TOKEN = "RECITAL_AUTH_TOKEN"
ENV_LOG_LEVEL = "RECITAL_LOG_LEVEL"

# Logical collection names under artifacts/{appId}/public/data/
STORIES = "stories"
COMMENTS = "comments"
FEEDBACK = "feedback"
COLLECTIONS = (STORIES, COMMENTS, FEEDBACK)


def collection_path(app_id: str, name: str) -> str:
    """Namespace-scoped path for one of the content collections."""
    if name not in COLLECTIONS:
        raise ValueError(f"Unknown collection: {name}")
    return f"artifacts/{app_id}/public/data/{name}"


class Settings(BaseModel):
    """Process-wide settings, constructed once and injected."""

    backend_config: Dict[str, Any] = Field(
        default_factory=lambda: {"backend": "memory"},
        description="Backend connection blob, e.g. {'backend': 'postgres', 'dsn': ...}",
    )
    app_id: str = DEFAULT_APP_ID
    auth_token: Optional[str] = None
    log_level: str = "INFO"

    @property
    def backend_name(self) -> str:
        return str(self.backend_config.get("backend", "memory")).lower()

    def path_for(self, name: str) -> str:
        return collection_path(self.app_id, name)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
    ) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)
            dotenv: Load a .env file into os.environ first

        Raises:
            ConfigError: If the backend config blob is not a JSON object
        """
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        raw_config = environ.get(ENV_BACKEND_CONFIG)
        backend_config: Dict[str, Any] = {"backend": "memory"}
        if raw_config:
            try:
                backend_config = json.loads(raw_config)
            except json.JSONDecodeError as e:
                raise ConfigError(f"{ENV_BACKEND_CONFIG} is not valid JSON: {e}") from e
            if not isinstance(backend_config, dict):
                raise ConfigError(f"{ENV_BACKEND_CONFIG} must be a JSON object")

        return cls(
            backend_config=backend_config,
            app_id=environ.get(ENV_APP_ID) or DEFAULT_APP_ID,
            auth_token=environ.get(ENV_AUTH_TOKEN) or None,
            log_level=environ.get(ENV_LOG_LEVEL, "INFO").upper(),
        )
