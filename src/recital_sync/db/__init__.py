"""Document store backends."""

from ..config import Settings
from ..errors import ConfigError
from .backend import (
    SERVER_TIMESTAMP,
    DocumentBackend,
    StoredDocument,
    server_timestamp_fields,
    sort_documents,
)
from .memory import InMemoryBackend


def create_backend(settings: Settings) -> DocumentBackend:
    """Build the backend named by the settings' backend config blob."""
    name = settings.backend_name
    if name == "memory":
        return InMemoryBackend(
            tokens=settings.backend_config.get("tokens"),
            session_uid=settings.backend_config.get("session_uid"),
        )
    if name == "postgres":
        # Imported lazily so psycopg2 is only loaded when it is used
        from .postgres import PostgresBackend
        return PostgresBackend.from_config(settings.backend_config)
    raise ConfigError(f"Unknown backend: {name}")


__all__ = [
    "SERVER_TIMESTAMP",
    "DocumentBackend",
    "InMemoryBackend",
    "StoredDocument",
    "create_backend",
    "server_timestamp_fields",
    "sort_documents",
]
