"""PostgreSQL connection helpers and schema management."""

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator

import psycopg2
from psycopg2.extras import RealDictCursor

DEFAULT_DSN = "postgresql://localhost:5432/recital"

# Timestamps are stored in JSON as ISO-8601 text; a fixed zone keeps
# their text order equal to their time order.
CONNECT_OPTIONS = "-c timezone=UTC"


def get_connection_string(backend_config: Dict[str, Any]) -> str:
    """Get database connection string from the backend config blob."""
    return backend_config.get("dsn") or DEFAULT_DSN


@contextmanager
def get_connection(dsn: str) -> Generator:
    """Get a database connection context manager."""
    conn = psycopg2.connect(dsn, cursor_factory=RealDictCursor, options=CONNECT_OPTIONS)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db(dsn: str) -> None:
    """Initialize database schema."""
    schema_path = Path(__file__).parent / "schema.sql"
    with open(schema_path) as f:
        schema_sql = f.read()

    with get_connection(dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(schema_sql)


def issue_token(dsn: str, token: str, uid: str) -> None:
    """Register a bearer credential for a (non-anonymous) user.

    Used to provision the story author's credential ahead of deployment.
    """
    with get_connection(dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO auth_users (uid, anonymous) VALUES (%s, FALSE)
                ON CONFLICT (uid) DO NOTHING
                """,
                (uid,),
            )
            cur.execute(
                """
                INSERT INTO auth_tokens (token, uid) VALUES (%s, %s)
                ON CONFLICT (token) DO UPDATE SET uid = EXCLUDED.uid
                """,
                (token, uid),
            )
