"""
Pytest configuration for recital-sync tests.

Test Tier System:
- fast (default): Pure unit tests against the in-memory backend
- medium: CLI runs and multi-service scenarios
- slow: Live PostgreSQL (needs RECITAL_TEST_DSN)

Run tiers:
- pytest                          # Fast + medium (default addopts skip slow)
- pytest -m fast                  # Fast only
- pytest -m slow                  # Slow only
- pytest --override-ini="addopts=" -v   # Full suite (all tiers)

Note: Unmarked tests are auto-assigned to 'fast' tier. Tests marked
@pytest.mark.integration (without tier) default to 'medium'.

Backend Safety:
- Fast/medium tests force the in-memory backend so a developer's .env
  never points a test run at a real database.
"""

import asyncio
import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from recital_sync.app import RecitalApp
from recital_sync.config import Settings
from recital_sync.db import InMemoryBackend

TEST_APP_ID = "test-app"
AUTHOR_TOKEN = "author-token"
AUTHOR_UID = "author-uid"


# =============================================================================
# Tier Auto-Assignment
# =============================================================================

def pytest_collection_modifyitems(config, items):
    """
    Automatically assign tier markers to unmarked tests.

    Tests are fast by default unless explicitly marked as medium or slow.
    """
    for item in items:
        has_tier = (
            list(item.iter_markers(name='fast')) or
            list(item.iter_markers(name='medium')) or
            list(item.iter_markers(name='slow'))
        )
        if has_tier:
            continue

        if list(item.iter_markers(name='skip')):
            continue

        if list(item.iter_markers(name='integration')):
            item.add_marker(pytest.mark.medium)
            continue

        item.add_marker(pytest.mark.fast)


def pytest_configure(config):
    """Pin fast/medium runs to the in-memory backend."""
    markexpr = getattr(config.option, 'markexpr', '') or ''
    includes_slow_tests = (
        not markexpr or
        (
            'slow' in markexpr and
            'not slow' not in markexpr
        )
    )
    if not includes_slow_tests:
        os.environ["RECITAL_BACKEND_CONFIG"] = '{"backend": "memory"}'
        os.environ.pop("RECITAL_AUTH_TOKEN", None)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings():
    """Settings for an isolated test namespace."""
    return Settings(app_id=TEST_APP_ID)


@pytest.fixture
def author_settings():
    """Settings carrying the author's bearer credential."""
    return Settings(app_id=TEST_APP_ID, auth_token=AUTHOR_TOKEN)


@pytest.fixture
def backend():
    """In-memory backend that accepts the author's credential."""
    return InMemoryBackend(tokens={AUTHOR_TOKEN: AUTHOR_UID})


@pytest_asyncio.fixture
async def app(backend, settings):
    """Bootstrapped app without sample content."""
    app = RecitalApp(backend, settings)
    await app.start(seed=False)
    yield app
    await app.close()


@pytest.fixture
def settle():
    """Let pending backend deliveries run (one simulated round trip)."""
    async def _settle(turns: int = 5):
        for _ in range(turns):
            await asyncio.sleep(0)
    return _settle
