# backend/tests/conftest.py
"""
Pytest configuration for Cat Facts backend tests.

- Ensures that the project root (backend/) is added to sys.path
  so that `import catfacts.*` works correctly in tests.
- Ensures environment variables for tests are set with safe dummy values
  (the mail backend is the logging transport, so nothing is ever sent).
- Provides a fresh sqlite-backed StoreAccessor per test.
"""

import os
import sqlite3
import sys
from pathlib import Path

import pytest


def _ensure_project_root_in_sys_path() -> None:
    # This file is located at: backend/tests/conftest.py
    # parents[1] -> backend/
    project_root = Path(__file__).resolve().parents[1]
    project_root_str = str(project_root)

    if project_root_str not in sys.path:
        # Insert at the beginning so it has priority over site-packages, etc.
        sys.path.insert(0, project_root_str)


def _ensure_test_env_vars() -> None:
    """
    Set dummy environment variables required for tests.

    These values are only for local testing and do NOT contain real secrets.
    """
    os.environ.setdefault("MAIL_BACKEND", "log")
    os.environ.setdefault("MAIL_FROM", "catfacts@example.com")


_ensure_project_root_in_sys_path()
_ensure_test_env_vars()

from catfacts.automation import state as automation_state  # noqa: E402
from catfacts.notifications import factory as notifications_factory  # noqa: E402
from catfacts.store import state as store_state  # noqa: E402
from catfacts.store.accessor import StoreAccessor  # noqa: E402
from catfacts.store.schema import init_schema  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_shared_state():
    yield
    store_state.reset_state()
    automation_state.reset_state()
    notifications_factory.reset_state()


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / "catfacts.db"


@pytest.fixture
def store(db_path):
    connection = sqlite3.connect(str(db_path), check_same_thread=False)
    accessor = StoreAccessor(connection, gate_timeout=5.0)
    init_schema(accessor)
    yield accessor
    accessor.close()
