# tests/conftest.py
import os
import tempfile

import pytest
from fastapi.testclient import TestClient

# Must be set before anything imports app.core.config / app.db.session.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="calendar-tests-")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault(
    "DB_URL",
    f"sqlite+aiosqlite:///{os.path.join(_TEST_DB_DIR, 'test_calendar.db')}",
)

from app.main import create_app  # noqa: E402


@pytest.fixture(scope="session")
def client() -> TestClient:
    """
    Shared TestClient fixture for all API tests.

    Entering the client runs the startup hook, which creates the schema
    in the temporary SQLite database.
    """
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
