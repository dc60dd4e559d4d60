"""
Pytest configuration for Scholaria tests.

Why: Force AnyIO to use the asyncio backend, and give every test a fresh
in-memory repository, an upload directory under `tmp_path` and a fixed token
secret so no test depends on a running MongoDB or on state left by another.
"""
import os
import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
REPO_ROOT = TESTS_DIR.parents[1]
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

# Import-time guards read the environment; keep them in dev mode.
os.environ.pop("SCHOLARIA_ENV", None)

from scholaria.identity_access.tokens import TokenConfig  # noqa: E402
from scholaria.teaching.repo_memory import InMemoryTeachingRepo  # noqa: E402
from scholaria.teaching.storage import LocalFileStorage  # noqa: E402
from scholaria.web import wiring  # noqa: E402

TEST_JWT_SECRET = "test-secret-not-for-production-use-0123456789"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _reset_wiring_between_tests(tmp_path):
    """Swap in a fresh in-memory repo, a temp upload dir and a test token secret."""
    repo = InMemoryTeachingRepo()
    wiring.set_repo(repo)
    wiring.set_storage_adapter(LocalFileStorage(tmp_path / "uploads"))
    wiring.set_token_config(TokenConfig(secret=TEST_JWT_SECRET, expire_minutes=60))
    yield repo


@pytest.fixture
def repo(_reset_wiring_between_tests):
    return _reset_wiring_between_tests


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"
