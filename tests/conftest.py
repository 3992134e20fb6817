"""Test configuration for the library API.

The environment is prepared before anything under ``src`` is imported, so the
configuration loaded from config.yaml points at an in-memory database and a
throwaway upload directory.
"""

import os
import tempfile

_TEST_ROOT = tempfile.mkdtemp(prefix="library-tests-")

os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SESSION_SIGNING_SECRET", "test-session-secret")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TEST_ROOT, "uploads"))
os.environ.setdefault("LOG_FILE", os.path.join(_TEST_ROOT, "app.log"))
os.environ.setdefault("LOG_LEVEL", "WARNING")

from tests.fixtures import *  # noqa: E402,F401,F403
