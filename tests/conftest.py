import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="caregiver-card-tests-")

# settings are read at import time
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_TMP_DIR, 'test.sqlite')}")
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("APP_USER_ID", "tester")
os.environ.setdefault("APP_PASSWORD", "secret-pass")
os.environ.setdefault("RATE_LIMIT_REQUESTS", "1000")
os.environ.setdefault("AUDIT_LOG_ENABLED", "false")
os.environ.setdefault("PUBLIC_BASE_URL", "https://card.example.org")

import pytest  # noqa: E402


@pytest.fixture
def tmp_db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'reports.sqlite'}"
