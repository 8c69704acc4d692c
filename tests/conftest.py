import os
import tempfile

# Settings are read at import time, so keep test runs off the real data dir and SMTP
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="curator-tests-"))
os.environ["LOG_TO_FILE"] = "false"
os.environ["EMAIL_ENABLED"] = "false"

import pytest
from tests.fakes import FakeSleep, make_article


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def article_factory():
    return make_article
