import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app


@pytest.fixture
def app():
    application = create_app({
        "TESTING": True,
        "DEFAULT_EVENT": "Community Event",
        "SMTP": {"SMTP_HOST": None, "SMTP_PORT": 587, "SMTP_USER": None,
                 "SMTP_PASS": None, "FROM_EMAIL": "no-reply@example.com"},
    })
    yield application


@pytest.fixture
def client(app):
    return app.test_client()
