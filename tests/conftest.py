import os
import tempfile

# Settings are read at import time, so point them somewhere disposable first
_tmp = tempfile.mkdtemp(prefix="theclubs-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_tmp, "test.db")
os.environ["LOG_FILE"] = os.path.join(_tmp, "test.log")
os.environ["JWT_SECRET"] = "test-secret"
os.environ["GEMINI_API_KEY"] = ""
os.environ["RESEND_API_KEY"] = ""

import pytest  # noqa: E402

import accounts  # noqa: E402
import workflow  # noqa: E402
from app import app as flask_app  # noqa: E402
from auth import issue_token  # noqa: E402
from store import TABLES, db  # noqa: E402


@pytest.fixture(autouse=True)
def clean_db():
    for table in TABLES:
        db.execute(f"DELETE FROM {table}")
    yield


@pytest.fixture()
def app():
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user():
    def _make(name="Student", email=None, role="student", password="Password123"):
        email = email or f"{name.lower().replace(' ', '.')}@uni.edu"
        return accounts.register_user(name, email, password, role)
    return _make


@pytest.fixture()
def auth_header():
    def _header(user_id):
        user = accounts.get_user(user_id)
        return {"Authorization": f"Bearer {issue_token(user)}"}
    return _header


@pytest.fixture()
def make_club():
    """Submit and approve a club so that ``head_id`` heads it."""
    def _make(head_id, name="Chess Club", **fields):
        request_id = workflow.submit_club_request(head_id, {"name": name, **fields})
        workflow.approve_club(request_id)
        return request_id
    return _make


@pytest.fixture()
def make_event():
    def _make(head_id, club_id, title="Open Night", date="2099-01-01T18:00"):
        request_id = workflow.submit_event_request(
            head_id, {"title": title, "date": date, "organizer_club": club_id, "venue": "Hall A"}
        )
        workflow.approve_event(request_id)
        return request_id
    return _make
