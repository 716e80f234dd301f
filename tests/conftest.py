import os
import secrets
import sys
from pathlib import Path
from typing import Any
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Cheap hashes and no log file for the test run; must be set before portal.config is imported
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_FILE"] = ""
os.environ.pop("RESET_WEBHOOK_URL", None)

# Ensure project root on sys.path so 'portal' resolves without an install
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from portal.main import app  # type: ignore
from portal.database import Base  # type: ignore
from portal.api import deps  # type: ignore
"""Pytest fixtures and factories.

Important: SQLAlchemy relationship configuration requires all model modules to be imported
before Base.metadata.create_all(), otherwise back_populates targets might not exist yet.
"""
from portal.models.db import User, Application  # noqa: E402
from portal.models.enums import ApplicationStatus, UserRole  # noqa: E402
from portal.utils.ratelimiter import rate_limiter  # noqa: E402
from portal.utils.security import create_access_token, hash_password  # noqa: E402
from portal.client.api import ApiError  # noqa: E402

DEFAULT_PASSWORD = "correct-horse-42"

# One shared in-memory connection; tables are rebuilt for every test
engine = create_engine(
    "sqlite+pysqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# The health check opens sessions itself rather than through get_db
import portal.database as _portal_database  # noqa: E402
_portal_database.SessionLocal = TestingSessionLocal  # type: ignore

# Override dependency
def _override_get_db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

app.dependency_overrides[deps.get_db] = _override_get_db

@pytest.fixture(autouse=True)
def _isolate_test_state():
    """Fresh tables and empty rate-limit buckets for every test."""
    Base.metadata.create_all(bind=engine)
    rate_limiter.reset()
    yield
    rate_limiter.reset()
    Base.metadata.drop_all(bind=engine)

@pytest.fixture()
def db_session(_isolate_test_state):
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture()
def client():
    return TestClient(app)

# ---------- Data factory helpers ----------

@pytest.fixture()
def user_factory(db_session):
    def _create(
        name: str = "Test User",
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
        role: UserRole = UserRole.USER,
        is_active: bool = True,
    ) -> User:
        if email is None:
            email = f"user_{secrets.token_hex(4)}@example.com"
        u = User(
            name=name,
            email=email.lower(),
            password_hash=hash_password(password),
            role=role,
            is_active=is_active,
        )
        db_session.add(u)
        db_session.commit()
        db_session.refresh(u)
        return u
    return _create

@pytest.fixture()
def application_factory(db_session):
    def _create(owner: User, title: str = "Research grant", status: ApplicationStatus = ApplicationStatus.SUBMITTED, details: dict | None = None) -> Application:
        a = Application(user_id=owner.id, title=title, details=details or {"motivation": "testing"}, status=status)
        db_session.add(a)
        db_session.commit()
        db_session.refresh(a)
        return a
    return _create

@pytest.fixture()
def password():
    return DEFAULT_PASSWORD

@pytest.fixture()
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return _headers

@pytest.fixture()
def user(user_factory):
    return user_factory(name="Regular User")

@pytest.fixture()
def admin(user_factory):
    return user_factory(name="Admin User", email=f"admin_{secrets.token_hex(4)}@example.com", role=UserRole.ADMIN)

@pytest.fixture()
def user_headers(user, auth_headers):
    return auth_headers(user)

@pytest.fixture()
def admin_headers(admin, auth_headers):
    return auth_headers(admin)

# ---------- Client-layer doubles ----------

class RecordingApi:
    """Stands in for ApiClient: records calls and replays canned results.

    ``responses`` maps ``(method, path)`` to a value to return or an exception
    to raise.
    """

    def __init__(self, responses: dict | None = None):
        self.responses: dict = responses or {}
        self.calls: list[dict] = []

    async def _call(self, method: str, path: str, json: Any = None, params: dict | None = None, headers: dict | None = None) -> Any:
        self.calls.append({"method": method, "path": path, "json": json, "params": params, "headers": headers})
        result = self.responses.get((method, path))
        if isinstance(result, BaseException):
            raise result
        if result is None:
            raise ApiError(404, {"success": False, "message": f"No canned response for {method} {path}"})
        return result

    async def get(self, path: str, params: dict | None = None, headers: dict | None = None) -> Any:
        return await self._call("GET", path, params=params, headers=headers)

    async def post(self, path: str, json: Any = None, params: dict | None = None, headers: dict | None = None) -> Any:
        return await self._call("POST", path, json=json, params=params, headers=headers)

    async def put(self, path: str, json: Any = None, params: dict | None = None, headers: dict | None = None) -> Any:
        return await self._call("PUT", path, json=json, params=params, headers=headers)

@pytest.fixture()
def recording_api():
    return RecordingApi()

class TestClientApi:
    """ApiClient-compatible adapter that sends requests through the ASGI TestClient."""

    __test__ = False

    def __init__(self, test_client: TestClient, storage: Any = None):
        self.test_client = test_client
        self.storage = storage

    async def _call(self, method: str, path: str, json: Any = None, params: dict | None = None, headers: dict | None = None) -> Any:
        headers = dict(headers or {})
        if "Authorization" not in headers and self.storage is not None and self.storage.get_item("token"):
            headers["Authorization"] = f"Bearer {self.storage.get_item('token')}"
        r = self.test_client.request(method, path, json=json, params=params, headers=headers)
        try:
            data = r.json()
        except ValueError:
            data = {"status": r.status_code, "error": r.text}
        if not 200 <= r.status_code < 300:
            raise ApiError(r.status_code, data)
        return data

    async def get(self, path: str, params: dict | None = None, headers: dict | None = None) -> Any:
        return await self._call("GET", path, params=params, headers=headers)

    async def post(self, path: str, json: Any = None, params: dict | None = None, headers: dict | None = None) -> Any:
        return await self._call("POST", path, json=json, params=params, headers=headers)

    async def put(self, path: str, json: Any = None, params: dict | None = None, headers: dict | None = None) -> Any:
        return await self._call("PUT", path, json=json, params=params, headers=headers)

@pytest.fixture()
def live_api(client):
    return TestClientApi(client)
