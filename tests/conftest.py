"""
Shared test fixtures for ProjectFlow.
Each test gets its own temporary storage directory and an in-memory fake
of the Supabase client. Zero network calls.
"""
import itertools
from types import SimpleNamespace

import pytest
from supabase import AuthError

from projectflow.storage import LocalStorage
from projectflow.project_store import ProjectStore
from projectflow.identity import IdentityProvider


class FakeAuthError(AuthError):
    """AuthError with a stable constructor across supabase versions."""

    def __init__(self, message, code=None):
        Exception.__init__(self, message)
        self.message = message
        self.code = code


class FakeQuery:
    def __init__(self, rows):
        self.rows = rows
        self._filters = []
        self._limit = None
        self._insert = None

    def select(self, *columns):
        return self

    def eq(self, column, value):
        self._filters.append((column, value))
        return self

    def limit(self, n):
        self._limit = n
        return self

    def insert(self, row):
        self._insert = dict(row)
        return self

    def execute(self):
        if self._insert is not None:
            self.rows.append(self._insert)
            return SimpleNamespace(data=[self._insert])
        data = [r for r in self.rows if all(r.get(c) == v for c, v in self._filters)]
        if self._limit is not None:
            data = data[:self._limit]
        return SimpleNamespace(data=[dict(r) for r in data])


class FakeAuth:
    def __init__(self, accounts):
        self.accounts = accounts
        self.session_user = None
        self.error = None
        self._ids = itertools.count(100)

    def sign_in_with_password(self, credentials):
        if self.error:
            raise self.error
        account = self.accounts.get(credentials["email"])
        if not account or account["password"] != credentials["password"]:
            raise FakeAuthError("Invalid login credentials", code="invalid_credentials")
        self.session_user = SimpleNamespace(id=account["id"], email=credentials["email"])
        return SimpleNamespace(user=self.session_user, session=SimpleNamespace(access_token="token"))

    def sign_up(self, credentials):
        if self.error:
            raise self.error
        email = credentials["email"]
        if email in self.accounts:
            raise FakeAuthError("User already registered", code="user_already_exists")
        if len(credentials["password"]) < 6:
            raise FakeAuthError("Password should be at least 6 characters.", code="weak_password")
        user_id = str(next(self._ids))
        self.accounts[email] = {"id": user_id, "password": credentials["password"]}
        self.session_user = SimpleNamespace(id=user_id, email=email)
        return SimpleNamespace(user=self.session_user, session=None)

    def get_user(self):
        if self.error:
            raise self.error
        if self.session_user is None:
            return None
        return SimpleNamespace(user=self.session_user)

    def sign_out(self):
        self.session_user = None


class FakeSupabase:
    def __init__(self):
        self.tables = {"profiles": [
            {"id": "T1", "name": "Dr. Sarah Johnson", "email": "teacher@example.com", "role": "teacher", "avatar": None},
            {"id": "S1", "name": "Alice", "email": "alice@example.com", "role": "student", "avatar": None},
            {"id": "S2", "name": "Bob", "email": "bob@example.com", "role": "student", "avatar": None},
        ]}
        self.auth = FakeAuth({
            "teacher@example.com": {"id": "T1", "password": "secret123"},
            "alice@example.com": {"id": "S1", "password": "alice123"},
            "ghost@example.com": {"id": "G1", "password": "ghost123"},
        })
        self.table_error = None

    def table(self, name):
        if self.table_error:
            raise self.table_error
        return FakeQuery(self.tables.setdefault(name, []))


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path / "data")


@pytest.fixture
def clock():
    """Deterministic, increasing timestamps."""
    counter = itertools.count(1)
    return lambda: "2024-01-15T10:00:%02dZ" % next(counter)


@pytest.fixture
def store(storage, clock):
    return ProjectStore(storage, clock=clock)


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def identity(storage, fake_supabase):
    return IdentityProvider(storage, client=fake_supabase)


@pytest.fixture
def app(store, identity):
    from projectflow.app import create_app
    return create_app(store=store, identity=identity, config_overrides={
        "TESTING": True,
        "AUTH_DISABLED": True,
    })


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def project(store):
    """Project P1 owned by teacher T1."""
    return store.create_project({
        "title": "DBMS Mini Project",
        "description": "Design a library database",
        "teacherId": "T1",
        "teacherName": "Dr. Sarah Johnson",
        "deadline": "2024-02-15T23:59:59Z",
        "status": "active",
    })


@pytest.fixture
def task(store, project):
    """Task Tk1 in P1 assigned to S1 and S2."""
    return store.add_task(project["id"], {
        "title": "Schema Design",
        "description": "ER diagram and normalization",
        "assignedTo": ["S1", "S2"],
        "status": "pending",
        "deadline": "2024-01-25T23:59:59Z",
    }, ["Alice", "Bob"])


def _build_submission(**overrides):
    submission = {
        "studentId": "S1",
        "studentName": "Alice",
        "fileName": "schema.pdf",
        "fileUrl": "/uploads/schema.pdf",
        "submittedAt": "2024-01-24T15:30:00Z",
        "comments": None,
        "resubmissionRequired": False,
    }
    submission.update(overrides)
    return submission


@pytest.fixture
def make_submission():
    """Factory for incoming submission dicts (an accepted submission by S1)."""
    return _build_submission
