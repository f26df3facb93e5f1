import os

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-signing-key-with-enough-length-0123")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from board.api import app
from board.auth import get_blob_store, get_db, password_hasher
from board.database import Base
from board.models.user import User
from board.storage import LocalBlobStore


@pytest.fixture
def session_local():
    """Provide an isolated in-memory database for each test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def db_session(session_local):
    session = session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "uploads", max_bytes=1024 * 1024)


@pytest.fixture
def client(session_local, blob_store):
    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def signup_payload():
    return {
        "name": "A",
        "email": "a@x.edu",
        "matricNumber": "M1",
        "level": 200,
        "password": "p1",
        "studentType": "Undergraduate",
    }


@pytest.fixture
def student_token(client, signup_payload):
    resp = client.post("/signup", json=signup_payload)
    assert resp.status_code == 201
    return resp.json()["token"]


@pytest.fixture
def admin_token(client, db_session):
    admin = User(
        name="Head of Department",
        email="admin@cs.edu.ng",
        role="admin",
        department="Computer Science",
        password_hash=password_hasher.hash("admin-pass"),
    )
    db_session.add(admin)
    db_session.commit()
    resp = client.post("/login", json={"email": "admin@cs.edu.ng", "password": "admin-pass"})
    assert resp.status_code == 200
    return resp.json()["token"]
