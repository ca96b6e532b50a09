import os

os.environ.setdefault("PEER_REVIEW_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("PEER_REVIEW_SCHEDULER_ENABLED", "false")
os.environ.setdefault("PEER_REVIEW_LOCAL_TIMEZONE", "UTC")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from peer_review.core.database import Base, get_db
from peer_review.core.identity import IdentityGateway, get_identity_gateway
from peer_review.main import app
from peer_review.models import Group, User, UserRole

# In-memory SQLite shared by every connection of a test
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="function")
def session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def identity():
    return IdentityGateway()


@pytest.fixture(scope="function")
def client(session, identity):
    """
    Create a TestClient bound to the test session and identity gateway.
    """
    def override_get_db():
        try:
            yield session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_gateway] = lambda: identity
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_group(session):
    def _make(name="Team Alpha"):
        group = Group(name=name)
        session.add(group)
        session.commit()
        return group

    return _make


@pytest.fixture
def make_student(session):
    counter = {"n": 0}

    def _make(full_name, group_id=None, role=UserRole.STUDENT):
        counter["n"] += 1
        user = User(
            email=f"user{counter['n']}@school.edu",
            full_name=full_name,
            role=role,
            group_id=group_id,
        )
        session.add(user)
        session.commit()
        return user

    return _make
