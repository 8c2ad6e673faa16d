"""Shared test fixtures: in-memory SQLite sessions, memory cache, and a wired TestClient."""

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from userservice.core import security
from userservice.core.cache import MemoryCacheBackend, UserCache
from userservice.models import Base, User

# Minimum bcrypt cost keeps hashing fast in tests.
security.BCRYPT_ROUNDS = 4

TEST_PASSWORD = "correct-horse-battery"


def make_session_factory() -> sessionmaker:
    """Fresh in-memory SQLite database with all tables; shared across threads via StaticPool."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_cache(ttl_seconds: int = 600) -> UserCache:
    return UserCache(MemoryCacheBackend(), ttl_seconds)


def add_user(
    db: Session,
    username: str = "alice",
    password: str = TEST_PASSWORD,
    role: str = "user",
    email: str | None = None,
) -> User:
    """Insert a user directly, bypassing services and cache."""
    user = User(
        username=username,
        email=email,
        password_hash=security.hash_password(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_client():
    """Return (TestClient, session factory, cache) with get_db and get_cache overridden."""
    from fastapi.testclient import TestClient

    from userservice.core.cache import get_cache
    from userservice.core.database import get_db
    from userservice.main import app

    session_factory = make_session_factory()
    cache = make_cache()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    return TestClient(app), session_factory, cache


def clear_overrides() -> None:
    from userservice.main import app

    app.dependency_overrides.clear()
