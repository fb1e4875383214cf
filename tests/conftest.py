"""Shared fixtures: in-memory database, application client and token helpers."""
from __future__ import annotations

import os

os.environ["LOG_DIR"] = ""

from datetime import timedelta  # noqa: E402
from typing import Callable, Iterator  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from financeos.core.security import SecurityProvider, get_security_provider  # noqa: E402
from financeos.core.timeutils import utcnow  # noqa: E402
from financeos.main import create_app  # noqa: E402
from financeos.models import Base, Profile, UserRole  # noqa: E402
from financeos.services.best_effort import reset_failure_counts  # noqa: E402
from financeos.web.dependencies import get_db_session  # noqa: E402


@pytest.fixture()
def engine() -> Iterator[Engine]:
    """Provide a fresh in-memory database shared by every connection of a test."""

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def session(session_factory: sessionmaker) -> Iterator[Session]:
    with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def _reset_best_effort_counters() -> Iterator[None]:
    reset_failure_counts()
    yield
    reset_failure_counts()


@pytest.fixture()
def app(session_factory: sessionmaker) -> FastAPI:
    app = create_app()

    def _session_override() -> Iterator[Session]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = _session_override
    return app


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client


def create_user(
    session: Session,
    email: str,
    *,
    role: str | None = "viewer",
    password: str = "s3cret",
    status: str = "active",
    name: str | None = None,
) -> Profile:
    profile = Profile(
        email=email,
        name=name or email.split("@")[0],
        password_hash=SecurityProvider.hash_password(password),
        status=status,
    )
    session.add(profile)
    session.flush()
    if role is not None:
        session.add(UserRole(user_id=profile.id, role=role))
    session.commit()
    return profile


def bearer_headers(profile: Profile, *, verified: bool = True) -> dict[str, str]:
    verified_until = utcnow() + timedelta(minutes=30) if verified else None
    token = get_security_provider().create_access_token(
        profile.id, profile.email, verified_until=verified_until
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_user(session: Session) -> Callable[..., Profile]:
    def _make(email: str, **kwargs) -> Profile:
        return create_user(session, email, **kwargs)

    return _make


@pytest.fixture()
def auth_headers() -> Callable[..., dict[str, str]]:
    return bearer_headers
