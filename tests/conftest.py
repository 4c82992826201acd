"""
FloodWatch — Shared pytest fixtures.
"""

from __future__ import annotations

import os
import secrets
from typing import Dict, Generator, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# ─── Environment setup (before any app imports) ───────────────────────────────

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", secrets.token_hex(32))
os.environ.setdefault("ENVIRONMENT", "development")
# Cheap hashes keep the suite fast; production default stays 12.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("AUTH_RATE_LIMIT_PER_MINUTE", "10000")
os.environ.setdefault("API_RATE_LIMIT_PER_MINUTE", "10000")

# ─── App imports (after env is set) ───────────────────────────────────────────

from floodwatch.core.rate_limit import limiter  # noqa: E402
from floodwatch.core.security import create_access_token  # noqa: E402
from floodwatch.database import Base  # noqa: E402
from floodwatch.models import flood_reports, two_factor, users  # noqa: E402,F401
from floodwatch.models.flood_reports import FloodReport  # noqa: E402
from floodwatch.models.users import User  # noqa: E402
from floodwatch.services.auth import create_user  # noqa: E402
from floodwatch.services.email import email_service  # noqa: E402

# ─────────────────────────────────────────────────────────────────────────────
# DATABASE FIXTURES
# ─────────────────────────────────────────────────────────────────────────────


def _make_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """In-memory SQLite session — fresh for every test function."""
    engine = _make_engine()
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


# ─────────────────────────────────────────────────────────────────────────────
# FASTAPI CLIENT FIXTURE
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with overridden DB dependency."""
    from floodwatch.database import get_db
    from floodwatch.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    limiter.reset()
    yield
    limiter.reset()


# ─────────────────────────────────────────────────────────────────────────────
# EMAIL FIXTURES
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def sent_codes(monkeypatch) -> List[Dict[str, str]]:
    """Captures two-factor codes instead of emailing them."""
    outbox: List[Dict[str, str]] = []

    def fake_send(to_email: str, code: str, ttl_minutes: int) -> bool:
        outbox.append({"to": to_email, "code": code})
        return True

    monkeypatch.setattr(email_service, "send_two_factor_code", fake_send)
    return outbox


# ─────────────────────────────────────────────────────────────────────────────
# ACCOUNT / REPORT FIXTURES
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_PASSWORD = "Secr3t!"


@pytest.fixture
def ana(db_session: Session) -> User:
    return create_user(db_session, "Ana", "ana@x.com", DEFAULT_PASSWORD)


@pytest.fixture
def ben(db_session: Session) -> User:
    return create_user(db_session, "Ben", "ben@x.com", DEFAULT_PASSWORD)


@pytest.fixture
def admin(db_session: Session) -> User:
    return create_user(
        db_session, "Admin", "admin@floodwatch.ph", DEFAULT_PASSWORD, role="admin"
    )


@pytest.fixture
def ana_report(db_session: Session, ana: User) -> FloodReport:
    report = FloodReport(
        severity="moderate",
        location="Marikina Riverbanks",
        description="Knee-deep water near the bridge",
        latitude=14.6507,
        longitude=121.1029,
        reported_by=ana.id,
    )
    db_session.add(report)
    db_session.commit()
    return report


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user.id, user.email)
    return {"Authorization": f"Bearer {token}"}
