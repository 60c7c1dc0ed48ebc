import os
_default_test_secret = "test-jwt-secret-for-pytest-only-0000000000000000"
if len(os.environ.get("JWT_SECRET", "")) < 32:
    os.environ["JWT_SECRET"] = _default_test_secret
os.environ["JWT_AUDIENCE"] = "authenticated"

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite:///./hourbook_test.db")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from datetime import date, datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

from hourbook import database
from hourbook.models import Project, TimeEntry  # noqa: F401  (registers all tables)


def _mint_token(user_id: str = "test-user", audience: str = "authenticated", **claims) -> str:
    payload = {
        "sub": user_id,
        "aud": audience,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    payload.update(claims)
    return jwt.encode(payload, os.environ["JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def mint_token():
    return _mint_token


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {_mint_token()}"}


@pytest.fixture(scope="session", autouse=True)
def _prepare_test_database():
    database.configure_database()
    database.Base.metadata.drop_all(bind=database.engine)
    database.Base.metadata.create_all(bind=database.engine)
    yield
    database.Base.metadata.drop_all(bind=database.engine)
    database.engine.dispose()


@pytest.fixture(scope="function", autouse=True)
def _empty_tables_between_tests():
    yield
    with database.engine.begin() as conn:
        for table in reversed(database.Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db():
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def client():
    from hourbook.main import app

    return TestClient(app)


@pytest.fixture
def project_factory():
    def _create(
        name: str = "Villa Noord",
        client_name: str = "Acme BV",
        default_rate_cents=9500,
        phase_rates_cents=None,
        archived: bool = False,
    ) -> Project:
        session = database.SessionLocal()
        try:
            row = Project(
                name=name,
                client_name=client_name,
                default_rate_cents=default_rate_cents,
                phase_rates_cents=phase_rates_cents,
                archived=archived,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return row
        finally:
            session.close()

    return _create


@pytest.fixture
def time_entry_factory():
    def _create(
        project_id=None,
        minutes=60,
        occurred_on: date = date(2026, 9, 1),
        phase_code=None,
        invoiced_at=None,
        invoice_number=None,
        notes=None,
    ) -> TimeEntry:
        session = database.SessionLocal()
        try:
            row = TimeEntry(
                project_id=project_id,
                minutes=minutes,
                occurred_on=occurred_on,
                phase_code=phase_code,
                invoiced_at=invoiced_at,
                invoice_number=invoice_number,
                notes=notes,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return row
        finally:
            session.close()

    return _create
