"""Pytest fixtures for reporting chain tests."""

import os

import pytest

from reporting_chain.app import create_app
from reporting_chain.database import db


# ---------------------------------------------------------------------------
# Production database safety guard (session-scoped, autouse)
# ---------------------------------------------------------------------------


def _build_test_database_url() -> str:
    """Test database URL: TEST_DATABASE_URL, else a private in-memory SQLite."""
    return os.environ.get("TEST_DATABASE_URL") or "sqlite:///:memory:"


@pytest.fixture(scope="session", autouse=True)
def _force_test_database():
    """Force ALL tests to use the test database. Never connect to production.

    Sets DATABASE_URL before any test or fixture can create a Flask app.
    """
    test_url = _build_test_database_url()
    original = os.environ.get("DATABASE_URL")
    os.environ["DATABASE_URL"] = test_url

    yield

    # Restore original (or remove if it wasn't set)
    if original is not None:
        os.environ["DATABASE_URL"] = original
    else:
        os.environ.pop("DATABASE_URL", None)


@pytest.fixture
def app(tmp_path):
    """Create a Flask application for testing.

    The config path points into a temp directory so logs land there and no
    local config.yaml leaks into the run.
    """
    app = create_app(config_path=str(tmp_path / "config.yaml"), testing=True)
    app.config.update({
        "TESTING": True,
    })

    yield app


@pytest.fixture
def client(app):
    """Create a test client."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """Create a test CLI runner."""
    return app.test_cli_runner()


@pytest.fixture
def db_session(app):
    """Provide a database session with table cleanup on teardown."""
    with app.app_context():
        db.create_all()
        yield db.session
        db.session.rollback()
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
