"""Database lifecycle fixtures for integration tests.

Manages a dedicated Postgres test database:
- Session-scoped: create/drop test database, create schema
- Function-scoped: per-test session with rollback for isolation

Every test here is skipped when no PostgreSQL server is reachable, since
the partial unique index and row locks are only exercised for real there.
"""

import os
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from reporting_chain.config import load_config
from reporting_chain.database import db

from tests.integration.factories import PositionFactory, PositionTitleFactory, ReportingEdgeFactory


def _get_test_database_url() -> str:
    """Build the test database URL.

    Priority:
    1. TEST_DATABASE_URL env var
    2. Config with '_test' suffix on database name
    """
    test_url = os.environ.get("TEST_DATABASE_URL")
    if test_url:
        return test_url

    project_root = Path(__file__).parent.parent.parent
    config = load_config(str(project_root / "config.yaml"))
    db_config = config.get("database", {})

    host = db_config.get("host", "localhost")
    port = db_config.get("port", 5432)
    user = db_config.get("user", "postgres")
    password = db_config.get("password", "")
    name = db_config.get("name", "reporting_chain") + "_test"

    if password:
        return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"
    return f"postgresql+psycopg2://{user}@{host}:{port}/{name}"


def _get_admin_url() -> str:
    """Get a connection URL to the 'postgres' database for admin operations."""
    parts = _get_test_database_url().rsplit("/", 1)
    return parts[0] + "/postgres"


def _get_test_db_name() -> str:
    return _get_test_database_url().rsplit("/", 1)[1].split("?", 1)[0]


@pytest.fixture(scope="session")
def test_database_url():
    """Provide the test database URL, skipping when it is not PostgreSQL."""
    url = _get_test_database_url()
    if not url.startswith("postgresql"):
        pytest.skip("integration tests need a PostgreSQL TEST_DATABASE_URL")
    return url


@pytest.fixture(scope="session")
def test_db_engine(test_database_url):
    """Create and drop the test database for the entire test session."""
    admin_url = _get_admin_url()
    db_name = _get_test_db_name()

    try:
        admin_engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")
    except ImportError as e:
        pytest.skip(f"PostgreSQL driver for {admin_url.split('://', 1)[0]} not installed: {e}")

    try:
        with admin_engine.connect() as conn:
            # Drop if exists (handles interrupted previous runs)
            conn.execute(text(f'DROP DATABASE IF EXISTS "{db_name}"'))
            conn.execute(text(f'CREATE DATABASE "{db_name}"'))
    except OperationalError as e:
        pytest.skip(f"PostgreSQL not reachable: {e.orig}")
    finally:
        admin_engine.dispose()

    engine = create_engine(test_database_url)

    # Import all models to ensure they're registered with metadata
    from reporting_chain import models  # noqa: F401

    db.metadata.create_all(engine)

    yield engine

    engine.dispose()

    admin_engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")
    try:
        with admin_engine.connect() as conn:
            conn.execute(text(
                f"SELECT pg_terminate_backend(pg_stat_activity.pid) "
                f"FROM pg_stat_activity "
                f"WHERE pg_stat_activity.datname = '{db_name}' "
                f"AND pid <> pg_backend_pid()"
            ))
            conn.execute(text(f'DROP DATABASE IF EXISTS "{db_name}"'))
    finally:
        admin_engine.dispose()


@pytest.fixture(scope="session")
def TestSessionFactory(test_db_engine):
    """Provide a sessionmaker bound to the test database engine."""
    return sessionmaker(bind=test_db_engine)


@pytest.fixture
def db_session(test_db_engine, TestSessionFactory):
    """Provide a database session with per-test isolation via rollback.

    The session joins an outer transaction and turns its own commits into
    savepoints, so lifecycle code that commits still leaves nothing behind.
    """
    connection = test_db_engine.connect()
    transaction = connection.begin()
    session = TestSessionFactory(
        bind=connection, join_transaction_mode="create_savepoint"
    )

    PositionFactory._meta.sqlalchemy_session = session
    PositionTitleFactory._meta.sqlalchemy_session = session
    ReportingEdgeFactory._meta.sqlalchemy_session = session

    yield session

    session.close()
    if transaction.is_active:
        transaction.rollback()
    connection.close()
