"""
Database engine and session management.

Builds the SQLAlchemy engine from environment configuration with a test
fallback (SQLite in-memory) and exposes a FastAPI dependency that yields one
session per request. The engine is created on first use so importing the
package never opens a connection.
"""
import os
import sys
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

_DEFAULT_SQLITE_URL = "sqlite+pysqlite:///./sqlrepo.db"
_MEMORY_SQLITE_URL = "sqlite+pysqlite:///:memory:"


def _get_database_url() -> str:
    # Explicit URLs win
    for name in ("SQLREPO_DATABASE_URL", "DATABASE_URL"):
        value = os.getenv(name)
        if value:
            return value

    # Otherwise build from individual Postgres components (all must be set)
    parts = {
        "POSTGRES_USER": os.getenv("POSTGRES_USER"),
        "POSTGRES_PASSWORD": os.getenv("POSTGRES_PASSWORD"),
        "POSTGRES_HOST": os.getenv("POSTGRES_HOST"),
        "POSTGRES_PORT": os.getenv("POSTGRES_PORT"),
        "POSTGRES_DB": os.getenv("POSTGRES_DB"),
    }
    if any(parts.values()):
        missing = [name for name, value in parts.items() if not value]
        if missing:
            raise ValueError(f"Missing required database environment variables: {', '.join(missing)}")
        return (
            f"postgresql://{parts['POSTGRES_USER']}:{parts['POSTGRES_PASSWORD']}"
            f"@{parts['POSTGRES_HOST']}:{parts['POSTGRES_PORT']}/{parts['POSTGRES_DB']}"
        )

    return _DEFAULT_SQLITE_URL


def _is_pytest_runtime() -> bool:
    """Best-effort detection that we're executing under pytest.

    ``PYTEST_CURRENT_TEST`` is only set while a test runs, so also look for
    the pytest package in ``sys.modules`` (present once collection started).
    ``PYTEST_RUNNING=1`` forces the answer.
    """
    if os.getenv("PYTEST_RUNNING") == "1":
        return True
    if "PYTEST_CURRENT_TEST" in os.environ:
        return True
    return "pytest" in sys.modules


def resolve_engine_options():
    """Return ``(url, create_engine kwargs)`` for the current environment.

    Order: ``SQLREPO_TEST_DB`` when set; in-memory SQLite under pytest;
    otherwise the configured database URL.
    """
    explicit_test_db = os.getenv("SQLREPO_TEST_DB")
    if explicit_test_db:
        url = explicit_test_db
    elif _is_pytest_runtime():
        # StaticPool so the schema persists across connections
        return _MEMORY_SQLITE_URL, {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    else:
        url = _get_database_url()

    kwargs = {"connect_args": {"check_same_thread": False}} if url.startswith("sqlite") else {}
    return url, kwargs


@lru_cache(maxsize=None)
def get_engine() -> Engine:
    url, kwargs = resolve_engine_options()
    return create_engine(url, **kwargs)


@lru_cache(maxsize=None)
def get_session_local() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def reset_engine() -> None:
    """Dispose the cached engine so the next call re-reads the environment."""
    if get_engine.cache_info().currsize:
        get_engine().dispose()
    get_engine.cache_clear()
    get_session_local.cache_clear()


def get_db():
    """Dependency to get a database session."""
    db = get_session_local()()
    try:
        yield db
    finally:
        db.close()
