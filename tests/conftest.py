import pytest
from sqlalchemy import inspect as sa_inspect

from sqlrepo.db.database import get_engine, get_session_local
from sqlrepo.db.repositories import ListableColumns, Repository, RepositoryConfig
from sqlrepo.utils.settings import refresh_settings_cache
from tests.fixtures.models import Base, Category, Item

_SETTINGS_ENV = (
    "SQLREPO_DEFAULT_PER_PAGE",
    "SQLREPO_MAX_PER_PAGE",
    "SQLREPO_AUTOCOMMIT",
    "SQLREPO_LOG_LEVEL",
)

ITEM_CONFIG = RepositoryConfig(
    model=Item,
    fillable=("name", "status", "is_active", "price", "category_id"),
    indexable=("id", "name", "status"),
    searchable=("name",),
    sortable=("name", "price", "status"),
    listable=ListableColumns(key="id", value="name"),
)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    refresh_settings_cache()
    yield
    refresh_settings_cache()


@pytest.fixture
def db():
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    session = get_session_local()()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seeded(db):
    tools = Category(id=1, name="Tools")
    garden = Category(id=2, name="Garden", parent_id=1)
    db.add_all([tools, garden])
    db.add_all([
        Item(id=1, name="Hammer", status="active", is_active=True, price=10, secret="s1", category_id=1),
        Item(id=2, name="Anvil", status="archived", is_active=True, price=50, secret="s2", category_id=1),
        Item(id=3, name="Rake", status="active", is_active=False, price=15, secret="s3", category_id=2),
        Item(id=4, name="Chisel", status="active", is_active=True, price=5, secret="s4", category_id=1),
    ])
    db.commit()
    # Start every test from an empty identity map so partial loads are observable
    db.expunge_all()
    return db


@pytest.fixture
def repo(seeded):
    return Repository(seeded, ITEM_CONFIG)


def sql(query) -> str:
    """Render a query with inlined parameters for clause assertions."""
    return str(query.statement.compile(compile_kwargs={"literal_binds": True}))


def unloaded(instance):
    return set(sa_inspect(instance).unloaded)
