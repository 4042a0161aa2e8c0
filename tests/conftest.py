import os

# inventory.db builds its module-level engine on import; keep it off PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal

import pytest

from inventory.addresses import ProductRouter
from inventory.db import init_db, make_engine, make_session_factory
from inventory.store import InventoryStore


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'inventory.db'}")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return InventoryStore(make_session_factory(engine))


@pytest.fixture
def router(store):
    return ProductRouter(store)


@pytest.fixture
def widget(store):
    """Insert the canonical three-unit Widget and return its id."""
    return store.insert("Widget", Decimal("5.00"), 3, "Acme", "555-0100")
