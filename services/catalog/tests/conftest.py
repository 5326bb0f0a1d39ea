# Hace importables 'main' y 'repo' del servicio antes de la colección
import os
import sys
import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

SERVICE_DIR = Path(__file__).resolve().parent.parent
if str(SERVICE_DIR) not in sys.path:
    sys.path.insert(0, str(SERVICE_DIR))

_DB_DIR = tempfile.mkdtemp(prefix="catalog-tests-")
os.environ.setdefault("CATALOG_DATABASE_URL", f"sqlite:///{_DB_DIR}/catalog.db")


@pytest.fixture
def catalog_repo():
    """Fresh products table seeded with three products, one withdrawn."""
    from repo import Base, CatalogRepo, engine, init_db

    Base.metadata.drop_all(engine)
    init_db()
    repo = CatalogRepo()
    repo.upsert("1", "Keyboard", Decimal("49.90"))
    repo.upsert("2", "Mouse", Decimal("19.99"))
    repo.upsert("3", "Old monitor", Decimal("89.00"), available=False)
    return repo
