"""SQLAlchemy repository for the product catalog.

The schema is a single ``products`` table. Products marked unavailable are
treated as unknown by ``find_many``. The connection comes from
``CATALOG_DATABASE_URL`` when set, otherwise from the ``DB_*`` variables
(PostgreSQL).
"""

import os
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterable, List

from sqlalchemy import Boolean, Numeric, String, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Session, mapped_column

DB_HOST = os.getenv("DB_HOST", "catalog-db")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "catalog")
DB_USER = os.getenv("DB_USER", "catalog_user")
DB_PASSWORD = os.getenv("DB_PASSWORD", "catalog-pass")

DATABASE_URL = os.getenv(
    "CATALOG_DATABASE_URL",
    f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
engine = create_engine(DATABASE_URL, pool_pre_ping=True)


class Base(DeclarativeBase): pass


class Product(Base):
    """SQLAlchemy model for a catalog product.

    Attributes:
        id: Product id (string, max 64 chars) used as primary key.
        name: Display name.
        price: Current unit price.
        available: False once the product is withdrawn from sale.
    """
    __tablename__ = "products"
    id = mapped_column(String(64), primary_key=True)
    name = mapped_column(String(255), nullable=False)
    price = mapped_column(Numeric(12, 2), nullable=False)
    available = mapped_column(Boolean, nullable=False, default=True)


def init_db(bind=None) -> None:
    Base.metadata.create_all(bind or engine)


class CatalogRepo:
    """Repository class for product lookups."""

    def __init__(self, bind=None):
        self.bind = bind or engine

    @contextmanager
    def session(self):
        with Session(self.bind) as s:
            yield s

    def upsert(self, product_id: str, name: str, price: Decimal, available: bool = True) -> None:
        with self.session() as s:
            s.merge(Product(id=product_id, name=name, price=price, available=available))
            s.commit()

    def find_many(self, product_ids: Iterable[str]) -> List[Product]:
        """Return the available products among ``product_ids``.

        Ids are de-duplicated; unknown or unavailable ids are omitted.
        Results follow the order of first appearance in ``product_ids``.
        """
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return []
        with self.session() as s:
            rows = s.scalars(select(Product).where(Product.id.in_(ids), Product.available.is_(True))).all()
        by_id = {p.id: p for p in rows}
        return [by_id[i] for i in ids if i in by_id]
