from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from catalog_sync.models import Base
from catalog_sync.products import Product
from catalog_sync.store import CatalogStore

BASE_TIME = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = BASE_TIME, step: timedelta = timedelta(seconds=1)) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + self.step
        return value


def make_product(**overrides) -> Product:
    payload = {
        "id": "7f1c2d3e-0000-4000-8000-000000000001",
        "label": "Product_1",
        "price": Decimal("19.99"),
        "created_at": BASE_TIME,
        "updated_at": BASE_TIME,
        "deleted_at": None,
    }
    payload.update(overrides)
    return Product(**payload)


def delta_lines(*products: Product) -> list[str]:
    return [Product.csv_header() + "\n"] + [product.to_csv() + "\n" for product in products]


@pytest.fixture()
def session() -> Session:
    engine = create_engine("sqlite:///:memory:")
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def store(session: Session) -> CatalogStore:
    return CatalogStore(session, retry_attempts=1, retry_backoff_seconds=0)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
