from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from catalog_sync.products import Product


class Base(DeclarativeBase):
    pass


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ProductRecord(Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    label: Mapped[str] = mapped_column(String(128), index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @staticmethod
    def values_from(product: Product) -> dict[str, object]:
        return {
            "id": product.id,
            "label": product.label,
            "price": product.price,
            "created_at": product.created_at,
            "updated_at": product.updated_at,
            "deleted_at": product.deleted_at,
        }

    def to_product(self) -> Product:
        return Product(
            id=self.id,
            label=self.label,
            price=Decimal(self.price).quantize(Decimal("0.01")),
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
            deleted_at=as_utc(self.deleted_at),
        )
