from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from catalog_sync.errors import MalformedRecordError

DELIMITER = ","
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO 8601 UTC timestamp.

    Accepts both the microsecond form written by ``format_timestamp`` and the
    millisecond form produced by JavaScript's ``Date.toISOString``.
    """
    normalized = text.strip()
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"
    value = datetime.fromisoformat(normalized)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Product:
    id: str
    label: str
    price: Decimal
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def field_names(cls) -> list[str]:
        return [field.name for field in fields(cls)]

    @classmethod
    def csv_header(cls) -> str:
        return DELIMITER.join(cls.field_names())

    def to_csv(self) -> str:
        return DELIMITER.join(
            [
                self.id,
                self.label,
                f"{self.price:.2f}",
                format_timestamp(self.created_at),
                format_timestamp(self.updated_at),
                format_timestamp(self.deleted_at) if self.deleted_at else "",
            ]
        )

    @classmethod
    def from_csv(cls, line: str, line_number: int | None = None) -> Product:
        parts = line.rstrip("\r\n").split(DELIMITER)
        expected = len(cls.field_names())
        if len(parts) != expected:
            raise MalformedRecordError(f"expected {expected} fields, got {len(parts)}", line_number)

        product_id, label, price_text, created_text, updated_text, deleted_text = parts
        if not product_id:
            raise MalformedRecordError("empty product id", line_number)
        try:
            price = Decimal(price_text)
        except InvalidOperation as exc:
            raise MalformedRecordError(f"invalid price {price_text!r}", line_number) from exc
        if not price.is_finite():
            raise MalformedRecordError(f"invalid price {price_text!r}", line_number)

        try:
            created_at = parse_timestamp(created_text)
            updated_at = parse_timestamp(updated_text)
            deleted_at = parse_timestamp(deleted_text) if deleted_text.strip() else None
        except ValueError as exc:
            raise MalformedRecordError(f"invalid timestamp: {exc}", line_number) from exc

        return cls(
            id=product_id,
            label=label,
            price=price,
            created_at=created_at,
            updated_at=updated_at,
            deleted_at=deleted_at,
        )
