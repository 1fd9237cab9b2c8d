from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Sequence, TypeVar, Union

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog_sync.errors import StoreWriteError
from catalog_sync.models import Base, ProductRecord
from catalog_sync.products import Product
from catalog_sync.retry import call_with_retry

logger = logging.getLogger(__name__)

# Keeps IN (...) clauses below SQLite's bound-parameter limit.
ID_CHUNK_SIZE = 500

T = TypeVar("T")


@dataclass(frozen=True)
class UpsertOne:
    product: Product

    @property
    def product_id(self) -> str:
        return self.product.id


@dataclass(frozen=True)
class DeleteOne:
    product_id: str


WriteOperation = Union[UpsertOne, DeleteOne]


@dataclass(frozen=True)
class BulkWriteResult:
    matched_count: int = 0
    upserted_count: int = 0
    deleted_count: int = 0


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def collapse_operations(ops: Iterable[WriteOperation]) -> list[WriteOperation]:
    """Keep only the last operation per product id, in first-seen order."""
    latest: dict[str, WriteOperation] = {}
    for op in ops:
        latest[op.product_id] = op
    return list(latest.values())


class CatalogStore:
    def __init__(self, session: Session, retry_attempts: int = 3, retry_backoff_seconds: float = 0.5) -> None:
        self.session = session
        self.retry_attempts = retry_attempts
        self.retry_backoff_seconds = retry_backoff_seconds

    def reset(self) -> None:
        connection = self.session.connection()
        tables = [ProductRecord.__table__]
        Base.metadata.drop_all(bind=connection, tables=tables, checkfirst=True)
        Base.metadata.create_all(bind=connection, tables=tables)
        self.session.commit()
        logger.debug("Products table recreated")

    def insert_many(self, products: Sequence[Product]) -> int:
        if not products:
            return 0
        rows = [ProductRecord.values_from(product) for product in products]

        def _insert() -> int:
            self.session.execute(insert(ProductRecord), rows)
            return len(rows)

        return self._write(_insert, "insert_many")

    def bulk_write(self, ops: Iterable[WriteOperation]) -> BulkWriteResult:
        collapsed = collapse_operations(ops)
        if not collapsed:
            return BulkWriteResult()
        return self._write(lambda: self._apply(collapsed), "bulk_write")

    def find_ids(self) -> set[str]:
        return set(self.session.scalars(select(ProductRecord.id)))

    def get(self, product_id: str) -> Product | None:
        record = self.session.execute(
            select(ProductRecord).where(ProductRecord.id == product_id)
        ).scalar_one_or_none()
        return record.to_product() if record else None

    def count(self) -> int:
        return int(self.session.scalar(select(func.count()).select_from(ProductRecord)) or 0)

    def _apply(self, ops: list[WriteOperation]) -> BulkWriteResult:
        upserts = [op.product for op in ops if isinstance(op, UpsertOne)]
        delete_ids = [op.product_id for op in ops if isinstance(op, DeleteOne)]

        existing = self._existing_ids([product.id for product in upserts])
        to_update = [ProductRecord.values_from(product) for product in upserts if product.id in existing]
        to_insert = [ProductRecord.values_from(product) for product in upserts if product.id not in existing]

        if to_update:
            self.session.execute(update(ProductRecord), to_update)
        if to_insert:
            self.session.execute(insert(ProductRecord), to_insert)

        deleted = 0
        for chunk in chunked(delete_ids, ID_CHUNK_SIZE):
            result = self.session.execute(
                delete(ProductRecord)
                .where(ProductRecord.id.in_(chunk))
                .execution_options(synchronize_session=False)
            )
            deleted += result.rowcount or 0

        return BulkWriteResult(matched_count=len(to_update), upserted_count=len(to_insert), deleted_count=deleted)

    def _existing_ids(self, ids: Sequence[str]) -> set[str]:
        found: set[str] = set()
        for chunk in chunked(ids, ID_CHUNK_SIZE):
            found.update(self.session.scalars(select(ProductRecord.id).where(ProductRecord.id.in_(chunk))))
        return found

    def _write(self, fn: Callable[[], T], operation: str) -> T:
        def _attempt() -> T:
            try:
                result = fn()
                self.session.commit()
            except SQLAlchemyError:
                self.session.rollback()
                raise
            return result

        try:
            return call_with_retry(
                _attempt,
                attempts=self.retry_attempts,
                backoff_seconds=self.retry_backoff_seconds,
                retry_on=(SQLAlchemyError,),
            )
        except SQLAlchemyError as exc:
            raise StoreWriteError(f"{operation} failed after {self.retry_attempts} attempt(s): {exc}") from exc
