from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator

from catalog_sync.errors import ConfigurationError, MalformedRecordError, StreamReadError
from catalog_sync.metrics import Metrics
from catalog_sync.products import Product
from catalog_sync.store import BulkWriteResult, CatalogStore, DeleteOne, UpsertOne, WriteOperation, chunked

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100_000


class DeletePolicy(str, Enum):
    TOMBSTONE = "tombstone"
    FULL_SCAN = "full-scan"


@dataclass
class ReconcileReport:
    rows_processed: int = 0
    batches: int = 0
    metrics: Metrics = field(default_factory=Metrics.zero)


def read_delta_lines(path: str | Path) -> Iterator[str]:
    try:
        with open(path, "r", encoding="utf-8", newline="") as handle:
            yield from handle
    except (OSError, UnicodeDecodeError) as exc:
        raise StreamReadError(f"Failed to read delta file {path}: {exc}") from exc


class CatalogReconciler:
    """Replays a delta stream against the store in bounded bulk writes.

    Rows are pulled one at a time and a full batch is flushed before the next
    row is read, so at most one bulk write is ever in flight and every flush
    has completed when ``run`` returns. The trailing partial batch is flushed
    at end of stream.

    With ``DeletePolicy.TOMBSTONE`` tombstoned rows become deletes and every
    other row an upsert. With ``DeletePolicy.FULL_SCAN`` every row is upserted
    as-is and, once the stream is exhausted, store ids that never appeared in
    the stream are deleted. Tombstoned rows are therefore kept under
    ``FULL_SCAN``; only ``TOMBSTONE`` guarantees that a tombstoned id is
    absent from the store afterwards.
    """

    def __init__(
        self,
        store: CatalogStore,
        batch_size: int = DEFAULT_BATCH_SIZE,
        delete_policy: DeletePolicy = DeletePolicy.TOMBSTONE,
    ) -> None:
        if batch_size < 1:
            raise ConfigurationError(f"Batch size must be at least 1, got {batch_size}")
        self.store = store
        self.batch_size = batch_size
        self.delete_policy = DeletePolicy(delete_policy)

    def run(self, lines: Iterable[str]) -> ReconcileReport:
        report = ReconcileReport()
        batch: list[WriteOperation] = []
        seen_ids: set[str] = set()

        for product in self._decode(lines):
            report.rows_processed += 1
            batch.append(self._operation_for(product))
            if self.delete_policy is DeletePolicy.FULL_SCAN:
                seen_ids.add(product.id)

            if len(batch) >= self.batch_size:
                self._flush(batch, report)
                batch = []

        if batch:
            self._flush(batch, report)

        if self.delete_policy is DeletePolicy.FULL_SCAN:
            self._delete_missing(seen_ids, report)

        self._log_summary(report)
        return report

    def _decode(self, lines: Iterable[str]) -> Iterator[Product]:
        iterator = iter(lines)
        line_number = 0
        header_seen = False
        while True:
            try:
                line = next(iterator)
            except StopIteration:
                break
            except (OSError, UnicodeDecodeError) as exc:
                raise StreamReadError(f"Failed to read delta stream after line {line_number}: {exc}") from exc
            line_number += 1

            text = line.rstrip("\r\n")
            if not text.strip():
                continue
            if not header_seen:
                header_seen = True
                # Only the column count is checked; field names vary between producers.
                names = [name.strip() for name in text.split(",")]
                if len(names) != len(Product.field_names()) or not all(names):
                    raise MalformedRecordError(f"unexpected header {text!r}", line_number)
                continue
            yield Product.from_csv(text, line_number)

    def _operation_for(self, product: Product) -> WriteOperation:
        if self.delete_policy is DeletePolicy.TOMBSTONE and product.is_deleted:
            return DeleteOne(product.id)
        return UpsertOne(product)

    def _flush(self, batch: list[WriteOperation], report: ReconcileReport) -> BulkWriteResult:
        result = self.store.bulk_write(batch)
        report.batches += 1
        report.metrics.merge(
            Metrics(
                added_count=result.upserted_count,
                updated_count=result.matched_count,
                deleted_count=result.deleted_count,
            )
        )
        logger.debug(
            "Flushed batch %d (%d ops): matched=%d upserted=%d deleted=%d",
            report.batches,
            len(batch),
            result.matched_count,
            result.upserted_count,
            result.deleted_count,
        )
        return result

    def _delete_missing(self, seen_ids: set[str], report: ReconcileReport) -> None:
        missing = sorted(self.store.find_ids() - seen_ids)
        logger.debug("%d stored products are absent from the delta stream", len(missing))
        for chunk in chunked(missing, self.batch_size):
            self._flush([DeleteOne(product_id) for product_id in chunk], report)

    @staticmethod
    def _log_summary(report: ReconcileReport) -> None:
        logger.info("Processed %d CSV rows.", report.rows_processed)
        logger.info("Added %d new products.", report.metrics.added_count)
        logger.info("Updated %d existing products.", report.metrics.updated_count)
        logger.info("Deleted %d products.", report.metrics.deleted_count)
