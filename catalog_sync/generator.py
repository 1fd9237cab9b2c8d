from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import TextIO

from catalog_sync.errors import ConfigurationError
from catalog_sync.events import Clock, EventSimulator, new_product, utc_now
from catalog_sync.metrics import Metrics
from catalog_sync.products import Product
from catalog_sync.store import CatalogStore

logger = logging.getLogger(__name__)

PROGRESS_STEP_PERCENT = 10


@dataclass
class GenerationReport:
    size: int
    metrics: Metrics = field(default_factory=Metrics.zero)
    delta_lines: int = 0

    def percentage(self, count: int) -> float:
        return count * 100 / self.size if self.size else 0.0


def classify_change(base: Product, delta: Product) -> Metrics:
    if delta.id != base.id:
        return Metrics.added()
    if delta.is_deleted:
        return Metrics.deleted()
    if delta.updated_at != base.updated_at:
        return Metrics.updated()
    return Metrics.zero()


class DatasetGenerator:
    def __init__(
        self,
        store: CatalogStore,
        simulator: EventSimulator | None = None,
        rng: random.Random | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.rng = rng or random.Random()
        self.simulator = simulator or EventSimulator(rng=self.rng, clock=clock)
        self.clock = clock

    def prepare(self) -> None:
        self.store.reset()

    def run(self, size: int, out: TextIO) -> GenerationReport:
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise ConfigurationError(f"Catalog size must be a non-negative integer, got {size!r}")

        report = GenerationReport(size=size)
        out.write(Product.csv_header() + "\n")

        created_at = self.clock()
        progress_every = max(1, size * PROGRESS_STEP_PERCENT // 100)
        products: list[Product] = []
        for index in range(size):
            product = new_product(index, created_at, self.rng)
            products.append(product)

            delta = self.simulator.simulate(product, index, size)
            out.write(delta.to_csv() + "\n")
            report.delta_lines += 1
            report.metrics.merge(classify_change(product, delta))

            if index % progress_every == 0:
                logger.debug("Processing %d%%...", index * 100 // size)

        self.store.insert_many(products)
        self._log_summary(report)
        return report

    @staticmethod
    def _log_summary(report: GenerationReport) -> None:
        metrics = report.metrics
        logger.info("%d products inserted in DB.", report.size)
        logger.info("%d products to be added.", metrics.added_count)
        logger.info(
            "%d products to be updated %.2f%%.",
            metrics.updated_count,
            report.percentage(metrics.updated_count),
        )
        logger.info(
            "%d products to be deleted %.2f%%.",
            metrics.deleted_count,
            report.percentage(metrics.deleted_count),
        )
