from __future__ import annotations

import random
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable
from uuid import UUID, uuid4

from catalog_sync.errors import ConfigurationError
from catalog_sync.products import Product

Clock = Callable[[], datetime]

MAX_PRICE_CENTS = 100_000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id(rng: random.Random | None = None) -> str:
    if rng is None:
        return str(uuid4())
    return str(UUID(int=rng.getrandbits(128), version=4))


class ProductEvent(str, Enum):
    DELETE = "delete"
    UPDATE = "update"
    ADD = "add"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class EventRange:
    event: ProductEvent
    start: int
    end: int

    def __contains__(self, sample: float) -> bool:
        return self.start <= sample < self.end

    @property
    def width(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class EventWeights:
    """Widths, in percent, of the outcome ranges that partition [0, 100).

    The ranges are laid out in a fixed order (delete, update, add, unchanged)
    and their boundaries are always derived from the widths, so changing one
    width shifts every boundary after it.
    """

    delete: int = 10
    update: int = 10
    add: int = 20
    unchanged: int = 60

    def __post_init__(self) -> None:
        widths = self.widths()
        negative = [event.value for event, width in widths if width < 0]
        if negative:
            raise ConfigurationError(f"Event weights must be non-negative: {', '.join(negative)}")
        total = sum(width for _, width in widths)
        if total != 100:
            raise ConfigurationError(f"Event weights must sum to 100, got {total}")

    def widths(self) -> list[tuple[ProductEvent, int]]:
        return [
            (ProductEvent.DELETE, self.delete),
            (ProductEvent.UPDATE, self.update),
            (ProductEvent.ADD, self.add),
            (ProductEvent.UNCHANGED, self.unchanged),
        ]

    def ranges(self) -> list[EventRange]:
        ranges: list[EventRange] = []
        start = 0
        for event, width in self.widths():
            ranges.append(EventRange(event=event, start=start, end=start + width))
            start += width
        return ranges

    def event_for(self, sample: float) -> ProductEvent:
        if not 0 <= sample < 100:
            raise ValueError(f"Sample {sample} is outside [0, 100)")
        for event_range in self.ranges():
            if sample in event_range:
                return event_range.event
        raise AssertionError("event ranges do not cover [0, 100)")


def generate_price(rng: random.Random) -> Decimal:
    cents = round(rng.random() * MAX_PRICE_CENTS)
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


def new_product(index: int, created_at: datetime, rng: random.Random) -> Product:
    return Product(
        id=new_id(rng),
        label=f"Product_{index}",
        price=generate_price(rng),
        created_at=created_at,
        updated_at=created_at,
    )


class EventSimulator:
    def __init__(
        self,
        weights: EventWeights | None = None,
        rng: random.Random | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.weights = weights or EventWeights()
        self.rng = rng or random.Random()
        self.clock = clock

    def draw(self) -> ProductEvent:
        return self.weights.event_for(self.rng.random() * 100)

    def simulate(self, product: Product, index: int, catalog_size: int) -> Product:
        return self.apply(self.draw(), product, index, catalog_size)

    def apply(self, event: ProductEvent, product: Product, index: int, catalog_size: int) -> Product:
        label = f"Product_{index + catalog_size}"

        if event is ProductEvent.DELETE:
            # updated_at stays on created_at; only the tombstone carries "now".
            return replace(
                product,
                label=label,
                price=generate_price(self.rng),
                updated_at=product.created_at,
                deleted_at=self.clock(),
            )
        if event is ProductEvent.UPDATE:
            return replace(
                product,
                label=label,
                price=generate_price(self.rng),
                updated_at=self.clock(),
                deleted_at=None,
            )
        if event is ProductEvent.ADD:
            return new_product(index + catalog_size, self.clock(), self.rng)
        return product
