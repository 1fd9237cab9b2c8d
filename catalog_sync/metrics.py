from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Metrics:
    added_count: int = 0
    updated_count: int = 0
    deleted_count: int = 0

    @classmethod
    def zero(cls) -> Metrics:
        return cls()

    @classmethod
    def added(cls) -> Metrics:
        return cls(added_count=1)

    @classmethod
    def updated(cls) -> Metrics:
        return cls(updated_count=1)

    @classmethod
    def deleted(cls) -> Metrics:
        return cls(deleted_count=1)

    @property
    def total(self) -> int:
        return self.added_count + self.updated_count + self.deleted_count

    def merge(self, *others: Metrics) -> Metrics:
        for other in others:
            self.added_count += other.added_count
            self.updated_count += other.updated_count
            self.deleted_count += other.deleted_count
        return self
