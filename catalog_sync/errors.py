from __future__ import annotations


class CatalogSyncError(Exception):
    """Base class for every failure raised by catalog_sync."""


class ConfigurationError(CatalogSyncError):
    pass


class MalformedRecordError(CatalogSyncError):
    def __init__(self, message: str, line_number: int | None = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class StreamReadError(CatalogSyncError):
    pass


class StoreWriteError(CatalogSyncError):
    pass
