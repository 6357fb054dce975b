"""Exception types shared by the catalog services."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for failures raised by the catalog store."""


class RecordNotFoundError(CatalogError):
    """Raised when an operation references an unknown record id."""

    def __init__(self, record_id: int):
        super().__init__(f"Series {record_id} not found")
        self.record_id = record_id


class DuplicateExternalIDError(CatalogError):
    """Raised when a record with the same external identifier already exists."""

    def __init__(self, external_id: str):
        super().__init__(f"Series {external_id} is already in the library")
        self.external_id = external_id


class ExternalUnavailableError(RuntimeError):
    """Base class for failures of the remote metadata capability."""


class MetadataUnavailableError(ExternalUnavailableError):
    """Network, timeout or protocol failure while talking to OMDb."""


class MetadataNotFoundError(ExternalUnavailableError):
    """OMDb answered but reported no matching title."""


class InvalidAPIKeyError(ExternalUnavailableError):
    """OMDb rejected the configured API key."""


class PersistenceError(RuntimeError):
    """Raised when the catalog snapshot cannot be written."""
