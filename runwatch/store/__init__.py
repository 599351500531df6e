"""State and cache-metadata persistence."""

from __future__ import annotations

from .errors import TimezoneAwareRequiredError
from .repository import CacheMetadata, CacheMetadataStore, StateStore, StoredState, ping
from .storage import Base, CacheMetadataRecord, WorkflowStateRecord, init_storage

__all__ = [
    "Base",
    "CacheMetadata",
    "CacheMetadataRecord",
    "CacheMetadataStore",
    "StateStore",
    "StoredState",
    "TimezoneAwareRequiredError",
    "WorkflowStateRecord",
    "init_storage",
    "ping",
]
