"""Core module - Shared configuration, hashing and types."""

from autoupload.core.config import ServerConfig, SyncSettings
from autoupload.core.events import Event, InvalidEventWindow, parse_event_time
from autoupload.core.hashing import HASH_BLOCK_SIZE, ContentHasher, HashError
from autoupload.core.types import (
    ConsentStatus,
    GateReason,
    NetworkClass,
    SkipReason,
)

__all__ = [
    # Config
    "ServerConfig",
    "SyncSettings",
    # Events
    "Event",
    "InvalidEventWindow",
    "parse_event_time",
    # Hashing
    "HASH_BLOCK_SIZE",
    "ContentHasher",
    "HashError",
    # Types
    "ConsentStatus",
    "GateReason",
    "NetworkClass",
    "SkipReason",
]
