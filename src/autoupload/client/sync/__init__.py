"""Event-based auto-upload.

Architecture:
    SyncScheduler → PermissionGate → EventSyncOrchestrator → per event:
    DuplicateIndex → DevicePhotoScanner → UploadExecutor

Components:
- **SyncScheduler**: Foreground/background triggers, cooldown, overlap guard
- **EventSyncOrchestrator**: One sync pass over the user's eligible events
- **DuplicateIndex**: Content hashes already uploaded to an event
- **DevicePhotoScanner**: Device photos inside an event window, not yet uploaded
- **UploadExecutor**: Single photo upload with transient-block retry
"""

from autoupload.client.sync.dedup import DuplicateIndex, IndexBuildError
from autoupload.client.sync.engine import (
    INTER_UPLOAD_DELAY,
    EventCatalog,
    EventSyncOrchestrator,
    RemoteCatalog,
)
from autoupload.client.sync.retry import (
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_INITIAL_BACKOFF,
    DEFAULT_MAX_BACKOFF,
    DEFAULT_MAX_RETRIES,
    MAX_UPLOAD_ATTEMPTS,
    RETRY_DELAYS,
    FailureKind,
    classify_failure,
    retry_delay,
    retry_with_backoff,
)
from autoupload.client.sync.scanner import (
    MIN_PHOTO_SIZE_BYTES,
    DevicePhotoScanner,
    sanitize_file_name,
)
from autoupload.client.sync.scheduler import DEFAULT_COOLDOWN, SyncScheduler
from autoupload.client.sync.types import (
    DevicePhoto,
    Event,
    InvalidEventWindow,
    PhotoReadError,
    PhotoToUpload,
    ScanResult,
    SyncError,
    SyncRun,
    UploadOutcome,
    parse_event_time,
)
from autoupload.client.sync.upload import UploadCatalog, UploadExecutor

__all__ = [
    # Retry functions and constants
    "DEFAULT_BACKOFF_MULTIPLIER",
    "DEFAULT_INITIAL_BACKOFF",
    "DEFAULT_MAX_BACKOFF",
    "DEFAULT_MAX_RETRIES",
    "MAX_UPLOAD_ATTEMPTS",
    "RETRY_DELAYS",
    "FailureKind",
    "classify_failure",
    "retry_delay",
    "retry_with_backoff",
    # Types and dataclasses
    "DevicePhoto",
    "Event",
    "InvalidEventWindow",
    "PhotoReadError",
    "PhotoToUpload",
    "ScanResult",
    "SyncError",
    "SyncRun",
    "UploadOutcome",
    "parse_event_time",
    # Pipeline
    "DuplicateIndex",
    "IndexBuildError",
    "MIN_PHOTO_SIZE_BYTES",
    "DevicePhotoScanner",
    "sanitize_file_name",
    "UploadCatalog",
    "UploadExecutor",
    "INTER_UPLOAD_DELAY",
    "EventCatalog",
    "EventSyncOrchestrator",
    "RemoteCatalog",
    # Scheduling
    "DEFAULT_COOLDOWN",
    "SyncScheduler",
]
