"""Shared types and dataclasses for sync operations.

This module provides:
- SyncError, PhotoReadError: Exception classes
- DevicePhoto, PhotoToUpload: Local photo records
- UploadOutcome: Result of one photo upload (after retries)
- ScanResult: Candidates and counters from one event scan
- SyncRun: Aggregate result of one sync pass

Event, InvalidEventWindow and parse_event_time are re-exported from
autoupload.core.events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from autoupload.core.events import Event, InvalidEventWindow, parse_event_time
from autoupload.core.types import SkipReason


class SyncError(Exception):
    """Base exception for sync errors."""


class PhotoReadError(SyncError):
    """A photo could not be read for upload."""


@dataclass(frozen=True)
class DevicePhoto:
    """A photo found in the device media index."""

    file_path: str
    file_name: str
    captured_at: datetime
    size_bytes: int

    @property
    def path(self) -> Path:
        return Path(self.file_path)


@dataclass(frozen=True)
class PhotoToUpload:
    """A device photo that is absent from the remote catalog."""

    file_path: str
    file_name: str
    captured_at: datetime
    size_bytes: int
    content_hash: str

    @classmethod
    def from_device_photo(cls, photo: DevicePhoto, content_hash: str) -> PhotoToUpload:
        return cls(
            file_path=photo.file_path,
            file_name=photo.file_name,
            captured_at=photo.captured_at,
            size_bytes=photo.size_bytes,
            content_hash=content_hash,
        )


@dataclass
class UploadOutcome:
    """Result of uploading one photo, after in-process retries.

    Attributes:
        success: The service accepted the photo.
        permanent_failure: The service rejected it for cause; do not retry
            blindly on the next pass.
        attempts: Number of upload attempts made.
        media_id: Remote identifier when the service returned one.
        error: Last error description, if any.
    """

    success: bool
    permanent_failure: bool = False
    attempts: int = 0
    media_id: str | None = None
    error: str | None = None

    @property
    def deferred(self) -> bool:
        """Failed transiently; the next pass will pick the photo up again."""
        return not self.success and not self.permanent_failure


@dataclass
class ScanResult:
    """Candidates and counters produced by scanning one event window."""

    candidates: list[PhotoToUpload] = field(default_factory=list)
    in_window: int = 0
    duplicates: int = 0
    unreadable: int = 0


@dataclass
class SyncRun:
    """Aggregate result of one sync pass.

    Attributes:
        user_id: User whose events were processed.
        triggered_at: When the pass started.
        events_total: Events returned by the catalog.
        events_eligible: Events with auto-upload enabled.
        events_scanned: Eligible events whose device scan completed.
        photos_uploaded: Photos accepted by the service.
        photos_failed: Photos permanently rejected by the service.
        photos_deferred: Photos that exhausted transient retries.
        photos_skipped: Photos excluded because they could not be read.
        events_skipped: Ids of eligible events skipped after a remote or
            window error.
        skip_reason: Set when the pass stopped before processing events.
        error: Description of the error behind skip_reason, if any.
        finished_at: When the pass ended.
    """

    user_id: str
    triggered_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    events_total: int = 0
    events_eligible: int = 0
    events_scanned: int = 0
    photos_uploaded: int = 0
    photos_failed: int = 0
    photos_deferred: int = 0
    photos_skipped: int = 0
    events_skipped: list[str] = field(default_factory=list)
    skip_reason: SkipReason | None = None
    error: str | None = None
    finished_at: datetime | None = None

    @property
    def skipped(self) -> bool:
        """Check if the pass stopped before processing any event."""
        return self.skip_reason is not None

    def record(self, outcome: UploadOutcome) -> None:
        """Accumulate one upload outcome."""
        if outcome.success:
            self.photos_uploaded += 1
        elif outcome.permanent_failure:
            self.photos_failed += 1
        else:
            self.photos_deferred += 1

    def finish(self) -> SyncRun:
        self.finished_at = datetime.now(UTC)
        return self

    def summary(self) -> str:
        """One-line human readable summary."""
        if self.skip_reason is not None:
            return f"Sync skipped: {self.skip_reason.value}"
        parts = [
            f"{self.events_scanned}/{self.events_eligible} events scanned",
            f"{self.photos_uploaded} uploaded",
            f"{self.photos_failed} failed",
        ]
        if self.photos_deferred:
            parts.append(f"{self.photos_deferred} deferred")
        if self.photos_skipped:
            parts.append(f"{self.photos_skipped} unreadable")
        if self.events_skipped:
            parts.append(f"{len(self.events_skipped)} events skipped")
        return ", ".join(parts)


__all__ = [
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
]
