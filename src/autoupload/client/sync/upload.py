"""Photo upload with bounded retry.

This module provides:
- UploadCatalog: Protocol for the remote upload operations
- UploadExecutor: Uploads one photo, retrying transient blocks

Per attempt: Attempting -> Success | TransientBlock -> Backoff -> Attempting
| PermanentFailure. At most MAX_UPLOAD_ATTEMPTS attempts are made, with
RETRY_DELAYS between them.
"""

from __future__ import annotations

import logging
import platform
import time
from datetime import UTC
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from autoupload.client.api import TransportError
from autoupload.client.credentials import AuthError
from autoupload.client.sync.retry import (
    MAX_UPLOAD_ATTEMPTS,
    RETRY_DELAYS,
    FailureKind,
    classify_failure,
    retry_delay,
)
from autoupload.client.sync.types import PhotoReadError, PhotoToUpload, UploadOutcome

if TYPE_CHECKING:
    from autoupload.client.api import UploadResponse

logger = logging.getLogger(__name__)

UPLOAD_SOURCE = "auto-upload"


class UploadCatalog(Protocol):
    """Remote operations needed for duplicate detection and upload."""

    def list_uploaded_hashes(self, event_id: str) -> set[str]: ...

    def upload(
        self,
        event_id: str,
        file_name: str,
        data: bytes,
        metadata: dict[str, Any],
    ) -> UploadResponse: ...


def default_device_id() -> str:
    """Identifier sent with each upload."""
    return f"python-{platform.node() or 'unknown'}"


def format_capture_time(photo: PhotoToUpload) -> str:
    """ISO-8601 UTC capture time with millisecond precision."""
    captured = photo.captured_at.astimezone(UTC)
    return captured.strftime("%Y-%m-%dT%H:%M:%S.") + f"{captured.microsecond // 1000:03d}Z"


class UploadExecutor:
    """Uploads a single photo, retrying only transient blocks.

    A response classified as inconclusive is retried once; a second
    inconclusive response ends the upload as a permanent failure.

    Usage:
        executor = UploadExecutor(catalog)
        outcome = executor.upload(event.id, photo, event_name=event.name)
    """

    def __init__(
        self,
        catalog: UploadCatalog,
        max_attempts: int = MAX_UPLOAD_ATTEMPTS,
        delays: tuple[float, ...] = RETRY_DELAYS,
        device_id: str | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            catalog: Remote upload catalog.
            max_attempts: Maximum attempts per photo.
            delays: Backoff delays between attempts, in seconds.
            device_id: Identifier sent with each upload.
        """
        self._catalog = catalog
        self._max_attempts = max(1, max_attempts)
        self._delays = delays
        self._device_id = device_id or default_device_id()

    def build_metadata(
        self, photo: PhotoToUpload, event_name: str | None = None
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            "source": UPLOAD_SOURCE,
            "hash": photo.content_hash,
            "originalTimestamp": format_capture_time(photo),
            "deviceId": self._device_id,
        }
        if event_name:
            metadata["eventName"] = event_name
        return metadata

    def upload(
        self,
        event_id: str,
        photo: PhotoToUpload,
        event_name: str | None = None,
    ) -> UploadOutcome:
        """Upload one photo.

        Args:
            event_id: Target event.
            photo: Photo to upload.
            event_name: Event name added to the upload metadata.

        Returns:
            UploadOutcome.

        Raises:
            PhotoReadError: If the photo cannot be read.
        """
        try:
            data = Path(photo.file_path).read_bytes()
        except OSError as e:
            raise PhotoReadError(f"Cannot read {photo.file_path}: {e}") from e

        metadata = self.build_metadata(photo, event_name)
        inconclusive_seen = False
        last_error: str | None = None

        for attempt in range(1, self._max_attempts + 1):
            logger.debug(
                f"Upload attempt {attempt}/{self._max_attempts} for {photo.file_name}"
            )
            try:
                response = self._catalog.upload(event_id, photo.file_name, data, metadata)
            except TransportError as e:
                kind = FailureKind.TRANSIENT
                last_error = str(e)
            except AuthError as e:
                logger.error(f"Upload of {photo.file_name} aborted: {e}")
                return UploadOutcome(False, False, attempt, error=str(e))
            else:
                if response.success:
                    logger.info(
                        f"Uploaded {photo.file_name} to event {event_id} (attempt {attempt})"
                    )
                    return UploadOutcome(True, False, attempt, media_id=response.media_id)

                kind = classify_failure(response)
                last_error = f"HTTP {response.http_status} ({response.content_kind or 'no content type'})"
                if kind == FailureKind.INCONCLUSIVE:
                    kind = FailureKind.PERMANENT if inconclusive_seen else FailureKind.TRANSIENT
                    inconclusive_seen = True

            if kind == FailureKind.PERMANENT:
                logger.error(
                    f"Upload of {photo.file_name} rejected: {last_error}; not retrying"
                )
                return UploadOutcome(False, True, attempt, error=last_error)

            if attempt < self._max_attempts:
                delay = retry_delay(attempt, self._delays)
                logger.warning(
                    f"Transient block uploading {photo.file_name} "
                    f"(attempt {attempt}/{self._max_attempts}): {last_error}. "
                    f"Retrying in {delay:.1f}s..."
                )
                time.sleep(delay)

        logger.error(
            f"Upload of {photo.file_name} still blocked after {self._max_attempts} attempts; "
            "deferring to next sync"
        )
        return UploadOutcome(False, False, self._max_attempts, error=last_error)
