"""Sync engine coordinating event-based auto-upload.

This module provides:
- EventCatalog: Protocol for reading the user's events
- EventSyncOrchestrator: Runs one sync pass over all eligible events

A pass processes events strictly one after another: build the duplicate
index, scan the device, upload each candidate. A failure on one event is
recorded in the SyncRun and the loop moves on to the next event.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Protocol

from autoupload.client.api import APIError, TransportError
from autoupload.client.credentials import AuthError
from autoupload.client.network import NetworkClassifier
from autoupload.client.sync.dedup import DuplicateIndex, IndexBuildError
from autoupload.client.sync.retry import retry_with_backoff
from autoupload.client.sync.scanner import DevicePhotoScanner
from autoupload.client.sync.types import (
    Event,
    InvalidEventWindow,
    PhotoReadError,
    SyncRun,
)
from autoupload.client.sync.upload import UploadCatalog, UploadExecutor
from autoupload.core.types import SkipReason

if TYPE_CHECKING:
    from autoupload.client.credentials import CredentialProvider
    from autoupload.client.media import DeviceMediaIndex
    from autoupload.core.config import SyncSettings

logger = logging.getLogger(__name__)

# Pause between two uploads of the same event
INTER_UPLOAD_DELAY = 0.5  # seconds


class EventCatalog(Protocol):
    """Remote operation listing a user's events."""

    def list_user_events(self, user_id: str) -> list[Event]: ...


class RemoteCatalog(EventCatalog, UploadCatalog, Protocol):
    """Event and upload catalog served by the same remote service."""


class EventSyncOrchestrator:
    """Runs sync passes for a user."""

    def __init__(
        self,
        catalog: RemoteCatalog,
        media_index: DeviceMediaIndex,
        credentials: CredentialProvider,
        network: NetworkClassifier | None = None,
        duplicate_index: DuplicateIndex | None = None,
        scanner: DevicePhotoScanner | None = None,
        executor: UploadExecutor | None = None,
        inter_upload_delay: float = INTER_UPLOAD_DELAY,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            catalog: Remote event and upload catalog.
            media_index: Local media store.
            credentials: Bearer token source, checked before each pass.
            network: Network classifier used by the WiFi-only policy.
            duplicate_index: Duplicate index builder (default over catalog).
            scanner: Device photo scanner (default over media_index).
            executor: Upload executor (default over catalog).
            inter_upload_delay: Seconds to wait between two uploads.
        """
        self._catalog = catalog
        self._credentials = credentials
        self._network = network or NetworkClassifier()
        self._duplicate_index = duplicate_index or DuplicateIndex(catalog)
        self._scanner = scanner or DevicePhotoScanner(media_index)
        self._executor = executor or UploadExecutor(catalog)
        self._inter_upload_delay = inter_upload_delay

    def run_sync(self, user_id: str, settings: SyncSettings) -> SyncRun:
        """Run one sync pass.

        Never raises: policy blocks and remote failures are reported through
        the returned SyncRun.

        Args:
            user_id: User whose events to process.
            settings: Settings read once for this pass.

        Returns:
            SyncRun with aggregated counters.
        """
        run = SyncRun(user_id=user_id)

        if not settings.auto_upload_enabled:
            logger.info("Auto-upload disabled; skipping sync")
            run.skip_reason = SkipReason.AUTO_UPLOAD_DISABLED
            return run.finish()

        if settings.wifi_only:
            network = self._network.classify()
            if not network.is_wifi_equivalent:
                logger.info(
                    f"WiFi-only upload enabled but network is {network.primary_class.value}; skipping sync"
                )
                run.skip_reason = SkipReason.WIFI_REQUIRED
                return run.finish()

        try:
            self._credentials.get_bearer_token()
        except AuthError as e:
            logger.warning(f"Cannot sync without credentials: {e}")
            run.skip_reason = SkipReason.AUTH_FAILED
            run.error = str(e)
            return run.finish()

        try:
            events: list[Event] = retry_with_backoff(
                lambda: self._catalog.list_user_events(user_id),
                retryable_exceptions=(TransportError,),
            )
        except (APIError, AuthError) as e:
            logger.error(f"Failed to fetch events for user {user_id}: {e}")
            run.skip_reason = SkipReason.EVENT_LIST_FAILED
            run.error = str(e)
            return run.finish()

        eligible = [event for event in events if event.auto_upload_enabled]
        run.events_total = len(events)
        run.events_eligible = len(eligible)
        logger.info(
            f"Sync pass for user {user_id}: {len(eligible)}/{len(events)} events eligible"
        )

        for position, event in enumerate(eligible, start=1):
            logger.info(f"Processing event {position}/{len(eligible)}: {event.name}")
            try:
                self._process_event(event, run)
            except Exception:
                logger.exception(f"Unexpected error processing event {event.id}")
                run.events_skipped.append(event.id)

        run.finish()
        logger.info(f"Sync pass complete: {run.summary()}")
        return run

    def _process_event(self, event: Event, run: SyncRun) -> None:
        try:
            start, end = event.window()
        except InvalidEventWindow as e:
            logger.warning(f"Skipping event {event.name}: {e}")
            run.events_skipped.append(event.id)
            return

        try:
            uploaded_hashes = self._duplicate_index.build_index(event.id)
        except IndexBuildError as e:
            logger.error(f"Skipping event {event.name}: {e}")
            run.events_skipped.append(event.id)
            return

        scan = self._scanner.scan_with_stats(start, end, uploaded_hashes)
        run.events_scanned += 1
        run.photos_skipped += scan.unreadable

        for index, photo in enumerate(scan.candidates):
            if index > 0 and self._inter_upload_delay > 0:
                time.sleep(self._inter_upload_delay)
            try:
                outcome = self._executor.upload(event.id, photo, event_name=event.name)
            except PhotoReadError as e:
                logger.warning(f"Excluding photo: {e}")
                run.photos_skipped += 1
                continue
            except Exception:
                logger.exception(f"Unexpected error uploading {photo.file_name}")
                run.photos_skipped += 1
                continue
            run.record(outcome)

        logger.info(
            f"Event {event.name}: {len(scan.candidates)} candidates, "
            f"{scan.duplicates} already uploaded"
        )
