"""Device photo scanning for an event window.

This module provides:
- DevicePhotoScanner: Finds device photos captured during an event that are
  absent from the remote catalog
- sanitize_file_name: Makes a file name safe to send as an upload name
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING

from autoupload.client.sync.types import PhotoToUpload, ScanResult
from autoupload.core.hashing import ContentHasher, HashError

if TYPE_CHECKING:
    from collections.abc import Collection

    from autoupload.client.media import DeviceMediaIndex

logger = logging.getLogger(__name__)

# Photos must be strictly larger than this (thumbnails, cache artifacts)
MIN_PHOTO_SIZE_BYTES = 1000


def sanitize_file_name(name: str) -> str:
    """Replace path separators and control characters with underscores."""
    cleaned = "".join(
        "_" if c in "/\\" or ord(c) < 32 or c == "\x7f" else c for c in name
    ).strip()
    return cleaned or "photo"


class DevicePhotoScanner:
    """Scans the device media index for photos to upload."""

    def __init__(
        self,
        media_index: DeviceMediaIndex,
        hasher: ContentHasher | None = None,
        min_size_bytes: int = MIN_PHOTO_SIZE_BYTES,
    ) -> None:
        """Initialize the scanner.

        Args:
            media_index: Local media store.
            hasher: Content hasher (default SHA-256).
            min_size_bytes: Photos of this size or smaller are ignored.
        """
        self._media_index = media_index
        self._hasher = hasher or ContentHasher()
        self._min_size_bytes = min_size_bytes

    def scan(
        self,
        start: datetime,
        end: datetime,
        exclude_hashes: Collection[str],
    ) -> list[PhotoToUpload]:
        """Return photos captured in [start, end] whose hash is not excluded."""
        return self.scan_with_stats(start, end, exclude_hashes).candidates

    def scan_with_stats(
        self,
        start: datetime,
        end: datetime,
        exclude_hashes: Collection[str],
    ) -> ScanResult:
        """Scan an inclusive capture window.

        Unreadable photos are excluded and counted; they are never treated
        as duplicates or as new. Identical copies within the window yield a
        single candidate.

        Args:
            start: Window start (inclusive).
            end: Window end (inclusive).
            exclude_hashes: Content hashes already present remotely.

        Returns:
            ScanResult with candidates newest first.
        """
        result = ScanResult()
        photos = self._media_index.query(start, end, self._min_size_bytes)
        excluded = {h.lower() for h in exclude_hashes}
        seen: set[str] = set()

        for photo in sorted(photos, key=lambda p: p.captured_at, reverse=True):
            if not start <= photo.captured_at <= end:
                continue
            if photo.size_bytes <= self._min_size_bytes:
                continue
            result.in_window += 1

            try:
                content_hash = self._hasher.hash_file(photo.file_path)
            except HashError as e:
                logger.warning(f"Excluding unreadable photo: {e}")
                result.unreadable += 1
                continue

            if content_hash in excluded or content_hash in seen:
                logger.debug(f"Duplicate: {photo.file_name} ({content_hash[:12]}...)")
                result.duplicates += 1
                continue

            seen.add(content_hash)
            candidate = PhotoToUpload.from_device_photo(photo, content_hash)
            result.candidates.append(
                replace(candidate, file_name=sanitize_file_name(photo.file_name))
            )
            logger.debug(f"New photo: {photo.file_name} ({content_hash[:12]}...)")

        logger.info(
            f"Scan {start.isoformat()} - {end.isoformat()}: "
            f"{len(result.candidates)}/{result.in_window} new, "
            f"{result.duplicates} duplicates, {result.unreadable} unreadable"
        )
        return result
