"""Device media index backed by a local photo library folder.

This module provides:
- DeviceMediaIndex: Protocol for querying photos by capture time
- FolderMediaIndex: Walks a library folder and reads capture times from
  EXIF (DateTimeOriginal), falling back to the file modification time
"""

from __future__ import annotations

import logging
import os
from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path
from typing import Protocol

from PIL import ExifTags, Image

from autoupload.client.sync.types import DevicePhoto

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset(
    {".jpg", ".jpeg", ".png", ".heic", ".heif", ".webp", ".gif", ".tif", ".tiff", ".dng"}
)

DATETIME_ORIGINAL_TAG = next(
    (tag for tag, name in ExifTags.TAGS.items() if name == "DateTimeOriginal"), None
)
OFFSET_TIME_ORIGINAL_TAG = next(
    (tag for tag, name in ExifTags.TAGS.items() if name == "OffsetTimeOriginal"), None
)


class DeviceMediaIndex(Protocol):
    """Local media store queried by capture timestamp."""

    def query(
        self, start: datetime, end: datetime, min_size_bytes: int
    ) -> list[DevicePhoto]:
        """Return photos captured within [start, end] larger than min_size_bytes."""
        ...


def _parse_exif_datetime(raw: str, offset: str | None) -> datetime | None:
    for pattern in ("%Y:%m:%d %H:%M:%S", "%Y-%m-%d %H:%M:%S"):
        try:
            parsed = datetime.strptime(raw.strip(), pattern)
            break
        except ValueError:
            continue
    else:
        return None

    tz = _parse_offset(offset) if offset else None
    if tz is not None:
        return parsed.replace(tzinfo=tz).astimezone(UTC)
    # Camera clock without offset: local time of this device
    return parsed.astimezone(UTC)


def _parse_offset(offset: str) -> timezone | None:
    text = offset.strip()
    if len(text) != 6 or text[0] not in "+-" or text[3] != ":":
        return None
    try:
        hours, minutes = int(text[1:3]), int(text[4:6])
    except ValueError:
        return None
    delta = timedelta(hours=hours, minutes=minutes)
    return timezone(delta if text[0] == "+" else -delta)


def read_capture_time(path: Path) -> datetime:
    """Return the capture time of an image as an aware UTC datetime.

    Uses EXIF DateTimeOriginal (with OffsetTimeOriginal when present);
    falls back to the file modification time.

    Raises:
        OSError: If the file cannot be stat'ed.
    """
    if DATETIME_ORIGINAL_TAG is not None:
        try:
            with Image.open(path) as image:
                exif = image.getexif()
                # DateTimeOriginal lives in the Exif IFD
                exif_ifd = exif.get_ifd(ExifTags.IFD.Exif) if exif else {}
                raw_value = exif_ifd.get(DATETIME_ORIGINAL_TAG) or exif.get(DATETIME_ORIGINAL_TAG)
                offset = exif_ifd.get(OFFSET_TIME_ORIGINAL_TAG) if OFFSET_TIME_ORIGINAL_TAG else None
            if raw_value:
                parsed = _parse_exif_datetime(str(raw_value), str(offset) if offset else None)
                if parsed is not None:
                    return parsed
        except (OSError, ValueError, SyntaxError) as e:
            logger.debug(f"No EXIF capture time for {path.name}: {e}")

    return datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)


class FolderMediaIndex:
    """Media index over a folder of photos (searched recursively).

    Hidden files and directories are skipped.
    """

    def __init__(
        self,
        root: Path,
        extensions: frozenset[str] = IMAGE_EXTENSIONS,
    ) -> None:
        self._root = Path(root)
        self._extensions = extensions

    @property
    def root(self) -> Path:
        return self._root

    def _iter_files(self) -> list[Path]:
        files: list[Path] = []
        for dirpath, dirnames, filenames in os.walk(self._root):
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]
            for filename in filenames:
                if filename.startswith("."):
                    continue
                if Path(filename).suffix.lower() in self._extensions:
                    files.append(Path(dirpath) / filename)
        return files

    def query(
        self, start: datetime, end: datetime, min_size_bytes: int
    ) -> list[DevicePhoto]:
        """Return photos captured within [start, end], newest first.

        Files of ``min_size_bytes`` or less are left out.
        """
        photos: list[DevicePhoto] = []
        for path in self._iter_files():
            try:
                size = path.stat().st_size
                if size <= min_size_bytes:
                    continue
                captured_at = read_capture_time(path)
            except OSError as e:
                logger.debug(f"Skipping {path}: {e}")
                continue
            if start <= captured_at <= end:
                photos.append(
                    DevicePhoto(
                        file_path=str(path),
                        file_name=path.name,
                        captured_at=captured_at,
                        size_bytes=size,
                    )
                )
        photos.sort(key=lambda p: p.captured_at, reverse=True)
        logger.debug(
            f"Media index query {start.isoformat()} - {end.isoformat()}: {len(photos)} photos"
        )
        return photos
