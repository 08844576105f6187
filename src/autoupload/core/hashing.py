"""Content hashing for duplicate detection.

This module provides:
- ContentHasher: streaming SHA-256 digest of photo content
- HashError: raised when a file cannot be read
"""

from __future__ import annotations

import hashlib
from pathlib import Path

HASH_BLOCK_SIZE = 8192  # bytes read per iteration


class HashError(Exception):
    """A photo could not be read for hashing."""

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path = str(path)
        super().__init__(f"Cannot hash {path}: {reason}")


class ContentHasher:
    """Computes the content hash used as the sole duplicate-detection key.

    The digest is a lowercase hexadecimal SHA-256 of the full byte content.
    Files are read in fixed-size blocks so memory stays bounded regardless
    of image size.
    """

    algorithm = "sha256"

    def __init__(self, block_size: int = HASH_BLOCK_SIZE) -> None:
        self._block_size = block_size

    def hash_bytes(self, data: bytes) -> str:
        """Hash an in-memory buffer."""
        return hashlib.sha256(data).hexdigest()

    def hash_file(self, path: Path | str) -> str:
        """Hash a file by streaming its content.

        Args:
            path: Path to the file to hash.

        Returns:
            Hexadecimal SHA-256 hash string.

        Raises:
            HashError: If the file is missing or unreadable.
        """
        hasher = hashlib.sha256()
        try:
            with open(path, "rb") as f:
                for block in iter(lambda: f.read(self._block_size), b""):
                    hasher.update(block)
        except OSError as e:
            raise HashError(path, e.strerror or str(e)) from e
        return hasher.hexdigest()
