"""Shared configuration classes for autoupload.

This module defines the connection settings for the remote catalog and the
per-user sync settings threaded through every sync pass.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any


@dataclass
class ServerConfig:
    """Configuration for connecting to the remote event/upload catalog.

    Attributes:
        server_url: Base URL of the service (e.g., "https://photos.example.com").
        api_key: Optional project API key sent as the ``apikey`` header.
        timeout: Request timeout in seconds for catalog calls.
        upload_timeout: Request timeout in seconds for photo uploads.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    api_key: str | None = None
    timeout: float = 30.0
    upload_timeout: float = 300.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL."""
        self.server_url = self.server_url.rstrip("/")

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")


@dataclass(frozen=True)
class SyncSettings:
    """Auto-upload settings for one user.

    Read once at the start of a sync pass and passed explicitly to every
    component; a change made while a pass runs only affects the next pass.

    Attributes:
        user_id: Owner of the events to synchronize.
        auto_upload_enabled: Global auto-upload switch.
        wifi_only: Only upload on a wifi-equivalent network.
        background_upload_enabled: Allow periodic background passes.
    """

    user_id: str
    auto_upload_enabled: bool = False
    wifi_only: bool = False
    background_upload_enabled: bool = False

    def with_overrides(self, **changes: Any) -> SyncSettings:
        """Return a copy with the given non-None values applied.

        Args:
            **changes: Field values supplied by the caller.

        Returns:
            New SyncSettings; unknown keys raise TypeError.
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown settings: {', '.join(sorted(unknown))}")
        applied = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **applied)
