"""Permission and consent gating for auto-upload.

This module provides:
- PermissionGate: Combines photo-library permission and the onboarding
  consent flag into a single allow/block decision
- LibraryPermission: Read permission on a local photo library folder
- StoredConsent: Consent flag persisted in the SettingsStore

The gate fails closed: a consent state that is still being determined
after the retry budget is treated as blocked, never as allowed.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from autoupload.core.types import ConsentStatus, GateReason

if TYPE_CHECKING:
    from autoupload.client.state import SettingsStore

logger = logging.getLogger(__name__)

GATE_MAX_ATTEMPTS = 10
GATE_RETRY_INTERVAL = 0.5  # seconds


class PermissionState(Protocol):
    """Reports whether the OS grants read access to the photo library."""

    def is_photo_permission_granted(self) -> bool: ...


class ConsentState(Protocol):
    """Reports the application-level onboarding/consent state."""

    def get(self) -> ConsentStatus: ...


@dataclass(frozen=True)
class GateResult:
    """Outcome of a gate check."""

    allowed: bool
    reason: GateReason
    attempts: int = 1


class LibraryPermission:
    """Photo permission backed by filesystem access to the library root."""

    def __init__(self, library_path: Path) -> None:
        self._library_path = Path(library_path)

    def is_photo_permission_granted(self) -> bool:
        path = self._library_path
        return path.is_dir() and os.access(path, os.R_OK | os.X_OK)


class StoredConsent:
    """Consent flag read from the settings store.

    A flag that was never recorded means onboarding has not completed and
    is reported as DENIED.
    """

    def __init__(self, store: SettingsStore) -> None:
        self._store = store

    def get(self) -> ConsentStatus:
        return self._store.get_consent() or ConsentStatus.DENIED


class PermissionGate:
    """Decides whether auto-upload may run.

    Both checks must pass: the OS-level photo permission and the
    application consent flag. A ``checking`` consent state is re-polled at a
    fixed interval up to ``max_attempts`` times.
    """

    def __init__(
        self,
        permission: PermissionState,
        consent: ConsentState,
        max_attempts: int = GATE_MAX_ATTEMPTS,
        retry_interval: float = GATE_RETRY_INTERVAL,
    ) -> None:
        """Initialize the gate.

        Args:
            permission: Photo-library permission source.
            consent: Consent/onboarding state source.
            max_attempts: Maximum consent polls while the state is ``checking``.
            retry_interval: Seconds between polls.
        """
        self._permission = permission
        self._consent = consent
        self._max_attempts = max(1, max_attempts)
        self._retry_interval = retry_interval

    def check_gate(self) -> GateResult:
        """Check whether auto-upload is allowed right now.

        Returns:
            GateResult; ``allowed`` is True only with reason READY.
        """
        try:
            granted = self._permission.is_photo_permission_granted()
        except Exception as e:
            logger.warning(f"Photo permission check failed: {e}")
            return GateResult(False, GateReason.ERROR)

        if not granted:
            logger.info("Auto-upload blocked: photo library permission not granted")
            return GateResult(False, GateReason.PHOTO_PERMISSION_DENIED)

        for attempt in range(1, self._max_attempts + 1):
            try:
                status = self._consent.get()
            except Exception as e:
                logger.warning(f"Consent state check failed: {e}")
                return GateResult(False, GateReason.ERROR, attempt)

            if status in (ConsentStatus.GRANTED, ConsentStatus.READY):
                logger.debug(f"Permission gate open on attempt {attempt}")
                return GateResult(True, GateReason.READY, attempt)

            if status == ConsentStatus.DENIED:
                logger.info("Auto-upload blocked: consent pending")
                return GateResult(False, GateReason.CONSENT_PENDING, attempt)

            if attempt < self._max_attempts:
                logger.debug(
                    f"Consent state still checking "
                    f"(attempt {attempt}/{self._max_attempts}), retrying in {self._retry_interval}s"
                )
                time.sleep(self._retry_interval)

        logger.info(
            f"Auto-upload blocked: consent state undetermined after {self._max_attempts} attempts"
        )
        return GateResult(False, GateReason.CHECKING, self._max_attempts)
