"""Scheduling of automatic sync passes.

This module provides:
- SyncScheduler: Triggers a sync pass on foreground transitions, enforcing a
  cooldown between automatic passes, plus an optional periodic background
  job for users who enabled background upload
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

if TYPE_CHECKING:
    from autoupload.client.gate import PermissionGate
    from autoupload.client.sync.engine import EventSyncOrchestrator
    from autoupload.client.sync.types import SyncRun
    from autoupload.core.config import SyncSettings

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN = 30 * 60  # seconds between automatic passes

# Interval jobs fire on the cooldown boundary; absorb clock jitter around it
COOLDOWN_TOLERANCE = 1.0  # seconds

SettingsLoader = Callable[[str | None], "SyncSettings | None"]
SyncCallback = Callable[["SyncRun"], None]


class SyncScheduler:
    """Decides when a sync pass runs.

    Automatic triggers (foreground, background job) respect the cooldown;
    manual triggers bypass it. Every trigger goes through the permission
    gate, and a blocked gate is a silent skip. Only one pass runs at a time.
    """

    def __init__(
        self,
        gate: PermissionGate,
        orchestrator: EventSyncOrchestrator,
        settings_loader: SettingsLoader,
        cooldown: float = DEFAULT_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
        on_complete: SyncCallback | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            gate: Permission/consent gate.
            orchestrator: Runs the sync passes.
            settings_loader: Returns the stored settings for a user id (or the
                stored user when None).
            cooldown: Minimum seconds between two automatic passes.
            clock: Monotonic clock.
            on_complete: Called with each finished SyncRun.
        """
        self._gate = gate
        self._orchestrator = orchestrator
        self._settings_loader = settings_loader
        self._cooldown = cooldown
        self._clock = clock
        self._on_complete = on_complete

        self._lock = threading.Lock()
        self._running = False
        self._last_run_at: float | None = None
        self._last_summary: SyncRun | None = None
        self._scheduler: BackgroundScheduler | None = None

    @property
    def last_sync_summary(self) -> SyncRun | None:
        """Result of the most recent pass, if any."""
        return self._last_summary

    def cooldown_remaining(self) -> float:
        """Seconds until an automatic trigger may run again."""
        with self._lock:
            if self._last_run_at is None:
                return 0.0
            return max(0.0, self._cooldown - (self._clock() - self._last_run_at))

    def on_foreground(self) -> threading.Thread:
        """Handle an app-foreground transition.

        The pass runs on a separate thread so the caller is never blocked.

        Returns:
            The started thread.
        """
        thread = threading.Thread(target=self._run_safely, name="autoupload-sync", daemon=True)
        thread.start()
        return thread

    def run_sync_now(
        self,
        user_id: str | None = None,
        settings_override: dict[str, Any] | None = None,
    ) -> SyncRun | None:
        """Run a pass immediately, bypassing the cooldown."""
        return self.trigger(manual=True, user_id=user_id, settings_override=settings_override)

    def trigger(
        self,
        manual: bool = False,
        user_id: str | None = None,
        settings_override: dict[str, Any] | None = None,
    ) -> SyncRun | None:
        """Run a sync pass if policy allows.

        Args:
            manual: Bypass the cooldown.
            user_id: User to sync (default: stored user).
            settings_override: Values overriding the stored settings.

        Returns:
            The SyncRun, or None if the trigger was skipped.
        """
        with self._lock:
            if self._running:
                logger.debug("Sync already in progress; ignoring trigger")
                return None
            if not manual and self._last_run_at is not None:
                elapsed = self._clock() - self._last_run_at
                if elapsed < self._cooldown - COOLDOWN_TOLERANCE:
                    logger.debug(
                        f"Auto-upload cooldown active ({(self._cooldown - elapsed) / 60:.0f} min remaining)"
                    )
                    return None
            # Stamped on acceptance so gate latency does not shift the cadence
            previous_run_at = self._last_run_at
            self._last_run_at = self._clock()
            self._running = True

        started = False
        try:
            gate = self._gate.check_gate()
            if not gate.allowed:
                logger.info(f"Auto-upload skipped: {gate.reason.value}")
                return None

            settings = self._settings_loader(user_id)
            if settings is None:
                logger.info("Auto-upload skipped: no user configured")
                return None
            if settings_override:
                settings = settings.with_overrides(**settings_override)

            started = True
            run = self._orchestrator.run_sync(settings.user_id, settings)
            self._last_summary = run
            if self._on_complete:
                self._on_complete(run)
            return run
        finally:
            with self._lock:
                if not started:
                    # A skipped trigger does not consume the cooldown
                    self._last_run_at = previous_run_at
                self._running = False

    def _run_safely(self) -> None:
        try:
            self.trigger()
        except Exception:
            logger.exception("Error during automatic sync")

    def _background_job(self) -> None:
        """Job function for the periodic background pass."""
        settings = self._settings_loader(None)
        if settings is None or not settings.background_upload_enabled:
            logger.debug("Background upload disabled; skipping scheduled pass")
            return
        self._run_safely()

    def start_background(self, interval: float | None = None) -> None:
        """Start the periodic background job.

        Args:
            interval: Seconds between job runs (default: the cooldown).
        """
        if self._scheduler is not None:
            return  # Already running

        seconds = interval or self._cooldown
        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._background_job,
            trigger=IntervalTrigger(seconds=seconds),
            id="background_sync",
            name="Background auto-upload",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        logger.info(f"Background sync scheduler started (every {seconds:.0f}s)")

    def stop(self, wait: bool = False) -> None:
        """Stop the background job.

        Args:
            wait: Block until a running background pass has finished.
        """
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=wait)
            self._scheduler = None
            logger.info("Background sync scheduler stopped")
