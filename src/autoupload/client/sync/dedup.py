"""Remote duplicate index.

This module provides:
- DuplicateIndex: Builds the set of content hashes already uploaded to an
  event, fresh for every pass
- IndexBuildError: Raised when the remote catalog cannot be read
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from autoupload.client.api import APIError, TransportError
from autoupload.client.credentials import AuthError
from autoupload.client.sync.retry import DEFAULT_MAX_RETRIES, retry_with_backoff
from autoupload.client.sync.types import SyncError

if TYPE_CHECKING:
    from autoupload.client.sync.upload import UploadCatalog

logger = logging.getLogger(__name__)


class IndexBuildError(SyncError):
    """The uploaded-hash list for an event could not be fetched."""

    def __init__(self, event_id: str, reason: str) -> None:
        self.event_id = event_id
        super().__init__(f"Cannot build duplicate index for event {event_id}: {reason}")


class DuplicateIndex:
    """Queries the remote catalog for hashes already uploaded to an event.

    Never cached: the index must reflect remote state at scan time. A failure
    is raised, never replaced by an empty or full set.
    """

    def __init__(self, catalog: UploadCatalog, max_retries: int = DEFAULT_MAX_RETRIES) -> None:
        """Initialize the index builder.

        Args:
            catalog: Remote catalog.
            max_retries: Retries on connection failures before giving up.
        """
        self._catalog = catalog
        self._max_retries = max_retries

    def build_index(self, event_id: str) -> set[str]:
        """Fetch the uploaded content hashes of one event.

        Returns:
            Set of lowercase hexadecimal content hashes.

        Raises:
            IndexBuildError: If the catalog request fails.
        """
        try:
            hashes = retry_with_backoff(
                lambda: self._catalog.list_uploaded_hashes(event_id),
                max_retries=self._max_retries,
                retryable_exceptions=(TransportError,),
            )
        except (APIError, AuthError) as e:
            raise IndexBuildError(event_id, str(e)) from e

        index = {h.lower() for h in hashes if h}
        logger.debug(f"Duplicate index for event {event_id}: {len(index)} hashes")
        return index
