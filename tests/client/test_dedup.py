"""Tests for the duplicate index."""

from unittest.mock import MagicMock, patch

import pytest

from autoupload.client.api import APIError, TransportError
from autoupload.client.sync.dedup import DuplicateIndex, IndexBuildError


class TestDuplicateIndex:
    """Tests for DuplicateIndex.build_index."""

    def test_returns_lowercase_hashes(self) -> None:
        """Hashes should be normalized to lowercase."""
        catalog = MagicMock()
        catalog.list_uploaded_hashes.return_value = {"ABC", "def", ""}
        assert DuplicateIndex(catalog).build_index("e1") == {"abc", "def"}
        catalog.list_uploaded_hashes.assert_called_once_with("e1")

    def test_not_cached(self) -> None:
        """Every call should query the catalog again."""
        catalog = MagicMock()
        catalog.list_uploaded_hashes.side_effect = [set(), {"abc"}]
        index = DuplicateIndex(catalog)
        assert index.build_index("e1") == set()
        assert index.build_index("e1") == {"abc"}

    def test_remote_error_raises(self) -> None:
        """A failing catalog should raise, never yield an empty set."""
        catalog = MagicMock()
        catalog.list_uploaded_hashes.side_effect = APIError("HTTP 500", 500)
        with pytest.raises(IndexBuildError) as exc_info:
            DuplicateIndex(catalog).build_index("e1")
        assert exc_info.value.event_id == "e1"

    def test_transport_error_retried(self) -> None:
        """Connection failures should be retried before giving up."""
        catalog = MagicMock()
        catalog.list_uploaded_hashes.side_effect = [TransportError("reset"), {"abc"}]
        with patch("autoupload.client.sync.retry.time.sleep"):
            assert DuplicateIndex(catalog).build_index("e1") == {"abc"}

    def test_transport_error_exhausted(self) -> None:
        """Persistent connection failures should raise IndexBuildError."""
        catalog = MagicMock()
        catalog.list_uploaded_hashes.side_effect = TransportError("down")
        with patch("autoupload.client.sync.retry.time.sleep"), pytest.raises(IndexBuildError):
            DuplicateIndex(catalog, max_retries=1).build_index("e1")
        assert catalog.list_uploaded_hashes.call_count == 2
