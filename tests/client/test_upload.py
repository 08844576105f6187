"""Tests for the upload executor."""

from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from autoupload.client.api import TransportError, UploadResponse
from autoupload.client.credentials import AuthError
from autoupload.client.sync.types import DevicePhoto, PhotoReadError, PhotoToUpload
from autoupload.client.sync.upload import UploadExecutor, format_capture_time
from autoupload.core.hashing import ContentHasher

SLEEP = "autoupload.client.sync.upload.time.sleep"

HTML_403 = UploadResponse(
    success=False,
    error_body="<html><title>Attention Required! | Cloudflare</title></html>",
    http_status=403,
    content_kind="text/html",
)
JSON_403 = UploadResponse(
    success=False,
    error_body='{"error": "Uploads closed for this event"}',
    http_status=403,
    content_kind="application/json",
)
OPAQUE_500 = UploadResponse(
    success=False, error_body="upstream failure", http_status=500, content_kind="text/plain"
)


@pytest.fixture
def photo(make_photo: Callable[..., DevicePhoto]) -> PhotoToUpload:
    """Create a photo ready to upload."""
    device_photo = make_photo(datetime(2025, 6, 1, 12, 30, 15, 123456, tzinfo=UTC))
    content_hash = ContentHasher().hash_file(device_photo.file_path)
    return PhotoToUpload.from_device_photo(device_photo, content_hash)


class TestUploadExecutor:
    """Tests for UploadExecutor.upload."""

    def test_success_first_attempt(self, catalog, photo: PhotoToUpload) -> None:  # type: ignore[no-untyped-def]
        """A successful upload should take one attempt and no sleep."""
        executor = UploadExecutor(catalog, device_id="dev1")
        with patch(SLEEP) as mock_sleep:
            outcome = executor.upload("e1", photo, event_name="Wedding")

        assert outcome.success is True
        assert outcome.attempts == 1
        assert outcome.media_id == "media-1"
        mock_sleep.assert_not_called()

        event_id, file_name, metadata = catalog.upload_calls[0]
        assert event_id == "e1"
        assert file_name == photo.file_name
        assert metadata == {
            "source": "auto-upload",
            "hash": photo.content_hash,
            "originalTimestamp": "2025-06-01T12:30:15.123Z",
            "deviceId": "dev1",
            "eventName": "Wedding",
        }

    def test_html_block_retried_then_success(self, catalog, photo: PhotoToUpload) -> None:  # type: ignore[no-untyped-def]
        """Two HTML 403s then a 200 should succeed on attempt 3 after 1s + 2s."""
        catalog.responses = [HTML_403, HTML_403]
        executor = UploadExecutor(catalog)
        with patch(SLEEP) as mock_sleep:
            outcome = executor.upload("e1", photo)

        assert outcome.success is True
        assert outcome.attempts == 3
        delays = [c.args[0] for c in mock_sleep.call_args_list]
        assert delays == [1.0, 2.0]
        assert sum(delays) >= 3.0

    def test_json_rejection_is_permanent(self, catalog, photo: PhotoToUpload) -> None:  # type: ignore[no-untyped-def]
        """A structured JSON 403 should stop after one attempt."""
        catalog.responses = [JSON_403]
        executor = UploadExecutor(catalog)
        with patch(SLEEP) as mock_sleep:
            outcome = executor.upload("e1", photo)

        assert outcome.success is False
        assert outcome.permanent_failure is True
        assert outcome.attempts == 1
        assert len(catalog.upload_calls) == 1
        mock_sleep.assert_not_called()

    def test_persistent_block_is_deferred(self, catalog, photo: PhotoToUpload) -> None:  # type: ignore[no-untyped-def]
        """Three transient blocks should give up without marking permanent."""
        catalog.responses = [HTML_403, HTML_403, HTML_403]
        executor = UploadExecutor(catalog)
        with patch(SLEEP) as mock_sleep:
            outcome = executor.upload("e1", photo)

        assert outcome.success is False
        assert outcome.permanent_failure is False
        assert outcome.deferred is True
        assert outcome.attempts == 3
        assert len(catalog.upload_calls) == 3
        assert mock_sleep.call_count == 2

    def test_inconclusive_retried_once(self, catalog, photo: PhotoToUpload) -> None:  # type: ignore[no-untyped-def]
        """A second inconclusive response should end as permanent."""
        catalog.responses = [OPAQUE_500, OPAQUE_500]
        executor = UploadExecutor(catalog)
        with patch(SLEEP):
            outcome = executor.upload("e1", photo)

        assert outcome.permanent_failure is True
        assert outcome.attempts == 2

    def test_transport_error_is_transient(self, photo: PhotoToUpload) -> None:
        """Connection failures should be retried."""

        class FlakyCatalog:
            calls = 0

            def list_uploaded_hashes(self, event_id: str) -> set[str]:
                return set()

            def upload(self, event_id, file_name, data, metadata):  # type: ignore[no-untyped-def]
                self.calls += 1
                if self.calls == 1:
                    raise TransportError("timeout")
                return UploadResponse(success=True, http_status=200)

        flaky = FlakyCatalog()
        with patch(SLEEP):
            outcome = UploadExecutor(flaky).upload("e1", photo)

        assert outcome.success is True
        assert outcome.attempts == 2

    def test_auth_error_defers(self, photo: PhotoToUpload) -> None:
        """Missing credentials should stop without retrying or marking permanent."""

        class NoAuthCatalog:
            def list_uploaded_hashes(self, event_id: str) -> set[str]:
                return set()

            def upload(self, event_id, file_name, data, metadata):  # type: ignore[no-untyped-def]
                raise AuthError("no token")

        with patch(SLEEP) as mock_sleep:
            outcome = UploadExecutor(NoAuthCatalog()).upload("e1", photo)

        assert outcome.deferred is True
        assert outcome.attempts == 1
        mock_sleep.assert_not_called()

    def test_unreadable_photo_raises(self, catalog, photo: PhotoToUpload) -> None:  # type: ignore[no-untyped-def]
        """A photo deleted before upload should raise PhotoReadError."""
        Path(photo.file_path).unlink()
        with pytest.raises(PhotoReadError):
            UploadExecutor(catalog).upload("e1", photo)
        assert catalog.upload_calls == []


class TestFormatCaptureTime:
    """Tests for format_capture_time."""

    def test_converts_to_utc_millis(self, photo: PhotoToUpload) -> None:
        """Capture time should be ISO-8601 UTC with milliseconds."""
        assert format_capture_time(photo) == "2025-06-01T12:30:15.123Z"
