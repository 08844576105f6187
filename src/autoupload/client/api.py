"""HTTP client for the remote event and upload catalog.

This module provides:
- PhotoShareClient: HTTP client implementing the EventCatalog and
  UploadCatalog operations
- UploadResponse: Raw outcome of one upload request
- APIError hierarchy
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from autoupload.client.credentials import AuthError
from autoupload.core.events import Event

if TYPE_CHECKING:
    from autoupload.client.credentials import CredentialProvider
    from autoupload.core.config import ServerConfig

logger = logging.getLogger(__name__)

USER_EVENTS_PATH = "/functions/v1/api-auto-upload-user-events"
UPLOADED_PHOTOS_PATH = "/functions/v1/api-events-uploaded-photos"
UPLOAD_PATH = "/functions/v1/mobile-upload"

CLIENT_HEADERS = {
    "Accept": "application/json, text/plain, */*",
    "X-Client-Platform": "python",
    "X-Upload-Source": "auto-upload",
}


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


# Name used at the collaborator seam
RemoteError = APIError


class AuthenticationError(APIError):
    """Authentication failed."""


class NotFoundError(APIError):
    """Resource not found."""


class TransportError(APIError):
    """No HTTP response was received (connection or timeout failure)."""


@dataclass
class UploadResponse:
    """Raw outcome of one upload request.

    Attributes:
        success: HTTP 2xx and the service did not report a failure.
        media_id: Identifier of the stored media, if returned.
        error_body: Response body of a failed request.
        http_status: HTTP status code.
        content_kind: Media type of the response (e.g. "text/html").
    """

    success: bool
    media_id: str | None = None
    error_body: str | None = None
    http_status: int | None = None
    content_kind: str | None = None


def content_kind_of(response: httpx.Response) -> str | None:
    """Extract the bare media type from a response's Content-Type header."""
    header = response.headers.get("content-type")
    if not header:
        return None
    return header.split(";", 1)[0].strip().lower() or None


def parse_uploaded_hashes(entries: list[Any]) -> set[str]:
    """Extract content hashes from the catalog's uploaded-hash entries.

    Entries may carry a suffix after the first underscore
    (``<hash>_<media id>``); only the prefix is the content hash.
    """
    hashes: set[str] = set()
    for entry in entries:
        if not entry:
            continue
        content_hash = str(entry).split("_", 1)[0].strip().lower()
        if content_hash:
            hashes.add(content_hash)
    return hashes


class PhotoShareClient:
    """HTTP client for the remote catalog."""

    def __init__(
        self,
        config: ServerConfig,
        credentials: CredentialProvider,
    ) -> None:
        """Initialize the client.

        Args:
            config: Server connection configuration.
            credentials: Source of the bearer token, queried per request.
        """
        self._config = config
        self._credentials = credentials
        headers = dict(CLIENT_HEADERS)
        if config.api_key:
            headers["apikey"] = config.api_key
        self._client = httpx.Client(
            base_url=config.server_url,
            timeout=config.timeout,
            verify=config.verify_ssl,
            headers=headers,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> PhotoShareClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._credentials.get_bearer_token()}"}

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = {**kwargs.pop("headers", {}), **self._auth_headers()}
        try:
            return self._client.request(method, url, headers=headers, **kwargs)
        except httpx.RequestError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        if response.status_code == 401:
            raise AuthenticationError("Invalid or expired token", 401)
        if response.status_code == 404:
            raise NotFoundError("Resource not found", 404)
        if response.status_code >= 400:
            raise APIError(
                f"HTTP {response.status_code}: {_error_detail(response)}",
                response.status_code,
            )
        return response

    # === Health check ===

    def health_check(self) -> bool:
        """Check if the service answers requests for the user's events."""
        try:
            response = self._request("GET", USER_EVENTS_PATH, params={"user_id": ""})
        except (TransportError, AuthError):
            return False
        return response.status_code < 500

    # === Event catalog ===

    def list_user_events(self, user_id: str) -> list[Event]:
        """List the user's events.

        Args:
            user_id: User whose events to fetch.

        Returns:
            Events in catalog order. Malformed entries are skipped.

        Raises:
            APIError: If the request fails.
        """
        response = self._handle_response(
            self._request("GET", USER_EVENTS_PATH, params={"user_id": user_id})
        )
        data = response.json()
        raw_events = data.get("events", []) if isinstance(data, dict) else data
        events: list[Event] = []
        for item in raw_events or []:
            try:
                events.append(Event.from_dict(item))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning(f"Ignoring malformed event entry: {e}")
        logger.debug(f"Fetched {len(events)} events for user {user_id}")
        return events

    # === Upload catalog ===

    def list_uploaded_hashes(self, event_id: str) -> set[str]:
        """Get content hashes already uploaded to an event.

        Raises:
            APIError: If the request fails.
        """
        response = self._handle_response(
            self._request("GET", f"{UPLOADED_PHOTOS_PATH}/{event_id}")
        )
        data = response.json()
        if not isinstance(data, dict) or "uploadedHashes" not in data:
            raise APIError(f"Malformed uploaded-photos response for event {event_id}")
        return parse_uploaded_hashes(data["uploadedHashes"] or [])

    def upload(
        self,
        event_id: str,
        file_name: str,
        data: bytes,
        metadata: dict[str, Any],
    ) -> UploadResponse:
        """Upload one photo.

        HTTP error statuses are returned, not raised, so the caller can
        classify them.

        Args:
            event_id: Target event.
            file_name: Name to store the photo under.
            data: Photo bytes.
            metadata: Extra fields (``originalTimestamp`` and ``deviceId`` are
                lifted to the top level of the request).

        Returns:
            UploadResponse describing the outcome.

        Raises:
            TransportError: If no response was received.
        """
        extra = dict(metadata)
        body = {
            "eventId": event_id,
            "fileName": file_name,
            "fileData": base64.b64encode(data).decode("ascii"),
            "mediaType": "photo",
            "originalTimestamp": extra.pop("originalTimestamp", None),
            "deviceId": extra.pop("deviceId", None),
            "metadata": extra,
        }
        response = self._request(
            "POST",
            UPLOAD_PATH,
            json=body,
            timeout=self._config.upload_timeout,
        )
        kind = content_kind_of(response)
        if response.is_success:
            media_id = None
            if kind == "application/json":
                try:
                    payload = response.json()
                except ValueError:
                    payload = None
                if isinstance(payload, dict):
                    if payload.get("success") is False:
                        return UploadResponse(
                            success=False,
                            error_body=response.text,
                            http_status=response.status_code,
                            content_kind=kind,
                        )
                    raw_id = payload.get("mediaId") or payload.get("media_id") or payload.get("id")
                    media_id = str(raw_id) if raw_id is not None else None
            return UploadResponse(
                success=True,
                media_id=media_id,
                http_status=response.status_code,
                content_kind=kind,
            )
        return UploadResponse(
            success=False,
            error_body=response.text,
            http_status=response.status_code,
            content_kind=kind,
        )


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or "Unknown error"
    if isinstance(data, dict):
        return str(data.get("error") or data.get("message") or data.get("detail") or data)
    return str(data)
