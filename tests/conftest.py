"""Shared fixtures for autoupload tests."""

from __future__ import annotations

import os
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

from autoupload.client.api import UploadResponse
from autoupload.client.network import NetworkState
from autoupload.client.sync.types import DevicePhoto, Event


class FakeCatalog:
    """In-memory remote catalog recording every upload."""

    def __init__(self) -> None:
        self.events: list[Event] = []
        self.uploaded: dict[str, set[str]] = {}
        self.responses: list[UploadResponse] = []
        self.upload_calls: list[tuple[str, str, dict[str, Any]]] = []
        self.event_error: Exception | None = None
        self.hash_errors: dict[str, Exception] = {}

    def list_user_events(self, user_id: str) -> list[Event]:
        if self.event_error is not None:
            raise self.event_error
        return list(self.events)

    def list_uploaded_hashes(self, event_id: str) -> set[str]:
        if event_id in self.hash_errors:
            raise self.hash_errors[event_id]
        return set(self.uploaded.get(event_id, set()))

    def upload(
        self, event_id: str, file_name: str, data: bytes, metadata: dict[str, Any]
    ) -> UploadResponse:
        self.upload_calls.append((event_id, file_name, metadata))
        if self.responses:
            response = self.responses.pop(0)
        else:
            response = UploadResponse(
                success=True,
                media_id=f"media-{len(self.upload_calls)}",
                http_status=200,
                content_kind="application/json",
            )
        if response.success:
            self.uploaded.setdefault(event_id, set()).add(metadata["hash"])
        return response


class FakeMediaIndex:
    """Media index over a fixed list of photos."""

    def __init__(self, photos: list[DevicePhoto] | None = None) -> None:
        self.photos = photos or []

    def query(self, start: datetime, end: datetime, min_size_bytes: int) -> list[DevicePhoto]:
        return [
            p
            for p in self.photos
            if start <= p.captured_at <= end and p.size_bytes > min_size_bytes
        ]


class FixedProbe:
    """Transport probe returning a fixed state."""

    def __init__(self, state: NetworkState | None) -> None:
        self.state = state

    def probe(self) -> NetworkState | None:
        return self.state


@pytest.fixture
def catalog() -> FakeCatalog:
    """Create an empty fake catalog."""
    return FakeCatalog()


@pytest.fixture
def media_index() -> FakeMediaIndex:
    """Create an empty fake media index."""
    return FakeMediaIndex()


@pytest.fixture
def fixed_probe() -> type[FixedProbe]:
    """Probe class returning the state it was built with."""
    return FixedProbe


@pytest.fixture
def wifi_probe() -> FixedProbe:
    """Probe reporting plain WiFi."""
    return FixedProbe(NetworkState(has_wifi=True))


@pytest.fixture
def make_photo(tmp_path: Path) -> Callable[..., DevicePhoto]:
    """Factory writing a photo file and returning its DevicePhoto."""
    counter = {"n": 0}

    def _make(
        captured_at: datetime,
        content: bytes | None = None,
        name: str | None = None,
    ) -> DevicePhoto:
        counter["n"] += 1
        file_name = name or f"IMG_{counter['n']:04d}.jpg"
        data = content if content is not None else os.urandom(2048)
        path = tmp_path / "library" / f"{counter['n']}" / file_name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return DevicePhoto(
            file_path=str(path),
            file_name=file_name,
            captured_at=captured_at,
            size_bytes=len(data),
        )

    return _make
