"""Event model shared by the remote client and the sync engine.

This module provides:
- Event: Remote event with a capture window and auto-upload flag
- parse_event_time: ISO-8601 parser for event boundaries
- InvalidEventWindow: Raised for missing, unparsable or inverted windows
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


class InvalidEventWindow(ValueError):
    """An event's start/end time is missing, unparsable or inverted."""


def parse_event_time(raw: str | None) -> datetime:
    """Parse an ISO-8601 event boundary into an aware UTC datetime.

    Accepts a trailing ``Z``, numeric offsets, fractional seconds and naive
    values (interpreted as UTC).

    Raises:
        InvalidEventWindow: If the value is empty or cannot be parsed.
    """
    if raw is None or not str(raw).strip():
        raise InvalidEventWindow("Missing event time")
    text = str(raw).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise InvalidEventWindow(f"Invalid event time {raw!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


@dataclass(frozen=True)
class Event:
    """Event metadata from the remote catalog.

    Start and end times are kept in their source representation so that a
    malformed window is detected when the event is scanned, not when the
    event list is fetched.
    """

    id: str
    name: str
    start_time: str
    end_time: str
    auto_upload_enabled: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        """Create from API response dictionary.

        A missing ``auto_upload_enabled`` field defaults to True.
        """
        event_id = data.get("event_id") or data.get("id")
        if not event_id:
            raise ValueError("Event without id")
        flag = data.get("auto_upload_enabled")
        return cls(
            id=str(event_id),
            name=str(data.get("name") or event_id),
            start_time=str(data.get("start_time") or ""),
            end_time=str(data.get("end_time") or ""),
            auto_upload_enabled=True if flag is None else bool(flag),
        )

    def window(self) -> tuple[datetime, datetime]:
        """Return the parsed (start, end) capture window.

        Raises:
            InvalidEventWindow: If either bound is invalid or end < start.
        """
        start = parse_event_time(self.start_time)
        end = parse_event_time(self.end_time)
        if end < start:
            raise InvalidEventWindow(
                f"Event {self.id} ends before it starts ({self.start_time} > {self.end_time})"
            )
        return start, end
