"""Shared types for autoupload.

This module defines enums used by the client, the sync engine and the CLI.
"""

from __future__ import annotations

from enum import Enum


class GateReason(str, Enum):
    """Outcome reason of a permission gate check."""

    READY = "ready"
    CHECKING = "checking"
    PHOTO_PERMISSION_DENIED = "photo_permission_denied"
    CONSENT_PENDING = "consent_pending"
    ERROR = "error"


class ConsentStatus(str, Enum):
    """State reported by the consent/onboarding collaborator."""

    READY = "ready"
    CHECKING = "checking"
    GRANTED = "granted"
    DENIED = "denied"


class NetworkClass(str, Enum):
    """Primary network class resolved from the active transports."""

    VPN_OVER_WIFI = "vpn_over_wifi"
    VPN_OVER_CELLULAR = "vpn_over_cellular"
    VPN_MIXED = "vpn_mixed"
    VPN_UNKNOWN = "vpn_unknown"
    WIFI = "wifi"
    CELLULAR = "cellular"
    ETHERNET = "ethernet"
    MIXED = "mixed"
    UNKNOWN = "unknown"
    NONE = "none"


class SkipReason(str, Enum):
    """Why a sync pass ended without processing events."""

    AUTO_UPLOAD_DISABLED = "auto_upload_disabled"
    WIFI_REQUIRED = "wifi_required"
    AUTH_FAILED = "auth_failed"
    EVENT_LIST_FAILED = "event_list_failed"
