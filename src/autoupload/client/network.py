"""Network class detection for the WiFi-only upload policy.

This module provides:
- NetworkState: Transport flags of the active network
- NetworkClassification: Resolved primary class and wifi-equivalence
- classify_transports: Pure priority-ordered classification
- NetworkClassifier: Probes the current transports and classifies them
- SysfsTransportProbe: Linux transport probe reading /sys/class/net

Ambiguous states (WiFi and cellular both reported, with or without a VPN)
resolve to not wifi-equivalent, so an unclear radio state never counts as
unmetered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from autoupload.core.types import NetworkClass

logger = logging.getLogger(__name__)

SYSFS_NET = Path("/sys/class/net")

# Interface name prefixes
CELLULAR_PREFIXES = ("wwan", "rmnet", "ccmni", "ppp")
VPN_PREFIXES = ("tun", "tap", "wg", "utun", "ipsec", "tailscale", "nordlynx")


@dataclass(frozen=True)
class NetworkState:
    """Transports reported by the active network."""

    has_wifi: bool = False
    has_cellular: bool = False
    has_vpn: bool = False
    has_ethernet: bool = False


@dataclass(frozen=True)
class NetworkClassification:
    """Primary network class and whether it is safe for unmetered uploads."""

    primary_class: NetworkClass
    is_wifi_equivalent: bool
    state: NetworkState | None = None


WIFI_EQUIVALENT = frozenset(
    {NetworkClass.WIFI, NetworkClass.VPN_OVER_WIFI, NetworkClass.ETHERNET}
)


def classify_transports(state: NetworkState | None) -> NetworkClassification:
    """Resolve transport flags to a single network class.

    First match wins:
    1. VPN: over WiFi only, over cellular only, mixed, or unknown beneath.
    2. WiFi without cellular.
    3. Cellular without WiFi.
    4. Ethernet without WiFi or cellular.
    5. WiFi and cellular together (mixed).
    6. Anything else is unknown.

    Args:
        state: Transport flags, or None when no network is active.

    Returns:
        NetworkClassification; never raises.
    """
    if state is None:
        return NetworkClassification(NetworkClass.NONE, False, None)

    wifi, cellular = state.has_wifi, state.has_cellular

    if state.has_vpn:
        if wifi and not cellular:
            primary = NetworkClass.VPN_OVER_WIFI
        elif cellular and not wifi:
            primary = NetworkClass.VPN_OVER_CELLULAR
        elif wifi and cellular:
            primary = NetworkClass.VPN_MIXED
        else:
            primary = NetworkClass.VPN_UNKNOWN
    elif wifi and not cellular:
        primary = NetworkClass.WIFI
    elif cellular and not wifi:
        primary = NetworkClass.CELLULAR
    elif state.has_ethernet and not wifi and not cellular:
        primary = NetworkClass.ETHERNET
    elif wifi and cellular:
        primary = NetworkClass.MIXED
    else:
        primary = NetworkClass.UNKNOWN

    return NetworkClassification(primary, primary in WIFI_EQUIVALENT, state)


class TransportProbe(Protocol):
    """Reports the transports of the active network, or None if offline."""

    def probe(self) -> NetworkState | None: ...


class SysfsTransportProbe:
    """Derives transport flags from Linux network interfaces.

    An interface counts when its operstate is ``up`` (or ``unknown`` with a
    carrier, as tunnel devices report). Wireless interfaces map to WiFi,
    modem interfaces to cellular, tunnel interfaces to VPN and the remaining
    physical interfaces to ethernet. Loopback and virtual bridges are ignored.
    """

    def __init__(self, root: Path = SYSFS_NET) -> None:
        self._root = Path(root)

    def probe(self) -> NetworkState | None:
        try:
            interfaces = sorted(self._root.iterdir())
        except OSError as e:
            logger.debug(f"Cannot list network interfaces: {e}")
            return None

        wifi = cellular = vpn = ethernet = False
        for iface in interfaces:
            name = iface.name
            if name == "lo" or not self._is_active(iface):
                continue
            if (iface / "wireless").exists() or (iface / "phy80211").exists():
                wifi = True
            elif name.startswith(CELLULAR_PREFIXES) or "DEVTYPE=wwan" in _read(iface / "uevent"):
                cellular = True
            elif name.startswith(VPN_PREFIXES):
                vpn = True
            elif (iface / "device").exists():
                ethernet = True

        if not (wifi or cellular or vpn or ethernet):
            return None
        return NetworkState(
            has_wifi=wifi, has_cellular=cellular, has_vpn=vpn, has_ethernet=ethernet
        )

    @staticmethod
    def _is_active(iface: Path) -> bool:
        operstate = _read(iface / "operstate").strip()
        if operstate == "up":
            return True
        return operstate == "unknown" and _read(iface / "carrier").strip() == "1"


def _read(path: Path) -> str:
    try:
        return path.read_text()
    except OSError:
        return ""


class NetworkClassifier:
    """Classifies the current network on demand.

    Nothing is cached: the network can change between two decisions.
    """

    def __init__(self, probe: TransportProbe | None = None) -> None:
        self._probe = probe or SysfsTransportProbe()

    def classify(self) -> NetworkClassification:
        """Probe and classify the active network.

        Returns:
            NetworkClassification; probe failures yield NetworkClass.NONE.
        """
        try:
            state = self._probe.probe()
        except Exception as e:
            logger.warning(f"Network probe failed: {e}")
            state = None
        result = classify_transports(state)
        if result.primary_class in (NetworkClass.MIXED, NetworkClass.VPN_MIXED):
            logger.info(
                f"WiFi and cellular both reported ({result.primary_class.value}); "
                "treating network as metered"
            )
        logger.debug(
            f"Network classified as {result.primary_class.value} "
            f"(wifi-equivalent: {result.is_wifi_equivalent})"
        )
        return result
