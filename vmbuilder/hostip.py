"""Host IP discovery strategies used to pick a VNC bind address."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import List, Protocol, Sequence
from xml.etree.ElementTree import ParseError, fromstring

from vmbuilder.constants import DEFAULT_HOST_INTERFACE, DEFAULT_NETWORK_XML, IPV4_RE
from vmbuilder.exceptions import HostIPError
from vmbuilder.utils import log, run


class HostIPFinder(Protocol):
    def host_ip(self) -> str:
        ...


class InterfaceIPFinder:
    """Read the first IPv4 address of a host network interface via ``ip``."""

    def __init__(self, device: str = DEFAULT_HOST_INTERFACE) -> None:
        self.device = device

    def host_ip(self) -> str:
        try:
            result = run(
                ["ip", "-4", "-o", "addr", "show", "dev", self.device],
                capture_output=True,
            )
        except FileNotFoundError as exc:
            raise HostIPError(f"ip command not available: {exc}") from exc
        except subprocess.CalledProcessError as exc:
            raise HostIPError(f"Cannot query interface {self.device}: {(exc.stderr or '').strip()}") from exc

        match = IPV4_RE.search(result.stdout or "")
        if match is None:
            raise HostIPError(f"No IPv4 address found on interface {self.device}")
        return match.group(1)

    def __repr__(self) -> str:
        return f"InterfaceIPFinder(device={self.device!r})"


class NetworkXmlIPFinder:
    """Read the host-side address from a libvirt network definition file."""

    def __init__(self, path: Path = DEFAULT_NETWORK_XML) -> None:
        self.path = Path(path)

    def host_ip(self) -> str:
        try:
            root = fromstring(self.path.read_text())
        except OSError as exc:
            raise HostIPError(f"Cannot read network definition {self.path}: {exc}") from exc
        except ParseError as exc:
            raise HostIPError(f"Invalid network definition {self.path}: {exc}") from exc

        ip_el = root.find("ip")
        address = ip_el.get("address") if ip_el is not None else None
        if not address:
            raise HostIPError(f"No <ip address> in network definition {self.path}")
        return address

    def __repr__(self) -> str:
        return f"NetworkXmlIPFinder(path={str(self.path)!r})"


def default_host_ip_finders() -> List[HostIPFinder]:
    """Return the discovery chain for the current platform, most specific first."""
    if sys.platform.startswith("linux"):
        return [NetworkXmlIPFinder(), InterfaceIPFinder()]
    return [InterfaceIPFinder()]


def find_host_ip(finders: Sequence[HostIPFinder]) -> str:
    """Return the first address any strategy yields."""
    reasons = []
    for finder in finders:
        try:
            address = finder.host_ip()
        except HostIPError as exc:
            log("DEBUG", f"{finder!r} failed: {exc}")
            reasons.append(str(exc))
            continue
        log("DEBUG", f"Host IP {address} found by {finder!r}")
        return address
    if not reasons:
        raise HostIPError("No host IP discovery strategy configured")
    raise HostIPError("; ".join(reasons))
