"""VNC port allocation for vmbuilder."""

from __future__ import annotations

import random
import socket
from typing import Optional, Tuple

from vmbuilder.constants import PORT_ATTEMPT_FACTOR
from vmbuilder.driver import Capability, Driver, supports
from vmbuilder.exceptions import AllocationError, ConfigurationError
from vmbuilder.utils import log


def _port_is_free(bind_address: str, port: int) -> bool:
    """Probe ``port`` by binding a listener and releasing it straight away."""
    family = socket.AF_INET6 if ":" in bind_address else socket.AF_INET
    try:
        with socket.create_server((bind_address, port), family=family):
            return True
    except OSError:
        return False


def find_vnc_port(
    bind_address: str,
    port_min: int,
    port_max: int,
    max_attempts: Optional[int] = None,
) -> Tuple[str, int]:
    """Find a port in ``[port_min, port_max)`` that can currently be bound.

    When ``port_max == port_min`` only ``port_min`` is tried. The port is not
    reserved: another process may grab it before the hypervisor listens on it.
    """
    if port_min > port_max:
        raise ConfigurationError(f"VNC port range is empty: min {port_min} > max {port_max}")

    port_range = port_max - port_min
    if max_attempts is None:
        max_attempts = max(port_range, 1) * PORT_ATTEMPT_FACTOR

    for _ in range(max_attempts):
        if port_range > 0:
            port = random.randrange(port_min, port_max)
        else:
            port = port_min

        log("DEBUG", f"Trying port: {port}")
        if _port_is_free(bind_address, port):
            return bind_address, port

    raise AllocationError(
        f"No free VNC port between {port_min} and {port_max} on '{bind_address or '*'}' "
        f"after {max_attempts} attempts"
    )


def resolve_vnc_address(driver: Driver, bind_address: str, port_min: int, port_max: int) -> Tuple[str, int]:
    """Pick a VNC address, letting the driver decide when it knows better."""
    if supports(driver, Capability.VNC_ADDRESS_FINDER):
        log("DEBUG", f"Delegating VNC port selection to {type(driver).__name__}")
        return driver.vnc_address(bind_address, port_min, port_max)
    return find_vnc_port(bind_address, port_min, port_max)
