"""Hypervisor driver capability interface for vmbuilder."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import FrozenSet, List, Tuple


class Capability(Enum):
    """Optional capabilities a driver may declare on top of the required set."""

    HOST_IP_FINDER = "host_ip_finder"
    VNC_ADDRESS_FINDER = "vnc_address_finder"


class Driver(ABC):
    """Operations the build steps perform against a hypervisor.

    Media coordinates are ``(controller number, controller location)``.
    Optional capabilities are advertised through :meth:`capabilities` and must
    be checked with :func:`supports` before calling :meth:`host_ip` or
    :meth:`vnc_address`.
    """

    def capabilities(self) -> FrozenSet[Capability]:
        return frozenset()

    @abstractmethod
    def create_dvd_drive(self, vm_name: str, iso_path: str, generation: int) -> Tuple[int, int]:
        """Create a DVD drive on a slot chosen by the driver and return its coordinates."""

    @abstractmethod
    def create_dvd_drive_at(
        self, vm_name: str, controller_number: int, controller_location: int, iso_path: str, generation: int
    ) -> None:
        """Create a DVD drive at the given coordinates."""

    @abstractmethod
    def mount_dvd_drive(self, vm_name: str, path: str, controller_number: int, controller_location: int) -> None:
        ...

    @abstractmethod
    def unmount_dvd_drive(self, vm_name: str, controller_number: int, controller_location: int) -> None:
        ...

    @abstractmethod
    def delete_dvd_drive(self, vm_name: str, controller_number: int, controller_location: int) -> None:
        ...

    @abstractmethod
    def set_boot_dvd_drive(
        self, vm_name: str, controller_number: int, controller_location: int, generation: int
    ) -> None:
        ...

    @abstractmethod
    def execute_commands(self, commands: List[str]) -> str:
        """Run rendered modify commands as one script and return its output."""

    def host_ip(self) -> str:
        raise NotImplementedError(f"{type(self).__name__} does not provide {Capability.HOST_IP_FINDER.value}")

    def vnc_address(self, bind_address: str, port_min: int, port_max: int) -> Tuple[str, int]:
        raise NotImplementedError(f"{type(self).__name__} does not provide {Capability.VNC_ADDRESS_FINDER.value}")


def supports(driver: Driver, capability: Capability) -> bool:
    """Return True if ``driver`` declares ``capability``."""
    return capability in driver.capabilities()
