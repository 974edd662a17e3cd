"""Removable-media controller slot allocation for vmbuilder."""

from __future__ import annotations

from typing import Optional, Union

from vmbuilder.driver import Driver
from vmbuilder.exceptions import ConfigurationError
from vmbuilder.models import MediaSlot
from vmbuilder.utils import log

Coordinate = Union[str, int, None]


def parse_controller_coordinate(raw: Coordinate, label: str) -> int:
    """Parse an operator-supplied controller number or location."""
    if isinstance(raw, bool):
        raise ConfigurationError(f"Invalid {label} '{raw}': expected a non-negative integer")
    if isinstance(raw, int):
        value = raw
    else:
        text = str(raw).strip()
        if not (text.isascii() and text.isdigit()):
            raise ConfigurationError(f"Invalid {label} '{raw}': expected a non-negative integer")
        value = int(text)
    if value < 0:
        raise ConfigurationError(f"Invalid {label} '{raw}': expected a non-negative integer")
    return value


def _is_unset(raw: Coordinate) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


class MediaControllerAllocator:
    """Attach removable media and remember how to undo it.

    Every slot handed out by :meth:`attach` has ``existing=False``, including
    slots at operator-specified coordinates: the attachment itself is always
    created by the build. A coordinate that collides with a device already
    on the VM is not detected.
    """

    def __init__(self, driver: Driver) -> None:
        self.driver = driver

    def attach(
        self,
        vm_name: str,
        media_path: str,
        explicit_number: Coordinate = None,
        explicit_location: Coordinate = None,
        generation: int = 1,
    ) -> MediaSlot:
        if _is_unset(explicit_number) or _is_unset(explicit_location):
            number, location = self.driver.create_dvd_drive(vm_name, media_path, generation)
            return MediaSlot(controller_number=number, controller_location=location, existing=False)

        number = parse_controller_coordinate(explicit_number, "controller number")
        location = parse_controller_coordinate(explicit_location, "controller location")
        self.driver.create_dvd_drive_at(vm_name, number, location, media_path, generation)
        return MediaSlot(controller_number=number, controller_location=location, existing=False)

    def set_boot_device(self, vm_name: str, slot: MediaSlot, generation: int = 1) -> None:
        self.driver.set_boot_dvd_drive(vm_name, slot.controller_number, slot.controller_location, generation)

    def mount(self, vm_name: str, slot: MediaSlot, media_path: str) -> None:
        self.driver.mount_dvd_drive(vm_name, media_path, slot.controller_number, slot.controller_location)

    def detach(self, vm_name: str, slot: Optional[MediaSlot]) -> None:
        """Undo :meth:`attach`. Never raises."""
        if slot is None:
            return
        number, location = slot.controller_number, slot.controller_location
        if slot.existing:
            try:
                self.driver.unmount_dvd_drive(vm_name, number, location)
            except Exception as exc:
                log("WARN", f"Error unmounting dvd drive ({number}, {location}): {exc}")
        else:
            try:
                self.driver.delete_dvd_drive(vm_name, number, location)
            except Exception as exc:
                log("WARN", f"Error deleting dvd drive ({number}, {location}): {exc}")
