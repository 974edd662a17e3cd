"""Shared test fixtures: in-memory driver, recording UI and a populated state bag."""

from __future__ import annotations

from typing import FrozenSet, List, Tuple

import pytest

from vmbuilder.constants import STATE_DRIVER, STATE_TEMP_DIR, STATE_UI, STATE_VM_NAME
from vmbuilder.driver import Capability, Driver
from vmbuilder.exceptions import DriverError
from vmbuilder.state import StateBag


class FakeDriver(Driver):
    """Driver that records every call and hands out IDE-style slots in order."""

    def __init__(self, capabilities: FrozenSet[Capability] = frozenset()) -> None:
        self._capabilities = capabilities
        self.calls: List[Tuple] = []
        self.fail_on: set = set()
        self.next_slot = (0, 1)
        self.host_address = "192.168.122.1"
        self.vnc_result = ("10.0.0.5", 5999)
        self.command_output = "ok"

    def capabilities(self) -> FrozenSet[Capability]:
        return self._capabilities

    def _record(self, name: str, *args) -> None:
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise DriverError(f"{name} failed")

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def create_dvd_drive(self, vm_name, iso_path, generation):
        self._record("create_dvd_drive", vm_name, iso_path, generation)
        return self.next_slot

    def create_dvd_drive_at(self, vm_name, controller_number, controller_location, iso_path, generation):
        self._record("create_dvd_drive_at", vm_name, controller_number, controller_location, iso_path, generation)

    def mount_dvd_drive(self, vm_name, path, controller_number, controller_location):
        self._record("mount_dvd_drive", vm_name, path, controller_number, controller_location)

    def unmount_dvd_drive(self, vm_name, controller_number, controller_location):
        self._record("unmount_dvd_drive", vm_name, controller_number, controller_location)

    def delete_dvd_drive(self, vm_name, controller_number, controller_location):
        self._record("delete_dvd_drive", vm_name, controller_number, controller_location)

    def set_boot_dvd_drive(self, vm_name, controller_number, controller_location, generation):
        self._record("set_boot_dvd_drive", vm_name, controller_number, controller_location, generation)

    def execute_commands(self, commands):
        self._record("execute_commands", list(commands))
        return self.command_output

    def host_ip(self):
        if Capability.HOST_IP_FINDER not in self._capabilities:
            return super().host_ip()
        self._record("host_ip")
        return self.host_address

    def vnc_address(self, bind_address, port_min, port_max):
        if Capability.VNC_ADDRESS_FINDER not in self._capabilities:
            return super().vnc_address(bind_address, port_min, port_max)
        self._record("vnc_address", bind_address, port_min, port_max)
        return self.vnc_result


class RecordingUi:
    def __init__(self) -> None:
        self.said: List[str] = []
        self.messages: List[str] = []
        self.errors: List[str] = []

    def say(self, msg: str) -> None:
        self.said.append(msg)

    def message(self, msg: str) -> None:
        self.messages.append(msg)

    def error(self, msg: str) -> None:
        self.errors.append(msg)


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def ui() -> RecordingUi:
    return RecordingUi()


@pytest.fixture
def state(driver, ui, tmp_path) -> StateBag:
    """A state bag holding everything the CLI normally provides."""
    bag = StateBag()
    bag.put(STATE_DRIVER, driver)
    bag.put(STATE_UI, ui)
    bag.put(STATE_VM_NAME, "test-vm")
    bag.put(STATE_TEMP_DIR, str(tmp_path))
    return bag


@pytest.fixture
def driver_factory():
    """Build drivers declaring specific optional capabilities."""

    def _make(*capabilities: Capability) -> FakeDriver:
        return FakeDriver(frozenset(capabilities))

    return _make
