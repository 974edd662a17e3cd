"""Build steps for vmbuilder."""

from __future__ import annotations

from typing import List, Sequence

from vmbuilder.constants import (
    STATE_DRIVER,
    STATE_GUEST_DVD,
    STATE_ISO_PATH,
    STATE_OS_DVD,
    STATE_TEMP_DIR,
    STATE_UI,
    STATE_VM_NAME,
    STATE_VMX_PATH,
    STATE_VNC_IP,
    STATE_VNC_PORT,
    VMX_VNC_ENABLED,
    VMX_VNC_IP,
    VMX_VNC_PORT,
)
from vmbuilder.driver import Capability, supports
from vmbuilder.exceptions import BuildError, ConfigurationError, HostIPError
from vmbuilder.hostip import HostIPFinder, find_host_ip
from vmbuilder.media import MediaControllerAllocator
from vmbuilder.models import MediaConfig, MediaSlot, VNCConfig
from vmbuilder.pipeline import Step, StepAction, halt
from vmbuilder.ports import resolve_vnc_address
from vmbuilder.state import StateBag
from vmbuilder.templating import render_commands
from vmbuilder.utils import log, parse_port
from vmbuilder.vmx import read_vmx, write_vmx


class StepConfigureVNC(Step):
    """Enable the VNC server in the VMX file.

    Uses ``driver``, ``ui`` and ``vmx_path``. Produces ``vnc_ip`` and
    ``vnc_port``.
    """

    def __init__(self, vnc: VNCConfig, host_ip_finders: Sequence[HostIPFinder] = ()) -> None:
        self.vnc = vnc
        self.host_ip_finders = list(host_ip_finders)

    def run(self, state: StateBag) -> StepAction:
        driver = state.require(STATE_DRIVER)
        ui = state.require(STATE_UI)
        vmx_path = state.require(STATE_VMX_PATH)

        try:
            vmx_data = read_vmx(vmx_path)
        except BuildError as exc:
            return halt(state, ui, exc)

        vmx_data[VMX_VNC_ENABLED] = "TRUE"

        try:
            bind_address = self._bind_address(driver, vmx_data)
        except BuildError as exc:
            return halt(state, ui, HostIPError(f"Error detecting host IP: {exc}"))
        vmx_data[VMX_VNC_IP] = bind_address
        state.put(STATE_VNC_IP, bind_address)

        configured_port = vmx_data.get(VMX_VNC_PORT)
        if configured_port is not None:
            try:
                vnc_port = parse_port(VMX_VNC_PORT, configured_port)
            except ConfigurationError as exc:
                return halt(state, ui, ConfigurationError(f"Invalid VNC port in {vmx_path}: {exc}"))
            log("INFO", f"VNC port specified: {vnc_port}")
        else:
            log("INFO", f"Looking for available port between {self.vnc.port_min} and {self.vnc.port_max}")
            try:
                _, vnc_port = resolve_vnc_address(driver, bind_address, self.vnc.port_min, self.vnc.port_max)
            except BuildError as exc:
                return halt(state, ui, exc)
            log("INFO", f"Found available VNC port: {vnc_port}")
            vmx_data[VMX_VNC_PORT] = str(vnc_port)
        state.put(STATE_VNC_PORT, vnc_port)

        try:
            write_vmx(vmx_path, vmx_data)
        except BuildError as exc:
            return halt(state, ui, exc)

        return StepAction.CONTINUE

    def _bind_address(self, driver, vmx_data) -> str:
        if self.vnc.bind_address:
            log("INFO", f"VNC ip specified: {self.vnc.bind_address}")
            return self.vnc.bind_address
        if VMX_VNC_IP in vmx_data:
            log("INFO", f"VNC ip specified: {vmx_data[VMX_VNC_IP]}")
            return vmx_data[VMX_VNC_IP]

        if supports(driver, Capability.HOST_IP_FINDER):
            address = driver.host_ip()
        else:
            address = find_host_ip(self.host_ip_finders)
        log("INFO", f"VNC ip detected: {address}")
        return address


class _MountMediaStep(Step):
    state_key = ""
    label = ""

    def __init__(self, media: MediaConfig, generation: int = 1) -> None:
        self.media = media
        self.generation = generation

    def _attach(self, state: StateBag, media_path: str) -> MediaSlot:
        """Attach media and record the slot only once the driver created it."""
        driver = state.require(STATE_DRIVER)
        vm_name = state.require(STATE_VM_NAME)
        allocator = MediaControllerAllocator(driver)
        slot = allocator.attach(
            vm_name,
            media_path,
            self.media.controller_number,
            self.media.controller_location,
            self.generation,
        )
        state.put(self.state_key, slot)
        return slot

    def cleanup(self, state: StateBag) -> None:
        slot = state.pop(self.state_key)
        if slot is None:
            return
        driver = state.require(STATE_DRIVER)
        vm_name = state.require(STATE_VM_NAME)
        ui = state.require(STATE_UI)
        ui.say(f"Clean up {self.label} dvd drive...")
        MediaControllerAllocator(driver).detach(vm_name, slot)


class StepMountDvdDrive(_MountMediaStep):
    """Attach the installation ISO and make it the boot device.

    Uses ``driver``, ``ui``, ``vm_name`` and ``iso_path``. Produces
    ``os.dvd.properties``.
    """

    state_key = STATE_OS_DVD
    label = "os"

    def run(self, state: StateBag) -> StepAction:
        ui = state.require(STATE_UI)
        vm_name = state.require(STATE_VM_NAME)
        iso_path = state.require(STATE_ISO_PATH)
        allocator = MediaControllerAllocator(state.require(STATE_DRIVER))

        try:
            slot = self._attach(state, iso_path)
        except BuildError as exc:
            return halt(state, ui, exc)

        try:
            ui.say(f"Setting boot drive to os dvd drive {iso_path} ...")
            allocator.set_boot_device(vm_name, slot, self.generation)
            ui.say(f"Mounting os dvd drive {iso_path} ...")
            allocator.mount(vm_name, slot, iso_path)
        except BuildError as exc:
            return halt(state, ui, BuildError(f"Error mounting dvd drive: {exc}"))

        return StepAction.CONTINUE


class StepMountGuestAdditions(_MountMediaStep):
    """Attach the guest tooling ISO when ``mode`` is ``attach``.

    Produces ``guest.dvd.properties``.
    """

    state_key = STATE_GUEST_DVD
    label = "guest additions"

    def run(self, state: StateBag) -> StepAction:
        ui = state.require(STATE_UI)
        if self.media.mode != "attach":
            ui.say("Skipping mounting guest additions disk...")
            return StepAction.CONTINUE

        vm_name = state.require(STATE_VM_NAME)
        media_path = self.media.path or ""
        ui.say("Mounting guest additions disk...")
        try:
            slot = self._attach(state, media_path)
        except BuildError as exc:
            return halt(state, ui, exc)

        try:
            ui.say(f"Mounting guest additions dvd drive {media_path} ...")
            MediaControllerAllocator(state.require(STATE_DRIVER)).mount(vm_name, slot, media_path)
        except BuildError as exc:
            return halt(state, ui, BuildError(f"Error mounting guest additions dvd drive: {exc}"))

        log(
            "DEBUG",
            f"ISO {media_path} mounted on DVD controller {slot.controller_number}, "
            f"location {slot.controller_location}",
        )
        return StepAction.CONTINUE

    def cleanup(self, state: StateBag) -> None:
        if self.media.mode != "attach":
            return
        super().cleanup(state)


class StepModifyVM(Step):
    """Run operator-supplied commands against the VM.

    Uses ``driver``, ``ui``, ``vm_name`` and ``temp_dir``.
    """

    def __init__(self, commands: Sequence[str]) -> None:
        self.commands: List[str] = list(commands)

    def run(self, state: StateBag) -> StepAction:
        if not self.commands:
            return StepAction.CONTINUE

        ui = state.require(STATE_UI)
        driver = state.require(STATE_DRIVER)
        vm_name = state.require(STATE_VM_NAME)
        path = state.require(STATE_TEMP_DIR)

        try:
            rendered = render_commands(self.commands, vm_name, path)
        except ConfigurationError as exc:
            return halt(state, ui, exc)

        for command in rendered:
            ui.message(f"Adding: {command}")

        try:
            output = driver.execute_commands(rendered)
        except BuildError as exc:
            return halt(state, ui, BuildError(f"Error executing modifyvm commands: {exc}"))

        ui.message(f"modifyvm output:\n{output}")
        return StepAction.CONTINUE
