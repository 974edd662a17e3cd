"""libvirt-backed hypervisor driver for vmbuilder."""

from __future__ import annotations

import subprocess
from typing import FrozenSet, List, Optional, Tuple
from xml.etree.ElementTree import fromstring

try:
    import libvirt  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit(f"libvirt python bindings not available: {exc}")

from vmbuilder.constants import DEFAULT_NETWORK, LIBVIRT_URI
from vmbuilder.devices import (
    find_cdrom,
    first_free_slot,
    make_boot_device,
    next_target_dev,
    render_cdrom_xml,
    set_cdrom_source,
)
from vmbuilder.driver import Capability, Driver
from vmbuilder.exceptions import DriverError, HostIPError
from vmbuilder.utils import log, run


class LibvirtDriver(Driver):
    """Drive a libvirt domain. Device changes target the persistent definition."""

    def __init__(self, uri: str = LIBVIRT_URI, network: str = DEFAULT_NETWORK) -> None:
        self.uri = uri
        self.network = network
        self.conn: Optional[libvirt.virConnect] = None

    def capabilities(self) -> FrozenSet[Capability]:
        return frozenset({Capability.HOST_IP_FINDER})

    def connect(self) -> None:
        try:
            self.conn = libvirt.open(self.uri)
        except libvirt.libvirtError as exc:
            raise DriverError(f"Failed to open libvirt connection to {self.uri}: {exc}") from exc
        if self.conn is None:
            raise DriverError(f"Failed to open libvirt connection to {self.uri}")

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    def _domain(self, vm_name: str):
        if self.conn is None:
            self.connect()
        try:
            return self.conn.lookupByName(vm_name)
        except libvirt.libvirtError as exc:
            raise DriverError(f"Domain {vm_name} not found: {exc}") from exc

    @staticmethod
    def _config_xml(domain) -> str:
        try:
            return domain.XMLDesc(libvirt.VIR_DOMAIN_XML_INACTIVE)
        except libvirt.libvirtError as exc:
            raise DriverError(f"Cannot read definition of {domain.name()}: {exc}") from exc

    def _attach(self, domain, controller: int, unit: int, iso_path: str, generation: int) -> None:
        xml = self._config_xml(domain)
        device = render_cdrom_xml(controller, unit, generation, next_target_dev(xml, generation), iso_path)
        log("DEBUG", f"Attaching dvd drive to {domain.name()}:\n{device}")
        try:
            domain.attachDeviceFlags(device, libvirt.VIR_DOMAIN_AFFECT_CONFIG)
        except libvirt.libvirtError as exc:
            raise DriverError(
                f"Cannot attach dvd drive at controller {controller}, location {unit}: {exc}"
            ) from exc

    def create_dvd_drive(self, vm_name: str, iso_path: str, generation: int) -> Tuple[int, int]:
        domain = self._domain(vm_name)
        controller, unit = first_free_slot(self._config_xml(domain), generation)
        self._attach(domain, controller, unit, iso_path, generation)
        return controller, unit

    def create_dvd_drive_at(
        self, vm_name: str, controller_number: int, controller_location: int, iso_path: str, generation: int
    ) -> None:
        domain = self._domain(vm_name)
        self._attach(domain, controller_number, controller_location, iso_path, generation)

    def _update_media(self, vm_name: str, number: int, location: int, source: Optional[str]) -> None:
        domain = self._domain(vm_name)
        disk = find_cdrom(self._config_xml(domain), number, location)
        if disk is None:
            raise DriverError(f"No dvd drive at controller {number}, location {location} on {vm_name}")
        try:
            domain.updateDeviceFlags(set_cdrom_source(disk, source), libvirt.VIR_DOMAIN_AFFECT_CONFIG)
        except libvirt.libvirtError as exc:
            raise DriverError(f"Cannot change media at controller {number}, location {location}: {exc}") from exc

    def mount_dvd_drive(self, vm_name: str, path: str, controller_number: int, controller_location: int) -> None:
        self._update_media(vm_name, controller_number, controller_location, path)

    def unmount_dvd_drive(self, vm_name: str, controller_number: int, controller_location: int) -> None:
        self._update_media(vm_name, controller_number, controller_location, None)

    def delete_dvd_drive(self, vm_name: str, controller_number: int, controller_location: int) -> None:
        domain = self._domain(vm_name)
        disk = find_cdrom(self._config_xml(domain), controller_number, controller_location)
        if disk is None:
            log("DEBUG", f"No dvd drive at ({controller_number}, {controller_location}) on {vm_name}; nothing to delete")
            return
        try:
            domain.detachDeviceFlags(set_cdrom_source(disk, None), libvirt.VIR_DOMAIN_AFFECT_CONFIG)
        except libvirt.libvirtError as exc:
            raise DriverError(
                f"Cannot delete dvd drive at controller {controller_number}, location {controller_location}: {exc}"
            ) from exc

    def set_boot_dvd_drive(
        self, vm_name: str, controller_number: int, controller_location: int, generation: int
    ) -> None:
        domain = self._domain(vm_name)
        xml = make_boot_device(self._config_xml(domain), controller_number, controller_location)
        try:
            self.conn.defineXML(xml)
        except libvirt.libvirtError as exc:
            raise DriverError(f"Cannot set boot device for {vm_name}: {exc}") from exc

    def execute_commands(self, commands: List[str]) -> str:
        script = "\n".join(commands)
        try:
            result = run(["sh", "-c", script], capture_output=True)
        except FileNotFoundError as exc:
            raise DriverError(f"Cannot run commands: {exc}") from exc
        except subprocess.CalledProcessError as exc:
            output = (exc.stderr or exc.stdout or "").strip()
            raise DriverError(f"Commands exited with status {exc.returncode}: {output}") from exc
        return result.stdout

    def host_ip(self) -> str:
        if self.conn is None:
            self.connect()
        try:
            network = self.conn.networkLookupByName(self.network)
            xml = network.XMLDesc(0)
        except libvirt.libvirtError as exc:
            raise HostIPError(f"Cannot read libvirt network {self.network}: {exc}") from exc
        ip_el = fromstring(xml).find("ip")
        address = ip_el.get("address") if ip_el is not None else None
        if not address:
            raise HostIPError(f"libvirt network {self.network} has no host address")
        return address
