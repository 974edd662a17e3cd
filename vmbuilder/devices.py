"""libvirt CD-ROM device XML generation and inspection for vmbuilder."""

from __future__ import annotations

import string
from typing import Iterator, List, Optional, Set, Tuple
from xml.etree.ElementTree import Element, SubElement, fromstring, tostring

from vmbuilder.constants import MEDIA_BUSES
from vmbuilder.exceptions import AllocationError, ConfigurationError, DriverError


def _element_to_str(root: Element) -> str:
    """Serialize an ElementTree element to a pretty-printed XML string without declaration."""
    from xml.dom.minidom import parseString

    raw = tostring(root, encoding="unicode")
    return parseString(raw).documentElement.toprettyxml(indent="  ").strip()


def bus_profile(generation: int) -> dict:
    try:
        return MEDIA_BUSES[generation]
    except KeyError:
        raise ConfigurationError(f"Unsupported generation {generation}. Supported: 1, 2")


def _drive_address(disk: Element) -> Optional[Tuple[int, int]]:
    address = disk.find("address")
    if address is None or address.get("type") != "drive":
        return None
    try:
        return int(address.get("controller", "0")), int(address.get("unit", "0"))
    except ValueError:
        return None


def _iter_disks(domain_xml: str, bus: Optional[str] = None) -> Iterator[Element]:
    root = fromstring(domain_xml)
    for disk in root.iterfind("devices/disk"):
        target = disk.find("target")
        if bus is not None and (target is None or target.get("bus") != bus):
            continue
        yield disk


def used_slots(domain_xml: str, generation: int) -> Set[Tuple[int, int]]:
    """Return the ``(controller, unit)`` pairs occupied on the generation's bus."""
    bus = bus_profile(generation)["bus"]
    slots = set()
    for disk in _iter_disks(domain_xml, bus):
        slot = _drive_address(disk)
        if slot is not None:
            slots.add(slot)
    return slots


def first_free_slot(domain_xml: str, generation: int) -> Tuple[int, int]:
    profile = bus_profile(generation)
    taken = used_slots(domain_xml, generation)
    for controller in range(profile["controllers"]):
        for unit in range(profile["locations"]):
            if (controller, unit) not in taken:
                return controller, unit
    raise AllocationError(f"No free {profile['bus'].upper()} slot left for a dvd drive")


def _used_target_devs(domain_xml: str) -> List[str]:
    devs = []
    for disk in _iter_disks(domain_xml):
        target = disk.find("target")
        if target is not None and target.get("dev"):
            devs.append(target.get("dev"))
    return devs


def next_target_dev(domain_xml: str, generation: int) -> str:
    prefix = bus_profile(generation)["dev_prefix"]
    used = set(_used_target_devs(domain_xml))
    for letter in string.ascii_lowercase:
        candidate = f"{prefix}{letter}"
        if candidate not in used:
            return candidate
    for first in string.ascii_lowercase:
        for second in string.ascii_lowercase:
            candidate = f"{prefix}{first}{second}"
            if candidate not in used:
                return candidate
    raise AllocationError(f"No free {prefix}* target name left")


def render_cdrom_xml(
    controller: int,
    unit: int,
    generation: int,
    target_dev: str,
    source: Optional[str] = None,
) -> str:
    """Render a libvirt CD-ROM ``<disk>`` at ``(controller, unit)``; no source means empty tray."""
    profile = bus_profile(generation)
    disk = Element("disk", type="file", device="cdrom")
    SubElement(disk, "driver", name="qemu", type="raw")
    if source:
        SubElement(disk, "source", file=source)
    SubElement(disk, "target", dev=target_dev, bus=profile["bus"])
    SubElement(disk, "readonly")
    SubElement(
        disk,
        "address",
        type="drive",
        controller=str(controller),
        bus="0",
        target="0",
        unit=str(unit),
    )
    return _element_to_str(disk)


def find_cdrom(domain_xml: str, controller: int, unit: int) -> Optional[Element]:
    """Return the CD-ROM ``<disk>`` element at ``(controller, unit)``, if any."""
    for disk in _iter_disks(domain_xml):
        if disk.get("device") != "cdrom":
            continue
        if _drive_address(disk) == (controller, unit):
            return disk
    return None


def set_cdrom_source(disk: Element, source: Optional[str]) -> str:
    """Return ``disk`` rendered with its media replaced (or ejected when ``source`` is None)."""
    for existing in disk.findall("source"):
        disk.remove(existing)
    if source:
        # libvirt expects <source> right after <driver>
        position = 1 if disk.find("driver") is not None else 0
        src = Element("source", file=source)
        disk.insert(position, src)
    return _element_to_str(disk)


def make_boot_device(domain_xml: str, controller: int, unit: int) -> str:
    """Return ``domain_xml`` with the CD-ROM at ``(controller, unit)`` booting first.

    ``<os><boot dev=...>`` entries are dropped since libvirt rejects mixing
    them with per-device boot order. Other devices keep their relative order.
    """
    root = fromstring(domain_xml)
    os_el = root.find("os")
    if os_el is not None:
        for boot in os_el.findall("boot"):
            os_el.remove(boot)

    target = None
    devices = root.find("devices")
    if devices is not None:
        for disk in devices.findall("disk"):
            if disk.get("device") == "cdrom" and _drive_address(disk) == (controller, unit):
                target = disk
                break
    if target is None:
        raise DriverError(f"No dvd drive at controller {controller}, location {unit}")

    ordered = []
    for device in devices:
        boot = device.find("boot")
        if boot is not None and device is not target:
            try:
                ordered.append((int(boot.get("order", "0")), boot))
            except ValueError:
                device.remove(boot)
    for index, (_, boot) in enumerate(sorted(ordered, key=lambda item: item[0]), start=2):
        boot.set("order", str(index))

    for boot in target.findall("boot"):
        target.remove(boot)
    SubElement(target, "boot", order="1")
    return tostring(root, encoding="unicode")
