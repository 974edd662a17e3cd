"""Data models for vmbuilder."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from vmbuilder.constants import DEFAULT_NETWORK, DEFAULT_VNC_PORT_MAX, DEFAULT_VNC_PORT_MIN, LIBVIRT_URI


@dataclass(frozen=True)
class MediaSlot:
    """Provenance record for one attached removable-media device.

    ``existing`` means the device was present before the build touched it, so
    cleanup only unmounts the media. Otherwise the build created the
    attachment and cleanup deletes it.
    """

    controller_number: int
    controller_location: int
    existing: bool = False


@dataclass
class MediaConfig:
    path: Optional[str] = None
    # Raw strings as written in the build file; empty means auto-select
    controller_number: str = ""
    controller_location: str = ""
    mode: str = "attach"


@dataclass
class VNCConfig:
    bind_address: str = ""
    port_min: int = DEFAULT_VNC_PORT_MIN
    port_max: int = DEFAULT_VNC_PORT_MAX


@dataclass
class BuildConfig:
    vm_name: str
    output_directory: Path
    driver: str = "libvirt"
    libvirt_uri: str = LIBVIRT_URI
    network: str = DEFAULT_NETWORK
    generation: int = 1
    iso_path: Optional[str] = None
    temp_dir: Optional[str] = None
    vmx_path: Optional[str] = None
    dvd: MediaConfig = field(default_factory=MediaConfig)
    guest_additions: MediaConfig = field(default_factory=lambda: MediaConfig(mode="none"))
    vnc: VNCConfig = field(default_factory=VNCConfig)
    modify_commands: List[str] = field(default_factory=list)
