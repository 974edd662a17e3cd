"""Global constants and state keys for vmbuilder."""

from __future__ import annotations

import os
import re
from pathlib import Path

LIBVIRT_URI = os.environ.get("LIBVIRT_URI", "qemu:///system")
DEFAULT_NETWORK = "default"
TRUTHY = {"1", "true", "yes", "on"}

_LOG_VERBOSE = os.environ.get("LOG_VERBOSE", "").lower() in TRUTHY

# State keys shared between steps. See vmbuilder.state.STATE_CONTRACT.
STATE_DRIVER = "driver"
STATE_UI = "ui"
STATE_VM_NAME = "vm_name"
STATE_VMX_PATH = "vmx_path"
STATE_TEMP_DIR = "temp_dir"
STATE_ISO_PATH = "iso_path"
STATE_VNC_IP = "vnc_ip"
STATE_VNC_PORT = "vnc_port"
STATE_OS_DVD = "os.dvd.properties"
STATE_GUEST_DVD = "guest.dvd.properties"
STATE_ERROR = "error"
STATE_HALTED = "halted"

# VMX keys touched by the VNC step
VMX_VNC_ENABLED = "remotedisplay.vnc.enabled"
VMX_VNC_IP = "remotedisplay.vnc.ip"
VMX_VNC_PORT = "remotedisplay.vnc.port"
VMX_ENCODING = ".encoding"

DEFAULT_VNC_PORT_MIN = 5900
DEFAULT_VNC_PORT_MAX = 6000
# Bounded probe: range size times this factor
PORT_ATTEMPT_FACTOR = 4

GUEST_ADDITIONS_MODES = {"attach", "none"}
GENERATIONS = {1, 2}

# Removable media buses per generation. IDE has 2 controllers with 2 locations
# each; SCSI exposes 64 locations on a single controller.
MEDIA_BUSES = {
    1: {"bus": "ide", "dev_prefix": "hd", "controllers": 2, "locations": 2},
    2: {"bus": "scsi", "dev_prefix": "sd", "controllers": 1, "locations": 64},
}

DEFAULT_NETWORK_XML = Path("/etc/libvirt/qemu/networks/default.xml")
DEFAULT_HOST_INTERFACE = "virbr0"

IPV4_RE = re.compile(r"\binet\s+(\d{1,3}(?:\.\d{1,3}){3})")
