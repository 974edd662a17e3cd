"""Build file loading and environment overrides for vmbuilder."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from vmbuilder.constants import (
    DEFAULT_NETWORK,
    DEFAULT_VNC_PORT_MAX,
    DEFAULT_VNC_PORT_MIN,
    GENERATIONS,
    GUEST_ADDITIONS_MODES,
    LIBVIRT_URI,
)
from vmbuilder.exceptions import ConfigurationError
from vmbuilder.models import BuildConfig, MediaConfig, VNCConfig
from vmbuilder.utils import get_env, log, parse_port

SUPPORTED_DRIVERS = {"libvirt"}


def load_build_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Build file missing: {path}")
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Build file {path} contains invalid YAML: {exc}")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read build file {path}: {exc}")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Build file {path} must contain a YAML mapping, got {type(data).__name__}")
    return data


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{name}' must be a mapping")
    return section


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coordinate(value: Any) -> str:
    # Kept as text; validated when the drive is attached
    return "" if value is None else str(value).strip()


def _parse_media(section: Dict[str, Any], default_mode: str) -> MediaConfig:
    return MediaConfig(
        path=_optional_str(section.get("path")),
        controller_number=_coordinate(section.get("controller_number")),
        controller_location=_coordinate(section.get("controller_location")),
        mode=(str(section.get("mode") or default_mode)).strip().lower(),
    )


def _parse_vnc(section: Dict[str, Any]) -> VNCConfig:
    bind_address = get_env("VNC_BIND_ADDRESS")
    if bind_address is None:
        bind_address = section.get("bind_address") or ""
    port_min_raw = get_env("VNC_PORT_MIN") or section.get("port_min", DEFAULT_VNC_PORT_MIN)
    port_max_raw = get_env("VNC_PORT_MAX") or section.get("port_max", DEFAULT_VNC_PORT_MAX)
    port_min = parse_port("VNC_PORT_MIN", port_min_raw)
    port_max = parse_port("VNC_PORT_MAX", port_max_raw)
    if port_min > port_max:
        raise ConfigurationError(f"VNC_PORT_MIN ({port_min}) must be <= VNC_PORT_MAX ({port_max})")
    return VNCConfig(bind_address=str(bind_address).strip(), port_min=port_min, port_max=port_max)


def _parse_commands(raw: Any) -> List[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigurationError("'modify_commands' must be a list of strings")
    commands = []
    for entry in raw:
        if not isinstance(entry, str):
            raise ConfigurationError(f"Invalid modify command {entry!r}: expected a string")
        commands.append(entry)
    return commands


def prepare_output_directory(raw: Optional[str], vm_name: str, force: bool = False) -> Path:
    """Resolve the output directory; it must not exist unless ``force`` is set."""
    output_dir = Path(raw) if raw else Path(f"output-{vm_name}")
    if not output_dir.is_absolute():
        output_dir = output_dir.resolve()
    if not force and output_dir.exists():
        raise ConfigurationError(f"Output directory '{output_dir}' already exists. It must not exist.")
    return output_dir


def parse_build_config(path: Path, force: bool = False) -> BuildConfig:
    data = load_build_file(path)

    vm_name = _optional_str(get_env("VM_NAME")) or _optional_str(data.get("vm_name"))
    if not vm_name:
        raise ConfigurationError("vm_name must be set in the build file or via VM_NAME")

    driver = (str(data.get("driver") or "libvirt")).strip().lower()
    if driver not in SUPPORTED_DRIVERS:
        supported = ", ".join(sorted(SUPPORTED_DRIVERS))
        raise ConfigurationError(f"Unsupported driver '{driver}'. Supported: {supported}")

    try:
        generation = int(data.get("generation", 1))
    except (TypeError, ValueError):
        raise ConfigurationError(f"generation must be an integer (got '{data.get('generation')}')")
    if generation not in GENERATIONS:
        raise ConfigurationError(f"Unsupported generation {generation}. Supported: 1, 2")

    dvd = _parse_media(_section(data, "dvd"), "attach")
    guest_additions = _parse_media(_section(data, "guest_additions"), "none")
    if guest_additions.mode not in GUEST_ADDITIONS_MODES:
        supported = ", ".join(sorted(GUEST_ADDITIONS_MODES))
        raise ConfigurationError(f"Unknown guest_additions mode '{guest_additions.mode}'. Supported: {supported}")
    if guest_additions.mode == "attach" and not guest_additions.path:
        raise ConfigurationError("guest_additions.path must be set when guest_additions.mode is 'attach'")

    iso_path = _optional_str(data.get("iso_path"))
    if iso_path and not Path(iso_path).exists():
        log("WARN", f"ISO {iso_path} not found on this host; the driver must be able to resolve it")

    return BuildConfig(
        vm_name=vm_name,
        output_directory=prepare_output_directory(_optional_str(data.get("output_directory")), vm_name, force),
        driver=driver,
        libvirt_uri=_optional_str(get_env("LIBVIRT_URI")) or _optional_str(data.get("libvirt_uri")) or LIBVIRT_URI,
        network=_optional_str(data.get("network")) or DEFAULT_NETWORK,
        generation=generation,
        iso_path=iso_path,
        temp_dir=_optional_str(data.get("temp_dir")),
        vmx_path=_optional_str(data.get("vmx_path")),
        dvd=dvd,
        guest_additions=guest_additions,
        vnc=_parse_vnc(_section(data, "vnc")),
        modify_commands=_parse_commands(data.get("modify_commands")),
    )
