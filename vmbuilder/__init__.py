"""vmbuilder package."""

__all__ = [
    "cli",
    "config",
    "constants",
    "devices",
    "driver",
    "exceptions",
    "hostip",
    "libvirt_driver",
    "media",
    "models",
    "pipeline",
    "ports",
    "state",
    "steps",
    "templating",
    "ui",
    "utils",
    "vmx",
]
