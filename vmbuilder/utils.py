"""Utility functions for vmbuilder."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import List, Optional

from vmbuilder.constants import _LOG_VERBOSE
from vmbuilder.exceptions import ConfigurationError


def log(level: str, message: str) -> None:
    """Lightweight structured logging with coloured level prefixes."""
    if level == "DEBUG" and not _LOG_VERBOSE:
        return
    colours = {
        "INFO": "\033[0;34m",
        "WARN": "\033[1;33m",
        "ERROR": "\033[0;31m",
        "SUCCESS": "\033[0;32m",
        "DEBUG": "\033[0;90m",
    }
    colour = colours.get(level, "")
    reset = "\033[0m" if colour else ""
    print(f"{colour}[{level}]{reset} {message}", flush=True)


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def parse_port(name: str, raw, min_val: int = 1, max_val: int = 65535) -> int:
    """Parse a port number from a build file or environment value."""
    text = str(raw).strip()
    if not (text.isascii() and text.isdigit()):
        raise ConfigurationError(f"{name} must be an integer (got '{raw}')")
    value = int(text)
    if value < min_val:
        raise ConfigurationError(f"{name} must be >= {min_val} (got {value})")
    if value > max_val:
        raise ConfigurationError(f"{name} must be <= {max_val} (got {value})")
    return value


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def run(cmd: List[str], check: bool = True, **kwargs) -> subprocess.CompletedProcess:
    """Run command with logging."""
    log("DEBUG", f"Running: {' '.join(cmd)}")
    result = subprocess.run(cmd, check=check, text=True, **kwargs)
    return result
