"""Build progress reporting for vmbuilder."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from vmbuilder.utils import ensure_directory, log


class ConsoleUi:
    """Report build progress on the console, optionally mirrored to a status file."""

    def __init__(self, status_file: Optional[Path] = None) -> None:
        self.status_file = status_file

    def say(self, msg: str) -> None:
        log("INFO", msg)
        self._record(msg)

    def message(self, msg: str) -> None:
        log("INFO", f"    {msg}")
        self._record(msg)

    def error(self, msg: str) -> None:
        log("ERROR", msg)
        self._record(f"ERROR: {msg}")

    def _record(self, msg: str) -> None:
        if self.status_file is None:
            return
        try:
            ensure_directory(self.status_file.parent)
            with open(self.status_file, "a") as f:
                f.write(msg + "\n")
                f.flush()
        except OSError as exc:
            log("DEBUG", f"Cannot write status file {self.status_file}: {exc}")
