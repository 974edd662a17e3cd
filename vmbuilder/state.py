"""Per-build shared state for vmbuilder steps.

Steps communicate only through a :class:`StateBag`. Every key a step reads or
writes is listed in :data:`STATE_CONTRACT` together with its type, the step
that produces it and the steps that consume it. Reading a required key that
is missing, or holds the wrong type, is a programming error and raises
:class:`StateContractError`.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, NamedTuple, Optional, Tuple

from vmbuilder.constants import (
    STATE_DRIVER,
    STATE_ERROR,
    STATE_GUEST_DVD,
    STATE_HALTED,
    STATE_ISO_PATH,
    STATE_OS_DVD,
    STATE_TEMP_DIR,
    STATE_UI,
    STATE_VM_NAME,
    STATE_VMX_PATH,
    STATE_VNC_IP,
    STATE_VNC_PORT,
)
from vmbuilder.driver import Driver
from vmbuilder.exceptions import StateContractError
from vmbuilder.models import MediaSlot


class KeyContract(NamedTuple):
    types: Tuple[type, ...]
    producer: str
    consumers: Tuple[str, ...]


STATE_CONTRACT: Dict[str, KeyContract] = {
    STATE_DRIVER: KeyContract((Driver,), "cli", ("StepConfigureVNC", "StepMountDvdDrive",
                                                   "StepMountGuestAdditions", "StepModifyVM")),
    STATE_UI: KeyContract((object,), "cli", ("all steps",)),
    STATE_VM_NAME: KeyContract((str,), "cli", ("StepMountDvdDrive", "StepMountGuestAdditions", "StepModifyVM")),
    STATE_VMX_PATH: KeyContract((str,), "cli", ("StepConfigureVNC",)),
    STATE_TEMP_DIR: KeyContract((str,), "cli", ("StepModifyVM",)),
    STATE_ISO_PATH: KeyContract((str,), "cli", ("StepMountDvdDrive",)),
    STATE_VNC_IP: KeyContract((str,), "StepConfigureVNC", ("cli",)),
    STATE_VNC_PORT: KeyContract((int,), "StepConfigureVNC", ("cli",)),
    STATE_OS_DVD: KeyContract((MediaSlot,), "StepMountDvdDrive", ("StepMountDvdDrive",)),
    STATE_GUEST_DVD: KeyContract((MediaSlot,), "StepMountGuestAdditions", ("StepMountGuestAdditions",)),
    STATE_ERROR: KeyContract((BaseException,), "any step", ("BasicRunner", "cli")),
    STATE_HALTED: KeyContract((bool,), "BasicRunner", ("cli",)),
}


class StateBag:
    """Mutable key/value container living for exactly one build."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self.put(key, value)

    def put(self, key: str, value: Any) -> None:
        expected = STATE_CONTRACT.get(key)
        if expected is not None and not isinstance(value, expected.types):
            raise StateContractError(
                f"State key '{key}' expects {_type_names(expected.types)}, got {type(value).__name__}"
            )
        self._data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def require(self, key: str) -> Any:
        """Return ``key`` or raise when an earlier step failed to provide it."""
        if key not in self._data:
            raise StateContractError(f"State key '{key}' is required but was never set")
        value = self._data[key]
        expected = STATE_CONTRACT.get(key)
        if expected is not None and not isinstance(value, expected.types):
            raise StateContractError(
                f"State key '{key}' expects {_type_names(expected.types)}, got {type(value).__name__}"
            )
        return value

    def pop(self, key: str, default: Any = None) -> Any:
        return self._data.pop(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)


def _type_names(types: Tuple[type, ...]) -> str:
    return " or ".join(t.__name__ for t in types)
