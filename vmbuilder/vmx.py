"""Reading and writing VMX-style ``key = "value"`` configuration documents."""

from __future__ import annotations

import codecs
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Mapping, Union

from vmbuilder.constants import VMX_ENCODING
from vmbuilder.exceptions import BuildError

DEFAULT_VMX_ENCODING = "utf-8"

_LINE_RE = re.compile(r'^\s*([^=#\s][^=]*?)\s*=\s*(?:"(.*)"|(.*?))\s*$')


def parse_vmx(contents: str) -> Dict[str, str]:
    """Parse VMX text into an ordered mapping.

    Quotes around values are stripped. Blank and ``#`` comment lines are
    skipped. A key that appears more than once keeps its first position and
    its last value.
    """
    results: Dict[str, str] = {}
    for line in contents.splitlines():
        match = _LINE_RE.match(line)
        if match is None:
            continue
        key = match.group(1)
        value = match.group(2) if match.group(2) is not None else match.group(3)
        results[key] = value
    return results


def encode_vmx(data: Mapping[str, str]) -> str:
    """Serialize a mapping to VMX text, ``.encoding`` first."""
    lines = []
    if VMX_ENCODING in data:
        lines.append(f'{VMX_ENCODING} = "{data[VMX_ENCODING]}"')
    for key, value in data.items():
        if key == VMX_ENCODING:
            continue
        lines.append(f'{key} = "{value}"')
    return "\n".join(lines) + "\n"


def _codec(name: str) -> str:
    try:
        return codecs.lookup(name).name
    except LookupError:
        raise BuildError(f"Unknown VMX encoding '{name}'")


def vmx_encoding(data: Mapping[str, str]) -> str:
    """Return the codec named by the document's ``.encoding`` key, UTF-8 if unset."""
    return _codec(data.get(VMX_ENCODING) or DEFAULT_VMX_ENCODING)


def read_vmx(path: Union[str, Path]) -> Dict[str, str]:
    """Read a VMX file, decoding it with the codec its ``.encoding`` line names."""
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise BuildError(f"Error reading VMX data: {exc}")

    # The keys are ASCII, so latin-1 is enough to find the declared encoding
    encoding = vmx_encoding(parse_vmx(raw.decode("latin-1")))
    try:
        contents = raw.decode(encoding)
    except UnicodeError as exc:
        raise BuildError(f"Error reading VMX data: {exc}")
    return parse_vmx(contents)


def write_vmx(path: Union[str, Path], data: Mapping[str, str]) -> None:
    """Atomically replace ``path`` with the encoded document.

    The text is encoded with the document's own ``.encoding``. An existing
    file keeps its permission bits.
    """
    destination = Path(path)
    try:
        payload = encode_vmx(data).encode(vmx_encoding(data))
    except UnicodeError as exc:
        raise BuildError(f"Error writing VMX data: {exc}")

    try:
        tmp = tempfile.NamedTemporaryFile(
            "wb", delete=False, dir=destination.parent, prefix=f".{destination.name}."
        )
    except OSError as exc:
        raise BuildError(f"Error writing VMX data: {exc}")

    tmp_path = Path(tmp.name)
    try:
        with tmp:
            tmp.write(payload)
            tmp.flush()
            os.fsync(tmp.fileno())
        if destination.exists():
            shutil.copymode(destination, tmp_path)
        tmp_path.replace(destination)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise BuildError(f"Error writing VMX data: {exc}")
