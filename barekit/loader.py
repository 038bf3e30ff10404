"""Unpack the modules appended after a kernel image."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterator, Sequence

_U32 = struct.Struct("<I")


class ModuleFormatError(Exception):
    """Raised when a module payload is truncated or does not fit its targets."""


@dataclass(frozen=True)
class LoadedModule:
    """A module copied from the payload to its target address."""

    index: int
    source_offset: int
    target: int
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    def describe(self) -> str:
        """The boot log line for this module."""
        return (
            f"  Will copy module at 0x{self.source_offset:X} to 0x{self.target:X}"
            f" ({self.size} bytes) [Done]"
        )


def _read_u32(payload: bytes, offset: int) -> int:
    if offset + _U32.size > len(payload):
        raise ModuleFormatError(f"Payload truncated at offset {offset}")
    return _U32.unpack_from(payload, offset)[0]


def _walk(payload: bytes) -> Iterator[tuple[int, bytes]]:
    payload = bytes(payload)
    count = _read_u32(payload, 0)
    offset = _U32.size
    for _ in range(count):
        size = _read_u32(payload, offset)
        offset += _U32.size
        if offset + size > len(payload):
            raise ModuleFormatError(
                f"Module at offset {offset} needs {size} bytes, "
                f"only {len(payload) - offset} remain"
            )
        yield offset, payload[offset : offset + size]
        offset += size


def iter_modules(payload: bytes) -> Iterator[bytes]:
    """Yield the contents of each module in the payload, in order."""
    for _, data in _walk(payload):
        yield data


def load_modules(payload: bytes, targets: Sequence[int]) -> list[LoadedModule]:
    """Assign each module of the payload to the matching target address."""
    payload = bytes(payload)
    count = _read_u32(payload, 0)
    if count > len(targets):
        raise ModuleFormatError(
            f"Payload holds {count} modules but only {len(targets)} targets were given"
        )
    return [
        LoadedModule(index, offset, target, data)
        for index, ((offset, data), target) in enumerate(zip(_walk(payload), targets))
    ]