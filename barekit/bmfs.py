"""BareMetal File System (BMFS) disk images: creation, listing and file transfer."""

from __future__ import annotations

import os
import re
import shutil
import struct
import sys
from contextlib import ExitStack
from dataclasses import dataclass
from typing import BinaryIO, Iterator

MIB = 1024 * 1024
BLOCK_SIZE = 2 * MIB
MINIMUM_DISK_SIZE = 6 * MIB

DISK_INFO_OFFSET = 1024
DISK_INFO_SIZE = 512
DIRECTORY_OFFSET = 4096
DIRECTORY_SIZE = 4096
BOOT_OFFSET = 8192
MBR_SIZE = 512

ENTRY_SIZE = 64
MAX_ENTRIES = 64
NAME_SIZE = 32
FS_TAG = b"BMFS"

_FILE_SIZE_FIELD = 48
_FILL_CHUNK = 50 * 1024
_ENTRY = struct.Struct("<32sQQQQ")
_END_MARKER = 0x00
_DELETED_MARKER = 0x01
_U64_MASK = (1 << 64) - 1
_UNIT_POWERS = {"K": 1, "M": 2, "G": 3, "T": 4, "P": 5}

_LIST_HEADER = "Name                            |            Size (B)|      Reserved (MiB)"
_LIST_RULE = "=" * 74


class BMFSError(Exception):
    """Raised when a BMFS operation cannot be carried out."""


def _decode_name(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", "surrogateescape")


def _encode_name(name: str) -> bytes:
    return name.encode("utf-8", "surrogateescape")


@dataclass
class DirectoryEntry:
    """One 64-byte record of the BMFS directory."""

    name: str
    starting_block: int = 0
    reserved_blocks: int = 0
    file_size: int = 0
    unused: int = 0

    @classmethod
    def unpack(cls, raw: bytes) -> "DirectoryEntry":
        if len(raw) != ENTRY_SIZE:
            raise BMFSError(f"Directory entry must be {ENTRY_SIZE} bytes, got {len(raw)}")
        name, start, reserved, size, unused = _ENTRY.unpack(bytes(raw))
        return cls(_decode_name(name), start, reserved, size, unused)

    def pack(self) -> bytes:
        encoded = _encode_name(self.name)
        if len(encoded) > NAME_SIZE:
            raise BMFSError(f"File name '{self.name}' is longer than {NAME_SIZE} bytes")
        try:
            return _ENTRY.pack(
                encoded, self.starting_block, self.reserved_blocks, self.file_size, self.unused
            )
        except struct.error as exc:
            raise BMFSError(f"Directory entry field out of range: {exc}") from exc

    @property
    def is_end(self) -> bool:
        """True if this record marks the end of the directory."""
        return not self.name

    @property
    def is_deleted(self) -> bool:
        """True if this record belongs to a deleted file."""
        return self.name.startswith(chr(_DELETED_MARKER))


def _write_empty_filesystem(handle: BinaryIO) -> None:
    disk_info = bytearray(DISK_INFO_SIZE)
    disk_info[: len(FS_TAG)] = FS_TAG
    handle.seek(DISK_INFO_OFFSET)
    handle.write(disk_info)
    handle.seek(DIRECTORY_OFFSET)
    handle.write(bytes(DIRECTORY_SIZE))


class BMFSDisk:
    """An open BMFS disk image."""

    def __init__(self, path):
        self.path = os.fspath(path)
        try:
            self._file = open(self.path, "r+b")
        except OSError as exc:
            raise BMFSError(f"Unable to open disk '{self.path}'") from exc
        self._file.seek(0, os.SEEK_END)
        self.disk_size_mib = self._file.tell() // MIB
        self._disk_info = self._read_region(DISK_INFO_OFFSET, DISK_INFO_SIZE)
        self._directory = self._read_region(DIRECTORY_OFFSET, DIRECTORY_SIZE)

    def __enter__(self) -> "BMFSDisk":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _read_region(self, offset: int, size: int) -> bytearray:
        self._file.seek(offset)
        data = self._file.read(size)
        return bytearray(data.ljust(size, b"\0"))

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()

    def is_formatted(self) -> bool:
        tag = bytes(self._disk_info).split(b"\0", 1)[0]
        return tag.lower() == FS_TAG.lower()

    def _require_formatted(self) -> None:
        if not self.is_formatted():
            raise BMFSError("Not a valid BMFS drive (Disk is not BMFS formatted).")

    def _slots(self) -> Iterator[tuple[int, DirectoryEntry]]:
        for slot in range(MAX_ENTRIES):
            start = slot * ENTRY_SIZE
            marker = self._directory[start]
            if marker == _END_MARKER:
                return
            if marker == _DELETED_MARKER:
                continue
            yield slot, DirectoryEntry.unpack(self._directory[start : start + ENTRY_SIZE])

    def _locate(self, name: str) -> tuple[int, DirectoryEntry] | None:
        for slot, entry in self._slots():
            if entry.name == name:
                return slot, entry
        return None

    def _flush_directory(self) -> None:
        self._file.seek(DIRECTORY_OFFSET)
        self._file.write(self._directory)
        self._file.flush()

    def entries(self) -> list[DirectoryEntry]:
        """The live directory entries, in directory order."""
        self._require_formatted()
        return [entry for _, entry in self._slots()]

    def find(self, name: str) -> DirectoryEntry | None:
        self._require_formatted()
        found = self._locate(name)
        return found[1] if found else None

    def listing(self) -> str:
        """The directory as a printable table."""
        lines = [
            self.path,
            f"Disk Size: {self.disk_size_mib} MiB",
            _LIST_HEADER,
            _LIST_RULE,
        ]
        lines.extend(
            f"{entry.name:<32} {entry.file_size:>20} {entry.reserved_blocks * 2:>20}"
            for entry in self.entries()
        )
        return "\n".join(lines) + "\n"

    def format(self) -> None:
        """Write an empty file system, discarding the directory."""
        _write_empty_filesystem(self._file)
        self._file.flush()
        self._disk_info = bytearray(DISK_INFO_SIZE)
        self._disk_info[: len(FS_TAG)] = FS_TAG
        self._directory = bytearray(DIRECTORY_SIZE)

    def create(self, name: str, max_size: int) -> DirectoryEntry:
        """Reserve space for a new file of at most max_size MiB."""
        self._require_formatted()
        encoded = _encode_name(name)
        if (
            not encoded
            or encoded[0] == _DELETED_MARKER
            or b"\0" in encoded
            or len(encoded) >= NAME_SIZE
        ):
            raise BMFSError(f"Invalid file name '{name}'.")
        if max_size < 1:
            raise BMFSError("Invalid file size.")
        if max_size % 2:
            max_size += 1
        if self._locate(name) is not None:
            raise BMFSError("File already exists.")

        blocks_requested = max_size // 2
        num_blocks = self.disk_size_mib // 2

        used_entries = MAX_ENTRIES
        first_free = None
        for slot in range(MAX_ENTRIES):
            marker = self._directory[slot * ENTRY_SIZE]
            if marker == _END_MARKER:
                used_entries = slot
                if first_free is None:
                    first_free = slot
                break
            if marker == _DELETED_MARKER and first_free is None:
                first_free = slot
        if first_free is None:
            raise BMFSError("Cannot create file: no free directory entries.")

        occupied = sorted((entry for _, entry in self._slots()), key=lambda e: e.starting_block)
        previous_end = 1
        start = None
        for entry in occupied:
            if entry.starting_block - previous_end >= blocks_requested:
                start = previous_end
                break
            previous_end = entry.starting_block + entry.reserved_blocks
        else:
            if (num_blocks - 1) - previous_end >= blocks_requested:
                start = previous_end
        if start is None:
            raise BMFSError(f"Cannot create file of size {max_size} MiB.")

        new_entry = DirectoryEntry(name, start, blocks_requested, 0, 0)
        offset = first_free * ENTRY_SIZE
        self._directory[offset : offset + ENTRY_SIZE] = new_entry.pack()
        if first_free == used_entries and used_entries + 1 < MAX_ENTRIES:
            self._directory[(used_entries + 1) * ENTRY_SIZE] = _END_MARKER
        self._flush_directory()
        return new_entry

    def read(self, name: str, destination) -> int:
        """Copy a file out of the image; returns the number of bytes copied."""
        self._require_formatted()
        found = self._locate(name)
        if found is None:
            raise BMFSError("File not found in BMFS.")
        _, entry = found
        try:
            target = open(destination, "wb")
        except OSError as exc:
            raise BMFSError(f"Could not open local file '{os.fspath(destination)}'") from exc
        copied = 0
        with target:
            self._file.seek(entry.starting_block * BLOCK_SIZE)
            remaining = entry.file_size
            while remaining:
                chunk = self._file.read(min(BLOCK_SIZE, remaining))
                if not chunk:
                    break
                target.write(chunk)
                copied += len(chunk)
                remaining -= len(chunk)
        return copied

    def write(self, name: str, source) -> int:
        """Copy a local file into an existing entry; returns its size."""
        self._require_formatted()
        found = self._locate(name)
        if found is None:
            raise BMFSError("File not found in BMFS. A file entry must first be created.")
        slot, entry = found
        try:
            local = open(source, "rb")
        except OSError as exc:
            raise BMFSError(f"Could not open local file '{os.fspath(source)}'") from exc
        with local:
            size = os.fstat(local.fileno()).st_size
            if entry.reserved_blocks * BLOCK_SIZE < size:
                raise BMFSError("Not enough reserved space in BMFS.")
            self._file.seek(entry.starting_block * BLOCK_SIZE)
            shutil.copyfileobj(local, self._file)
        struct.pack_into("<Q", self._directory, slot * ENTRY_SIZE + _FILE_SIZE_FIELD, size)
        self._flush_directory()
        return size

    def delete(self, name: str) -> None:
        self._require_formatted()
        found = self._locate(name)
        if found is None:
            raise BMFSError("File not found in BMFS.")
        slot, _ = found
        self._directory[slot * ENTRY_SIZE] = _DELETED_MARKER
        self._flush_directory()


def parse_disk_size(text: str) -> int:
    """Parse a size such as '6M' or '1048576' into bytes."""
    disk_size = 0
    power = 0
    for index, char in enumerate(text):
        if char.isdigit() and char.isascii():
            digit = ord(char) - ord("0")
            if (disk_size * 10) & _U64_MASK > disk_size:
                disk_size = (disk_size * 10 + digit) & _U64_MASK
            elif disk_size == 0:
                disk_size += digit
            else:
                raise BMFSError("Disk size is too large")
        elif index == 0:
            raise BMFSError("A numeric disk size must be specified")
        else:
            power = _UNIT_POWERS.get(char.upper(), 0)
            if not power or index + 1 != len(text):
                raise BMFSError(f"Invalid disk size string: '{text}'")

    if disk_size > 0:
        for _ in range(power):
            if (disk_size * 1024) & _U64_MASK > disk_size:
                disk_size *= 1024
            else:
                raise BMFSError("Disk size is too large")

    if disk_size < MINIMUM_DISK_SIZE:
        raise BMFSError(
            f"Disk size must be at least {MINIMUM_DISK_SIZE} bytes "
            f"({MINIMUM_DISK_SIZE // MIB}MiB)"
        )
    return disk_size


def _open_input(stack: ExitStack, path, description: str) -> BinaryIO | None:
    if path is None:
        return None
    try:
        return stack.enter_context(open(path, "rb"))
    except OSError as exc:
        raise BMFSError(f"Unable to open {description} file '{os.fspath(path)}'") from exc


def initialize(disk_path, size, mbr=None, boot=None, kernel=None) -> int:
    """Create a zero-filled, formatted disk image, optionally with boot files.

    Returns the size of the image in bytes.
    """
    boot_kind = None
    if boot is not None:
        boot_kind = "boot loader" if kernel is not None else "system"

    disk_size = parse_disk_size(size)
    disk_name = os.fspath(disk_path)

    with ExitStack() as stack:
        mbr_file = _open_input(stack, mbr, "MBR")
        boot_file = _open_input(stack, boot, boot_kind or "boot loader")
        kernel_file = _open_input(stack, kernel, "kernel")
        try:
            disk = stack.enter_context(open(disk_name, "wb"))
        except OSError as exc:
            raise BMFSError(f"Unable to open disk '{disk_name}'") from exc

        try:
            zeros = bytes(_FILL_CHUNK)
            written = 0
            while written < disk_size:
                chunk = min(_FILL_CHUNK, disk_size - written)
                disk.write(zeros[:chunk])
                written += chunk

            _write_empty_filesystem(disk)

            if mbr_file is not None:
                record = mbr_file.read(MBR_SIZE)
                if len(record) < MBR_SIZE:
                    raise BMFSError(f"Failed to read file '{os.fspath(mbr)}'")
                disk.seek(0)
                disk.write(record)

            if boot_file is not None:
                disk.seek(BOOT_OFFSET)
                shutil.copyfileobj(boot_file, disk)

            if kernel_file is not None:
                shutil.copyfileobj(kernel_file, disk)
        except OSError as exc:
            raise BMFSError(f"Failed to write disk '{disk_name}'") from exc

    return disk_size


def _atoi(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


def _print_usage(prog: str) -> None:
    print("BareMetal File System Utility v1.0 (2013 04 10)")
    print()
    print(f"Usage: {prog} disk function file")
    print("Disk: the name of the disk file")
    print("Function: list, read, write, create, delete, format, initialize")
    print("File: (if applicable)")


def _run_initialize(prog: str, command: str, args: list[str]) -> int:
    if len(args) < 3:
        print(f"Usage: {prog} disk {command} size [mbr_file] [bootloader_file] [kernel_file]")
        return 1
    size = args[2]
    mbr, boot, kernel = (args[3:6] + [None, None, None])[:3]
    try:
        disk_size = initialize(args[0], size, mbr, boot, kernel)
    except BMFSError as exc:
        print(f"Error: {exc}")
        return 1
    print(f"Formatting disk: {disk_size} of {disk_size} bytes (100%)")
    print("Format complete.")
    if mbr is not None:
        print("Writing master boot record.")
    if boot is not None:
        print(f"Writing {'boot loader' if kernel is not None else 'system'} file.")
    if kernel is not None:
        print("Writing kernel.")
    print("Disk initialization complete.")
    return 0


def _run_command(disk: BMFSDisk, command: str, args: list[str]) -> None:
    file_name = args[2] if len(args) > 2 else None

    if command == "list":
        print(disk.listing(), end="")
        return
    if command == "format":
        if file_name is not None and file_name.lower() == "/force":
            disk.format()
            print("Format complete.")
        else:
            print("Format aborted!")
        return
    if command not in ("create", "read", "write", "delete"):
        print("Unknown command")
        return
    if file_name is None:
        raise BMFSError("File name not specified.")

    if command == "create":
        if len(args) > 3:
            size = _atoi(args[3])
        else:
            try:
                size = _atoi(input("Maximum file size in MiB: "))
            except EOFError:
                size = 0
        if size < 1:
            raise BMFSError("Invalid file size.")
        disk.create(file_name, size)
        print("Creating new file...")
        print("Complete")
    elif command == "read":
        disk.read(file_name, file_name)
        print(f"Reading '{file_name}' from BMFS to local file... Complete")
    elif command == "write":
        disk.write(file_name, file_name)
        print(f"Writing local file '{file_name}' to BMFS... Complete")
    else:
        disk.delete(file_name)
        print(f"Deleting file '{file_name}' from BMFS... Complete")


def main(argv=None) -> int:
    """Command-line entry point: bmfs disk function [file] [...]."""
    args = list(sys.argv[1:] if argv is None else argv)
    prog = "bmfs"
    if len(args) < 2:
        _print_usage(prog)
        return 0

    disk_name, command = args[0], args[1]
    lowered = command.lower()
    if lowered == "initialize":
        return _run_initialize(prog, command, args)

    try:
        disk = BMFSDisk(disk_name)
    except BMFSError as exc:
        print(f"Error: {exc}")
        return 0

    with disk:
        if not disk.is_formatted():
            if lowered == "format":
                disk.format()
                print("Format complete.")
            else:
                print("Error: Not a valid BMFS drive (Disk is not BMFS formatted).")
            return 0
        try:
            _run_command(disk, lowered, args)
        except BMFSError as exc:
            print(f"Error: {exc}")
    return 0


if __name__ == "__main__":
    sys.exit(main())