"""Append boot modules to a kernel binary into one loadable image."""

from __future__ import annotations

import argparse
import os
import shutil
import struct
import sys
from typing import Sequence

OUTPUT_FILE = "packedKernel.bin"
MAX_FILES = 128

_COUNT = struct.Struct("<i")
_SIZE = struct.Struct("<I")


class PackerError(Exception):
    """Raised when an image cannot be built."""


def check_files(paths: Sequence) -> None:
    """Ensure every input file is readable."""
    for path in paths:
        if not os.access(path, os.R_OK):
            raise PackerError(f"Can't open file: {os.fspath(path)}")


def build_image(paths: Sequence, output) -> int:
    """Write the kernel, the module count and each sized module to output.

    Returns the number of bytes written.
    """
    if not paths:
        raise PackerError("No kernel file given")
    try:
        target = open(output, "wb")
    except OSError as exc:
        raise PackerError("Can't create target file") from exc

    with target:
        kernel, *modules = paths
        with open(kernel, "rb") as source:
            shutil.copyfileobj(source, target)
        target.write(_COUNT.pack(len(modules)))
        for module in modules:
            with open(module, "rb") as source:
                size = os.fstat(source.fileno()).st_size
                target.write(_SIZE.pack(size & 0xFFFFFFFF))
                shutil.copyfileobj(source, target)
        return target.tell()


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mp",
        description="ModulePacker is an appender of binary files to be loaded all together",
    )
    parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        default=OUTPUT_FILE,
        help="Output to FILE instead of the default",
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.2")
    parser.add_argument("files", nargs="+", metavar="FILE", help="KernelFile Module1 Module2 ...")
    return parser


def main(argv=None) -> int:
    """Command-line entry point: mp [-o FILE] KernelFile Module1 Module2 ..."""
    parser = _parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    if len(args.files) > MAX_FILES:
        parser.error(f"at most {MAX_FILES} files can be packed")
    try:
        check_files(args.files)
        build_image(args.files, args.output)
    except PackerError as exc:
        print(exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())