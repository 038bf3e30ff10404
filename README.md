# barekit

barekit collects tools and Python models for a small x86-64 bare-metal
system. It has two command-line tools:

- `barekit-bmfs` works with BareMetal File System (BMFS) disk images.
- `barekit-pack` appends binary modules to a kernel image.

It also has library modules:

- `barekit.bmfs`: BMFS disk images as Python objects.
- `barekit.packer` and `barekit.loader`: write and unpack packed kernel images.
- `barekit.heap`: a first-fit heap allocator with block splitting and coalescing.
- `barekit.pidqueue`: a FIFO queue of process ids. You can remove items from it while you iterate.
- `barekit.console`: an 80x25 text console. Each cell holds a character byte and a style byte.
- `barekit.framebuffer`: a 24/32 bpp linear framebuffer. It draws pixels, lines, rectangles and circles.
- `barekit.textutil`: number-to-text and fixed-width string helpers.

barekit needs Python 3.10 or later. It has no runtime dependencies.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Command line

### `barekit-bmfs`

```
barekit-bmfs DISK FUNCTION [FILE] [...]
```

If you give fewer than two arguments, the tool prints a usage message.
Function names are case-insensitive.

| Function     | Arguments                    | Effect |
|--------------|------------------------------|--------|
| `initialize` | `SIZE [MBR] [BOOT] [KERNEL]` | Creates a zero-filled image of `SIZE` bytes and writes an empty file system into it. If `MBR` is given, its first 512 bytes go at offset 0. `BOOT` goes at offset 8192 and `KERNEL` follows it directly. |
| `format`     | `/FORCE`                     | Writes an empty directory. An image that is already formatted is only formatted when `/FORCE` is given. An unformatted image is formatted without it. |
| `list`       |                              | Prints the disk size and a table of files. |
| `create`     | `NAME [MAX_MiB]`             | Reserves space for a new file. Sizes are rounded up to whole 2 MiB blocks. If `MAX_MiB` is left out, the tool asks for it. |
| `write`      | `NAME`                       | Copies the local file `NAME` into the BMFS entry of the same name. |
| `read`       | `NAME`                       | Copies the BMFS file `NAME` out to a local file of the same name. |
| `delete`     | `NAME`                       | Marks the entry as deleted. |

`SIZE` is a decimal number. It may end in one unit letter: `K`, `M`, `G`, `T`
or `P`, each a power of 1024. An image must be at least 6 MiB. An image holds
at most 64 directory entries. File names must be shorter than 32 bytes.

```
barekit-bmfs disk.img initialize 128M bmfs_mbr.sys pure64.sys kernel.bin
barekit-bmfs disk.img create hello.txt 2
barekit-bmfs disk.img write hello.txt
barekit-bmfs disk.img list
```

`initialize` exits with status 1 when it fails. The other functions print
`Error: ...` and exit with status 0.

### `barekit-pack`

```
barekit-pack [-o FILE] KERNEL [MODULE ...]
```

The output is written in this order:

1. the kernel file;
2. a 32-bit little-endian count of the modules that follow;
3. for each module, a 32-bit little-endian size, then the module's bytes.

The default output is `packedKernel.bin`. You can give at most 128 files.
`--version` prints the version. If an input is unreadable, the tool prints
`Can't open file: ...` and exits with status 1.

## Library

```python
from barekit.bmfs import BMFSDisk, initialize, parse_disk_size
from barekit.packer import build_image
from barekit.loader import iter_modules, load_modules
from barekit.heap import MemoryManager
from barekit.pidqueue import PidQueue
from barekit.console import TextConsole
from barekit.framebuffer import Framebuffer, fd_color

parse_disk_size("6M")                 # 6291456
initialize("disk.img", "6M")          # returns the image size in bytes
with BMFSDisk("disk.img") as disk:
    disk.create("notes.txt", 2)       # returns the new DirectoryEntry
    print(disk.listing())

heap = MemoryManager(64 * 1024)
address = heap.alloc(100)             # an offset into the managed region
heap.status()                         # MemInfo(total_memory, used_memory, free_memory, allocated_blocks)
heap.free(address)                    # True; False for unknown addresses or a double free

queue = PidQueue()
queue.add(3)
queue.add(7)
queue.poll()                          # 3

screen = Framebuffer(320, 200, 32)
screen.fill_circle(160, 100, 40, 0xFF0000)
screen.get_pixel(160, 100)            # 0xFF0000
fd_color(2)                           # 0xFF0000, the colour of stderr

console = TextConsole()
console.print("hello\n")
console.row_text(0)                   # "hello" padded with spaces to 80 columns
```

`load_modules(payload, targets)` pairs each module in a packed payload with a
target address. It returns `LoadedModule` records and does not copy anything
into memory.

When an operation fails, the modules raise these exceptions:

- `barekit.bmfs` raises `BMFSError`.
- `barekit.packer` raises `PackerError`.
- `barekit.loader` raises `ModuleFormatError`.
- `MemoryManager.alloc` raises `MemoryError` when no block fits.
- `PidQueue.poll` and `PidQueue.next` raise `IndexError` when they run out of values.

## What barekit does not do

barekit does not contain a kernel and cannot boot anything.

- It has no scheduler, processes, semaphores, pipes, keyboard or sound.
- `TextConsole` and `Framebuffer` are in-memory models. They do not draw to a
  real screen.
- `Framebuffer` has no font and no text rendering.
- Boot sectors and boot loaders are not built here. `initialize` only copies
  files you already have into the image.