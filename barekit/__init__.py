"""BMFS disk images, kernel module packing, and models of small kernel data structures."""

__version__ = "0.1.0"

__all__ = [
    "bmfs",
    "console",
    "framebuffer",
    "heap",
    "loader",
    "packer",
    "pidqueue",
    "textutil",
]