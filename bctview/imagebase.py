"""Common image interface and in-place BGRA post-processing helpers."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod


class ImageLoadError(Exception):
    """Raised when an image file cannot be opened, parsed or decoded."""


def to_unorm(value: float) -> int:
    """Clamp ``value`` to [0, 1] and scale it to a byte with rounding."""
    clamped = min(max(value, 0.0), 1.0)
    return int(clamped * 255.0 + 0.5)


def _check_buffer(pixels: bytearray) -> None:
    if len(pixels) % 4:
        raise ValueError("BGRA pixel buffer length must be a multiple of 4")


def _reconstruct_z(nx: float, ny: float) -> float:
    return math.sqrt(max(0.0, 1.0 - nx * nx - ny * ny))


def normal_rg(pixels: bytearray) -> None:
    """Rebuild Z of a normal map stored in R and G; writes B and opaque A."""
    _check_buffer(pixels)
    for offset in range(0, len(pixels), 4):
        nx = pixels[offset + 2] / 127.5 - 1.0
        ny = pixels[offset + 1] / 127.5 - 1.0
        nz = _reconstruct_z(nx, ny)
        pixels[offset] = to_unorm((nz + 1.0) * 0.5)
        pixels[offset + 3] = 255


def normal_ag(pixels: bytearray) -> None:
    """Rebuild a normal map stored in A (X) and G (Y) into R, G, B."""
    _check_buffer(pixels)
    for offset in range(0, len(pixels), 4):
        nx = pixels[offset + 3] / 127.5 - 1.0
        ny = pixels[offset + 1] / 127.5 - 1.0
        nz = _reconstruct_z(nx, ny)
        pixels[offset + 2] = to_unorm((nx + 1.0) * 0.5)
        pixels[offset] = to_unorm((nz + 1.0) * 0.5)
        pixels[offset + 3] = 255


def normal_arg(pixels: bytearray) -> None:
    """Rebuild a normal map whose X is split between A and R."""
    _check_buffer(pixels)
    for offset in range(0, len(pixels), 4):
        combined = pixels[offset + 3] * pixels[offset + 2] / 255.0
        nx = combined / 127.5 - 1.0
        ny = pixels[offset + 1] / 127.5 - 1.0
        nz = _reconstruct_z(nx, ny)
        pixels[offset + 2] = to_unorm((nx + 1.0) * 0.5)
        pixels[offset] = to_unorm((nz + 1.0) * 0.5)
        pixels[offset + 3] = 255


def premultiply_alpha(pixels: bytearray) -> None:
    """Multiply B, G and R by A / 255 in place; opaque pixels are left alone."""
    _check_buffer(pixels)
    for offset in range(0, len(pixels), 4):
        alpha = pixels[offset + 3]
        if alpha == 255:
            continue
        pixels[offset:offset + 3] = bytes(
            channel * alpha // 255 for channel in pixels[offset:offset + 3]
        )


class ImageBase(ABC):
    """A decoded image held as a BGRA byte buffer, row by row."""

    def __init__(self) -> None:
        self.width = 0
        self.height = 0
        self.pixels = bytearray()
        self.mip_count = 1

    @property
    def pitch(self) -> int:
        """Bytes per row of the BGRA buffer."""
        return self.width * 4

    @abstractmethod
    def load_from_file(self, path) -> None:
        """Load and decode ``path``; raise ImageLoadError on failure."""

    @abstractmethod
    def format_name(self) -> str:
        """Short name of the stored pixel format."""

    def apply_normal_rg(self) -> None:
        normal_rg(self.pixels)

    def apply_normal_ag(self) -> None:
        normal_ag(self.pixels)

    def apply_normal_arg(self) -> None:
        normal_arg(self.pixels)

    def premultiply_alpha(self) -> None:
        premultiply_alpha(self.pixels)

    def size_text(self) -> str:
        return f"{self.width}x{self.height}"

    def mip_count_text(self) -> str:
        return str(self.mip_count)

    def memory_usage_text(self) -> str:
        used = self.width * self.height * 4
        return f"Mem: {used / 1024.0:.1f}KB"