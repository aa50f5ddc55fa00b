"""Loader for legacy DDS files (pre-DX10 header): DXT1/3/5, ATI2 and 32-bit BGRA."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from itertools import product
from typing import Tuple

from .blocks import Dialect, decode_ati2, decode_dxt1, decode_dxt3, decode_dxt5, place_block
from .imagebase import ImageBase, ImageLoadError


def _fourcc(code: bytes) -> int:
    return int.from_bytes(code, "little")


FOURCC_DDS = _fourcc(b"DDS ")
FOURCC_DXT1 = _fourcc(b"DXT1")
FOURCC_DXT3 = _fourcc(b"DXT3")
FOURCC_DXT5 = _fourcc(b"DXT5")
FOURCC_ATI2 = _fourcc(b"ATI2")

HEADER_SIZE = 128

_HEADER = struct.Struct("<32I")

_FORMAT_NAMES = {
    FOURCC_DXT1: "DXT1",
    FOURCC_DXT3: "DXT3",
    FOURCC_DXT5: "DXT5",
    FOURCC_ATI2: "ATI2",
}

_BLOCK_DECODERS = {
    FOURCC_DXT1: (8, decode_dxt1),
    FOURCC_DXT3: (16, decode_dxt3),
    FOURCC_DXT5: (16, decode_dxt5),
    FOURCC_ATI2: (16, decode_ati2),
}


@dataclass(frozen=True)
class DDSPixelFormat:
    """The 32-byte pixel format section of a DDS header."""

    size: int
    flags: int
    fourcc: int
    rgb_bit_count: int
    r_mask: int
    g_mask: int
    b_mask: int
    a_mask: int


@dataclass(frozen=True)
class DDSHeader:
    """The magic number and the 124-byte DDS header."""

    magic: int
    size: int
    flags: int
    height: int
    width: int
    pitch_or_linear_size: int
    depth: int
    mip_map_count: int
    reserved1: Tuple[int, ...]
    pf: DDSPixelFormat
    caps: int
    caps2: int
    caps3: int
    caps4: int
    reserved2: int


def parse_dds_header(data: bytes) -> DDSHeader:
    """Parse and validate the first 128 bytes of a DDS file."""
    if len(data) < HEADER_SIZE:
        raise ImageLoadError(f"DDS header needs {HEADER_SIZE} bytes, got {len(data)}")
    fields = _HEADER.unpack_from(data)
    header = DDSHeader(
        magic=fields[0],
        size=fields[1],
        flags=fields[2],
        height=fields[3],
        width=fields[4],
        pitch_or_linear_size=fields[5],
        depth=fields[6],
        mip_map_count=fields[7],
        reserved1=tuple(fields[8:19]),
        pf=DDSPixelFormat(*fields[19:27]),
        caps=fields[27],
        caps2=fields[28],
        caps3=fields[29],
        caps4=fields[30],
        reserved2=fields[31],
    )
    if header.magic != FOURCC_DDS:
        raise ImageLoadError("not a DDS file: bad magic")
    if header.size != 124 or header.pf.size != 32:
        raise ImageLoadError("unsupported DDS header size")
    if not header.width or not header.height:
        raise ImageLoadError("DDS image has zero width or height")
    return header


class DDSImage(ImageBase):
    """A DDS texture decoded to BGRA (top mip level only)."""

    def __init__(self) -> None:
        super().__init__()
        self.fourcc = 0
        self.header: DDSHeader | None = None

    def _reset(self) -> None:
        self.width = self.height = 0
        self.pixels = bytearray()
        self.fourcc = 0
        self.header = None

    def load_from_file(self, path) -> None:
        """Read and decode the DDS file at ``path``."""
        self._reset()
        try:
            with open(path, "rb") as stream:
                data = stream.read()
        except OSError as exc:
            raise ImageLoadError(f"cannot open {path}: {exc}") from exc
        self.load_bytes(data)

    def load_bytes(self, data: bytes) -> None:
        """Decode a complete DDS file held in memory."""
        self._reset()
        header = parse_dds_header(data)
        width, height = header.width, header.height
        pixels = bytearray(width * height * 4)
        payload = memoryview(data)[HEADER_SIZE:]
        fourcc = header.pf.fourcc

        if fourcc in _BLOCK_DECODERS:
            block_len, decoder = _BLOCK_DECODERS[fourcc]
            blocks_x = (width + 3) >> 2
            blocks_y = (height + 3) >> 2
            needed = blocks_x * blocks_y * block_len
            if len(payload) < needed:
                raise ImageLoadError(
                    f"DDS data truncated: need {needed} bytes, have {len(payload)}"
                )
            for index, (by, bx) in enumerate(product(range(blocks_y), range(blocks_x))):
                start = index * block_len
                block = bytes(payload[start:start + block_len])
                place_block(pixels, width, height, bx, by, decoder(block, Dialect.DDS))
        elif header.pf.rgb_bit_count == 32:
            needed = len(pixels)
            if len(payload) < needed:
                raise ImageLoadError(
                    f"DDS data truncated: need {needed} bytes, have {len(payload)}"
                )
            pixels[:] = payload[:needed]
        else:
            raise ImageLoadError("unsupported DDS pixel format")

        self.width = width
        self.height = height
        self.pixels = pixels
        self.fourcc = fourcc
        self.mip_count = header.mip_map_count
        self.header = header

    def format_name(self) -> str:
        return _FORMAT_NAMES.get(self.fourcc, "Unknown Format")

    def size_text(self) -> str:
        return f"{self.width}x{self.height}"

    def mip_count_text(self) -> str:
        return f"Mips: {self.mip_count}/{self.mip_count}"

    def memory_usage_text(self) -> str:
        if self.fourcc in (FOURCC_DXT1, FOURCC_DXT3, FOURCC_DXT5):
            block_size = 8 if self.fourcc == FOURCC_DXT1 else 16
            size = ((self.width + 3) // 4) * ((self.height + 3) // 4) * block_size
        else:
            size = self.width * self.height * 4
        kilobytes = size / 1024.0
        return f"Mem: {kilobytes:.1f}KB/{kilobytes:.1f}KB"