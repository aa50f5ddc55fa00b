"""Loader for BCT textures: a small header, a mip table and raw mip data."""

from __future__ import annotations

import struct
from dataclasses import dataclass, replace
from itertools import product

from .blocks import (
    Dialect,
    decode_ati1,
    decode_ati2,
    decode_dxt1,
    decode_dxt5,
    place_alpha,
    place_block,
)
from .imagebase import ImageBase, ImageLoadError
from .xbox360 import flip_byte_order_16, untile

HEADER_SIZE = 20
MIP_ENTRY_SIZE = 16
BIG_ENDIAN_THRESHOLD = 16777216
PALETTE_BYTES = 256 * 4

DXGI_UNKNOWN = 0
DXGI_RGBA8 = 28
DXGI_BC1 = 71
DXGI_BC3 = 77
DXGI_BC4 = 80
DXGI_BC5 = 83
DXGI_BC6H = 95
DXGI_BC7 = 98

_BCT_TO_DXGI = {
    0x00: DXGI_RGBA8,
    0x08: DXGI_BC1,
    0x0A: DXGI_BC3,
    0x25: DXGI_BC4,
    0x26: DXGI_BC5,
    0x27: DXGI_BC6H,
    0x28: DXGI_BC7,
    0x30: DXGI_BC1,
    0x32: DXGI_BC3,
    0x35: DXGI_RGBA8,
}


def _fourcc(code: bytes) -> int:
    return int.from_bytes(code, "little")


_BCT_TO_FOURCC = {
    0x00: 0,
    0x08: _fourcc(b"DXT1"),
    0x0A: _fourcc(b"DXT5"),
    0x25: _fourcc(b"ATI1"),
    0x26: _fourcc(b"ATI2"),
    0x30: _fourcc(b"DXT1"),
    0x32: _fourcc(b"DXT5"),
}
FOURCC_DX10 = _fourcc(b"DX10")

_BCT_DXGI_FALLBACK = {0x25: 80, 0x26: 83, 0x27: 95, 0x28: 98}

_BCT_BLOCK_BYTES = {
    0x08: 8, 0x25: 8, 0x30: 8,
    0x0A: 16, 0x26: 16, 0x27: 16, 0x28: 16,
}

# Bytes per 4x4 block for the block formats the decoder handles.
_BLOCK_BYTES = {DXGI_BC1: 8, DXGI_BC3: 16, DXGI_BC4: 8, DXGI_BC5: 16}

_FORMAT_NAMES = {
    28: "DXT1",
    71: "DXT3",
    77: "DXT5",
    80: "ATI1",
    83: "ATI2",
    95: "DXT5",
}


def map_bct_to_dxgi(fmt_id: int) -> int:
    """DXGI format number for a BCT format id; 0 when the id is unknown."""
    return _BCT_TO_DXGI.get(fmt_id, DXGI_UNKNOWN)


def bct_to_fourcc(fmt: int) -> int:
    """DDS FourCC for a BCT format id; unknown ids give the 'DX10' sentinel."""
    return _BCT_TO_FOURCC.get(fmt, FOURCC_DX10)


def bct_to_dxgi(fmt: int) -> int:
    """DXGI format for a BCT format id, falling back to RGBA8."""
    return _BCT_DXGI_FALLBACK.get(fmt, DXGI_RGBA8)


def bytes_per_block(fmt: int) -> int:
    """Bytes per 4x4 block for a BCT format id; 0 for uncompressed formats."""
    return _BCT_BLOCK_BYTES.get(fmt, 0)


@dataclass(frozen=True)
class BCTMip:
    """One entry of the mip table."""

    data_addr: int
    data_size: int
    flags: int
    unk09: int


@dataclass(frozen=True)
class BCTHeader:
    """The BCT header together with the first mip's table entry and data."""

    big_endian: bool
    signature: bytes
    width: int
    height: int
    img_format: int
    fmt_version: int
    mips: int
    bits_per_pixel: int
    img_hash: int
    info_addr: int
    mip: BCTMip
    data: bytes


def parse_mip(data: bytes, big_endian: bool) -> BCTMip:
    """Parse a 16-byte mip table entry."""
    if len(data) < MIP_ENTRY_SIZE:
        raise ImageLoadError(
            f"mip entry needs {MIP_ENTRY_SIZE} bytes, got {len(data)}"
        )
    order = ">" if big_endian else "<"
    return BCTMip(*struct.unpack_from(order + "4I", data))


def read_bct_header(data: bytes) -> BCTHeader:
    """Parse a whole BCT file held in memory, keeping only the first mip."""
    file_size = len(data)
    if file_size < HEADER_SIZE:
        raise ImageLoadError(f"BCT header needs {HEADER_SIZE} bytes, got {file_size}")

    width, height = struct.unpack_from("<HH", data, 4)
    img_format, fmt_version, mips, bits_per_pixel = data[8:12]
    img_hash, info_addr = struct.unpack_from("<II", data, 12)

    big_endian = info_addr > BIG_ENDIAN_THRESHOLD
    if big_endian:
        width, height = struct.unpack_from(">HH", data, 4)
        info_addr = struct.unpack_from(">I", data, 16)[0]

    if width == 0 or height == 0:
        raise ImageLoadError("BCT image has zero width or height")
    if info_addr > file_size:
        raise ImageLoadError(f"mip table offset {info_addr} lies past end of file")

    mip = parse_mip(data[info_addr:info_addr + MIP_ENTRY_SIZE], big_endian)
    if mip.data_addr == 0 or mip.data_size == 0:
        raise ImageLoadError("first mip has no data")

    if img_format == 0x0A:
        # The stored size is unreliable for DXT5; use the size the block grid needs.
        blocks = ((width + 3) // 4) * ((height + 3) // 4)
        mip = replace(mip, data_size=blocks * 16)

    end = mip.data_addr + mip.data_size
    if end > file_size:
        raise ImageLoadError(f"mip data ends at {end}, past end of file ({file_size})")

    return BCTHeader(
        big_endian=big_endian,
        signature=bytes(data[0:4]),
        width=width,
        height=height,
        img_format=img_format,
        fmt_version=fmt_version,
        mips=mips,
        bits_per_pixel=bits_per_pixel,
        img_hash=img_hash,
        info_addr=info_addr,
        mip=mip,
        data=bytes(data[mip.data_addr:end]),
    )


def _require(payload: bytes, needed: int) -> None:
    if len(payload) < needed:
        raise ImageLoadError(
            f"BCT data truncated: need {needed} bytes, have {len(payload)}"
        )


def _decode_blocks(header: BCTHeader, dxgi: int, pixels: bytearray) -> None:
    width, height = header.width, header.height
    block_len = _BLOCK_BYTES[dxgi]
    payload = header.data
    if header.big_endian:
        try:
            payload = untile(flip_byte_order_16(payload), width, height, block_len, 4)
        except ValueError as exc:
            raise ImageLoadError(f"cannot untile texture: {exc}") from exc

    blocks_x = (width + 3) // 4
    blocks_y = (height + 3) // 4
    _require(payload, blocks_x * blocks_y * block_len)

    for index, (by, bx) in enumerate(product(range(blocks_y), range(blocks_x))):
        start = index * block_len
        block = bytes(payload[start:start + block_len])
        if dxgi == DXGI_BC1:
            place_block(pixels, width, height, bx, by, decode_dxt1(block, Dialect.BCT))
        elif dxgi == DXGI_BC3:
            place_block(pixels, width, height, bx, by, decode_dxt5(block, Dialect.BCT))
        elif dxgi == DXGI_BC4:
            place_alpha(pixels, width, height, bx, by, decode_ati1(block))
        else:
            place_block(pixels, width, height, bx, by, decode_ati2(block, Dialect.BCT))


def _decode(header: BCTHeader, dxgi: int) -> bytearray:
    width, height = header.width, header.height
    pixels = bytearray(width * height * 4)
    payload = header.data

    if dxgi == DXGI_RGBA8:
        _require(payload, len(pixels))
        pixels[:] = payload[:len(pixels)]
    elif dxgi == DXGI_UNKNOWN:
        count = width * height
        _require(payload, PALETTE_BYTES + count)
        palette = payload[:PALETTE_BYTES]
        indices = payload[PALETTE_BYTES:PALETTE_BYTES + count]
        pixels[:] = b"".join(palette[i * 4:i * 4 + 4] for i in indices)
    elif dxgi in _BLOCK_BYTES:
        _decode_blocks(header, dxgi, pixels)
    else:
        raise ImageLoadError(f"unsupported BCT format 0x{header.img_format:02X}")
    return pixels


class BCTImage(ImageBase):
    """A BCT texture decoded to BGRA (first mip level only)."""

    def __init__(self) -> None:
        super().__init__()
        self.dxgi_format = DXGI_UNKNOWN
        self.header: BCTHeader | None = None

    def _reset(self) -> None:
        self.width = self.height = 0
        self.pixels = bytearray()
        self.dxgi_format = DXGI_UNKNOWN
        self.header = None

    def load_from_file(self, path) -> None:
        """Read and decode the BCT file at ``path``."""
        self._reset()
        try:
            with open(path, "rb") as stream:
                data = stream.read()
        except OSError as exc:
            raise ImageLoadError(f"cannot open {path}: {exc}") from exc
        self.load_bytes(data)

    def load_bytes(self, data: bytes) -> None:
        """Decode a complete BCT file held in memory."""
        self._reset()
        header = read_bct_header(data)
        dxgi = map_bct_to_dxgi(header.img_format)
        pixels = _decode(header, dxgi)
        self.width = header.width
        self.height = header.height
        self.pixels = pixels
        self.dxgi_format = dxgi
        self.mip_count = header.mips
        self.header = header

    def format_name(self) -> str:
        return _FORMAT_NAMES.get(self.dxgi_format, "Unknown")

    def size_text(self) -> str:
        return f"{self.width}x{self.height}"

    def mip_count_text(self) -> str:
        return str(self.mip_count)

    def memory_usage_text(self) -> str:
        used = self.width * self.height * 4
        return f"Mem: {used / 1024.0:.1f}KB"