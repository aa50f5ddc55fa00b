"""Byte-order helpers and Xbox 360 texture untiling."""

from __future__ import annotations

import logging

_MASK32 = 0xFFFFFFFF

log = logging.getLogger(__name__)


def swap16(value: int) -> int:
    """Reverse the byte order of a 16-bit value."""
    value &= 0xFFFF
    return ((value >> 8) | (value << 8)) & 0xFFFF


def swap32(value: int) -> int:
    """Reverse the byte order of a 32-bit value."""
    return int.from_bytes((value & _MASK32).to_bytes(4, "little"), "big")


def flip_byte_order_16(data: bytes) -> bytes:
    """Swap each pair of bytes; a trailing odd byte is kept as it is."""
    flipped = bytearray(data)
    even = len(flipped) & ~1
    flipped[0:even:2], flipped[1:even:2] = flipped[1:even:2], flipped[0:even:2]
    return bytes(flipped)


def next_power_of_2(value: int) -> int:
    """Smallest power of two not below ``value`` (32-bit; 0 gives 1)."""
    if value == 0:
        return 1
    value = (value - 1) & _MASK32
    for shift in (1, 2, 4, 8, 16):
        value |= value >> shift
    return (value + 1) & _MASK32


def _log_bpp(texel_byte_pitch: int) -> int:
    p = texel_byte_pitch
    return (p >> 2) + ((p >> 1) >> (p >> 2))


def _macro_tiles_across(width_in_blocks: int) -> int:
    tiles = next_power_of_2(width_in_blocks) >> 5
    if tiles == 0:
        raise ValueError("tiled textures need at least 32 blocks of aligned width")
    return tiles


def _tile_offsets(block_offset: int, log_bpp: int):
    offset_byte = (block_offset << log_bpp) & _MASK32
    offset_tile = (
        ((offset_byte & ~0xFFF) >> 3) + ((offset_byte & 0x700) >> 2) + (offset_byte & 0x3F)
    )
    return offset_byte, offset_tile


def tiled_x(block_offset: int, width_in_blocks: int, texel_byte_pitch: int) -> int:
    """Column, in blocks, of the tiled block at ``block_offset``."""
    across = _macro_tiles_across(width_in_blocks)
    log_bpp = _log_bpp(texel_byte_pitch)
    offset_byte, offset_tile = _tile_offsets(block_offset, log_bpp)
    offset_macro = offset_tile >> (7 + log_bpp)

    macro_x = (offset_macro % across) << 2
    tile = (((offset_tile >> (5 + log_bpp)) & 2) + (offset_byte >> 6)) & 3
    macro = (macro_x + tile) << 3
    micro = (
        (((offset_tile >> 1) & ~0xF) + (offset_tile & 0xF)) & ((texel_byte_pitch << 3) - 1)
    ) >> log_bpp
    return (macro + micro) & _MASK32


def tiled_y(
    block_offset: int, width_in_blocks: int, height_in_blocks: int, texel_byte_pitch: int
) -> int:
    """Row, in blocks, of the tiled block at ``block_offset``."""
    across = _macro_tiles_across(width_in_blocks)
    log_bpp = _log_bpp(texel_byte_pitch)
    offset_byte, offset_tile = _tile_offsets(block_offset, log_bpp)
    offset_macro = offset_tile >> (7 + log_bpp)

    macro_y = (offset_macro // across) << 2
    tile = ((offset_tile >> (6 + log_bpp)) & 1) + ((offset_byte & 0x800) >> 10)
    macro = (macro_y + tile) << 3
    micro = (
        ((offset_tile & (((texel_byte_pitch << 6) - 1) & ~0x1F)) + ((offset_tile & 0xF) << 1))
        >> (3 + log_bpp)
    ) & ~1
    return (macro + micro + ((offset_tile & 0x10) >> 4)) & _MASK32


def untile(
    data: bytes,
    pixel_width: int,
    pixel_height: int,
    texel_byte_pitch: int,
    block_pixel_size: int,
) -> bytes:
    """Rearrange Xbox 360 tiled texture data into linear block order.

    Blocks whose source lies beyond the end of ``data`` are left zeroed.
    """
    width_in_blocks = (pixel_width + block_pixel_size - 1) // block_pixel_size
    height_in_blocks = (pixel_height + block_pixel_size - 1) // block_pixel_size
    total = next_power_of_2(width_in_blocks) * next_power_of_2(height_in_blocks)
    row_bytes = width_in_blocks * texel_byte_pitch
    dest = bytearray(row_bytes * height_in_blocks)
    missing = 0

    for block_offset in range(total):
        x = tiled_x(block_offset, width_in_blocks, texel_byte_pitch)
        y = tiled_y(block_offset, width_in_blocks, height_in_blocks, texel_byte_pitch)
        if x >= width_in_blocks or y >= height_in_blocks:
            continue
        src = block_offset * texel_byte_pitch
        dst = y * row_bytes + x * texel_byte_pitch
        if src + texel_byte_pitch <= len(data) and dst + texel_byte_pitch <= len(dest):
            dest[dst:dst + texel_byte_pitch] = data[src:src + texel_byte_pitch]
        else:
            missing += 1

    if missing:
        log.warning("untile: %d blocks lay outside the source data", missing)
    return bytes(dest)