"""Decoders for 4x4 block-compressed texels (DXT1/3/5, ATI1, ATI2).

Texels are returned as 16 BGRA tuples in row-major order within the block.
The two loaders in this package decode some formats differently; the
``Dialect`` selects which behaviour is wanted.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Sequence, Tuple

Texel = Tuple[int, int, int, int]


class Dialect(Enum):
    """Which loader's block decoding rules to follow."""

    DDS = "dds"
    BCT = "bct"


_R5 = tuple((i << 3) | (i >> 2) for i in range(32))
_G6 = tuple((i << 2) | (i >> 4) for i in range(64))


def expand565(colour: int) -> Tuple[int, int, int]:
    """Expand a 16-bit RGB565 value to 8-bit (r, g, b)."""
    return _R5[(colour >> 11) & 0x1F], _G6[(colour >> 5) & 0x3F], _R5[colour & 0x1F]


def lerp_byte(a: int, b: int, w2of3: int) -> int:
    """Midpoint of a and b when w2of3 is 0, otherwise (2a + b) / 3."""
    if w2of3 == 0:
        return ((a + b) >> 1) & 0xFF
    return ((2 * a + b) // 3) & 0xFF


def _require(block: bytes, length: int, name: str) -> None:
    if len(block) < length:
        raise ValueError(f"{name} block needs {length} bytes, got {len(block)}")


def _colour_palette(block: bytes, dialect: Dialect) -> Tuple[Texel, ...]:
    c0 = int.from_bytes(block[0:2], "little")
    c1 = int.from_bytes(block[2:4], "little")
    r0, g0, b0 = expand565(c0)
    r1, g1, b1 = expand565(c1)
    opaque = c0 > c1
    first = (b0, g0, r0, 255)
    second = (b1, g1, r1, 255)

    def mix(x: Texel, y: Texel, w2of3: int, alpha: int) -> Texel:
        return (
            lerp_byte(x[0], y[0], w2of3),
            lerp_byte(x[1], y[1], w2of3),
            lerp_byte(x[2], y[2], w2of3),
            alpha,
        )

    if dialect is Dialect.DDS:
        third = mix(first, second, 1, 255)
        fourth = mix(first, second, 0, 255 if opaque else 0)
    elif opaque:
        third = mix(first, second, 1, 255)
        fourth = mix(second, first, 1, 255)
    else:
        third = mix(first, second, 0, 255)
        fourth = (0, 0, 0, 0)
    return first, second, third, fourth


def decode_dxt1(block: bytes, dialect: Dialect = Dialect.DDS) -> List[Texel]:
    """Decode an 8-byte DXT1 block."""
    _require(block, 8, "DXT1")
    palette = _colour_palette(block, dialect)
    indices = int.from_bytes(block[4:8], "little")
    return [palette[(indices >> (2 * texel)) & 3] for texel in range(16)]


def _with_alpha(colours: Sequence[Texel], alphas: Sequence[int]) -> List[Texel]:
    return [(b, g, r, alpha) for (b, g, r, _), alpha in zip(colours, alphas)]


def decode_dxt3(block: bytes, dialect: Dialect = Dialect.DDS) -> List[Texel]:
    """Decode a 16-byte DXT3 block: explicit 4-bit alpha plus DXT1 colour."""
    _require(block, 16, "DXT3")
    alphas = []
    for value in block[0:8]:
        alphas.append((value & 0x0F) * 17)
        alphas.append(((value >> 4) & 0x0F) * 17)
    return _with_alpha(decode_dxt1(block[8:16], dialect), alphas)


def _alpha_table(a0: int, a1: int, precise: bool) -> List[int]:
    table = [a0, a1]
    divisor = 7 if a0 > a1 else 5
    for k in range(1, divisor):
        if precise:
            value = ((divisor - k) * a0 + k * a1) // divisor
        else:
            value = (divisor - k) * a0 + (k * a1) // divisor
        table.append(value & 0xFF)
    if a0 <= a1:
        table.extend((0, 255))
    return table


def _interpolated_channel(block: bytes, precise: bool) -> List[int]:
    table = _alpha_table(block[0], block[1], precise)
    bits = int.from_bytes(block[2:8], "little")
    return [table[(bits >> (3 * texel)) & 7] for texel in range(16)]


def decode_dxt5(block: bytes, dialect: Dialect = Dialect.DDS) -> List[Texel]:
    """Decode a 16-byte DXT5 block: interpolated alpha plus DXT1 colour."""
    _require(block, 16, "DXT5")
    alphas = _interpolated_channel(block[0:8], precise=True)
    return _with_alpha(decode_dxt1(block[8:16], dialect), alphas)


def decode_ati1(block: bytes) -> List[int]:
    """Decode an 8-byte ATI1 block into 16 alpha values.

    Only the first 32 index bits are used, two bits apart per texel.
    """
    _require(block, 8, "ATI1")
    a0, a1 = block[0], block[1]
    table = [a0, a1]
    table.extend(((7 - i) * a0 + (i * a1) // 7) & 0xFF for i in range(2, 6))
    table.extend((0, 255))
    indices = int.from_bytes(block[2:6], "little")
    return [table[(indices >> (2 * texel)) & 7] for texel in range(16)]


def decode_ati2(block: bytes, dialect: Dialect = Dialect.DDS) -> List[Texel]:
    """Decode a 16-byte ATI2 block; red lands in byte 0, blue is fixed at 127."""
    _require(block, 16, "ATI2")
    precise = dialect is Dialect.DDS
    red = _interpolated_channel(block[0:8], precise)
    green = _interpolated_channel(block[8:16], precise)
    return [(r, g, 127, 255) for r, g in zip(red, green)]


def _block_offsets(width: int, height: int, bx: int, by: int):
    for texel in range(16):
        x = (bx << 2) + texel % 4
        y = (by << 2) + texel // 4
        if x < width and y < height:
            yield texel, (y * width + x) * 4
        else:
            yield texel, None


def _check_target(pixels: bytearray, width: int, height: int, count: int) -> None:
    if count != 16:
        raise ValueError(f"a block holds 16 texels, got {count}")
    if len(pixels) < width * height * 4:
        raise ValueError("pixel buffer is smaller than width * height * 4")


def place_block(
    pixels: bytearray, width: int, height: int, bx: int, by: int, texels: Sequence[Texel]
) -> None:
    """Write 16 BGRA texels of block (bx, by) into the image, clipped to its size."""
    _check_target(pixels, width, height, len(texels))
    for texel, offset in _block_offsets(width, height, bx, by):
        if offset is not None:
            pixels[offset:offset + 4] = bytes(texels[texel])


def place_alpha(
    pixels: bytearray, width: int, height: int, bx: int, by: int, alphas: Sequence[int]
) -> None:
    """Write only the alpha byte of the 16 texels of block (bx, by)."""
    _check_target(pixels, width, height, len(alphas))
    for texel, offset in _block_offsets(width, height, bx, by):
        if offset is not None:
            pixels[offset + 3] = alphas[texel]