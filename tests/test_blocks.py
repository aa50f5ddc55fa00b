import pytest

from bctview.blocks import (
    Dialect,
    decode_ati1,
    decode_ati2,
    decode_dxt1,
    decode_dxt3,
    decode_dxt5,
    expand565,
    lerp_byte,
    place_alpha,
    place_block,
)

RED = 0xF800
BLUE = 0x001F


def _dxt1_block(c0, c1, indices):
    word = 0
    for position, index in enumerate(indices):
        word |= index << (2 * position)
    return c0.to_bytes(2, "little") + c1.to_bytes(2, "little") + word.to_bytes(4, "little")


def _alpha_block(a0, a1, indices):
    bits = 0
    for position, index in enumerate(indices):
        bits |= index << (3 * position)
    return bytes([a0, a1]) + bits.to_bytes(6, "little")


def _bgr(colour):
    r, g, b = expand565(colour)
    return (b, g, r)


def _mix(x, y, w2of3):
    return tuple(lerp_byte(p, q, w2of3) for p, q in zip(x, y))


def test_expand565_white():
    assert expand565(0xFFFF) == (255, 255, 255)


def test_expand565_keeps_top_bits():
    for value in range(32):
        r, g, b = expand565(value << 11)
        assert r >> 3 == value
        assert (g, b) == (0, 0)
        assert expand565(value)[2] >> 3 == value
    for value in range(64):
        assert expand565(value << 5)[1] >> 2 == value


def test_lerp_byte_bounds():
    assert lerp_byte(77, 77, 0) == 77
    assert lerp_byte(77, 77, 1) == 77
    for a, b in [(0, 90), (200, 10), (255, 0)]:
        for weight in (0, 1):
            assert min(a, b) <= lerp_byte(a, b, weight) <= max(a, b)
    assert lerp_byte(0, 90, 1) <= lerp_byte(0, 90, 0)


def test_dxt1_endpoints_both_dialects():
    block = _dxt1_block(RED, BLUE, [0, 1] * 8)
    for dialect in Dialect:
        texels = decode_dxt1(block, dialect)
        assert len(texels) == 16
        assert texels[0] == _bgr(RED) + (255,)
        assert texels[1] == _bgr(BLUE) + (255,)
        assert texels[::2] == [texels[0]] * 8


def test_dxt1_opaque_intermediates_differ_by_dialect():
    block = _dxt1_block(RED, BLUE, [2, 3] * 8)
    first, second = _bgr(RED), _bgr(BLUE)
    dds = decode_dxt1(block, Dialect.DDS)
    bct = decode_dxt1(block, Dialect.BCT)
    assert dds[0] == _mix(first, second, 1) + (255,)
    assert dds[1] == _mix(first, second, 0) + (255,)
    assert bct[0] == _mix(first, second, 1) + (255,)
    assert bct[1] == _mix(second, first, 1) + (255,)


def test_dxt1_transparent_mode():
    block = _dxt1_block(BLUE, RED, [2, 3] * 8)
    first, second = _bgr(BLUE), _bgr(RED)
    bct = decode_dxt1(block, Dialect.BCT)
    assert bct[0] == _mix(first, second, 0) + (255,)
    assert bct[1] == (0, 0, 0, 0)
    dds = decode_dxt1(block, Dialect.DDS)
    assert dds[1][3] == 0
    assert dds[1][:3] == _mix(first, second, 0)


def test_dxt1_short_block():
    with pytest.raises(ValueError):
        decode_dxt1(b"\x00" * 7)


def test_dxt3_explicit_alpha():
    colour = _dxt1_block(RED, BLUE, [0, 1, 2, 3] * 4)
    opaque = decode_dxt3(bytes([0xFF] * 8) + colour)
    clear = decode_dxt3(bytes(8) + colour)
    colours = decode_dxt1(colour)
    assert [t[3] for t in opaque] == [255] * 16
    assert [t[3] for t in clear] == [0] * 16
    assert [t[:3] for t in opaque] == [t[:3] for t in colours]
    nibbles = decode_dxt3(bytes([0x0F] + [0] * 7) + colour)
    assert (nibbles[0][3], nibbles[1][3]) == (255, 0)


def test_dxt5_alpha_table_modes():
    colour = _dxt1_block(RED, BLUE, [0] * 16)
    flat = decode_dxt5(_alpha_block(100, 100, [0] * 16) + colour)
    assert [t[3] for t in flat] == [100] * 16
    full = decode_dxt5(_alpha_block(100, 100, [7] * 16) + colour)
    assert [t[3] for t in full] == [255] * 16
    zero = decode_dxt5(_alpha_block(100, 100, [6] * 16) + colour)
    assert [t[3] for t in zero] == [0] * 16
    assert [t[:3] for t in flat] == [t[:3] for t in decode_dxt1(colour)]


def test_dxt5_interpolated_alpha_between_endpoints():
    colour = _dxt1_block(RED, BLUE, [0] * 16)
    texels = decode_dxt5(_alpha_block(200, 20, list(range(8)) * 2) + colour)
    alphas = [t[3] for t in texels]
    assert alphas[0] == 200 and alphas[1] == 20
    assert all(20 <= a <= 200 for a in alphas)
    assert alphas[2:8] == sorted(alphas[2:8], reverse=True)


def test_ati2_channels():
    block = _alpha_block(200, 200, [0] * 16) + _alpha_block(50, 50, [0] * 16)
    for dialect in Dialect:
        assert decode_ati2(block, dialect) == [(200, 50, 127, 255)] * 16


def test_ati2_bct_dialect_skips_scaling():
    block = _alpha_block(10, 0, [2] * 16) + _alpha_block(5, 5, [0] * 16)
    dds_red = decode_ati2(block, Dialect.DDS)[0][0]
    bct_red = decode_ati2(block, Dialect.BCT)[0][0]
    assert 0 <= dds_red <= 10
    assert bct_red > 10


def test_ati1_alpha():
    flat = decode_ati1(bytes([40, 40, 0, 0, 0, 0, 0, 0]))
    assert flat == [40] * 16
    full = decode_ati1(bytes([40, 40, 0xFF, 0xFF, 0xFF, 0xFF, 0, 0]))
    assert full[:15] == [255] * 15


def test_ati1_ignores_last_two_index_bytes():
    base = bytes([90, 30, 0x12, 0x34, 0x56, 0x78])
    assert decode_ati1(base + b"\x00\x00") == decode_ati1(base + b"\xff\xff")


def test_place_block_writes_one_block():
    width, height = 8, 4
    pixels = bytearray(width * height * 4)
    place_block(pixels, width, height, 1, 0, [(1, 2, 3, 4)] * 16)
    for row in range(height):
        start = row * width * 4
        assert pixels[start:start + 16] == bytearray(16)
        assert pixels[start + 16:start + 32] == bytearray([1, 2, 3, 4] * 4)


def test_place_block_clips_to_image():
    width, height = 6, 6
    pixels = bytearray(width * height * 4)
    place_block(pixels, width, height, 1, 1, [(9, 9, 9, 9)] * 16)
    assert len(pixels) == width * height * 4
    written = sum(
        1 for offset in range(0, len(pixels), 4) if pixels[offset:offset + 4] == b"\x09" * 4
    )
    assert written == 4


def test_place_alpha_touches_only_alpha():
    pixels = bytearray([7] * 64)
    place_alpha(pixels, 4, 4, 0, 0, list(range(16)))
    assert pixels[3::4] == bytearray(range(16))
    assert pixels[0::4] == bytearray([7] * 16)
    assert pixels[1::4] == bytearray([7] * 16)


def test_place_rejects_wrong_texel_count():
    with pytest.raises(ValueError):
        place_block(bytearray(64), 4, 4, 0, 0, [(0, 0, 0, 0)] * 15)
    with pytest.raises(ValueError):
        place_alpha(bytearray(16), 4, 4, 0, 0, [0] * 16)