import struct

import pytest

from bctview.bct import (
    BCTImage,
    BCTMip,
    bct_to_dxgi,
    bct_to_fourcc,
    bytes_per_block,
    map_bct_to_dxgi,
    parse_mip,
    read_bct_header,
)
from bctview.imagebase import ImageLoadError

SIG = bytes([0x07, 0x01, 0x02, 0x20])


def make_bct(width, height, fmt, payload, *, big_endian=False, mips=1,
             data_size=None, data_addr=48, info_addr=32):
    order = ">" if big_endian else "<"
    head = (
        SIG
        + struct.pack(order + "HH", width, height)
        + bytes([fmt, 1, mips, 32])
        + struct.pack("<I", 0x12345678)
        + struct.pack(order + "I", info_addr)
    )
    head = head.ljust(info_addr, b"\0")
    size = len(payload) if data_size is None else data_size
    mip = struct.pack(order + "4I", data_addr, size, 0x80000000, 0)
    return (head + mip).ljust(data_addr, b"\0") + payload


WHITE_DXT1 = bytes([0xFF, 0xFF, 0, 0, 0, 0, 0, 0])


def test_format_tables():
    assert map_bct_to_dxgi(0x08) == 71
    assert map_bct_to_dxgi(0x0A) == 77
    assert map_bct_to_dxgi(0x35) == 28
    assert map_bct_to_dxgi(0x99) == 0
    assert bct_to_fourcc(0x08) == int.from_bytes(b"DXT1", "little")
    assert bct_to_fourcc(0x26) == int.from_bytes(b"ATI2", "little")
    assert bct_to_fourcc(0x77) == int.from_bytes(b"DX10", "little")
    assert bct_to_dxgi(0x25) == 80
    assert bct_to_dxgi(0x00) == 28
    assert bytes_per_block(0x08) == 8
    assert bytes_per_block(0x0A) == 16
    assert bytes_per_block(0x00) == 0


def test_parse_mip_both_orders():
    le = struct.pack("<4I", 48, 64, 0x80000000, 7)
    be = struct.pack(">4I", 48, 64, 0x80000000, 7)
    expected = BCTMip(48, 64, 0x80000000, 7)
    assert parse_mip(le, False) == expected
    assert parse_mip(be, True) == expected


def test_parse_mip_short():
    with pytest.raises(ImageLoadError):
        parse_mip(b"\0" * 10, False)


def test_read_header_little_endian():
    payload = bytes(range(16))
    header = read_bct_header(make_bct(2, 2, 0x00, payload, mips=3))
    assert not header.big_endian
    assert (header.width, header.height) == (2, 2)
    assert header.img_format == 0x00
    assert header.mips == 3
    assert header.signature == SIG
    assert header.info_addr == 32
    assert header.data == payload


def test_read_header_big_endian():
    payload = bytes(range(16))
    header = read_bct_header(make_bct(2, 2, 0x00, payload, big_endian=True))
    assert header.big_endian
    assert (header.width, header.height) == (2, 2)
    assert header.info_addr == 32
    assert header.mip.data_addr == 48
    assert header.data == payload


def test_header_too_short():
    with pytest.raises(ImageLoadError):
        read_bct_header(SIG + b"\0" * 4)


def test_zero_width_rejected():
    with pytest.raises(ImageLoadError):
        read_bct_header(make_bct(0, 2, 0x00, b"\0" * 16))


def test_info_addr_past_end():
    data = SIG + struct.pack("<HH", 2, 2) + bytes(4) + struct.pack("<II", 0, 1000)
    with pytest.raises(ImageLoadError):
        read_bct_header(data)


def test_zero_data_addr_rejected():
    with pytest.raises(ImageLoadError):
        read_bct_header(make_bct(2, 2, 0x00, b"\0" * 16, data_addr=0, info_addr=32)[:48] + b"\0" * 16)


def test_data_past_end_rejected():
    with pytest.raises(ImageLoadError):
        read_bct_header(make_bct(2, 2, 0x00, b"\0" * 16, data_size=100))


def test_dxt5_size_is_recomputed():
    payload = bytes(16)
    header = read_bct_header(make_bct(4, 4, 0x0A, payload, data_size=1))
    assert header.mip.data_size == 16
    assert header.data == payload


def test_dxt5_recomputed_size_past_end():
    with pytest.raises(ImageLoadError):
        read_bct_header(make_bct(8, 8, 0x0A, bytes(16)))


def test_load_rgba_copies_bytes():
    payload = bytes(range(16))
    image = BCTImage()
    image.load_bytes(make_bct(2, 2, 0x00, payload))
    assert bytes(image.pixels) == payload
    assert image.size_text() == "2x2"
    assert image.format_name() == "DXT1"


def test_load_rgba_big_endian_is_not_untiled():
    payload = bytes(range(16))
    image = BCTImage()
    image.load_bytes(make_bct(2, 2, 0x35, payload, big_endian=True))
    assert bytes(image.pixels) == payload


def test_load_palette_for_unknown_format():
    palette = bytearray(1024)
    palette[4:8] = bytes([10, 20, 30, 40])
    palette[8:12] = bytes([50, 60, 70, 80])
    indices = bytes([1, 2, 2, 1])
    image = BCTImage()
    image.load_bytes(make_bct(2, 2, 0x99, bytes(palette) + indices))
    expected = bytes(palette[4:8] + palette[8:12] + palette[8:12] + palette[4:8])
    assert bytes(image.pixels) == expected
    assert image.format_name() == "Unknown"


def test_load_dxt1():
    image = BCTImage()
    image.load_bytes(make_bct(4, 4, 0x08, WHITE_DXT1))
    assert bytes(image.pixels) == b"\xff" * 64
    assert image.format_name() == "DXT3"


def test_load_dxt5_alpha():
    block = bytes([200, 200, 0, 0, 0, 0, 0, 0]) + WHITE_DXT1
    image = BCTImage()
    image.load_bytes(make_bct(4, 4, 0x0A, block))
    assert set(image.pixels[3::4]) == {200}
    assert set(image.pixels[0::4]) == {255}
    assert image.format_name() == "DXT5"


def test_load_ati1_writes_alpha_only():
    block = bytes([90, 0, 0, 0, 0, 0, 0, 0])
    image = BCTImage()
    image.load_bytes(make_bct(4, 4, 0x25, block))
    assert set(image.pixels[3::4]) == {90}
    assert set(image.pixels[0::4]) == {0}
    assert image.format_name() == "ATI1"


def test_load_ati2():
    block = bytes([50, 50, 0, 0, 0, 0, 0, 0, 60, 60, 0, 0, 0, 0, 0, 0])
    image = BCTImage()
    image.load_bytes(make_bct(4, 4, 0x26, block))
    assert bytes(image.pixels) == bytes([50, 60, 127, 255]) * 16
    assert image.format_name() == "ATI2"


def test_unsupported_format_raises():
    with pytest.raises(ImageLoadError):
        BCTImage().load_bytes(make_bct(4, 4, 0x28, bytes(16)))


def test_truncated_block_data_raises():
    with pytest.raises(ImageLoadError):
        BCTImage().load_bytes(make_bct(8, 8, 0x08, WHITE_DXT1))


def test_big_endian_narrow_block_texture_raises():
    with pytest.raises(ImageLoadError):
        BCTImage().load_bytes(make_bct(4, 4, 0x08, WHITE_DXT1, big_endian=True))


def test_big_endian_block_texture_is_untiled():
    payload = WHITE_DXT1 * 64
    image = BCTImage()
    image.load_bytes(make_bct(128, 8, 0x08, payload, big_endian=True))
    assert len(image.pixels) == 128 * 8 * 4
    texels = {bytes(image.pixels[i:i + 4]) for i in range(0, len(image.pixels), 4)}
    assert b"\xff\xff\xff\xff" in texels
    assert texels <= {b"\xff\xff\xff\xff", b"\x00\x00\x00\xff"}


def test_mip_and_memory_text():
    image = BCTImage()
    image.load_bytes(make_bct(16, 16, 0x00, bytes(1024), mips=5))
    assert image.mip_count_text() == "5"
    assert image.memory_usage_text() == "Mem: 1.0KB"


def test_load_from_file(tmp_path):
    payload = bytes(range(16))
    path = tmp_path / "tex.bct"
    path.write_bytes(make_bct(2, 2, 0x00, payload))
    image = BCTImage()
    image.load_from_file(path)
    assert bytes(image.pixels) == payload
    assert image.header.data == payload


def test_load_missing_file(tmp_path):
    with pytest.raises(ImageLoadError):
        BCTImage().load_from_file(tmp_path / "missing.bct")