"""Viewer state: the open image, its directory listing, zoom and channel display."""

from __future__ import annotations

import os
from enum import Enum, IntEnum
from typing import Dict, List, Optional, Tuple

from .bct import BCTImage
from .dds import DDSImage
from .imagebase import ImageBase, ImageLoadError

DDS_SIGNATURE = 0x44445320
BCT_SIGNATURE = 0x07010220
WHEEL_DELTA = 120
ZOOM_STEP = 1.25
MIN_CLIENT_SIZE = (636, 478)
PRIMARY_BACKGROUND = (192, 192, 192)
SECONDARY_BACKGROUND = (255, 0, 255)
APP_NAME = "BCTV"


class Channel(Enum):
    """A colour channel that can be shown or hidden."""

    RED = "r"
    GREEN = "g"
    BLUE = "b"
    ALPHA = "a"


class WheelMode(IntEnum):
    """What the mouse wheel does."""

    CYCLE = 0
    ZOOM_5 = 1
    ZOOM_10 = 2
    ZOOM_25 = 3
    ZOOM_50 = 4

    @property
    def factor(self) -> float:
        """Zoom factor applied per wheel notch (1.0 when cycling files)."""
        return _WHEEL_FACTORS[self]


_WHEEL_FACTORS = {
    WheelMode.CYCLE: 1.0,
    WheelMode.ZOOM_5: 1.05,
    WheelMode.ZOOM_10: 1.10,
    WheelMode.ZOOM_25: 1.25,
    WheelMode.ZOOM_50: 1.5,
}


class PostProcess(IntEnum):
    """Normal-map reconstruction mode selected by the user."""

    NONE = 0
    NORMAL_RG = 1
    NORMAL_AG = 2
    NORMAL_ARG = 3


def sniff_fourcc(path) -> int:
    """Read the first four bytes of ``path`` as a big-endian number."""
    try:
        with open(path, "rb") as stream:
            head = stream.read(4)
    except OSError as exc:
        raise ImageLoadError(f"cannot open {path}: {exc}") from exc
    if len(head) != 4:
        raise ImageLoadError(f"cannot read signature from {path}")
    return int.from_bytes(head, "big")


def is_bct_signature(fourcc: int) -> bool:
    """Whether the leading four bytes identify a BCT texture."""
    return fourcc == BCT_SIGNATURE or (fourcc & 0x00FFFF00) == 0x00010100


def open_image(path) -> ImageBase:
    """Pick a loader by the file's signature and load ``path`` with it."""
    fourcc = sniff_fourcc(path)
    if is_bct_signature(fourcc):
        image: ImageBase = BCTImage()
    elif fourcc == DDS_SIGNATURE:
        image = DDSImage()
    else:
        raise ImageLoadError(
            f"unsupported file format for {path} (4CC: 0x{fourcc:08X})"
        )
    image.load_from_file(path)
    return image


def _matching_files(directory: str, suffix: str, accept) -> List[str]:
    found = []
    try:
        names = sorted(os.listdir(directory))
    except OSError:
        return found
    for name in names:
        full = os.path.join(directory, name)
        if not name.lower().endswith(suffix) or not os.path.isfile(full):
            continue
        try:
            fourcc = sniff_fourcc(full)
        except ImageLoadError:
            continue
        if accept(fourcc):
            found.append(full)
    return found


def _scan_directory(directory: str) -> List[str]:
    return _matching_files(
        directory, ".dds", lambda code: code == DDS_SIGNATURE
    ) + _matching_files(directory, ".bct", is_bct_signature)


class Viewer:
    """Everything the viewer window shows, independent of any toolkit."""

    def __init__(self) -> None:
        self.image: Optional[ImageBase] = None
        self.file_list: List[str] = []
        self.current_index = -1
        self.zoom = 1.0
        self.manual_zoom = False
        self.show: Dict[Channel, bool] = {
            Channel.RED: True,
            Channel.GREEN: True,
            Channel.BLUE: True,
            Channel.ALPHA: False,
        }
        self.filter_shrink = True
        self.filter_enlarge = False
        self.clip_to_monitor = True
        self.always_center = True
        self.always_on_top = False
        self.wheel_mode = WheelMode.CYCLE
        self.wrap = True
        self.auto_zoom = True
        self.post_process = PostProcess.NONE
        self.primary_background = PRIMARY_BACKGROUND
        self.secondary_background = SECONDARY_BACKGROUND
        self.wheel_accum = 0
        self.bitmap: Optional[bytes] = None
        self.bitmap_size: Tuple[int, int] = (0, 0)

    @property
    def current_path(self) -> Optional[str]:
        if self.image is None or not 0 <= self.current_index < len(self.file_list):
            return None
        return self.file_list[self.current_index]

    def load_image(self, path, record_dir: bool = True) -> None:
        """Open ``path``; optionally list its directory's images for browsing."""
        path = os.path.abspath(os.fspath(path))
        self.image = open_image(path)
        if record_dir:
            self.file_list = _scan_directory(os.path.dirname(path))
        try:
            index = self.file_list.index(path)
        except ValueError:
            self.file_list.append(path)
            index = len(self.file_list) - 1
        self.current_index = index
        self.zoom = 1.0
        self.rebuild_bitmap()

    def rebuild_bitmap(self) -> Optional[bytes]:
        """Scale the image by the zoom and apply the channel masks."""
        image = self.image
        if image is None:
            return None
        src_w, src_h = image.width, image.height
        width = int(src_w * self.zoom)
        height = int(src_h * self.zoom)
        if width <= 0 or height <= 0:
            return None

        inverse = 1.0 / self.zoom
        columns = [min(int(x * inverse), src_w - 1) * 4 for x in range(width)]
        keep_b = self.show[Channel.BLUE]
        keep_g = self.show[Channel.GREEN]
        keep_r = self.show[Channel.RED]
        show_alpha = self.show[Channel.ALPHA]
        src = image.pixels
        out = bytearray(width * height * 4)
        pos = 0
        for y in range(height):
            row = min(int(y * inverse), src_h - 1) * src_w * 4
            for column in columns:
                b, g, r, a = src[row + column:row + column + 4]
                b = b if keep_b else 0
                g = g if keep_g else 0
                r = r if keep_r else 0
                if show_alpha:
                    r, g, b = r * a // 255, g * a // 255, b * a // 255
                else:
                    a = 255
                out[pos:pos + 4] = bytes((b, g, r, a))
                pos += 4

        self.bitmap = bytes(out)
        self.bitmap_size = (width, height)
        return self.bitmap

    def step_image(self, step: int) -> None:
        """Move ``step`` files through the list, wrapping or clamping."""
        if not self.file_list:
            return
        count = len(self.file_list)
        index = self.current_index + step
        if self.wrap:
            index %= count
        else:
            index = min(max(index, 0), count - 1)
        if index != self.current_index:
            self.load_image(self.file_list[index], False)

    def jump_image(self, idx: int) -> None:
        """Open the file at position ``idx`` in the list, if there is one."""
        if 0 <= idx < len(self.file_list):
            self.load_image(self.file_list[idx], False)

    def change_zoom(self, factor: float) -> None:
        self.zoom *= factor
        self.rebuild_bitmap()

    def zoom_in(self) -> None:
        self.manual_zoom = True
        self.change_zoom(ZOOM_STEP)

    def zoom_out(self) -> None:
        self.manual_zoom = True
        self.change_zoom(1.0 / ZOOM_STEP)

    def fit_zoom(self, available_width: int, available_height: int) -> float:
        """Fit the image into the given area when auto zoom is in charge."""
        image = self.image
        if image is None:
            return self.zoom
        if self.auto_zoom and not self.manual_zoom:
            if image.width > available_width or image.height > available_height:
                zoom = min(available_width / image.width, available_height / image.height)
            else:
                zoom = 1.0
            if zoom != self.zoom:
                self.zoom = zoom
                self.rebuild_bitmap()
        return self.zoom

    def toggle_channel(self, channel: Channel, solo: bool = False) -> None:
        """Flip one channel; with ``solo`` the other channels are switched off first."""
        if solo:
            for other in Channel:
                if other is not channel:
                    self.show[other] = False
        self.show[channel] = not self.show[channel]
        self.rebuild_bitmap()

    def wheel(self, rotation: int) -> None:
        """Feed a wheel rotation; every full notch steps files or zooms."""
        if self.bitmap is None:
            return
        self.wheel_accum += rotation
        factor = self.wheel_mode.factor
        while self.wheel_accum >= WHEEL_DELTA:
            self.wheel_accum -= WHEEL_DELTA
            if self.wheel_mode is WheelMode.CYCLE:
                self.step_image(-1)
            else:
                self.change_zoom(factor)
        while self.wheel_accum <= -WHEEL_DELTA:
            self.wheel_accum += WHEEL_DELTA
            if self.wheel_mode is WheelMode.CYCLE:
                self.step_image(1)
            else:
                self.change_zoom(1.0 / factor)

    def title(self) -> str:
        path = self.current_path
        if path is None:
            return APP_NAME
        percent = int(self.zoom * 100 + 0.5)
        return f"{APP_NAME} - [{os.path.basename(path)}] Zoom:{percent}%"

    def status_fields(self) -> Tuple[str, ...]:
        image = self.image
        if image is None:
            return ("No image loaded",)
        return (
            f"{self.current_index + 1} / {len(self.file_list)}",
            f"Format: {image.format_name()}",
            f"Size: {image.width}x{image.height}",
            f"Mips: 1/{image.mip_count}",
            image.memory_usage_text(),
        )

    def cursor_info(self, ix: int, iy: int) -> str:
        """Title text extended with the bitmap pixel under (ix, iy)."""
        width, height = self.bitmap_size
        if self.bitmap is None or not (0 <= ix < width and 0 <= iy < height):
            raise IndexError(f"position {ix}x{iy} lies outside the bitmap")
        offset = (iy * width + ix) * 4
        b, g, r, a = self.bitmap[offset:offset + 4]
        return f"{self.title()} Pos:{ix}x{iy} [A:{a} R:{r} G:{g} B:{b}]"