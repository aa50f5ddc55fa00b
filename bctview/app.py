"""Desktop window for browsing DDS and BCT textures, and its command line."""

from __future__ import annotations

import argparse
import logging
import tkinter as tk
from tkinter import colorchooser, filedialog, messagebox
from typing import Optional, Sequence, Tuple

from .imagebase import ImageLoadError
from .viewer import (
    APP_NAME,
    MIN_CLIENT_SIZE,
    WHEEL_DELTA,
    Channel,
    PostProcess,
    Viewer,
    WheelMode,
)

FILE_VERSION = "3.10.349.0"
PRODUCT_VERSION = "3.10"
ABOUT_TITLE = "Blue Castle Texture Viewer"
ABOUT_TEXT = f"{APP_NAME} Version v0.1\nFile version {FILE_VERSION}"
STATUS_WIDTHS = (100, 100, 100, 150, 250)

log = logging.getLogger(__name__)

_CHANNEL_KEYS = {
    "r": Channel.RED,
    "g": Channel.GREEN,
    "b": Channel.BLUE,
    "a": Channel.ALPHA,
}

_SIMPLE_KEYS = {
    "escape": ("exit",),
    "o": ("open",),
    "c": ("background",),
    "l": ("center",),
    "prior": ("step", -1),
    "next": ("step", 1),
    "plus": ("zoom_in",),
    "+": ("zoom_in",),
    "equal": ("zoom_in",),
    "=": ("zoom_in",),
    "kp_add": ("zoom_in",),
    "minus": ("zoom_out",),
    "-": ("zoom_out",),
    "kp_subtract": ("zoom_out",),
    "n": ("filter",),
    "home": ("jump", 0),
    "end": ("jump", -1),
}

_FILE_TYPES = [
    ("All supported files", "*.dds *.bct"),
    ("DDS files", "*.dds"),
    ("BCT files", "*.bct"),
]


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse the command line: any number of image files to open."""
    parser = argparse.ArgumentParser(prog=APP_NAME.lower(), description=ABOUT_TITLE)
    parser.add_argument("files", nargs="*", help="image files to open")
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {PRODUCT_VERSION}"
    )
    return parser.parse_args(argv)


def key_action(keysym: str, shift: bool = False) -> Optional[Tuple]:
    """Map a key to an action tuple ``(name, *arguments)``; None if unbound.

    Channel keys give ``("channel", channel, solo)`` where solo follows Shift.
    ``("jump", -1)`` means the last file in the list.
    """
    key = keysym.lower()
    if key in _CHANNEL_KEYS:
        return ("channel", _CHANNEL_KEYS[key], bool(shift))
    return _SIMPLE_KEYS.get(key)


def _hex_colour(rgb: Tuple[int, int, int]) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def _bitmap_to_ppm(
    bitmap: bytes,
    width: int,
    height: int,
    background: Tuple[int, int, int],
    alpha_shown: bool,
) -> bytes:
    """Turn a BGRA bitmap into binary PPM, blending over ``background``."""
    header = f"P6 {width} {height} 255\n".encode("ascii")
    rgb = bytearray(width * height * 3)
    if not alpha_shown:
        rgb[0::3] = bitmap[2::4]
        rgb[1::3] = bitmap[1::4]
        rgb[2::3] = bitmap[0::4]
        return header + bytes(rgb)
    bg_r, bg_g, bg_b = background
    for pos, offset in enumerate(range(0, len(bitmap), 4)):
        b, g, r, a = bitmap[offset:offset + 4]
        rest = 255 - a
        out = pos * 3
        rgb[out] = min(255, r + bg_r * rest // 255)
        rgb[out + 1] = min(255, g + bg_g * rest // 255)
        rgb[out + 2] = min(255, b + bg_b * rest // 255)
    return header + bytes(rgb)


class ViewerWindow:
    """A Tk window around a :class:`Viewer`."""

    def __init__(self, viewer: Optional[Viewer] = None) -> None:
        self.viewer = viewer or Viewer()
        self.root = tk.Tk()
        self.root.title(APP_NAME)
        self.root.resizable(False, False)
        self.root.configure(bg=_hex_colour(self.viewer.primary_background))
        self._photo: Optional[tk.PhotoImage] = None

        min_w, min_h = MIN_CLIENT_SIZE
        self.canvas = tk.Canvas(
            self.root,
            width=min_w,
            height=min_h,
            highlightthickness=0,
            bg=_hex_colour(self.viewer.secondary_background),
        )
        self.canvas.pack(side=tk.TOP, fill=tk.BOTH, expand=True)

        status = tk.Frame(self.root, bg=_hex_colour(self.viewer.primary_background))
        status.pack(side=tk.BOTTOM, fill=tk.X)
        self.status_labels = []
        for width in STATUS_WIDTHS:
            cell = tk.Frame(status, width=width, height=20)
            cell.pack_propagate(False)
            cell.pack(side=tk.LEFT)
            label = tk.Label(cell, anchor=tk.W, relief=tk.SUNKEN)
            label.pack(fill=tk.BOTH, expand=True)
            self.status_labels.append(label)

        self._build_menu()
        self._bind_events()
        self.refresh()

    # ------------------------------------------------------------------ menus
    def _build_menu(self) -> None:
        viewer = self.viewer
        self._channel_vars = {
            channel: tk.BooleanVar(value=shown) for channel, shown in viewer.show.items()
        }
        self._filter_shrink = tk.BooleanVar(value=viewer.filter_shrink)
        self._filter_enlarge = tk.BooleanVar(value=viewer.filter_enlarge)
        self._clip = tk.BooleanVar(value=viewer.clip_to_monitor)
        self._center_var = tk.BooleanVar(value=viewer.always_center)
        self._top = tk.BooleanVar(value=viewer.always_on_top)
        self._wheel = tk.IntVar(value=int(viewer.wheel_mode))
        self._wrap = tk.BooleanVar(value=viewer.wrap)
        self._auto = tk.BooleanVar(value=viewer.auto_zoom)
        self._post = tk.IntVar(value=int(viewer.post_process))

        bar = tk.Menu(self.root)

        file_menu = tk.Menu(bar, tearoff=False)
        file_menu.add_command(label="Open...", accelerator="O", command=self._on_open)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", accelerator="ESC", command=self.root.destroy)
        bar.add_cascade(label="File", menu=file_menu)

        options = tk.Menu(bar, tearoff=False)
        for channel, label, key in (
            (Channel.RED, "Show Red", "R"),
            (Channel.GREEN, "Show Green", "G"),
            (Channel.BLUE, "Show Blue", "B"),
            (Channel.ALPHA, "Show Alpha", "A"),
        ):
            options.add_checkbutton(
                label=label,
                accelerator=key,
                variable=self._channel_vars[channel],
                command=lambda c=channel: self._toggle_channel(c, False),
            )
        options.add_separator()
        options.add_command(
            label="Background Color...", accelerator="C", command=self._on_background
        )

        filters = tk.Menu(options, tearoff=False)
        filters.add_checkbutton(
            label="When Shrinking", variable=self._filter_shrink, command=self._on_filter
        )
        filters.add_checkbutton(
            label="When Enlarging", variable=self._filter_enlarge, command=self._on_filter
        )
        options.add_cascade(label="Filter Image", menu=filters)

        window = tk.Menu(options, tearoff=False)
        window.add_checkbutton(
            label="Clip to nearest monitor",
            accelerator="L",
            variable=self._clip,
            command=self._on_window_option,
        )
        window.add_checkbutton(
            label="Always in center", variable=self._center_var, command=self._on_window_option
        )
        window.add_checkbutton(
            label="Always on top", variable=self._top, command=self._on_window_option
        )
        options.add_cascade(label="Window", menu=window)

        wheel = tk.Menu(options, tearoff=False)
        for mode, label in (
            (WheelMode.CYCLE, "Cycle files"),
            (WheelMode.ZOOM_5, "Zoom 5%"),
            (WheelMode.ZOOM_10, "Zoom 10%"),
            (WheelMode.ZOOM_25, "Zoom 25%"),
            (WheelMode.ZOOM_50, "Zoom 50%"),
        ):
            wheel.add_radiobutton(
                label=label, value=int(mode), variable=self._wheel, command=self._on_wheel_mode
            )
        options.add_cascade(label="Mouse wheel behaviour", menu=wheel)

        options.add_separator()
        options.add_checkbutton(
            label="Wrap around while changing files",
            variable=self._wrap,
            command=self._on_wrap_auto,
        )
        options.add_checkbutton(
            label="Auto Zoom", variable=self._auto, command=self._on_wrap_auto
        )

        post = tk.Menu(options, tearoff=False)
        for mode, label in (
            (PostProcess.NONE, "0: None"),
            (PostProcess.NORMAL_RG, "1: Normal map RG"),
            (PostProcess.NORMAL_AG, "2: Normal map AG"),
            (PostProcess.NORMAL_ARG, "3: Normal map ARG"),
        ):
            post.add_radiobutton(
                label=label, value=int(mode), variable=self._post, command=self._on_post_process
            )
        options.add_cascade(label="Post process", menu=post)
        bar.add_cascade(label="Options", menu=options)

        help_menu = tk.Menu(bar, tearoff=False)
        help_menu.add_command(label="About", command=self._on_about)
        bar.add_cascade(label="Help", menu=help_menu)

        self.root.config(menu=bar)

    def _sync_menu(self) -> None:
        viewer = self.viewer
        for channel, var in self._channel_vars.items():
            var.set(viewer.show[channel])
        self._filter_shrink.set(viewer.filter_shrink)
        self._filter_enlarge.set(viewer.filter_enlarge)

    def _bind_events(self) -> None:
        self.root.bind("<Key>", self._on_key)
        self.canvas.bind("<Motion>", self._on_motion)
        self.canvas.bind("<MouseWheel>", self._on_mouse_wheel)
        self.canvas.bind("<Button-4>", lambda _e: self._wheel_by(WHEEL_DELTA))
        self.canvas.bind("<Button-5>", lambda _e: self._wheel_by(-WHEEL_DELTA))

    # ------------------------------------------------------------- operations
    def open_file(self, path) -> bool:
        """Open ``path`` and list its directory; report failures in a dialog."""
        try:
            self._load(path)
        except ImageLoadError as exc:
            messagebox.showerror(APP_NAME, str(exc), parent=self.root)
            return False
        return True

    def _load(self, path) -> None:
        self.viewer.load_image(path, True)
        self._after_load()

    def _after_load(self) -> None:
        if self.viewer.auto_zoom:
            self._update_window_for_image()
        self.refresh()

    def _guarded(self, operation, *args) -> None:
        try:
            operation(*args)
        except ImageLoadError as exc:
            messagebox.showerror(APP_NAME, str(exc), parent=self.root)
            return
        self._after_load()

    def _update_window_for_image(self) -> None:
        image = self.viewer.image
        if image is None:
            return
        self.root.update_idletasks()
        extra_w = max(0, self.root.winfo_width() - self.canvas.winfo_width())
        extra_h = max(0, self.root.winfo_height() - self.canvas.winfo_height())
        screen_w = self.root.winfo_screenwidth()
        screen_h = self.root.winfo_screenheight()
        zoom = self.viewer.fit_zoom(screen_w - extra_w, screen_h - extra_h)

        min_w, min_h = MIN_CLIENT_SIZE
        width = max(int(image.width * zoom), min_w)
        height = max(int(image.height * zoom), min_h)
        if width != self.canvas.winfo_width() or height != self.canvas.winfo_height():
            self.canvas.config(width=width, height=height)
            self.root.update_idletasks()

        if self.viewer.always_center or not self._fits_screen():
            self._center()
        self.refresh()

    def _fits_screen(self) -> bool:
        x, y = self.root.winfo_x(), self.root.winfo_y()
        return (
            x >= 0
            and y >= 0
            and x + self.root.winfo_width() <= self.root.winfo_screenwidth()
            and y + self.root.winfo_height() <= self.root.winfo_screenheight()
        )

    def _center(self) -> None:
        self.root.update_idletasks()
        x = (self.root.winfo_screenwidth() - self.root.winfo_width()) // 2
        y = (self.root.winfo_screenheight() - self.root.winfo_height()) // 2
        self.root.geometry(f"+{max(x, 0)}+{max(y, 0)}")

    def refresh(self) -> None:
        """Redraw the bitmap, title and status bar from the viewer's state."""
        viewer = self.viewer
        self.canvas.delete("all")
        self.canvas.config(bg=_hex_colour(viewer.secondary_background))
        if viewer.bitmap is not None:
            width, height = viewer.bitmap_size
            data = _bitmap_to_ppm(
                viewer.bitmap,
                width,
                height,
                viewer.secondary_background,
                viewer.show[Channel.ALPHA],
            )
            self._photo = tk.PhotoImage(data=data, format="PPM")
            self.canvas.create_image(
                self.canvas.winfo_reqwidth() // 2,
                self.canvas.winfo_reqheight() // 2,
                image=self._photo,
            )
        else:
            self._photo = None
        self.root.title(viewer.title())
        fields = viewer.status_fields()
        for index, label in enumerate(self.status_labels):
            label.config(text=fields[index] if index < len(fields) else "")

    def run(self) -> None:
        """Hand control to the Tk event loop until the window closes."""
        self.root.mainloop()

    # ----------------------------------------------------------------- events
    def _on_open(self) -> None:
        path = filedialog.askopenfilename(
            parent=self.root, title="Open DDS or BCT", filetypes=_FILE_TYPES
        )
        if path:
            self.open_file(path)

    def _on_background(self) -> None:
        rgb, colour = colorchooser.askcolor(
            color=_hex_colour(self.viewer.secondary_background), parent=self.root
        )
        if rgb is None or colour is None:
            return
        self.viewer.secondary_background = tuple(int(c) for c in rgb)
        self.refresh()

    def _toggle_channel(self, channel: Channel, solo: bool) -> None:
        self.viewer.toggle_channel(channel, solo)
        self._sync_menu()
        self.refresh()

    def _on_filter(self) -> None:
        self.viewer.filter_shrink = self._filter_shrink.get()
        self.viewer.filter_enlarge = self._filter_enlarge.get()

    def _on_window_option(self) -> None:
        self.viewer.clip_to_monitor = self._clip.get()
        self.viewer.always_center = self._center_var.get()
        self.viewer.always_on_top = self._top.get()
        self.root.attributes("-topmost", self.viewer.always_on_top)

    def _on_wheel_mode(self) -> None:
        self.viewer.wheel_mode = WheelMode(self._wheel.get())

    def _on_wrap_auto(self) -> None:
        self.viewer.wrap = self._wrap.get()
        self.viewer.auto_zoom = self._auto.get()

    def _on_post_process(self) -> None:
        self.viewer.post_process = PostProcess(self._post.get())
        self.viewer.rebuild_bitmap()
        self.refresh()

    def _on_about(self) -> None:
        messagebox.showinfo(ABOUT_TITLE, ABOUT_TEXT, parent=self.root)

    def _zoom(self, operation) -> None:
        operation()
        self._update_window_for_image()
        self.refresh()

    def _toggle_filters(self) -> None:
        self.viewer.filter_shrink = not self.viewer.filter_shrink
        self.viewer.filter_enlarge = not self.viewer.filter_enlarge
        self._sync_menu()

    def _jump(self, index: int) -> None:
        if index < 0:
            index = len(self.viewer.file_list) - 1
        self._guarded(self.viewer.jump_image, index)

    def _on_key(self, event) -> Optional[str]:
        action = key_action(event.keysym, bool(event.state & 0x1))
        if action is None:
            return None
        name, *args = action
        handlers = {
            "exit": self.root.destroy,
            "open": self._on_open,
            "background": self._on_background,
            "channel": self._toggle_channel,
            "center": self._center,
            "step": lambda step: self._guarded(self.viewer.step_image, step),
            "zoom_in": lambda: self._zoom(self.viewer.zoom_in),
            "zoom_out": lambda: self._zoom(self.viewer.zoom_out),
            "filter": self._toggle_filters,
            "jump": self._jump,
        }
        handlers[name](*args)
        return "break"

    def _on_motion(self, event) -> None:
        viewer = self.viewer
        if viewer.bitmap is None:
            return
        width, height = viewer.bitmap_size
        x0 = (self.canvas.winfo_width() - width) // 2
        y0 = (self.canvas.winfo_height() - height) // 2
        try:
            text = viewer.cursor_info(event.x - x0, event.y - y0)
        except IndexError:
            return
        self.root.title(text)

    def _on_mouse_wheel(self, event) -> None:
        delta = event.delta
        if delta == 0:
            return
        if abs(delta) < WHEEL_DELTA:
            delta = WHEEL_DELTA if delta > 0 else -WHEEL_DELTA
        self._wheel_by(delta)

    def _wheel_by(self, rotation: int) -> None:
        viewer = self.viewer
        try:
            viewer.wheel(rotation)
        except ImageLoadError as exc:
            messagebox.showerror(APP_NAME, str(exc), parent=self.root)
            return
        if viewer.wheel_mode is WheelMode.CYCLE:
            self._after_load()
        else:
            self._update_window_for_image()
            self.refresh()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the viewer, opening the first file on the command line that loads."""
    args = parse_args(argv)
    window = ViewerWindow()
    for path in args.files:
        try:
            window._load(path)
        except ImageLoadError as exc:
            log.error("%s", exc)
            continue
        break
    window.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())