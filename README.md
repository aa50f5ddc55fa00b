# bctview

A small texture viewer and decoder for BCT and DDS files.

It reads:

- **DDS** files with a classic 124-byte header: DXT1, DXT3, DXT5, ATI2
  (BC5) and uncompressed 32-bit BGRA. Only the top mip level is decoded.
- **BCT** textures, little- or big-endian: RGBA8, 8-bit palettised, DXT1,
  DXT5, ATI1 and ATI2. Only the first mip level is decoded. Big-endian
  (Xbox 360) block data is byte-swapped and untiled before it is decoded.

Every image is decoded to a flat BGRA pixel buffer (`image.pixels`).

## Installing

```
pip install .
```

The package needs only the Python standard library. The viewer window uses
tkinter.

## Running the viewer

```
bctview [FILE ...]
bctview --version
```

The viewer opens the first file on the command line that loads. It then
collects every `.dds` and `.bct` file in the same directory whose signature
matches, so you can step through them.

| Key                   | Action                                              |
|-----------------------|-----------------------------------------------------|
| `O`                   | open a file                                         |
| `Esc`                 | quit                                                |
| `C`                   | choose the canvas background colour                 |
| `R` `G` `B` `A`       | toggle a channel (with Shift the other channels are switched off first) |
| `+` / `-`             | zoom in / out by a factor of 1.25                   |
| `PageUp` / `PageDown` | previous / next file in the directory               |
| `Home` / `End`        | first / last file                                   |
| `L`                   | centre the window on the screen                     |
| `N`                   | flip both "Filter Image" options                    |

The mouse wheel either cycles files or zooms by 5, 10, 25 or 50 percent,
chosen under *Options → Mouse wheel behaviour*. With *Wrap around while
changing files* on, stepping past either end of the list wraps. With *Auto
Zoom* on, a large image is shrunk to fit the screen. The title bar shows the
zoom and, when the pointer is over the image, the pixel under it. When the
alpha channel is shown, the image is premultiplied and blended over the
background colour.

## Using the library

```python
from bctview.viewer import open_image

image = open_image("texture.dds")      # picks DDSImage or BCTImage by signature
print(image.format_name(), image.size_text(), image.memory_usage_text())
```

`open_image` raises `ImageLoadError` (from `bctview.imagebase`) when a file
cannot be read or decoded. `DDSImage` (`bctview.dds`) and `BCTImage`
(`bctview.bct`) can also be used directly, with `load_from_file(path)` or
`load_bytes(data)`.

Every image has `apply_normal_rg()`, `apply_normal_ag()`,
`apply_normal_arg()` and `premultiply_alpha()`, which rewrite its pixels in
place; the same operations work on any BGRA `bytearray` through
`bctview.imagebase.normal_rg`, `normal_ag`, `normal_arg` and
`premultiply_alpha`.

Block decoders are in `bctview.blocks` (`decode_dxt1`, `decode_dxt3`,
`decode_dxt5`, `decode_ati1`, `decode_ati2`), each returning 16 texels.
Xbox 360 untiling is `bctview.xbox360.untile`.

`bctview.viewer.Viewer` holds the viewer's state without any window: the
loaded image, the directory list, zoom, channel masks and the scaled BGRA
bitmap, its title and status-bar text.

## What it does not do

- The *Post process* menu only records the chosen mode; the displayed image
  is not changed by it. Call the `apply_normal_*` methods yourself instead.
- The *Filter Image* and *Clip to nearest monitor* options are recorded but
  have no effect: scaling is always nearest-neighbour.
- Lower mip levels, DX10-style DDS headers, BC6H/BC7 and DXT3 BCT data are
  not decoded.
- Big-endian BCT block textures narrower than 32 blocks (after rounding up to
  a power of two) cannot be untiled and fail to load.
- Images cannot be saved or copied to the clipboard.

## Tests

```
pip install .[test]
pytest
```