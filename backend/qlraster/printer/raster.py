"""Raster image preparation for Brother QL printers."""
from __future__ import annotations

import io
import math
from os import PathLike
from typing import BinaryIO, Union

from PIL import Image

from .constants import (
    DEFAULT_BRIGHTNESS, DEFAULT_CONTRAST, DITHER_THRESHOLD, LINE_LENGTH_BYTES,
    PACK_THRESHOLD, PRINT_HEAD_PINS,
)
from .errors import WidthMismatch

ImageSource = Union[Image.Image, bytes, str, PathLike, BinaryIO]

# Atkinson neighbours; each receives 1/8 of the error, so 2/8 is dropped.
_ATKINSON_NEIGHBOURS = ((1, 0), (2, 0), (-1, 1), (0, 1), (1, 1), (0, 2))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def has_transparency(img: Image.Image) -> bool:
    if img.info.get("transparency", None) is not None:
        return True
    if img.mode == "P":
        transparent = img.info.get("transparency", -1)
        for _, index in img.getcolors():
            if index == transparent:
                return True
    return False


def load_image(source: ImageSource) -> Image.Image:
    """Open ``source`` and normalise it to RGB on a white background."""
    if isinstance(source, Image.Image):
        image = source.copy()
    elif isinstance(source, (bytes, bytearray)):
        image = Image.open(io.BytesIO(source))
    else:
        image = Image.open(source)
    image.load()

    if image.mode == "P":
        image = image.convert("RGBA") if has_transparency(image) else image.convert("RGB")
    if image.mode in ("LA", "PA") or (image.mode == "L" and has_transparency(image)):
        image = image.convert("RGBA")

    if image.mode == "RGBA":
        bg = Image.new("RGB", image.size, "white")
        bg.paste(image, mask=image.split()[3])  # use alpha as mask
        return bg
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


def ensure_portrait(image: Image.Image) -> Image.Image:
    """Rotate landscape images a quarter turn clockwise."""
    if image.height >= image.width:
        return image
    return image.transpose(Image.ROTATE_270)


def resize_to_width(image: Image.Image, width: int) -> Image.Image:
    if width <= 0:
        raise WidthMismatch(f"Cannot resize to a width of {width} dots")
    height = max(1, _round_half_up(image.height * width / image.width))
    return image.resize((width, height), Image.LANCZOS)


def brightness_contrast_table(brightness: int = 100, contrast: int = 100) -> list[int]:
    """256-entry lookup table for one channel."""
    b = brightness / 100
    c = max(0, contrast) / 100
    table = []
    for v in range(256):
        adjusted = ((v / 255 - 0.5) * c + 0.5) * b
        table.append(min(255, max(0, _round_half_up(adjusted * 255))))
    return table


def adjust_brightness_contrast(image: Image.Image, brightness: int = 100,
                               contrast: int = 100) -> Image.Image:
    if brightness == 100 and contrast == 100:
        return image
    table = brightness_contrast_table(brightness, contrast)
    return image.point(table * len(image.getbands()))


def to_grayscale(image: Image.Image) -> Image.Image:
    """Rec. 601 luma, 0.299 R + 0.587 G + 0.114 B, rounded half to even.

    Computed in floating point rather than with Pillow's fixed-point "L"
    conversion, which rounds a few mid-gray values the other way.
    """
    rgb = image.convert("RGB")
    data = rgb.tobytes()
    gray = bytes(
        min(255, round(0.299 * data[i] + 0.587 * data[i + 1] + 0.114 * data[i + 2]))
        for i in range(0, len(data), 3)
    )
    return Image.frombytes("L", rgb.size, gray)


def dither_atkinson(gray: Image.Image) -> Image.Image:
    """Quantise an L image to pure black/white with Atkinson error diffusion."""
    w, h = gray.size
    px = list(gray.tobytes())

    for y in range(h):
        row = y * w
        for x in range(w):
            i = row + x
            old = px[i]
            new = 0 if old < DITHER_THRESHOLD else 255
            px[i] = new
            err = old - new
            if err == 0:
                continue
            share = err >> 3
            for dx, dy in _ATKINSON_NEIGHBOURS:
                nx, ny = x + dx, y + dy
                if 0 <= nx < w and ny < h:
                    j = ny * w + nx
                    v = px[j] + share
                    px[j] = 0 if v < 0 else 255 if v > 255 else v

    return Image.frombytes("L", (w, h), bytes(px))


def build_mono_at_width(
    source: ImageSource,
    width: int,
    brightness: int = DEFAULT_BRIGHTNESS,
    contrast: int = DEFAULT_CONTRAST,
) -> tuple[Image.Image, Image.Image]:
    """Turn any image into a dithered black/white bitmap ``width`` dots wide.

    Returns ``(mono, preview)``: ``mono`` is an L image holding only 0 and
    255, ``preview`` is the same picture as RGB for display.
    """
    image = load_image(source)
    image = ensure_portrait(image)
    image = resize_to_width(image, width)
    image = adjust_brightness_contrast(image, brightness, contrast)
    mono = dither_atkinson(to_grayscale(image))
    return mono, mono.convert("RGB")


def pack_raster_lines(
    mono: Image.Image,
    printable_dots: int,
    left_margin: int,
    right_margin: int = 0,
    flip_margins: bool = False,
) -> list[bytes]:
    """Pack a monochrome image into 90-byte raster lines, one per row.

    The head is mirrored relative to the image, so pixel ``px`` lands on dot
    ``margin + printable_dots - 1 - px``. ``flip_margins`` makes the right
    margin lead instead of the left one.
    """
    if mono.width != printable_dots:
        raise WidthMismatch(
            f"Image width ({mono.width}) does not match printable dots ({printable_dots})"
        )
    margin = right_margin if flip_margins else left_margin
    if margin < 0 or margin + printable_dots > PRINT_HEAD_PINS:
        raise WidthMismatch(
            f"Margin ({margin}) + printable dots ({printable_dots}) "
            f"exceed the {PRINT_HEAD_PINS}-pin head"
        )
    if mono.mode != "L":
        mono = mono.convert("L")

    data = mono.tobytes()
    w = mono.width
    lines: list[bytes] = []
    for y in range(mono.height):
        line = bytearray(LINE_LENGTH_BYTES)
        row = y * w
        for px in range(printable_dots):
            if data[row + px] > PACK_THRESHOLD:
                continue
            bit = margin + (printable_dots - 1 - px)
            line[bit >> 3] |= 1 << (7 - (bit & 7))
        lines.append(bytes(line))
    return lines
