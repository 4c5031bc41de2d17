"""
24-bit uncompressed BMP writer.

Layout: a 14-byte file header, a 40-byte BITMAPINFOHEADER, then the pixel
rows bottom-to-top, each pixel as blue, green, red and each row padded with
zeros to a multiple of four bytes. All integers are little-endian.
"""

from __future__ import annotations

import io
import os
import struct
from dataclasses import dataclass
from typing import BinaryIO, Union

import numpy as np

from mandelbmp.buffer import PixelBuffer
from mandelbmp.errors import BitmapFormatError, BitmapWriteError
from mandelbmp.util.logging_setup import get_logger

MAGIC = b"BM"
FILE_HEADER_SIZE = 14
DIB_HEADER_SIZE = 40
PIXEL_OFFSET = FILE_HEADER_SIZE + DIB_HEADER_SIZE
BITS_PER_PIXEL = 24
COLOR_PLANES = 1
COMPRESSION_NONE = 0
DEFAULT_DPI = 72
INCHES_PER_METER = 39.3701

# magic, file size, reserved, reserved, pixel offset
_FILE_HEADER = struct.Struct("<2sIHHI")
# header size, width, height, planes, bpp, compression, image size,
# x ppm, y ppm, palette size, important colors
_DIB_HEADER = struct.Struct("<IiiHHIIiiII")

Sink = Union[str, "os.PathLike[str]", BinaryIO]


def row_padding(width: int) -> int:
    return (4 - (width * 3) % 4) % 4


def row_stride(width: int) -> int:
    return width * 3 + row_padding(width)


def file_size(width: int, height: int) -> int:
    return PIXEL_OFFSET + height * row_stride(width)


def dpi_to_ppm(dpi: int) -> int:
    return int(round(dpi * INCHES_PER_METER))


@dataclass(frozen=True)
class BitmapHeader:
    """Decoded fields of the file header and BITMAPINFOHEADER."""

    file_size: int
    pixel_offset: int
    header_size: int
    width: int
    height: int
    planes: int
    bits_per_pixel: int
    compression: int
    image_size: int
    x_pixels_per_meter: int
    y_pixels_per_meter: int
    colors_used: int
    colors_important: int


class BitmapEncoder:
    """
    Serialises a PixelBuffer of fixed dimensions. Both headers depend only
    on width, height and dpi, so they are built once here before any pixel
    data exists.
    """

    def __init__(self, width: int, height: int, dpi: int = DEFAULT_DPI):
        if width <= 0 or height <= 0:
            raise ValueError(f"Bitmap dimensions must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.dpi = int(dpi)
        self.padding = row_padding(self.width)
        self.file_size = file_size(self.width, self.height)
        self.file_header = self._make_file_header()
        self.dib_header = self._make_dib_header()

    def _make_file_header(self) -> bytes:
        return _FILE_HEADER.pack(MAGIC, self.file_size, 0, 0, PIXEL_OFFSET)

    def _make_dib_header(self) -> bytes:
        resolution = dpi_to_ppm(self.dpi)
        return _DIB_HEADER.pack(
            DIB_HEADER_SIZE,
            self.width,
            self.height,
            COLOR_PLANES,
            BITS_PER_PIXEL,
            COMPRESSION_NONE,
            0,
            resolution,
            resolution,
            0,
            0,
        )

    def pixel_data(self, buffer: PixelBuffer) -> bytes:
        if (buffer.width, buffer.height) != (self.width, self.height):
            raise ValueError(
                f"Buffer is {buffer.width}x{buffer.height}, encoder expects {self.width}x{self.height}"
            )
        # Bottom row first, RGB -> BGR.
        bgr = buffer.pixels[::-1, :, ::-1].reshape(self.height, self.width * 3)
        if self.padding:
            pad = np.zeros((self.height, self.padding), dtype=np.uint8)
            bgr = np.hstack((bgr, pad))
        return np.ascontiguousarray(bgr).tobytes()

    def encode(self, buffer: PixelBuffer) -> bytes:
        return self.file_header + self.dib_header + self.pixel_data(buffer)

    def write(self, buffer: PixelBuffer, sink: Sink) -> int:
        """
        Write the encoded image to a path or an open binary stream and
        return the number of bytes written. Any OSError, or a short write,
        is raised as BitmapWriteError.
        """
        data = self.encode(buffer)
        if isinstance(sink, (str, bytes, os.PathLike)):
            target = os.fsdecode(sink)
            try:
                with open(sink, "wb") as f:
                    written = f.write(data)
            except OSError as e:
                raise BitmapWriteError(target, e.strerror or str(e)) from e
        else:
            target = getattr(sink, "name", repr(sink))
            try:
                written = sink.write(data)
                sink.flush()
            except (OSError, io.UnsupportedOperation) as e:
                raise BitmapWriteError(str(target), str(e)) from e

        if written is not None and written != len(data):
            raise BitmapWriteError(str(target), f"short write ({written} of {len(data)} bytes)")
        get_logger().info("Bitmap written: %s (%sx%s, %s bytes)", target, self.width, self.height, len(data))
        return len(data)


def save_bitmap(buffer: PixelBuffer, path: Sink, dpi: int = DEFAULT_DPI) -> int:
    return BitmapEncoder(buffer.width, buffer.height, dpi=dpi).write(buffer, path)


def read_header(source: Union[bytes, Sink]) -> BitmapHeader:
    if isinstance(source, (bytes, bytearray)):
        raw = bytes(source[:PIXEL_OFFSET])
    elif isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as f:
            raw = f.read(PIXEL_OFFSET)
    else:
        raw = source.read(PIXEL_OFFSET)

    if len(raw) < PIXEL_OFFSET:
        raise BitmapFormatError(f"Need {PIXEL_OFFSET} header bytes, got {len(raw)}")
    magic, size, _, _, offset = _FILE_HEADER.unpack_from(raw, 0)
    if magic != MAGIC:
        raise BitmapFormatError(f"Bad magic {magic!r}, expected {MAGIC!r}")
    fields = _DIB_HEADER.unpack_from(raw, FILE_HEADER_SIZE)
    return BitmapHeader(size, offset, *fields)
