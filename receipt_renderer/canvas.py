"""Drawing surface capability and its Pillow implementation.

The image renderer only talks to ``Surface`` and ``CanvasBackend``; it never
touches Pillow directly.
"""

import asyncio
import base64
import io
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from .config import settings
from .errors import DecodeError, EncodeError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = 'data:image/png;base64,'


@dataclass(frozen=True)
class FontSpec:
    size: int
    bold: bool = False


class Surface(ABC):
    """A 2D drawing surface with canvas-style primitives"""

    width: int
    height: int

    @abstractmethod
    def set_fill_style(self, color): ...

    @abstractmethod
    def set_stroke_style(self, color): ...

    @abstractmethod
    def fill_rect(self, x, y, width, height): ...

    @abstractmethod
    def line(self, x1, y1, x2, y2, line_width=1): ...

    @abstractmethod
    def set_font(self, font: FontSpec, align='left', baseline='top'): ...

    @abstractmethod
    def measure_text(self, text) -> float: ...

    @abstractmethod
    def fill_text(self, text, x, y): ...

    @abstractmethod
    def draw_image(self, image, x, y, width=None, height=None): ...

    @abstractmethod
    def as_image(self):
        """Return a drawable image handle of the current pixels"""

    @abstractmethod
    def to_png_bytes(self) -> bytes: ...

    @abstractmethod
    def to_data_url(self) -> str: ...


class CanvasBackend(ABC):
    """Creates surfaces and decodes images for them"""

    @abstractmethod
    def create_surface(self, width, height) -> Surface: ...

    @abstractmethod
    async def decode_image(self, source):
        """Decode a file path or data URL into a drawable image.

        Raises:
            DecodeError: if the resource is missing or not an image
        """


@lru_cache(maxsize=None)
def load_font(size, bold=False):
    """Load a TrueType font, falling back to Pillow's bundled font"""
    path = settings.BOLD_FONT_PATH if bold else settings.FONT_PATH
    try:
        return ImageFont.truetype(path, size)
    except OSError as e:
        logger.warning(f"Failed to load font {path}, using default: {e}")
        return ImageFont.load_default(size=size)


class PillowSurface(Surface):
    """Surface backed by a Pillow RGB image"""

    def __init__(self, width, height):
        self.width = int(width)
        self.height = int(height)
        self.image = Image.new('RGB', (self.width, self.height), 'white')
        self.draw = ImageDraw.Draw(self.image)
        self.fill_style = 'black'
        self.stroke_style = 'black'
        self.font = load_font(16)
        self.align = 'left'
        self.baseline = 'top'

    def set_fill_style(self, color):
        self.fill_style = color

    def set_stroke_style(self, color):
        self.stroke_style = color

    def fill_rect(self, x, y, width, height):
        self.draw.rectangle([x, y, x + width - 1, y + height - 1], fill=self.fill_style)

    def line(self, x1, y1, x2, y2, line_width=1):
        self.draw.line([(x1, y1), (x2, y2)], fill=self.stroke_style, width=line_width)

    def set_font(self, font, align='left', baseline='top'):
        if align not in ('left', 'center', 'right'):
            raise ValueError(f"Unsupported text alignment: {align}")
        if baseline != 'top':
            raise ValueError(f"Unsupported text baseline: {baseline}")
        self.font = load_font(font.size, font.bold)
        self.align = align
        self.baseline = baseline

    def measure_text(self, text):
        return self.draw.textlength(text, font=self.font)

    def fill_text(self, text, x, y):
        if self.align == 'center':
            x -= self.measure_text(text) / 2
        elif self.align == 'right':
            x -= self.measure_text(text)
        self.draw.text((x, y), text, font=self.font, fill=self.fill_style)

    def draw_image(self, image, x, y, width=None, height=None):
        if width is not None and height is not None and image.size != (int(width), int(height)):
            image = image.resize((int(width), int(height)))
        # Paste through the alpha channel so transparent logos stay white
        if image.mode != 'RGBA':
            image = image.convert('RGBA')
        self.image.paste(image, (int(x), int(y)), image)

    def as_image(self):
        return self.image

    def to_png_bytes(self):
        buffer = io.BytesIO()
        try:
            self.image.save(buffer, format='PNG')
        except (OSError, ValueError) as e:
            raise EncodeError(f"Failed to encode receipt as PNG: {e}") from e
        return buffer.getvalue()

    def to_data_url(self):
        return DATA_URL_PREFIX + base64.b64encode(self.to_png_bytes()).decode('ascii')


def decode_data_url(data_url):
    """Return the raw bytes of a base64 data URL"""
    header, _, payload = data_url.partition(',')
    if not header.startswith('data:') or ';base64' not in header:
        raise DecodeError("Not a base64 data URL")
    try:
        return base64.b64decode(payload, validate=True)
    except ValueError as e:
        raise DecodeError(f"Invalid base64 payload: {e}") from e


def _open_image(source):
    if source.startswith('data:'):
        stream = io.BytesIO(decode_data_url(source))
    elif os.path.exists(source):
        stream = source
    else:
        raise DecodeError(f"Image not found: {source}")
    try:
        image = Image.open(stream)
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise DecodeError(f"Could not decode image {source[:40]}: {e}") from e
    return image


class PillowBackend(CanvasBackend):
    def create_surface(self, width, height):
        return PillowSurface(width, height)

    async def decode_image(self, source):
        return await asyncio.to_thread(_open_image, source)
