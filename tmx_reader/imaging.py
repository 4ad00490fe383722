"""
Image helpers used while reading tilesets (uses PIL and numpy)

=============================================================================
WHAT LIVES HERE
=============================================================================

The reader itself does not decode PNG/GIF files. It relies on four small
services, all collected in this module:

1. PATH NORMALIZER  resolve_path() / open_resource()
   Turns "tiles/grass.png" + base directory into something that can be
   opened, and opens plain paths, file: URLs and other URLs alike.

2. IMAGE DECODER    load_image() / image_from_bytes()
   Bytes or file → PIL.Image in RGBA mode.

3. COLORKEY FILTER  apply_colorkey()
   Old tilesets often use a "magic" colour (classic magenta ff00ff) instead
   of an alpha channel. Every pixel of that colour becomes transparent.

4. TILE CUTTER      TileCutter
   Slices a tile sheet into equal tiles:

       margin
       ↓
       +--+===+--+===+--+===+
       |  | 0 |  | 1 |  | 2 |
       +--+===+--+===+--+===+
       |  | 3 |  | 4 |  | 5 |     ← tiles are numbered row by row
       +--+===+--+===+--+===+
              ↑
              spacing

=============================================================================
"""

import io
import os
from typing import BinaryIO, List, Optional, Tuple
from urllib.parse import unquote, urlparse
from urllib.request import urlopen

import numpy as np
from PIL import Image

from .logging_config import get_logger

logger = get_logger('imaging')

RGB = Tuple[int, int, int]


# =============================================================================
# PATHS AND RESOURCES
# =============================================================================

def is_url(path: str) -> bool:
    """True for 'scheme://...' and 'file:' locators."""
    return path.find('://') > 0 or path.startswith('file:')


def is_absolute(path: str) -> bool:
    return is_url(path) or os.path.isabs(path)


def resolve_path(base_dir: Optional[str], source: str) -> str:
    """
    Resolve a reference found in a document.

    Parameters:
    -----------
    base_dir : str or None
        Directory of the referencing document (or a basedir override).
        May itself be a URL ending in '/'.
    source : str
        Value of a source attribute

    Example:
        base_dir = "maps/"     source = "tiles/terrain.tsx"
        result   = "maps/tiles/terrain.tsx"

    Absolute paths and URLs are returned unchanged.
    """
    if is_absolute(source) or not base_dir:
        return source
    if is_url(base_dir):
        return base_dir.rstrip('/') + '/' + source
    return os.path.normpath(os.path.join(base_dir, source))


def directory_of(path: str) -> str:
    """The directory part of a path or URL, '' for a bare file name."""
    if is_url(path):
        return path[:path.rfind('/') + 1]
    return os.path.dirname(path)


def open_resource(locator: str) -> BinaryIO:
    """
    Open a file path or URL for binary reading.

    The caller must close the returned object (use it in a with-block).
    """
    if locator.startswith('file:'):
        return open(unquote(urlparse(locator).path), 'rb')
    if is_url(locator):
        return urlopen(locator)
    return open(locator, 'rb')


# =============================================================================
# IMAGE DECODING
# =============================================================================

def image_from_bytes(data: bytes) -> Image.Image:
    """
    Decode image file bytes (PNG, GIF, BMP...) into an RGBA image.

    Raises:
    -------
    PIL.UnidentifiedImageError : the bytes are not an image Pillow knows
    """
    with Image.open(io.BytesIO(data)) as img:
        return img.convert('RGBA')


def load_image(locator: str) -> Image.Image:
    """
    Load an image from a path or URL as RGBA.

    Raises:
    -------
    OSError : file missing or unreadable
    PIL.UnidentifiedImageError : not an image
    """
    logger.debug("Loading image %s", locator)
    with open_resource(locator) as stream:
        return image_from_bytes(stream.read())


# =============================================================================
# COLORKEY FILTER
# =============================================================================

def parse_color(text: str) -> RGB:
    """
    Parse a hex RGB colour as written in trans attributes.

    "ff00ff" → (255, 0, 255); a leading '#' is allowed.

    Raises:
    -------
    ValueError : not a 6 digit hex colour
    """
    value = text.strip().lstrip('#')
    if len(value) != 6:
        raise ValueError(f"invalid colour '{text}'")
    rgb = int(value, 16)
    return ((rgb >> 16) & 0xff, (rgb >> 8) & 0xff, rgb & 0xff)


def apply_colorkey(image: Image.Image, color: RGB) -> Image.Image:
    """
    Return a copy of image where every pixel matching color is transparent.

    Only RGB is compared; the alpha of matching pixels is set to 0, all
    other pixels are left untouched.
    """
    pixels = np.array(image.convert('RGBA'), dtype=np.uint8)

    # pixels has shape (height, width, 4): compare the RGB planes at once
    mask = np.all(pixels[:, :, :3] == np.array(color, dtype=np.uint8), axis=2)
    pixels[mask, 3] = 0

    # (h, w, 4) uint8 arrays come back as RGBA
    return Image.fromarray(pixels)


# =============================================================================
# TILE CUTTER
# =============================================================================

class TileCutter:
    """
    Cuts a tile sheet into a row-major list of tile images.

    Parameters:
    -----------
    tile_width, tile_height : int
        Size of one tile in pixels
    spacing : int
        Pixels between neighbouring tiles
    margin : int
        Pixels around the edge of the whole sheet

    Only whole tiles are produced: a partial column at the right edge or a
    partial row at the bottom is dropped.
    """

    def __init__(self, tile_width: int, tile_height: int,
                 spacing: int = 0, margin: int = 0):
        self.tile_width = tile_width
        self.tile_height = tile_height
        self.spacing = spacing
        self.margin = margin

    @property
    def is_valid(self) -> bool:
        return self.tile_width > 0 and self.tile_height > 0

    def grid_size(self, image: Image.Image) -> Tuple[int, int]:
        """(columns, rows) of whole tiles that fit in the image."""
        if not self.is_valid:
            return 0, 0

        step_x = self.tile_width + self.spacing
        step_y = self.tile_height + self.spacing
        usable_w = image.width - 2 * self.margin + self.spacing
        usable_h = image.height - 2 * self.margin + self.spacing

        columns = max(usable_w // step_x, 0) if step_x > 0 else 0
        rows = max(usable_h // step_y, 0) if step_y > 0 else 0
        return columns, rows

    def cut(self, image: Image.Image) -> List[Image.Image]:
        columns, rows = self.grid_size(image)
        tw, th = self.tile_width, self.tile_height

        tiles = []
        for row in range(rows):
            for col in range(columns):
                # Top-left corner of the cell:
                # x = col * tw + margin + col * spacing
                x = col * tw + self.margin + col * self.spacing
                y = row * th + self.margin + row * self.spacing
                tiles.append(image.crop((x, y, x + tw, y + th)))
        return tiles

    def __repr__(self) -> str:
        return (f"TileCutter({self.tile_width}x{self.tile_height}, "
                f"spacing={self.spacing}, margin={self.margin})")
