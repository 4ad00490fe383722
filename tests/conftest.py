"""Shared fixtures: diagnostics sinks, small tile sheets and an image loader stub."""

import io

import pytest
from PIL import Image

from tmx_reader import Diagnostics

TILE = 4


def sheet_image(columns=2, rows=2, tile=TILE, spacing=0):
    """RGBA sheet whose tile i is filled with colour (10*(i+1), 0, 0)."""
    width = columns * tile + (columns - 1) * spacing
    height = rows * tile + (rows - 1) * spacing
    image = Image.new('RGBA', (width, height), (0, 0, 0, 0))
    for row in range(rows):
        for col in range(columns):
            index = row * columns + col
            x = col * (tile + spacing)
            y = row * (tile + spacing)
            image.paste((10 * (index + 1), 0, 0, 255), (x, y, x + tile, y + tile))
    return image


def png_bytes(image):
    buffer = io.BytesIO()
    image.save(buffer, format='PNG')
    return buffer.getvalue()


@pytest.fixture
def diagnostics():
    return Diagnostics()


@pytest.fixture
def sheet():
    return sheet_image()


@pytest.fixture
def make_sheet():
    return sheet_image


@pytest.fixture
def encode_png():
    return png_bytes


class RecordingLoader:
    """Image loader stand-in: returns a fixed image and remembers the paths."""

    def __init__(self, image):
        self.image = image
        self.paths = []

    def __call__(self, path):
        self.paths.append(path)
        return self.image.copy()


@pytest.fixture
def loader(sheet):
    return RecordingLoader(sheet)


@pytest.fixture
def make_loader():
    return RecordingLoader
