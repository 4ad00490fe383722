"""
TMX Reader - reads Tiled maps (.tmx, .tmx.gz) and tilesets (.tsx)

Requisitos:
    pip install pillow numpy
"""

from .diagnostics import Diagnostic, Diagnostics, Severity
from .errors import AttributeParseError, MapFormatError
from .model import (
    AnimatedTile, Frame, MapObject, ObjectGroup, Orientation,
    Tile, TiledMap, TileLayer, Tileset,
)
from .reader import MapReader, read_map, read_tileset

__version__ = "1.0.0"
__all__ = [
    "MapReader",
    "read_map",
    "read_tileset",
    "TiledMap",
    "Tileset",
    "Tile",
    "AnimatedTile",
    "Frame",
    "TileLayer",
    "ObjectGroup",
    "MapObject",
    "Orientation",
    "Diagnostics",
    "Diagnostic",
    "Severity",
    "MapFormatError",
    "AttributeParseError",
]
