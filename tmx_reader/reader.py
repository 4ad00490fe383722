"""
TMX map reader - the entry point that turns a .tmx document into a TiledMap

=============================================================================
READING A MAP
=============================================================================

    reader = MapReader()
    tmx_map = reader.read_map("maps/level1.tmx")

    for entry in reader.diagnostics:
        print(entry)            # "WARN: Unknown orientation 'hexa'"

Files ending in .gz (level1.tmx.gz) are gunzipped as a whole before the XML
is parsed; this is independent of the per-layer compression attribute.

=============================================================================
HOW THE DOCUMENT IS WALKED
=============================================================================

    EXPECT ROOT      root element must be exactly <map>
         ↓
    HAVE DIMENSIONS  width/height attributes of <map>, or a legacy
         ↓           <dimensions width=".." height=".."/> child
    POPULATING       tile size and orientation, then every child of
         ↓           <map> once, in document order:
         ↓               <tileset>      → tileset list (usable by later layers)
         ↓               <property>     → map property
         ↓               <layer>        → tile layer
         ↓               <objectgroup>  → object group
         ↓           anything else is skipped
    DONE             the map is returned

Only two things are fatal (MapFormatError): a wrong root element and map
dimensions that cannot be found. Plus XML that does not parse at all.
Everything else is written to the Diagnostics sink and reading continues.

=============================================================================
THREADING
=============================================================================

A reader keeps its diagnostics sink between calls and is meant for one
thread. Read maps in parallel with one reader (and one sink) per thread.

=============================================================================
"""

import gzip
import os
import xml.etree.ElementTree as ET
import zlib
from typing import BinaryIO, Optional, Union

from .diagnostics import Diagnostics
from .errors import MapFormatError
from .imaging import directory_of, open_resource
from .layers import build_object_group, build_tile_layer
from .logging_config import get_logger
from .model import Orientation, TiledMap, Tileset
from .nodes import TreeNode, children, get_attribute, get_int_attribute, read_properties, tag_is
from .tileset import ImageLoader, TilesetResolver

logger = get_logger('reader')

PathLike = Union[str, os.PathLike]


class MapReader:
    """
    Reader for Tiled TMX maps and TSX tilesets.

    Parameters:
    -----------
    diagnostics : Diagnostics, optional
        Sink for recoverable problems. A fresh one is created when omitted.
        The caller owns it; the reader only appends.
    image_loader : callable, optional
        path → PIL.Image used for tile sheets and tile images
        (default: imaging.load_image)
    """

    FILTER = "*.tmx,*.tmx.gz,*.tsx"
    NAME = "Default Tiled XML (TMX) map reader"
    DESCRIPTION = ("Core Tiled TMX format reader: maps, embedded and "
                   "external tilesets, tile layers and object groups")

    ACCEPTED_SUFFIXES = ('.tmx', '.tsx', '.tmx.gz')

    def __init__(self, diagnostics: Optional[Diagnostics] = None,
                 image_loader: Optional[ImageLoader] = None):
        self.diagnostics = diagnostics if diagnostics is not None else Diagnostics()
        self.image_loader = image_loader

    def set_diagnostics(self, diagnostics: Diagnostics):
        """Direct all following diagnostics to another sink."""
        self.diagnostics = diagnostics

    @classmethod
    def accept(cls, path: PathLike) -> bool:
        """True when path looks like something this reader can open."""
        return str(path).lower().endswith(cls.ACCEPTED_SUFFIXES)

    def _tilesets(self) -> TilesetResolver:
        return TilesetResolver(self.diagnostics, self.image_loader)

    # =========================================================================
    # MAPS
    # =========================================================================

    def read_map(self, filename: PathLike) -> TiledMap:
        """
        Read a map file (.tmx or .tmx.gz).

        Relative references (tilesets, images) are resolved against the
        directory of filename.

        Raises:
        -------
        MapFormatError : not a map, no dimensions, or malformed XML
        OSError : the file cannot be opened
        """
        filename = os.fspath(filename)
        logger.debug("Reading map %s", filename)

        with open_resource(filename) as raw:
            if filename.endswith('.gz'):
                with gzip.GzipFile(fileobj=raw) as stream:
                    root = _parse_xml(stream, filename)
            else:
                root = _parse_xml(raw, filename)

        tmx_map = self.build_map(root, directory_of(filename))
        tmx_map.filename = filename
        return tmx_map

    def read_map_stream(self, stream: BinaryIO, base_dir: str = '') -> TiledMap:
        """
        Read a map from an open binary stream.

        base_dir is used for relative references ('' = current directory).
        The stream is not closed.
        """
        return self.build_map(_parse_xml(stream, '<stream>'), base_dir)

    def build_map(self, root: TreeNode, base_dir: Optional[str]) -> TiledMap:
        """Build a TiledMap from a parsed document root."""
        # -----------------------------------------------------------------
        # EXPECT ROOT
        # -----------------------------------------------------------------
        if root.tag != 'map':
            raise MapFormatError(f"Not a valid tmx map file (root element is <{root.tag}>)")

        # -----------------------------------------------------------------
        # HAVE DIMENSIONS
        # -----------------------------------------------------------------
        width, height = _map_dimensions(root)
        tmx_map = TiledMap(width=width, height=height)

        # -----------------------------------------------------------------
        # POPULATING
        # -----------------------------------------------------------------
        tilewidth = get_int_attribute(root, 'tilewidth', 0)
        tileheight = get_int_attribute(root, 'tileheight', 0)
        if tilewidth > 0:
            tmx_map.tilewidth = tilewidth
        if tileheight > 0:
            tmx_map.tileheight = tileheight

        orientation = get_attribute(root, 'orientation')
        if orientation is not None:
            self._set_orientation(tmx_map, orientation)

        tilesets = self._tilesets()
        tile_size = (tmx_map.tilewidth, tmx_map.tileheight)

        for child in children(root):
            if tag_is(child, 'tileset'):
                tmx_map.add_tileset(tilesets.resolve(child, base_dir, tile_size))
            elif tag_is(child, 'layer'):
                tmx_map.add_layer(build_tile_layer(child, tmx_map, self.diagnostics))
            elif tag_is(child, 'objectgroup'):
                tmx_map.add_layer(build_object_group(child, tmx_map, self.diagnostics))

        # Map properties: <property> children or a <properties> wrapper
        read_properties(root, tmx_map.properties)

        # -----------------------------------------------------------------
        # DONE
        # -----------------------------------------------------------------
        logger.debug("Read %dx%d map with %d tilesets and %d layers",
                     tmx_map.width, tmx_map.height,
                     len(tmx_map.tilesets), len(tmx_map.layers))
        return tmx_map

    def _set_orientation(self, tmx_map: TiledMap, text: str):
        orientation = Orientation.from_name(text)
        if orientation is None:
            self.diagnostics.warn(f"Unknown orientation '{text}'")
        else:
            tmx_map.orientation = orientation

    # =========================================================================
    # TILESETS
    # =========================================================================

    def read_tileset(self, filename: PathLike) -> Tileset:
        """
        Read a standalone tileset file (.tsx).

        Raises:
        -------
        MapFormatError : malformed XML or no <tileset> element
        OSError : the file cannot be opened
        """
        filename = os.fspath(filename)
        with open_resource(filename) as stream:
            root = _parse_xml(stream, filename)
        return self._tileset_from_root(root, filename, directory_of(filename))

    def read_tileset_stream(self, stream: BinaryIO, base_dir: str = '') -> Tileset:
        root = _parse_xml(stream, '<stream>')
        return self._tileset_from_root(root, None, base_dir)

    def _tileset_from_root(self, root: TreeNode, filename: Optional[str],
                           base_dir: Optional[str]) -> Tileset:
        tileset = self._tilesets().build_from_document(root, filename, base_dir)
        if tileset is None:
            raise MapFormatError(f"No <tileset> element found in {filename or 'stream'}")
        return tileset


# =============================================================================
# HELPERS
# =============================================================================

def _parse_xml(stream: BinaryIO, name: str) -> TreeNode:
    # zlib.error: a .gz map whose header is fine but whose body is corrupt
    try:
        return ET.parse(stream).getroot()
    except (ET.ParseError, EOFError, zlib.error) as e:
        raise MapFormatError(f"Error while parsing {name}: {e}") from e


def _map_dimensions(root: TreeNode):
    width = get_int_attribute(root, 'width', 0)
    height = get_int_attribute(root, 'height', 0)
    if width > 0 and height > 0:
        return width, height

    # Maybe this map is still using the dimensions element
    for dimensions in children(root, 'dimensions'):
        width = get_int_attribute(dimensions, 'width', 0)
        height = get_int_attribute(dimensions, 'height', 0)
        if width > 0 and height > 0:
            return width, height

    raise MapFormatError("Could not determine map size")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def read_map(filename: PathLike, diagnostics: Optional[Diagnostics] = None,
             image_loader: Optional[ImageLoader] = None) -> TiledMap:
    """Read a map with a one-off MapReader."""
    return MapReader(diagnostics, image_loader).read_map(filename)


def read_tileset(filename: PathLike, diagnostics: Optional[Diagnostics] = None,
                 image_loader: Optional[ImageLoader] = None) -> Tileset:
    """Read a .tsx file with a one-off MapReader."""
    return MapReader(diagnostics, image_loader).read_tileset(filename)
