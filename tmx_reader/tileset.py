"""
Tileset resolution - embedded tilesets and external .tsx files

=============================================================================
EMBEDDED vs EXTERNAL TILESETS
=============================================================================

EMBEDDED: the tileset is defined inside the map:

    <tileset firstgid="1" name="terrain" tilewidth="32" tileheight="32">
        <image source="terrain.png" trans="ff00ff"/>
    </tileset>

EXTERNAL: the map only references a .tsx file:

    <tileset firstgid="101" source="tiles/objects.tsx"/>

    The .tsx file holds the full definition. firstgid always comes from the
    REFERENCING map, never from the .tsx file, because the same .tsx can be
    used by many maps at different offsets.

=============================================================================
WHERE TILES COME FROM
=============================================================================

An embedded tileset can get its tiles in three ways (freely mixed, handled
in document order):

1. A tile sheet: one <image source=".."> WITHOUT id. The sheet is cut into
   tiles of tilewidth × tileheight (see imaging.TileCutter) and every piece
   becomes a tile, numbered 0, 1, 2...

2. Explicit tiles: <tile id=".."> elements, each with its own <image> and
   properties.

3. Shared images: <image id="3" source=".."/> registered under an id, and
   referenced from tiles with <tile><image id="3"/></tile>.

When both a sheet and explicit <tile> elements are present, the sheet only
contributes images; the explicit tiles decide numbering.

=============================================================================
FAILURE HANDLING
=============================================================================

A missing or broken .tsx never stops the map from loading. An ERROR is
recorded and an empty placeholder tileset is used, with the referencing
firstgid, so GIDs pointing into it simply resolve to "no tile".

=============================================================================
"""

import xml.etree.ElementTree as ET
from typing import Callable, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from .binding import BindingTable, bind_attributes, make_table, to_int
from .diagnostics import Diagnostics
from .errors import AttributeParseError
from .imaging import (
    TileCutter,
    apply_colorkey,
    directory_of,
    image_from_bytes,
    load_image,
    open_resource,
    parse_color,
    resolve_path,
)
from .logging_config import get_logger
from .model import AnimatedTile, Tile, Tileset
from .nodes import (
    TreeNode,
    children,
    get_attribute,
    get_int_attribute,
    has_child,
    read_properties,
    tag_is,
)
from .payload import decode_image_data

logger = get_logger('tileset')

ImageLoader = Callable[[str], Image.Image]

TILESET_FILE_EXTENSION = 'tsx'

TILE_ATTRIBUTES: BindingTable = make_table(id=to_int, type=str)

# Errors that turn an image into "no image" instead of aborting
_IMAGE_ERRORS = (OSError, UnidentifiedImageError, ValueError)


class TilesetResolver:
    """
    Builds Tileset objects from <tileset> elements.

    Parameters:
    -----------
    diagnostics : Diagnostics
        Sink shared with the rest of the read
    image_loader : callable, optional
        path → PIL.Image; defaults to imaging.load_image
    """

    def __init__(self, diagnostics: Diagnostics,
                 image_loader: Optional[ImageLoader] = None):
        self.diagnostics = diagnostics
        self.image_loader = image_loader or load_image

    # =========================================================================
    # ENTRY POINT
    # =========================================================================

    def resolve(self, node: TreeNode, base_dir: Optional[str],
                tile_size: Tuple[int, int] = (0, 0)) -> Tileset:
        """
        Build the tileset described by a <tileset> element.

        Parameters:
        -----------
        node : TreeNode
            The <tileset> element of the map
        base_dir : str or None
            Directory of the document containing node
        tile_size : (int, int)
            Cell size of the map, used when the tileset gives none

        Raises:
        -------
        AttributeParseError : a numeric attribute of an EMBEDDED tileset is
        not a number (external files report this as a diagnostic instead)
        """
        source = get_attribute(node, 'source')
        basedir = get_attribute(node, 'basedir')
        firstgid = get_int_attribute(node, 'firstgid', 1)

        tileset_base = basedir if basedir is not None else base_dir

        if source is not None:
            tileset = self._resolve_external(source, tileset_base, tile_size)
        else:
            tileset = self.build_inline(node, base_dir, tile_size)

        tileset.firstgid = firstgid
        return tileset

    # =========================================================================
    # EXTERNAL (.tsx) TILESETS
    # =========================================================================

    def _resolve_external(self, source: str, base_dir: Optional[str],
                          tile_size: Tuple[int, int] = (0, 0)) -> Tileset:
        filename = resolve_path(base_dir, source)

        extension = source[source.rfind('.') + 1:] if '.' in source else ''
        if extension.lower() != TILESET_FILE_EXTENSION:
            self.diagnostics.warn(f"tileset files should end in .tsx! ({source})")

        tileset = None
        try:
            tileset = self.load_file(filename, tile_size)
        except FileNotFoundError:
            self.diagnostics.error(f"Could not find external tileset file {filename}")
        except (OSError, ET.ParseError, AttributeParseError) as e:
            self.diagnostics.error(f"Failed while loading {filename}: {e}")

        if tileset is None:
            self.diagnostics.error(f"tileset {source} was not loaded correctly!")
            tileset = Tileset(source=filename)

        return tileset

    def load_file(self, filename: str,
                  tile_size: Tuple[int, int] = (0, 0)) -> Optional[Tileset]:
        """
        Read a standalone tileset document.

        tile_size is the cell size of the referencing map, used when the
        file gives no tilewidth/tileheight. Returns None when the document
        contains no <tileset> element.

        Raises:
        -------
        OSError : file cannot be opened
        xml.etree.ElementTree.ParseError : not well-formed XML
        AttributeParseError : non-numeric numeric attribute
        """
        logger.debug("Loading tileset file %s", filename)
        with open_resource(filename) as stream:
            root = ET.parse(stream).getroot()
        return self.build_from_document(root, filename, tile_size=tile_size)

    def build_from_document(self, root: TreeNode, filename: Optional[str],
                            base_dir: Optional[str] = None,
                            tile_size: Tuple[int, int] = (0, 0)) -> Optional[Tileset]:
        """
        Build the tileset of a parsed tileset document.

        Only the first <tileset> element is used; a file holding several
        tilesets is read as if it held just the first one. Relative image
        paths resolve against base_dir, or the directory of filename.
        """
        node = root if tag_is(root, 'tileset') else _find_descendant(root, 'tileset')
        if node is None:
            return None

        if get_attribute(node, 'source') is not None:
            self.diagnostics.warn("Recursive external tilesets are not supported.")

        if base_dir is None and filename is not None:
            base_dir = directory_of(filename)

        tileset = self.build_inline(node, base_dir, tile_size)
        tileset.source = filename
        return tileset

    # =========================================================================
    # EMBEDDED TILESETS
    # =========================================================================

    def build_inline(self, node: TreeNode, base_dir: Optional[str],
                     tile_size: Tuple[int, int] = (0, 0)) -> Tileset:
        """Build a tileset from the children of a <tileset> element."""
        basedir = get_attribute(node, 'basedir')
        if basedir is not None:
            base_dir = basedir

        tileset = Tileset(
            name=get_attribute(node, 'name'),
            firstgid=get_int_attribute(node, 'firstgid', 1),
            tilewidth=get_int_attribute(node, 'tilewidth', tile_size[0]),
            tileheight=get_int_attribute(node, 'tileheight', tile_size[1]),
            spacing=get_int_attribute(node, 'spacing', 0),
            basedir=basedir,
        )

        # First pass: explicit <tile> elements switch off sheet numbering
        has_tile_elements = has_child(node, 'tile')

        for child in children(node):
            if tag_is(child, 'tile'):
                self.read_tile(tileset, child, base_dir)
            elif tag_is(child, 'image'):
                image_source = get_attribute(child, 'source')
                if image_source is not None and get_attribute(child, 'id') is None:
                    # Not a shared image, but an entire set in one image file
                    self._import_sheet(tileset, child, image_source, base_dir,
                                       create_tiles=not has_tile_elements)
                else:
                    image_id = get_int_attribute(child, 'id', -1)
                    tileset.add_image(self.read_image(child, base_dir), image_id)

        read_properties(node, tileset.properties)

        logger.debug("Built tileset %r (%d tiles, %d images)",
                     tileset.name, tileset.tile_count, len(tileset.images))
        return tileset

    def _import_sheet(self, tileset: Tileset, image_elem: TreeNode, image_source: str,
                      base_dir: Optional[str], create_tiles: bool):
        source_path = resolve_path(base_dir, image_source)
        trans = get_attribute(image_elem, 'trans')

        color = None
        if trans is not None:
            try:
                color = parse_color(trans)
            except ValueError:
                self.diagnostics.warn(f"Invalid transparent color '{trans}' "
                                      f"on tileset image {image_source}")

        try:
            sheet = self.image_loader(source_path)
        except _IMAGE_ERRORS as e:
            self.diagnostics.error(f"{e} ({source_path})")
            return

        if color is not None:
            sheet = apply_colorkey(sheet, color)
            tileset.transparent_color = color

        cutter = TileCutter(tileset.tilewidth, tileset.tileheight, tileset.spacing, 0)
        if not cutter.is_valid:
            self.diagnostics.warn(f"Cannot cut {image_source} into tiles of "
                                  f"{tileset.tilewidth}x{tileset.tileheight}")
            return

        tileset.import_tile_bitmap(sheet, cutter, create_tiles)
        tileset.image_filename = source_path

    # =========================================================================
    # TILES AND IMAGES
    # =========================================================================

    def read_tile(self, tileset: Tileset, node: TreeNode, base_dir: Optional[str]) -> Tile:
        """
        Build a tile from a <tile> element and add it to tileset.

        A tile with an <animation> child is built as an AnimatedTile.
        """
        animated = has_child(node, 'animation')
        tile = AnimatedTile() if animated else Tile()
        bind_attributes(node, tile, TILE_ATTRIBUTES, self.diagnostics)

        for child in children(node):
            if tag_is(child, 'image'):
                image_id = get_int_attribute(child, 'id', -1)
                if image_id < 0:
                    image_id = tileset.add_image(self.read_image(child, base_dir))
                tile.image_id = image_id
            elif tag_is(child, 'animation'):
                # TODO: decode <frame tileid=".." duration=".."/> children into tile.frames
                self.diagnostics.info(f"Animation frames of tile {tile.id} "
                                      "are not decoded")

        read_properties(node, tile.properties)
        return tileset.add_tile(tile)

    def read_image(self, node: TreeNode, base_dir: Optional[str]) -> Optional[Image.Image]:
        """
        Load the image an <image> element describes.

        <image source="grass.png"/> is loaded from disk relative to
        base_dir; <image><data>...</data></image> is decoded from the
        embedded base64 payload. Returns None (with a diagnostic) on failure.
        """
        source = get_attribute(node, 'source')

        if source is not None:
            path = resolve_path(base_dir, source)
            try:
                return self.image_loader(path)
            except _IMAGE_ERRORS as e:
                self.diagnostics.error(f"{e} ({path})")
                return None

        data = decode_image_data(node, self.diagnostics)
        if data is None:
            return None
        try:
            return image_from_bytes(data)
        except _IMAGE_ERRORS as e:
            self.diagnostics.error(f"Could not decode embedded image: {e}")
            return None


def _find_descendant(root: TreeNode, tag: str) -> Optional[TreeNode]:
    for child in children(root):
        if tag_is(child, tag):
            return child
        found = _find_descendant(child, tag)
        if found is not None:
            return found
    return None
