"""
In-memory map model produced by the TMX reader

=============================================================================
OWNERSHIP
=============================================================================

    TiledMap
    ├── properties            {name: value}
    ├── tilesets [ ... ]      parse order
    │   └── Tileset
    │       ├── images [ ... ]      shared source images (by image id)
    │       └── tiles  [ ... ]      by local id, may contain None
    └── layers [ ... ]        document order = paint order (bottom → top)
        ├── TileLayer         width × height grid of Tile references
        └── ObjectGroup       list of MapObject

Tiles are owned by their tileset. A TileLayer cell only *references* a tile;
many cells can point at the same Tile object.

=============================================================================
GLOBAL TILE IDs (GIDs)
=============================================================================

Tiles are referenced in layer data by Global IDs spanning all tilesets:

    Tileset A (firstgid=1):   local ids 0-99   → GIDs 1-100
    Tileset B (firstgid=101): local ids 0-49   → GIDs 101-150

    GID 0   = empty cell
    GID 150 = tileset B, local id 150 - 101 = 49

A tileset's range is [firstgid, firstgid + max_tile_id]. Lookup scans the
tilesets in the order they were added and takes the FIRST whose range
contains the GID, so overlapping ranges (e.g. two tilesets that both
defaulted to firstgid=1) resolve to the earliest one.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple, Union

from PIL import Image


# =============================================================================
# ORIENTATION
# =============================================================================

class Orientation(Enum):
    """Map projection. Parsed case-insensitively from the orientation attribute."""
    ORTHOGONAL = 'orthogonal'
    ISOMETRIC = 'isometric'
    HEXAGONAL = 'hexagonal'
    OBLIQUE = 'oblique'
    SHIFTED = 'shifted'

    @classmethod
    def from_name(cls, text: str) -> Optional['Orientation']:
        """'Isometric' → ISOMETRIC; None for unknown names."""
        key = text.strip().lower()
        for orientation in cls:
            if orientation.value == key:
                return orientation
        return None


# =============================================================================
# TILES
# =============================================================================

@dataclass
class Tile:
    """
    A tile definition within a tileset.

    'id' is LOCAL to the owning tileset (0-based). The GID of a tile is
    tileset.firstgid + tile.id.

    The graphic is not stored on the tile itself but referenced by
    image_id into tileset.images, so several tiles may share one image.
    """
    id: int = -1                                     # -1 = not yet numbered
    image_id: int = -1                               # -1 = no image
    type: str = ""
    properties: Dict[str, str] = field(default_factory=dict)
    tileset: Optional['Tileset'] = field(default=None, repr=False, compare=False)

    @property
    def gid(self) -> Optional[int]:
        if self.tileset is None or self.id < 0:
            return None
        return self.tileset.firstgid + self.id

    def get_image(self) -> Optional[Image.Image]:
        if self.tileset is None:
            return None
        return self.tileset.get_image(self.image_id)


@dataclass
class Frame:
    """One step of a tile animation: which tile to show and for how long (ms)."""
    tile_id: int
    duration: int


@dataclass
class AnimatedTile(Tile):
    """
    A tile with an animation.

    Frames are kept in order. The reader creates this variant whenever a
    <tile> has an <animation> child, but does not decode frames yet.
    """
    frames: List[Frame] = field(default_factory=list)


# =============================================================================
# TILESET
# =============================================================================

@dataclass
class Tileset:
    """
    A named collection of tiles sharing one geometry.

    ==========================================================================
    SPARSE TILES
    ==========================================================================

    tiles is indexed by local id. Ids can have gaps:

        tiles = [Tile(0), None, None, Tile(3)]

    max_tile_id is 3 here, tile_count is 2.

    ==========================================================================
    EMBEDDED vs EXTERNAL
    ==========================================================================

    source is None for a tileset defined inside the map, and the path of the
    .tsx file for one loaded from disk. A tileset whose file could not be
    loaded is an empty placeholder (no tiles) that keeps its firstgid.

    ==========================================================================
    """
    name: Optional[str] = None
    firstgid: int = 1
    tilewidth: int = 0
    tileheight: int = 0
    spacing: int = 0
    source: Optional[str] = None                     # .tsx path (if external)
    basedir: Optional[str] = None                    # basedir override
    image_filename: Optional[str] = None             # tile sheet path
    transparent_color: Optional[Tuple[int, int, int]] = None
    tiles: List[Optional[Tile]] = field(default_factory=list)
    images: List[Optional[Image.Image]] = field(default_factory=list, repr=False)
    properties: Dict[str, str] = field(default_factory=dict)

    # -----------------------------------------------------------------
    # TILES
    # -----------------------------------------------------------------

    def add_tile(self, tile: Tile) -> Tile:
        """
        Add a tile at tile.id, or at the next free id when tile.id < 0.

        A tile already stored under the same id is replaced.
        """
        if tile.id < 0:
            tile.id = len(self.tiles)
        while len(self.tiles) <= tile.id:
            self.tiles.append(None)
        self.tiles[tile.id] = tile
        tile.tileset = self
        return tile

    def get_tile(self, local_id: int) -> Optional[Tile]:
        if 0 <= local_id < len(self.tiles):
            return self.tiles[local_id]
        return None

    @property
    def max_tile_id(self) -> int:
        """Highest local id in use, -1 for an empty tileset."""
        return len(self.tiles) - 1

    @property
    def tile_count(self) -> int:
        return sum(1 for tile in self.tiles if tile is not None)

    def __len__(self) -> int:
        return self.tile_count

    def __iter__(self) -> Iterator[Tile]:
        return (tile for tile in self.tiles if tile is not None)

    def contains_gid(self, gid: int) -> bool:
        return self.firstgid <= gid <= self.firstgid + self.max_tile_id

    # -----------------------------------------------------------------
    # IMAGES
    # -----------------------------------------------------------------

    def add_image(self, image: Optional[Image.Image],
                  image_id: Optional[int] = None) -> int:
        """
        Register a source image and return its id.

        Without image_id the image is appended. With an explicit id it is
        stored there (replacing what was there), growing the list as needed.
        """
        if image_id is None or image_id < 0:
            self.images.append(image)
            return len(self.images) - 1
        while len(self.images) <= image_id:
            self.images.append(None)
        self.images[image_id] = image
        return image_id

    def get_image(self, image_id: int) -> Optional[Image.Image]:
        if 0 <= image_id < len(self.images):
            return self.images[image_id]
        return None

    def import_tile_bitmap(self, sheet: Image.Image, cutter, create_tiles: bool = True) -> int:
        """
        Cut a tile sheet and register every piece as an image.

        Parameters:
        -----------
        sheet : PIL.Image
            The whole tile sheet
        cutter : TileCutter
            Geometry used to slice the sheet
        create_tiles : bool
            When True, a new tile is numbered for every piece. When False
            (the tileset already has explicit <tile> elements) only the
            images are registered and existing tiles are left alone.

        Returns:
        --------
        int : number of pieces cut from the sheet
        """
        pieces = cutter.cut(sheet)
        for piece in pieces:
            image_id = self.add_image(piece)
            if create_tiles:
                self.add_tile(Tile(image_id=image_id))
        return len(pieces)

    def __repr__(self) -> str:
        return (f"Tileset(name={self.name!r}, firstgid={self.firstgid}, "
                f"tiles={self.tile_count}, source={self.source!r})")


# =============================================================================
# LAYERS
# =============================================================================

@dataclass
class Layer:
    """Attributes shared by every layer kind."""
    name: Optional[str] = None
    width: int = 0                                   # Width in tiles
    height: int = 0                                  # Height in tiles
    x: int = 0                                       # Offset
    y: int = 0
    visible: bool = True
    opacity: float = 1.0                             # 0.0 = invisible, 1.0 = opaque
    properties: Dict[str, str] = field(default_factory=dict)

    @property
    def bounds(self) -> Tuple[int, int, int, int]:
        """(x, y, width, height)"""
        return (self.x, self.y, self.width, self.height)


@dataclass
class TileLayer(Layer):
    """
    A grid of tile references.

    cells is row-major: cells[y * width + x]. None = empty cell.
    """
    cells: List[Optional[Tile]] = field(default_factory=list, repr=False)

    def __post_init__(self):
        if not self.cells:
            self.cells = [None] * (self.width * self.height)

    def _index(self, x: int, y: int) -> Optional[int]:
        if 0 <= x < self.width and 0 <= y < self.height:
            return y * self.width + x
        return None

    def get_tile_at(self, x: int, y: int) -> Optional[Tile]:
        """Tile at column x, row y; None for empty or out of bounds."""
        index = self._index(x, y)
        if index is None:
            return None
        return self.cells[index]

    def set_tile_at(self, x: int, y: int, tile: Optional[Tile]):
        index = self._index(x, y)
        if index is not None:
            self.cells[index] = tile

    def rows(self) -> Iterator[List[Optional[Tile]]]:
        for y in range(self.height):
            yield self.cells[y * self.width:(y + 1) * self.width]


@dataclass
class MapObject:
    """
    A free-form object placed on an object layer.

    Fields are filled from the attributes of the <object> element; anything
    the element does not specify keeps its default here.
    """
    id: int = 0
    name: str = ""
    type: str = ""
    x: float = 0
    y: float = 0
    width: float = 0                                 # 0 for points
    height: float = 0
    rotation: float = 0                              # degrees
    gid: Optional[int] = None                        # tile objects only
    visible: bool = True
    source: Optional[str] = None                     # image reference
    properties: Dict[str, str] = field(default_factory=dict)


@dataclass
class ObjectGroup(Layer):
    """A layer of free-form objects, kept in document order."""
    color: Optional[str] = None
    objects: List[MapObject] = field(default_factory=list)

    def bind_object(self, obj: MapObject) -> MapObject:
        self.objects.append(obj)
        return obj

    def __iter__(self) -> Iterator[MapObject]:
        return iter(self.objects)

    def __len__(self) -> int:
        return len(self.objects)


AnyLayer = Union[TileLayer, ObjectGroup]


# =============================================================================
# MAP
# =============================================================================

@dataclass
class TiledMap:
    """
    The root of a read map.

    Usage:
        tmx_map = read_map("level1.tmx")
        ground = tmx_map.get_layer_by_name("Ground")
        tile = ground.get_tile_at(5, 10)
        image = tile.get_image() if tile else None
    """
    width: int                                       # Map width in tiles
    height: int                                      # Map height in tiles
    tilewidth: int = 0                               # Cell width in pixels
    tileheight: int = 0                              # Cell height in pixels
    orientation: Orientation = Orientation.ORTHOGONAL
    filename: Optional[str] = None
    properties: Dict[str, str] = field(default_factory=dict)
    tilesets: List[Tileset] = field(default_factory=list)
    layers: List[AnyLayer] = field(default_factory=list)

    def add_tileset(self, tileset: Tileset) -> Tileset:
        self.tilesets.append(tileset)
        return tileset

    def add_layer(self, layer: AnyLayer) -> AnyLayer:
        self.layers.append(layer)
        return layer

    def find_tileset_for_gid(self, gid: int) -> Optional[Tileset]:
        """
        Find the tileset whose GID range contains gid.

        Linear scan in registration order, first match wins. GID 0 and
        negative values never match.
        """
        if gid <= 0:
            return None
        for tileset in self.tilesets:
            if tileset.contains_gid(gid):
                return tileset
        return None

    def get_tile(self, gid: int) -> Optional[Tile]:
        """Resolve a GID to its tile; None for empty or unknown GIDs."""
        tileset = self.find_tileset_for_gid(gid)
        if tileset is None:
            return None
        return tileset.get_tile(gid - tileset.firstgid)

    def get_layer_by_name(self, name: str) -> Optional[AnyLayer]:
        for layer in self.layers:
            if layer.name == name:
                return layer
        return None

    def tile_layers(self) -> List[TileLayer]:
        return [layer for layer in self.layers if isinstance(layer, TileLayer)]

    def object_groups(self) -> List[ObjectGroup]:
        return [layer for layer in self.layers if isinstance(layer, ObjectGroup)]
