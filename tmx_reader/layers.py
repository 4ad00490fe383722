"""
Layer building - tile layers and object groups

=============================================================================
TILE LAYERS
=============================================================================

    <layer name="Ground" width="20" height="15" opacity="0.5">
        <property name="z" value="0"/>
        <data encoding="base64" compression="gzip">...</data>
    </layer>

width/height default to the map size. The <data> payload is decoded to a
GID list (payload.py) and every non-zero GID is resolved against the
tilesets read SO FAR: a layer can only use tilesets that appear before it
in the document.

GID resolution (see TiledMap.find_tileset_for_gid):

    GID 0          → empty cell, never looked up
    GID in range   → tileset.get_tile(gid - tileset.firstgid)
    GID unmatched  → empty cell (counted in one warning per layer)

=============================================================================
OBJECT GROUPS
=============================================================================

    <objectgroup name="Spawns" color="#ff0000">
        <object name="start" type="spawn" x="64" y="96">
            <property name="facing" value="down"/>
        </object>
    </objectgroup>

Attributes of <objectgroup> and <object> are bound through explicit tables
(binding.py). Unknown attributes are reported and skipped, never fatal.

=============================================================================
"""

from typing import Optional

from .binding import (
    BindingTable,
    bind_attributes,
    make_table,
    to_bool,
    to_float,
    to_int,
)
from .diagnostics import Diagnostics
from .logging_config import get_logger
from .model import MapObject, ObjectGroup, TiledMap, TileLayer
from .nodes import (
    TreeNode,
    children,
    get_attribute,
    get_float_attribute,
    get_int_attribute,
    read_properties,
)
from .payload import decode_layer_data

logger = get_logger('layers')

OBJECT_ATTRIBUTES: BindingTable = make_table(
    id=to_int,
    name=str,
    type=str,
    x=to_float,
    y=to_float,
    width=to_float,
    height=to_float,
    rotation=to_float,
    gid=to_int,
    visible=to_bool,
    source=str,
)

OBJECT_GROUP_ATTRIBUTES: BindingTable = make_table(
    name=str,
    x=to_int,
    y=to_int,
    width=to_int,
    height=to_int,
    visible=to_bool,
    opacity=to_float,
    color=str,
)


# =============================================================================
# TILE LAYERS
# =============================================================================

def build_tile_layer(node: TreeNode, tmx_map: TiledMap,
                     diagnostics: Diagnostics) -> TileLayer:
    """
    Build a TileLayer from a <layer> element.

    Parameters:
    -----------
    node : TreeNode
        The <layer> element
    tmx_map : TiledMap
        Map under construction: supplies default size and the tilesets
        used for GID resolution
    diagnostics : Diagnostics
        Sink for recoverable problems

    Raises:
    -------
    AttributeParseError : a numeric layer attribute is not a number
    """
    layer = TileLayer(
        name=get_attribute(node, 'name'),
        width=get_int_attribute(node, 'width', tmx_map.width),
        height=get_int_attribute(node, 'height', tmx_map.height),
        x=get_int_attribute(node, 'x', 0),
        y=get_int_attribute(node, 'y', 0),
        visible=get_int_attribute(node, 'visible', 1) != 0,
        opacity=get_float_attribute(node, 'opacity', 1.0),
    )

    data_seen = False
    for child in children(node, 'data'):
        if data_seen:
            diagnostics.warn(f"Layer '{layer.name}' has more than one <data> "
                             "element, ignoring the extra ones")
            break
        data_seen = True
        _fill_cells(layer, child, tmx_map, diagnostics)

    read_properties(node, layer.properties)

    logger.debug("Built tile layer %r (%dx%d)", layer.name, layer.width, layer.height)
    return layer


def _fill_cells(layer: TileLayer, data_elem: TreeNode, tmx_map: TiledMap,
                diagnostics: Diagnostics):
    gids = decode_layer_data(data_elem, layer.width, layer.height, diagnostics)

    unmatched = 0
    for index, gid in enumerate(gids):
        if gid == 0:
            continue
        tile = resolve_gid(tmx_map, gid)
        if tile is None and gid > 0:
            unmatched += 1
        layer.cells[index] = tile

    if unmatched:
        diagnostics.warn(f"Layer '{layer.name}': {unmatched} tile(s) reference "
                         "no known tileset and were left empty")


def resolve_gid(tmx_map: TiledMap, gid: int):
    """
    GID → Tile, or None for empty cells and GIDs with no tileset.

    Tilesets are scanned in registration order and the first whose range
    contains gid is used.
    """
    if gid == 0:
        return None
    return tmx_map.get_tile(gid)


# =============================================================================
# OBJECT GROUPS
# =============================================================================

def build_object_group(node: TreeNode, tmx_map: Optional[TiledMap],
                       diagnostics: Diagnostics) -> ObjectGroup:
    """
    Build an ObjectGroup from an <objectgroup> element.

    The group's size defaults to the map size; objects are kept in
    document order.
    """
    group = ObjectGroup()
    if tmx_map is not None:
        group.width = tmx_map.width
        group.height = tmx_map.height

    bind_attributes(node, group, OBJECT_GROUP_ATTRIBUTES, diagnostics)

    for child in children(node, 'object'):
        group.bind_object(build_object(child, diagnostics))

    read_properties(node, group.properties)

    logger.debug("Built object group %r (%d objects)", group.name, len(group.objects))
    return group


def build_object(node: TreeNode, diagnostics: Diagnostics) -> MapObject:
    """Build a MapObject from an <object> element and its properties."""
    obj = bind_attributes(node, MapObject(), OBJECT_ATTRIBUTES, diagnostics)
    read_properties(node, obj.properties)
    return obj
