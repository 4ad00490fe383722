"""
Tile data and embedded image payload decoding

=============================================================================
DATA ENCODINGS
=============================================================================

The <data> element of a layer stores one GID per cell, row-major
(x increases fastest, then y). Three ways of writing it are read:

1. XML / plain (no encoding attribute):
   <data>
       <tile gid="1"/><tile gid="2"/><tile gid="0"/>...
   </data>

2. CSV:
   <data encoding="csv">
       1,2,0,
       4,5,6
   </data>

3. Base64, optionally compressed:
   <data encoding="base64" compression="gzip">
       H4sIAAAAAAAAA2NkYGBgBGIQYAIAgQwF4xAAAAA=
   </data>

   The decoded bytes are unsigned 32-bit little-endian integers:

       01 00 00 00 | 02 00 00 00 | 00 00 00 00 | ...
       └── gid 1 ──┘ └── gid 2 ──┘ └── gid 0 ──┘

=============================================================================
SHORT AND LONG PAYLOADS
=============================================================================

Every decoder returns EXACTLY width*height GIDs:
- too few values  → remaining cells are 0 (empty)
- too many values → surplus values are ignored
- a byte stream that ends in the middle of a 4-byte value counts the
  missing bytes as 0

GID 0 always means "no tile".

=============================================================================
"""

import array
import base64
import binascii
import sys
import zlib
from typing import Iterable, List, Optional

from .diagnostics import Diagnostics
from .nodes import TreeNode, children, get_int_attribute, node_text

# zlib window bits for each supported compression.
#   16 + MAX_WBITS → gzip header and trailer
#   MAX_WBITS      → zlib header and trailer
_WBITS = {
    'gzip': 16 + zlib.MAX_WBITS,
    'zlib': zlib.MAX_WBITS,
}


class PayloadError(ValueError):
    """A payload cannot be decoded at all (bad base64, corrupt stream)."""


# =============================================================================
# LOW LEVEL DECODERS
# =============================================================================

def decode_base64(text: str) -> bytes:
    """Decode base64 text, ignoring embedded whitespace and newlines."""
    try:
        return base64.b64decode(''.join(text.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise PayloadError(f"invalid base64 data: {e}") from e


def decompress(raw: bytes, compression: Optional[str]) -> bytes:
    """
    Undo the compression layer of a base64 payload.

    A truncated stream is not an error: whatever could be inflated is
    returned. A corrupt stream raises PayloadError.
    """
    if not compression:
        return raw

    wbits = _WBITS.get(compression.lower())
    if wbits is None:
        raise PayloadError(f"unsupported compression '{compression}'")

    # decompressobj() instead of zlib.decompress()/gzip.decompress(): those
    # refuse truncated input, while the decompressor hands back the partial
    # output and simply never reaches eof.
    decompressor = zlib.decompressobj(wbits)
    try:
        return decompressor.decompress(raw) + decompressor.flush()
    except zlib.error as e:
        raise PayloadError(f"corrupt {compression} stream: {e}") from e


def gids_from_bytes(raw: bytes, count: int) -> List[int]:
    """
    Turn a byte stream into exactly `count` little-endian uint32 GIDs.

    Parameters:
    -----------
    raw : bytes
        Decoded (and decompressed) tile data
    count : int
        Number of cells in the layer (width * height)
    """
    needed = count * 4
    if len(raw) < needed:
        # Missing bytes read as 0, so partial values keep their low bytes
        raw = raw + bytes(needed - len(raw))

    gids = array.array('I')
    gids.frombytes(raw[:needed])

    # array('I') uses native byte order; the format is little-endian
    if sys.byteorder != 'little':
        gids.byteswap()

    return gids.tolist()


def fit_to_grid(values: Iterable[int], count: int) -> List[int]:
    """Take at most `count` values, padding with 0 (empty) when short."""
    gids = []
    for value in values:
        if len(gids) == count:
            break
        gids.append(value)
    gids.extend([0] * (count - len(gids)))
    return gids


# =============================================================================
# <data> ELEMENT DECODING
# =============================================================================

def decode_layer_data(data_elem: TreeNode, width: int, height: int,
                      diagnostics: Diagnostics) -> List[int]:
    """
    Decode a layer <data> element into a row-major list of GIDs.

    Parameters:
    -----------
    data_elem : TreeNode
        The <data> element
    width, height : int
        Layer dimensions; the result always has width*height entries
    diagnostics : Diagnostics
        Sink for recoverable problems

    Returns:
    --------
    List[int] : GIDs, index = y * width + x. Undecodable data yields an
    all-zero (empty) grid plus a diagnostic.
    """
    count = max(width, 0) * max(height, 0)
    encoding = (data_elem.get('encoding') or '').lower()

    if encoding == 'base64':
        text = node_text(data_elem)
        if not text:
            diagnostics.warn("layer <data> tag enclosed no data. (empty data tag)")
            return [0] * count
        try:
            raw = decompress(decode_base64(text), data_elem.get('compression'))
        except PayloadError as e:
            diagnostics.error(f"Could not decode layer data: {e}")
            return [0] * count
        return gids_from_bytes(raw, count)

    if encoding == 'csv':
        return fit_to_grid(_csv_values(node_text(data_elem), diagnostics), count)

    if encoding:
        diagnostics.warn(f"Unknown layer data encoding '{encoding}', "
                         "reading <tile> children")

    return decode_plain_gids(data_elem, count)


def decode_plain_gids(data_elem: TreeNode, count: int) -> List[int]:
    """
    Read <tile gid=".."/> children in document order.

    A <tile> without gid gets -1, which never matches a tileset and so
    leaves the cell empty.
    """
    values = (get_int_attribute(tile, 'gid', -1)
              for tile in children(data_elem, 'tile'))
    return fit_to_grid(values, count)


def _csv_values(text: str, diagnostics: Diagnostics) -> Iterable[int]:
    for item in text.replace('\n', ',').split(','):
        item = item.strip()
        if not item:
            continue
        try:
            yield int(item)
        except ValueError:
            diagnostics.warn(f"Invalid value '{item}' in csv layer data")
            yield 0


# =============================================================================
# EMBEDDED IMAGES
# =============================================================================

def decode_image_data(image_elem: TreeNode, diagnostics: Diagnostics) -> Optional[bytes]:
    """
    Extract the raw bytes of an image embedded in an <image> element:

        <image>
            <data>iVBORw0KGgoAAAANSUhEUgAA...</data>
        </image>

    Only the first <data> child is considered. Returns None (with a
    diagnostic) when there is no usable payload, including an <image>
    with no <data> child at all.
    """
    for data in children(image_elem, 'data'):
        text = node_text(data)
        if not text:
            diagnostics.warn("image <data> tag enclosed no data. (empty data tag)")
            return None
        try:
            return decode_base64(text)
        except PayloadError as e:
            diagnostics.error(f"Could not decode embedded image: {e}")
            return None

    diagnostics.warn("image tag has no source and no embedded <data>")
    return None
