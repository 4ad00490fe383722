#!/usr/bin/env python3

"""
TMX Reader - command line inspector for Tiled maps

Usage:
    python -m tmx_reader <map.tmx>
    python -m tmx_reader --tileset <tiles.tsx>

Prints map size, tilesets, layers and properties, followed by every
diagnostic recorded while reading.
"""

import argparse
import sys

from .diagnostics import Diagnostics
from .errors import MapFormatError
from .logging_config import setup_logging
from .model import ObjectGroup, TiledMap, TileLayer, Tileset
from .reader import MapReader


def describe_tileset(tileset: Tileset) -> str:
    text = (f"  [{tileset.firstgid:>5}] {tileset.name or '(unnamed)'}: "
            f"{tileset.tile_count} tiles, {tileset.tilewidth}x{tileset.tileheight}")
    if tileset.source:
        text += f" (from {tileset.source})"
    return text


def describe_layer(layer) -> str:
    if isinstance(layer, TileLayer):
        used = sum(1 for tile in layer.cells if tile is not None)
        text = (f"  layer       {layer.name or '(unnamed)'}: "
                f"{layer.width}x{layer.height}, {used} tiles")
    elif isinstance(layer, ObjectGroup):
        text = f"  objectgroup {layer.name or '(unnamed)'}: {len(layer.objects)} objects"
    else:
        text = f"  {type(layer).__name__} {layer.name}"

    if not layer.visible:
        text += ", hidden"
    if layer.opacity != 1.0:
        text += f", opacity {layer.opacity:g}"
    return text


def print_map(tmx_map: TiledMap):
    print(f"Map: {tmx_map.width}x{tmx_map.height} tiles, "
          f"{tmx_map.tilewidth}x{tmx_map.tileheight} px, "
          f"{tmx_map.orientation.value}")

    print(f"Tilesets: {len(tmx_map.tilesets)}")
    for tileset in tmx_map.tilesets:
        print(describe_tileset(tileset))

    print(f"Layers: {len(tmx_map.layers)}")
    for layer in tmx_map.layers:
        print(describe_layer(layer))

    if tmx_map.properties:
        print("Properties:")
        for name, value in sorted(tmx_map.properties.items()):
            print(f"  {name} = {value}")


def print_diagnostics(diagnostics: Diagnostics):
    if not len(diagnostics):
        return
    print(f"Diagnostics: {len(diagnostics)}")
    for entry in diagnostics:
        print(f"  {entry}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="tmx-reader",
        description="Read a Tiled TMX map (or TSX tileset) and print a summary",
    )
    parser.add_argument("path", help="Map (.tmx, .tmx.gz) or tileset (.tsx) file")
    parser.add_argument(
        "--tileset",
        action="store_true",
        help="Read the file as a standalone tileset",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when any ERROR diagnostic was recorded",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("--debug", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.debug)

    diagnostics = Diagnostics()
    reader = MapReader(diagnostics)

    read_as_tileset = args.tileset or args.path.lower().endswith('.tsx')

    try:
        if read_as_tileset:
            tileset = reader.read_tileset(args.path)
            print(describe_tileset(tileset))
        else:
            print_map(reader.read_map(args.path))
    except (MapFormatError, OSError) as e:
        print(f"Error: {e}")
        print_diagnostics(diagnostics)
        return 1

    print_diagnostics(diagnostics)

    if args.strict and diagnostics.has_errors:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
