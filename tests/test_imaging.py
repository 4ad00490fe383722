"""Tests for the image helpers: paths, decoding, colorkey and tile cutting."""

import os

import pytest
from PIL import Image, UnidentifiedImageError

from tmx_reader.imaging import (
    TileCutter,
    apply_colorkey,
    directory_of,
    image_from_bytes,
    is_url,
    load_image,
    parse_color,
    resolve_path,
)


def test_resolve_relative_path():
    assert resolve_path('maps', 'tiles/terrain.tsx') == os.path.normpath('maps/tiles/terrain.tsx')


def test_resolve_keeps_absolute_paths_and_urls():
    absolute = os.path.abspath('terrain.png')
    assert resolve_path('maps', absolute) == absolute
    assert resolve_path('maps', 'http://example.com/a.png') == 'http://example.com/a.png'


def test_resolve_against_url_base():
    assert resolve_path('http://example.com/maps/', 'a.tsx') == 'http://example.com/maps/a.tsx'


def test_resolve_without_base_dir():
    assert resolve_path('', 'a.png') == 'a.png'
    assert resolve_path(None, 'a.png') == 'a.png'


def test_directory_of():
    assert directory_of(os.path.join('maps', 'level.tmx')) == 'maps'
    assert directory_of('level.tmx') == ''
    assert directory_of('http://example.com/maps/level.tmx') == 'http://example.com/maps/'


def test_is_url():
    assert is_url('file:/tmp/a.png')
    assert is_url('https://example.com/a.png')
    assert not is_url('tiles/a.png')


def test_parse_color():
    assert parse_color('ff00ff') == (255, 0, 255)
    assert parse_color('#102030') == (16, 32, 48)
    with pytest.raises(ValueError):
        parse_color('fff')
    with pytest.raises(ValueError):
        parse_color('zzzzzz')


def test_apply_colorkey_only_touches_matching_pixels():
    image = Image.new('RGBA', (2, 1))
    image.putpixel((0, 0), (255, 0, 255, 255))
    image.putpixel((1, 0), (1, 2, 3, 255))

    filtered = apply_colorkey(image, (255, 0, 255))

    assert filtered.mode == 'RGBA'
    assert filtered.getpixel((0, 0)) == (255, 0, 255, 0)
    assert filtered.getpixel((1, 0)) == (1, 2, 3, 255)
    # Input image is left alone
    assert image.getpixel((0, 0)) == (255, 0, 255, 255)


def test_cutter_row_major_order(make_sheet):
    tiles = TileCutter(4, 4).cut(make_sheet(columns=3, rows=2))
    assert len(tiles) == 6
    assert [t.getpixel((0, 0))[0] for t in tiles] == [10, 20, 30, 40, 50, 60]
    assert all(t.size == (4, 4) for t in tiles)


def test_cutter_with_spacing(make_sheet):
    sheet = make_sheet(columns=2, rows=1, spacing=1)
    assert sheet.size == (9, 4)
    cutter = TileCutter(4, 4, spacing=1)
    assert cutter.grid_size(sheet) == (2, 1)
    tiles = cutter.cut(sheet)
    assert [t.getpixel((3, 3))[0] for t in tiles] == [10, 20]


def test_cutter_drops_partial_tiles():
    assert TileCutter(4, 4).grid_size(Image.new('RGBA', (10, 7))) == (2, 1)


def test_cutter_with_invalid_geometry():
    cutter = TileCutter(0, 4)
    assert not cutter.is_valid
    assert cutter.cut(Image.new('RGBA', (8, 8))) == []


def test_image_from_bytes(encode_png, sheet):
    image = image_from_bytes(encode_png(sheet.convert('RGB')))
    assert image.mode == 'RGBA'
    assert image.size == sheet.size


def test_image_from_bytes_rejects_garbage():
    with pytest.raises(UnidentifiedImageError):
        image_from_bytes(b'not an image')


def test_load_image_from_file(tmp_path, sheet):
    path = tmp_path / 'sheet.png'
    sheet.save(path)
    assert load_image(str(path)).size == (8, 8)
    assert load_image(path.as_uri()).size == (8, 8)


def test_load_missing_image(tmp_path):
    with pytest.raises(OSError):
        load_image(str(tmp_path / 'missing.png'))
