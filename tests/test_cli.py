"""Tests for the tmx-reader command line tool."""

import gzip

import pytest

from tmx_reader import __main__ as cli

MAP = ('<map width="2" height="1" tilewidth="4" tileheight="4" orientation="isometric">'
       '  <tileset firstgid="1" name="terrain" tilewidth="4" tileheight="4">'
       '    <image source="terrain.png"/>'
       '  </tileset>'
       '  <layer name="Ground" opacity="0.5"><data encoding="csv">1,0</data></layer>'
       '  <objectgroup name="Spawns" visible="0"><object name="start"/></objectgroup>'
       '  <property name="music" value="town.ogg"/>'
       '</map>')


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    # Leave the test run's logging handlers alone
    monkeypatch.setattr(cli, 'setup_logging', lambda verbose, debug: None)


@pytest.fixture
def map_dir(tmp_path, sheet):
    sheet.save(tmp_path / 'terrain.png')
    (tmp_path / 'town.tmx').write_text(MAP)
    return tmp_path


def test_print_map(map_dir, capsys):
    assert cli.main([str(map_dir / 'town.tmx')]) == 0

    out = capsys.readouterr().out
    assert 'Map: 2x1 tiles, 4x4 px, isometric' in out
    assert 'Tilesets: 1' in out
    assert 'terrain: 4 tiles, 4x4' in out
    assert 'Ground: 2x1, 1 tiles, opacity 0.5' in out
    assert 'Spawns: 1 objects, hidden' in out
    assert 'music = town.ogg' in out
    assert 'Diagnostics' not in out


def test_print_tileset(tmp_path, sheet, capsys):
    sheet.save(tmp_path / 'props.png')
    (tmp_path / 'props.tsx').write_text(
        '<tileset name="props" tilewidth="4" tileheight="4"><image source="props.png"/></tileset>')

    assert cli.main([str(tmp_path / 'props.tsx')]) == 0
    out = capsys.readouterr().out
    assert 'props: 4 tiles, 4x4' in out


def test_missing_file(tmp_path, capsys):
    assert cli.main([str(tmp_path / 'nowhere.tmx')]) == 1
    assert capsys.readouterr().out.startswith('Error: ')


def test_not_a_map(tmp_path, capsys):
    path = tmp_path / 'world.tmx'
    path.write_text('<world/>')
    assert cli.main([str(path)]) == 1
    assert 'Not a valid tmx map file' in capsys.readouterr().out


def test_strict_fails_on_errors(tmp_path, capsys):
    path = tmp_path / 'level.tmx'
    path.write_text('<map width="1" height="1"><tileset source="gone.tsx"/></map>')

    assert cli.main([str(path)]) == 0
    out = capsys.readouterr().out
    assert 'Diagnostics: 2' in out
    assert 'ERROR: Could not find external tileset file' in out

    assert cli.main(['--strict', str(path)]) == 1


def test_strict_ignores_warnings(tmp_path):
    path = tmp_path / 'level.tmx'
    path.write_text('<map width="1" height="1" orientation="hexa"/>')
    assert cli.main(['--strict', str(path)]) == 0


def test_corrupt_gzip_map(tmp_path, capsys):
    packed = gzip.compress(MAP.encode('utf-8'))
    path = tmp_path / 'town.tmx.gz'
    path.write_bytes(packed[:10] + b'\xff' * 16 + packed[-8:])

    assert cli.main([str(path)]) == 1
    assert capsys.readouterr().out.startswith('Error: ')
