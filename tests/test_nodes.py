"""Tests for attribute extraction and property reading."""

import xml.etree.ElementTree as ET

import pytest

from tmx_reader.errors import AttributeParseError, MapFormatError
from tmx_reader.nodes import (
    children,
    first_child,
    get_attribute,
    get_float_attribute,
    get_int_attribute,
    has_child,
    read_properties,
    tag_is,
)


def test_get_attribute_missing_is_none():
    node = ET.fromstring('<layer name="Ground"/>')
    assert get_attribute(node, 'name') == 'Ground'
    assert get_attribute(node, 'opacity') is None


def test_attribute_names_are_case_sensitive():
    node = ET.fromstring('<layer Width="5"/>')
    assert get_int_attribute(node, 'width', 7) == 7
    assert get_int_attribute(node, 'Width', 7) == 5


def test_get_int_attribute_default_and_value():
    node = ET.fromstring('<map width="20"/>')
    assert get_int_attribute(node, 'width', 0) == 20
    assert get_int_attribute(node, 'height', 3) == 3


def test_get_int_attribute_rejects_non_numeric():
    node = ET.fromstring('<map width="wide"/>')
    with pytest.raises(AttributeParseError) as excinfo:
        get_int_attribute(node, 'width', 0)
    assert excinfo.value.name == 'width'
    assert excinfo.value.value == 'wide'
    assert excinfo.value.tag == 'map'
    # Fatal error family
    assert isinstance(excinfo.value, MapFormatError)


def test_get_float_attribute():
    node = ET.fromstring('<layer opacity="0.5" bad="x"/>')
    assert get_float_attribute(node, 'opacity', 1.0) == 0.5
    assert get_float_attribute(node, 'missing', 1.0) == 1.0
    with pytest.raises(AttributeParseError):
        get_float_attribute(node, 'bad', 1.0)


def test_children_match_tags_case_insensitively():
    node = ET.fromstring('<tileset><Tile id="0"/><image/><TILE id="1"/></tileset>')
    assert [c.get('id') for c in children(node, 'tile')] == ['0', '1']
    assert len(list(children(node))) == 3
    assert tag_is(first_child(node, 'IMAGE'), 'image')
    assert has_child(node, 'tile')
    assert not has_child(node, 'animation')


def test_read_properties_both_layouts_in_document_order():
    node = ET.fromstring(
        '<layer>'
        '<property name="a" value="1"/>'
        '<properties>'
        '<property name="b" value="2"/>'
        '<property name="a" value="3"/>'
        '</properties>'
        '<property name="text">multi\nline</property>'
        '</layer>'
    )
    properties = read_properties(node, {})
    assert properties == {'a': '3', 'b': '2', 'text': 'multi\nline'}


def test_read_properties_later_duplicates_overwrite():
    node = ET.fromstring(
        '<object><property name="k" value="old"/><property name="k" value="new"/></object>'
    )
    assert read_properties(node, {'k': 'initial'}) == {'k': 'new'}
