"""
Fatal error types raised by the TMX reader.

Everything else that can go wrong while reading a map is recoverable and ends
up in the Diagnostics sink instead (see diagnostics.py).
"""

from typing import Optional


class MapFormatError(Exception):
    """
    The document cannot be turned into a map at all.

    Raised for a wrong root element, map dimensions that cannot be determined,
    or XML that does not parse.
    """


class AttributeParseError(MapFormatError, ValueError):
    """A numeric attribute is present but does not hold a number."""

    def __init__(self, name: str, value: str, tag: Optional[str] = None):
        self.name = name
        self.value = value
        self.tag = tag
        where = f" on <{tag}>" if tag else ""
        super().__init__(f"Attribute '{name}'{where} is not a number: {value!r}")
