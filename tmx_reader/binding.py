"""
Attribute binding tables

Objects, object groups and tiles take whatever attributes the document gives
them. Each entity declares a table:

    attribute name (lower case) → setter(target, raw string value)

bind_attributes() walks the attributes of a node and calls the matching
setter. Names are matched case-insensitively ("Width" and "width" are the
same). An attribute with no entry in the table, or whose value does not
convert, is reported as a warning and skipped; the rest of the element is
still bound.
"""

from typing import Any, Callable, Dict

from .diagnostics import Diagnostics
from .nodes import TreeNode

Setter = Callable[[Any, str], None]
BindingTable = Dict[str, Setter]


def to_bool(value: str) -> bool:
    """'1', 'true', 'yes' → True; '0', 'false', 'no' → False; nonzero ints → True."""
    text = value.strip().lower()
    if text in ('true', 'yes'):
        return True
    if text in ('false', 'no'):
        return False
    return int(text) != 0


def to_int(value: str) -> int:
    return int(value.strip())


def to_float(value: str) -> float:
    return float(value.strip())


def field_setter(attr: str, convert: Callable[[str], Any] = str) -> Setter:
    """Setter that converts the raw value and stores it in target.<attr>."""
    def setter(target: Any, value: str):
        setattr(target, attr, convert(value))
    return setter


def make_table(**fields: Callable[[str], Any]) -> BindingTable:
    """make_table(x=to_float, name=str) → {'x': setter, 'name': setter}"""
    return {name.lower(): field_setter(name, convert)
            for name, convert in fields.items()}


def bind_attributes(node: TreeNode, target: Any, table: BindingTable,
                    diagnostics: Diagnostics) -> Any:
    """
    Copy the attributes of node onto target using table.

    Returns target for chaining.
    """
    for name, value in node.items():
        setter = table.get(name.lower())
        if setter is None:
            diagnostics.warn(f"Unsupported attribute '{name}' on <{node.tag}> tag")
            continue
        try:
            setter(target, value)
        except ValueError:
            diagnostics.warn(f"Invalid value '{value}' for attribute '{name}' "
                             f"on <{node.tag}> tag")
    return target
