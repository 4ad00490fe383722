"""
Attribute extraction and tree walking helpers

=============================================================================
THE TREE-NODE CAPABILITY
=============================================================================

Builders never poke at a specific XML library. All they need from a node is:

    node.tag          → element name
    node.get(name)    → attribute value or None
    node.items()      → all (name, value) attribute pairs
    iter(node)        → ordered child elements
    node.text         → character data (for <data> payloads)

xml.etree.ElementTree.Element provides exactly that, so it is used as-is;
any object with the same five members works too (see TreeNode).

=============================================================================
CASE RULES
=============================================================================

- Attribute NAMES are looked up exactly as stored (case-sensitive).
- Element TAG comparisons are case-insensitive everywhere except the root
  <map> tag, which the orchestrator checks exactly.

=============================================================================
"""

from typing import Dict, Iterator, List, Optional, Protocol, Tuple

from .errors import AttributeParseError


class TreeNode(Protocol):
    """Minimal interface of a document node used by the builders."""
    tag: str
    text: Optional[str]

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]: ...

    def items(self) -> List[Tuple[str, str]]: ...

    def __iter__(self) -> Iterator['TreeNode']: ...


# =============================================================================
# ATTRIBUTE GETTERS
# =============================================================================

def get_attribute(node: TreeNode, name: str) -> Optional[str]:
    """Return the raw attribute value, or None when absent."""
    return node.get(name)


def get_int_attribute(node: TreeNode, name: str, default: int) -> int:
    """
    Read an integer attribute.

    Parameters:
    -----------
    node : TreeNode
        Element carrying the attribute
    name : str
        Attribute name (case-sensitive)
    default : int
        Returned when the attribute is absent

    Raises:
    -------
    AttributeParseError : attribute present but not an integer
    """
    value = node.get(name)
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        raise AttributeParseError(name, value, node.tag) from None


def get_float_attribute(node: TreeNode, name: str, default: float) -> float:
    """Read a float attribute; same contract as get_int_attribute()."""
    value = node.get(name)
    if value is None:
        return default
    try:
        return float(value.strip())
    except ValueError:
        raise AttributeParseError(name, value, node.tag) from None


# =============================================================================
# CHILD ITERATION
# =============================================================================

def tag_is(node: TreeNode, tag: str) -> bool:
    """Case-insensitive tag comparison."""
    return isinstance(node.tag, str) and node.tag.lower() == tag.lower()


def children(node: TreeNode, tag: Optional[str] = None) -> Iterator[TreeNode]:
    """
    Iterate over direct child elements in document order.

    When tag is given only children with that tag (case-insensitive) are
    yielded. Comments and processing instructions are skipped.
    """
    for child in node:
        if not isinstance(child.tag, str):
            continue
        if tag is None or child.tag.lower() == tag.lower():
            yield child


def first_child(node: TreeNode, tag: str) -> Optional[TreeNode]:
    return next(children(node, tag), None)


def has_child(node: TreeNode, tag: str) -> bool:
    return first_child(node, tag) is not None


def node_text(node: TreeNode) -> str:
    """Character data of a node, stripped; '' when there is none."""
    return (node.text or '').strip()


# =============================================================================
# PROPERTIES
# =============================================================================

def read_properties(node: TreeNode, properties: Dict[str, str]) -> Dict[str, str]:
    """
    Collect <property name=".." value=".."/> entries of a node into a dict.

    Two layouts are accepted, in document order:

        <layer>                         <layer>
            <property .../>                 <properties>
        </layer>                                <property .../>
                                            </properties>
                                        </layer>

    Later duplicates overwrite earlier ones. A property without a value
    attribute takes its text content (multi-line string properties).
    """
    for child in children(node):
        if tag_is(child, 'property'):
            _store_property(child, properties)
        elif tag_is(child, 'properties'):
            for prop in children(child, 'property'):
                _store_property(prop, properties)
    return properties


def _store_property(elem: TreeNode, properties: Dict[str, str]):
    name = elem.get('name')
    if name is None:
        return
    value = elem.get('value')
    if value is None:
        value = elem.text or ''
    properties[name] = value
