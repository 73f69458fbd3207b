"""
Document handle: parsed markup as a plain node tree.

An lxml tree is converted once into nested dicts/strings:
  - element attributes become ``"@name"`` keys
  - a leaf element without attributes becomes its (whitespace-collapsed) text
  - an element carrying its own text next to child elements keeps the
    flattened text of its whole subtree under ``"#text"``, plus its children
  - child elements are keyed by local tag name (namespaces dropped)

Tags in the declared repeatable set are *always* stored as lists, so an
extractor never has to ask whether it got one item or many. ``children`` and
``child`` are the only places that deal with undeclared tags which happen to
repeat in a given document.
"""
from __future__ import annotations
import re
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Union

from lxml import etree

from ..errors import MalformedInputError

Node = Union[str, Dict[str, Any]]

TEXT = "#text"
ATTR = "@"

PUBMED_REPEATABLE: FrozenSet[str] = frozenset({
    "PubmedArticle", "Author", "AbstractText", "MeshHeading", "QualifierName",
    "Keyword", "KeywordList", "ArticleId", "ELocationID",
})
JATS_REPEATABLE: FrozenSet[str] = frozenset({
    "article", "sec", "p", "fig", "table-wrap", "ref", "article-id", "list-item",
})
SPL_REPEATABLE: FrozenSet[str] = frozenset({
    "component", "paragraph", "list", "item", "tr", "td", "th",
})

_WS = re.compile(r"\s+")
_PARSER = etree.XMLParser(
    recover=True,
    remove_comments=True,
    remove_pis=True,
    resolve_entities=False,
    no_network=True,
    huge_tree=True,
)


def _collapse(text: str) -> str:
    return _WS.sub(" ", text).strip()


def _local(tag: str) -> str:
    return etree.QName(tag).localname


def _convert(el: etree._Element, repeatable: FrozenSet[str]) -> Node:
    node: Dict[str, Any] = {}
    for k, v in el.attrib.items():
        node[ATTR + _local(k)] = v

    kids = [c for c in el if isinstance(c.tag, str)]
    if not kids:
        text = _collapse(el.text or "")
        if not node:
            return text
        if text:
            node[TEXT] = text
        return node

    mixed = bool((el.text or "").strip()) or any((c.tail or "").strip() for c in kids)
    if mixed:
        node[TEXT] = _collapse("".join(el.itertext()))

    for c in kids:
        key = _local(c.tag)
        value = _convert(c, repeatable)
        if key in repeatable:
            node.setdefault(key, []).append(value)
        elif key in node:
            prev = node[key]
            if isinstance(prev, list):
                prev.append(value)
            else:
                node[key] = [prev, value]
        else:
            node[key] = value
    return node


class DocumentHandle:
    """A parsed document plus the set of tags that are always sequences."""

    def __init__(self, root: Dict[str, Any], repeatable: Iterable[str] = ()):
        self.root = root
        self.repeatable = frozenset(repeatable)

    @classmethod
    def parse(cls, xml: Union[str, bytes], repeatable: Iterable[str] = ()) -> "DocumentHandle":
        rep = frozenset(repeatable)
        data = xml.encode("utf-8") if isinstance(xml, str) else xml
        if not data or not data.strip():
            raise MalformedInputError("empty document")
        try:
            el = etree.fromstring(data, parser=_PARSER)
        except etree.XMLSyntaxError as e:
            raise MalformedInputError(f"unparseable markup: {e}") from e
        if el is None:
            raise MalformedInputError("no root element")
        key = _local(el.tag)
        value = _convert(el, rep)
        return cls({key: [value] if key in rep else value}, rep)

    def get(self, *path: str) -> Optional[Node]:
        """Follow ``path`` from the root, taking the first item at each step."""
        node: Optional[Node] = self.root
        for key in path:
            node = child(node, key)
            if node is None:
                return None
        return node


def children(node: Any, tag: str) -> List[Node]:
    """Every ``tag`` child of ``node`` as a list: empty when absent."""
    if not isinstance(node, dict):
        return []
    value = node.get(tag)
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def child(node: Any, tag: str) -> Optional[Node]:
    items = children(node, tag)
    return items[0] if items else None


def attr(node: Any, name: str) -> str:
    if not isinstance(node, dict):
        return ""
    value = node.get(ATTR + name)
    return value if isinstance(value, str) else ""


def find_all(node: Any, tag: str) -> List[Node]:
    """Depth-unbounded search for ``tag`` elements; matches are not searched inside."""
    found: List[Node] = []
    if isinstance(node, list):
        for item in node:
            found.extend(find_all(item, tag))
    elif isinstance(node, dict):
        for key, value in node.items():
            if key == tag:
                found.extend(value if isinstance(value, list) else [value])
            elif isinstance(value, (dict, list)):
                found.extend(find_all(value, tag))
    return found
