from __future__ import annotations
from typing import Any, List

from .document import ATTR, TEXT, children, find_all

PARAGRAPH_TAGS = ("paragraph", "p")
LIST_TAGS = ("list",)
ITEM_TAGS = ("item", "list-item")


def extract_text(node: Any) -> str:
    """
    Flatten any node to text.

    A node with its own text value returns it as-is; otherwise every
    non-attribute child is flattened recursively and the pieces are joined
    with single spaces. Missing nodes give "".
    """
    if node is None:
        return ""
    if isinstance(node, str):
        return node
    if isinstance(node, (int, float)):
        return str(node)
    if isinstance(node, list):
        return " ".join(p for p in (extract_text(x) for x in node) if p).strip()
    if isinstance(node, dict):
        if TEXT in node:
            return str(node[TEXT])
        parts: List[str] = []
        for key, value in node.items():
            if key.startswith(ATTR):
                continue
            text = extract_text(value)
            if text:
                parts.append(text)
        return " ".join(parts).strip()
    return str(node)


def _table_lines(table: Any) -> List[str]:
    lines: List[str] = []
    for tr in find_all(table, "tr"):
        cells = children(tr, "th") + children(tr, "td")
        row = " | ".join(c for c in (extract_text(x) for x in cells) if c)
        if row:
            lines.append(row)
    return lines


def _block_lines(node: Any) -> List[str]:
    if node is None:
        return []
    if isinstance(node, list):
        out: List[str] = []
        for x in node:
            out.extend(_block_lines(x))
        return out
    if not isinstance(node, dict) or TEXT in node:
        text = extract_text(node)
        return [text] if text else []

    lines: List[str] = []
    for key, value in node.items():
        if key.startswith(ATTR):
            continue
        if key in PARAGRAPH_TAGS:
            for p in children(node, key):
                text = extract_text(p)
                if text:
                    lines.append(text)
        elif key in LIST_TAGS:
            for lst in children(node, key):
                for tag in ITEM_TAGS:
                    for item in children(lst, tag):
                        text = " ".join(_block_lines(item))
                        if text:
                            lines.append(f"- {text}")
        elif key == "table":
            for table in children(node, key):
                lines.extend(_table_lines(table))
        else:
            lines.extend(_block_lines(value))
    return lines


def block_text(node: Any) -> str:
    """Like ``extract_text`` but paragraphs, list items and table rows go on their own lines."""
    return "\n".join(_block_lines(node))
