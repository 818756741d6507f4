"""Whitespace layout rules for inserting and removing manifest entries.

ElementTree keeps the whitespace between elements in ``text`` (before the
first child) and ``tail`` (after each child). These helpers own that
bookkeeping so a diff of the edited manifest shows only the entry that was
added or removed.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple


def _is_blank(text: Optional[str]) -> bool:
    return text is not None and text != "" and not text.strip()


@dataclass(frozen=True)
class FormattingPolicy:
    """Indentation policy for a document.

    Levels count element depth below the root: the root's direct children
    (such as ``<dependencies>``) are level 1, dependency entries level 2,
    and their fields level 3.

    Attributes:
        indent: One indentation unit.
    """

    indent: str = "    "

    def line_break(self, level: int) -> str:
        return "\n" + self.indent * max(level, 0)

    def build(
        self, tag: str, fields: Sequence[Tuple[str, str]], level: int
    ) -> ET.Element:
        """Create an element whose text-only children sit one level deeper."""
        element = ET.Element(tag)
        if not fields:
            return element
        element.text = self.line_break(level + 1)
        last = len(fields) - 1
        for index, (field_tag, value) in enumerate(fields):
            child = ET.SubElement(element, field_tag)
            child.text = value
            child.tail = self.line_break(level if index == last else level + 1)
        return element

    def append(self, parent: ET.Element, child: ET.Element, level: int) -> None:
        """Append ``child`` at ``level`` keeping the parent's closing whitespace."""
        children = list(parent)
        if children:
            last = children[-1]
            closing = last.tail if _is_blank(last.tail) else self.line_break(level - 1)
            last.tail = self.line_break(level)
        else:
            closing = parent.text if _is_blank(parent.text) else self.line_break(level - 1)
            parent.text = self.line_break(level)
        child.tail = closing
        parent.append(child)

    def detach(self, parent: ET.Element, child: ET.Element) -> None:
        """Remove ``child`` and hand its trailing whitespace to its predecessor."""
        children = list(parent)
        index = children.index(child)
        if index > 0:
            children[index - 1].tail = child.tail
        elif index == len(children) - 1 or _is_blank(parent.text):
            parent.text = child.tail
        parent.remove(child)


__all__ = ["FormattingPolicy"]
