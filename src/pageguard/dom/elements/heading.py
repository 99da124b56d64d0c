from typing import List

from bs4 import Tag

from ..core import ElementBase, ElementDefinition


class HeadingElement(ElementBase):
    """
    Model representing a heading element (h1-h6).
    Stores the heading level for structural analysis.
    """
    level: int


def parse_heading(tag: Tag, children: List[ElementBase]) -> HeadingElement:
    """
    Parses heading tags and determines their hierarchy level (e.g., h1 -> 1).
    """
    try:
        level = int(tag.name[1])
    except (ValueError, IndexError, TypeError):
        level = 0

    return HeadingElement(
        tag=tag.name,
        attrs=tag.attrs,
        text=tag.get_text(" ", strip=True),
        children=children,
        line=tag.sourceline,
        level=level
    )


# --- ELEMENT DEFINITION ---

# Heading checks (missing, multiple, skipped levels) need the whole outline
# and run in the QNGINE; the definition only builds the nodes.
DEFINITION = ElementDefinition(
    tag_names=["h1", "h2", "h3", "h4", "h5", "h6"],
    model=HeadingElement,
    parser=parse_heading,
    audit_rules=[]
)
