# src/pageguard/dom/models.py
from typing import Iterator, List, Optional

from pydantic import BaseModel, Field

from .core import ElementBase


class HTMLDocument(BaseModel):
    """
    Represents a parsed HTML document.

    Root container for the simplified element trees and the document-level
    facts the quality engine checks (doctype, root language, collected CSS).
    Generated markup frequently has no <head> or <body>, so `nodes` holds
    every top-level element tree instead of a fixed head/body pair.
    """
    has_doctype: bool = False
    has_root: bool = False
    has_head: bool = False
    root_lang: Optional[str] = None

    # Document-scoped metadata summary (see elements/head.py)
    head: Optional[ElementBase] = None
    # The DOM Tree Structure
    nodes: List[ElementBase] = Field(default_factory=list)

    # --- CSS ---
    style_text: str = ""
    inline_style_count: int = 0

    body_text: str = ""

    def iter_nodes(self) -> Iterator[ElementBase]:
        """Depth-first walk over every element of every top-level tree."""
        stack = list(reversed(self.nodes))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def count_tag(self, tag: str) -> int:
        return sum(1 for node in self.iter_nodes() if node.tag == tag)
