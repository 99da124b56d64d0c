# src/pageguard/dom/builder.py
import logging
from typing import List

from bs4 import BeautifulSoup, NavigableString, Tag

from pageguard import markup
from .core import ElementBase
from .models import HTMLDocument
from .registry import DOMRegistry

logger = logging.getLogger(__name__)


def _is_visible_string(s) -> bool:
    # Comments, the doctype and script/style bodies are NavigableString subclasses
    return type(s) is NavigableString and s.parent.name not in ("script", "style", "template")


class DOMBuilder:
    """
    Builder responsible for parsing raw HTML into a structured HTMLDocument model.
    Uses the tolerant `html.parser` backend so malformed generated markup still
    yields a tree.
    """

    def __init__(self):
        """Initializes the builder and ensures the DOMRegistry is populated."""
        DOMRegistry.discover()

    def parse_doc(self, html: str) -> HTMLDocument:
        """
        Parses raw HTML content into an HTMLDocument.

        Args:
            html (str): The raw HTML string.

        Returns:
            HTMLDocument: A structured representation of the page.
        """
        # Only the BOM is removed: stripping whitespace would shift sourceline numbers
        clean_html = markup.strip_bom(html or "")
        # First duplicate attribute wins, as in browsers and markup.parse_attrs
        soup = BeautifulSoup(clean_html, "html.parser", on_duplicate_attribute="ignore")

        root = soup.find("html")
        root_lang = None
        if root is not None:
            root_lang = (root.get("lang") or "").strip() or None

        head_parser = DOMRegistry.get_document_parser("head")
        head_obj = head_parser(soup, []) if head_parser else None

        nodes = [self._build_tree(child) for child in soup.children if isinstance(child, Tag)]
        logger.debug(f"Built {len(nodes)} top-level element trees")

        style_blocks = [style.string or "" for style in soup.find_all("style")]
        styled = soup.find_all(style=True)
        inline_styles = [el.get("style") or "" for el in styled]

        body = soup.body or soup
        body_text = markup.collapse_whitespace(
            " ".join(s for s in body.find_all(string=True) if _is_visible_string(s))
        )

        return HTMLDocument(
            has_doctype=markup.has_doctype(clean_html),
            has_root=root is not None,
            has_head=soup.head is not None,
            root_lang=root_lang,
            head=head_obj,
            nodes=nodes,
            style_text="\n".join(style_blocks + inline_styles),
            inline_style_count=len(styled),
            body_text=body_text[:5000],
        )

    def _build_tree(self, tag: Tag) -> ElementBase:
        """
        Recursively builds a simplified element tree from a BeautifulSoup Tag.
        """
        children: List[ElementBase] = []
        for child in tag.children:
            if isinstance(child, Tag):
                children.append(self._build_tree(child))

        parser = DOMRegistry.get_parser(tag.name)
        if parser:
            return parser(tag, children)

        # Fallback for generic elements
        return ElementBase(
            tag=tag.name,
            attrs=tag.attrs,
            text=tag.get_text(" ", strip=True)[:50],
            children=children,
            line=tag.sourceline,
        )
