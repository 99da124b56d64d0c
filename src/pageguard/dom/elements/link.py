from typing import List, Optional

from bs4 import Tag

from pageguard import codes
from pageguard.model import Issue
from pageguard.policy import GuardPolicy
from ..core import ElementBase, ElementDefinition, audit_spec, make_issue

GENERIC_LINK_TEXTS = frozenset({"click here", "read more", "here", "more", "learn more", "link"})


class LinkElement(ElementBase):
    """
    Data model for anchor (<a>) tags.
    """
    tag: str = "a"

    @property
    def href(self) -> Optional[str]:
        """Convenience property to access the href attribute."""
        return self.attr("href")

    @property
    def is_external(self) -> bool:
        return (self.href or "").strip().lower().startswith(("http://", "https://"))


def parse_link(tag: Tag, children: list) -> LinkElement:
    """Parses a <a> tag into the LinkElement model."""
    return LinkElement(
        tag="a",
        attrs=tag.attrs,
        text=tag.get_text(" ", strip=True)[:80],
        children=children,
        line=tag.sourceline,
    )


# --- AUDIT RULES ---


@audit_spec(codes=[codes.EXTERNAL_LINK_NO_REL])
def check_external_rel(node: LinkElement, policy: GuardPolicy) -> List[Issue]:
    """External links opened from generated pages should not leak the opener or referrer."""
    if not node.is_external or "rel" in node.attrs:
        return []
    return [make_issue(
        codes.EXTERNAL_LINK_NO_REL, "info", "seo",
        f"External link missing rel attribute: {node.href}",
        'Add rel="noopener noreferrer" to external links',
        line=node.line,
    )]


@audit_spec(codes=[codes.GENERIC_LINK_TEXT])
def check_link_text(node: LinkElement, policy: GuardPolicy) -> List[Issue]:
    text = (node.text or "").strip().lower()
    if text not in GENERIC_LINK_TEXTS:
        return []
    return [make_issue(
        codes.GENERIC_LINK_TEXT, "info", "accessibility",
        f'Link with generic text: "{node.text}"',
        'Use descriptive link text instead of "click here" or "read more"',
        line=node.line,
    )]


# --- ELEMENT DEFINITION ---

DEFINITION = ElementDefinition(
    tag_names=["a"],
    model=LinkElement,
    parser=parse_link,
    audit_rules=[check_external_rel, check_link_text]
)
