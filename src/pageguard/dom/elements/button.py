from typing import List

from bs4 import Tag

from pageguard import codes
from pageguard.model import Issue
from pageguard.policy import GuardPolicy
from ..core import ElementBase, ElementDefinition, audit_spec, make_issue


class ButtonElement(ElementBase):
    """A <button>; `has_accessible_name` is resolved at parse time from the bs4 subtree."""
    tag: str = "button"
    has_accessible_name: bool = False


def parse_button(tag: Tag, children: list) -> ButtonElement:
    text = tag.get_text(" ", strip=True)
    named_by_attr = any(
        (tag.get(attr) or "").strip()
        for attr in ("aria-label", "aria-labelledby", "title")
    )
    # An icon button is named by its image's alt text
    named_by_img = any((img.get("alt") or "").strip() for img in tag.find_all("img"))

    return ButtonElement(
        tag="button",
        attrs=tag.attrs,
        text=text[:80],
        children=children,
        line=tag.sourceline,
        has_accessible_name=bool(text) or named_by_attr or named_by_img,
    )


@audit_spec(codes=[codes.BUTTON_NO_NAME])
def check_button_name(node: ButtonElement, policy: GuardPolicy) -> List[Issue]:
    if node.has_accessible_name:
        return []
    return [make_issue(
        codes.BUTTON_NO_NAME, "warning", "accessibility",
        "Button without text or aria-label",
        "Add text content or aria-label to buttons",
        line=node.line,
    )]


DEFINITION = ElementDefinition(
    tag_names=["button"],
    model=ButtonElement,
    parser=parse_button,
    audit_rules=[check_button_name]
)
