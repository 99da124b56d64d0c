from typing import Any, List, Mapping, Optional

from bs4 import Tag

from pageguard import codes
from pageguard.model import Issue
from pageguard.policy import GuardPolicy
from ..core import ElementBase, ElementDefinition, audit_spec, make_issue

ABOVE_FOLD_HINTS = ("hero", "logo", "banner")

def is_likely_above_fold(attrs: Mapping[str, Any]) -> bool:
    """
    Heuristic shared by the validator and the autofixer: images hinted as
    hero/logo/banner, or marked fetchpriority=high, are loaded eagerly.
    Accepts both bs4 attribute dicts (list values) and plain string dicts.
    """
    values = []
    for name, value in attrs.items():
        if isinstance(value, (list, tuple)):
            value = " ".join(value)
        if name.lower() == "fetchpriority" and (value or "").strip().lower() == "high":
            return True
        if name.lower() in ("src", "class", "id", "alt") and value:
            values.append(value.lower())
    blob = " ".join(values)
    return any(hint in blob for hint in ABOVE_FOLD_HINTS)

class ImageElement(ElementBase):
    tag: str = "img"

    @property
    def src(self) -> str: return self.attr("src") or ""

    @property
    def alt(self) -> Optional[str]: return self.attrs.get("alt")

def parse_image(tag: Tag, children: list) -> ImageElement:
    return ImageElement(tag="img", attrs=tag.attrs, children=children, line=tag.sourceline)

# --- RULES ---

@audit_spec(codes=[codes.MISSING_ALT])
def check_alt_text(node: ImageElement, policy: GuardPolicy) -> List[Issue]:
    # alt=None means the attribute is missing; alt="" marks a decorative image
    if node.alt is not None:
        return []
    return [make_issue(
        codes.MISSING_ALT, "error", "accessibility",
        f"Image missing alt attribute: {node.src[:80]}",
        'Add descriptive alt text, or alt="" for decorative images',
        line=node.line,
    )]

@audit_spec(codes=[codes.IMG_NO_LAZY_LOADING])
def check_lazy_loading(node: ImageElement, policy: GuardPolicy) -> List[Issue]:
    if "loading" in node.attrs or is_likely_above_fold(node.attrs):
        return []
    return [make_issue(
        codes.IMG_NO_LAZY_LOADING, "info", "performance",
        f"Image missing lazy loading: {node.src[:80]}",
        'Add loading="lazy" to images below the fold',
        line=node.line,
    )]


# --- DEFINITION ---
DEFINITION = ElementDefinition(
    tag_names=["img"],
    model=ImageElement,
    parser=parse_image,
    audit_rules=[check_alt_text, check_lazy_loading]
)
