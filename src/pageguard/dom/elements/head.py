import re
from typing import List, Optional

from bs4 import Tag

from pageguard import codes
from pageguard.model import Issue
from pageguard.policy import GuardPolicy
from ..core import ElementBase, ElementDefinition, audit_spec, make_issue

VIEWPORT_NAME_RE = re.compile(r"^\s*viewport\s*$", re.I)
DESCRIPTION_NAME_RE = re.compile(r"^\s*description\s*$", re.I)
OG_PROPERTY_RE = re.compile(r"^\s*og:", re.I)
CONTENT_TYPE_RE = re.compile(r"^\s*content-type\s*$", re.I)


class HeadElement(ElementBase):
    """
    Document-level summary of the metadata normally found in <head>.

    Generated markup often puts metadata in the wrong place or omits <head>
    entirely, so the summary is collected from the whole document.
    """
    tag: str = "head"

    # Title Metadata
    has_title: bool = False
    title_text: str = ""
    title_len: int = 0
    title_line: Optional[int] = None

    # Meta Description Metadata
    has_meta_desc: bool = False
    meta_desc_text: str = ""

    # Social Metadata
    has_open_graph: bool = False

    # Technical Metadata
    has_charset: bool = False
    has_viewport: bool = False


def _has_charset(tag: Tag) -> bool:
    if tag.find("meta", attrs={"charset": True}):
        return True
    # <meta http-equiv="Content-Type" content="text/html; charset=utf-8">
    legacy = tag.find("meta", attrs={"http-equiv": CONTENT_TYPE_RE})
    return bool(legacy and "charset" in (legacy.get("content") or "").lower())


def parse_head(tag: Tag, children: list) -> HeadElement:
    """
    Extracts title, description, social and technical metadata from the document.
    """
    title_tag = tag.find("title")
    meta_desc = tag.find("meta", attrs={"name": DESCRIPTION_NAME_RE})
    viewport = tag.find("meta", attrs={"name": VIEWPORT_NAME_RE})
    open_graph = tag.find("meta", attrs={"property": OG_PROPERTY_RE})

    t_text = title_tag.get_text(strip=True) if title_tag else ""
    d_text = (meta_desc.get("content") or "").strip() if meta_desc else ""

    return HeadElement(
        tag="head",
        attrs={},
        children=children,
        has_title=bool(title_tag),
        title_text=t_text,
        title_len=len(t_text),
        title_line=title_tag.sourceline if title_tag else None,
        has_meta_desc=bool(meta_desc),
        meta_desc_text=d_text,
        has_open_graph=bool(open_graph),
        has_charset=_has_charset(tag),
        has_viewport=bool(viewport),
    )


# --- AUDIT RULES ---


@audit_spec(codes=[codes.MISSING_TITLE, codes.EMPTY_TITLE, codes.TITLE_TOO_LONG])
def check_title(node: HeadElement, policy: GuardPolicy) -> List[Issue]:
    """Validates the presence and length of the <title> tag."""
    res = []
    if not node.has_title:
        res.append(make_issue(
            codes.MISSING_TITLE, "error", "seo",
            "Document missing <title> tag",
            "Add <title>Your Page Title</title> in <head>",
        ))
    elif not node.title_text:
        res.append(make_issue(
            codes.EMPTY_TITLE, "error", "seo",
            "Title tag is present but empty",
            "Give the page a descriptive title",
            line=node.title_line,
        ))
    elif node.title_len > policy.max_title_length:
        res.append(make_issue(
            codes.TITLE_TOO_LONG, "info", "seo",
            f"Title too long ({node.title_len}): '{node.title_text[:50]}...'",
            f"Keep titles under {policy.max_title_length} characters",
            line=node.title_line,
        ))
    return res


@audit_spec(codes=[codes.MISSING_META_DESC])
def check_meta_desc(node: HeadElement, policy: GuardPolicy) -> List[Issue]:
    if node.has_meta_desc and node.meta_desc_text:
        return []
    return [make_issue(
        codes.MISSING_META_DESC, "warning", "seo",
        "Document missing meta description",
        'Add <meta name="description" content="Your page description"> in <head>',
    )]


@audit_spec(codes=[codes.MISSING_OPEN_GRAPH])
def check_open_graph(node: HeadElement, policy: GuardPolicy) -> List[Issue]:
    if node.has_open_graph:
        return []
    return [make_issue(
        codes.MISSING_OPEN_GRAPH, "info", "seo",
        "Missing Open Graph tags for social media sharing",
        "Add og:title, og:description, og:image meta tags",
    )]


@audit_spec(codes=[codes.MISSING_CHARSET, codes.MISSING_VIEWPORT])
def check_technical(node: HeadElement, policy: GuardPolicy) -> List[Issue]:
    """Checks for essential technical tags like charset and viewport."""
    res = []
    if not node.has_charset:
        res.append(make_issue(
            codes.MISSING_CHARSET, "error", "structural",
            "Document missing charset definition",
            'Add <meta charset="UTF-8"> in <head>',
        ))
    if not node.has_viewport:
        res.append(make_issue(
            codes.MISSING_VIEWPORT, "error", "structural",
            "Missing viewport meta tag for mobile responsiveness",
            'Add <meta name="viewport" content="width=device-width, initial-scale=1.0"> in <head>',
        ))
    return res


# --- ELEMENT DEFINITION ---
DEFINITION = ElementDefinition(
    tag_names=["head"],
    model=HeadElement,
    parser=parse_head,
    audit_rules=[check_title, check_meta_desc, check_open_graph, check_technical],
    scope="document",
)
