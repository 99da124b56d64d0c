# src/pageguard/markup.py
"""
Tolerant regex helpers shared by the text-level transforms (sanitizer, autofix,
template wrapper, completeness). These never re-serialize markup: every
transform patches the original text in place so unrelated content is left
byte-for-byte identical.
"""
import html
import re
from typing import Callable, Dict, List, Match, Optional, Pattern, Tuple

# Attribute blob: quoted values may contain '>' and newlines.
_ATTR_BLOB = r"((?:\"[^\"]*\"|'[^']*'|[^'\">])*)"

OPEN_TAG_RE = re.compile(r"<([a-zA-Z][\w:.-]*)" + _ATTR_BLOB + r">", re.S)
ATTR_RE = re.compile(
    r"([^\s\"'>/=]+)(?:\s*=\s*(\"[^\"]*\"|'[^']*'|[^\s\"'=<>`]+))?",
    re.S,
)

DOCTYPE_TAG_RE = re.compile(r"<!doctype\b[^>]*>", re.I)
_LEADING_DOCTYPE_RE = re.compile(r"^\s*(?:<!--.*?-->\s*)*<!doctype\s+html", re.I | re.S)
ROOT_TAG_RE = re.compile(r"<html\b" + _ATTR_BLOB + r">", re.I | re.S)
HEAD_OPEN_RE = re.compile(r"<head\b" + _ATTR_BLOB + r">", re.I | re.S)
CHARSET_META_RE = re.compile(r"<meta\b[^>]*\bcharset\s*=[^>]*>", re.I)

# Empty comments (<!--> and <!--->) close immediately, as browsers treat them.
COMMENT_RE = re.compile(r"<!--(?:-?>|.*?--!?>|.*$)", re.S)
SCRIPT_BLOCK_RE = re.compile(r"<script\b" + _ATTR_BLOB + r">(.*?)</script\s*>", re.I | re.S)
STYLE_BLOCK_RE = re.compile(r"<style\b" + _ATTR_BLOB + r">(.*?)</style\s*>", re.I | re.S)
RAW_TEXT_RE = re.compile(r"<(script|style)\b" + _ATTR_BLOB + r">(.*?)</\1\s*>", re.I | re.S)

Span = Tuple[int, int]


def strip_bom(text: str) -> str:
    return text.replace("\ufeff", "")


def has_doctype(text: str) -> bool:
    """True when the document opens with an HTML doctype (leading comments allowed)."""
    return bool(_LEADING_DOCTYPE_RE.match(strip_bom(text or "")))


def parse_attrs(blob: str) -> Dict[str, Optional[str]]:
    """
    Parses the attribute part of an opening tag into a dict.
    Names are lower-cased, values are unquoted and entity-decoded.
    Boolean attributes map to None. First occurrence wins, like browsers do.
    """
    attrs: Dict[str, Optional[str]] = {}
    for match in ATTR_RE.finditer(blob or ""):
        name = match.group(1).lower()
        if name in attrs:
            continue
        raw = match.group(2)
        if raw is None:
            attrs[name] = None
            continue
        if raw[:1] in ("'", '"'):
            raw = raw[1:-1]
        attrs[name] = html.unescape(raw)
    return attrs


def protected_spans(text: str) -> List[Span]:
    """
    Returns spans that text patches must not touch: HTML comments and the
    raw bodies of <script> and <style> elements.
    """
    spans: List[Span] = [m.span() for m in COMMENT_RE.finditer(text)]
    for match in RAW_TEXT_RE.finditer(text):
        spans.append(match.span(3))
    spans.sort()
    return spans


def in_spans(pos: int, spans: List[Span]) -> bool:
    for start, end in spans:
        if start <= pos < end:
            return True
        if start > pos:
            break
    return False


def sub_outside(
        pattern: Pattern,
        repl: Callable[[Match], str],
        text: str,
        spans: Optional[List[Span]] = None
) -> str:
    """re.sub that leaves matches starting inside a protected span untouched."""
    spans = protected_spans(text) if spans is None else spans

    def _guarded(match: Match) -> str:
        if in_spans(match.start(), spans):
            return match.group(0)
        return repl(match)

    return pattern.sub(_guarded, text)


def insert_attribute(tag_text: str, tag_name: str, attribute: str) -> str:
    """Inserts `attribute` directly after the tag name: <img src=x> -> <img loading="lazy" src=x>."""
    cut = 1 + len(tag_name)
    return f"{tag_text[:cut]} {attribute}{tag_text[cut:]}"


def escape_text(text: str) -> str:
    """Escapes &, <, > and double quotes for use in element text or attribute values."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()
