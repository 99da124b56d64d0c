# src/pageguard/services/autofix_service.py
import logging
from typing import Callable, Dict, List, Match, Optional, Tuple

from pageguard import codes, markup
from pageguard.dom.elements.image import is_likely_above_fold
from pageguard.model import AutoFixResult, ValidationResult
from pageguard.policy import GuardPolicy, DEFAULT_POLICY

logger = logging.getLogger(__name__)

CHARSET_META = '<meta charset="UTF-8">'
VIEWPORT_META = '<meta name="viewport" content="width=device-width, initial-scale=1.0">'
REL_HARDENING = 'rel="noopener noreferrer"'

Transform = Callable[["AutoFixService", str], str]


def _first_outside(pattern, text: str) -> Optional[Match]:
    spans = markup.protected_spans(text)
    for match in pattern.finditer(text):
        if not markup.in_spans(match.start(), spans):
            return match
    return None


def _leading_doctype_end(text: str) -> int:
    match = _first_outside(markup.DOCTYPE_TAG_RE, text)
    if match and markup.has_doctype(text):
        return match.end()
    return 0


def _insert_at(text: str, pos: int, snippet: str) -> str:
    return f"{text[:pos]}\n{snippet}{text[pos:]}" if pos else f"{snippet}\n{text}"


def _replace_attribute(blob: str, name: str, replacement: str) -> Optional[str]:
    for match in markup.ATTR_RE.finditer(blob):
        if match.group(1).lower() == name:
            return blob[:match.start()] + replacement + blob[match.end():]
    return None


class AutoFixService:
    """
    Applies narrow text patches for the validator findings that have a known fix.

    Each transform touches only the tag it repairs; the rest of the document is
    left byte-for-byte identical. The transform table is keyed by issue code and
    covers exactly the codes flagged auto-fixable.
    """

    def __init__(self, policy: GuardPolicy = DEFAULT_POLICY):
        self.policy = policy

    def fix(self, text: str, validation: ValidationResult) -> AutoFixResult:
        wanted = validation.auto_fixable_codes
        if not wanted:
            return AutoFixResult(fixed=text, applied_fixes=[], remaining_issue_count=len(validation.issues))

        fixed = text
        applied: List[str] = []
        resolved = set()
        # Table order matters: the root and <head> must exist before metas are placed in them.
        for code, (label, transform) in TRANSFORMS.items():
            if code not in wanted:
                continue
            patched = transform(self, fixed)
            if patched != fixed:
                fixed = patched
                applied.append(label)
                resolved.add(code)
                logger.debug(f"Autofix applied: {label}")

        remaining = sum(1 for issue in validation.issues if issue.code not in resolved)
        return AutoFixResult(fixed=fixed, applied_fixes=applied, remaining_issue_count=remaining)

    # --- Transforms ---

    def _add_doctype(self, text: str) -> str:
        # A doctype that is not the first thing in the document is dropped and re-added at the top
        text = markup.sub_outside(markup.DOCTYPE_TAG_RE, lambda m: "", text)
        return "<!DOCTYPE html>\n" + text.lstrip("\ufeff")

    def _add_lang(self, text: str) -> str:
        lang_attr = f'lang="{self.policy.default_lang}"'
        root = _first_outside(markup.ROOT_TAG_RE, text)

        if root is None:
            pos = _leading_doctype_end(text)
            body = text[pos:].strip("\n")
            wrapped = f"<html {lang_attr}>\n{body}\n</html>\n"
            return f"{text[:pos]}\n{wrapped}" if pos else wrapped

        # lang="" or lang without a value is replaced in place
        blob = _replace_attribute(root.group(1), "lang", lang_attr)
        if blob is not None:
            new_tag = "<" + root.group(0)[1:5] + blob + ">"
        else:
            new_tag = markup.insert_attribute(root.group(0), "html", lang_attr)
        return text[:root.start()] + new_tag + text[root.end():]

    def _ensure_head_with(self, text: str, snippet: str) -> str:
        head = _first_outside(markup.HEAD_OPEN_RE, text)
        if head is not None:
            return _insert_at(text, head.end(), snippet)

        root = _first_outside(markup.ROOT_TAG_RE, text)
        if root is not None:
            return _insert_at(text, root.end(), f"<head>\n{snippet}\n</head>")

        return _insert_at(text, _leading_doctype_end(text), f"<head>\n{snippet}\n</head>")

    def _add_charset(self, text: str) -> str:
        return self._ensure_head_with(text, CHARSET_META)

    def _add_viewport(self, text: str) -> str:
        charset = _first_outside(markup.CHARSET_META_RE, text)
        if charset is not None:
            return _insert_at(text, charset.end(), VIEWPORT_META)
        return self._ensure_head_with(text, VIEWPORT_META)

    def _add_lazy_loading(self, text: str) -> str:
        def _patch(match: Match) -> str:
            name = match.group(1)
            if name.lower() != "img":
                return match.group(0)
            attrs = markup.parse_attrs(match.group(2))
            if "loading" in attrs or is_likely_above_fold(attrs):
                return match.group(0)
            return markup.insert_attribute(match.group(0), name, 'loading="lazy"')

        return markup.sub_outside(markup.OPEN_TAG_RE, _patch, text)

    def _add_rel(self, text: str) -> str:
        def _patch(match: Match) -> str:
            name = match.group(1)
            if name.lower() != "a":
                return match.group(0)
            attrs = markup.parse_attrs(match.group(2))
            href = (attrs.get("href") or "").strip().lower()
            if "rel" in attrs or not href.startswith(("http://", "https://")):
                return match.group(0)
            return markup.insert_attribute(match.group(0), name, REL_HARDENING)

        return markup.sub_outside(markup.OPEN_TAG_RE, _patch, text)


TRANSFORMS: Dict[str, Tuple[str, Transform]] = {
    codes.MISSING_DOCTYPE: ("Added <!DOCTYPE html>", AutoFixService._add_doctype),
    codes.MISSING_LANG: ("Added lang attribute to <html>", AutoFixService._add_lang),
    codes.MISSING_CHARSET: ("Added <meta charset>", AutoFixService._add_charset),
    codes.MISSING_VIEWPORT: ("Added viewport meta tag", AutoFixService._add_viewport),
    codes.IMG_NO_LAZY_LOADING: ('Added loading="lazy" to images', AutoFixService._add_lazy_loading),
    codes.EXTERNAL_LINK_NO_REL: ("Added rel hardening to external links", AutoFixService._add_rel),
}


def auto_fix(text: str, validation: ValidationResult, policy: GuardPolicy = DEFAULT_POLICY) -> AutoFixResult:
    return AutoFixService(policy).fix(text, validation)
