# src/pageguard/services/sanitizer_service.py
import html
import logging
import re
from typing import List, Match, Optional, Tuple

from pageguard.markup import ATTR_RE, OPEN_TAG_RE, parse_attrs
from pageguard.policy import GuardPolicy, DEFAULT_POLICY

logger = logging.getLogger(__name__)

IFRAME_BLOCK_RE = re.compile(r"<iframe\b[^>]*>.*?</iframe\s*>", re.I | re.S)
# Anything left that still starts with '<iframe' or '</iframe', including truncated tags.
IFRAME_FRAGMENT_RE = re.compile(r"</?iframe[^>]*>?", re.I)
IFRAME_PROBE_RE = re.compile(r"<iframe", re.I)

# Whole script element, or only the opening tag when the element is never closed.
SCRIPT_RE = re.compile(
    r"<script\b((?:\"[^\"]*\"|'[^']*'|[^'\">])*)>(?:(.*?)</script\s*>)?",
    re.I | re.S,
)

URL_ATTRIBUTES = frozenset({"href", "src", "xlink:href"})
INLINE_STYLE_ATTR_RE = re.compile(r"\sstyle\s*=\s*[\"'][^\"']+[\"']", re.I)
_SCHEME_NOISE_RE = re.compile(r"[\x00-\x20]+")


def _is_javascript_url(raw_value: str) -> bool:
    """Decodes entities and strips control/whitespace noise before checking the scheme."""
    value = raw_value
    if value[:1] in ("'", '"'):
        value = value[1:-1]
    value = _SCHEME_NOISE_RE.sub("", html.unescape(value)).lower()
    return value.startswith("javascript:")


def _is_event_handler(name: str) -> bool:
    return len(name) > 2 and name.startswith("on")


def _clean_attributes(blob: str) -> Tuple[str, int, int]:
    """
    Walks the attribute tokens of an opening tag.

    Returns the blob without on*= handlers and with javascript: URLs in
    href/src replaced by '#', plus the number of handlers and URLs touched.
    Quoted values are tokenized as a whole, so text inside them is never cut.
    """
    pieces: List[str] = []
    last = 0
    handlers = js_urls = 0

    for match in ATTR_RE.finditer(blob):
        name, raw = match.group(1).lower(), match.group(2)
        if raw is None:
            continue
        if _is_event_handler(name):
            pieces.append(blob[last:match.start()].rstrip())
            last = match.end()
            handlers += 1
        elif name in URL_ATTRIBUTES and _is_javascript_url(raw):
            pieces.append(blob[last:match.start()])
            pieces.append(f'{match.group(1)}="#"')
            last = match.end()
            js_urls += 1

    if not handlers and not js_urls:
        return blob, 0, 0
    pieces.append(blob[last:])
    return "".join(pieces), handlers, js_urls


class SanitizerService:
    """
    Strips dangerous constructs from generated markup.

    Removes iframes, inline event handlers, javascript: URLs, inline scripts and
    scripts from origins outside the policy's allow-list. Operates on the raw
    text so everything else is left untouched. Applying the passes until
    nothing changes makes the result a fixed point, hence idempotent.
    """

    def __init__(self, policy: GuardPolicy = DEFAULT_POLICY):
        self.policy = policy

    # --- Public API ---

    def sanitize(self, text: Optional[str]) -> str:
        if not text:
            return text or ""

        current = text
        try:
            # Every effective pass shortens the text, so this terminates.
            while True:
                cleaned = self._single_pass(current)
                if cleaned == current:
                    break
                current = cleaned
        except Exception as e:
            logger.error(f"Sanitizer pass failed, returning best-effort output: {e}")
            return current

        if current != text:
            logger.debug(f"Sanitizer removed {len(text) - len(current)} chars of unsafe markup")
        return current

    def is_code_safe(self, text: Optional[str]) -> bool:
        """Read-only counterpart of sanitize(): True when sanitize() would find nothing to remove."""
        return not self.find_threats(text)

    def find_threats(self, text: Optional[str]) -> List[str]:
        """Lists every construct sanitize() would remove, for logging and reporting."""
        if not text:
            return []

        threats: List[str] = []
        if IFRAME_PROBE_RE.search(text):
            threats.append("iframe element")

        for match in SCRIPT_RE.finditer(text):
            if not self._script_allowed(match):
                src = parse_attrs(match.group(1)).get("src")
                threats.append(f"script from disallowed source: {src}" if src else "inline script")

        for match in OPEN_TAG_RE.finditer(text):
            tag = match.group(1).lower()
            if tag == "script":
                continue
            _, handlers, js_urls = _clean_attributes(match.group(2))
            if handlers:
                threats.append(f"inline event handler on <{tag}>")
            if js_urls:
                threats.append(f"javascript: URL on <{tag}>")
        return threats

    def find_csp_violations(self, text: Optional[str]) -> List[str]:
        """Constructs that a strict CSP (no inline script/style) would block."""
        if not text:
            return []

        violations: List[str] = []
        if any(_clean_attributes(m.group(2))[1] for m in OPEN_TAG_RE.finditer(text)):
            violations.append("Inline event handlers detected (onclick/onsubmit/etc.), violates script-src-attr")
        if any(not parse_attrs(m.group(1)).get("src") for m in SCRIPT_RE.finditer(text)):
            violations.append("Inline <script> blocks detected, requires script-src 'unsafe-inline' or a nonce")
        if INLINE_STYLE_ATTR_RE.search(text):
            violations.append("Inline style attributes detected, requires style-src 'unsafe-inline'")
        return violations

    # --- Passes ---

    def _single_pass(self, text: str) -> str:
        text = IFRAME_BLOCK_RE.sub("", text)
        text = IFRAME_FRAGMENT_RE.sub("", text)
        text = SCRIPT_RE.sub(self._filter_script, text)
        # Tags are cleaned everywhere, comments and style bodies included: inside
        # <svg>/<math> a <style> body is markup, and a stripped handler in a real
        # comment is harmless.
        return OPEN_TAG_RE.sub(self._clean_tag, text)

    def _script_allowed(self, match: Match) -> bool:
        src = parse_attrs(match.group(1)).get("src")
        if not src:
            return False
        src = src.strip()
        return any(src == prefix or src.startswith(prefix + "/") for prefix in self.policy.script_allowlist)

    def _filter_script(self, match: Match) -> str:
        return match.group(0) if self._script_allowed(match) else ""

    @staticmethod
    def _clean_tag(match: Match) -> str:
        name, blob = match.group(1), match.group(2)
        if name.lower() == "script":
            return match.group(0)

        cleaned, handlers, js_urls = _clean_attributes(blob)
        if not handlers and not js_urls:
            return match.group(0)
        return f"<{name}{cleaned}>"


def sanitize(text: Optional[str], policy: GuardPolicy = DEFAULT_POLICY) -> str:
    return SanitizerService(policy).sanitize(text)


def is_code_safe(text: Optional[str], policy: GuardPolicy = DEFAULT_POLICY) -> bool:
    return SanitizerService(policy).is_code_safe(text)
