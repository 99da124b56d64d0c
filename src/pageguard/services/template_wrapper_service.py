# src/pageguard/services/template_wrapper_service.py
import logging
import re
from typing import List

from bs4 import BeautifulSoup

from pageguard import markup
from pageguard.dom.builder import DOMBuilder
from pageguard.dom.models import HTMLDocument
from pageguard.policy import GuardPolicy, DEFAULT_POLICY

logger = logging.getLogger(__name__)

BASE_STYLESHEET = """:root {
  --primary: #3b82f6;
  --secondary: #8b5cf6;
  --text: #1f2937;
  --text-secondary: #6b7280;
  --bg: #ffffff;
  --bg-secondary: #f9fafb;
  --border: #e5e7eb;
  --spacing: 1rem;
  --radius: 0.5rem;
}

* {
  margin: 0;
  padding: 0;
  box-sizing: border-box;
}

body {
  font-family: system-ui, -apple-system, sans-serif;
  color: var(--text);
  background: var(--bg);
  line-height: 1.6;
}

img {
  max-width: 100%;
  height: auto;
}

a:focus-visible,
button:focus-visible,
input:focus-visible,
select:focus-visible,
textarea:focus-visible {
  outline: 2px solid var(--primary);
  outline-offset: 2px;
}"""

# Wrappers dropped from the content before it is placed in the new <body>
_STRIP_PATTERNS = [
    re.compile(r"<head\b[^>]*>.*?</head\s*>", re.I | re.S),
    re.compile(r"</?head\b[^>]*>", re.I),
    re.compile(r"<title\b[^>]*>.*?</title\s*>", re.I | re.S),
    re.compile(r"<meta\b[^>]*>", re.I),
    re.compile(r"<!doctype\b[^>]*>", re.I),
    re.compile(r"</?html\b[^>]*>", re.I),
    re.compile(r"</?body\b[^>]*>", re.I),
]
STYLESHEET_LINK_RE = re.compile(r"<link\b[^>]*>", re.I)
MAIN_OPEN_RE = re.compile(r"<main\b", re.I)
KEPT_LINK_RELS = {"stylesheet", "preconnect", "icon"}


class TemplateWrapperService:
    """
    Last-resort layer that guarantees a renderable minimum document.

    Content that already has the minimum structure is returned unchanged.
    Anything else is rebuilt around a known-good skeleton: styles are merged
    into one stylesheet, scripts move to the end of the body and the remaining
    markup goes into <main>.
    """

    def __init__(self, policy: GuardPolicy = DEFAULT_POLICY):
        self.policy = policy
        self.builder = DOMBuilder()

    def has_minimum_structure(self, content: str) -> bool:
        return self._has_minimum_structure(self.builder.parse_doc(content))

    @staticmethod
    def _has_minimum_structure(doc: HTMLDocument) -> bool:
        head = doc.head
        return bool(
            doc.has_doctype
            and doc.has_root
            and doc.root_lang
            and doc.has_head
            and head is not None and head.has_charset and head.has_viewport
            and doc.count_tag("h1") >= 1
        )

    def wrap(self, content: str, fallback_title: str) -> str:
        content = content or ""
        doc = self.builder.parse_doc(content)
        if self._has_minimum_structure(doc):
            return content

        title = self._derive_title(content, fallback_title)
        description = self._derive_description(content, title)

        safe_title = markup.escape_text(title[:self.policy.title_cap])
        safe_description = markup.escape_text(description[:self.policy.description_cap])

        styles = [m.group(2).strip() for m in markup.STYLE_BLOCK_RE.finditer(content)]
        scripts = [m.group(0) for m in markup.SCRIPT_BLOCK_RE.finditer(content)]
        links = self._stylesheet_links(content)
        body = self._body_content(content)
        # Checked on what survives stripping: an <h1> stranded in <head> is gone.
        has_h1 = BeautifulSoup(body, "html.parser").find("h1") is not None

        if not MAIN_OPEN_RE.search(body):
            body = f"<main>\n{body}\n</main>"
        if not has_h1:
            body = f"<header>\n  <h1>{safe_title}</h1>\n</header>\n{body}"

        stylesheet = "\n\n".join([BASE_STYLESHEET] + [s for s in styles if s])
        head_lines: List[str] = [
            '  <meta charset="UTF-8">',
            '  <meta name="viewport" content="width=device-width, initial-scale=1.0">',
            f'  <meta name="description" content="{safe_description}">',
            f'  <meta property="og:title" content="{safe_title}">',
            f'  <meta property="og:description" content="{safe_description}">',
            f"  <title>{safe_title}</title>",
        ]
        head_lines.extend(f"  {link}" for link in links)

        logger.info(f"Template wrapper applied (title='{title[:40]}', h1 synthesized={not has_h1})")
        return (
            "<!DOCTYPE html>\n"
            f'<html lang="{self.policy.default_lang}">\n'
            "<head>\n"
            + "\n".join(head_lines) + "\n"
            f"  <style>\n{stylesheet}\n  </style>\n"
            "</head>\n"
            "<body>\n"
            f"{body}\n"
            + "".join(f"{script}\n" for script in scripts)
            + "</body>\n"
            "</html>\n"
        )

    # --- Extraction ---

    @staticmethod
    def _derive_title(content: str, fallback: str) -> str:
        """Priority: <title> text, then <h1> text, then the fallback."""
        soup = BeautifulSoup(content, "html.parser")
        for tag_name in ("title", "h1"):
            tag = soup.find(tag_name)
            if tag is not None:
                text = markup.collapse_whitespace(tag.get_text(" "))
                if text:
                    return text
        return markup.collapse_whitespace(fallback) or "Untitled"

    @staticmethod
    def _derive_description(content: str, title: str) -> str:
        soup = BeautifulSoup(content, "html.parser")
        meta = soup.find("meta", attrs={"name": "description"})
        existing = markup.collapse_whitespace(meta.get("content") or "") if meta else ""
        return existing or f"{title} - Professional web experience"

    @staticmethod
    def _stylesheet_links(content: str) -> List[str]:
        links = []
        for match in STYLESHEET_LINK_RE.finditer(content):
            rel = (markup.parse_attrs(match.group(0)[5:-1]).get("rel") or "").lower()
            if set(rel.split()) & KEPT_LINK_RELS:
                links.append(match.group(0))
        return links

    @staticmethod
    def _body_content(content: str) -> str:
        # Raw-text blocks first, so tag-like text inside them is never matched below
        body = markup.SCRIPT_BLOCK_RE.sub("", content)
        body = markup.STYLE_BLOCK_RE.sub("", body)
        body = STYLESHEET_LINK_RE.sub("", body)
        for pattern in _STRIP_PATTERNS:
            body = pattern.sub("", body)
        return body.strip()


def wrap_with_template(content: str, fallback_title: str, policy: GuardPolicy = DEFAULT_POLICY) -> str:
    return TemplateWrapperService(policy).wrap(content, fallback_title)
