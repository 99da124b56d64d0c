# src/pageguard/services/completeness_service.py
import logging
import posixpath
import re
from typing import Dict, Iterable, List, Match, Optional, Set
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from pageguard import codes, markup
from pageguard.model import PageCheckResult, PageCompletenessResult, PageIssue, PatchedPage
from pageguard.policy import GuardPolicy, DEFAULT_POLICY

logger = logging.getLogger(__name__)

HTML_EXTENSIONS = (".html", ".htm")
COMPONENT_SOURCE_EXTENSIONS = (".tsx", ".jsx", ".vue", ".svelte")

# Upper-cased HTML/SVG element names are legacy markup (<DIV>, <P>, <H1>);
# any other capitalized name is a component (<CTA />, <FAQ>, <Header>).
HTML_ELEMENT_NAMES = frozenset("""
    a abbr address area article aside audio b base bdi bdo big blockquote body br
    button canvas caption center cite code col colgroup data datalist dd del details
    dfn dialog div dl dt em embed fieldset figcaption figure font footer form frame
    frameset h1 h2 h3 h4 h5 h6 head header hgroup hr html i iframe img input ins kbd
    label legend li link main map mark menu meta meter nav noscript object ol
    optgroup option output p param picture pre progress q rp rt ruby s samp script
    search section select slot small source span strike strong style sub summary sup
    table tbody td template textarea tfoot th thead time title tr track tt u ul var
    video wbr svg math g path rect circle ellipse line polygon polyline text tspan
    defs use symbol marker pattern mask image filter stop
""".split())

_LEGACY_NAMES = "|".join(sorted((name.upper() for name in HTML_ELEMENT_NAMES), key=len, reverse=True))
_COMPONENT_NAME = r"(?!(?:" + _LEGACY_NAMES + r")(?![A-Za-z0-9]))[A-Z][A-Za-z0-9]*"
_ATTRS = r"(?:\"[^\"]*\"|'[^']*'|[^'\">])*"

COMPONENT_TAG_RE = re.compile(r"<(" + _COMPONENT_NAME + r")(?=[\s/>])")
PAIRED_COMPONENT_RE = re.compile(r"<(" + _COMPONENT_NAME + r")(?=[\s/>])" + _ATTRS + r"(?<!/)>.*?</\1\s*>", re.S)
SELF_CLOSING_COMPONENT_RE = re.compile(r"<(" + _COMPONENT_NAME + r")(?=[\s/>])" + _ATTRS + r"/>")
STRAY_COMPONENT_RE = re.compile(r"</?(" + _COMPONENT_NAME + r")(?=[\s/>])" + _ATTRS + r">")

TEMPLATE_ARTIFACT_RE = re.compile(r"^>\s*$", re.M)
ARTIFACT_LINE_RE = re.compile(r"^>[ \t]*(?:\r?\n|$)", re.M)
HREF_RE = re.compile(r"\bhref\s*=\s*(?:\"([^\"]*)\"|'([^']*)')", re.I)

PLACEHOLDER_RE = re.compile(
    r"lorem ipsum|dolor sit amet|\[(?:insert|your|add) [^\]]{1,40}\]|your (?:content|text) here|content goes here",
    re.I,
)
PLACEHOLDER_IMAGE_SOURCES = frozenset({"", "#", "placeholder"})


def is_html_file(filename: str) -> bool:
    return filename.lower().endswith(HTML_EXTENSIONS)


def find_foreign_tags(content: str) -> List[str]:
    """Component-style tag names outside scripts, styles and comments, first-seen order."""
    spans = markup.protected_spans(content)
    found: Dict[str, None] = {}
    for match in COMPONENT_TAG_RE.finditer(content):
        if not markup.in_spans(match.start(), spans):
            found[match.group(1)] = None
    return list(found)


def extract_visible_text(content: str) -> str:
    soup = BeautifulSoup(content, "html.parser")
    for tag in soup.find_all(["script", "style", "head", "template", "noscript"]):
        tag.decompose()
    return markup.collapse_whitespace(soup.get_text(" "))


class CompletenessService:
    """
    Catches generation failures that a per-page quality score cannot see:
    components that never rendered, blank pages, leaked template syntax and
    pages of a multi-page site that are missing or link to nothing.
    Never mutates its input.
    """

    def __init__(self, policy: GuardPolicy = DEFAULT_POLICY):
        self.policy = policy

    def check(self, files: Dict[str, str], expected_pages: Iterable[str]) -> PageCompletenessResult:
        critical_errors: List[str] = []
        missing_pages = [page for page in expected_pages if page not in files]
        for page in missing_pages:
            critical_errors.append(f"{page}: Expected page was not generated")

        known_files = set(files)
        pages: List[PageCheckResult] = []
        for filename, content in files.items():
            if not is_html_file(filename):
                continue
            result = self.check_page(filename, content, known_files)
            pages.append(result)
            critical_errors.extend(f"{filename}: {issue.message}" for issue in result.critical_issues)

        passed = not critical_errors and not missing_pages
        logger.info(
            f"Completeness: {len(pages)} page(s) checked, {len(missing_pages)} missing, "
            f"{len(critical_errors)} critical error(s)"
        )
        return PageCompletenessResult(
            passed=passed,
            pages=pages,
            missing_pages=missing_pages,
            critical_errors=critical_errors,
        )

    def check_page(self, filename: str, content: str, known_files: Optional[Set[str]] = None) -> PageCheckResult:
        content = content or ""
        issues: List[PageIssue] = []

        # 1. Component tags leaked into plain HTML
        foreign = find_foreign_tags(content)
        if foreign:
            issues.append(PageIssue(
                severity="critical", code=codes.FOREIGN_TAGS,
                message=f"Contains component tags ({', '.join(foreign)}) that will not render in a browser",
            ))

        # 2. Blank page
        visible = extract_visible_text(content)
        is_empty = len(visible) < self.policy.min_visible_text or len(content) < self.policy.min_content_length
        if is_empty:
            issues.append(PageIssue(
                severity="critical", code=codes.EMPTY_PAGE,
                message=(
                    f"Page has insufficient content ({len(visible)} chars of visible text, "
                    f"minimum {self.policy.min_visible_text}; {len(content)} chars total, "
                    f"minimum {self.policy.min_content_length})"
                ),
            ))

        # 3. Lone '>' lines left over from a template literal
        if TEMPLATE_ARTIFACT_RE.search(content):
            issues.append(PageIssue(
                severity="critical", code=codes.TEMPLATE_ARTIFACT,
                message="Stray '>' line detected, template syntax leaked into the HTML",
            ))

        # 4. Incomplete document
        if not markup.has_doctype(content):
            issues.append(PageIssue(
                severity="critical", code=codes.MISSING_DOCTYPE,
                message="Missing <!DOCTYPE html>, incomplete HTML document",
            ))

        hrefs = self._hrefs(content)

        # 5. Links pointing at component sources or the server root
        wrong = [h for h in hrefs if h.strip() == "/" or h.strip().lower().endswith(COMPONENT_SOURCE_EXTENSIONS)]
        if wrong:
            issues.append(PageIssue(
                severity="warning", code=codes.WRONG_LINKS,
                message=f"Navigation links use the wrong format for a static HTML site: {', '.join(wrong[:3])}",
            ))

        # 6. Relative links to pages that were not generated
        if known_files is not None:
            broken = self._broken_internal_links(filename, hrefs, known_files)
            if broken:
                issues.append(PageIssue(
                    severity="warning", code=codes.BROKEN_INTERNAL_LINK,
                    message=f"Links to pages that do not exist: {', '.join(broken[:3])}",
                ))

        # 7. Placeholder copy
        placeholder = PLACEHOLDER_RE.search(visible)
        if placeholder:
            issues.append(PageIssue(
                severity="warning", code=codes.PLACEHOLDER_TEXT,
                message=f"Placeholder text found ('{placeholder.group(0)}'), replace with real content",
            ))

        # 8. Images with no real source
        broken_images = self._count_placeholder_images(content)
        if broken_images:
            issues.append(PageIssue(
                severity="warning", code=codes.BROKEN_IMAGES,
                message=f"{broken_images} image(s) with empty or invalid src",
            ))

        needs_regeneration = any(issue.severity == "critical" for issue in issues)
        if needs_regeneration:
            logger.debug(f"{filename} needs regeneration: {[i.code for i in issues if i.severity == 'critical']}")

        return PageCheckResult(
            filename=filename,
            length=len(content),
            issues=issues,
            is_empty=is_empty,
            has_foreign_tags=bool(foreign),
            foreign_tags=foreign,
            visible_text_length=len(visible),
            needs_regeneration=needs_regeneration,
        )

    def patch(self, filename: str, content: str) -> PatchedPage:
        """
        Best-effort local repair: hides unrendered components behind a comment and
        drops template artifact lines. The page still has to be regenerated.
        """
        replaced: Dict[str, None] = {}

        def _replace(match: Match) -> str:
            name = match.group(1)
            replaced[name] = None
            return f"<!-- {name} component was not rendered; regenerate this page -->"

        patched = content or ""
        for pattern in (PAIRED_COMPONENT_RE, SELF_CLOSING_COMPONENT_RE, STRAY_COMPONENT_RE):
            patched = markup.sub_outside(pattern, _replace, patched)

        patched, removed = ARTIFACT_LINE_RE.subn("", patched)

        return PatchedPage(
            filename=filename,
            content=patched,
            replaced_components=list(replaced),
            removed_artifact_lines=removed,
        )

    # --- Helpers ---

    @staticmethod
    def _hrefs(content: str) -> List[str]:
        spans = markup.protected_spans(content)
        return [
            match.group(1) if match.group(1) is not None else match.group(2)
            for match in HREF_RE.finditer(content)
            if not markup.in_spans(match.start(), spans)
        ]

    @staticmethod
    def _broken_internal_links(filename: str, hrefs: List[str], known_files: Set[str]) -> List[str]:
        base_dir = posixpath.dirname(filename)
        broken: List[str] = []
        for href in hrefs:
            parts = urlsplit(href.strip())
            if parts.scheme or parts.netloc or not parts.path or parts.path.startswith("/"):
                continue
            if not is_html_file(parts.path):
                continue
            target = posixpath.normpath(posixpath.join(base_dir, parts.path))
            if target not in known_files and href not in broken:
                broken.append(href)
        return broken

    @staticmethod
    def _count_placeholder_images(content: str) -> int:
        spans = markup.protected_spans(content)
        count = 0
        for match in markup.OPEN_TAG_RE.finditer(content):
            if match.group(1).lower() != "img" or markup.in_spans(match.start(), spans):
                continue
            attrs = markup.parse_attrs(match.group(2))
            if "src" in attrs and (attrs["src"] or "").strip().lower() in PLACEHOLDER_IMAGE_SOURCES:
                count += 1
        return count


def validate_page_completeness(
        files: Dict[str, str],
        expected_pages: Iterable[str],
        policy: GuardPolicy = DEFAULT_POLICY
) -> PageCompletenessResult:
    return CompletenessService(policy).check(files, expected_pages)
