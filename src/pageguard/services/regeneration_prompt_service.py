# src/pageguard/services/regeneration_prompt_service.py
import logging
import posixpath
from typing import Dict, List, Optional

from bs4 import BeautifulSoup

from pageguard import markup
from pageguard.model import PageCompletenessResult, RegenerationRequest
from pageguard.policy import GuardPolicy, DEFAULT_POLICY
from pageguard.services.completeness_service import CompletenessService, is_html_file

logger = logging.getLogger(__name__)

PAGE_TYPE_ALIASES = {
    "index": "home",
    "home": "home",
    "about": "about",
    "about-us": "about",
    "contact": "contact",
    "contact-us": "contact",
    "services": "services",
    "service": "services",
    "pricing": "pricing",
    "plans": "pricing",
    "blog": "blog",
    "news": "blog",
}

COMMON_CHECKLIST = [
    "The same navigation and footer as all other pages",
    "All interactive elements (forms, filters, etc.) requested in the original request",
]

PAGE_CHECKLISTS: Dict[str, List[str]] = {
    "home": [
        "A hero section with a real headline, supporting text and a call to action",
        "At least 3 feature or highlight sections with real text",
        "A closing call-to-action section",
    ],
    "about": [
        "A header section introducing the organization",
        "A story or mission section with several paragraphs of real text",
        "A team or values section with at least 3 entries",
    ],
    "contact": [
        "A header section with a real headline",
        "A contact form with labelled name, email and message fields",
        "Contact details (address, email or phone) and opening hours",
    ],
    "services": [
        "A header section describing the services on offer",
        "At least 3 service cards, each with a title and a description",
        "A call to action pointing to the contact page",
    ],
    "pricing": [
        "A header section with a real headline",
        "At least 3 pricing tiers with names, prices and feature lists",
        "A frequently asked questions section",
    ],
    "blog": [
        "A header section introducing the blog",
        "At least 3 article previews with title, date and excerpt",
        "Links from each preview to its article or category",
    ],
    "generic": [
        "A header section for the page with a real headline",
        "At least 3 main content sections with real text, cards or lists",
    ],
}


def page_type_for(filename: str) -> str:
    stem = posixpath.splitext(posixpath.basename(filename))[0].lower()
    return PAGE_TYPE_ALIASES.get(stem, "generic")


def page_name_for(filename: str) -> str:
    stem = posixpath.splitext(posixpath.basename(filename))[0]
    if stem.lower() == "index":
        return "Home"
    return stem.replace("-", " ").replace("_", " ").title()


class RegenerationPromptService:
    """
    Builds the payload for asking the model to regenerate one broken page so that
    it matches the rest of the site: shared navigation, footer and stylesheet are
    taken from a page that passed the completeness check.
    """

    def __init__(self, policy: GuardPolicy = DEFAULT_POLICY):
        self.policy = policy

    def build(
            self,
            filename: str,
            original_prompt: str,
            files: Dict[str, str],
            completeness: Optional[PageCompletenessResult] = None,
            site_name: Optional[str] = None
    ) -> RegenerationRequest:
        if completeness is None:
            completeness = CompletenessService(self.policy).check(files, [])

        reference = self._reference_page(files, completeness, exclude=filename)
        reference_html = files.get(reference, "") if reference else ""
        soup = BeautifulSoup(reference_html, "html.parser")

        nav = soup.find("nav")
        footer = soup.find("footer")
        nav_html = str(nav) if nav is not None else ""
        footer_html = str(footer) if footer is not None else ""

        site = site_name or self._site_name(soup) or "the website"
        stylesheet_name, stylesheet = self._stylesheet(files, soup)
        excerpt = stylesheet[:self.policy.regeneration_css_limit]

        page_type = page_type_for(filename)
        page_name = page_name_for(filename)
        checklist = PAGE_CHECKLISTS[page_type] + COMMON_CHECKLIST

        prompt = self._compose(
            filename, page_name, site, original_prompt, nav_html, footer_html,
            stylesheet_name, excerpt, truncated=len(stylesheet) > len(excerpt), checklist=checklist,
        )
        logger.info(f"Regeneration request built for {filename} (reference page: {reference or 'none'})")

        return RegenerationRequest(
            filename=filename,
            page_name=page_name,
            page_type=page_type,
            prompt=prompt,
            nav_html=nav_html,
            footer_html=footer_html,
            stylesheet_excerpt=excerpt,
            checklist=checklist,
        )

    def build_all(
            self,
            original_prompt: str,
            files: Dict[str, str],
            completeness: PageCompletenessResult,
            site_name: Optional[str] = None
    ) -> List[RegenerationRequest]:
        """One request per page that needs regeneration, plus one per missing page."""
        targets = completeness.pages_needing_regeneration() + [
            page for page in completeness.missing_pages if is_html_file(page)
        ]
        return [self.build(name, original_prompt, files, completeness, site_name) for name in targets]

    # --- Helpers ---

    @staticmethod
    def _reference_page(files: Dict[str, str], completeness: PageCompletenessResult, exclude: str) -> Optional[str]:
        good = [
            page.filename for page in completeness.pages
            if not page.needs_regeneration and page.filename != exclude and page.filename in files
        ]
        if "index.html" in good:
            return "index.html"
        return good[0] if good else None

    @staticmethod
    def _site_name(soup: BeautifulSoup) -> str:
        title = soup.find("title")
        return markup.collapse_whitespace(title.get_text(" ")) if title is not None else ""

    @staticmethod
    def _stylesheet(files: Dict[str, str], soup: BeautifulSoup):
        if "style.css" in files:
            return "style.css", files["style.css"]
        for name, content in files.items():
            if name.lower().endswith(".css"):
                return name, content
        style = soup.find("style")
        return None, (style.string or "") if style is not None else ""

    @staticmethod
    def _compose(
            filename: str,
            page_name: str,
            site: str,
            original_prompt: str,
            nav_html: str,
            footer_html: str,
            stylesheet_name: Optional[str],
            excerpt: str,
            truncated: bool,
            checklist: List[str]
    ) -> str:
        nav_block = nav_html or f'<nav><a href="index.html">{markup.escape_text(site)}</a></nav>'
        footer_block = footer_html or f"<footer><p>&copy; {markup.escape_text(site)}</p></footer>"
        if stylesheet_name:
            css_heading = f'SHARED CSS (link to it: <link rel="stylesheet" href="{stylesheet_name}">):'
        else:
            css_heading = "SHARED CSS (copy into a <style> block):"

        lines = [
            f'Regenerate the "{page_name}" page ({filename}) for a website called "{site}".',
            "",
            "ORIGINAL USER REQUEST:",
            original_prompt.strip(),
            "",
            "RULES:",
            "- Output ONLY one complete HTML file starting with <!DOCTYPE html>",
            "- Do not use JSX, framework components or <ComponentName /> tags",
            "- Every section must contain real text, not empty containers",
            "- Use the same design and colors as the shared CSS below",
            "",
            "REUSE THIS NAVIGATION (copy exactly):",
            nav_block,
            "",
            "REUSE THIS FOOTER (copy exactly):",
            footer_block,
            "",
            css_heading,
            excerpt + ("..." if truncated else ""),
            "",
            "This page MUST contain at minimum:",
        ]
        lines.extend(f"- {item}" for item in checklist)
        lines.extend(["", "Output ONLY the complete HTML file. Nothing else."])
        return "\n".join(lines)


def build_page_regeneration_request(
        filename: str,
        original_prompt: str,
        files: Dict[str, str],
        policy: GuardPolicy = DEFAULT_POLICY
) -> RegenerationRequest:
    return RegenerationPromptService(policy).build(filename, original_prompt, files)
