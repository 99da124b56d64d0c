# src/pageguard/dom/qngine.py
import logging
import re
from typing import List, Optional, Tuple

from pageguard import codes
from pageguard.model import Issue
from pageguard.policy import GuardPolicy, DEFAULT_POLICY
from .core import ElementBase, make_issue
from .models import HTMLDocument
from .registry import DOMRegistry

logger = logging.getLogger(__name__)

CUSTOM_PROPERTY_RE = re.compile(r"--[A-Za-z0-9_-]+\s*:")
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")

# Landmark element -> equivalent ARIA role
LANDMARKS = {
    "header": "banner",
    "nav": "navigation",
    "main": "main",
    "footer": "contentinfo",
}


class QNGINE:
    """
    Quality Engine (QNGINE) for auditing HTML Documents.

    It traverses the element trees constructed by the DOMBuilder and applies
    registered audit rules to every node. It also performs the document-level
    checks that need the whole page (doctype, language, heading outline,
    landmarks, collected CSS).
    """

    def __init__(self, policy: GuardPolicy = DEFAULT_POLICY):
        """Initializes the engine by discovering and loading all available audit rules."""
        DOMRegistry.discover()
        self.rules = DOMRegistry.get_all_rules()
        self.policy = policy

    def run_audit(self, doc: HTMLDocument) -> List[Issue]:
        """
        Runs the full audit suite on a parsed HTMLDocument.

        Args:
            doc (HTMLDocument): The parsed document model.

        Returns:
            List[Issue]: Findings in document order, root-level checks first.
        """
        findings: List[Issue] = []

        # --- Root Level Checks ---
        if not doc.has_doctype:
            findings.append(make_issue(
                codes.MISSING_DOCTYPE, "error", "structural",
                "Document missing <!DOCTYPE html>",
                "Add <!DOCTYPE html> at the beginning of the file",
            ))
        if not doc.root_lang:
            findings.append(make_issue(
                codes.MISSING_LANG, "warning", "accessibility",
                "Missing lang attribute on <html> tag",
                f'Add lang="{self.policy.default_lang}" to <html> tag for screen readers',
            ))

        # --- State Tracking for Global Checks ---
        headings: List[Tuple[int, Optional[int]]] = []
        landmarks_found = set()

        def traverse(node: ElementBase):
            if not node:
                return

            if node.tag in HEADING_TAGS:
                headings.append((int(node.tag[1]), node.line))
            if node.tag in LANDMARKS:
                landmarks_found.add(node.tag)
            role = (node.attr("role") or "").strip().lower()
            for tag, landmark_role in LANDMARKS.items():
                if role == landmark_role:
                    landmarks_found.add(tag)

            for rule in self.rules:
                findings.extend(rule(node, self.policy))

            for child in node.children:
                traverse(child)

        # The head summary is a document-scoped model; it only carries head rules.
        if doc.head is not None:
            for rule in self.rules:
                findings.extend(rule(doc.head, self.policy))
        for root in doc.nodes:
            traverse(root)

        # --- Post-Traversal Checks ---
        findings.extend(self._check_heading_outline(headings))
        findings.extend(self._check_landmarks(landmarks_found))
        findings.extend(self._check_css(doc))

        logger.debug(f"QNGINE produced {len(findings)} findings")
        return findings

    def _check_heading_outline(self, headings: List[Tuple[int, Optional[int]]]) -> List[Issue]:
        res = []
        h1_lines = [line for level, line in headings if level == 1]

        if not h1_lines:
            res.append(make_issue(
                codes.MISSING_H1, "error", "structural",
                "Document does not contain an <h1> tag",
                "Add <h1>Page Title</h1> as the main heading",
            ))
        elif len(h1_lines) > 1:
            res.append(make_issue(
                codes.MULTIPLE_H1, "warning", "seo",
                f"Multiple h1 elements found ({len(h1_lines)}). Should have only one",
                "Use only one <h1> tag for the main page title",
                line=h1_lines[1],
            ))

        # Only the first skip is reported
        for (prev, _), (level, line) in zip(headings, headings[1:]):
            if level - prev > 1:
                res.append(make_issue(
                    codes.SKIPPED_HEADING_LEVEL, "warning", "accessibility",
                    f"Skipped heading level: h{prev} to h{level}",
                    "Follow proper heading hierarchy without skipping levels",
                    line=line,
                ))
                break
        return res

    @staticmethod
    def _check_landmarks(found: set) -> List[Issue]:
        missing = [tag for tag in LANDMARKS if tag not in found]
        if not missing:
            return []

        severity = "warning" if len(missing) == len(LANDMARKS) else "info"
        listed = ", ".join(f"<{tag}>" for tag in missing)
        return [make_issue(
            codes.MISSING_LANDMARKS, severity, "accessibility",
            f"Missing landmark elements: {listed}",
            "Use semantic landmarks so assistive technology can navigate the page",
        )]

    def _check_css(self, doc: HTMLDocument) -> List[Issue]:
        res = []
        if ":focus" not in doc.style_text:
            res.append(make_issue(
                codes.MISSING_FOCUS_STYLES, "warning", "accessibility",
                "Missing :focus styles for keyboard navigation",
                "Add :focus-visible styles for interactive elements",
            ))
        if doc.inline_style_count > self.policy.max_inline_styles:
            res.append(make_issue(
                codes.EXCESSIVE_INLINE_STYLES, "warning", "performance",
                f"{doc.inline_style_count} inline style attributes (limit {self.policy.max_inline_styles})",
                "Move inline styles into a stylesheet",
            ))
        if not CUSTOM_PROPERTY_RE.search(doc.style_text):
            res.append(make_issue(
                codes.NO_CSS_CUSTOM_PROPERTIES, "info", "css",
                "Consider using CSS custom properties (variables) for maintainability",
                "Define CSS variables in :root for colors, spacing, etc.",
            ))
        return res
