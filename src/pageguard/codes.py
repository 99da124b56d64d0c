# src/pageguard/codes.py
"""Stable issue codes emitted by the validator and the completeness checker."""

# --- Structural ---
MISSING_DOCTYPE = "MISSING_DOCTYPE"
MISSING_CHARSET = "MISSING_CHARSET"
MISSING_VIEWPORT = "MISSING_VIEWPORT"
MISSING_H1 = "MISSING_H1"

# --- SEO ---
MISSING_TITLE = "MISSING_TITLE"
EMPTY_TITLE = "EMPTY_TITLE"
TITLE_TOO_LONG = "TITLE_TOO_LONG"
MISSING_META_DESC = "MISSING_META_DESC"
MISSING_OPEN_GRAPH = "MISSING_OPEN_GRAPH"
MULTIPLE_H1 = "MULTIPLE_H1"
EXTERNAL_LINK_NO_REL = "EXTERNAL_LINK_NO_REL"

# --- Accessibility ---
MISSING_LANG = "MISSING_LANG"
SKIPPED_HEADING_LEVEL = "SKIPPED_HEADING_LEVEL"
MISSING_LANDMARKS = "MISSING_LANDMARKS"
MISSING_ALT = "MISSING_ALT"
BUTTON_NO_NAME = "BUTTON_NO_NAME"
INPUT_NO_ID = "INPUT_NO_ID"
GENERIC_LINK_TEXT = "GENERIC_LINK_TEXT"
MISSING_FOCUS_STYLES = "MISSING_FOCUS_STYLES"

# --- Performance ---
IMG_NO_LAZY_LOADING = "IMG_NO_LAZY_LOADING"
EXCESSIVE_INLINE_STYLES = "EXCESSIVE_INLINE_STYLES"
LARGE_INLINE_SCRIPT = "LARGE_INLINE_SCRIPT"

# --- CSS ---
NO_CSS_CUSTOM_PROPERTIES = "NO_CSS_CUSTOM_PROPERTIES"

# Codes the AutoFixService has a transform for.
AUTO_FIXABLE_CODES = frozenset({
    MISSING_DOCTYPE,
    MISSING_CHARSET,
    MISSING_VIEWPORT,
    MISSING_LANG,
    IMG_NO_LAZY_LOADING,
    EXTERNAL_LINK_NO_REL,
})

# --- Completeness (page-level) ---
MISSING_PAGE = "MISSING_PAGE"
FOREIGN_TAGS = "FOREIGN_TAGS"
EMPTY_PAGE = "EMPTY_PAGE"
TEMPLATE_ARTIFACT = "TEMPLATE_ARTIFACT"
WRONG_LINKS = "WRONG_LINKS"
BROKEN_INTERNAL_LINK = "BROKEN_INTERNAL_LINK"
PLACEHOLDER_TEXT = "PLACEHOLDER_TEXT"
BROKEN_IMAGES = "BROKEN_IMAGES"
