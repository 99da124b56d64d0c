# src/pageguard/policy.py
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScoreWeights(BaseModel):
    """Points subtracted from 100 per finding of each severity."""
    model_config = ConfigDict(frozen=True)

    error: int = Field(default=10, ge=0)
    warning: int = Field(default=3, ge=0)
    info: int = Field(default=1, ge=0)


class GuardPolicy(BaseModel):
    """
    Immutable configuration threaded through every component of the pipeline.

    Allow-lists, scoring weights and thresholds live here instead of in
    module-level constants so that different tenants or environments can run
    the same code under different policies without sharing mutable state.
    """
    model_config = ConfigDict(frozen=True)

    # --- Sanitizer ---
    script_allowlist: Tuple[str, ...] = (
        "https://unpkg.com",
        "https://cdn.jsdelivr.net",
        "https://cdnjs.cloudflare.com",
        "https://cdn.tailwindcss.com",
    )

    # --- Validator ---
    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    max_title_length: int = 60
    max_inline_styles: int = 5
    large_inline_script_chars: int = 5000

    # --- Pipeline ---
    acceptance_threshold: int = Field(default=90, ge=0, le=100)

    # --- Template wrapper / autofix ---
    default_lang: str = "en"
    title_cap: int = 60
    description_cap: int = 160

    # --- Completeness ---
    min_visible_text: int = 200
    min_content_length: int = 800

    # --- Regeneration ---
    regeneration_css_limit: int = 2000

    # --- CSP ---
    common_script_origins: Tuple[str, ...] = (
        "https://unpkg.com",
        "https://cdn.jsdelivr.net",
        "https://cdnjs.cloudflare.com",
        "https://cdn.tailwindcss.com",
    )
    common_style_origins: Tuple[str, ...] = (
        "https://fonts.googleapis.com",
        "https://cdn.tailwindcss.com",
    )
    common_font_origins: Tuple[str, ...] = (
        "https://fonts.gstatic.com",
    )
    allow_inline_styles: bool = True

    @field_validator("script_allowlist", "common_script_origins", "common_style_origins", "common_font_origins")
    @classmethod
    def strip_trailing_slash(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        """Normalizes origin prefixes so 'https://unpkg.com/' and 'https://unpkg.com' behave the same."""
        return tuple(item.strip().rstrip("/") for item in v if item and item.strip())


DEFAULT_POLICY = GuardPolicy()
