# src/pageguard/model.py
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pageguard.policy import ScoreWeights

Severity = Literal["error", "warning", "info"]
Category = Literal["structural", "seo", "accessibility", "performance", "css"]
PageSeverity = Literal["critical", "warning"]


class Issue(BaseModel):
    """
    A single static-analysis finding produced by the validator.
    Frozen: findings are data and are never edited after creation.
    """
    model_config = ConfigDict(frozen=True)

    code: str  # e.g. 'MISSING_DOCTYPE', 'MISSING_ALT'
    severity: Severity
    category: Category
    message: str
    fix_hint: str = ""
    auto_fixable: bool = False
    line: Optional[int] = None


class IssueCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    errors: int = 0
    warnings: int = 0
    infos: int = 0


def compute_score(counts: IssueCounts, weights: ScoreWeights) -> int:
    """Start at 100, subtract the weighted issue counts and floor at 0."""
    penalty = (
        counts.errors * weights.error
        + counts.warnings * weights.warning
        + counts.infos * weights.info
    )
    return max(0, min(100, 100 - penalty))


class ValidationResult(BaseModel):
    """
    Outcome of one validator run.
    `passed` is True exactly when no error-severity issue was found.
    """
    model_config = ConfigDict(frozen=True)

    passed: bool
    score: int = Field(ge=0, le=100)
    issues: List[Issue] = Field(default_factory=list)
    counts: IssueCounts = Field(default_factory=IssueCounts)

    @classmethod
    def from_issues(cls, issues: List[Issue], weights: ScoreWeights) -> "ValidationResult":
        counts = IssueCounts(
            errors=sum(1 for i in issues if i.severity == "error"),
            warnings=sum(1 for i in issues if i.severity == "warning"),
            infos=sum(1 for i in issues if i.severity == "info"),
        )
        return cls(
            passed=counts.errors == 0,
            score=compute_score(counts, weights),
            issues=list(issues),
            counts=counts,
        )

    @property
    def auto_fixable_codes(self) -> List[str]:
        """Distinct auto-fixable issue codes, in first-seen order."""
        seen: List[str] = []
        for issue in self.issues:
            if issue.auto_fixable and issue.code not in seen:
                seen.append(issue.code)
        return seen


class AutoFixResult(BaseModel):
    fixed: str
    applied_fixes: List[str] = Field(default_factory=list)
    remaining_issue_count: int = 0


# --- Completeness ---

class PageIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    severity: PageSeverity
    code: str
    message: str


class PageCheckResult(BaseModel):
    filename: str
    length: int
    issues: List[PageIssue] = Field(default_factory=list)
    is_empty: bool = False
    has_foreign_tags: bool = False
    foreign_tags: List[str] = Field(default_factory=list)
    visible_text_length: int = 0
    needs_regeneration: bool = False

    @property
    def critical_issues(self) -> List[PageIssue]:
        return [i for i in self.issues if i.severity == "critical"]


class PageCompletenessResult(BaseModel):
    passed: bool
    pages: List[PageCheckResult] = Field(default_factory=list)
    missing_pages: List[str] = Field(default_factory=list)
    critical_errors: List[str] = Field(default_factory=list)

    def pages_needing_regeneration(self) -> List[str]:
        return [p.filename for p in self.pages if p.needs_regeneration]


class PatchedPage(BaseModel):
    """
    Result of the local best-effort patch for a broken page.
    The patch only hides the damage; the page still has to be regenerated.
    """
    filename: str
    content: str
    replaced_components: List[str] = Field(default_factory=list)
    removed_artifact_lines: int = 0
    needs_regeneration: Literal[True] = True


class RegenerationRequest(BaseModel):
    filename: str
    page_name: str
    page_type: str
    prompt: str
    nav_html: str = ""
    footer_html: str = ""
    stylesheet_excerpt: str = ""
    checklist: List[str] = Field(default_factory=list)


# --- CSP ---

class CSPDomainSet(BaseModel):
    """Third-party origins per CSP category. Each list is deduplicated, first-seen order kept."""
    scripts: List[str] = Field(default_factory=list)
    styles: List[str] = Field(default_factory=list)
    fonts: List[str] = Field(default_factory=list)
    apis: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)

    @field_validator("scripts", "styles", "fonts", "apis", "images")
    @classmethod
    def dedupe(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(v))


class CSPBundle(BaseModel):
    domains: CSPDomainSet
    policy: str
    meta_tag: str
    headers: Dict[str, str] = Field(default_factory=dict)


class CSPValidation(BaseModel):
    is_valid: bool
    issues: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


# --- Pipeline ---

class PipelineState(str, Enum):
    """
    RAW → SANITIZED → FIXED → WRAPPED → ACCEPTED
            ↘──────────↘───────────────↗  (early accept when the score clears the threshold)
    """
    RAW = "RAW"
    SANITIZED = "SANITIZED"
    FIXED = "FIXED"
    WRAPPED = "WRAPPED"
    ACCEPTED = "ACCEPTED"


class PageOutcome(BaseModel):
    filename: str
    content: str
    state: PipelineState = PipelineState.RAW
    history: List[PipelineState] = Field(default_factory=list)
    initial_validation: Optional[ValidationResult] = None
    final_validation: Optional[ValidationResult] = None
    applied_fixes: List[str] = Field(default_factory=list)
    wrapped: bool = False

    @property
    def final_score(self) -> Optional[int]:
        return self.final_validation.score if self.final_validation else None


class GenerationResult(BaseModel):
    files: Dict[str, str] = Field(default_factory=dict)
    pages: Dict[str, PageOutcome] = Field(default_factory=dict)
    completeness: PageCompletenessResult
    csp: CSPBundle
    regeneration_requests: List[RegenerationRequest] = Field(default_factory=list)
