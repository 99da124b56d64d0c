from typing import Dict, Any, List, Callable, Type, Optional, Set, Sequence
from pydantic import BaseModel, Field
from bs4 import Tag

from pageguard.codes import AUTO_FIXABLE_CODES
from pageguard.model import Issue
from pageguard.policy import GuardPolicy


def audit_spec(codes: List[str]):
    """
    Decorator to declare which issue codes a specific audit rule function returns.
    Facilitates auto-discovery by the DOMRegistry.
    """
    def decorator(func):
        func.defined_codes = codes
        return func
    return decorator


def make_issue(
        code: str,
        severity: str,
        category: str,
        message: str,
        fix_hint: str = "",
        line: Optional[int] = None
) -> Issue:
    """Builds an Issue, deriving `auto_fixable` from the code so the flag can never drift from the fixer."""
    return Issue(
        code=code,
        severity=severity,
        category=category,
        message=message,
        fix_hint=fix_hint,
        auto_fixable=code in AUTO_FIXABLE_CODES,
        line=line,
    )


class ElementBase(BaseModel):
    """
    Base data model representing a generic DOM element in the simplified tree.
    """
    tag: str
    attrs: Dict[str, Any] = Field(default_factory=dict)
    text: Optional[str] = ""
    children: List['ElementBase'] = Field(default_factory=list)
    line: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        """Returns True if the element contains no text and no children."""
        return not self.text and not self.children

    def attr(self, name: str) -> Optional[str]:
        """Attribute value as a string; multi-valued attributes (class) are joined."""
        value = self.attrs.get(name)
        if isinstance(value, (list, tuple)):
            return " ".join(value)
        return value


AuditRule = Callable[[Any, GuardPolicy], List[Issue]]


class ElementDefinition:
    """
    Configuration object binding one or more HTML tags to their model, parser, and rules.
    """

    def __init__(
            self,
            tag_names: Sequence[str],
            model: Type[ElementBase],
            parser: Callable[[Tag, List[ElementBase]], ElementBase],
            audit_rules: Optional[List[AuditRule]] = None,
            possible_codes: Optional[List[str]] = None,
            scope: str = "node"
    ):
        # "node": parsed for every matching tag in the tree.
        # "document": parsed once per document by the builder.
        self.tag_names = list(tag_names)
        self.scope = scope
        self.model = model
        self.parser = parser
        self.audit_rules = audit_rules or []

        # --- Auto-Discovery of Issue Codes ---
        final_codes: Set[str] = set(possible_codes or [])

        for rule in self.audit_rules:
            if hasattr(rule, 'defined_codes'):
                final_codes.update(rule.defined_codes)

        self.codes = sorted(list(final_codes))
