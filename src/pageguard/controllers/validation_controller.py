import logging
from typing import Optional

from pageguard.dom.builder import DOMBuilder
from pageguard.dom.qngine import QNGINE
from pageguard.model import ValidationResult
from pageguard.policy import GuardPolicy, DEFAULT_POLICY

logger = logging.getLogger(__name__)


class StaticValidator:
    """
    Scores a generated page without rendering it.

    Parses the text into the simplified element tree (DOMBuilder), runs the
    node and document rules (QNGINE) and folds the findings into a
    ValidationResult. The result depends only on the input text and the policy.
    """

    def __init__(self, policy: GuardPolicy = DEFAULT_POLICY):
        self.policy = policy
        self.builder = DOMBuilder()
        self.engine = QNGINE(policy)

    def validate(self, text: Optional[str]) -> ValidationResult:
        doc = self.builder.parse_doc(text or "")
        issues = self.engine.run_audit(doc)
        result = ValidationResult.from_issues(issues, self.policy.weights)

        logger.debug(
            f"Validated {len(text or '')} chars: score={result.score} "
            f"errors={result.counts.errors} warnings={result.counts.warnings} infos={result.counts.infos}"
        )
        return result


def validate_code(text: Optional[str], policy: GuardPolicy = DEFAULT_POLICY) -> ValidationResult:
    return StaticValidator(policy).validate(text)
