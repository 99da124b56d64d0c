import logging
from typing import Callable, Dict, Iterable, Optional

from pageguard.controllers.validation_controller import StaticValidator
from pageguard.model import GenerationResult, PageOutcome, PipelineState
from pageguard.policy import GuardPolicy, DEFAULT_POLICY
from pageguard.services.autofix_service import AutoFixService
from pageguard.services.completeness_service import CompletenessService, is_html_file
from pageguard.services.csp_service import CSPService
from pageguard.services.regeneration_prompt_service import RegenerationPromptService, page_name_for
from pageguard.services.sanitizer_service import SanitizerService
from pageguard.services.template_wrapper_service import TemplateWrapperService

logger = logging.getLogger(__name__)

Step = Callable[["PipelineController", PageOutcome, str], PipelineState]


class PipelineController:
    """
    Orchestrates one generation request: every HTML page walks the state machine

        RAW -> SANITIZED -> FIXED -> WRAPPED -> ACCEPTED

    accepting early once its score clears the policy threshold. The final file
    set is then checked for completeness and a CSP is derived from it.
    """

    def __init__(self, policy: GuardPolicy = DEFAULT_POLICY):
        self.policy = policy
        self.sanitizer = SanitizerService(policy)
        self.validator = StaticValidator(policy)
        self.fixer = AutoFixService(policy)
        self.wrapper = TemplateWrapperService(policy)
        self.completeness = CompletenessService(policy)
        self.csp = CSPService(policy)
        self.regeneration = RegenerationPromptService(policy)

    def run(
            self,
            files: Dict[str, str],
            expected_pages: Iterable[str] = (),
            fallback_title: Optional[str] = None,
            original_prompt: Optional[str] = None,
            site_name: Optional[str] = None,
            progress_callback: Optional[Callable[[str], None]] = None
    ) -> GenerationResult:
        final_files: Dict[str, str] = {}
        outcomes: Dict[str, PageOutcome] = {}

        for filename, content in files.items():
            if is_html_file(filename):
                outcome = self.process_page(filename, content, fallback_title or page_name_for(filename))
                outcomes[filename] = outcome
                final_files[filename] = outcome.content
            else:
                final_files[filename] = content

            if progress_callback:
                progress_callback(filename)

        completeness = self.completeness.check(final_files, list(expected_pages))
        csp = self.csp.generate_for_files(final_files)

        requests = []
        if original_prompt and not completeness.passed:
            requests = self.regeneration.build_all(original_prompt, final_files, completeness, site_name)

        logger.info(
            f"Pipeline finished: {len(outcomes)} page(s), completeness passed={completeness.passed}, "
            f"{len(requests)} regeneration request(s)"
        )
        return GenerationResult(
            files=final_files,
            pages=outcomes,
            completeness=completeness,
            csp=csp,
            regeneration_requests=requests,
        )

    def process_page(self, filename: str, content: str, fallback_title: str) -> PageOutcome:
        outcome = PageOutcome(filename=filename, content=content or "")
        outcome.history.append(outcome.state)

        while outcome.state != PipelineState.ACCEPTED:
            step = TRANSITIONS.get(outcome.state)
            if step is None:
                raise ValueError(f"No transition defined for state {outcome.state!r}")
            outcome.state = step(self, outcome, fallback_title)
            outcome.history.append(outcome.state)

        logger.debug(
            f"{filename}: {' -> '.join(s.value for s in outcome.history)} "
            f"(score {outcome.initial_validation.score} -> {outcome.final_score})"
        )
        return outcome

    # --- Steps ---

    def _accepts(self, outcome: PageOutcome) -> bool:
        return outcome.final_validation.score >= self.policy.acceptance_threshold

    def _sanitize(self, outcome: PageOutcome, fallback_title: str) -> PipelineState:
        outcome.content = self.sanitizer.sanitize(outcome.content)
        outcome.initial_validation = self.validator.validate(outcome.content)
        outcome.final_validation = outcome.initial_validation
        return PipelineState.SANITIZED

    def _fix(self, outcome: PageOutcome, fallback_title: str) -> PipelineState:
        if self._accepts(outcome):
            return PipelineState.ACCEPTED

        result = self.fixer.fix(outcome.content, outcome.final_validation)
        outcome.content = result.fixed
        outcome.applied_fixes.extend(result.applied_fixes)
        if result.applied_fixes:
            outcome.final_validation = self.validator.validate(outcome.content)
        return PipelineState.FIXED

    def _wrap(self, outcome: PageOutcome, fallback_title: str) -> PipelineState:
        if self._accepts(outcome):
            return PipelineState.ACCEPTED

        wrapped = self.wrapper.wrap(outcome.content, fallback_title)
        if wrapped != outcome.content:
            outcome.content = wrapped
            outcome.wrapped = True
            outcome.final_validation = self.validator.validate(outcome.content)
        return PipelineState.WRAPPED

    def _accept(self, outcome: PageOutcome, fallback_title: str) -> PipelineState:
        # The wrapper is the last resort: its output is accepted whatever the score.
        if not self._accepts(outcome):
            logger.warning(
                f"{outcome.filename} accepted below threshold "
                f"(score {outcome.final_score} < {self.policy.acceptance_threshold})"
            )
        return PipelineState.ACCEPTED


TRANSITIONS: Dict[PipelineState, Step] = {
    PipelineState.RAW: PipelineController._sanitize,
    PipelineState.SANITIZED: PipelineController._fix,
    PipelineState.FIXED: PipelineController._wrap,
    PipelineState.WRAPPED: PipelineController._accept,
}


def run_pipeline(
        files: Dict[str, str],
        expected_pages: Iterable[str] = (),
        fallback_title: Optional[str] = None,
        original_prompt: Optional[str] = None,
        policy: GuardPolicy = DEFAULT_POLICY
) -> GenerationResult:
    return PipelineController(policy).run(files, expected_pages, fallback_title, original_prompt)
