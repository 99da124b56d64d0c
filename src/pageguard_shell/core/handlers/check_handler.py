# src/pageguard_shell/core/handlers/check_handler.py
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from tqdm import tqdm

from pageguard.controllers.pipeline_controller import PipelineController
from pageguard.model import GenerationResult
from pageguard.policy import GuardPolicy
from pageguard_shell.core.managers.config_manager import config_manager
from pageguard_shell.core.services.report_export_service import ReportExportService
from pageguard_shell.core.services.site_files_service import SiteFilesService

logger = logging.getLogger(__name__)

check_help_text = """
  check <dir> [--expect PAGE ...] [--title T] [--prompt-file F] [--site-name N]
              [--out DIR] [--export CSV]
                      Runs every page in <dir> through the safety pipeline and
                      prints a JSON summary. --out writes the processed files
                      (plus regeneration.json when pages must be regenerated),
                      --export writes one row per finding to CSV.
""".strip()


def build_summary(result: GenerationResult) -> Dict[str, Any]:
    pages = {}
    for filename, outcome in result.pages.items():
        pages[filename] = {
            "initial_score": outcome.initial_validation.score if outcome.initial_validation else None,
            "final_score": outcome.final_score,
            "passed": outcome.final_validation.passed if outcome.final_validation else False,
            "path": [s.value for s in outcome.history],
            "applied_fixes": outcome.applied_fixes,
            "wrapped": outcome.wrapped,
        }

    return {
        "pages": pages,
        "completeness": {
            "passed": result.completeness.passed,
            "missing_pages": result.completeness.missing_pages,
            "critical_errors": result.completeness.critical_errors,
            "needs_regeneration": result.completeness.pages_needing_regeneration(),
        },
        "csp": result.csp.policy,
        "regeneration_requests": [r.filename for r in result.regeneration_requests],
    }


def handle_check(args: List[str], policy: GuardPolicy) -> int:
    """
    Loads a generated site, runs the pipeline and reports.

    Returns:
        0 when the site passed the completeness check, 1 otherwise or on errors.
    """
    parser = argparse.ArgumentParser(prog="check", description="Validate and repair a generated site.")
    parser.add_argument("directory", help="Directory holding the generated files.")
    parser.add_argument("--expect", nargs="*", default=None, help="Pages that must exist (default from settings).")
    parser.add_argument("--title", help="Fallback title used when a page has to be wrapped.")
    parser.add_argument("--prompt-file", help="File holding the original generation prompt.")
    parser.add_argument("--site-name", help="Site name used in regeneration prompts.")
    parser.add_argument("--out", help="Directory to write the processed files to.")
    parser.add_argument("--export", help="CSV file to export the issue table to.")

    try:
        parsed = parser.parse_args(args)
    except SystemExit:
        return 1

    try:
        files = SiteFilesService.load(Path(parsed.directory))
        original_prompt = None
        if parsed.prompt_file:
            original_prompt = Path(parsed.prompt_file).read_text(encoding="utf-8")
    except OSError as e:
        print(f"❌ Error: {e}")
        logger.error(f"Could not read input: {e}")
        return 1

    expected = parsed.expect if parsed.expect is not None else config_manager.get_nested("check.expected_pages", [])
    fallback_title = parsed.title or config_manager.get_nested("check.fallback_title")

    controller = PipelineController(policy)
    with tqdm(total=len(files), desc="Checking", unit="file", file=sys.stderr, leave=False) as bar:
        result = controller.run(
            files,
            expected_pages=expected,
            fallback_title=fallback_title,
            original_prompt=original_prompt,
            site_name=parsed.site_name,
            progress_callback=lambda _name: bar.update(1),
        )

    try:
        if parsed.out:
            out_dir = Path(parsed.out)
            SiteFilesService.write(result.files, out_dir)
            if result.regeneration_requests:
                payload = [r.model_dump() for r in result.regeneration_requests]
                (out_dir / "regeneration.json").write_text(json.dumps(payload, indent=2), encoding="utf-8")
        if parsed.export:
            ReportExportService.export_csv(result, Path(parsed.export))
    except OSError as e:
        print(f"❌ Error writing output: {e}")
        logger.error(f"Failed to write output: {e}", exc_info=True)
        return 1

    print(json.dumps(build_summary(result), indent=2))
    return 0 if result.completeness.passed else 1
