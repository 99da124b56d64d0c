# src/pageguard_shell/core/handlers/csp_handler.py
import argparse
import json
import logging
from pathlib import Path
from typing import List

from pageguard.policy import GuardPolicy
from pageguard.services.csp_service import CSPService
from pageguard_shell.core.services.site_files_service import SiteFilesService

logger = logging.getLogger(__name__)

FORMATS = ("header", "meta", "json", "report")

csp_help_text = """
  csp <dir> [--format header|meta|json|report] [--dev]
                      Derives a Content-Security-Policy from the external origins
                      the files in <dir> reference. 'json' prints a deployment
                      headers document, 'report' a Markdown report with the
                      policy's validation findings (--dev skips production warnings).
""".strip()


def handle_csp(args: List[str], policy: GuardPolicy) -> int:
    parser = argparse.ArgumentParser(prog="csp", description="Generate a Content-Security-Policy.")
    parser.add_argument("directory")
    parser.add_argument("--format", choices=FORMATS, default="header")
    parser.add_argument("--dev", action="store_true", help="Validate for development instead of production.")

    try:
        parsed = parser.parse_args(args)
    except SystemExit:
        return 1

    try:
        files = SiteFilesService.load(Path(parsed.directory))
    except OSError as e:
        print(f"❌ Error: {e}")
        logger.error(f"Could not read input: {e}")
        return 1

    service = CSPService(policy)
    bundle = service.generate_for_files(files)

    if parsed.format == "header":
        for key, value in bundle.headers.items():
            print(f"{key}: {value}")
    elif parsed.format == "meta":
        print(bundle.meta_tag)
    elif parsed.format == "json":
        print(json.dumps(CSPService.deployment_config(bundle), indent=2))
    else:
        print(CSPService.report(bundle.domains))
        validation = CSPService.validate(bundle.policy, production=not parsed.dev)
        for issue in validation.issues:
            print(f"- ❌ {issue}")
        for warning in validation.warnings:
            print(f"- ⚠️ {warning}")

    return 0
