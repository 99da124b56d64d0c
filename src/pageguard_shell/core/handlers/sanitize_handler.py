# src/pageguard_shell/core/handlers/sanitize_handler.py
import argparse
import logging
import sys
from pathlib import Path
from typing import List

from pageguard.policy import GuardPolicy
from pageguard.services.sanitizer_service import SanitizerService

logger = logging.getLogger(__name__)

sanitize_help_text = """
  sanitize <file> [-o <path>]
                      Prints the sanitized file (or writes it to <path>). The
                      safety verdict and the removed constructs go to stderr.
""".strip()


def handle_sanitize(args: List[str], policy: GuardPolicy) -> int:
    """Returns 0 when the input was already safe, 1 when something had to be removed or on errors."""
    parser = argparse.ArgumentParser(prog="sanitize", description="Strip dangerous markup from a file.")
    parser.add_argument("file")
    parser.add_argument("--output", "-o")

    try:
        parsed = parser.parse_args(args)
    except SystemExit:
        return 1

    try:
        text = Path(parsed.file).read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        logger.error(f"Could not read {parsed.file}: {e}")
        return 1

    sanitizer = SanitizerService(policy)
    threats = sanitizer.find_threats(text)
    cleaned = sanitizer.sanitize(text)

    if parsed.output:
        try:
            Path(parsed.output).write_text(cleaned, encoding="utf-8")
        except OSError as e:
            print(f"❌ Error: {e}", file=sys.stderr)
            return 1
    else:
        print(cleaned)

    if threats:
        print(f"⚠️ Unsafe: removed {len(threats)} construct(s)", file=sys.stderr)
        for threat in threats:
            print(f"   - {threat}", file=sys.stderr)
    else:
        print("✅ Safe: nothing to remove", file=sys.stderr)

    for violation in sanitizer.find_csp_violations(cleaned):
        print(f"   CSP: {violation}", file=sys.stderr)

    return 1 if threats else 0
