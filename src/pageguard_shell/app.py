from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from pageguard_shell.core.command_registry import CommandRegistry, help_text, register_all_commands
from pageguard_shell.core.managers.config_manager import config_manager
from pageguard_shell.core.utils.configure_logging import configure_logger

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pageguard",
        description="Safety pipeline for generated web pages.",
        epilog=help_text(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--settings", help="Path to a settings.json to use instead of the default.")
    parser.add_argument("--log-level", help="Overrides debug.level from the settings (e.g. DEBUG).")
    parser.add_argument(
        "--set", action="append", default=[], metavar="KEY=VALUE",
        help="Overrides one configuration value, e.g. policy.acceptance_threshold=80. Repeatable.",
    )
    parser.add_argument("command", choices=sorted(CommandRegistry))
    parser.add_argument("args", nargs=argparse.REMAINDER)
    return parser


def _apply_overrides(overrides: List[str]) -> bool:
    for item in overrides:
        key_path, sep, value = item.partition("=")
        if not sep or not key_path.strip():
            print(f"❌ Error: --set expects KEY=VALUE, got '{item}'.")
            return False
        if not config_manager.set_nested(key_path.strip(), value):
            print(f"❌ Error: Failed to set config value for key '{key_path}'.")
            return False
    return True


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the `pageguard` console script."""
    register_all_commands()
    parser = _build_parser()
    try:
        parsed = parser.parse_args(argv)
    except SystemExit as e:
        return 0 if e.code == 0 else 1

    # Reload on every call so overrides never leak between invocations.
    config_manager.load(parsed.settings)
    if not _apply_overrides(parsed.set):
        return 1

    configure_logger(
        parsed.log_level or config_manager.get_nested("debug.level", "WARNING"),
        config_manager.get_nested("debug.modules", {}),
        config_manager.get_nested("debug.silenced", {}),
    )

    try:
        policy = config_manager.get_policy()
    except ValidationError as e:
        print(f"❌ Error: invalid policy configuration:\n{e}")
        logger.error("Invalid policy configuration: %s", e)
        return 1

    logger.debug("Running command '%s' with args %s", parsed.command, parsed.args)
    return CommandRegistry[parsed.command](parsed.args, policy)


if __name__ == "__main__":
    sys.exit(main())
