# src/pageguard_shell/core/command_registry.py
import importlib
import logging
import pkgutil
from typing import Callable, Dict

import pageguard_shell.core.handlers as handlers_pkg

logger = logging.getLogger(__name__)

# The central registries, populated by register_all_commands().
CommandRegistry: Dict[str, Callable[..., int]] = {}
COMMAND_HELP_TEXTS: Dict[str, str] = {}


def register_command(name: str, handler: Callable[..., int]) -> None:
    """Adds a command and its handler function to the registry."""
    CommandRegistry[name] = handler
    logger.debug("Registered command '%s'", name)


def register_all_commands() -> None:
    """
    Imports every `*_handler` module under pageguard_shell.core.handlers and
    registers its `handle_<name>` functions and `<name>_help_text` strings.
    """
    for module_info in pkgutil.iter_modules(handlers_pkg.__path__):
        if not module_info.name.endswith("_handler"):
            continue
        try:
            module = importlib.import_module(f"{handlers_pkg.__name__}.{module_info.name}")
        except ImportError as e:
            logger.error("Failed to load handler module %s: %s", module_info.name, e, exc_info=True)
            continue

        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if attr_name.startswith("handle_") and callable(attr):
                command_name = attr_name[len("handle_"):]
                if command_name not in CommandRegistry:
                    register_command(command_name, attr)
            elif attr_name.endswith("_help_text") and isinstance(attr, str):
                COMMAND_HELP_TEXTS[attr_name[:-len("_help_text")]] = attr

    logger.debug("Successfully registered %d handlers.", len(CommandRegistry))


def help_text() -> str:
    return "Commands:\n" + "\n".join(COMMAND_HELP_TEXTS[name] for name in sorted(COMMAND_HELP_TEXTS))
