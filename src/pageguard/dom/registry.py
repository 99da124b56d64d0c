# src/pageguard/dom/registry.py
import importlib
import pkgutil
import logging
from typing import Dict, List, Callable, Any, Optional, Set

from .core import ElementDefinition, AuditRule

logger = logging.getLogger(__name__)


class DOMRegistry:
    """
    Central registry for DOM elements, parsers, and audit rules.

    Dynamically discovers and loads ElementDefinition modules from the
    'pageguard.dom.elements' package to populate parsers, rules, and issue codes.
    Populated once from code; read-only afterwards.
    """

    _parsers: Dict[str, Callable] = {}
    _document_parsers: Dict[str, Callable] = {}
    _audit_rules: List[Callable] = []
    _all_codes: Set[str] = set()
    _loaded: bool = False

    @classmethod
    def discover(cls) -> None:
        """
        Discovers and registers all element definitions found in the 'pageguard.dom.elements' package.

        Each module exposing a `DEFINITION` (an `ElementDefinition`) contributes a parser
        for each of its tag names, its audit rules, and its possible issue codes.
        """
        if cls._loaded:
            return

        try:
            import pageguard.dom.elements as elements_pkg

            for _, name, _ in sorted(pkgutil.iter_modules(elements_pkg.__path__), key=lambda m: m.name):
                full_name = f"pageguard.dom.elements.{name}"
                try:
                    module = importlib.import_module(full_name)
                except ImportError as e:
                    logger.error(f"Error loading module {name}: {e}")
                    continue

                defn = getattr(module, "DEFINITION", None)
                if not isinstance(defn, ElementDefinition):
                    continue

                target = cls._document_parsers if defn.scope == "document" else cls._parsers
                for tag_name in defn.tag_names:
                    target[tag_name] = defn.parser

                for rule in defn.audit_rules:
                    cls._register_rule(defn.model, rule)

                cls._all_codes.update(defn.codes)
                logger.debug(f"Element definition loaded: {', '.join(defn.tag_names)}")

            cls._loaded = True
        except ImportError as e:
            logger.error(f"Could not find elements package: {e}")

    @classmethod
    def _register_rule(cls, model_type: Any, rule_func: AuditRule) -> None:
        """
        Registers a single audit rule, wrapping it with a type check.

        Args:
            model_type: The class type this rule applies to.
            rule_func: The function executing the logic.
        """
        def wrapped(node: Any, policy: Any) -> List[Any]:
            if isinstance(node, model_type):
                return rule_func(node, policy)
            return []

        wrapped.__name__ = getattr(rule_func, "__name__", "rule")
        cls._audit_rules.append(wrapped)

    @classmethod
    def get_parser(cls, tag_name: str) -> Optional[Callable]:
        """Retrieves the parser function for a specific HTML tag."""
        return cls._parsers.get(tag_name)

    @classmethod
    def get_document_parser(cls, tag_name: str) -> Optional[Callable]:
        """Retrieves the parser for a document-scoped definition (e.g. the <head> summary)."""
        return cls._document_parsers.get(tag_name)

    @classmethod
    def get_all_rules(cls) -> List[Callable]:
        """Returns a list of all registered audit rule functions."""
        return list(cls._audit_rules)

    @classmethod
    def get_all_possible_codes(cls) -> List[str]:
        """Returns a sorted list of all node-level issue codes registered in the system."""
        return sorted(list(cls._all_codes))
