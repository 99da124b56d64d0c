# src/pageguard_shell/core/managers/config_manager.py
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pageguard.policy import GuardPolicy
from pageguard_shell.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    A singleton class to manage the application's configuration.
    It loads settings from a file and allows for in-memory modifications
    (e.g. `--set policy.acceptance_threshold=80` on the command line).
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self._config: Dict[str, Any] = {}
        self._settings_path: Optional[Path] = None
        self.reset()
        logger.debug("ConfigManager initialized.")

    @property
    def settings_path(self) -> Path:
        """Explicit path if one was loaded, else the user's settings.json, else the package default."""
        if self._settings_path is not None:
            return self._settings_path
        user_file = PathUtils.get_user_settings_file()
        if user_file.exists():
            return user_file
        return PathUtils.get_default_settings_file()

    def get_all(self) -> Dict[str, Any]:
        """Returns the entire current configuration dictionary."""
        return self._config

    def get_nested(self, key_path: str, default: Optional[Any] = None) -> Any:
        """
        Safely retrieves a nested value from the configuration.
        e.g., 'policy.acceptance_threshold'.
        """
        value = self._config
        for key in key_path.split('.'):
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
        return value if value is not None else default

    def set_nested(self, key_path: str, value: Any) -> bool:
        """
        Sets a nested value in the in-memory configuration, casting it to the
        type of the value it replaces when possible.
        """
        keys = key_path.split('.')
        d = self._config
        for key in keys[:-1]:
            d = d.setdefault(key, {})
            if not isinstance(d, dict):
                logger.error("Cannot set value: '%s' is not a dictionary.", key)
                return False

        original_value = d.get(keys[-1])
        if isinstance(original_value, bool) and isinstance(value, str):
            value = value.strip().lower() in ("1", "true", "yes", "on")
        elif isinstance(original_value, (list, dict)) and isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                logger.warning("Could not parse '%s' as JSON for '%s'. Storing as string.", value, key_path)
        elif original_value is not None:
            try:
                value = type(original_value)(value)
            except (ValueError, TypeError):
                logger.warning(
                    "Could not cast new value for '%s' to type %s. Storing as string.",
                    key_path, type(original_value).__name__
                )

        d[keys[-1]] = value
        logger.info("Configuration updated: %s = %s", key_path, value)
        return True

    def load(self, path: Optional[Path]) -> None:
        """Switches to another settings file (e.g. from `--settings`) and reloads it."""
        self._settings_path = Path(path) if path else None
        self.reset()

    def reset(self):
        """Resets the in-memory configuration from the settings file."""
        config_path = self.settings_path
        try:
            if not config_path.exists():
                logger.warning("settings.json not found at %s. Using empty config.", config_path)
                self._config = {}
                return
            with open(config_path, "r", encoding="utf-8") as f:
                self._config = json.load(f)
            logger.debug("Configuration has been (re)loaded from %s.", config_path)
        except (OSError, ValueError) as e:
            logger.error("Failed to load %s: %s", config_path, e)
            self._config = {}

    def get_policy(self) -> GuardPolicy:
        """
        Builds the GuardPolicy from the 'policy' section.
        Raises pydantic.ValidationError when the section holds invalid values.
        """
        return GuardPolicy(**(self.get_nested("policy", {}) or {}))


# The global singleton instance that the entire application will use.
config_manager = ConfigManager()
