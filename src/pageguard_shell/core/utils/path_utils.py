# src/pageguard_shell/core/utils/path_utils.py
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class PathUtils:
    """
    A central utility for reliably retrieving the paths the shell reads from.
    """

    @staticmethod
    def get_shell_package_root() -> Path:
        """Directory of the installed `pageguard_shell` package (holds the default settings.json)."""
        return Path(__file__).resolve().parents[2]

    @staticmethod
    def get_default_settings_file() -> Path:
        return PathUtils.get_shell_package_root() / "settings.json"

    @staticmethod
    def get_user_config_dir() -> Path:
        """
        Returns the path to the user's config directory (e.g., ~/.pageguard/).
        A settings.json placed there overrides the package default.
        """
        return Path.home() / ".pageguard"

    @staticmethod
    def get_user_settings_file() -> Path:
        return PathUtils.get_user_config_dir() / "settings.json"

    @staticmethod
    def relative_posix(path: Path, root: Path) -> str:
        """Filename key used for generated files: POSIX separators, relative to the site root."""
        return path.relative_to(root).as_posix()
