# src/pageguard_shell/core/services/site_files_service.py
import logging
from pathlib import Path
from typing import Dict

from pageguard_shell.core.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = (".html", ".htm", ".css", ".js", ".mjs", ".json", ".svg", ".txt")


class SiteFilesService:
    """
    Reads a generated site from disk into the filename -> content mapping the
    pipeline works on, and writes the processed mapping back out.
    Filenames are relative POSIX paths so links between pages resolve.
    """

    @staticmethod
    def load(directory: Path) -> Dict[str, str]:
        root = Path(directory)
        if not root.is_dir():
            raise NotADirectoryError(f"Not a directory: {root}")

        files: Dict[str, str] = {}
        for path in sorted(root.rglob("*")):
            if not path.is_file() or path.suffix.lower() not in TEXT_SUFFIXES:
                continue
            files[PathUtils.relative_posix(path, root)] = path.read_text(encoding="utf-8", errors="replace")

        logger.info(f"Loaded {len(files)} file(s) from {root}")
        return files

    @staticmethod
    def write(files: Dict[str, str], out_dir: Path) -> int:
        root = Path(out_dir)
        for name, content in files.items():
            target = root / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        logger.info(f"Wrote {len(files)} file(s) to {root}")
        return len(files)
