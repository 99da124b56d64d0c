# tests/shell/conftest.py
import json

import pytest

from pageguard_shell.core.managers.config_manager import ConfigManager
from pageguard_shell.core.utils.path_utils import PathUtils

MOCK_SETTINGS_CONTENT = {
    "debug": {
        "level": "WARNING",
        "modules": {},
        "silenced": {"bs4": "ERROR"},
    },
    "check": {
        "expected_pages": ["index.html"],
        "fallback_title": "Test Site",
    },
    "policy": {
        "acceptance_threshold": 80,
        "allow_inline_styles": True,
        "script_allowlist": ["https://unpkg.com"],
    },
}

INDEX_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Harbour Cycles</title>
  <meta name="description" content="Bicycle repairs and rentals by the harbour.">
  <meta property="og:title" content="Harbour Cycles">
  <link rel="stylesheet" href="style.css">
  <script src="https://unpkg.com/htmx.org@1.9.0"></script>
</head>
<body>
  <header><nav><a href="index.html">Home</a></nav></header>
  <main>
    <h1>Harbour Cycles</h1>
    <p>We repair city bikes, racing bikes and cargo bikes in our workshop next to the ferry terminal.
       Most repairs are done the same day, and we lend you a bike while yours is in the stand.</p>
    <p>Rentals start at ten euros a day. Every rental bike comes with a lock, lights and a map of the
       coastal route, which takes about three hours at an easy pace.</p>
    <img src="https://images.example.com/workshop.jpg" alt="Our workshop" loading="lazy">
  </main>
  <footer><p>Harbour Cycles, Quay 4</p></footer>
</body>
</html>
"""

STYLE_CSS = ":root { --sea: #0e7490; }\na:focus-visible { outline: 2px solid var(--sea); }\n"


@pytest.fixture
def config_env(tmp_path, monkeypatch):
    """
    Isolated environment for the ConfigManager:
    - a temporary package root holding a mock settings.json,
    - a temporary home so no real ~/.pageguard/settings.json is picked up.
    """
    package_root = tmp_path / "pageguard_shell"
    package_root.mkdir()
    settings_file = package_root / "settings.json"
    settings_file.write_text(json.dumps(MOCK_SETTINGS_CONTENT))

    monkeypatch.setattr(PathUtils, "get_shell_package_root", lambda: package_root)
    monkeypatch.setattr(PathUtils, "get_user_config_dir", lambda: tmp_path / "home" / ".pageguard")

    manager = ConfigManager()
    manager.load(None)  # Forget any earlier --settings path and reload from the mock file
    return manager


@pytest.fixture
def settings_file(config_env, tmp_path):
    """The mock settings.json, for passing to --settings."""
    return tmp_path / "pageguard_shell" / "settings.json"


@pytest.fixture
def site_dir(tmp_path):
    site = tmp_path / "site"
    site.mkdir()
    (site / "index.html").write_text(INDEX_PAGE, encoding="utf-8")
    (site / "style.css").write_text(STYLE_CSS, encoding="utf-8")
    (site / "notes.bin").write_bytes(b"\x00\x01")
    return site


@pytest.fixture
def index_page() -> str:
    return INDEX_PAGE
