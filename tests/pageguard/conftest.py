# tests/pageguard/conftest.py
import pytest

from pageguard.policy import GuardPolicy

# A page every validator rule and the completeness check accept.
GOOD_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Acme Bakery</title>
  <meta name="description" content="Fresh bread and pastries baked every morning in the heart of town.">
  <meta property="og:title" content="Acme Bakery">
  <style>
    :root { --brand: #b45309; }
    a:focus-visible { outline: 2px solid var(--brand); }
  </style>
</head>
<body>
  <header>
    <nav><a href="index.html">Home</a> <a href="about.html">About us</a></nav>
  </header>
  <main>
    <h1>Acme Bakery</h1>
    <p>We have been baking sourdough, rye and spelt loaves in the old mill on Station Road since 1987.
       Every loaf is shaped by hand and proofed overnight, so the crust stays crisp and the crumb stays open.</p>
    <h2>Our bread</h2>
    <p>Our bakers start at four in the morning. By seven the shelves are full of warm bread, cinnamon buns
       and the almond croissants our regulars queue for on Saturdays.</p>
    <img src="images/loaf.jpg" alt="A sourdough loaf on a wooden board" loading="lazy">
    <a href="https://maps.example.com/acme" rel="noopener noreferrer">Find the bakery on the map</a>
  </main>
  <footer>
    <p>&copy; 2026 Acme Bakery, Station Road 12</p>
  </footer>
</body>
</html>
"""

ABOUT_PAGE = GOOD_PAGE.replace("<title>Acme Bakery</title>", "<title>About Acme Bakery</title>").replace(
    "<h1>Acme Bakery</h1>", "<h1>About us</h1>"
)


@pytest.fixture
def good_page() -> str:
    return GOOD_PAGE


@pytest.fixture
def site_files():
    """A complete two-page site with a shared stylesheet."""
    return {
        "index.html": GOOD_PAGE,
        "about.html": ABOUT_PAGE,
        "style.css": ":root { --brand: #b45309; }\nbody { font-family: Georgia, serif; }\n",
    }


@pytest.fixture
def policy() -> GuardPolicy:
    return GuardPolicy()


def _line_of(text: str, needle: str) -> int:
    """1-based line number of the first line containing `needle`."""
    for number, line in enumerate(text.splitlines(), start=1):
        if needle in line:
            return number
    raise AssertionError(f"{needle!r} not found")


@pytest.fixture
def line_of():
    return _line_of
