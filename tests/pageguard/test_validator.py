# tests/pageguard/test_validator.py
import pytest

from pageguard import codes
from pageguard.controllers.validation_controller import StaticValidator, validate_code
from pageguard.dom.registry import DOMRegistry
from pageguard.policy import GuardPolicy, ScoreWeights


@pytest.fixture
def validator():
    return StaticValidator(GuardPolicy())


def issue_codes(result):
    return [issue.code for issue in result.issues]


def test_good_page_scores_full_marks(validator, good_page):
    result = validator.validate(good_page)
    assert result.issues == []
    assert result.score == 100
    assert result.passed


def test_empty_input_reports_structural_errors(validator):
    result = validator.validate("")
    found = set(issue_codes(result))
    assert {
        codes.MISSING_DOCTYPE, codes.MISSING_LANG, codes.MISSING_TITLE, codes.MISSING_CHARSET,
        codes.MISSING_VIEWPORT, codes.MISSING_H1, codes.MISSING_LANDMARKS,
    } <= found
    assert not result.passed
    assert validator.validate(None).score == result.score


@pytest.mark.parametrize("html", [
    "",
    "<html><body>Test</body></html>",
    "<h1>a</h1><h1>b</h1><h4>c</h4><img src=x><img src=y><button></button><input name=q>",
])
def test_score_follows_weights(validator, html):
    """score == max(0, 100 - 10*errors - 3*warnings - 1*infos) and passed iff no errors."""
    result = validator.validate(html)
    expected = max(0, 100 - 10 * result.counts.errors - 3 * result.counts.warnings - result.counts.infos)
    assert result.score == expected
    assert 0 <= result.score <= 100
    assert result.passed == (result.counts.errors == 0)
    assert result.counts.errors + result.counts.warnings + result.counts.infos == len(result.issues)


def test_custom_weights_change_the_score():
    policy = GuardPolicy(weights=ScoreWeights(error=50, warning=0, info=0))
    result = StaticValidator(policy).validate("<p>no structure at all</p>")
    assert result.score == 0
    assert not result.passed


def test_missing_alt_reports_line(validator, good_page, line_of):
    page = good_page.replace('alt="A sourdough loaf on a wooden board" ', "")
    result = validator.validate(page)
    [issue] = [i for i in result.issues if i.code == codes.MISSING_ALT]
    assert issue.severity == "error"
    assert issue.category == "accessibility"
    assert issue.line == line_of(page, "<img")


def test_empty_alt_is_decorative(validator, good_page):
    page = good_page.replace('alt="A sourdough loaf on a wooden board"', 'alt=""')
    assert codes.MISSING_ALT not in issue_codes(validator.validate(page))


def test_lazy_loading_skips_above_the_fold_images(validator):
    html = '<img src="hero.jpg" alt="Hero"><img src="team.jpg" alt="Team" class="photo">'
    lazy = [i for i in validator.validate(html).issues if i.code == codes.IMG_NO_LAZY_LOADING]
    assert len(lazy) == 1
    assert "team.jpg" in lazy[0].message
    assert lazy[0].auto_fixable


def test_heading_outline(validator, good_page, line_of):
    page = good_page.replace("<h2>Our bread</h2>", "<h1>Our bread</h1>\n<h3>Rye</h3>")
    result = validator.validate(page)
    [multiple] = [i for i in result.issues if i.code == codes.MULTIPLE_H1]
    [skipped] = [i for i in result.issues if i.code == codes.SKIPPED_HEADING_LEVEL]
    assert multiple.line == line_of(page, "<h1>Our bread</h1>")
    assert skipped.message == "Skipped heading level: h1 to h3"
    assert skipped.line == line_of(page, "<h3>Rye</h3>")


def test_only_first_heading_skip_is_reported(validator):
    result = validator.validate("<h1>a</h1><h3>b</h3><h6>c</h6>")
    assert issue_codes(result).count(codes.SKIPPED_HEADING_LEVEL) == 1


VALIDATOR_CODES = {
    codes.MISSING_DOCTYPE, codes.MISSING_CHARSET, codes.MISSING_VIEWPORT, codes.MISSING_LANG,
    codes.MISSING_H1, codes.MULTIPLE_H1, codes.SKIPPED_HEADING_LEVEL, codes.MISSING_TITLE,
    codes.EMPTY_TITLE, codes.TITLE_TOO_LONG, codes.MISSING_META_DESC, codes.MISSING_OPEN_GRAPH,
    codes.MISSING_LANDMARKS, codes.MISSING_ALT, codes.IMG_NO_LAZY_LOADING, codes.BUTTON_NO_NAME,
    codes.INPUT_NO_ID, codes.GENERIC_LINK_TEXT, codes.EXTERNAL_LINK_NO_REL, codes.MISSING_FOCUS_STYLES,
    codes.EXCESSIVE_INLINE_STYLES, codes.LARGE_INLINE_SCRIPT, codes.NO_CSS_CUSTOM_PROPERTIES,
}


def test_no_rules_outside_the_rule_table(validator):
    assert set(DOMRegistry.get_all_possible_codes()) <= VALIDATOR_CODES

    # An empty <h1> and a large inline data: image are not scored
    image = '<img alt="x" loading="lazy" src="data:image/png;base64,' + "A" * 30000 + '">'
    found = set(issue_codes(validator.validate("<h1>  </h1>" + image)))
    assert found <= VALIDATOR_CODES
    assert codes.MISSING_H1 not in found


@pytest.mark.parametrize("button, flagged", [
    ("<button></button>", True),
    ("<button>Send</button>", False),
    ('<button aria-label="Close"></button>', False),
    ('<button><img src="x.svg" alt="Search"></button>', False),
])
def test_button_needs_a_name(validator, button, flagged):
    assert (codes.BUTTON_NO_NAME in issue_codes(validator.validate(button))) is flagged


def test_form_controls_need_ids(validator):
    html = '<input name="q"><input type="submit" value="Go"><textarea id="msg"></textarea><select></select>'
    flagged = [i for i in validator.validate(html).issues if i.code == codes.INPUT_NO_ID]
    assert len(flagged) == 2


def test_links(validator):
    html = '<a href="https://example.com">click here</a><a href="/about" rel="nofollow">About</a>'
    found = issue_codes(validator.validate(html))
    assert found.count(codes.EXTERNAL_LINK_NO_REL) == 1
    assert found.count(codes.GENERIC_LINK_TEXT) == 1


def test_title_rules(validator, good_page):
    long_title = "A" * 80
    result = validator.validate(good_page.replace("<title>Acme Bakery</title>", f"<title>{long_title}</title>"))
    [issue] = result.issues
    assert issue.code == codes.TITLE_TOO_LONG
    assert issue.severity == "info"
    assert result.score == 99

    result = validator.validate(good_page.replace("<title>Acme Bakery</title>", "<title> </title>"))
    assert issue_codes(result) == [codes.EMPTY_TITLE]


def test_head_metadata_found_without_head_element(validator):
    html = (
        '<!DOCTYPE html><html lang="en"><meta charset="utf-8">'
        '<meta name="Viewport" content="width=device-width"><title>T</title><h1>T</h1></html>'
    )
    found = issue_codes(validator.validate(html))
    assert codes.MISSING_CHARSET not in found
    assert codes.MISSING_VIEWPORT not in found
    assert codes.MISSING_TITLE not in found


def test_legacy_charset_declaration_counts(validator):
    html = '<meta http-equiv="Content-Type" content="text/html; charset=utf-8">'
    assert codes.MISSING_CHARSET not in issue_codes(validator.validate(html))


def test_landmark_roles_count(validator):
    html = '<div role="banner"></div><div role="navigation"></div><div role="main"></div><div role="contentinfo"></div>'
    assert codes.MISSING_LANDMARKS not in issue_codes(validator.validate(html))

    [partial] = [i for i in validator.validate("<main></main>").issues if i.code == codes.MISSING_LANDMARKS]
    assert partial.severity == "info"
    [none] = [i for i in validator.validate("<div></div>").issues if i.code == codes.MISSING_LANDMARKS]
    assert none.severity == "warning"


def test_css_checks(validator):
    styled = "".join(f'<p style="color: red">{n}</p>' for n in range(6))
    found = issue_codes(validator.validate(styled))
    assert codes.EXCESSIVE_INLINE_STYLES in found
    assert codes.MISSING_FOCUS_STYLES in found
    assert codes.NO_CSS_CUSTOM_PROPERTIES in found

    found = issue_codes(validator.validate("<style>:root{--a: 1px} a:focus{outline:1px}</style>"))
    assert codes.MISSING_FOCUS_STYLES not in found
    assert codes.NO_CSS_CUSTOM_PROPERTIES not in found


def test_large_inline_script(validator):
    script = "<script>" + "x" * 5001 + "</script>"
    assert codes.LARGE_INLINE_SCRIPT in issue_codes(validator.validate(script))
    assert codes.LARGE_INLINE_SCRIPT not in issue_codes(validator.validate('<script src="a.js"></script>'))


def test_auto_fixable_flag_matches_fixer_codes(validator):
    result = validator.validate("<p>bare</p>")
    for issue in result.issues:
        assert issue.auto_fixable == (issue.code in codes.AUTO_FIXABLE_CODES)
    assert set(result.auto_fixable_codes) == {
        codes.MISSING_DOCTYPE, codes.MISSING_LANG, codes.MISSING_CHARSET, codes.MISSING_VIEWPORT,
    }


def test_registry_discovers_element_rules(validator):
    registered = set(DOMRegistry.get_all_possible_codes())
    assert {codes.MISSING_ALT, codes.MISSING_TITLE, codes.BUTTON_NO_NAME, codes.INPUT_NO_ID} <= registered
    assert DOMRegistry.get_parser("img") is not None
    assert DOMRegistry.get_parser("head") is None
    assert DOMRegistry.get_document_parser("head") is not None


def test_validation_is_deterministic(good_page):
    assert validate_code(good_page) == validate_code(good_page)
