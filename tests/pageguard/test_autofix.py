# tests/pageguard/test_autofix.py
import pytest

from pageguard import codes
from pageguard.controllers.validation_controller import StaticValidator
from pageguard.policy import GuardPolicy
from pageguard.services.autofix_service import TRANSFORMS, AutoFixService, auto_fix


@pytest.fixture
def validator():
    return StaticValidator(GuardPolicy())


@pytest.fixture
def fixer():
    return AutoFixService(GuardPolicy())


def fix(fixer, validator, text):
    return fixer.fix(text, validator.validate(text))


def test_transform_table_covers_exactly_the_fixable_codes():
    assert set(TRANSFORMS) == set(codes.AUTO_FIXABLE_CODES)


def test_nothing_to_fix_returns_input_unchanged(fixer, validator, good_page):
    result = fix(fixer, validator, good_page)
    assert result.fixed == good_page
    assert result.applied_fixes == []
    assert result.remaining_issue_count == 0


def test_fixed_codes_do_not_reappear(fixer, validator):
    text = "<p>bare</p>"
    before = validator.validate(text)
    result = fixer.fix(text, before)
    after = validator.validate(result.fixed)

    fixed_codes = {codes.MISSING_DOCTYPE, codes.MISSING_LANG, codes.MISSING_CHARSET, codes.MISSING_VIEWPORT}
    assert not fixed_codes & {issue.code for issue in after.issues}
    assert after.score > before.score
    assert result.applied_fixes == [
        "Added <!DOCTYPE html>",
        "Added lang attribute to <html>",
        "Added <meta charset>",
        "Added viewport meta tag",
    ]
    assert result.remaining_issue_count == len(before.issues) - 4


def test_bare_fragment_gets_a_root_and_head(fixer, validator):
    fixed = fix(fixer, validator, "<p>bare</p>").fixed
    assert fixed.startswith('<!DOCTYPE html>\n<html lang="en">\n<head>\n<meta charset="UTF-8">\n<meta name="viewport"')
    assert "<p>bare</p>" in fixed
    assert fixed.rstrip().endswith("</html>")


def test_viewport_goes_into_existing_head(fixer, validator, good_page):
    page = good_page.replace('  <meta name="viewport" content="width=device-width, initial-scale=1.0">\n', "")
    page = page.replace('  <meta charset="UTF-8">\n', "")
    fixed = fix(fixer, validator, page).fixed
    head = fixed[fixed.index("<head>"):fixed.index("</head>")]
    assert '<meta charset="UTF-8">' in head
    assert head.index("charset") < head.index("viewport")


def test_only_the_repaired_tag_changes(fixer, validator, good_page):
    page = good_page.replace(' rel="noopener noreferrer"', "")
    result = fix(fixer, validator, page)
    assert result.fixed == page.replace(
        '<a href="https://maps.example.com/acme"',
        '<a rel="noopener noreferrer" href="https://maps.example.com/acme"',
    )
    assert result.applied_fixes == ["Added rel hardening to external links"]


def test_lazy_loading_respects_above_the_fold_hints(fixer, validator):
    text = '<img src="hero.jpg" alt="Hero">\n<img src="team.jpg" alt="Team">'
    fixed = fix(fixer, validator, text).fixed
    assert '<img src="hero.jpg" alt="Hero">' in fixed
    assert '<img loading="lazy" src="team.jpg" alt="Team">' in fixed


def test_empty_lang_is_replaced_in_place(fixer, validator):
    text = '<!DOCTYPE html>\n<html lang="" data-theme="dark">\n<body><h1>x</h1></body>\n</html>'
    fixed = fix(fixer, validator, text).fixed
    assert '<html lang="en" data-theme="dark">' in fixed


def test_lookalike_attributes_are_not_mistaken_for_lang(fixer, validator):
    text = '<!DOCTYPE html>\n<html data-lang="nl">\n<body><h1>x</h1></body>\n</html>'
    fixed = fix(fixer, validator, text).fixed
    assert '<html lang="en" data-lang="nl">' in fixed


def test_misplaced_doctype_moves_to_the_top(fixer, validator):
    fixed = fix(fixer, validator, "<p>x</p>\n<!DOCTYPE html>").fixed
    assert fixed.startswith("<!DOCTYPE html>\n")
    assert fixed.count("<!DOCTYPE html>") == 1


def test_script_bodies_are_never_patched(fixer, validator):
    text = '<script>const tpl = "<!DOCTYPE html><img src=a.png>";</script>\n<p>x</p>'
    fixed = fix(fixer, validator, text).fixed
    assert 'const tpl = "<!DOCTYPE html><img src=a.png>";' in fixed
    assert fixed.startswith("<!DOCTYPE html>\n")


@pytest.mark.parametrize("link, flagged", [
    ('<a href="/x" href="https://e.com">x</a>', False),
    ('<a href="https://e.com" href="/x">x</a>', True),
])
def test_duplicate_href_uses_the_first_value(fixer, validator, link, flagged):
    before = validator.validate(link)
    assert (codes.EXTERNAL_LINK_NO_REL in {i.code for i in before.issues}) is flagged

    after = validator.validate(fixer.fix(link, before).fixed)
    assert codes.EXTERNAL_LINK_NO_REL not in {i.code for i in after.issues}


def test_module_function_uses_policy_language(validator):
    policy = GuardPolicy(default_lang="nl")
    text = "<!DOCTYPE html><html><body><h1>Hallo</h1></body></html>"
    result = auto_fix(text, validator.validate(text), policy)
    assert '<html lang="nl">' in result.fixed
