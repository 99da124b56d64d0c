# tests/pageguard/test_csp.py
import pytest

from pageguard.policy import GuardPolicy
from pageguard.services.csp_service import (
    SECURITY_HEADERS,
    CSPService,
    extract_external_domains,
    origin_of,
    validate_csp,
)

SAMPLE = """<!DOCTYPE html>
<html lang="en">
<head>
  <link rel="stylesheet" href="https://use.typekit.net/abc1234">
  <link rel="stylesheet" href="https://cdn.example.com/theme.css?v=2">
  <script src="https://cdn.example.com/lib.js"></script>
  <script type="module" src="https://cdn.example.com/app.mjs"></script>
  <script src="/js/local.js"></script>
  <style>
    @import url("https://styles.example.net/extra.css");
    @font-face { font-family: X; src: url('https://fonts.example.net/x.woff2') format('woff2'); }
  </style>
</head>
<body>
  <img src="https://img.example.com/a.png" alt="">
  <img src="data:image/png;base64,AAAA" alt="">
  <img srcset="https://img2.example.com/a.webp 1x, https://img3.example.com/b.webp 2x" alt="">
  <img src="images/local.jpg" alt="">
  <script>
    fetch("https://api.example.com/v1/items");
    axios.post('https://api2.example.com:8443/orders', {});
    fetch("/api/local");
  </script>
</body>
</html>
"""


@pytest.fixture
def csp():
    return CSPService(GuardPolicy())


@pytest.mark.parametrize("url, expected", [
    ("https://cdn.example.com/a.js", "https://cdn.example.com"),
    ("HTTPS://CDN.Example.com/a.js", "https://cdn.example.com"),
    ("https://cdn.example.com:443/a.js", "https://cdn.example.com"),
    ("http://cdn.example.com:8080/a.js", "http://cdn.example.com:8080"),
    ("https://[::1]:8443/x", "https://[::1]:8443"),
    ("/js/local.js", None),
    ("images/a.png", None),
    ("data:image/png;base64,AAAA", None),
    ("blob:https://example.com/1234", None),
    ("http://[broken/x", None),
])
def test_origin_of(url, expected):
    assert origin_of(url) == expected


def test_extracts_each_source_kind(csp):
    domains = csp.extract_domains(SAMPLE)
    assert domains.scripts[0] == "https://cdn.example.com"
    assert domains.scripts.count("https://cdn.example.com") == 1
    assert "https://unpkg.com" in domains.scripts
    assert {"https://use.typekit.net", "https://cdn.example.com", "https://styles.example.net"} <= set(domains.styles)
    assert "https://fonts.example.net" in domains.fonts
    assert "https://fonts.gstatic.com" in domains.fonts
    assert domains.apis == ["https://api.example.com", "https://api2.example.com:8443"]
    assert domains.images == ["https://img.example.com", "https://img2.example.com", "https://img3.example.com"]


def test_relative_and_inline_sources_are_never_origins(csp):
    domains = csp.extract_domains('<img src="data:image/gif;base64,R0lG"><script src="app.js"></script>')
    assert domains.images == []
    assert domains.apis == []
    assert list(domains.scripts) == list(GuardPolicy().common_script_origins)


def test_data_attributes_are_not_sources(csp):
    domains = csp.extract_domains(
        '<img data-src="https://lazy.example.com/a.png" data-srcset="https://lazy2.example.com/b.png 2x"'
        ' src="https://img.example.com/a.png">'
        '<div data-href="https://css.example.com/x.css"></div>'
    )
    assert domains.images == ["https://img.example.com"]
    assert "https://css.example.com" not in domains.styles


def test_extraction_never_fails(csp):
    domains = extract_external_domains('<script src="http://[::bad/x.js"></script>fetch("ht tp://")')
    assert domains.apis == []
    assert csp.extract_domains(None).images == []


def test_policy_lists_origins_per_directive(csp):
    domains = csp.extract_domains(SAMPLE)
    policy = csp.build_policy(domains)
    directives = {d.split()[0]: d for d in policy.split("; ")}
    assert directives["default-src"] == "default-src 'self'"
    assert directives["script-src"].startswith("script-src 'self' https://cdn.example.com")
    assert "'unsafe-inline'" in directives["style-src"]
    assert directives["img-src"].startswith("img-src 'self' data: https://img.example.com")
    assert "https://api2.example.com:8443" in directives["connect-src"]
    assert directives["object-src"] == "object-src 'none'"
    assert "frame-ancestors" in directives


def test_meta_tag_omits_header_only_directives(csp):
    meta = csp.build_meta_tag(csp.extract_domains(SAMPLE))
    assert meta.startswith('<meta http-equiv="Content-Security-Policy" content="default-src')
    assert "frame-ancestors" not in meta
    assert "upgrade-insecure-requests" in meta


def test_bundle_and_headers(csp, site_files):
    bundle = csp.generate_for_files(site_files)
    assert bundle.headers["Content-Security-Policy"] == bundle.policy
    for key, value in SECURITY_HEADERS.items():
        assert bundle.headers[key] == value

    config = CSPService.deployment_config(bundle)
    [rule] = config["headers"]
    assert rule["source"] == "/(.*)"
    assert {"key": "Content-Security-Policy", "value": bundle.policy} in rule["headers"]


def test_inline_styles_can_be_disallowed():
    strict = CSPService(GuardPolicy(allow_inline_styles=False))
    bundle = strict.generate("<p>x</p>")
    assert "'unsafe-inline'" not in bundle.policy
    validation = CSPService.validate(bundle.policy)
    assert validation.is_valid
    assert validation.warnings == []


def test_validate(csp):
    generated = csp.generate(SAMPLE).policy
    result = validate_csp(generated)
    assert result.is_valid
    assert result.warnings == ["Using 'unsafe-inline' in production is not recommended"]
    assert validate_csp(generated, production=False).warnings == []

    broken = validate_csp("default-src 'self'; script-src 'self' 'unsafe-eval'")
    assert not broken.is_valid
    assert broken.issues == ["Missing required CSP directive: style-src"]
    assert "Using 'unsafe-eval' in production is not recommended" in broken.warnings

    assert not validate_csp(None).is_valid


def test_report_lists_every_section(csp):
    report = CSPService.report(csp.extract_domains(SAMPLE))
    assert report.startswith("# Content Security Policy Report")
    assert "## API Sources (2)" in report
    assert "- https://api.example.com" in report
    assert "## Recommendations" in report
