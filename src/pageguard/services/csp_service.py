# src/pageguard/services/csp_service.py
import logging
import re
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlsplit

from pageguard import markup
from pageguard.model import CSPBundle, CSPDomainSet, CSPValidation
from pageguard.policy import GuardPolicy, DEFAULT_POLICY

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"http": 80, "https": 443}
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".avif", ".ico")
REQUIRED_DIRECTIVES = ("default-src", "script-src", "style-src")
# Browsers ignore these when the policy is delivered through <meta>
META_IGNORED_DIRECTIVES = ("frame-ancestors", "report-uri", "sandbox")

# Attribute names are anchored so data-src/data-srcset/data-href never match
SCRIPT_SRC_RE = re.compile(r"(?<![\w-])src\s*=\s*[\"']([^\"']+?\.m?js(?:[?#][^\"']*)?)[\"']", re.I)
STYLE_HREF_RE = re.compile(r"(?<![\w-])href\s*=\s*[\"']([^\"']+?\.css(?:[?#][^\"']*)?)[\"']", re.I)
STYLE_IMPORT_RE = re.compile(r"@import\s+(?:url\(\s*)?[\"']?([^\"')\s;]+)", re.I)
FONT_URL_RE = re.compile(
    r"url\(\s*[\"']?([^)\"'\s]+?\.(?:woff2?|ttf|otf|eot)(?:[?#][^)\"'\s]*)?)\s*[\"']?\s*\)",
    re.I,
)
API_CALL_RE = re.compile(
    r"\b(?:fetch|axios(?:\.(?:get|post|put|patch|delete|head|request))?)\s*\(\s*[\"'`]([^\"'`]+)[\"'`]"
)
IMAGE_ATTR_RE = re.compile(r"(?<![\w-])(src|srcset)\s*=\s*(?:\"([^\"]*)\"|'([^']*)')", re.I)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


def origin_of(url: str) -> Optional[str]:
    """
    scheme://host[:port] of an absolute http(s) URL, default ports dropped.
    Relative paths, data:/blob: URIs and unparseable URLs give None.
    """
    try:
        parts = urlsplit(url.strip())
        scheme = parts.scheme.lower()
        if scheme not in DEFAULT_PORTS or not parts.hostname:
            return None
        port = parts.port
    except ValueError:
        return None

    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    if port is None or port == DEFAULT_PORTS[scheme]:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def _origins(urls: Iterable[str]) -> List[str]:
    found: Dict[str, None] = {}
    for url in urls:
        origin = origin_of(url)
        if origin:
            found[origin] = None
    return list(found)


def _path_endswith(url: str, extensions: tuple) -> bool:
    try:
        return urlsplit(url.strip()).path.lower().endswith(extensions)
    except ValueError:
        return False


def _union(extracted: List[str], common: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(list(extracted) + list(common)))


class CSPService:
    """
    Derives a Content-Security-Policy from the third-party origins the generated
    code actually references, plus the policy's common CDN origins.
    Extraction never fails: anything that does not parse as an absolute
    http(s) URL is skipped.
    """

    def __init__(self, policy: GuardPolicy = DEFAULT_POLICY):
        self.policy = policy

    # --- Extraction ---

    def extract_domains(self, code: str) -> CSPDomainSet:
        code = code or ""
        return CSPDomainSet(
            scripts=_union(self._script_origins(code), self.policy.common_script_origins),
            styles=_union(self._style_origins(code), self.policy.common_style_origins),
            fonts=_union(self._font_origins(code), self.policy.common_font_origins),
            apis=self._api_origins(code),
            images=self._image_origins(code),
        )

    @staticmethod
    def _script_origins(code: str) -> List[str]:
        return _origins(m.group(1) for m in SCRIPT_SRC_RE.finditer(code))

    @staticmethod
    def _style_origins(code: str) -> List[str]:
        urls = [m.group(1) for m in STYLE_HREF_RE.finditer(code)]
        urls.extend(m.group(1) for m in STYLE_IMPORT_RE.finditer(code) if _path_endswith(m.group(1), (".css",)))
        # <link rel="stylesheet"> to endpoints without a .css suffix (e.g. Google Fonts)
        for match in markup.OPEN_TAG_RE.finditer(code):
            if match.group(1).lower() != "link":
                continue
            attrs = markup.parse_attrs(match.group(2))
            if "stylesheet" in (attrs.get("rel") or "").lower().split() and attrs.get("href"):
                urls.append(attrs["href"])
        return _origins(urls)

    @staticmethod
    def _font_origins(code: str) -> List[str]:
        return _origins(m.group(1) for m in FONT_URL_RE.finditer(code))

    @staticmethod
    def _api_origins(code: str) -> List[str]:
        return _origins(m.group(1) for m in API_CALL_RE.finditer(code))

    @staticmethod
    def _image_origins(code: str) -> List[str]:
        urls: List[str] = []
        for match in IMAGE_ATTR_RE.finditer(code):
            value = match.group(2) if match.group(2) is not None else match.group(3)
            if match.group(1).lower() == "srcset":
                # "a.png 1x, b.png 2x": the URL is the first token of every candidate
                candidates = [c.split()[0] for c in value.split(",") if c.strip()]
            else:
                candidates = [value]
            urls.extend(c for c in candidates if _path_endswith(c, IMAGE_EXTENSIONS))
        return _origins(urls)

    # --- Generation ---

    def directives(self, domains: CSPDomainSet) -> List[str]:
        style_sources = ["'self'"]
        if self.policy.allow_inline_styles:
            style_sources.append("'unsafe-inline'")

        def _directive(name: str, base: List[str], origins: List[str]) -> str:
            return " ".join([name] + base + origins)

        return [
            "default-src 'self'",
            _directive("script-src", ["'self'"], domains.scripts),
            _directive("style-src", style_sources, domains.styles),
            _directive("font-src", ["'self'"], domains.fonts),
            _directive("connect-src", ["'self'"], domains.apis),
            _directive("img-src", ["'self'", "data:"], domains.images),
            "object-src 'none'",
            "base-uri 'self'",
            "form-action 'self'",
            "frame-ancestors 'none'",
            "upgrade-insecure-requests",
        ]

    def build_policy(self, domains: CSPDomainSet) -> str:
        return "; ".join(self.directives(domains))

    def build_meta_tag(self, domains: CSPDomainSet) -> str:
        kept = [d for d in self.directives(domains) if d.split()[0] not in META_IGNORED_DIRECTIVES]
        content = "; ".join(kept).replace("&", "&amp;").replace('"', "&quot;")
        return f'<meta http-equiv="Content-Security-Policy" content="{content}">'

    def build_headers(self, domains: CSPDomainSet) -> Dict[str, str]:
        headers = {"Content-Security-Policy": self.build_policy(domains)}
        headers.update(SECURITY_HEADERS)
        return headers

    def generate(self, code: str) -> CSPBundle:
        domains = self.extract_domains(code)
        bundle = CSPBundle(
            domains=domains,
            policy=self.build_policy(domains),
            meta_tag=self.build_meta_tag(domains),
            headers=self.build_headers(domains),
        )
        logger.debug(
            f"CSP generated: {len(domains.scripts)} script, {len(domains.styles)} style, "
            f"{len(domains.fonts)} font, {len(domains.apis)} api, {len(domains.images)} image origin(s)"
        )
        return bundle

    def generate_for_files(self, files: Dict[str, str]) -> CSPBundle:
        return self.generate("\n".join(files.values()))

    @staticmethod
    def deployment_config(bundle: CSPBundle, source: str = "/(.*)") -> Dict[str, Any]:
        """Headers document in the shape static hosts accept (JSON-ready)."""
        return {
            "headers": [
                {
                    "source": source,
                    "headers": [{"key": key, "value": value} for key, value in bundle.headers.items()],
                }
            ]
        }

    @staticmethod
    def report(domains: CSPDomainSet) -> str:
        sections = [
            ("Script Sources", domains.scripts),
            ("Style Sources", domains.styles),
            ("Font Sources", domains.fonts),
            ("API Sources", domains.apis),
            ("Image Sources", domains.images),
        ]
        lines = ["# Content Security Policy Report", ""]
        for heading, origins in sections:
            lines.append(f"## {heading} ({len(origins)})")
            lines.extend(f"- {origin}" for origin in origins)
            lines.append("")
        lines.extend([
            "## Recommendations",
            "- Remove 'unsafe-inline' from style-src once inline styles are moved to stylesheets",
            "- Use nonces or hashes instead of 'unsafe-inline'",
            "- Audit the external origins regularly",
        ])
        return "\n".join(lines) + "\n"

    # --- Validation ---

    @staticmethod
    def validate(policy: str, production: bool = True) -> CSPValidation:
        policy = policy or ""
        names = {
            directive.strip().split()[0].lower()
            for directive in policy.split(";")
            if directive.strip()
        }

        issues = [f"Missing required CSP directive: {name}" for name in REQUIRED_DIRECTIVES if name not in names]
        warnings: List[str] = []
        if production:
            if "'unsafe-inline'" in policy:
                warnings.append("Using 'unsafe-inline' in production is not recommended")
            if "'unsafe-eval'" in policy:
                warnings.append("Using 'unsafe-eval' in production is not recommended")

        return CSPValidation(is_valid=not issues, issues=issues, warnings=warnings)


def extract_external_domains(code: str, policy: GuardPolicy = DEFAULT_POLICY) -> CSPDomainSet:
    return CSPService(policy).extract_domains(code)


def validate_csp(policy: str, production: bool = True) -> CSPValidation:
    return CSPService.validate(policy, production)
