from typing import List

from bs4 import Tag

from pageguard import codes
from pageguard.model import Issue
from pageguard.policy import GuardPolicy
from ..core import ElementBase, ElementDefinition, audit_spec, make_issue


class ScriptElement(ElementBase):
    tag: str = "script"
    body_length: int = 0


def parse_script(tag: Tag, children: list) -> ScriptElement:
    # html.parser keeps the script body as a single raw string
    body = tag.string or ""
    return ScriptElement(
        tag="script",
        attrs=tag.attrs,
        children=children,
        line=tag.sourceline,
        body_length=len(body.strip()),
    )


@audit_spec(codes=[codes.LARGE_INLINE_SCRIPT])
def check_inline_size(node: ScriptElement, policy: GuardPolicy) -> List[Issue]:
    if node.attr("src") or node.body_length <= policy.large_inline_script_chars:
        return []
    return [make_issue(
        codes.LARGE_INLINE_SCRIPT, "warning", "performance",
        f"Large inline script detected ({node.body_length} chars)",
        "Extract large scripts to external files",
        line=node.line,
    )]


DEFINITION = ElementDefinition(
    tag_names=["script"],
    model=ScriptElement,
    parser=parse_script,
    audit_rules=[check_inline_size]
)
