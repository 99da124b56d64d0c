from typing import List

from bs4 import Tag

from pageguard import codes
from pageguard.model import Issue
from pageguard.policy import GuardPolicy
from ..core import ElementBase, ElementDefinition, audit_spec, make_issue

# Input types that carry their own label (value/alt) or are never shown.
UNLABELLED_INPUT_TYPES = frozenset({"submit", "button", "hidden", "reset", "image"})


class FormInputElement(ElementBase):
    """<input>, <select> and <textarea> controls."""

    @property
    def input_type(self) -> str:
        return (self.attr("type") or "text").strip().lower()

    @property
    def needs_label(self) -> bool:
        return self.tag != "input" or self.input_type not in UNLABELLED_INPUT_TYPES


def parse_form_input(tag: Tag, children: list) -> FormInputElement:
    return FormInputElement(tag=tag.name, attrs=tag.attrs, children=children, line=tag.sourceline)


@audit_spec(codes=[codes.INPUT_NO_ID])
def check_input_id(node: FormInputElement, policy: GuardPolicy) -> List[Issue]:
    if not node.needs_label or (node.attr("id") or "").strip():
        return []
    return [make_issue(
        codes.INPUT_NO_ID, "warning", "accessibility",
        f"Form control <{node.tag}> missing id for label association",
        'Add an id and associate it with <label for="...">',
        line=node.line,
    )]


DEFINITION = ElementDefinition(
    tag_names=["input", "select", "textarea"],
    model=FormInputElement,
    parser=parse_form_input,
    audit_rules=[check_input_id]
)
