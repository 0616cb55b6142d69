"""``{{name}}`` placeholder handling shared by templates and prompts."""

import re
from typing import Any, Dict, List, Mapping

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][\w.]*)\s*\}\}")


def find_placeholders(text: str) -> List[str]:
    """Placeholder names in order of first appearance."""
    names: List[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(text or ""):
        if match.group(1) not in names:
            names.append(match.group(1))
    return names


def find_placeholders_in(value: Any) -> List[str]:
    """Placeholder names anywhere in a JSON-like structure."""
    names: List[str] = []

    def visit(item: Any) -> None:
        if isinstance(item, str):
            for name in find_placeholders(item):
                if name not in names:
                    names.append(name)
        elif isinstance(item, dict):
            for child in item.values():
                visit(child)
        elif isinstance(item, (list, tuple)):
            for child in item:
                visit(child)

    visit(value)
    return names


def render(text: str, variables: Mapping[str, Any]) -> str:
    """Substitute placeholders; unknown names are left untouched."""
    def replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        return str(variables[name])

    return PLACEHOLDER_PATTERN.sub(replace, text)


def render_in(value: Any, variables: Mapping[str, Any]) -> Any:
    """Substitute placeholders in every string of a JSON-like structure."""
    if isinstance(value, str):
        return render(value, variables)
    if isinstance(value, dict):
        return {key: render_in(child, variables) for key, child in value.items()}
    if isinstance(value, list):
        return [render_in(child, variables) for child in value]
    return value


def missing_variables(names: List[str], variables: Dict[str, Any]) -> List[str]:
    """Names without a value."""
    return [name for name in names if name not in variables]
