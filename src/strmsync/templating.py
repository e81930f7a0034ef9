from __future__ import annotations

from string import Template
from typing import Any


class TemplateDict(dict):
    def __missing__(self, key: str) -> str:
        return ""


def render_template(template: str, context: dict[str, Any]) -> str:
    """Render a ``${placeholder}`` template; unknown or unset placeholders become ``""``."""
    enriched = TemplateDict({key: "" if value is None else str(value) for key, value in context.items()})
    return Template(template).safe_substitute(enriched)
