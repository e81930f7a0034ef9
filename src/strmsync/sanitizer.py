"""Name sanitization for media-server friendly file and folder names.

Every name that ends up in an output path goes through the same ordered
phases:

1. caller supplied regex substitutions, in the order given;
2. (template names only) ``${placeholder}`` substitution;
3. reserved character replacement;
4. removal of empty bracket residue and whitespace normalisation.

The order matters: user patterns see the raw upstream name, and the cleanup
phase runs last so that placeholders which resolved to nothing do not leave
``()`` or ``[-]`` behind.
"""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Optional

from .templating import render_template

LOGGER = logging.getLogger(__name__)

DEFAULT_NAME_TEMPLATE = "${name} (${year}) [${externalProviderId}-${externalId}]"

# Applied in this order, each one only when present in the text.
RESERVED_CHARACTERS: tuple[tuple[str, str], ...] = (
    ("<", ""),
    (">", ""),
    (":", ""),
    ('"', "'"),
    ("/", "-"),
    ("\\", "-"),
    ("|", "-"),
    ("?", ""),
    ("*", "_"),
    ("&", "and"),
    ("\t", ""),
)

_EMPTY_MARKER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\[\s*-\s*\]"),
    re.compile(r"\[\s*\]"),
    re.compile(r"\(\s*\)"),
)
_WHITESPACE_RUN = re.compile(r"\s+")
_GROUP_REFERENCE = re.compile(r"\$(\d+)|\$\{(\w+)\}")

PatternMapping = Mapping[str, str]


@functools.lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> Optional[re.Pattern[str]]:
    """Return the compiled form of ``pattern``, or None if it is not a valid regex.

    Results are memoised per pattern text; an invalid pattern is reported once.
    """
    try:
        return re.compile(pattern)
    except re.error as exc:
        LOGGER.warning("Ignoring invalid cleanup pattern %r: %s", pattern, exc)
        return None


@functools.lru_cache(maxsize=1024)
def translate_replacement(replacement: str) -> str:
    """Accept ``$1`` / ``${name}`` group references alongside Python's ``\\1`` form."""

    def _swap(match: re.Match[str]) -> str:
        group = match.group(1) or match.group(2)
        return f"\\g<{group}>"

    return _GROUP_REFERENCE.sub(_swap, replacement)


def apply_patterns(text: str, patterns: Optional[PatternMapping]) -> str:
    if not patterns:
        return text.strip()

    result = text
    for pattern, replacement in patterns.items():
        compiled = compile_pattern(str(pattern))
        if compiled is None:
            continue
        try:
            result = compiled.sub(translate_replacement(str(replacement or "")), result)
        except (re.error, IndexError) as exc:
            LOGGER.warning("Cleanup pattern %r failed on %r: %s", pattern, text, exc)
    return result.strip()


def replace_reserved_characters(text: str) -> str:
    result = text
    for character, replacement in RESERVED_CHARACTERS:
        if character in result:
            result = result.replace(character, replacement)
    return result


def cleanup_empty_markers(text: str) -> str:
    result = text
    for pattern in _EMPTY_MARKER_PATTERNS:
        result = pattern.sub("", result)
    result = _WHITESPACE_RUN.sub(" ", result)
    return result.strip()


def sanitize(raw: Optional[str], patterns: Optional[PatternMapping] = None) -> str:
    """Clean ``raw`` into a filesystem safe name. Blank input gives ``""``."""
    if raw is None or not str(raw).strip():
        return ""
    result = apply_patterns(str(raw), patterns)
    result = replace_reserved_characters(result)
    return cleanup_empty_markers(result)


@dataclass(frozen=True)
class NameContext:
    """Optional values available to a name template."""

    year: Optional[str] = None
    external_provider_id: Optional[str] = None
    external_id: Optional[str] = None

    def as_template_dict(self, name: str) -> dict[str, str]:
        values = {
            "name": name,
            "year": "",
            "externalProviderId": "",
            "externalId": "",
        }
        if self.year and self.year.strip():
            values["year"] = self.year
        # The id pair is rendered whole or not at all
        if (
            self.external_provider_id
            and self.external_provider_id.strip()
            and self.external_id
            and self.external_id.strip()
        ):
            values["externalProviderId"] = self.external_provider_id
            values["externalId"] = self.external_id
        return values


def format_name(
    raw: Optional[str],
    template: str = DEFAULT_NAME_TEMPLATE,
    patterns: Optional[PatternMapping] = None,
    context: Optional[NameContext] = None,
) -> str:
    if raw is None or not str(raw).strip():
        return ""
    cleaned = apply_patterns(str(raw), patterns)
    rendered = render_template(template, (context or NameContext()).as_template_dict(cleaned))
    rendered = replace_reserved_characters(rendered)
    return cleanup_empty_markers(rendered)


@dataclass(frozen=True)
class NameFormatter:
    """A template plus cleanup patterns, bound once per media kind."""

    template: str = DEFAULT_NAME_TEMPLATE
    patterns: Optional[PatternMapping] = None

    def format(self, raw: Optional[str], context: Optional[NameContext] = None) -> str:
        return format_name(raw, self.template, self.patterns, context)


__all__ = [
    "DEFAULT_NAME_TEMPLATE",
    "NameContext",
    "NameFormatter",
    "RESERVED_CHARACTERS",
    "apply_patterns",
    "cleanup_empty_markers",
    "compile_pattern",
    "format_name",
    "replace_reserved_characters",
    "sanitize",
]
