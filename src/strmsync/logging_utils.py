from __future__ import annotations

import logging
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from textwrap import wrap
from typing import Any, Union

DEFAULT_WRAP_WIDTH = 110
DEFAULT_LABEL_WIDTH = 22
DEFAULT_INDENT = "    "

FieldMapping = Union[Mapping[str, object], Sequence[tuple[str, object]]]


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple, set)):
        return ", ".join(_stringify(item) for item in value)
    return str(value)


class LogBlockBuilder:
    """Accumulates a titled block of ``label: value`` lines for a single log record."""

    def __init__(self, title: str, *, wrap_width: int = DEFAULT_WRAP_WIDTH, pad_top: bool = True) -> None:
        self.wrap_width = wrap_width
        self.lines: MutableSequence[str] = [""] if pad_top else []
        self.lines.append(title)
        self.lines.append("-" * len(title))

    def add_fields(self, fields: FieldMapping | None) -> None:
        if not fields:
            return
        items = list(fields.items()) if isinstance(fields, Mapping) else list(fields)
        if not items:
            return

        label_width = max(min(max(len(str(key)) for key, _ in items), DEFAULT_LABEL_WIDTH), 8)
        value_width = max(self.wrap_width - len(DEFAULT_INDENT) - label_width - 4, 32)

        for key, value in items:
            wrapped = wrap(_stringify(value), width=value_width) or [""]
            self.lines.append(f"{DEFAULT_INDENT}{str(key):<{label_width}}: {wrapped[0]}")
            for continuation in wrapped[1:]:
                self.lines.append(f"{DEFAULT_INDENT}{'':<{label_width}}  {continuation}")

    def render(self) -> str:
        return "\n".join(self.lines).rstrip()


def render_fields_block(title: str, fields: FieldMapping, *, pad_top: bool = True) -> str:
    builder = LogBlockBuilder(title, pad_top=pad_top)
    builder.add_fields(fields)
    return builder.render()


class ProviderLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with ``[provider::kind]``."""

    def __init__(self, logger: logging.Logger, provider: str, kind: object | None = None) -> None:
        super().__init__(logger, {"provider": provider, "kind": kind})

    @property
    def prefix(self) -> str:
        kind = self.extra.get("kind") if self.extra else None
        provider = self.extra.get("provider") if self.extra else ""
        return f"[{provider}::{kind}]" if kind else f"[{provider}]"

    def with_kind(self, kind: object) -> "ProviderLogAdapter":
        return ProviderLogAdapter(self.logger, str(self.extra["provider"]), kind)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        return f"{self.prefix} {msg}", kwargs
