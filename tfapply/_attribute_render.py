"""Render Terraform resource attributes as indented, human-scannable text.

Attribute values follow the JSON data model, expressed here as the
:data:`AttributeValue` variant. Mappings open a nested block; every other
value is printed as a compact JSON literal on a single line.

Examples
--------
>>> print(render_attributes({"a": {"b": 1, "c": {"d": 2}}}, indent_level=2))
  - a:
    - b: 1
    - c:
      - d: 2
"""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import TypeAlias

AttributeValue: TypeAlias = (
    "None"
    " | bool"
    " | int"
    " | float"
    " | str"
    " | list[AttributeValue]"
    " | dict[str, AttributeValue]"
)

DEFAULT_INDENT = 8
INDENT_STEP = 2
UNRENDERABLE_LITERAL = '"<too deeply nested>"'


def _finite(value: object) -> object:
    """Replace non-finite floats with ``None`` so they encode as ``null``."""
    match value:
        case float() if not math.isfinite(value):
            return None
        case list() | tuple():
            return [_finite(item) for item in value]
        case Mapping():
            return {key: _finite(item) for key, item in value.items()}
        case _:
            return value


def render_literal(value: object) -> str:
    """Return ``value`` as a compact JSON literal.

    Non-finite floats render as ``null``. Sequences nested too deeply to
    encode render as a placeholder string instead of raising.

    Examples
    --------
    >>> render_literal("x")
    '"x"'
    >>> render_literal([1, "a", None])
    '[1,"a",null]'
    >>> render_literal(True)
    'true'
    >>> render_literal(float("nan"))
    'null'
    """
    match value:
        case None:
            return "null"
        case bool():
            return "true" if value else "false"
        case float() if not math.isfinite(value):
            return "null"
        case int() | float() | str():
            return json.dumps(value, ensure_ascii=False)
        case list() | tuple():
            try:
                return json.dumps(
                    _finite(value),
                    separators=(",", ":"),
                    ensure_ascii=False,
                    default=str,
                )
            except RecursionError:
                return UNRENDERABLE_LITERAL
        case _:
            return json.dumps(str(value), ensure_ascii=False)


def _render_lines(attributes: Mapping[str, AttributeValue], indent_level: int) -> list[str]:
    lines: list[str] = []
    pending = [(iter(attributes.items()), indent_level)]
    while pending:
        items, level = pending[-1]
        entry = next(items, None)
        if entry is None:
            pending.pop()
            continue
        key, value = entry
        indent = " " * level
        match value:
            case Mapping():
                lines.append(f"{indent}- {key}:")
                pending.append((iter(value.items()), level + INDENT_STEP))
            case _:
                lines.append(f"{indent}- {key}: {render_literal(value)}")
    return lines


def render_attributes(attributes: object, indent_level: int = DEFAULT_INDENT) -> str:
    """Render a nested attribute mapping as indented text.

    Parameters
    ----------
    attributes
        Attribute mapping, usually a resource's ``after`` state. Anything that
        is not a mapping (including ``None``) renders as an empty block.
    indent_level
        Number of leading spaces for top-level keys. Each nesting level adds
        two more.

    Returns
    -------
    str
        One line per leaf attribute or nested block header, joined with
        newlines and without a trailing newline.

    Examples
    --------
    >>> render_attributes({"name": "x"})
    '        - name: "x"'
    >>> render_attributes(None)
    ''
    """
    match attributes:
        case Mapping():
            return "\n".join(_render_lines(attributes, indent_level))
        case _:
            return ""
