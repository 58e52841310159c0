"""
Shared utilities for TypeScript client generation.

Contains the indentation-aware code builder plus the naming, parameter and JSDoc
helpers used by the route function and preamble emitters.
"""

import re
from typing import List, Dict, Optional

from tsroutes.core.constants import TS_RESERVED_WORDS, GENERATED_IDENTIFIERS
from tsroutes.core.schema import RouteDescriptor, FieldDescriptor


class CodeBuilder:
    """Helper for building indented code with automatic indent management."""

    def __init__(self, indent_size: int = 2):
        self.lines = []
        self.indent_level = 0
        self.indent_size = indent_size

    def add_line(self, line: str = ""):
        """Add line with current indentation."""
        if line.strip():  # Only indent non-empty lines
            indented = " " * (self.indent_level * self.indent_size) + line
            self.lines.append(indented)
        else:
            self.lines.append("")  # Empty line

    def add_lines(self, lines: List[str]):
        """Add multiple lines."""
        for line in lines:
            self.add_line(line)

    def indent(self):
        """Increase indentation level."""
        self.indent_level += 1

    def dedent(self):
        """Decrease indentation level."""
        self.indent_level = max(0, self.indent_level - 1)

    def add_block(self, opening: str, closing: str = "}"):
        """Context manager for blocks like { ... }."""
        return BlockContext(self, opening, closing)

    def get_code(self) -> str:
        """Get final code string."""
        return "\n".join(self.lines)


class BlockContext:
    """Context manager for automatic block indentation."""

    def __init__(self, builder: CodeBuilder, opening: str, closing: str):
        self.builder = builder
        self.closing = closing
        self.builder.add_line(opening)
        self.builder.indent()

    def __enter__(self):
        return self.builder

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Dedent first, then add closing line
        self.builder.dedent()
        self.builder.add_line(self.closing)
        return None


# === NAMING === #

_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_]")


def generate_function_name(route: RouteDescriptor, omit_url_prefix: Optional[str] = None) -> str:
    """
    Derive the exported function name from method and path.

    ``GET /users/:id`` -> ``get_users_id``. The first occurrence of
    ``omit_url_prefix`` is removed from the path before conversion.
    """
    path = route.path
    if omit_url_prefix:
        path = path.replace(omit_url_prefix, "", 1)

    name = route.method.lower() + path
    name = name.replace("/", "_").replace(":", "").replace("@", "")
    return _INVALID_NAME_CHARS.sub("_", name)


def to_parameter_name(field: FieldDescriptor) -> str:
    """
    TypeScript parameter identifier for a bound field.

    Reserved words and identifiers the generated function body reads (``url``,
    ``config``, ``baseUrl``, ``fetchJson``, ...) get a ``_value`` suffix.
    """
    name = _INVALID_NAME_CHARS.sub("_", field.name)
    if name[:1].isdigit():
        name = f"_{name}"
    if name in TS_RESERVED_WORDS or name in GENERATED_IDENTIFIERS:
        name = f"{name}_value"
    return name


def assign_parameter_names(fields: List[FieldDescriptor]) -> Dict[FieldDescriptor, str]:
    """
    Unique parameter identifiers for one function signature, keyed by field.

    Fields whose names sanitise to the same identifier (``a-b`` and ``a_b``) keep
    declaration order; each later one gets another ``_value`` suffix.
    """
    names: Dict[FieldDescriptor, str] = {}
    taken = set()
    for field in fields:
        name = to_parameter_name(field)
        while name in taken:
            name = f"{name}_value"
        taken.add(name)
        names[field] = name
    return names


def quote_string(value: str) -> str:
    """Single-quoted TypeScript string literal."""
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def escape_template_literal(text: str) -> str:
    """Escape static text placed inside a backtick template literal."""
    return text.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")


# === JSDOC GENERATION === #

def generate_function_jsdoc(route: RouteDescriptor) -> str:
    """One-line JSDoc: the route docstring, or ``METHOD path``."""
    description = (route.docstring or route.label).replace("*/", "*\\/")
    return f"/** {description} */"
