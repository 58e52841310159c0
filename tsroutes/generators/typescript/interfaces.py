"""
tsroutes Interface Generator

Maps structural TypeDescriptors onto TypeScript type expressions and emits
``export interface`` declarations for named structs, applying json renaming,
json:"-" skipping and omitempty optionality.
"""

import re
import logging
from typing import List, Dict, Optional

from tsroutes.core.schema import TypeDescriptor, TypeKind, FieldDescriptor, RouteDescriptor, BindingKind


logger = logging.getLogger(__name__)

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

_PRIMITIVE_TS_TYPES = {
    TypeKind.STRING: "string",
    TypeKind.BOOL: "boolean",
    TypeKind.INT: "number",
    TypeKind.UINT: "number",
    TypeKind.FLOAT: "number",
}


# === TYPE MAPPING === #

def convert_type_to_typescript(descriptor: Optional[TypeDescriptor]) -> str:
    """
    Convert a TypeDescriptor to a TypeScript type expression.

    None (no response type) maps to ``void``; kinds without a structural
    equivalent (maps, unions, unknown) map to ``any``.
    """
    if descriptor is None:
        return "void"

    kind = descriptor.kind

    if kind in _PRIMITIVE_TS_TYPES:
        return _PRIMITIVE_TS_TYPES[kind]

    elif kind is TypeKind.POINTER:
        return f"{_convert_element(descriptor)} | null"

    elif kind is TypeKind.SLICE:
        return f"Array<{_convert_element(descriptor)}>"

    elif kind is TypeKind.STRUCT:
        if descriptor.name:
            return descriptor.name
        return _generate_inline_struct(descriptor)

    else:
        return "any"


def _convert_element(descriptor: TypeDescriptor) -> str:
    if descriptor.elem is None:
        return "any"
    return convert_type_to_typescript(descriptor.elem)


def _generate_inline_struct(struct: TypeDescriptor) -> str:
    """Anonymous struct as an inline object literal type: ``{ a: string; b?: number }``."""
    members = _struct_members(struct)
    if not members:
        return "{}"
    return "{ " + "; ".join(member.rstrip(";") for member in members) + " }"


# === INTERFACES === #

def generate_interface(struct: TypeDescriptor, indent_size: int = 2) -> str:
    """
    Generate ``export interface Name { ... }`` for a named struct.

    Returns an empty string for anything that is not a named struct.
    """
    if not struct.is_struct or struct.is_anonymous:
        return ""

    lines = [f"export interface {struct.name} {{"]
    for member in _struct_members(struct):
        lines.append(" " * indent_size + member)
    lines.append("}")
    return "\n".join(lines)


def generate_body_interfaces(request_type: Optional[TypeDescriptor], indent_size: int = 2) -> List[str]:
    """Interfaces for the named struct types of a request's body-tagged fields."""
    request_struct = _strip_pointers(request_type)
    if request_struct is None or not request_struct.is_struct:
        return []

    interfaces = []
    for field in request_struct.iter_fields():
        if field.binding is not BindingKind.BODY:
            continue
        interface = generate_interface(field.type.unwrap(), indent_size)
        if interface:
            interfaces.append(interface)
    return interfaces


def _struct_members(struct: TypeDescriptor) -> List[str]:
    """Member declarations in declaration order, skipping embedded and json:"-" fields."""
    members = []
    for field in struct.iter_fields():
        if field.tags.json_skip:
            continue
        members.append(_generate_member(field))
    return members


def _generate_member(field: FieldDescriptor) -> str:
    property_name = quote_property_name(field.property_name)
    if field.tags.omit_empty:
        property_name += "?"
    return f"{property_name}: {convert_type_to_typescript(field.type)};"


def quote_property_name(name: str) -> str:
    """Single-quote property names that are not valid TypeScript identifiers."""
    if _IDENTIFIER_PATTERN.match(name):
        return name
    escaped = name.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


# === COLLECTION === #

def collect_interface_structs(routes: List[RouteDescriptor]) -> List[TypeDescriptor]:
    """
    Named structs the module must declare, in first-seen order.

    Per route: body field structs, then structs of other bound fields, then the
    response struct. Each is followed depth-first by the named structs reachable
    from its fields. Structs are de-duplicated by name.
    """
    collected: Dict[str, TypeDescriptor] = {}

    for route in routes:
        for root in _route_roots(route):
            _collect_from_type(root, collected)

    return list(collected.values())


def _route_roots(route: RouteDescriptor) -> List[TypeDescriptor]:
    bound_fields = route.bound_fields()
    body_types = [field.type for field in bound_fields if field.binding is BindingKind.BODY]
    other_types = [field.type for field in bound_fields if field.binding is not BindingKind.BODY]

    roots = body_types + other_types
    if route.response_type is not None:
        roots.append(route.response_type)
    return roots


def _collect_from_type(descriptor: TypeDescriptor, collected: Dict[str, TypeDescriptor]):
    """Depth-first walk recording named structs; named structs are entered once."""
    target = descriptor.unwrap()
    if not target.is_struct:
        return

    if target.name:
        existing = collected.get(target.name)
        if existing is not None:
            if existing is not target:
                logger.warning(f"Two different structs are named {target.name}, keeping the first")
            return
        collected[target.name] = target

    for field in target.iter_fields():
        if not field.tags.json_skip:
            _collect_from_type(field.type, collected)


def _strip_pointers(descriptor: Optional[TypeDescriptor]) -> Optional[TypeDescriptor]:
    current = descriptor
    while current is not None and current.kind is TypeKind.POINTER:
        current = current.elem
    return current
