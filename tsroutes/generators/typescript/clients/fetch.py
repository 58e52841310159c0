"""
REST fetch wrapper generation.

Generates one exported async TypeScript function per RouteDescriptor: path
placeholders are interpolated at generation time, query fields are appended to the
URL, header fields go into the request config and the body field is JSON-serialised
for verbs that allow a body.

Nullable query and header fields (pointer-typed or omit-if-empty) are only sent when
the caller passes a value; a trailing run of them is optional in the signature.
"""

import re
import logging
from urllib.parse import quote
from typing import List, Dict, Set, Optional

from tsroutes.core.config import TsRoutesConfig
from tsroutes.core.exceptions import GenerationError
from tsroutes.core.schema import RouteDescriptor, FieldDescriptor, BindingKind, TypeKind
from tsroutes.core.constants import TsRoutesRuntime, SUPPORTED_METHODS, NO_BODY_METHODS
from tsroutes.generators.typescript.interfaces import convert_type_to_typescript
from .utils import (
    CodeBuilder,
    quote_string,
    escape_template_literal,
    generate_function_name,
    assign_parameter_names,
    generate_function_jsdoc,
)


logger = logging.getLogger(__name__)

_PLACEHOLDER_SEGMENT = re.compile(r":(\w+)")


def generate_fetch_wrapper(route: RouteDescriptor, config: Optional[TsRoutesConfig] = None) -> str:
    """
    Generate the TypeScript function for a single RouteDescriptor.

    Args:
        route: Route with method, path template and request/response descriptors
        config: Generation settings (omit_url_prefix, indent_size)

    Returns:
        JSDoc line plus ``export async function ...`` block

    Raises:
        GenerationError: If the route's bindings cannot produce a valid request
    """
    config = config or TsRoutesConfig()
    _validate_method(route)

    parameters = route.bound_fields()
    path_fields = [field for field in parameters if field.binding is BindingKind.PATH]
    query_fields = [field for field in parameters if field.binding is BindingKind.QUERY]
    header_fields = [field for field in parameters if field.binding is BindingKind.HEADER]
    body_field = _resolve_body_field(route, parameters)

    _validate_path_bindings(route, path_fields)

    param_names = assign_parameter_names(parameters)
    function_name = generate_function_name(route, config.omit_url_prefix)
    return_type = convert_type_to_typescript(route.response_type)
    signature = _generate_signature(function_name, parameters, param_names, return_type)

    builder = CodeBuilder(config.indent_size)
    builder.add_line(generate_function_jsdoc(route))

    with builder.add_block(signature):
        _generate_url_building_lines(builder, route, path_fields, query_fields, param_names)
        _generate_request_config_lines(builder, route, header_fields, body_field, param_names)
        builder.add_line(f"return {TsRoutesRuntime.FETCH_JSON_FN}<{return_type}>(url, config);")

    return builder.get_code()


def is_nullable_parameter(field: FieldDescriptor) -> bool:
    """Query and header fields that may be left unset: pointer-typed or omit-if-empty."""
    if field.binding not in (BindingKind.QUERY, BindingKind.HEADER):
        return False
    return field.type.kind is TypeKind.POINTER or field.tags.omit_empty


# === VALIDATION === #

def _validate_method(route: RouteDescriptor):
    if route.method not in SUPPORTED_METHODS:
        raise GenerationError(f"unsupported HTTP method {route.method}", route.label)


def _validate_path_bindings(route: RouteDescriptor, path_fields: List[FieldDescriptor]):
    """Every placeholder needs exactly one path field and every path field a placeholder."""
    placeholders = route.path_placeholders()
    bound_names = [field.tags.binding_name for field in path_fields]

    for placeholder in placeholders:
        if placeholder not in bound_names:
            raise GenerationError(f"path placeholder ':{placeholder}' has no path-tagged field", route.label)

    for name in bound_names:
        if name not in placeholders:
            raise GenerationError(f"path field '{name}' has no ':{name}' placeholder", route.label)

    duplicates = sorted({name for name in bound_names if bound_names.count(name) > 1})
    if duplicates:
        raise GenerationError(f"path placeholder bound more than once: {', '.join(duplicates)}", route.label)


def _resolve_body_field(route: RouteDescriptor, parameters: List[FieldDescriptor]) -> Optional[FieldDescriptor]:
    """
    The field to JSON-serialise as the request body, or None.

    Body-less verbs keep a body field as a parameter but never send it.
    """
    body_fields = [field for field in parameters if field.binding is BindingKind.BODY]
    if len(body_fields) > 1:
        names = ", ".join(field.name for field in body_fields)
        raise GenerationError(f"more than one body-tagged field ({names})", route.label)

    if route.method in NO_BODY_METHODS:
        if body_fields:
            logger.warning(f"{route.label}: body field '{body_fields[0].name}' is not sent with {route.method}")
        return None

    if body_fields:
        return body_fields[0]

    request_struct = route.request_struct
    if request_struct is not None:
        unbound = [field.name for field in request_struct.iter_fields() if not field.tags.is_bound]
        if unbound:
            raise GenerationError(
                f"fields {', '.join(unbound)} have no binding and there is no body-tagged field to carry them",
                route.label,
            )
    return None


# === SIGNATURE === #

def _optional_parameters(parameters: List[FieldDescriptor]) -> Set[FieldDescriptor]:
    """The trailing run of nullable parameters; a required parameter cannot follow an optional one."""
    optional = set()
    for field in reversed(parameters):
        if not is_nullable_parameter(field):
            break
        optional.add(field)
    return optional


def _generate_signature(function_name: str, parameters: List[FieldDescriptor],
                        param_names: Dict[FieldDescriptor, str], return_type: str) -> str:
    optional = _optional_parameters(parameters)
    param_parts = []
    for field in parameters:
        marker = "?" if field in optional else ""
        param_parts.append(f"{param_names[field]}{marker}: {convert_type_to_typescript(field.type)}")

    params_str = ", ".join(param_parts)
    return f"export async function {function_name}({params_str}): Promise<{return_type}> {{"


# === URL BUILDING === #

def _generate_url_building_lines(builder: CodeBuilder, route: RouteDescriptor,
                                 path_fields: List[FieldDescriptor], query_fields: List[FieldDescriptor],
                                 param_names: Dict[FieldDescriptor, str]):
    """Generate URL construction with path and query parameters."""
    params_by_placeholder = {field.tags.binding_name: param_names[field] for field in path_fields}

    path_parts = []
    position = 0
    for match in _PLACEHOLDER_SEGMENT.finditer(route.path):
        path_parts.append(escape_template_literal(route.path[position:match.start()]))
        path_parts.append(_encoded(params_by_placeholder[match.group(1)]))
        position = match.end()
    path_parts.append(escape_template_literal(route.path[position:]))
    path = "".join(path_parts)

    declaration = "let" if query_fields else "const"
    builder.add_line(f"{declaration} url = `${{{TsRoutesRuntime.BASE_URL_VAR}}}{path}`;")

    if not query_fields:
        return

    if not any(is_nullable_parameter(field) for field in query_fields):
        pairs = [_query_pair(field, param_names[field]) for field in query_fields]
        builder.add_line(f"url += `?{'&'.join(pairs)}`;")
        return

    # Unset values are skipped, the rest still join behind a single '?'
    builder.add_line("const query: string[] = [];")
    for field in query_fields:
        param = param_names[field]
        push = f"query.push(`{_query_pair(field, param)}`);"
        if is_nullable_parameter(field):
            push = f"if ({param} != null) {push}"
        builder.add_line(push)
    builder.add_line("if (query.length > 0) url += `?${query.join('&')}`;")


def _query_pair(field: FieldDescriptor, param_name: str) -> str:
    return f"{escape_template_literal(quote(field.tags.binding_name, safe=''))}={_encoded(param_name)}"


def _encoded(param_name: str) -> str:
    return f"${{encodeURIComponent(String({param_name}))}}"


# === REQUEST CONFIG === #

def _generate_request_config_lines(builder: CodeBuilder, route: RouteDescriptor,
                                   header_fields: List[FieldDescriptor], body_field: Optional[FieldDescriptor],
                                   param_names: Dict[FieldDescriptor, str]):
    """Generate request config with method, headers, and body."""
    with builder.add_block("const config: RequestInit = {", "};"):
        builder.add_line(f"method: {quote_string(route.method)},")

        if header_fields:
            with builder.add_block("headers: {", "},"):
                for field in header_fields:
                    param = param_names[field]
                    header = f"{quote_string(field.tags.binding_name)}: String({param})"
                    if is_nullable_parameter(field):
                        builder.add_line(f"...({param} != null ? {{ {header} }} : {{}}),")
                    else:
                        builder.add_line(f"{header},")

        if body_field is not None:
            builder.add_line(f"body: JSON.stringify({param_names[body_field]}),")
