"""
FastAPI Dependant Processing for tsroutes

Collects the path, query, header and body params of an endpoint and its
sub-dependencies and converts them into an anonymous request struct whose fields
carry the matching binding tags.
"""

import logging
from typing import List, Dict, Any, Optional

from tsroutes.core.type_conversion import python_type_to_descriptor, DescriptorRegistry
from tsroutes.core.schema import TypeDescriptor, FieldDescriptor, FieldTags, BindingKind


logger = logging.getLogger(__name__)

EMBEDDED_BODY_FIELD = "body"

PARAM_GROUPS = ("path_params", "query_params", "header_params", "cookie_params", "body_params")


def collect_dependant_params(dependant) -> Dict[str, list]:
    """
    Gather a Dependant's params and those of its nested dependencies, per group.

    The endpoint's own params come first, then each sub-dependency depth first.
    A param name already collected in a group is not repeated, so a dependency
    used twice contributes its params once.
    """
    collected: Dict[str, list] = {group: [] for group in PARAM_GROUPS}
    seen: Dict[str, set] = {group: set() for group in PARAM_GROUPS}

    def visit(current):
        for group in PARAM_GROUPS:
            for model_field in getattr(current, group, None) or []:
                if model_field.name not in seen[group]:
                    seen[group].add(model_field.name)
                    collected[group].append(model_field)
        for sub_dependant in current.dependencies:
            visit(sub_dependant)

    visit(dependant)
    return collected


def extract_request_struct(dependant, type_hints: Dict[str, Any],
                           registry: DescriptorRegistry) -> Optional[TypeDescriptor]:
    """
    Build the request struct for a route from its FastAPI Dependant.

    Args:
        dependant: The route's Dependant (``route.dependant``), sub-dependencies included
        type_hints: Type hints of the endpoint function
        registry: Struct cache shared across the introspection run

    Returns:
        Anonymous struct descriptor, or None when the route takes no parameters
    """
    params = collect_dependant_params(dependant)
    fields: List[FieldDescriptor] = []

    for model_field in params["path_params"]:
        fields.append(_convert_model_field(model_field, BindingKind.PATH, type_hints, registry))

    for model_field in params["query_params"]:
        fields.append(_convert_model_field(model_field, BindingKind.QUERY, type_hints, registry))

    for model_field in params["header_params"]:
        fields.append(_convert_model_field(model_field, BindingKind.HEADER, type_hints, registry))

    if params["cookie_params"]:
        names = ", ".join(model_field.name for model_field in params["cookie_params"])
        logger.debug(f"Cookie parameters are sent by the browser, not the client: {names}")

    body_field = _extract_body_field(params["body_params"], type_hints, registry)
    if body_field is not None:
        fields.append(body_field)

    if not fields:
        return None
    return TypeDescriptor.anonymous_struct(fields)


def _convert_model_field(model_field, binding: BindingKind, type_hints: Dict[str, Any],
                         registry: DescriptorRegistry) -> FieldDescriptor:
    """
    Convert FastAPI ModelField to a bound FieldDescriptor.

    The binding name is the wire name FastAPI reads: the alias when one is set
    (header params already carry their hyphenated form), otherwise the parameter name.
    Query and header params with a default may be left out of the request.
    """
    name = model_field.name
    field_type = python_type_to_descriptor(_annotation_for(model_field, type_hints), registry)
    wire_name = model_field.alias or name
    may_omit = binding is not BindingKind.PATH and not model_field.field_info.is_required()

    return FieldDescriptor(
        name=name,
        type=field_type,
        tags=FieldTags(binding=binding, binding_name=wire_name, omit_empty=may_omit),
    )


def _extract_body_field(body_params: list, type_hints: Dict[str, Any],
                        registry: DescriptorRegistry) -> Optional[FieldDescriptor]:
    """
    Collapse FastAPI body params into the single body-tagged field.

    One non-embedded body param is sent as-is. Several params (or an explicitly
    embedded one) are sent as an object keyed by their aliases, so they become an
    anonymous struct.
    """
    if not body_params:
        return None

    for model_field in body_params:
        field_info_type = model_field.field_info.__class__.__name__
        if field_info_type in ("Form", "File"):
            logger.warning(f"{field_info_type} parameter '{model_field.name}' will be sent as JSON")

    first = body_params[0]
    if len(body_params) == 1 and not getattr(first.field_info, "embed", False):
        field_type = python_type_to_descriptor(_annotation_for(first, type_hints), registry)
        return FieldDescriptor(
            name=first.name,
            type=field_type,
            tags=FieldTags(binding=BindingKind.BODY, binding_name=first.name),
        )

    members = []
    for model_field in body_params:
        member_type = python_type_to_descriptor(_annotation_for(model_field, type_hints), registry)
        members.append(FieldDescriptor(
            name=model_field.name,
            type=member_type,
            tags=FieldTags(json_name=model_field.alias or model_field.name),
        ))

    return FieldDescriptor(
        name=EMBEDDED_BODY_FIELD,
        type=TypeDescriptor.anonymous_struct(members),
        tags=FieldTags(binding=BindingKind.BODY, binding_name=EMBEDDED_BODY_FIELD),
    )


def _annotation_for(model_field, type_hints: Dict[str, Any]) -> Any:
    """Endpoint type hint for the param, falling back to the annotation FastAPI resolved."""
    py_type = type_hints.get(model_field.name)
    if py_type is None:
        py_type = getattr(model_field.field_info, "annotation", None)
    return py_type
