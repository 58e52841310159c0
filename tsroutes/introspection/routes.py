"""
FastAPI Route Introspection for tsroutes

Converts FastAPI APIRoutes into RouteDescriptors: ``{name}`` path parameters become
``:name`` placeholders, endpoint parameters become a tagged request struct and the
response model becomes the response type. One descriptor is produced per method.
"""

import re
import typing
import inspect
import logging
from fastapi import FastAPI
from fastapi.routing import APIRoute
from typing import List, Optional, Any

from tsroutes.core.schema import RouteDescriptor, TypeDescriptor
from tsroutes.introspection.parameters import extract_request_struct
from tsroutes.core.type_conversion import python_type_to_descriptor, DescriptorRegistry


logger = logging.getLogger(__name__)

_FASTAPI_PARAM_PATTERN = re.compile(r"\{(\w+)(?::\w+)?\}")


def route_to_descriptors(route: APIRoute, registry: Optional[DescriptorRegistry] = None) -> List[RouteDescriptor]:
    """
    Convert FastAPI route to RouteDescriptors using runtime introspection.

    Args:
        route: FastAPI APIRoute from app.routes
        registry: Struct cache shared across the app (one is created if omitted)

    Returns:
        One RouteDescriptor per HTTP method, sorted by method
    """
    if registry is None:
        registry = DescriptorRegistry()

    endpoint_function = route.endpoint
    type_hints = typing.get_type_hints(endpoint_function)

    path = convert_path_template(route.path)
    request_type = extract_request_struct(route.dependant, type_hints, registry)
    response_type = _extract_response_type(route, type_hints, registry)
    docstring = _first_docstring_line(endpoint_function)

    return [
        RouteDescriptor(
            method=method,
            path=path,
            request_type=request_type,
            response_type=response_type,
            docstring=docstring,
        )
        for method in sorted(route.methods)
    ]


def convert_path_template(path: str) -> str:
    """Rewrite FastAPI ``{id}`` / ``{file_path:path}`` parameters as ``:id`` / ``:file_path``."""
    return _FASTAPI_PARAM_PATTERN.sub(lambda match: f":{match.group(1)}", path)


def collect_routes(app: FastAPI, registry: Optional[DescriptorRegistry] = None) -> List[RouteDescriptor]:
    """
    Convert every user-defined APIRoute of the app.

    A route whose introspection fails is logged and skipped. Tag conflicts are not
    introspection failures; they surface when the client is generated.
    """
    if registry is None:
        registry = DescriptorRegistry()

    descriptors = []
    for route in app.routes:
        if not isinstance(route, APIRoute) or not _is_user_defined_route(route):
            continue
        try:
            descriptors.extend(route_to_descriptors(route, registry))
        except (TypeError, NameError, AttributeError) as e:
            logger.warning(f"Failed to convert route {route.path}: {e}")
            continue

    logger.debug(f"Collected {len(descriptors)} route descriptors, {len(registry)} structs")
    return descriptors


def _extract_response_type(route: APIRoute, type_hints: dict, registry: DescriptorRegistry) -> Optional[TypeDescriptor]:
    """
    Response type from the route's response_model, falling back to the return
    annotation. Response classes and ``-> None`` map to no response type.
    """
    py_type: Any = getattr(route, "response_model", None)
    if py_type is None:
        py_type = type_hints.get("return")

    if py_type is None or py_type is type(None) or _is_response_class(py_type):
        return None
    return python_type_to_descriptor(py_type, registry)


def _is_response_class(py_type: Any) -> bool:
    from starlette.responses import Response
    return inspect.isclass(py_type) and issubclass(py_type, Response)


def _first_docstring_line(endpoint_function) -> Optional[str]:
    doc = inspect.getdoc(endpoint_function)
    if not doc:
        return None
    return doc.strip().splitlines()[0].strip() or None


def _is_user_defined_route(route: APIRoute) -> bool:
    """Determine if route is user-defined using module-based filtering."""
    endpoint = route.endpoint

    if (not endpoint or not callable(endpoint) or
        not hasattr(endpoint, '__name__') or
        not hasattr(endpoint, '__module__') or not route.methods):
        return False

    endpoint_module = endpoint.__module__ or ""
    system_prefixes = ('fastapi.', 'starlette.')

    if any(endpoint_module.startswith(prefix) for prefix in system_prefixes):
        return False

    return True
