"""
tsroutes Type Conversion

Converts Python runtime type objects (typing constructs, primitives, pydantic models,
dataclasses) into structural TypeDescriptor trees. Optional[T] becomes a pointer,
sequences become slices and model classes become named structs.
"""

import types
import typing
import inspect
import uuid
import decimal
import datetime
from enum import Enum
from pathlib import PurePath
from typing import Any, Dict, Union, Optional, get_origin, get_args
from collections import abc

from tsroutes.core.schema import TypeDescriptor, TypeKind


_STRING_LIKE_TYPES = (datetime.datetime, datetime.date, datetime.time, uuid.UUID, PurePath)

_SEQUENCE_ORIGINS = (list, set, frozenset, tuple, abc.Sequence, abc.MutableSequence, abc.Set, abc.Iterable)

_MAPPING_ORIGINS = (dict, abc.Mapping, abc.MutableMapping)


class DescriptorRegistry:
    """
    Struct descriptors built so far, keyed by class.

    A struct is registered before its fields are converted, so shared and
    self-referencing models resolve to a single descriptor.
    """

    def __init__(self):
        self._structs: Dict[type, TypeDescriptor] = {}

    def get(self, cls: type) -> Optional[TypeDescriptor]:
        return self._structs.get(cls)

    def register(self, cls: type, descriptor: TypeDescriptor):
        self._structs[cls] = descriptor

    def __len__(self) -> int:
        return len(self._structs)


def python_type_to_descriptor(py_type: Any, registry: Optional[DescriptorRegistry] = None) -> TypeDescriptor:
    """
    Convert Python runtime type object to TypeDescriptor.

    Args:
        py_type: Python type object from typing.get_type_hints() or a model field
        registry: Struct cache shared across one introspection run

    Returns:
        TypeDescriptor representing the type structure
    """
    if registry is None:
        registry = DescriptorRegistry()

    if py_type is None or py_type is type(None) or py_type is Any:
        return TypeDescriptor.any()

    origin = get_origin(py_type)
    if origin is typing.Annotated:
        return python_type_to_descriptor(get_args(py_type)[0], registry)
    if origin is not None:
        return _convert_typing_construct(py_type, origin, registry)

    if _is_primitive_type(py_type):
        return _convert_primitive_type(py_type)

    if inspect.isclass(py_type):
        return _convert_custom_type(py_type, registry)

    return TypeDescriptor.any()


def _convert_typing_construct(py_type: Any, origin: Any, registry: DescriptorRegistry) -> TypeDescriptor:
    """Convert typing module constructs (Optional, List, Union, etc.)."""
    args = get_args(py_type)

    if origin is Union or origin is types.UnionType:
        return _convert_union_type(args, registry)

    elif origin is typing.Literal:
        return _convert_literal_type(args)

    elif origin in _MAPPING_ORIGINS:
        return TypeDescriptor(kind=TypeKind.MAP)

    elif origin in _SEQUENCE_ORIGINS:
        return _convert_sequence_type(origin, args, registry)

    # Generic types we don't specifically handle
    else:
        return TypeDescriptor.any()


def _convert_union_type(args: tuple, registry: DescriptorRegistry) -> TypeDescriptor:
    """
    Convert Union types. Optional[T] (Union[T, None]) becomes a pointer to T;
    any other union has no structural equivalent and becomes any.
    """
    non_none = [arg for arg in args if arg is not type(None)]

    if len(non_none) == 1 and len(non_none) < len(args):
        return TypeDescriptor.pointer(python_type_to_descriptor(non_none[0], registry))
    return TypeDescriptor.any()


def _convert_sequence_type(origin: Any, args: tuple, registry: DescriptorRegistry) -> TypeDescriptor:
    """Convert List[T], Set[T], Tuple[T, ...] to a slice."""
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            args = args[:1]
        elif len(set(args)) != 1:
            return TypeDescriptor.slice(TypeDescriptor.any())

    if args:
        return TypeDescriptor.slice(python_type_to_descriptor(args[0], registry))
    return TypeDescriptor.slice(TypeDescriptor.any())


def _convert_literal_type(args: tuple) -> TypeDescriptor:
    """Literal["a", "b"] narrows a primitive; mixed literals become any."""
    if args and all(isinstance(arg, str) for arg in args):
        return TypeDescriptor.primitive(TypeKind.STRING)
    if args and all(isinstance(arg, bool) for arg in args):
        return TypeDescriptor.primitive(TypeKind.BOOL)
    if args and all(isinstance(arg, int) and not isinstance(arg, bool) for arg in args):
        return TypeDescriptor.primitive(TypeKind.INT)
    return TypeDescriptor.any()


def _is_primitive_type(py_type: Any) -> bool:
    """Check if type is a Python primitive type."""
    primitive_types = {int, float, str, bool, bytes, dict, list, tuple, set, frozenset}
    return py_type in primitive_types


def _convert_primitive_type(py_type: type) -> TypeDescriptor:
    """Convert primitive Python types to their descriptor kind."""
    if py_type is bool:
        return TypeDescriptor.primitive(TypeKind.BOOL)
    elif py_type is int:
        return TypeDescriptor.primitive(TypeKind.INT)
    elif py_type is float:
        return TypeDescriptor.primitive(TypeKind.FLOAT)
    elif py_type is str or py_type is bytes:
        return TypeDescriptor.primitive(TypeKind.STRING)
    elif py_type is dict:
        return TypeDescriptor(kind=TypeKind.MAP)
    else:
        return TypeDescriptor.slice(TypeDescriptor.any())


def _convert_custom_type(py_type: type, registry: DescriptorRegistry) -> TypeDescriptor:
    """
    Convert classes: enums collapse to their value kind, common external types
    (datetime, UUID, Decimal, paths, URLs) to the primitive they serialise as, and
    pydantic models / dataclasses to named structs.
    """
    if issubclass(py_type, Enum):
        return _convert_enum_type(py_type)

    common_external = _check_common_external_type(py_type)
    if common_external is not None:
        return common_external

    # Subclasses of primitives (str subclasses, IntEnum-like types)
    for base in (bool, int, float, str):
        if issubclass(py_type, base):
            return _convert_primitive_type(base)

    from tsroutes.introspection.models import is_struct_class, introspect_struct
    if is_struct_class(py_type):
        return introspect_struct(py_type, registry)

    return TypeDescriptor.any()


def _convert_enum_type(py_type: type) -> TypeDescriptor:
    """Enums serialise as their values."""
    if issubclass(py_type, str):
        return TypeDescriptor.primitive(TypeKind.STRING)
    if issubclass(py_type, int):
        return TypeDescriptor.primitive(TypeKind.INT)

    values = [member.value for member in py_type]
    return _convert_literal_type(tuple(values))


def _check_common_external_type(py_type: type) -> Optional[TypeDescriptor]:
    """Map well-known library types to the JSON primitive they are serialised as."""
    if issubclass(py_type, _STRING_LIKE_TYPES):
        return TypeDescriptor.primitive(TypeKind.STRING)

    if issubclass(py_type, decimal.Decimal):
        return TypeDescriptor.primitive(TypeKind.FLOAT)

    from pydantic import AnyUrl
    try:
        if issubclass(py_type, AnyUrl):
            return TypeDescriptor.primitive(TypeKind.STRING)
    except TypeError:
        pass

    return None
