"""
Model Introspection for tsroutes

Turns pydantic models and dataclasses into named struct descriptors. Binding and
json tags are read from each field's extra metadata:

    class GetUser(BaseModel):
        id: int = Field(json_schema_extra={"path": "id"})
        verbose: bool = Field(False, json_schema_extra={"query": "verbose", "omitempty": True})

    @dataclass
    class Page:
        size: int = field(metadata={"query": "size"})

Without an explicit ``json`` tag the pydantic alias becomes the json name, and
``exclude=True`` fields are skipped the way ``json:"-"`` is.
"""

import re
import typing
import inspect
import logging
import dataclasses
from pydantic import BaseModel
from typing import Any, Dict, List, Mapping, Optional

from tsroutes.core.exceptions import GenerationError
from tsroutes.core.schema import TypeDescriptor, FieldDescriptor, FieldTags, BINDING_TAGS


logger = logging.getLogger(__name__)

_TAG_KEYS = BINDING_TAGS + ("json",)

_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_]")


def is_struct_class(cls: Any) -> bool:
    """Check if class is a pydantic model or a dataclass."""
    if not inspect.isclass(cls):
        return False
    return _is_pydantic_model(cls) or dataclasses.is_dataclass(cls)


def introspect_struct(cls: type, registry) -> TypeDescriptor:
    """
    Convert a pydantic model or dataclass to a named struct descriptor.

    The descriptor is registered before its fields are converted so that
    self-referencing and mutually recursive models terminate.

    Args:
        cls: Pydantic model or dataclass
        registry: DescriptorRegistry shared across the introspection run

    Returns:
        Struct TypeDescriptor named after the class

    Raises:
        GenerationError: If a field's tags conflict
    """
    existing = registry.get(cls)
    if existing is not None:
        return existing

    descriptor = TypeDescriptor.struct(_struct_name(cls))
    registry.register(cls, descriptor)

    if _is_pydantic_model(cls):
        fields = _introspect_pydantic_fields(cls, registry)
    else:
        fields = _introspect_dataclass_fields(cls, registry)

    descriptor.fields.extend(fields)
    logger.debug(f"Introspected struct {descriptor.name} ({len(fields)} fields)")
    return descriptor


def _is_pydantic_model(cls: type) -> bool:
    """Check if class is a Pydantic model."""
    try:
        return issubclass(cls, BaseModel)
    except TypeError:
        return False


def _struct_name(cls: type) -> str:
    """Interface name for a class; generic pydantic names like Page[User] become Page_User_."""
    return _INVALID_NAME_CHARS.sub("_", cls.__name__)


# === PYDANTIC === #

def _introspect_pydantic_fields(cls: type, registry) -> List[FieldDescriptor]:
    from tsroutes.core.type_conversion import python_type_to_descriptor

    fields = []
    for name, field_info in cls.model_fields.items():
        extra = field_info.json_schema_extra if isinstance(field_info.json_schema_extra, dict) else {}
        alias = field_info.serialization_alias or field_info.alias

        tags = _resolve_tags(cls, name, extra, alias=alias, excluded=bool(field_info.exclude))
        field_type = python_type_to_descriptor(field_info.annotation, registry)

        fields.append(FieldDescriptor(
            name=name,
            type=field_type,
            tags=tags,
            embedded=bool(extra.get("embedded", False)),
        ))
    return fields


# === DATACLASSES === #

def _introspect_dataclass_fields(cls: type, registry) -> List[FieldDescriptor]:
    from tsroutes.core.type_conversion import python_type_to_descriptor

    type_hints = typing.get_type_hints(cls)

    fields = []
    for dc_field in dataclasses.fields(cls):
        tags = _resolve_tags(cls, dc_field.name, dc_field.metadata)
        field_type = python_type_to_descriptor(type_hints.get(dc_field.name, Any), registry)

        fields.append(FieldDescriptor(
            name=dc_field.name,
            type=field_type,
            tags=tags,
            embedded=bool(dc_field.metadata.get("embedded", False)),
        ))
    return fields


# === TAGS === #

def _resolve_tags(cls: type, field_name: str, metadata: Mapping[str, Any],
                  alias: Optional[str] = None, excluded: bool = False) -> FieldTags:
    """
    Build FieldTags from field metadata.

    Recognised keys: path, query, header, body, json and the boolean omitempty.
    """
    raw: Dict[str, str] = {key: str(metadata[key]) for key in _TAG_KEYS if metadata.get(key)}

    if excluded:
        raw["json"] = "-"
    else:
        json_name = raw.get("json", alias or "")
        if metadata.get("omitempty"):
            json_name = f"{json_name.partition(',')[0]},omitempty"
        if json_name:
            raw["json"] = json_name

    try:
        return FieldTags.from_mapping(raw)
    except GenerationError as e:
        raise GenerationError(e.message, f"{cls.__name__}.{field_name}") from e
