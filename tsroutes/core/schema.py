"""
tsroutes Data Models

Structural type descriptors, per-field binding tags and route/auth descriptors
consumed by the TypeScript generators. Descriptors are built ahead of time (by hand
through the classmethod builders below, or from pydantic models and dataclasses via
``tsroutes.core.type_conversion``); the generators only traverse them.
"""

import re
from enum import Enum
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Iterator

from tsroutes.core.exceptions import GenerationError


# === TYPE SYSTEM === #

class TypeKind(Enum):
    """Shape of a structural type descriptor."""
    STRING = "string"
    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    POINTER = "pointer"    # *T     -> T | null
    SLICE = "slice"        # []T    -> Array<T>
    STRUCT = "struct"      # struct -> interface / inline literal
    MAP = "map"            # no target mapping, rendered as any
    ANY = "any"


PRIMITIVE_KINDS = frozenset({TypeKind.STRING, TypeKind.BOOL, TypeKind.INT, TypeKind.UINT, TypeKind.FLOAT})


class BindingKind(Enum):
    """Where a request field travels in the HTTP request."""
    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    BODY = "body"
    NONE = "none"


BINDING_TAGS = ("path", "query", "header", "body")

_STRUCT_TAG_PATTERN = re.compile(r'(\w+):"((?:[^"\\]|\\.)*)"')


# === FIELD TAGS === #

@dataclass(frozen=True)
class FieldTags:
    """
    Resolved tag set of a single struct field.

    A field carries at most one binding (path, query, header or body) and,
    independently, a json name with an optional omit-if-empty modifier.
    """
    binding: BindingKind = BindingKind.NONE
    binding_name: Optional[str] = None     # "id" for path:"id", "X-Trace" for header:"X-Trace"
    json_name: Optional[str] = None        # emitted property name, None -> field name
    omit_empty: bool = False               # json:",omitempty" -> property may be absent
    json_skip: bool = False                # json:"-" -> property omitted entirely

    @classmethod
    def from_mapping(cls, tags: Dict[str, str]) -> 'FieldTags':
        """
        Resolve a tag-name -> tag-value mapping.

        Recognised keys are ``path``, ``query``, ``header``, ``body`` and ``json``;
        anything else is ignored.

        Raises:
            GenerationError: If more than one binding tag is present.
        """
        bindings = [(key, str(tags[key]).strip()) for key in BINDING_TAGS if tags.get(key)]
        if len(bindings) > 1:
            names = ", ".join(key for key, _ in bindings)
            raise GenerationError(f"field carries more than one binding tag ({names})")

        binding = BindingKind.NONE
        binding_name = None
        if bindings:
            binding = BindingKind(bindings[0][0])
            binding_name = bindings[0][1]

        json_name, omit_empty, json_skip = _parse_json_tag(tags.get("json"))
        return cls(
            binding=binding,
            binding_name=binding_name,
            json_name=json_name,
            omit_empty=omit_empty,
            json_skip=json_skip,
        )

    @classmethod
    def parse(cls, raw: str) -> 'FieldTags':
        """Parse a struct-tag string such as ``path:"id" json:"id,omitempty"``."""
        return cls.from_mapping(dict(_STRUCT_TAG_PATTERN.findall(raw or "")))

    @property
    def is_bound(self) -> bool:
        return self.binding is not BindingKind.NONE


def _parse_json_tag(value: Optional[str]) -> tuple:
    """Split a json tag value into (name, omit_empty, skip)."""
    if value is None or value == "":
        return None, False, False
    if value == "-":
        return None, False, True

    name, _, options = value.partition(",")
    omit_empty = "omitempty" in options.split(",")
    return (name or None), omit_empty, False


# === DESCRIPTORS === #

@dataclass(eq=False)
class TypeDescriptor:
    """
    Recursive structural description of a type.

    Structs carry an ordered field list and a name (None for anonymous structs);
    pointers and slices carry their element descriptor. Equality is identity, so
    self-referencing named structs are safe to build and compare.
    """
    kind: TypeKind
    name: Optional[str] = None                                        # Struct name, None if anonymous
    elem: Optional['TypeDescriptor'] = None                           # Pointer/slice element
    fields: List['FieldDescriptor'] = field(default_factory=list)     # Struct fields in declaration order

    @classmethod
    def primitive(cls, kind: TypeKind) -> 'TypeDescriptor':
        if kind not in PRIMITIVE_KINDS:
            raise ValueError(f"{kind} is not a primitive kind")
        return cls(kind=kind)

    @classmethod
    def pointer(cls, elem: 'TypeDescriptor') -> 'TypeDescriptor':
        return cls(kind=TypeKind.POINTER, elem=elem)

    @classmethod
    def slice(cls, elem: 'TypeDescriptor') -> 'TypeDescriptor':
        return cls(kind=TypeKind.SLICE, elem=elem)

    @classmethod
    def struct(cls, name: Optional[str], fields: Optional[List['FieldDescriptor']] = None) -> 'TypeDescriptor':
        return cls(kind=TypeKind.STRUCT, name=name or None, fields=list(fields or []))

    @classmethod
    def anonymous_struct(cls, fields: List['FieldDescriptor']) -> 'TypeDescriptor':
        return cls.struct(None, fields)

    @classmethod
    def any(cls) -> 'TypeDescriptor':
        return cls(kind=TypeKind.ANY)

    @property
    def is_struct(self) -> bool:
        return self.kind is TypeKind.STRUCT

    @property
    def is_anonymous(self) -> bool:
        return self.is_struct and not self.name

    def unwrap(self) -> 'TypeDescriptor':
        """Strip pointer and slice layers down to the innermost element."""
        current = self
        while current.kind in (TypeKind.POINTER, TypeKind.SLICE) and current.elem is not None:
            current = current.elem
        return current

    def iter_fields(self) -> Iterator['FieldDescriptor']:
        """Yield declared fields, skipping embedded ones."""
        for field_item in self.fields:
            if not field_item.embedded:
                yield field_item

    def __repr__(self) -> str:
        if self.is_struct:
            return f"TypeDescriptor(struct {self.name or '<anonymous>'}, {len(self.fields)} fields)"
        if self.elem is not None:
            return f"TypeDescriptor({self.kind.value} of {self.elem!r})"
        return f"TypeDescriptor({self.kind.value})"


@dataclass(eq=False)
class FieldDescriptor:
    """Named struct field with its type and resolved tags."""
    name: str
    type: TypeDescriptor
    tags: FieldTags = field(default_factory=FieldTags)
    embedded: bool = False                 # Promoted/embedded fields are invisible to the client

    @classmethod
    def of(cls, name: str, type_: TypeDescriptor, tags: Optional[str] = None, **tag_values) -> 'FieldDescriptor':
        """
        Build a field from a struct-tag string or keyword tags.

        Examples:
            FieldDescriptor.of("ID", int_type, 'path:"id"')
            FieldDescriptor.of("Page", int_type, query="page")
        """
        if tags is not None:
            resolved = FieldTags.parse(tags)
        else:
            resolved = FieldTags.from_mapping({key: value for key, value in tag_values.items() if value is not None})
        return cls(name=name, type=type_, tags=resolved)

    @property
    def property_name(self) -> str:
        """Emitted JSON property name."""
        return self.tags.json_name or self.name

    @property
    def binding(self) -> BindingKind:
        return self.tags.binding


# === ROUTES === #

_PLACEHOLDER_PATTERN = re.compile(r":(\w+)")


@dataclass(frozen=True)
class RouteDescriptor:
    """
    HTTP route binding a method and a ``:name`` path template to request/response shapes.

    Owned by the router; the generator reads it and never mutates it.
    """
    method: str                                      # HTTP verb, normalised to upper case
    path: str                                        # "/users/:id"
    request_type: Optional[TypeDescriptor] = None    # Struct whose tagged fields become parameters
    response_type: Optional[TypeDescriptor] = None   # Decoded JSON body type
    docstring: Optional[str] = None                  # Emitted as JSDoc when present

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())

    @property
    def label(self) -> str:
        return f"{self.method} {self.path}"

    @property
    def request_struct(self) -> Optional[TypeDescriptor]:
        """
        Request struct with pointer layers removed.

        Raises:
            GenerationError: If the request type is not a struct.
        """
        if self.request_type is None:
            return None

        current = self.request_type
        while current.kind is TypeKind.POINTER and current.elem is not None:
            current = current.elem
        if not current.is_struct:
            raise GenerationError(f"request type must be a struct, got {current.kind.value}", self.label)
        return current

    def bound_fields(self) -> List[FieldDescriptor]:
        """Request fields carrying a path, query, header or body tag; empty without a request type."""
        struct = self.request_struct
        if struct is None:
            return []
        return [field_item for field_item in struct.iter_fields() if field_item.tags.is_bound]

    def fields_by_binding(self, binding: BindingKind) -> List[FieldDescriptor]:
        return [field_item for field_item in self.bound_fields() if field_item.binding is binding]

    def path_placeholders(self) -> List[str]:
        """Placeholder names in the path template, in order."""
        return _PLACEHOLDER_PATTERN.findall(self.path)


# === AUTHENTICATION === #

class AuthenticationMethod(Enum):
    """Authentication scheme declared by the server."""
    NONE = "none"
    BEARER = "bearer"
    BEARER_OAUTH2 = "bearerOAuth2"
    BASIC = "basic"
    API_KEY = "apiKey"


@dataclass(frozen=True)
class AuthenticationDescriptor:
    """Declared auth method plus the login endpoint path, if the server exposes one."""
    method: AuthenticationMethod = AuthenticationMethod.NONE
    login_path: Optional[str] = None

    @property
    def is_configured(self) -> bool:
        return self.method is not AuthenticationMethod.NONE

    @property
    def has_login(self) -> bool:
        return self.is_configured and bool(self.login_path)


# === OUTPUT === #

@dataclass(frozen=True)
class GeneratedModule:
    """Complete generated client module, handed to the writer as-is."""
    content: str
    path: Optional[str] = None
