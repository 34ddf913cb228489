"""Intermediate Representation (IR) for GraphQL schemas.

This module defines the read-only Schema Model every binding operation is
checked against. It is built once by ``SchemaParser`` (from SDL or an
introspection result) and may then be shared freely, including between
threads: nothing in it is mutated after construction.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Union

BUILTIN_SCALARS = ("String", "Int", "Float", "Boolean", "ID")


# =============================================================================
# Type references
# =============================================================================


@dataclass(frozen=True)
class NamedTypeRef:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ListTypeRef:
    of_type: "TypeRef"

    def __str__(self) -> str:
        return f"[{self.of_type}]"


@dataclass(frozen=True)
class NonNullTypeRef:
    of_type: "TypeRef"

    def __str__(self) -> str:
        return f"{self.of_type}!"


TypeRef = Union[NamedTypeRef, ListTypeRef, NonNullTypeRef]


def named_type_name(ref: TypeRef) -> str:
    """Return the innermost named type of a wrapped reference."""
    while not isinstance(ref, NamedTypeRef):
        ref = ref.of_type
    return ref.name


def print_type(ref: TypeRef) -> str:
    """Render a type reference in GraphQL syntax, e.g. ``[ID!]!``."""
    return str(ref)


def is_non_null(ref: TypeRef) -> bool:
    return isinstance(ref, NonNullTypeRef)


# =============================================================================
# Named types
# =============================================================================


@dataclass(frozen=True)
class SchemaArgument:
    """An argument of a field (or a field of an input object)."""
    name: str
    type: TypeRef
    has_default: bool = False
    description: str | None = None

    @property
    def is_required(self) -> bool:
        return is_non_null(self.type) and not self.has_default


# Input object fields share the argument shape.
InputField = SchemaArgument


@dataclass(frozen=True)
class SchemaField:
    """A field of an object or interface type."""
    name: str
    type: TypeRef
    arguments: tuple[SchemaArgument, ...] = ()
    is_deprecated: bool = False
    deprecation_reason: str | None = None
    description: str | None = None

    def argument(self, name: str) -> SchemaArgument | None:
        for arg in self.arguments:
            if arg.name == name:
                return arg
        return None


@dataclass(frozen=True)
class EnumValue:
    name: str
    is_deprecated: bool = False
    deprecation_reason: str | None = None
    description: str | None = None


@dataclass(frozen=True, eq=True)
class ObjectType:
    name: str
    fields: Mapping[str, SchemaField]
    interfaces: tuple[str, ...] = ()
    description: str | None = None
    kind = "object"


@dataclass(frozen=True, eq=True)
class InterfaceType:
    name: str
    fields: Mapping[str, SchemaField]
    interfaces: tuple[str, ...] = ()
    # Object types implementing this interface, sorted by name.
    implementers: tuple[str, ...] = ()
    description: str | None = None
    kind = "interface"


@dataclass(frozen=True)
class UnionType:
    name: str
    members: tuple[str, ...]
    description: str | None = None
    kind = "union"


@dataclass(frozen=True)
class EnumType:
    name: str
    values: tuple[EnumValue, ...]
    description: str | None = None
    kind = "enum"

    def value(self, name: str) -> EnumValue | None:
        for value in self.values:
            if value.name == name:
                return value
        return None


@dataclass(frozen=True)
class ScalarType:
    name: str
    description: str | None = None
    kind = "scalar"

    @property
    def is_builtin(self) -> bool:
        return self.name in BUILTIN_SCALARS


@dataclass(frozen=True, eq=True)
class InputObjectType:
    name: str
    fields: Mapping[str, InputField]
    description: str | None = None
    kind = "input_object"


NamedType = Union[ObjectType, InterfaceType, UnionType, EnumType, ScalarType, InputObjectType]
CompositeType = Union[ObjectType, InterfaceType, UnionType]


# =============================================================================
# Schema
# =============================================================================


@dataclass(frozen=True, eq=True)
class Schema:
    """Complete, immutable model of a GraphQL schema.

    Type names are the schema's only namespace. Use ``Schema.build`` to
    construct one; it freezes the mappings and checks that every type
    reference resolves.
    """
    types: Mapping[str, NamedType]
    query_type: str | None = "Query"
    mutation_type: str | None = None
    subscription_type: str | None = None

    @classmethod
    def build(
        cls,
        types: list[NamedType],
        query_type: str | None = "Query",
        mutation_type: str | None = None,
        subscription_type: str | None = None,
    ) -> "Schema":
        type_map = {t.name: t for t in types}
        for name in BUILTIN_SCALARS:
            type_map.setdefault(name, ScalarType(name))
        schema = cls(
            types=MappingProxyType(type_map),
            query_type=query_type,
            mutation_type=mutation_type,
            subscription_type=subscription_type,
        )
        schema._check_references()
        return schema

    def _check_references(self):
        for named in self.types.values():
            refs: list[TypeRef] = []
            if isinstance(named, (ObjectType, InterfaceType)):
                for schema_field in named.fields.values():
                    refs.append(schema_field.type)
                    refs.extend(arg.type for arg in schema_field.arguments)
                for iface in named.interfaces:
                    refs.append(NamedTypeRef(iface))
            elif isinstance(named, InputObjectType):
                refs.extend(f.type for f in named.fields.values())
            elif isinstance(named, UnionType):
                refs.extend(NamedTypeRef(m) for m in named.members)
            for ref in refs:
                if named_type_name(ref) not in self.types:
                    raise ValueError(
                        f"Type '{named.name}' references undeclared type "
                        f"'{named_type_name(ref)}'"
                    )
        for root in (self.query_type, self.mutation_type, self.subscription_type):
            if root is not None and not isinstance(self.types.get(root), ObjectType):
                raise ValueError(f"Root type '{root}' is not a declared object type")

    def is_subtype(self, name: str, supertype: str) -> bool:
        """Whether every value of ``name`` is declared to be a ``supertype``."""
        if name == supertype:
            return True
        named = self.types[name]
        parent = self.types[supertype]
        if isinstance(parent, UnionType):
            return name in parent.members
        if isinstance(parent, InterfaceType) and isinstance(named, (ObjectType, InterfaceType)):
            return supertype in named.interfaces
        return False

    def root_type(self, operation_kind: str) -> ObjectType | None:
        """Return the root object type for 'query', 'mutation' or 'subscription'."""
        name = {
            "query": self.query_type,
            "mutation": self.mutation_type,
            "subscription": self.subscription_type,
        }[operation_kind]
        if name is None:
            return None
        return self.types[name]

    def possible_types(self, name: str) -> tuple[str, ...]:
        """Concrete object types a value of the named type may have at runtime."""
        named = self.types[name]
        if isinstance(named, ObjectType):
            return (named.name,)
        if isinstance(named, InterfaceType):
            return named.implementers
        if isinstance(named, UnionType):
            return named.members
        return ()

    def is_composite(self, name: str) -> bool:
        return isinstance(self.types.get(name), (ObjectType, InterfaceType, UnionType))

    def is_abstract(self, name: str) -> bool:
        return isinstance(self.types.get(name), (InterfaceType, UnionType))

    def is_input_type(self, name: str) -> bool:
        return isinstance(self.types.get(name), (ScalarType, EnumType, InputObjectType))

    def is_leaf(self, name: str) -> bool:
        return isinstance(self.types.get(name), (ScalarType, EnumType))

    def fields_of(self, name: str) -> Mapping[str, SchemaField]:
        """Fields selectable on a composite type (unions have none)."""
        named = self.types[name]
        if isinstance(named, (ObjectType, InterfaceType)):
            return named.fields
        return MappingProxyType({})
