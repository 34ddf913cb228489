"""Bound selection trees produced by the type binder.

Every node here has already been checked against the schema: fields carry
their ``SchemaField``, composite fields carry a child ``BoundSelectionSet``,
and polymorphic positions are split into shared fields plus one
``BoundVariant`` per concrete type the document distinguishes.
"""

from dataclasses import dataclass, field

from .document import OperationDefinition, Value, VariableDefinition
from .errors import Location
from .ir import SchemaField, TypeRef


@dataclass(frozen=True)
class BoundArgument:
    name: str
    value: Value
    type: TypeRef


@dataclass(frozen=True)
class BoundField:
    """A field selected at one position, merged across all its occurrences."""
    response_key: str
    name: str
    parent_type: str
    schema_field: SchemaField
    type: TypeRef
    arguments: tuple[BoundArgument, ...] = ()
    deprecated: bool = False
    deprecation_reason: str | None = None
    # True when the field sits under @skip/@include and may be absent
    conditional: bool = False
    selection: "BoundSelectionSet | None" = None
    location: Location | None = field(default=None, compare=False)


@dataclass(frozen=True)
class BoundSpread:
    """A named fragment whose type applies to every object at a position."""
    fragment_name: str
    type_condition: str
    conditional: bool = False
    location: Location | None = field(default=None, compare=False)


@dataclass(frozen=True)
class BoundVariant:
    """Selections that only apply when the runtime type is ``type_name``."""
    type_name: str
    selection: "BoundSelectionSet"


@dataclass(frozen=True)
class BoundSelectionSet:
    type_name: str
    # 'object', 'interface' or 'union'
    kind: str
    fields: tuple[BoundField, ...] = ()
    spreads: tuple[BoundSpread, ...] = ()
    variants: tuple[BoundVariant, ...] = ()

    @property
    def is_polymorphic(self) -> bool:
        return self.kind in ("interface", "union")

    def field(self, response_key: str) -> BoundField | None:
        for bound in self.fields:
            if bound.response_key == response_key:
                return bound
        return None

    def variant(self, type_name: str) -> BoundVariant | None:
        for variant in self.variants:
            if variant.type_name == type_name:
                return variant
        return None


@dataclass(frozen=True)
class VariableUsage:
    """A place where a variable flows into a typed input position."""
    name: str
    expected: TypeRef
    location_has_default: bool
    location: Location | None = field(default=None, compare=False)


@dataclass(frozen=True)
class BoundFragment:
    name: str
    type_condition: str
    selection: BoundSelectionSet
    # Fragments this one spreads directly
    dependencies: tuple[str, ...] = ()
    variable_usages: tuple[VariableUsage, ...] = ()


@dataclass(frozen=True)
class BoundOperation:
    """The fully bound form of one operation."""
    operation: OperationDefinition
    root_type: str
    selection: BoundSelectionSet
    variables: tuple[VariableDefinition, ...]
    # Every fragment reached from this operation, in document order
    fragments: tuple[BoundFragment, ...] = ()

    @property
    def name(self) -> str:
        return self.operation.name or self.operation.kind

    def fragment(self, name: str) -> BoundFragment:
        for bound in self.fragments:
            if bound.name == name:
                return bound
        raise KeyError(name)
