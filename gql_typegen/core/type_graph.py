"""Type Graph: the typed data model emitted for one operation.

A Type Graph is what code backends consume. It names every record,
variant, enum, input object and custom scalar an operation's response and
variables need, and refers between them with target expressions:

    NamedTarget("record", "GetHeroHero")
    OptionalTarget(ListTarget(NamedTarget("scalar", "String")))

Descriptors are frozen; a graph is built once and never changed.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Union

DESERIALIZE = "deserialize"
SERIALIZE = "serialize"


# =============================================================================
# Target expressions
# =============================================================================


@dataclass(frozen=True)
class NamedTarget:
    # 'scalar', 'enum', 'record', 'variant' or 'input'
    kind: str
    name: str


@dataclass(frozen=True)
class ListTarget:
    of_type: "Target"


@dataclass(frozen=True)
class OptionalTarget:
    of_type: "Target"


Target = Union[NamedTarget, ListTarget, OptionalTarget]


def target_name(target: Target) -> NamedTarget:
    """Unwrap list and optional wrappers."""
    while not isinstance(target, NamedTarget):
        target = target.of_type
    return target


# =============================================================================
# Response types
# =============================================================================


@dataclass(frozen=True)
class RecordField:
    name: str
    graphql_name: str
    target: Target
    deprecated: bool = False
    deprecation_reason: str | None = None
    # Under @skip/@include: the key may be missing from the response
    conditional: bool = False


@dataclass(frozen=True)
class FragmentInclude:
    """A named fragment flattened into a record: its keys live in the same object."""
    fragment_name: str
    type_name: str
    # Spread under @skip/@include: the fragment's keys may be missing
    conditional: bool = False


@dataclass(frozen=True)
class RecordType:
    name: str
    graphql_type: str
    fields: tuple[RecordField, ...] = ()
    fragments: tuple[FragmentInclude, ...] = ()
    derives: frozenset[str] = frozenset()

    def field(self, name: str) -> RecordField | None:
        for record_field in self.fields:
            if record_field.name == name:
                return record_field
        return None


@dataclass(frozen=True)
class VariantAlternative:
    type_name: str
    record: str


@dataclass(frozen=True)
class VariantType:
    """A discriminated union over the concrete types at a polymorphic position."""
    name: str
    graphql_type: str
    discriminant: str
    alternatives: tuple[VariantAlternative, ...]
    fallback: str
    derives: frozenset[str] = frozenset()

    def alternative(self, type_name: str) -> VariantAlternative | None:
        for alternative in self.alternatives:
            if alternative.type_name == type_name:
                return alternative
        return None


@dataclass(frozen=True)
class EnumMember:
    name: str
    deprecated: bool = False


@dataclass(frozen=True)
class EnumDefinition:
    """A schema enum; backends add an implicit fallback for unknown values."""
    name: str
    values: tuple[EnumMember, ...]
    derives: frozenset[str] = frozenset()


@dataclass(frozen=True)
class ScalarReference:
    """A custom scalar; ``reference`` is what the host environment supplies."""
    name: str
    reference: str | None
    opaque: bool = False


# =============================================================================
# Input types
# =============================================================================


class Presence(Enum):
    REQUIRED = "required"
    # Three-valued: not provided, explicitly null, or a value
    OPTIONAL = "optional"


@dataclass(frozen=True)
class InputRecordField:
    name: str
    target: Target
    required: bool
    has_default: bool = False


@dataclass(frozen=True)
class InputRecordType:
    name: str
    fields: tuple[InputRecordField, ...]


@dataclass(frozen=True)
class VariableField:
    name: str
    target: Target
    presence: Presence
    # Plain Python form of the declared default, when there is one
    default: Any = None
    has_default: bool = False


@dataclass(frozen=True)
class VariablesType:
    name: str
    fields: tuple[VariableField, ...] = ()

    def field(self, name: str) -> VariableField | None:
        for variable in self.fields:
            if variable.name == name:
                return variable
        return None


# =============================================================================
# Graph
# =============================================================================


@dataclass(frozen=True)
class TypeGraph:
    # Anonymous operations are named after their kind
    operation_name: str
    operation_kind: str
    # Name of the root record of the response
    response: str
    variables: VariablesType
    records: tuple[RecordType, ...]
    variants: tuple[VariantType, ...] = ()
    enums: tuple[EnumDefinition, ...] = ()
    inputs: tuple[InputRecordType, ...] = ()
    scalars: tuple[ScalarReference, ...] = ()
    # Fragment name -> name of the type emitted for it
    fragments: Mapping[str, str] = field(default_factory=dict)
    # Minimal request document: the operation and the fragments it uses
    query: str = ""
    response_derives: frozenset[str] = frozenset()
    variables_derives: frozenset[str] = frozenset()
    anonymous: bool = False

    def record(self, name: str) -> RecordType:
        for record in self.records:
            if record.name == name:
                return record
        raise KeyError(name)

    def variant(self, name: str) -> VariantType:
        for variant in self.variants:
            if variant.name == name:
                return variant
        raise KeyError(name)

    def enum(self, name: str) -> EnumDefinition:
        for enum in self.enums:
            if enum.name == name:
                return enum
        raise KeyError(name)

    def input(self, name: str) -> InputRecordType:
        for input_type in self.inputs:
            if input_type.name == name:
                return input_type
        raise KeyError(name)

    def scalar(self, name: str) -> ScalarReference:
        for scalar in self.scalars:
            if scalar.name == name:
                return scalar
        raise KeyError(name)

    @property
    def root(self) -> RecordType:
        return self.record(self.response)
