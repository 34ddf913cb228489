"""Type-tree emitter: turns a bound operation into a Type Graph.

Naming is deterministic and positional:

    GetHeroData                 root record of operation GetHero
    GetHeroHero                 record (or variant) for field ``hero``
    GetHeroHeroOnHuman          alternative of that variant for Human
    GetHeroHeroOther            fallback when __typename matches no alternative
    CharacterFields             type of fragment CharacterFields
    GetHeroVariables            variables record

Records and variants are listed children first, so every type appears after
the types it refers to.
"""

import logging
from types import MappingProxyType

from .deprecation import FieldDisposition, field_disposition
from .document import NullValue, value_to_python
from .ir import (
    EnumType,
    InputObjectType,
    ListTypeRef,
    NonNullTypeRef,
    ScalarType,
    Schema,
    TypeRef,
    named_type_name,
)
from .options import GenerationOptions
from .selection import BoundField, BoundFragment, BoundOperation, BoundSelectionSet
from .type_graph import (
    DESERIALIZE,
    SERIALIZE,
    EnumDefinition,
    EnumMember,
    FragmentInclude,
    InputRecordField,
    InputRecordType,
    ListTarget,
    NamedTarget,
    OptionalTarget,
    Presence,
    RecordField,
    RecordType,
    ScalarReference,
    Target,
    TypeGraph,
    VariableField,
    VariablesType,
    VariantAlternative,
    VariantType,
)

logger = logging.getLogger(__name__)

DISCRIMINANT = "__typename"


def type_name_part(name: str) -> str:
    """Upper-case the first letter of a GraphQL name for use inside a type name."""
    return name[:1].upper() + name[1:]


class NameRegistry:
    """Hands out unique type names, adding a numeric suffix on collision."""

    def __init__(self, reserved=()):
        self._taken: set[str] = set(reserved)

    def claim(self, name: str) -> str:
        candidate = name
        suffix = 2
        while candidate in self._taken:
            candidate = f"{name}{suffix}"
            suffix += 1
        self._taken.add(candidate)
        return candidate


class _Emission:
    """Mutable state of a single ``emit`` call."""

    def __init__(self, schema: Schema, operation: str):
        self.operation = operation
        reserved = [
            named.name for named in schema.types.values()
            if isinstance(named, (EnumType, InputObjectType))
            or (isinstance(named, ScalarType) and not named.is_builtin)
        ]
        self.names = NameRegistry(reserved)
        self.records: dict[str, RecordType] = {}
        self.variants: dict[str, VariantType] = {}
        self.enums: dict[str, EnumDefinition] = {}
        self.inputs: dict[str, InputRecordType] = {}
        self.inputs_in_progress: set[str] = set()
        self.scalars: dict[str, ScalarReference] = {}
        self.fragment_types: dict[str, str] = {}
        self.fragments_done: set[str] = set()


class TypeGraphEmitter:
    """Emits Type Graphs for bound operations.

    Example:
        emitter = TypeGraphEmitter(schema, GenerationOptions(scalar_mode="closed"))
        graph = emitter.emit(bound_operation)
    """

    def __init__(self, schema: Schema, options: GenerationOptions | None = None):
        self.schema = schema
        self.options = options or GenerationOptions()
        self.scalar_registry = self.options.scalar_registry()

        extras = frozenset(self.options.response_extra_derives)
        self.response_derives = frozenset({DESERIALIZE}) | extras
        self.variables_derives = frozenset({SERIALIZE}) | extras
        self.enum_derives = extras - {SERIALIZE, DESERIALIZE}

    def emit(self, bound: BoundOperation, query: str = "") -> TypeGraph:
        """Build the Type Graph of one bound operation.

        Args:
            bound: Output of ``TypeBinder.bind``.
            query: Request document text to carry along in the graph.

        Raises:
            UnresolvedScalar: an unmapped custom scalar is reached in closed mode.
        """
        emission = _Emission(self.schema, bound.name)

        # Fragment names are claimed up front so spreads can refer to them.
        for fragment in bound.fragments:
            emission.fragment_types[fragment.name] = emission.names.claim(
                type_name_part(fragment.name)
            )
        for fragment in bound.fragments:
            self._emit_fragment(fragment, bound, emission)

        op_name = type_name_part(bound.name)
        response = emission.names.claim(f"{op_name}Data")
        self._emit_record(bound.selection, response, op_name, emission)
        variables = self._emit_variables(bound, op_name, emission)

        graph = TypeGraph(
            operation_name=bound.name,
            operation_kind=bound.operation.kind,
            response=response,
            variables=variables,
            records=tuple(emission.records.values()),
            variants=tuple(emission.variants.values()),
            enums=tuple(emission.enums.values()),
            inputs=tuple(emission.inputs.values()),
            scalars=tuple(emission.scalars.values()),
            fragments=MappingProxyType(dict(emission.fragment_types)),
            query=query,
            response_derives=self.response_derives,
            variables_derives=self.variables_derives,
            anonymous=bound.operation.name is None,
        )
        logger.debug(
            "Emitted %s: %d record(s), %d variant(s), %d enum(s), %d input(s)",
            bound.name, len(graph.records), len(graph.variants),
            len(graph.enums), len(graph.inputs),
        )
        return graph

    # =========================================================================
    # Response types
    # =========================================================================

    def _emit_fragment(self, fragment: BoundFragment, bound: BoundOperation, emission: _Emission):
        if fragment.name in emission.fragments_done:
            return
        emission.fragments_done.add(fragment.name)
        for dependency in fragment.dependencies:
            self._emit_fragment(bound.fragment(dependency), bound, emission)
        name = emission.fragment_types[fragment.name]
        self._emit_position(fragment.selection, name, emission)

    def _emit_position(
        self, selection: BoundSelectionSet, name: str, emission: _Emission
    ) -> NamedTarget:
        """Emit the type for a composite position; ``name`` is already claimed."""
        if not selection.is_polymorphic:
            self._emit_record(selection, name, name, emission)
            return NamedTarget("record", name)

        alternatives = []
        for variant in selection.variants:
            record = emission.names.claim(f"{name}On{variant.type_name}")
            self._emit_record(variant.selection, record, record, emission)
            alternatives.append(VariantAlternative(variant.type_name, record))
        fallback = emission.names.claim(f"{name}Other")
        self._emit_record(selection, fallback, name, emission)

        emission.variants[name] = VariantType(
            name=name,
            graphql_type=selection.type_name,
            discriminant=DISCRIMINANT,
            alternatives=tuple(alternatives),
            fallback=fallback,
            derives=self.response_derives,
        )
        return NamedTarget("variant", name)

    def _emit_record(
        self,
        selection: BoundSelectionSet,
        name: str,
        prefix: str,
        emission: _Emission,
    ):
        fields = tuple(
            self._record_field(bound_field, prefix, emission)
            for bound_field in selection.fields
        )
        includes = tuple(
            FragmentInclude(
                fragment_name=spread.fragment_name,
                type_name=emission.fragment_types[spread.fragment_name],
                conditional=spread.conditional,
            )
            for spread in selection.spreads
        )
        emission.records[name] = RecordType(
            name=name,
            graphql_type=selection.type_name,
            fields=fields,
            fragments=includes,
            derives=self.response_derives,
        )

    def _record_field(self, bound_field: BoundField, prefix: str, emission: _Emission) -> RecordField:
        if bound_field.selection is not None:
            child = emission.names.claim(prefix + type_name_part(bound_field.response_key))
            named = self._emit_position(bound_field.selection, child, emission)
        else:
            named = self._leaf_target(named_type_name(bound_field.type), emission)

        target = wrap_target(bound_field.type, named)
        if bound_field.conditional and not isinstance(target, OptionalTarget):
            target = OptionalTarget(target)
        return RecordField(
            name=bound_field.response_key,
            graphql_name=bound_field.name,
            target=target,
            deprecated=bound_field.deprecated,
            deprecation_reason=bound_field.deprecation_reason if bound_field.deprecated else None,
            conditional=bound_field.conditional,
        )

    def _leaf_target(self, type_name: str, emission: _Emission) -> NamedTarget:
        named = self.schema.types[type_name]
        if isinstance(named, EnumType):
            self._emit_enum(named, emission)
            return NamedTarget("enum", type_name)
        if not named.is_builtin and type_name not in emission.scalars:
            emission.scalars[type_name] = self.scalar_registry.resolve(type_name, emission.operation)
        return NamedTarget("scalar", type_name)

    def _emit_enum(self, enum: EnumType, emission: _Emission):
        if enum.name in emission.enums:
            return
        members = []
        for value in enum.values:
            disposition = field_disposition(self.options.deprecated, value.is_deprecated)
            if disposition is FieldDisposition.EXCLUDE:
                continue
            members.append(EnumMember(
                name=value.name,
                deprecated=disposition is FieldDisposition.KEEP_MARKED,
            ))
        emission.enums[enum.name] = EnumDefinition(
            name=enum.name,
            values=tuple(members),
            derives=self.enum_derives,
        )

    # =========================================================================
    # Variables and input types
    # =========================================================================

    def _emit_variables(self, bound: BoundOperation, op_name: str, emission: _Emission) -> VariablesType:
        fields = []
        for definition in bound.variables:
            named = self._input_target(named_type_name(definition.type), emission)
            has_default = definition.default_value is not None
            required = isinstance(definition.type, NonNullTypeRef) and not has_default
            default = None
            if has_default and not isinstance(definition.default_value, NullValue):
                default = value_to_python(definition.default_value)
            fields.append(VariableField(
                name=definition.name,
                target=wrap_target(definition.type, named),
                presence=Presence.REQUIRED if required else Presence.OPTIONAL,
                default=default,
                has_default=has_default,
            ))
        return VariablesType(
            name=emission.names.claim(f"{op_name}Variables"),
            fields=tuple(fields),
        )

    def _input_target(self, type_name: str, emission: _Emission) -> NamedTarget:
        named = self.schema.types[type_name]
        if isinstance(named, InputObjectType):
            self._emit_input(named, emission)
            return NamedTarget("input", type_name)
        return self._leaf_target(type_name, emission)

    def _emit_input(self, input_type: InputObjectType, emission: _Emission):
        if input_type.name in emission.inputs or input_type.name in emission.inputs_in_progress:
            return
        emission.inputs_in_progress.add(input_type.name)
        fields = []
        for input_field in input_type.fields.values():
            named = self._input_target(named_type_name(input_field.type), emission)
            fields.append(InputRecordField(
                name=input_field.name,
                target=wrap_target(input_field.type, named),
                required=input_field.is_required,
                has_default=input_field.has_default,
            ))
        emission.inputs_in_progress.discard(input_type.name)
        emission.inputs[input_type.name] = InputRecordType(input_type.name, tuple(fields))


def wrap_target(type_ref: TypeRef, named: NamedTarget, optional: bool = True) -> Target:
    """Mirror GraphQL list/non-null wrapping around a named target."""
    if isinstance(type_ref, NonNullTypeRef):
        return wrap_target(type_ref.of_type, named, optional=False)
    if isinstance(type_ref, ListTypeRef):
        target = ListTarget(wrap_target(type_ref.of_type, named))
    else:
        target = named
    return OptionalTarget(target) if optional else target
