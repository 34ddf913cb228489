"""Type binder: resolves operation selections against the Schema Model.

Binding walks an operation's selection set, looks every field up on the
schema type at its position, checks arguments and variable usages, and
produces a ``BoundOperation``. Polymorphic positions (interfaces and unions)
are split into the fields shared by every runtime type plus one branch per
concrete type named by an inline fragment or fragment spread; a
``__typename`` discriminant is always added to them.

Named fragments are bound once per binder, against their own type condition,
and referenced by name from every position that spreads them.

A binder keeps that fragment memo as state, so use one binder per thread.
The ``Schema`` it reads is immutable and can be shared.
"""

import logging
from dataclasses import dataclass, field

from .deprecation import (
    DEFAULT_STRATEGY,
    DeprecationStrategy,
    FieldDisposition,
    field_disposition,
)
from .document import (
    BooleanValue,
    Directive,
    EnumValue,
    Field,
    FloatValue,
    FragmentDefinition,
    FragmentSpread,
    InlineFragment,
    IntValue,
    ListValue,
    NullValue,
    ObjectValue,
    OperationDefinition,
    SelectionSet,
    StringValue,
    Value,
    Variable,
    VariableDefinition,
)
from .errors import (
    ConflictingFieldSelection,
    DeprecatedFieldSelected,
    FragmentCycle,
    InvalidArgument,
    InvalidSelection,
    Location,
    MissingRequiredVariable,
    TypeConditionMismatch,
    UndefinedFragment,
    UndefinedVariable,
    UnknownField,
    UnknownType,
    UnusedVariable,
    VariableTypeMismatch,
)
from .ir import (
    EnumType,
    InputObjectType,
    ListTypeRef,
    NamedTypeRef,
    NonNullTypeRef,
    ScalarType,
    Schema,
    SchemaField,
    TypeRef,
    named_type_name,
    print_type,
)
from .selection import (
    BoundArgument,
    BoundField,
    BoundFragment,
    BoundOperation,
    BoundSelectionSet,
    BoundSpread,
    BoundVariant,
    VariableUsage,
)
from .selector import SelectedOperation

logger = logging.getLogger(__name__)

TYPENAME_FIELD = SchemaField(
    name="__typename",
    type=NonNullTypeRef(NamedTypeRef("String")),
    description="The name of the current object type at runtime.",
)

_INT_MIN, _INT_MAX = -(2 ** 31), 2 ** 31 - 1

# Literal kinds accepted by the built-in scalars
_SCALAR_LITERALS = {
    "String": (StringValue,),
    "Int": (IntValue,),
    "Float": (IntValue, FloatValue),
    "Boolean": (BooleanValue,),
    "ID": (StringValue, IntValue),
}

_BOOLEAN_NON_NULL = NonNullTypeRef(NamedTypeRef("Boolean"))


@dataclass
class _Occurrence:
    """One appearance of a field in the document, with the type it was written on."""
    node: Field
    scope: str
    conditional: bool


@dataclass
class _Collected:
    fields: dict[str, list[_Occurrence]] = field(default_factory=dict)
    spreads: dict[str, BoundSpread] = field(default_factory=dict)
    branches: dict[str, "_Collected"] = field(default_factory=dict)

    def add_spread(self, spread: BoundSpread):
        existing = self.spreads.get(spread.fragment_name)
        if existing is None or (existing.conditional and not spread.conditional):
            self.spreads[spread.fragment_name] = spread


@dataclass
class _Context:
    """Per-definition binding state."""
    definitions: dict[str, FragmentDefinition]
    usages: list[VariableUsage] = field(default_factory=list)
    spreads: list[str] = field(default_factory=list)


class TypeBinder:
    """Binds operations of a document against a schema.

    Example:
        binder = TypeBinder(schema, deprecation="deny")
        bound = binder.bind(select_operation(document, "GetHero"))
    """

    def __init__(
        self,
        schema: Schema,
        deprecation: DeprecationStrategy | str = DEFAULT_STRATEGY,
    ):
        self.schema = schema
        self.deprecation = DeprecationStrategy(deprecation)
        self._fragments: dict[FragmentDefinition, BoundFragment] = {}
        self._in_progress: list[str] = []

    def bind(self, selected: SelectedOperation) -> BoundOperation:
        """Bind one selected operation.

        Raises:
            BindingError: any schema/document mismatch (see ``errors``).
        """
        operation = selected.operation
        root = self.schema.root_type(operation.kind)
        if root is None:
            raise UnknownType(
                operation.kind.capitalize(),
                f"(the schema defines no {operation.kind} root type)",
                operation.location,
            )

        self._check_variable_definitions(operation)
        ctx = _Context(definitions={f.name: f for f in selected.fragments})
        selection = self._bind_selection_set(
            root.name, [(root.name, operation.selection_set)], ctx
        )

        fragments = tuple(self._fragments[f] for f in selected.fragments)
        usages = list(ctx.usages)
        for bound_fragment in fragments:
            usages.extend(bound_fragment.variable_usages)
        self._check_variable_usages(operation, usages)

        logger.debug(
            "Bound %s %s against %s (%d fragment(s))",
            operation.kind, operation.display_name, root.name, len(fragments),
        )
        return BoundOperation(
            operation=operation,
            root_type=root.name,
            selection=selection,
            variables=operation.variable_definitions,
            fragments=fragments,
        )

    # =========================================================================
    # Fragments
    # =========================================================================

    def _bind_fragment(self, definition: FragmentDefinition, ctx: _Context) -> BoundFragment:
        cached = self._fragments.get(definition)
        if cached is not None:
            return cached
        if definition.name in self._in_progress:
            cycle = self._in_progress[self._in_progress.index(definition.name):]
            raise FragmentCycle(cycle + [definition.name], definition.location)

        condition = definition.type_condition
        self._check_condition_type(condition, definition.location)

        self._in_progress.append(definition.name)
        try:
            fragment_ctx = _Context(definitions=ctx.definitions)
            selection = self._bind_selection_set(
                condition, [(condition, definition.selection_set)], fragment_ctx
            )
        finally:
            self._in_progress.pop()

        bound = BoundFragment(
            name=definition.name,
            type_condition=condition,
            selection=selection,
            dependencies=tuple(dict.fromkeys(fragment_ctx.spreads)),
            variable_usages=tuple(fragment_ctx.usages),
        )
        self._fragments[definition] = bound
        return bound

    def _check_condition_type(self, condition: str, location: Location | None):
        if condition not in self.schema.types:
            raise UnknownType(condition, "in type condition", location)
        if not self.schema.is_composite(condition):
            raise TypeConditionMismatch(condition, condition, [], location)

    # =========================================================================
    # Selection sets
    # =========================================================================

    def _bind_selection_set(
        self,
        type_name: str,
        groups: list[tuple[str, SelectionSet]],
        ctx: _Context,
    ) -> BoundSelectionSet:
        """Bind the merged selection sets ``groups`` at a position of ``type_name``."""
        collected = _Collected()
        for scope, selection_set in groups:
            self._collect(type_name, scope, selection_set, collected, ctx, False)
        return self._build(type_name, collected, ctx, self.schema.is_abstract(type_name))

    def _collect(
        self,
        position: str,
        scope: str,
        selection_set: SelectionSet,
        target: _Collected,
        ctx: _Context,
        conditional: bool,
    ):
        """Gather fields, spreads and type-conditioned branches of a selection set.

        ``position`` is the type every object reaching this point has;
        ``scope`` is the type the selections were written against and is
        what field names are checked on.
        """
        for selection in selection_set.selections:
            if isinstance(selection, Field):
                is_conditional = conditional or self._is_conditional(selection.directives, ctx)
                target.fields.setdefault(selection.response_key, []).append(
                    _Occurrence(selection, scope, is_conditional)
                )

            elif isinstance(selection, InlineFragment):
                is_conditional = conditional or self._is_conditional(selection.directives, ctx)
                condition = selection.type_condition or scope
                branches = self._apply_condition(position, condition, selection.location)
                if branches is None:
                    self._collect(
                        position, condition, selection.selection_set, target, ctx, is_conditional
                    )
                else:
                    for concrete in branches:
                        branch = target.branches.setdefault(concrete, _Collected())
                        self._collect(
                            concrete, condition, selection.selection_set, branch, ctx, is_conditional
                        )

            elif isinstance(selection, FragmentSpread):
                is_conditional = conditional or self._is_conditional(selection.directives, ctx)
                definition = ctx.definitions.get(selection.name)
                if definition is None:
                    raise UndefinedFragment(selection.name, selection.location)
                condition = definition.type_condition
                self._check_condition_type(condition, definition.location)
                branches = self._apply_condition(position, condition, selection.location)
                self._bind_fragment(definition, ctx)
                ctx.spreads.append(selection.name)

                spread = BoundSpread(
                    fragment_name=selection.name,
                    type_condition=condition,
                    conditional=is_conditional,
                    location=selection.location,
                )
                if branches is None:
                    target.add_spread(spread)
                else:
                    for concrete in branches:
                        target.branches.setdefault(concrete, _Collected()).add_spread(spread)

    def _apply_condition(
        self, position: str, condition: str, location: Location | None
    ) -> tuple[str, ...] | None:
        """Relate a type condition to a position.

        Returns None when the position type is declared a subtype of the
        condition, otherwise the concrete types it narrows the position to.
        """
        self._check_condition_type(condition, location)
        if self.schema.is_subtype(position, condition):
            return None

        position_types = self.schema.possible_types(position)
        condition_types = set(self.schema.possible_types(condition))
        overlap = tuple(t for t in position_types if t in condition_types)
        if not overlap:
            raise TypeConditionMismatch(condition, position, list(position_types), location)
        return overlap

    def _build(
        self,
        type_name: str,
        collected: _Collected,
        ctx: _Context,
        with_typename: bool,
    ) -> BoundSelectionSet:
        named = self.schema.types[type_name]
        fields: list[BoundField] = []
        if with_typename and "__typename" not in collected.fields:
            fields.append(BoundField(
                response_key="__typename",
                name="__typename",
                parent_type=type_name,
                schema_field=TYPENAME_FIELD,
                type=TYPENAME_FIELD.type,
            ))
        for key, occurrences in collected.fields.items():
            fields.append(self._bind_field(type_name, key, occurrences, ctx))

        variants = []
        for concrete, branch in collected.branches.items():
            # A branch sees the shared selections as well as its own.
            merged = _Collected()
            for key, occurrences in collected.fields.items():
                merged.fields[key] = list(occurrences)
            for key, occurrences in branch.fields.items():
                merged.fields.setdefault(key, []).extend(occurrences)
            for spread in collected.spreads.values():
                merged.add_spread(spread)
            for spread in branch.spreads.values():
                merged.add_spread(spread)
            variants.append(BoundVariant(
                type_name=concrete,
                selection=self._build(concrete, merged, ctx, True),
            ))

        bound = BoundSelectionSet(
            type_name=type_name,
            kind=named.kind,
            fields=tuple(fields),
            spreads=tuple(collected.spreads.values()),
            variants=tuple(variants),
        )
        self._check_flattened_conflicts(bound, ctx)
        return bound

    def _check_flattened_conflicts(self, bound: BoundSelectionSet, ctx: _Context):
        """Fields pulled in through fragment spreads must agree with local ones."""
        seen = {f.response_key: f for f in bound.fields}
        for spread in bound.spreads:
            for other in self._flattened_fields(spread.fragment_name, ctx, []):
                mine = seen.setdefault(other.response_key, other)
                if mine is other:
                    continue
                if mine.name != other.name:
                    raise ConflictingFieldSelection(
                        other.response_key,
                        f"'{mine.name}' and '{other.name}' are different fields "
                        f"(via fragment '{spread.fragment_name}')",
                        spread.location,
                    )
                if _argument_map(mine.arguments) != _argument_map(other.arguments):
                    raise ConflictingFieldSelection(
                        other.response_key,
                        f"they have differing arguments (via fragment '{spread.fragment_name}')",
                        spread.location,
                    )

    def _flattened_fields(self, fragment_name: str, ctx: _Context, visited: list[str]) -> list[BoundField]:
        if fragment_name in visited:
            return []
        visited.append(fragment_name)
        fragment = self._fragments[ctx.definitions[fragment_name]]
        fields = list(fragment.selection.fields)
        for spread in fragment.selection.spreads:
            fields.extend(self._flattened_fields(spread.fragment_name, ctx, visited))
        return fields

    # =========================================================================
    # Fields
    # =========================================================================

    def _bind_field(
        self,
        position: str,
        key: str,
        occurrences: list[_Occurrence],
        ctx: _Context,
    ) -> BoundField:
        first = occurrences[0]
        name = first.node.name
        for occurrence in occurrences[1:]:
            if occurrence.node.name != name:
                raise ConflictingFieldSelection(
                    key,
                    f"'{name}' and '{occurrence.node.name}' are different fields",
                    occurrence.node.location,
                )
            if set(occurrence.node.arguments) != set(first.node.arguments):
                raise ConflictingFieldSelection(
                    key, "they have differing arguments", occurrence.node.location
                )
        conditional = all(o.conditional for o in occurrences)
        has_selection = [o.node.selection_set is not None for o in occurrences]

        if name == "__typename":
            if any(has_selection):
                raise InvalidSelection(
                    name, "String!", "is a leaf and must not have a selection set",
                    first.node.location,
                )
            return BoundField(
                response_key=key,
                name=name,
                parent_type=position,
                schema_field=TYPENAME_FIELD,
                type=TYPENAME_FIELD.type,
                conditional=conditional,
                location=first.node.location,
            )

        for occurrence in occurrences:
            scope_fields = self.schema.fields_of(occurrence.scope)
            if name not in scope_fields:
                raise UnknownField(
                    name,
                    occurrence.scope,
                    list(scope_fields) + ["__typename"],
                    occurrence.node.location,
                )
        schema_field = (
            self.schema.fields_of(position).get(name)
            or self.schema.fields_of(first.scope)[name]
        )

        disposition = field_disposition(self.deprecation, schema_field.is_deprecated)
        if disposition is FieldDisposition.EXCLUDE:
            raise DeprecatedFieldSelected(
                name, first.scope, schema_field.deprecation_reason, first.node.location
            )
        if disposition is FieldDisposition.KEEP_MARKED:
            logger.warning(
                "%s: field %s.%s is deprecated: %s",
                first.node.location, first.scope, name, schema_field.deprecation_reason,
            )

        arguments = self._bind_arguments(
            f"{first.scope}.{name}", schema_field, first.node, ctx
        )

        target = named_type_name(schema_field.type)
        if self.schema.is_leaf(target):
            if any(has_selection):
                raise InvalidSelection(
                    name, print_type(schema_field.type),
                    "is a leaf and must not have a selection set",
                    first.node.location,
                )
            selection = None
        else:
            if not all(has_selection):
                raise InvalidSelection(
                    name, print_type(schema_field.type),
                    "must have a selection of subfields",
                    first.node.location,
                )
            selection = self._bind_selection_set(
                target, [(target, o.node.selection_set) for o in occurrences], ctx
            )

        return BoundField(
            response_key=key,
            name=name,
            parent_type=position,
            schema_field=schema_field,
            type=schema_field.type,
            arguments=arguments,
            deprecated=disposition is FieldDisposition.KEEP_MARKED,
            deprecation_reason=schema_field.deprecation_reason,
            conditional=conditional,
            selection=selection,
            location=first.node.location,
        )

    def _bind_arguments(
        self,
        label: str,
        schema_field: SchemaField,
        node: Field,
        ctx: _Context,
    ) -> tuple[BoundArgument, ...]:
        bound = []
        given: set[str] = set()
        for arg in node.arguments:
            decl = schema_field.argument(arg.name)
            if decl is None:
                expected = ", ".join(a.name for a in schema_field.arguments) or "(none)"
                raise InvalidArgument(
                    label, arg.name, f"not declared; expected one of: {expected}",
                    arg.location or node.location,
                )
            if arg.name in given:
                raise InvalidArgument(
                    label, arg.name, "given more than once", arg.location or node.location
                )
            given.add(arg.name)
            self._check_value(
                arg.value, decl.type, decl.has_default, ctx, label, arg.name,
                arg.location or node.location,
            )
            bound.append(BoundArgument(arg.name, arg.value, decl.type))

        for decl in schema_field.arguments:
            if decl.is_required and decl.name not in given:
                raise MissingRequiredVariable(
                    decl.name,
                    print_type(decl.type),
                    f"is required by field '{label}' but not provided",
                    node.location,
                )
        return tuple(bound)

    def _is_conditional(self, directives: tuple[Directive, ...], ctx: _Context) -> bool:
        """Check @skip/@include and report whether they make a selection optional."""
        conditional = False
        for directive in directives:
            if directive.name not in ("skip", "include"):
                continue
            label = f"@{directive.name}"
            for arg in directive.arguments:
                if arg.name != "if":
                    raise InvalidArgument(
                        label, arg.name, "not declared; expected one of: if",
                        arg.location or directive.location,
                    )
            condition = directive.argument("if")
            if condition is None:
                raise MissingRequiredVariable(
                    "if", "Boolean!", f"is required by directive '{label}' but not provided",
                    directive.location,
                )
            self._check_value(
                condition.value, _BOOLEAN_NON_NULL, False, ctx, label, "if",
                condition.location or directive.location,
            )
            conditional = True
        return conditional

    # =========================================================================
    # Values and variables
    # =========================================================================

    def _check_value(
        self,
        value: Value,
        expected: TypeRef,
        location_has_default: bool,
        ctx: _Context | None,
        label: str,
        argument: str,
        location: Location | None,
    ):
        """Check a literal (or variable) against an input type.

        ``ctx`` is None for constant positions such as variable defaults,
        where variables are not allowed.
        """
        if isinstance(value, Variable):
            if ctx is None:
                raise InvalidArgument(
                    label, argument, f"variable ${value.name} is not allowed in a constant value",
                    location,
                )
            ctx.usages.append(VariableUsage(
                name=value.name,
                expected=expected,
                location_has_default=location_has_default,
                location=value.location or location,
            ))
            return

        if isinstance(expected, NonNullTypeRef):
            if isinstance(value, NullValue):
                raise InvalidArgument(
                    label, argument, f"expected non-null '{print_type(expected)}', got null",
                    location,
                )
            self._check_value(value, expected.of_type, False, ctx, label, argument, location)
            return

        if isinstance(value, NullValue):
            return

        if isinstance(expected, ListTypeRef):
            items = value.values if isinstance(value, ListValue) else (value,)
            for item in items:
                self._check_value(item, expected.of_type, False, ctx, label, argument, location)
            return

        if isinstance(value, ListValue):
            raise InvalidArgument(
                label, argument, f"expected '{print_type(expected)}', got a list", location
            )

        named = self.schema.types[expected.name]
        if isinstance(named, InputObjectType):
            if not isinstance(value, ObjectValue):
                raise InvalidArgument(
                    label, argument, f"expected input object '{named.name}'", location
                )
            given = set()
            for object_field in value.fields:
                decl = named.fields.get(object_field.name)
                if decl is None:
                    raise InvalidArgument(
                        label, argument,
                        f"field '{object_field.name}' is not defined on input type "
                        f"'{named.name}'",
                        location,
                    )
                given.add(object_field.name)
                self._check_value(
                    object_field.value, decl.type, decl.has_default, ctx, label, argument, location
                )
            for decl in named.fields.values():
                if decl.is_required and decl.name not in given:
                    raise InvalidArgument(
                        label, argument,
                        f"missing required field '{decl.name}' of input type '{named.name}'",
                        location,
                    )
            return

        if isinstance(named, EnumType):
            if not isinstance(value, EnumValue) or named.value(value.value) is None:
                raise InvalidArgument(
                    label, argument,
                    f"expected a value of enum '{named.name}' "
                    f"({', '.join(v.name for v in named.values)})",
                    location,
                )
            return

        if isinstance(named, ScalarType):
            accepted = _SCALAR_LITERALS.get(named.name)
            if accepted is None:
                # Custom scalars accept any literal
                return
            if not isinstance(value, accepted):
                raise InvalidArgument(
                    label, argument,
                    f"expected '{named.name}', got {type(value).__name__}",
                    location,
                )
            if named.name == "Int" and not _INT_MIN <= value.value <= _INT_MAX:
                raise InvalidArgument(
                    label, argument, f"{value.value} does not fit in a 32-bit Int", location
                )
            return

        raise InvalidArgument(
            label, argument, f"'{named.name}' is not an input type", location
        )

    def _check_variable_definitions(self, operation: OperationDefinition):
        seen: set[str] = set()
        for definition in operation.variable_definitions:
            label = operation.display_name
            if definition.name in seen:
                raise InvalidArgument(
                    label, f"${definition.name}", "variable is defined more than once",
                    definition.location,
                )
            seen.add(definition.name)

            type_name = named_type_name(definition.type)
            if type_name not in self.schema.types:
                raise UnknownType(
                    type_name, f"for variable '${definition.name}'", definition.location
                )
            if not self.schema.is_input_type(type_name):
                raise InvalidArgument(
                    label, f"${definition.name}",
                    f"'{type_name}' is not an input type", definition.location,
                )

            default = definition.default_value
            if default is None:
                continue
            if isinstance(definition.type, NonNullTypeRef) and isinstance(default, NullValue):
                raise MissingRequiredVariable(
                    definition.name,
                    print_type(definition.type),
                    "has a null default and can never be satisfied",
                    definition.location,
                )
            self._check_value(
                default, definition.type, False, None, label,
                f"${definition.name}", definition.location,
            )

    def _check_variable_usages(
        self, operation: OperationDefinition, usages: list[VariableUsage]
    ):
        definitions = {d.name: d for d in operation.variable_definitions}
        used: set[str] = set()
        for usage in usages:
            definition = definitions.get(usage.name)
            if definition is None:
                raise UndefinedVariable(usage.name, operation.display_name, usage.location)
            used.add(usage.name)
            if not _usage_allowed(definition, usage):
                raise VariableTypeMismatch(
                    usage.name,
                    print_type(definition.type),
                    print_type(usage.expected),
                    usage.location,
                )
        for definition in operation.variable_definitions:
            if definition.name not in used:
                raise UnusedVariable(
                    definition.name, operation.display_name, definition.location
                )


def _argument_map(arguments: tuple[BoundArgument, ...]) -> dict:
    return {arg.name: arg.value for arg in arguments}


def _usage_allowed(definition: VariableDefinition, usage: VariableUsage) -> bool:
    """Whether a variable of the declared type may flow into the usage position."""
    variable_type = definition.type
    expected = usage.expected
    if isinstance(expected, NonNullTypeRef) and not isinstance(variable_type, NonNullTypeRef):
        has_default = (
            definition.default_value is not None
            and not isinstance(definition.default_value, NullValue)
        )
        if not (has_default or usage.location_has_default):
            return False
        return _is_subtype(variable_type, expected.of_type)
    return _is_subtype(variable_type, expected)


def _is_subtype(actual: TypeRef, expected: TypeRef) -> bool:
    if isinstance(expected, NonNullTypeRef):
        return isinstance(actual, NonNullTypeRef) and _is_subtype(actual.of_type, expected.of_type)
    if isinstance(actual, NonNullTypeRef):
        return _is_subtype(actual.of_type, expected)
    if isinstance(expected, ListTypeRef):
        return isinstance(actual, ListTypeRef) and _is_subtype(actual.of_type, expected.of_type)
    if isinstance(actual, ListTypeRef):
        return False
    return actual.name == expected.name
