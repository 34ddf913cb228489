"""Operation documents: AST and parser.

``parse_document`` runs graphql-core's lexer/parser and converts its tree into
the small, immutable AST below. The conversion is purely syntactic: names are
not resolved against any schema here.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Union

from graphql import (
    ArgumentNode,
    BooleanValueNode,
    DirectiveNode,
    EnumValueNode,
    ExecutableDefinitionNode,
    FieldNode,
    FloatValueNode,
    FragmentDefinitionNode,
    FragmentSpreadNode,
    GraphQLSyntaxError,
    InlineFragmentNode,
    IntValueNode,
    ListTypeNode,
    ListValueNode,
    NamedTypeNode,
    Node,
    NonNullTypeNode,
    NullValueNode,
    ObjectValueNode,
    OperationDefinitionNode,
    SelectionSetNode,
    Source,
    StringValueNode,
    TypeNode,
    ValueNode,
    VariableDefinitionNode,
    VariableNode,
    parse,
)

from .errors import DocumentSyntaxError, Location
from .ir import ListTypeRef, NamedTypeRef, NonNullTypeRef, TypeRef

logger = logging.getLogger(__name__)


# =============================================================================
# Values
# =============================================================================


@dataclass(frozen=True)
class Variable:
    name: str
    location: Location | None = field(default=None, compare=False)


@dataclass(frozen=True)
class IntValue:
    value: int


@dataclass(frozen=True)
class FloatValue:
    value: float


@dataclass(frozen=True)
class StringValue:
    value: str


@dataclass(frozen=True)
class BooleanValue:
    value: bool


@dataclass(frozen=True)
class NullValue:
    pass


@dataclass(frozen=True)
class EnumValue:
    value: str


@dataclass(frozen=True)
class ListValue:
    values: tuple["Value", ...]


@dataclass(frozen=True)
class ObjectField:
    name: str
    value: "Value"


@dataclass(frozen=True)
class ObjectValue:
    fields: tuple[ObjectField, ...]


Value = Union[
    Variable, IntValue, FloatValue, StringValue, BooleanValue,
    NullValue, EnumValue, ListValue, ObjectValue,
]


def value_to_python(value: Value) -> Any:
    """Convert a constant literal to plain Python data (enums become strings)."""
    if isinstance(value, (IntValue, FloatValue, StringValue, BooleanValue, EnumValue)):
        return value.value
    if isinstance(value, NullValue):
        return None
    if isinstance(value, ListValue):
        return [value_to_python(v) for v in value.values]
    if isinstance(value, ObjectValue):
        return {f.name: value_to_python(f.value) for f in value.fields}
    raise ValueError(f"Variable ${value.name} is not a constant value")


def iter_variables(value: Value):
    """Yield every variable referenced inside a (possibly nested) value."""
    if isinstance(value, Variable):
        yield value
    elif isinstance(value, ListValue):
        for item in value.values:
            yield from iter_variables(item)
    elif isinstance(value, ObjectValue):
        for object_field in value.fields:
            yield from iter_variables(object_field.value)


# =============================================================================
# Selections and definitions
# =============================================================================


@dataclass(frozen=True)
class Argument:
    name: str
    value: Value
    location: Location | None = field(default=None, compare=False)


@dataclass(frozen=True)
class Directive:
    name: str
    arguments: tuple[Argument, ...] = ()
    location: Location | None = None

    def argument(self, name: str) -> Argument | None:
        for arg in self.arguments:
            if arg.name == name:
                return arg
        return None


@dataclass(frozen=True)
class Field:
    name: str
    alias: str | None = None
    arguments: tuple[Argument, ...] = ()
    directives: tuple[Directive, ...] = ()
    selection_set: "SelectionSet | None" = None
    location: Location | None = None

    @property
    def response_key(self) -> str:
        return self.alias or self.name


@dataclass(frozen=True)
class FragmentSpread:
    name: str
    directives: tuple[Directive, ...] = ()
    location: Location | None = None


@dataclass(frozen=True)
class InlineFragment:
    type_condition: str | None
    selection_set: "SelectionSet"
    directives: tuple[Directive, ...] = ()
    location: Location | None = None


Selection = Union[Field, FragmentSpread, InlineFragment]


@dataclass(frozen=True)
class SelectionSet:
    selections: tuple[Selection, ...]
    location: Location | None = None


@dataclass(frozen=True)
class VariableDefinition:
    name: str
    type: TypeRef
    default_value: Value | None = None
    directives: tuple[Directive, ...] = ()
    location: Location | None = None


@dataclass(frozen=True)
class OperationDefinition:
    """A query, mutation or subscription; ``name`` is None when anonymous."""
    kind: str
    name: str | None
    variable_definitions: tuple[VariableDefinition, ...]
    selection_set: SelectionSet
    directives: tuple[Directive, ...] = ()
    location: Location | None = None
    # Exact source text of this definition, used to build the request.
    source: str = ""

    @property
    def display_name(self) -> str:
        return self.name or f"<anonymous {self.kind}>"


@dataclass(frozen=True)
class FragmentDefinition:
    name: str
    type_condition: str
    selection_set: SelectionSet
    directives: tuple[Directive, ...] = ()
    location: Location | None = None
    source: str = ""


Definition = Union[OperationDefinition, FragmentDefinition]


@dataclass(frozen=True)
class Document:
    """Ordered operation and fragment definitions of one source."""
    definitions: tuple[Definition, ...]
    source_name: str = "GraphQL request"

    @property
    def operations(self) -> tuple[OperationDefinition, ...]:
        return tuple(d for d in self.definitions if isinstance(d, OperationDefinition))

    @property
    def fragments(self) -> tuple[FragmentDefinition, ...]:
        return tuple(d for d in self.definitions if isinstance(d, FragmentDefinition))


# =============================================================================
# Parser
# =============================================================================


def parse_document(source: str, source_name: str = "GraphQL request") -> Document:
    """Parse operation-document text into a ``Document``.

    Raises:
        DocumentSyntaxError: the text is not a valid executable document.
    """
    try:
        ast = parse(Source(source, source_name))
    except GraphQLSyntaxError as e:
        loc = e.locations[0] if e.locations else None
        raise DocumentSyntaxError(
            e.message,
            Location(loc.line, loc.column) if loc else None,
            source_name,
        ) from e

    definitions: list[Definition] = []
    for node in ast.definitions:
        if not isinstance(node, ExecutableDefinitionNode):
            raise DocumentSyntaxError(
                f"Unexpected {node.kind.replace('_', ' ')}; operation documents "
                "may only contain operations and fragments",
                _location(node),
                source_name,
            )
        if isinstance(node, OperationDefinitionNode):
            definitions.append(_convert_operation(node))
        else:
            definitions.append(_convert_fragment(node))

    document = Document(definitions=tuple(definitions), source_name=source_name)
    logger.debug(
        "Parsed %s: %d operation(s), %d fragment(s)",
        source_name, len(document.operations), len(document.fragments),
    )
    return document


def _convert_operation(node: OperationDefinitionNode) -> OperationDefinition:
    return OperationDefinition(
        kind=node.operation.value,
        name=node.name.value if node.name else None,
        variable_definitions=tuple(
            _convert_variable_definition(v) for v in node.variable_definitions or ()
        ),
        selection_set=_convert_selection_set(node.selection_set),
        directives=_convert_directives(node.directives),
        location=_location(node),
        source=_source_text(node),
    )


def _convert_fragment(node: FragmentDefinitionNode) -> FragmentDefinition:
    return FragmentDefinition(
        name=node.name.value,
        type_condition=node.type_condition.name.value,
        selection_set=_convert_selection_set(node.selection_set),
        directives=_convert_directives(node.directives),
        location=_location(node),
        source=_source_text(node),
    )


def _convert_variable_definition(node: VariableDefinitionNode) -> VariableDefinition:
    return VariableDefinition(
        name=node.variable.name.value,
        type=_convert_type(node.type),
        default_value=_convert_value(node.default_value) if node.default_value else None,
        directives=_convert_directives(node.directives),
        location=_location(node),
    )


def _convert_selection_set(node: SelectionSetNode) -> SelectionSet:
    selections = []
    for selection in node.selections:
        if isinstance(selection, FieldNode):
            selections.append(Field(
                name=selection.name.value,
                alias=selection.alias.value if selection.alias else None,
                arguments=_convert_arguments(selection.arguments),
                directives=_convert_directives(selection.directives),
                selection_set=(
                    _convert_selection_set(selection.selection_set)
                    if selection.selection_set else None
                ),
                location=_location(selection),
            ))
        elif isinstance(selection, FragmentSpreadNode):
            selections.append(FragmentSpread(
                name=selection.name.value,
                directives=_convert_directives(selection.directives),
                location=_location(selection),
            ))
        elif isinstance(selection, InlineFragmentNode):
            selections.append(InlineFragment(
                type_condition=(
                    selection.type_condition.name.value
                    if selection.type_condition else None
                ),
                selection_set=_convert_selection_set(selection.selection_set),
                directives=_convert_directives(selection.directives),
                location=_location(selection),
            ))
    return SelectionSet(selections=tuple(selections), location=_location(node))


def _convert_arguments(nodes: tuple[ArgumentNode, ...] | None) -> tuple[Argument, ...]:
    return tuple(
        Argument(
            name=node.name.value,
            value=_convert_value(node.value),
            location=_location(node),
        )
        for node in nodes or ()
    )


def _convert_directives(nodes: tuple[DirectiveNode, ...] | None) -> tuple[Directive, ...]:
    return tuple(
        Directive(
            name=node.name.value,
            arguments=_convert_arguments(node.arguments),
            location=_location(node),
        )
        for node in nodes or ()
    )


def _convert_value(node: ValueNode) -> Value:
    if isinstance(node, VariableNode):
        return Variable(node.name.value, _location(node))
    if isinstance(node, IntValueNode):
        return IntValue(int(node.value))
    if isinstance(node, FloatValueNode):
        return FloatValue(float(node.value))
    if isinstance(node, StringValueNode):
        return StringValue(node.value)
    if isinstance(node, BooleanValueNode):
        return BooleanValue(node.value)
    if isinstance(node, NullValueNode):
        return NullValue()
    if isinstance(node, EnumValueNode):
        return EnumValue(node.value)
    if isinstance(node, ListValueNode):
        return ListValue(tuple(_convert_value(v) for v in node.values))
    if isinstance(node, ObjectValueNode):
        return ObjectValue(tuple(
            ObjectField(f.name.value, _convert_value(f.value)) for f in node.fields
        ))
    raise TypeError(f"Unexpected value node {node!r}")


def _convert_type(node: TypeNode) -> TypeRef:
    if isinstance(node, NonNullTypeNode):
        return NonNullTypeRef(_convert_type(node.type))
    if isinstance(node, ListTypeNode):
        return ListTypeRef(_convert_type(node.type))
    assert isinstance(node, NamedTypeNode), f"Expected NamedTypeNode, got {type(node)}"
    return NamedTypeRef(node.name.value)


def _location(node: Node) -> Location | None:
    if node.loc is None:
        return None
    token = node.loc.start_token
    return Location(token.line, token.column)


def _source_text(node: Node) -> str:
    if node.loc is None:
        return ""
    return node.loc.source.body[node.loc.start:node.loc.end]
