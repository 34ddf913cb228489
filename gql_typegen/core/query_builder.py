"""Request builder for GraphQL operations.

Builds the minimal request document of an operation (the operation plus the
fragments it uses, in document order) and the JSON request body sent with
it. ``__typename`` is added to every selection on an interface or union so
the response carries the discriminant the generated variants dispatch on.
"""

import logging
from typing import Any, Mapping

from graphql import (
    DocumentNode,
    FieldNode,
    NameNode,
    SelectionSetNode,
    Visitor,
    parse,
    print_ast,
    visit,
)

from .ir import Schema, named_type_name
from .selector import SelectedOperation
from .type_graph import Presence, TypeGraph

logger = logging.getLogger(__name__)


class _TypenameInjector(Visitor):
    """Adds ``__typename`` to selection sets whose type is abstract."""

    def __init__(self, schema: Schema):
        super().__init__()
        self.schema = schema
        self.types: list[str | None] = []

    def enter_operation_definition(self, node, *_args):
        root = self.schema.root_type(node.operation.value)
        self.types.append(root.name if root else None)

    def leave_operation_definition(self, *_args):
        self.types.pop()

    def enter_fragment_definition(self, node, *_args):
        self.types.append(node.type_condition.name.value)

    def leave_fragment_definition(self, *_args):
        self.types.pop()

    def enter_inline_fragment(self, node, *_args):
        if node.type_condition is not None:
            self.types.append(node.type_condition.name.value)
        else:
            self.types.append(self.types[-1])

    def leave_inline_fragment(self, *_args):
        self.types.pop()

    def enter_field(self, node, *_args):
        parent = self.types[-1]
        schema_field = None
        if parent is not None and self.schema.is_composite(parent):
            schema_field = self.schema.fields_of(parent).get(node.name.value)
        self.types.append(named_type_name(schema_field.type) if schema_field else None)

    def leave_field(self, *_args):
        self.types.pop()

    def leave_selection_set(self, node, *_args):
        type_name = self.types[-1]
        if type_name is None or not self.schema.is_abstract(type_name):
            return None
        for selection in node.selections:
            if (
                isinstance(selection, FieldNode)
                and selection.alias is None
                and selection.name.value == "__typename"
            ):
                return None
        typename = FieldNode(
            alias=None,
            name=NameNode(value="__typename"),
            arguments=(),
            directives=(),
            selection_set=None,
        )
        return SelectionSetNode(selections=(typename, *node.selections), loc=node.loc)


class QueryBuilder:
    """Builds request documents and request bodies.

    Example:
        builder = QueryBuilder(schema)
        query = builder.build_document(select_operation(document, "GetHero"))
        body = builder.build_body(graph, {"id": "1000"})
    """

    def __init__(self, schema: Schema):
        """Initialize with the schema used to find abstract selections."""
        self.schema = schema

    def build_document(self, selected: SelectedOperation) -> str:
        """Return the request document for one selected operation.

        Fragments that only other operations of the document use are left out.
        """
        definitions = []
        for source in [selected.operation.source, *(f.source for f in selected.fragments)]:
            definitions.extend(parse(source, no_location=True).definitions)
        document = DocumentNode(definitions=tuple(definitions))
        document = visit(document, _TypenameInjector(self.schema))
        query = print_ast(document)
        logger.debug("Built request document for %s (%d bytes)", selected.name, len(query))
        return query

    def build_body(
        self,
        graph: TypeGraph,
        variables: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Return the JSON body ``{"query", "operationName", "variables"}``.

        Variables missing from ``variables`` are omitted from the body; a
        variable given as ``None`` is sent as an explicit null.

        Raises:
            ValueError: a variable is not declared by the operation, or a
                required variable is missing or null.
        """
        variables = dict(variables or {})
        declared = {field.name: field for field in graph.variables.fields}

        unknown = sorted(set(variables) - set(declared))
        if unknown:
            raise ValueError(
                f"Operation '{graph.operation_name}' does not declare variable(s): "
                f"{', '.join(unknown)}"
            )
        for name, variable in declared.items():
            if variable.presence is not Presence.REQUIRED:
                continue
            if name not in variables:
                raise ValueError(
                    f"Operation '{graph.operation_name}' requires variable '{name}'"
                )
            if variables[name] is None:
                raise ValueError(
                    f"Variable '{name}' of operation '{graph.operation_name}' must not be null"
                )

        return {
            "query": graph.query,
            "operationName": None if graph.anonymous else graph.operation_name,
            "variables": {name: variables[name] for name in declared if name in variables},
        }
