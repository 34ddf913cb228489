"""Compiler entry points: schema + document -> Type Graph(s).

Example usage:
    from gql_typegen.core.compiler import compile_operation

    graph = compile_operation(SDL, QUERY, GenerationOptions(operation_name="GetHero"))
"""

import logging
from typing import Any

from .binder import TypeBinder
from .document import Document, parse_document
from .emitter import TypeGraphEmitter
from .fragments import FragmentResolver
from .ir import Schema
from .options import GenerationOptions
from .parser import parse_schema
from .query_builder import QueryBuilder
from .selector import SelectedOperation, select_all, select_operation
from .type_graph import TypeGraph

logger = logging.getLogger(__name__)


def load_schema(schema: Schema | str | dict[str, Any]) -> Schema:
    """Accept a parsed schema, SDL text or introspection JSON."""
    if isinstance(schema, Schema):
        return schema
    return parse_schema(schema)


def load_document(document: Document | str) -> Document:
    """Accept a parsed document or document text."""
    if isinstance(document, Document):
        return document
    return parse_document(document)


class Compiler:
    """Binds and emits operations against one schema.

    A compiler reuses fragment bindings across the operations it compiles,
    so operations spreading the same fragment get the same fragment types.
    """

    def __init__(self, schema: Schema, options: GenerationOptions | None = None):
        self.schema = schema
        self.options = options or GenerationOptions()
        self.binder = TypeBinder(schema, self.options.deprecated)
        self.emitter = TypeGraphEmitter(schema, self.options)
        self.query_builder = QueryBuilder(schema)

    def compile(self, selected: SelectedOperation) -> TypeGraph:
        bound = self.binder.bind(selected)
        query = self.query_builder.build_document(selected)
        return self.emitter.emit(bound, query)


def compile_operation(
    schema: Schema | str | dict[str, Any],
    document: Document | str,
    options: GenerationOptions | None = None,
) -> TypeGraph:
    """Compile the operation named by ``options.operation_name``.

    The name may be omitted when the document holds a single operation.

    Raises:
        TypegenError: any parse, selection, binding or emission failure.
    """
    options = options or GenerationOptions()
    schema = load_schema(schema)
    document = load_document(document)
    selected = select_operation(document, options.operation_name)
    logger.info("Compiling %s", selected.name)
    return Compiler(schema, options).compile(selected)


def compile_document(
    schema: Schema | str | dict[str, Any],
    document: Document | str,
    options: GenerationOptions | None = None,
) -> tuple[TypeGraph, ...]:
    """Compile every operation of a document.

    ``options.operation_name`` is ignored; all fragments of the document are
    validated, including ones no operation uses.
    """
    options = options or GenerationOptions()
    schema = load_schema(schema)
    document = load_document(document)
    FragmentResolver(document).check_all()
    compiler = Compiler(schema, options)
    graphs = tuple(compiler.compile(selected) for selected in select_all(document))
    logger.info("Compiled %d operation(s) from %s", len(graphs), document.source_name)
    return graphs
