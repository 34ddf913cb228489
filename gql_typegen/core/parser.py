"""GraphQL schema parser using graphql-core.

Parses schema sources (SDL text or an introspection result) and produces the
immutable ``Schema`` model. Both source forms go through a
``graphql.GraphQLSchema`` first, so they normalize to an identical model.
Reading files is left to the caller.
"""

import json
import logging
from types import MappingProxyType
from typing import Any

from graphql import (
    DocumentNode,
    GraphQLArgument,
    GraphQLEnumType,
    GraphQLError,
    GraphQLField,
    GraphQLInputObjectType,
    GraphQLInterfaceType,
    GraphQLList,
    GraphQLNamedType,
    GraphQLNonNull,
    GraphQLObjectType,
    GraphQLScalarType,
    GraphQLSchema,
    GraphQLSyntaxError,
    GraphQLUnionType,
    build_ast_schema,
    build_client_schema,
    parse,
    validate_schema,
)
from graphql.pyutils import Undefined

from .errors import Location, SchemaParseError
from .ir import (
    EnumType,
    EnumValue,
    InputObjectType,
    InterfaceType,
    ListTypeRef,
    NamedType,
    NamedTypeRef,
    NonNullTypeRef,
    ObjectType,
    ScalarType,
    Schema,
    SchemaArgument,
    SchemaField,
    TypeRef,
    UnionType,
)

logger = logging.getLogger(__name__)


class SchemaParser:
    """Parses GraphQL schema sources into the Schema Model."""

    def __init__(self, source_name: str = "schema"):
        """Initialize a parser; ``source_name`` is used in error messages."""
        self.source_name = source_name

    def parse(self, source: str | dict[str, Any]) -> Schema:
        """Parse SDL text, introspection JSON text or a decoded introspection dict."""
        if isinstance(source, dict):
            return self.parse_introspection(source)
        if source.lstrip().startswith("{"):
            return self.parse_introspection(source)
        return self.parse_sdl(source)

    def parse_sdl(self, *sources: str) -> Schema:
        """Parse one or more SDL documents that together form a schema.

        Several sources are merged into one document before the schema is
        built, so ``extend type`` may refer to types from another source.
        """
        definitions = []
        for text in sources:
            try:
                ast = parse(text)
            except GraphQLSyntaxError as e:
                raise SchemaParseError(
                    e.message, _first_location(e), self.source_name
                ) from e
            definitions.extend(ast.definitions)

        try:
            gql_schema = build_ast_schema(DocumentNode(definitions=tuple(definitions)))
        except (GraphQLError, TypeError) as e:
            raise SchemaParseError(str(e), None, self.source_name) from e
        return self._convert(gql_schema)

    def parse_introspection(self, source: str | dict[str, Any]) -> Schema:
        """Parse an introspection query result.

        Accepts ``{"__schema": ...}`` as well as a full response
        ``{"data": {"__schema": ...}}``.
        """
        if isinstance(source, str):
            try:
                data = json.loads(source)
            except json.JSONDecodeError as e:
                raise SchemaParseError(
                    e.msg, Location(e.lineno, e.colno), self.source_name
                ) from e
        else:
            data = source

        if isinstance(data, dict) and "data" in data and "__schema" not in data:
            data = data["data"]
        if not isinstance(data, dict) or "__schema" not in data:
            raise SchemaParseError(
                "introspection result has no '__schema' key", None, self.source_name
            )

        try:
            gql_schema = build_client_schema(data)
        except (GraphQLError, TypeError, KeyError, ValueError) as e:
            raise SchemaParseError(
                f"invalid introspection result: {e}", None, self.source_name
            ) from e
        return self._convert(gql_schema)

    def _convert(self, gql_schema: GraphQLSchema) -> Schema:
        """Convert a graphql-core schema into the Schema Model."""
        errors = validate_schema(gql_schema)
        if errors:
            raise SchemaParseError(
                "; ".join(e.message for e in errors), None, self.source_name
            )

        types: list[NamedType] = []
        for name, gql_type in gql_schema.type_map.items():
            if name.startswith("__"):
                continue
            types.append(self._convert_type(gql_schema, gql_type))

        schema = Schema.build(
            types,
            query_type=_root_name(gql_schema.query_type),
            mutation_type=_root_name(gql_schema.mutation_type),
            subscription_type=_root_name(gql_schema.subscription_type),
        )
        logger.debug(
            "Parsed schema %s: %d types", self.source_name, len(schema.types)
        )
        return schema

    def _convert_type(self, gql_schema: GraphQLSchema, node: GraphQLNamedType) -> NamedType:
        description = node.description or None
        if isinstance(node, GraphQLObjectType):
            return ObjectType(
                name=node.name,
                fields=self._convert_fields(node.fields),
                interfaces=tuple(i.name for i in node.interfaces),
                description=description,
            )
        if isinstance(node, GraphQLInterfaceType):
            implementers = sorted(t.name for t in gql_schema.get_possible_types(node))
            return InterfaceType(
                name=node.name,
                fields=self._convert_fields(node.fields),
                interfaces=tuple(i.name for i in node.interfaces),
                implementers=tuple(implementers),
                description=description,
            )
        if isinstance(node, GraphQLUnionType):
            return UnionType(
                name=node.name,
                members=tuple(t.name for t in node.types),
                description=description,
            )
        if isinstance(node, GraphQLEnumType):
            return EnumType(
                name=node.name,
                values=tuple(
                    EnumValue(
                        name=value_name,
                        is_deprecated=value.deprecation_reason is not None,
                        deprecation_reason=value.deprecation_reason,
                        description=value.description or None,
                    )
                    for value_name, value in node.values.items()
                ),
                description=description,
            )
        if isinstance(node, GraphQLInputObjectType):
            return InputObjectType(
                name=node.name,
                fields=MappingProxyType({
                    field_name: self._convert_argument(field_name, input_field)
                    for field_name, input_field in node.fields.items()
                }),
                description=description,
            )
        if isinstance(node, GraphQLScalarType):
            return ScalarType(name=node.name, description=description)
        raise SchemaParseError(
            f"unsupported type {node!r}", None, self.source_name
        )

    def _convert_fields(self, gql_fields: dict[str, GraphQLField]):
        fields = {}
        for name, gql_field in gql_fields.items():
            fields[name] = SchemaField(
                name=name,
                type=_type_ref(gql_field.type),
                arguments=tuple(
                    self._convert_argument(arg_name, arg)
                    for arg_name, arg in gql_field.args.items()
                ),
                is_deprecated=gql_field.deprecation_reason is not None,
                deprecation_reason=gql_field.deprecation_reason,
                description=gql_field.description or None,
            )
        return MappingProxyType(fields)

    @staticmethod
    def _convert_argument(name: str, arg: GraphQLArgument) -> SchemaArgument:
        return SchemaArgument(
            name=name,
            type=_type_ref(arg.type),
            has_default=_has_default(arg),
            description=arg.description or None,
        )


def parse_schema(source: str | dict[str, Any], source_name: str = "schema") -> Schema:
    """Shortcut for ``SchemaParser(source_name).parse(source)``."""
    return SchemaParser(source_name).parse(source)


def _has_default(arg: GraphQLArgument) -> bool:
    # graphql-core 3.3 keeps the default in `default`, 3.2 in `default_value`
    for attr in ("default", "default_value"):
        if getattr(arg, attr, Undefined) is not Undefined:
            return True
    ast_node = getattr(arg, "ast_node", None)
    return ast_node is not None and ast_node.default_value is not None


def _type_ref(gql_type) -> TypeRef:
    if isinstance(gql_type, GraphQLNonNull):
        return NonNullTypeRef(_type_ref(gql_type.of_type))
    if isinstance(gql_type, GraphQLList):
        return ListTypeRef(_type_ref(gql_type.of_type))
    return NamedTypeRef(gql_type.name)


def _root_name(root: GraphQLObjectType | None) -> str | None:
    return root.name if root is not None else None


def _first_location(error: GraphQLError) -> Location | None:
    if error.locations:
        loc = error.locations[0]
        return Location(loc.line, loc.column)
    return None
