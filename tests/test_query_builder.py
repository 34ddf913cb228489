"""Tests for request documents and request bodies."""

import pytest
from graphql import parse

from gql_typegen.core.compiler import compile_operation
from gql_typegen.core.document import parse_document
from gql_typegen.core.options import GenerationOptions
from gql_typegen.core.query_builder import QueryBuilder
from gql_typegen.core.selector import select_operation


DOCUMENT = """
query GetHero {
  hero { ...CharacterFields }
}

query GetDroid($id: ID!, $withFriends: Boolean = false) {
  droid(id: $id) {
    primaryFunction
    friends @include(if: $withFriends) { name }
    ...DroidFields
  }
}

fragment CharacterFields on Character {
  name
}

fragment DroidFields on Droid {
  ...CharacterFields
}
"""


# =============================================================================
# Request documents
# =============================================================================


class TestBuildDocument:
    """Tests for QueryBuilder.build_document."""

    @pytest.fixture
    def builder(self, schema):
        return QueryBuilder(schema)

    def test_typename_added_to_abstract_selection(self, builder):
        selected = select_operation(parse_document("query Q { hero { name } }"))
        assert builder.build_document(selected).strip() == (
            "query Q {\n"
            "  hero {\n"
            "    __typename\n"
            "    name\n"
            "  }\n"
            "}"
        )

    def test_object_selection_untouched(self, builder):
        selected = select_operation(parse_document('query Q { human(id: "1") { name } }'))
        assert "__typename" not in builder.build_document(selected)

    def test_existing_typename_kept_once(self, builder):
        selected = select_operation(parse_document("query Q { hero { __typename name } }"))
        assert builder.build_document(selected).count("__typename") == 1

    def test_fragments_in_document_order(self, builder):
        selected = select_operation(parse_document(DOCUMENT), "GetDroid")
        query = builder.build_document(selected)
        names = [d.name.value for d in parse(query).definitions]
        assert names == ["GetDroid", "CharacterFields", "DroidFields"]

    def test_other_operations_left_out(self, builder):
        selected = select_operation(parse_document(DOCUMENT), "GetHero")
        query = builder.build_document(selected)
        assert "GetDroid" not in query
        assert "DroidFields" not in query

    def test_fragment_on_interface_gets_typename(self, builder):
        selected = select_operation(parse_document(DOCUMENT), "GetHero")
        fragment = parse(builder.build_document(selected)).definitions[1]
        first = fragment.selection_set.selections[0]
        assert first.name.value == "__typename"

    def test_union_selection(self, builder):
        selected = select_operation(
            parse_document('query S { search(text: "x") { ... on Droid { name } } }')
        )
        query = builder.build_document(selected)
        search = parse(query).definitions[0].selection_set.selections[0]
        assert search.selection_set.selections[0].name.value == "__typename"

    def test_directives_preserved(self, builder):
        selected = select_operation(parse_document(DOCUMENT), "GetDroid")
        assert "@include(if: $withFriends)" in builder.build_document(selected)


# =============================================================================
# Request bodies
# =============================================================================


class TestBuildBody:
    """Tests for QueryBuilder.build_body."""

    @pytest.fixture
    def graph(self, schema):
        return compile_operation(schema, DOCUMENT, GenerationOptions(operation_name="GetDroid"))

    def test_body(self, schema, graph):
        body = QueryBuilder(schema).build_body(graph, {"id": "2001"})
        assert body == {
            "query": graph.query,
            "operationName": "GetDroid",
            "variables": {"id": "2001"},
        }

    def test_explicit_null_kept(self, schema, graph):
        body = QueryBuilder(schema).build_body(graph, {"id": "2001", "withFriends": None})
        assert body["variables"] == {"id": "2001", "withFriends": None}

    def test_missing_required_variable(self, schema, graph):
        with pytest.raises(ValueError, match="requires variable 'id'"):
            QueryBuilder(schema).build_body(graph, {})

    def test_null_required_variable(self, schema, graph):
        with pytest.raises(ValueError, match="must not be null"):
            QueryBuilder(schema).build_body(graph, {"id": None})

    def test_unknown_variable(self, schema, graph):
        with pytest.raises(ValueError, match="episode"):
            QueryBuilder(schema).build_body(graph, {"id": "1", "episode": "JEDI"})

    def test_anonymous_operation(self, schema):
        graph = compile_operation(schema, "{ hero { name } }")
        body = QueryBuilder(schema).build_body(graph)
        assert body["operationName"] is None
        assert body["variables"] == {}
