"""Tests for the type binder."""

import logging

import pytest

from gql_typegen.core.binder import TypeBinder
from gql_typegen.core.document import parse_document
from gql_typegen.core.errors import (
    ConflictingFieldSelection,
    DeprecatedFieldSelected,
    InvalidArgument,
    InvalidSelection,
    MissingRequiredVariable,
    TypeConditionMismatch,
    UndefinedVariable,
    UnknownField,
    UnknownType,
    UnusedVariable,
    VariableTypeMismatch,
)
from gql_typegen.core.ir import NamedTypeRef, NonNullTypeRef
from gql_typegen.core.parser import parse_schema
from gql_typegen.core.selector import select_operation


def bind(schema, source, operation_name=None, deprecation="warn"):
    document = parse_document(source)
    selected = select_operation(document, operation_name)
    return TypeBinder(schema, deprecation).bind(selected)


# =============================================================================
# Fields
# =============================================================================


class TestFields:
    """Tests for binding plain field selections."""

    def test_object_selection(self, schema):
        bound = bind(schema, 'query { human(id: "1") { name homePlanet } }')
        human = bound.selection.field("human")
        assert human.parent_type == "Query"
        assert not human.selection.is_polymorphic
        assert [f.response_key for f in human.selection.fields] == ["name", "homePlanet"]

    def test_no_typename_on_objects(self, schema):
        bound = bind(schema, 'query { human(id: "1") { name } }')
        assert bound.selection.field("human").selection.field("__typename") is None

    def test_alias(self, schema):
        bound = bind(schema, 'query { luke: human(id: "1") { fullName: name } }')
        luke = bound.selection.field("luke")
        assert luke.name == "human"
        assert luke.selection.fields[0].name == "name"
        assert luke.selection.fields[0].response_key == "fullName"

    def test_merge_same_key(self, schema):
        bound = bind(schema, 'query { human(id: "1") { name } human(id: "1") { homePlanet } }')
        human = bound.selection.field("human")
        assert [f.response_key for f in human.selection.fields] == ["name", "homePlanet"]

    def test_unknown_field(self, schema):
        with pytest.raises(UnknownField) as exc_info:
            bind(schema, "query {\n  bogus\n}")
        error = exc_info.value
        assert error.field_name == "bogus"
        assert error.type_name == "Query"
        assert "hero" in error.available
        assert error.location.line == 2
        assert str(error).startswith("2:3: ")

    def test_unknown_field_on_interface(self, schema):
        with pytest.raises(UnknownField) as exc_info:
            bind(schema, "query { hero { homePlanet } }")
        assert exc_info.value.type_name == "Character"

    def test_leaf_with_selection(self, schema):
        with pytest.raises(InvalidSelection):
            bind(schema, 'query { human(id: "1") { name { length } } }')

    def test_composite_without_selection(self, schema):
        with pytest.raises(InvalidSelection):
            bind(schema, "query { hero }")

    def test_conflicting_field_names(self, schema):
        with pytest.raises(ConflictingFieldSelection) as exc_info:
            bind(schema, 'query { human(id: "1") { x: name x: homePlanet } }')
        assert exc_info.value.response_key == "x"

    def test_conflicting_arguments(self, schema):
        with pytest.raises(ConflictingFieldSelection):
            bind(schema, 'query { human(id: "1") { name } human(id: "2") { name } }')

    def test_conflict_through_fragment(self, schema):
        source = """
        query { human(id: "1") { name: homePlanet ...F } }
        fragment F on Human { name }
        """
        with pytest.raises(ConflictingFieldSelection):
            bind(schema, source)

    def test_missing_root_type(self, schema):
        with pytest.raises(UnknownType):
            bind(schema, "subscription { hero { name } }")


# =============================================================================
# Polymorphism
# =============================================================================


class TestPolymorphism:
    """Tests for interface and union positions."""

    def test_typename_synthesized_first(self, schema):
        bound = bind(schema, "query { hero { name } }")
        hero = bound.selection.field("hero").selection
        assert hero.is_polymorphic
        assert [f.response_key for f in hero.fields] == ["__typename", "name"]

    def test_explicit_typename_not_duplicated(self, schema):
        bound = bind(schema, "query { hero { name __typename } }")
        hero = bound.selection.field("hero").selection
        assert [f.response_key for f in hero.fields] == ["name", "__typename"]

    def test_inline_fragment_variant(self, schema):
        bound = bind(schema, "query { hero { name ... on Human { homePlanet } } }")
        hero = bound.selection.field("hero").selection
        assert [v.type_name for v in hero.variants] == ["Human"]
        human = hero.variant("Human").selection
        assert [f.response_key for f in human.fields] == ["__typename", "name", "homePlanet"]
        assert [f.response_key for f in hero.fields] == ["__typename", "name"]

    def test_condition_covering_position_is_shared(self, schema):
        bound = bind(schema, "query { hero { ... on Character { name } } }")
        hero = bound.selection.field("hero").selection
        assert hero.variants == ()
        assert hero.field("name") is not None

    def test_sole_implementer_still_a_branch(self):
        schema = parse_schema("""
            type Query { hero: Character }
            interface Character { name: String }
            type Human implements Character { name: String, homePlanet: String! }
        """)
        bound = bind(schema, "query { hero { name ... on Human { homePlanet } } }")
        hero = bound.selection.field("hero").selection
        assert [v.type_name for v in hero.variants] == ["Human"]
        assert [f.response_key for f in hero.fields] == ["__typename", "name"]

    def test_object_position_absorbs_interface_condition(self, schema):
        bound = bind(schema, 'query { droid(id: "2") { ... on Character { name } } }')
        droid = bound.selection.field("droid").selection
        assert droid.variants == ()
        assert droid.field("name") is not None

    def test_union_members(self, schema):
        source = """
        query {
          search(text: "a") {
            ... on Human { name }
            ... on Droid { primaryFunction }
          }
        }
        """
        bound = bind(schema, source)
        search = bound.selection.field("search").selection
        assert search.kind == "union"
        assert [v.type_name for v in search.variants] == ["Human", "Droid"]
        assert [f.response_key for f in search.fields] == ["__typename"]

    def test_union_cannot_select_fields_directly(self, schema):
        with pytest.raises(UnknownField):
            bind(schema, 'query { search(text: "a") { name } }')

    def test_interface_condition_on_union_expands(self, schema):
        bound = bind(schema, 'query { search(text: "a") { ... on Character { name } } }')
        search = bound.selection.field("search").selection
        assert [v.type_name for v in search.variants] == ["Human", "Droid"]
        assert search.variant("Droid").selection.field("name") is not None

    def test_impossible_condition(self, schema):
        with pytest.raises(TypeConditionMismatch) as exc_info:
            bind(schema, "query { hero { ... on Starship { length } } }")
        assert exc_info.value.condition == "Starship"
        assert exc_info.value.possible == ["Droid", "Human"]

    def test_unknown_condition_type(self, schema):
        with pytest.raises(UnknownType):
            bind(schema, "query { hero { ... on Wookiee { name } } }")

    def test_fragment_spread_on_narrower_type(self, schema):
        source = """
        query { hero { name ...HumanFields } }
        fragment HumanFields on Human { homePlanet }
        """
        bound = bind(schema, source)
        hero = bound.selection.field("hero").selection
        assert hero.spreads == ()
        human = hero.variant("Human").selection
        assert [s.fragment_name for s in human.spreads] == ["HumanFields"]


# =============================================================================
# Fragments
# =============================================================================


class TestFragments:
    """Tests for named fragment binding."""

    SOURCE = """
    query GetHero { hero { ...CharacterFields } }
    query GetDroid { droid(id: "2") { primaryFunction ...CharacterFields } }
    fragment CharacterFields on Character { id name }
    """

    def test_fragment_referenced_by_name(self, schema):
        bound = bind(schema, self.SOURCE, "GetHero")
        hero = bound.selection.field("hero").selection
        assert [s.fragment_name for s in hero.spreads] == ["CharacterFields"]
        fragment = bound.fragment("CharacterFields")
        assert fragment.type_condition == "Character"
        assert [f.response_key for f in fragment.selection.fields] == ["__typename", "id", "name"]

    def test_fragment_bound_once_per_binder(self, schema):
        document = parse_document(self.SOURCE)
        binder = TypeBinder(schema)
        hero = binder.bind(select_operation(document, "GetHero"))
        droid = binder.bind(select_operation(document, "GetDroid"))
        assert hero.fragment("CharacterFields") is droid.fragment("CharacterFields")

    def test_dependencies_recorded(self, schema):
        source = """
        query { droid(id: "2") { ...DroidFields } }
        fragment DroidFields on Droid { primaryFunction ...CharacterFields }
        fragment CharacterFields on Character { name }
        """
        bound = bind(schema, source)
        assert [f.name for f in bound.fragments] == ["DroidFields", "CharacterFields"]
        assert bound.fragment("DroidFields").dependencies == ("CharacterFields",)

    def test_fragment_on_scalar(self, schema):
        source = "query { hero { ...F } }\nfragment F on String { length }"
        with pytest.raises(TypeConditionMismatch):
            bind(schema, source)


# =============================================================================
# Arguments and directives
# =============================================================================


class TestArguments:
    """Tests for argument checking."""

    def test_bound_arguments(self, schema):
        bound = bind(schema, 'query { human(id: "1000") { name } }')
        (argument,) = bound.selection.field("human").arguments
        assert argument.name == "id"
        assert argument.type == NonNullTypeRef(NamedTypeRef("ID"))

    def test_int_id_literal(self, schema):
        bind(schema, "query { human(id: 1000) { name } }")

    def test_undeclared_argument(self, schema):
        with pytest.raises(InvalidArgument) as exc_info:
            bind(schema, 'query { human(id: "1", planet: "x") { name } }')
        assert exc_info.value.argument == "planet"

    def test_missing_required_argument(self, schema):
        with pytest.raises(MissingRequiredVariable) as exc_info:
            bind(schema, "query { human { name } }")
        assert exc_info.value.name == "id"
        assert exc_info.value.expected_type == "ID!"

    def test_defaulted_non_null_argument_may_be_omitted(self):
        schema = parse_schema("type Query { h(n: Int! = 3): Int }")
        bound = bind(schema, "{ h }")
        assert bound.selection.field("h").arguments == ()

    def test_nullable_variable_into_defaulted_non_null(self):
        schema = parse_schema("type Query { h(n: Int! = 3): Int }")
        bind(schema, "query Q($n: Int) { h(n: $n) }")

    def test_wrong_literal_kind(self, schema):
        with pytest.raises(InvalidArgument):
            bind(schema, "query { human(id: true) { name } }")

    def test_null_for_non_null(self, schema):
        with pytest.raises(InvalidArgument):
            bind(schema, "query { human(id: null) { name } }")

    def test_enum_value(self, schema):
        bind(schema, "query { hero(episode: JEDI) { name } }")
        with pytest.raises(InvalidArgument):
            bind(schema, "query { hero(episode: CLONES) { name } }")
        with pytest.raises(InvalidArgument):
            bind(schema, 'query { hero(episode: "JEDI") { name } }')

    def test_int_range(self, schema):
        with pytest.raises(InvalidArgument):
            bind(schema, "query { reviews(episode: JEDI, first: 3000000000) { stars } }")

    def test_input_object(self, schema):
        bind(schema, "mutation { createReview(review: {stars: 5, commentary: \"ok\"}) { stars } }")

    def test_input_object_missing_required_field(self, schema):
        with pytest.raises(InvalidArgument) as exc_info:
            bind(schema, 'mutation { createReview(review: {commentary: "ok"}) { stars } }')
        assert "stars" in str(exc_info.value)

    def test_input_object_unknown_field(self, schema):
        with pytest.raises(InvalidArgument):
            bind(schema, "mutation { createReview(review: {stars: 5, mood: 1}) { stars } }")

    def test_custom_scalar_accepts_any_literal(self, schema):
        bind(
            schema,
            'mutation { createReview(review: {stars: 5, createdAt: "2024-01-01"}) { stars } }',
        )

    def test_include_marks_conditional(self, schema):
        bound = bind(
            schema,
            "query Q($full: Boolean!) { hero { name friends @include(if: $full) { name } } }",
        )
        hero = bound.selection.field("hero").selection
        assert hero.field("friends").conditional
        assert not hero.field("name").conditional

    def test_unconditional_occurrence_wins(self, schema):
        bound = bind(schema, "query { hero { name @skip(if: true) name } }")
        assert not bound.selection.field("hero").selection.field("name").conditional

    def test_directive_requires_boolean(self, schema):
        with pytest.raises(InvalidArgument):
            bind(schema, 'query { hero { name @skip(if: "yes") } }')

    def test_directive_missing_if(self, schema):
        with pytest.raises(MissingRequiredVariable):
            bind(schema, "query { hero { name @include } }")


# =============================================================================
# Variables
# =============================================================================


class TestVariables:
    """Tests for variable definitions and usages."""

    def test_required_variable(self, schema):
        bound = bind(schema, "query GetHuman($id: ID!) { human(id: $id) { name } }")
        assert [v.name for v in bound.variables] == ["id"]

    def test_undefined_variable(self, schema):
        with pytest.raises(UndefinedVariable) as exc_info:
            bind(schema, "query GetHuman { human(id: $id) { name } }")
        assert exc_info.value.variable == "id"

    def test_unused_variable(self, schema):
        with pytest.raises(UnusedVariable):
            bind(schema, 'query GetHuman($unused: Int) { human(id: "1") { name } }')

    def test_nullable_into_non_null(self, schema):
        with pytest.raises(VariableTypeMismatch) as exc_info:
            bind(schema, "query GetHuman($id: ID) { human(id: $id) { name } }")
        assert exc_info.value.declared == "ID"
        assert exc_info.value.expected == "ID!"

    def test_nullable_with_default_into_non_null(self, schema):
        bind(schema, 'query GetHuman($id: ID = "1000") { human(id: $id) { name } }')

    def test_wrong_named_type(self, schema):
        with pytest.raises(VariableTypeMismatch):
            bind(schema, "query GetHuman($id: String!) { human(id: $id) { name } }")

    def test_non_null_into_nullable(self, schema):
        bind(schema, "query GetHero($ep: Episode!) { hero(episode: $ep) { name } }")

    def test_location_default_allows_nullable(self, schema):
        bind(schema, "query Q($unit: LengthUnit) { human(id: 1) { height(unit: $unit) } }")

    def test_variable_inside_input_object(self, schema):
        bind(
            schema,
            "mutation M($stars: Int!) { createReview(review: {stars: $stars}) { stars } }",
        )

    def test_variables_used_in_fragments(self, schema):
        source = """
        query Q($id: ID!) { hero { ...F } }
        fragment F on Character { friends { ... on Human { name } } }
        query R($id: ID!) { human(id: $id) { name } }
        """
        with pytest.raises(UnusedVariable):
            bind(schema, source, "Q")

    def test_unknown_variable_type(self, schema):
        with pytest.raises(UnknownType):
            bind(schema, "query Q($id: Identifier) { human(id: $id) { name } }")

    def test_output_type_variable(self, schema):
        with pytest.raises(InvalidArgument):
            bind(schema, "query Q($h: Human) { hero { name } }")

    def test_duplicate_variable(self, schema):
        with pytest.raises(InvalidArgument):
            bind(schema, "query Q($id: ID!, $id: ID!) { human(id: $id) { name } }")

    def test_null_default_on_non_null(self, schema):
        with pytest.raises(MissingRequiredVariable):
            bind(schema, "query Q($id: ID! = null) { human(id: $id) { name } }")

    def test_default_must_match_type(self, schema):
        with pytest.raises(InvalidArgument):
            bind(schema, "query Q($id: ID = true) { human(id: $id) { name } }")


# =============================================================================
# Deprecation
# =============================================================================


class TestDeprecation:
    """Tests for the deprecation policy at binding time."""

    SOURCE = 'query { human(id: "1") { name secretRank } }'

    def test_deny_fails(self, schema):
        with pytest.raises(DeprecatedFieldSelected) as exc_info:
            bind(schema, self.SOURCE, deprecation="deny")
        assert exc_info.value.field_name == "secretRank"
        assert exc_info.value.reason == "Use rank"

    def test_allow_carries_no_marker(self, schema):
        bound = bind(schema, self.SOURCE, deprecation="allow")
        secret = bound.selection.field("human").selection.field("secretRank")
        assert not secret.deprecated

    def test_warn_marks_and_logs(self, schema, caplog):
        with caplog.at_level(logging.WARNING, logger="gql_typegen.core.binder"):
            bound = bind(schema, self.SOURCE, deprecation="warn")
        secret = bound.selection.field("human").selection.field("secretRank")
        assert secret.deprecated
        assert secret.deprecation_reason == "Use rank"
        assert "secretRank" in caplog.text

    def test_deny_with_field_unselected(self, schema):
        bound = bind(schema, 'query { human(id: "1") { name rank } }', deprecation="deny")
        assert bound.selection.field("human").selection.field("secretRank") is None
