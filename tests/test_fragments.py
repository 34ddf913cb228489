"""Tests for fragment resolution and operation selection."""

import pytest

from gql_typegen.core.document import parse_document
from gql_typegen.core.errors import (
    AmbiguousOperation,
    DuplicateFragment,
    FragmentCycle,
    OperationNotFound,
    UndefinedFragment,
)
from gql_typegen.core.fragments import FragmentResolver
from gql_typegen.core.selector import select_all, select_operation


TWO_OPERATIONS = """
query GetHero {
  hero { ...CharacterFields }
}

query GetDroid($id: ID!) {
  droid(id: $id) { ...DroidFields }
}

fragment CharacterFields on Character {
  id
  name
}

fragment DroidFields on Droid {
  primaryFunction
  ...CharacterFields
}

fragment Unused on Human {
  homePlanet
}
"""


# =============================================================================
# Fragment resolver
# =============================================================================


class TestFragmentResolver:
    """Tests for FragmentResolver."""

    @pytest.fixture
    def document(self):
        return parse_document(TWO_OPERATIONS)

    def test_closure_is_transitive_in_document_order(self, document):
        resolver = FragmentResolver(document)
        get_droid = document.operations[1]
        names = [f.name for f in resolver.closure(get_droid)]
        assert names == ["CharacterFields", "DroidFields"]

    def test_closure_of_single_fragment(self, document):
        resolver = FragmentResolver(document)
        names = [f.name for f in resolver.closure(document.operations[0])]
        assert names == ["CharacterFields"]

    def test_dependencies(self, document):
        resolver = FragmentResolver(document)
        assert resolver.dependencies("DroidFields") == ("CharacterFields",)
        assert resolver.dependencies("CharacterFields") == ()

    def test_undefined_fragment(self):
        document = parse_document("query Q {\n  hero { ...Missing }\n}")
        with pytest.raises(UndefinedFragment) as exc_info:
            FragmentResolver(document).closure(document.operations[0])
        assert exc_info.value.name == "Missing"
        assert exc_info.value.location.line == 2

    def test_duplicate_fragment(self):
        document = parse_document(
            "fragment A on Human { id }\nfragment A on Droid { id }\nquery { hero { id } }"
        )
        with pytest.raises(DuplicateFragment) as exc_info:
            FragmentResolver(document)
        assert exc_info.value.name == "A"

    def test_cycle(self):
        document = parse_document(
            "query Q { hero { ...A } }\n"
            "fragment A on Character { ...B }\n"
            "fragment B on Character { friends { ...A } }"
        )
        with pytest.raises(FragmentCycle) as exc_info:
            FragmentResolver(document).closure(document.operations[0])
        assert exc_info.value.path == ["A", "B", "A"]

    def test_check_all_reports_unused_broken_fragments(self):
        document = parse_document(
            "query Q { hero { id } }\nfragment Lonely on Character { ...Nowhere }"
        )
        resolver = FragmentResolver(document)
        assert resolver.closure(document.operations[0]) == ()
        with pytest.raises(UndefinedFragment):
            resolver.check_all()


# =============================================================================
# Operation selection
# =============================================================================


class TestSelectOperation:
    """Tests for select_operation and select_all."""

    @pytest.fixture
    def document(self):
        return parse_document(TWO_OPERATIONS)

    def test_select_by_name(self, document):
        selected = select_operation(document, "GetDroid")
        assert selected.name == "GetDroid"
        assert [f.name for f in selected.fragments] == ["CharacterFields", "DroidFields"]

    def test_other_operations_fragments_left_out(self, document):
        selected = select_operation(document, "GetHero")
        assert [f.name for f in selected.fragments] == ["CharacterFields"]

    def test_name_required_with_several_operations(self, document):
        with pytest.raises(AmbiguousOperation) as exc_info:
            select_operation(document)
        assert exc_info.value.available == ["GetHero", "GetDroid"]

    def test_not_found_lists_available(self, document):
        with pytest.raises(OperationNotFound) as exc_info:
            select_operation(document, "GetLuke")
        assert "GetHero" in str(exc_info.value)
        assert "GetDroid" in str(exc_info.value)

    def test_exact_name_match(self, document):
        with pytest.raises(OperationNotFound):
            select_operation(document, "gethero")

    def test_single_operation_needs_no_name(self):
        document = parse_document("{ hero { name } }")
        selected = select_operation(document)
        assert selected.name == "<anonymous query>"

    def test_duplicate_operation_name(self):
        document = parse_document("query A { hero { id } }\nquery A { hero { name } }")
        with pytest.raises(AmbiguousOperation) as exc_info:
            select_operation(document, "A")
        assert exc_info.value.name == "A"

    def test_no_operations(self):
        document = parse_document("fragment F on Human { id }")
        with pytest.raises(OperationNotFound):
            select_operation(document)

    def test_select_all(self, document):
        selected = select_all(document)
        assert [s.name for s in selected] == ["GetHero", "GetDroid"]

    def test_select_all_rejects_anonymous_among_several(self):
        document = parse_document("{ hero { id } }\nquery B { hero { name } }")
        with pytest.raises(AmbiguousOperation):
            select_all(document)
