"""Tests for the deprecation policy."""

import pytest

from gql_typegen.core.deprecation import (
    DEFAULT_STRATEGY,
    DeprecationStrategy,
    FieldDisposition,
    field_disposition,
)


class TestFieldDisposition:
    """Tests for field_disposition."""

    @pytest.mark.parametrize("strategy", ["allow", "warn", "deny"])
    def test_live_members_always_kept(self, strategy):
        assert field_disposition(strategy, False) is FieldDisposition.KEEP

    @pytest.mark.parametrize(
        "strategy,expected",
        [
            (DeprecationStrategy.ALLOW, FieldDisposition.KEEP),
            (DeprecationStrategy.WARN, FieldDisposition.KEEP_MARKED),
            (DeprecationStrategy.DENY, FieldDisposition.EXCLUDE),
        ],
    )
    def test_deprecated_members(self, strategy, expected):
        assert field_disposition(strategy, True) is expected

    def test_accepts_strings(self):
        assert field_disposition("deny", True) is FieldDisposition.EXCLUDE

    def test_default_is_warn(self):
        assert DEFAULT_STRATEGY is DeprecationStrategy.WARN

    def test_unknown_strategy(self):
        with pytest.raises(ValueError):
            field_disposition("ignore", True)
