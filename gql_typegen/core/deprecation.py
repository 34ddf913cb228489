"""Deprecation policy.

Decides what happens to a schema member marked ``@deprecated``:

    allow -> KEEP          (kept, no marker)
    warn  -> KEEP_MARKED   (kept, flagged so the backend can annotate it)
    deny  -> EXCLUDE       (dropped)

``EXCLUDE`` only ever drops members the generator adds on its own (such as
the values of an emitted enum). A deprecated field the document explicitly
selects under ``deny`` makes the binder raise ``DeprecatedFieldSelected``.
"""

from enum import Enum


class DeprecationStrategy(str, Enum):
    ALLOW = "allow"
    WARN = "warn"
    DENY = "deny"


class FieldDisposition(Enum):
    KEEP = "keep"
    KEEP_MARKED = "keep-marked"
    EXCLUDE = "exclude"


DEFAULT_STRATEGY = DeprecationStrategy.WARN


def field_disposition(strategy: DeprecationStrategy | str, is_deprecated: bool) -> FieldDisposition:
    """Map a policy and a member's deprecation flag to a disposition."""
    if not is_deprecated:
        return FieldDisposition.KEEP
    strategy = DeprecationStrategy(strategy)
    if strategy is DeprecationStrategy.ALLOW:
        return FieldDisposition.KEEP
    if strategy is DeprecationStrategy.WARN:
        return FieldDisposition.KEEP_MARKED
    return FieldDisposition.EXCLUDE
