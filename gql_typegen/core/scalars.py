"""Custom scalar resolution.

The generator never decides what a custom scalar looks like. A scalar is
mapped to an external type reference supplied by the caller, written as a
dotted path (``"decimal.Decimal"``, ``"myapp.types.Money"``) or a bare name
(``"str"``). What happens to scalars without a mapping depends on the mode:

    external  reference the scalar by its own name; the host supplies it
    closed    fail with UnresolvedScalar
    open      emit an opaque placeholder

Example usage:
    from gql_typegen.core.scalars import ScalarMode, ScalarRegistry

    registry = ScalarRegistry({"DateTime": "datetime.datetime"}, mode="closed")
    registry.resolve("DateTime")   # ScalarReference("DateTime", "datetime.datetime")
"""

import logging
from enum import Enum
from typing import Mapping

from .errors import UnresolvedScalar
from .type_graph import ScalarReference

logger = logging.getLogger(__name__)


class ScalarMode(str, Enum):
    EXTERNAL = "external"
    CLOSED = "closed"
    OPEN = "open"


def split_reference(reference: str) -> tuple[str | None, str]:
    """Split ``"pkg.mod.Type"`` into ``("pkg.mod", "Type")``; bare names have no module."""
    module, _, name = reference.rpartition(".")
    return (module or None), name


def import_statement(reference: str) -> str | None:
    """The import a generated module needs before it can use ``reference``."""
    module, _ = split_reference(reference)
    if module is None:
        return None
    return f"import {module}"


class ScalarRegistry:
    """Mapping from custom scalar names to external type references.

    Example:
        registry = ScalarRegistry()
        registry.register("UUID", "uuid.UUID")

        if registry.has("UUID"):
            reference = registry.get("UUID")  # "uuid.UUID"
    """

    def __init__(
        self,
        mapping: Mapping[str, str] | None = None,
        mode: ScalarMode | str = ScalarMode.EXTERNAL,
    ):
        self.mode = ScalarMode(mode)
        self._references: dict[str, str] = {}
        for name, reference in (mapping or {}).items():
            self.register(name, reference)

    def register(self, scalar_name: str, reference: str):
        """Map a scalar to an external type reference."""
        if not reference or any(not part.isidentifier() for part in reference.split(".")):
            raise ValueError(
                f"Invalid type reference {reference!r} for scalar '{scalar_name}'; "
                "expected a dotted name such as 'decimal.Decimal'"
            )
        self._references[scalar_name] = reference

    def get(self, scalar_name: str) -> str | None:
        return self._references.get(scalar_name)

    def has(self, scalar_name: str) -> bool:
        return scalar_name in self._references

    def resolve(self, scalar_name: str, operation: str | None = None) -> ScalarReference:
        """Resolve a custom scalar according to the registry's mode.

        Raises:
            UnresolvedScalar: the scalar is unmapped and the mode is ``closed``.
        """
        reference = self._references.get(scalar_name)
        if reference is not None:
            return ScalarReference(scalar_name, reference)
        if self.mode is ScalarMode.CLOSED:
            raise UnresolvedScalar(scalar_name, operation)
        if self.mode is ScalarMode.OPEN:
            logger.debug("Scalar %s has no mapping; emitting an opaque placeholder", scalar_name)
            return ScalarReference(scalar_name, None, opaque=True)
        return ScalarReference(scalar_name, None)

    def get_all_imports(self) -> set[str]:
        """Import statements needed for every registered reference."""
        return {
            statement
            for statement in map(import_statement, self._references.values())
            if statement is not None
        }


def resolve_scalar(
    scalar_name: str,
    mapping: Mapping[str, str] | None = None,
    mode: ScalarMode | str = ScalarMode.EXTERNAL,
    operation: str | None = None,
) -> ScalarReference:
    """Resolve one custom scalar without keeping a registry around."""
    return ScalarRegistry(mapping, mode).resolve(scalar_name, operation)
