"""Fragment resolution.

Computes which named fragments an operation depends on, transitively, and
rejects documents whose fragments are undefined, duplicated or cyclic.
Fragments are never substituted into the operation text; the binder binds
each one once and positions refer to it by name.
"""

from .document import (
    Document,
    FragmentDefinition,
    FragmentSpread,
    InlineFragment,
    OperationDefinition,
    SelectionSet,
)
from .errors import DuplicateFragment, FragmentCycle, Location, UndefinedFragment


def iter_spreads(selection_set: SelectionSet):
    """Yield every fragment spread in a selection set, in source order."""
    for selection in selection_set.selections:
        if isinstance(selection, FragmentSpread):
            yield selection
        elif isinstance(selection, InlineFragment):
            yield from iter_spreads(selection.selection_set)
        elif selection.selection_set is not None:
            yield from iter_spreads(selection.selection_set)


class FragmentResolver:
    """Resolves fragment spreads of one document.

    Example:
        resolver = FragmentResolver(document)
        fragments = resolver.closure(document.operations[0])
    """

    def __init__(self, document: Document):
        self.document = document
        self._fragments: dict[str, FragmentDefinition] = {}
        for fragment in document.fragments:
            if fragment.name in self._fragments:
                raise DuplicateFragment(fragment.name, fragment.location)
            self._fragments[fragment.name] = fragment
        self._order = {f.name: i for i, f in enumerate(document.fragments)}
        # Fragments already proven acyclic, with their direct dependencies
        self._checked: dict[str, tuple[str, ...]] = {}

    def fragment(self, name: str, location: Location | None = None) -> FragmentDefinition:
        """Return the definition of a fragment, or raise ``UndefinedFragment``."""
        try:
            return self._fragments[name]
        except KeyError:
            raise UndefinedFragment(name, location) from None

    def dependencies(self, name: str) -> tuple[str, ...]:
        """Names of the fragments spread directly by fragment ``name``."""
        self._check(name, [])
        return self._checked[name]

    def closure(self, operation: OperationDefinition) -> tuple[FragmentDefinition, ...]:
        """All fragments ``operation`` references transitively, in document order."""
        seen: set[str] = set()
        pending = list(iter_spreads(operation.selection_set))
        while pending:
            spread = pending.pop()
            if spread.name in seen:
                continue
            self.fragment(spread.name, spread.location)
            self._check(spread.name, [])
            seen.add(spread.name)
            pending.extend(iter_spreads(self._fragments[spread.name].selection_set))
        return tuple(sorted(
            (self._fragments[name] for name in seen),
            key=lambda f: self._order[f.name],
        ))

    def check_all(self):
        """Validate every fragment of the document, used or not."""
        for name in self._fragments:
            self._check(name, [])

    def _check(self, name: str, stack: list[str], location: Location | None = None):
        """Depth-first walk that raises on undefined or self-spreading fragments."""
        if name in self._checked:
            return
        if name in stack:
            cycle = stack[stack.index(name):] + [name]
            raise FragmentCycle(cycle, location or self._fragments[name].location)
        fragment = self.fragment(name, location)
        deps = []
        stack.append(name)
        for spread in iter_spreads(fragment.selection_set):
            self._check(spread.name, stack, spread.location)
            if spread.name not in deps:
                deps.append(spread.name)
        stack.pop()
        self._checked[name] = tuple(deps)
