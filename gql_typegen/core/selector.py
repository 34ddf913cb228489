"""Operation selection: pick one operation of a document plus its fragments."""

from dataclasses import dataclass

from .document import Document, FragmentDefinition, OperationDefinition
from .errors import AmbiguousOperation, OperationNotFound
from .fragments import FragmentResolver


@dataclass(frozen=True)
class SelectedOperation:
    """An operation together with the closure of fragments it spreads."""
    operation: OperationDefinition
    fragments: tuple[FragmentDefinition, ...]
    document: Document

    @property
    def name(self) -> str:
        return self.operation.display_name


def select_operation(
    document: Document,
    operation_name: str | None = None,
    resolver: FragmentResolver | None = None,
) -> SelectedOperation:
    """Return the operation called ``operation_name`` and its fragment closure.

    When the document holds exactly one operation the name may be omitted.

    Raises:
        OperationNotFound: no operation carries the requested name.
        AmbiguousOperation: no name was given but several operations exist,
            or the requested name is defined more than once.
    """
    operations = document.operations
    available = [op.display_name for op in operations]

    if operation_name is None:
        if len(operations) == 1:
            operation = operations[0]
        elif not operations:
            raise OperationNotFound("<any>", available)
        else:
            raise AmbiguousOperation(available)
    else:
        matches = [op for op in operations if op.name == operation_name]
        if not matches:
            raise OperationNotFound(operation_name, available)
        if len(matches) > 1:
            raise AmbiguousOperation(available, operation_name)
        operation = matches[0]

    resolver = resolver or FragmentResolver(document)
    return SelectedOperation(
        operation=operation,
        fragments=resolver.closure(operation),
        document=document,
    )


def select_all(document: Document) -> tuple[SelectedOperation, ...]:
    """Select every operation of a document, each with its own closure."""
    resolver = FragmentResolver(document)
    names = [op.name for op in document.operations]
    for name in names:
        if name is not None and names.count(name) > 1:
            raise AmbiguousOperation([n or "<anonymous>" for n in names], name)
    if len(names) > 1 and None in names:
        raise AmbiguousOperation([n or "<anonymous>" for n in names])
    return tuple(
        SelectedOperation(op, resolver.closure(op), document)
        for op in document.operations
    )
