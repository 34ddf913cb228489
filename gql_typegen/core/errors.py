"""Exceptions raised while compiling GraphQL documents into type graphs.

Every error is terminal for the generation call that raised it. Messages are
meant to be shown verbatim to the developer, so each one carries the
offending name, the source position when known, and expected vs. actual
information where it applies.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Location:
    """1-based line/column position in a GraphQL source."""
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


class TypegenError(Exception):
    """Base class for all gql-typegen errors."""

    def __init__(self, message: str, location: Location | None = None):
        self.message = message
        self.location = location
        if location is not None:
            message = f"{location}: {message}"
        super().__init__(message)


# =============================================================================
# Syntax errors
# =============================================================================


class GraphQLSourceError(TypegenError):
    """Malformed schema or document text."""

    def __init__(
        self,
        message: str,
        location: Location | None = None,
        source_name: str | None = None,
    ):
        self.source_name = source_name
        self.message = message
        self.location = location
        prefix = ":".join(str(part) for part in (source_name, location) if part)
        Exception.__init__(self, f"{prefix}: {message}" if prefix else message)

    @property
    def line(self) -> int | None:
        return self.location.line if self.location else None

    @property
    def column(self) -> int | None:
        return self.location.column if self.location else None


class DocumentSyntaxError(GraphQLSourceError):
    """The operation document is not valid GraphQL syntax."""


class SchemaParseError(GraphQLSourceError):
    """The schema source (SDL or introspection JSON) could not be parsed."""


# =============================================================================
# Binding errors
# =============================================================================


class BindingError(TypegenError):
    """A document does not conform to the schema it is bound against."""


class UnknownField(BindingError):
    def __init__(
        self,
        field_name: str,
        type_name: str,
        available: list[str],
        location: Location | None = None,
    ):
        self.field_name = field_name
        self.type_name = type_name
        self.available = list(available)
        expected = ", ".join(self.available) or "(none)"
        super().__init__(
            f"Unknown field '{field_name}' on type '{type_name}'. "
            f"Expected one of: {expected}",
            location,
        )


class UnknownType(BindingError):
    def __init__(self, type_name: str, context: str, location: Location | None = None):
        self.type_name = type_name
        super().__init__(f"Unknown type '{type_name}' {context}", location)


class TypeConditionMismatch(BindingError):
    def __init__(
        self,
        condition: str,
        parent_type: str,
        possible: list[str],
        location: Location | None = None,
    ):
        self.condition = condition
        self.parent_type = parent_type
        self.possible = list(possible)
        super().__init__(
            f"Fragment on '{condition}' can never apply to '{parent_type}' "
            f"(possible types: {', '.join(self.possible) or '(none)'})",
            location,
        )


class InvalidArgument(BindingError):
    def __init__(
        self,
        field_name: str,
        argument: str,
        reason: str,
        location: Location | None = None,
    ):
        self.field_name = field_name
        self.argument = argument
        self.reason = reason
        super().__init__(
            f"Invalid argument '{argument}' on '{field_name}': {reason}", location
        )


class MissingRequiredVariable(BindingError):
    def __init__(self, name: str, expected_type: str, reason: str, location: Location | None = None):
        self.name = name
        self.expected_type = expected_type
        super().__init__(
            f"Required value '{name}' of type '{expected_type}' {reason}", location
        )


class VariableTypeMismatch(BindingError):
    def __init__(
        self,
        variable: str,
        declared: str,
        expected: str,
        location: Location | None = None,
    ):
        self.variable = variable
        self.declared = declared
        self.expected = expected
        super().__init__(
            f"Variable '${variable}' of type '{declared}' used in position "
            f"expecting '{expected}'",
            location,
        )


class UndefinedVariable(BindingError):
    def __init__(self, variable: str, operation: str, location: Location | None = None):
        self.variable = variable
        self.operation = operation
        super().__init__(
            f"Variable '${variable}' is not defined by operation '{operation}'",
            location,
        )


class UnusedVariable(BindingError):
    def __init__(self, variable: str, operation: str, location: Location | None = None):
        self.variable = variable
        self.operation = operation
        super().__init__(
            f"Variable '${variable}' is never used in operation '{operation}'",
            location,
        )


class ConflictingFieldSelection(BindingError):
    def __init__(self, response_key: str, reason: str, location: Location | None = None):
        self.response_key = response_key
        self.reason = reason
        super().__init__(
            f"Fields '{response_key}' conflict because {reason}", location
        )


class InvalidSelection(BindingError):
    def __init__(self, field_name: str, type_name: str, reason: str, location: Location | None = None):
        self.field_name = field_name
        self.type_name = type_name
        super().__init__(
            f"Field '{field_name}' of type '{type_name}' {reason}", location
        )


class UndefinedFragment(BindingError):
    def __init__(self, name: str, location: Location | None = None):
        self.name = name
        super().__init__(f"Unknown fragment '{name}'", location)


class FragmentCycle(BindingError):
    def __init__(self, path: list[str], location: Location | None = None):
        self.path = list(path)
        super().__init__(
            f"Fragment '{path[0]}' spreads itself: {' -> '.join(self.path)}",
            location,
        )


class DuplicateFragment(BindingError):
    def __init__(self, name: str, location: Location | None = None):
        self.name = name
        super().__init__(f"Fragment '{name}' is defined more than once", location)


class DeprecatedFieldSelected(BindingError):
    def __init__(
        self,
        field_name: str,
        type_name: str,
        reason: str | None,
        location: Location | None = None,
    ):
        self.field_name = field_name
        self.type_name = type_name
        self.reason = reason
        message = f"Field '{type_name}.{field_name}' is deprecated"
        if reason:
            message += f": {reason}"
        super().__init__(message, location)


# =============================================================================
# Operation selection errors
# =============================================================================


class SelectionError(TypegenError):
    """The requested operation cannot be picked from the document."""


class OperationNotFound(SelectionError):
    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = list(available)
        super().__init__(
            f"Operation '{name}' not found. Available operations: "
            f"{', '.join(self.available) or '(none)'}"
        )


class AmbiguousOperation(SelectionError):
    def __init__(self, available: list[str], name: str | None = None):
        self.name = name
        self.available = list(available)
        if name is None:
            message = (
                "Document defines several operations "
                f"({', '.join(self.available)}); an operation name is required"
            )
        else:
            message = f"Operation '{name}' is defined more than once"
        super().__init__(message)


# =============================================================================
# Emission errors
# =============================================================================


class EmissionError(TypegenError):
    """A bound operation cannot be turned into a type graph."""


class UnresolvedScalar(EmissionError):
    def __init__(self, scalar: str, operation: str | None = None):
        self.scalar = scalar
        self.operation = operation
        used_by = f" used by '{operation}'" if operation else ""
        super().__init__(
            f"Custom scalar '{scalar}'{used_by} has no entry in scalar_mapping"
        )
