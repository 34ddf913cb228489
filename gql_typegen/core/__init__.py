"""Core modules for GraphQL operation compilation and code generation."""

from .binder import TypeBinder
from .compiler import Compiler, compile_document, compile_operation
from .deprecation import DeprecationStrategy, FieldDisposition, field_disposition
from .document import Document, parse_document
from .emitter import TypeGraphEmitter
from .errors import (
    AmbiguousOperation,
    BindingError,
    ConflictingFieldSelection,
    DeprecatedFieldSelected,
    DocumentSyntaxError,
    DuplicateFragment,
    EmissionError,
    FragmentCycle,
    InvalidArgument,
    InvalidSelection,
    Location,
    MissingRequiredVariable,
    OperationNotFound,
    SchemaParseError,
    SelectionError,
    TypeConditionMismatch,
    TypegenError,
    UndefinedFragment,
    UndefinedVariable,
    UnknownField,
    UnknownType,
    UnresolvedScalar,
    UnusedVariable,
    VariableTypeMismatch,
)
from .fragments import FragmentResolver
from .generator import CodeGenerator
from .ir import Schema
from .options import GenerationOptions
from .parser import SchemaParser, parse_schema
from .query_builder import QueryBuilder
from .scalars import ScalarMode, ScalarRegistry
from .selection import BoundOperation
from .selector import SelectedOperation, select_all, select_operation
from .type_graph import (
    EnumDefinition,
    InputRecordType,
    Presence,
    RecordType,
    TypeGraph,
    VariablesType,
    VariantType,
)

__all__ = [
    # Schema
    "Schema",
    "SchemaParser",
    "parse_schema",
    # Documents
    "Document",
    "parse_document",
    "FragmentResolver",
    "SelectedOperation",
    "select_operation",
    "select_all",
    # Binding
    "TypeBinder",
    "BoundOperation",
    "DeprecationStrategy",
    "FieldDisposition",
    "field_disposition",
    # Type Graph
    "TypeGraphEmitter",
    "TypeGraph",
    "RecordType",
    "VariantType",
    "EnumDefinition",
    "InputRecordType",
    "VariablesType",
    "Presence",
    # Scalars
    "ScalarMode",
    "ScalarRegistry",
    # Compiler
    "Compiler",
    "GenerationOptions",
    "compile_operation",
    "compile_document",
    # Backend
    "CodeGenerator",
    "QueryBuilder",
    # Errors
    "Location",
    "TypegenError",
    "DocumentSyntaxError",
    "SchemaParseError",
    "BindingError",
    "UnknownField",
    "UnknownType",
    "TypeConditionMismatch",
    "InvalidArgument",
    "MissingRequiredVariable",
    "VariableTypeMismatch",
    "UndefinedVariable",
    "UnusedVariable",
    "ConflictingFieldSelection",
    "InvalidSelection",
    "UndefinedFragment",
    "FragmentCycle",
    "DuplicateFragment",
    "DeprecatedFieldSelected",
    "SelectionError",
    "OperationNotFound",
    "AmbiguousOperation",
    "EmissionError",
    "UnresolvedScalar",
]
