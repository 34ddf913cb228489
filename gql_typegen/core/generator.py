"""Python code generator for Type Graphs.

Renders Jinja2 templates to produce one Python module of pydantic models
from one or more Type Graphs.

Supports custom templates via the template_dir parameter:
    generator = CodeGenerator(template_dir="./my_templates")
    source = generator.render(graphs)

Template lookup order:
1. User's template directory (if provided)
2. Package default templates
"""

import ast
import keyword
import logging
import re
from pathlib import Path
from typing import Any, Iterable, Optional

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, PackageLoader, select_autoescape

from .scalars import import_statement
from .type_graph import (
    EnumDefinition,
    InputRecordType,
    ListTarget,
    NamedTarget,
    OptionalTarget,
    Presence,
    RecordType,
    ScalarReference,
    Target,
    TypeGraph,
    VariablesType,
    VariantType,
)

logger = logging.getLogger(__name__)

BUILTIN_SCALAR_TYPES = {
    "String": "str",
    "Int": "int",
    "Float": "float",
    "Boolean": "bool",
    "ID": "str",
}

# Tag of the fallback alternative; GraphQL reserves names starting with "__"
OTHER_TAG = "__other__"

# Capabilities that make the generated models immutable
FROZEN_DERIVES = {"hash", "frozen"}

# Attributes of pydantic.BaseModel a field must not shadow
_MODEL_ATTRIBUTES = {
    "construct", "copy", "dict", "from_orm", "json", "parse_file", "parse_obj",
    "parse_raw", "schema", "schema_json", "update_forward_refs", "validate",
}


def snake_case(name: str) -> str:
    """Convert PascalCase or camelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def upper_case(name: str) -> str:
    """Convert to UPPER_CASE."""
    return snake_case(name).upper()


def safe_docstring(text: str) -> str:
    """Escape text for use in docstrings."""
    if not text:
        return ""
    text = text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if text.endswith('"'):
        text += " "
    return text


def safe_comment(text: str) -> str:
    """Make text safe for a single-line Python comment."""
    if not text:
        return ""
    text = re.sub(r"\s+", " ", text)
    if len(text) > 120:
        text = text[:117] + "..."
    return text.strip()


def safe_param_name(name: str) -> str:
    """Make a name safe for Python by suffixing keywords with underscore."""
    if keyword.iskeyword(name):
        return f"{name}_"
    return name


def field_name(key: str, taken: set[str]) -> str:
    """Python attribute name for a GraphQL response key or argument name.

    Leading underscores move to the end (``__typename`` -> ``typename__``)
    because pydantic treats underscore names as private.
    """
    name = snake_case(key)
    stripped = name.lstrip("_")
    name = stripped + "_" * (len(name) - len(stripped))
    if name.startswith("model_"):
        name = f"gql_{name}"
    if name in _MODEL_ATTRIBUTES:
        name = f"{name}_"
    name = safe_param_name(name) or "field_"
    candidate, suffix = name, 2
    while candidate in taken:
        candidate = f"{name}_{suffix}"
        suffix += 1
    taken.add(candidate)
    return candidate


class CodeGenerator:
    """Generates a Python module from Type Graphs.

    Supports custom templates via the template_dir parameter.
    Templates in template_dir take precedence over built-in templates.

    Available templates to override:
        - module.py.j2: module layout and request helpers
        - enums.py.j2: enum generation
        - models.py.j2: pydantic record, input and variables models
        - variants.py.j2: discriminated unions

    Custom scalars without a mapping (``external`` mode) are imported by
    name from ``scalars_module``, which the host application provides.

    Example:
        generator = CodeGenerator(template_dir="./my_templates")
        source = generator.render(compile_document(schema, document))
    """

    def __init__(
        self,
        template_dir: Optional[str] = None,
        scalars_module: str = "scalars",
    ):
        """Initialize the code generator.

        Args:
            template_dir: Optional directory with custom Jinja2 templates.
                          Templates here override the built-in templates.
            scalars_module: Module the generated code imports unmapped
                            custom scalars from.
        """
        self.template_dir = template_dir
        self.scalars_module = scalars_module

        # Build template loader - custom templates take precedence
        loaders = []
        if template_dir:
            template_path = Path(template_dir)
            if template_path.is_dir():
                loaders.append(FileSystemLoader(str(template_path)))
        loaders.append(PackageLoader("gql_typegen", "templates"))

        self.env = Environment(
            loader=ChoiceLoader(loaders),
            autoescape=select_autoescape(),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        # Register custom filters
        self.env.filters["snake_case"] = snake_case
        self.env.filters["upper_case"] = upper_case
        self.env.filters["repr"] = repr
        self.env.filters["safe_docstring"] = safe_docstring
        self.env.filters["safe_comment"] = safe_comment

    def render(self, graphs: TypeGraph | Iterable[TypeGraph]) -> str:
        """Render Type Graphs into the source of one Python module.

        Types shared by several graphs (fragments, enums, inputs) are
        emitted once.

        Raises:
            ValueError: two graphs define different types under one name,
                or the rendered module is not valid Python.
        """
        if isinstance(graphs, TypeGraph):
            graphs = [graphs]
        graphs = list(graphs)
        context = _ModuleContext(graphs, self.scalars_module).build()

        template = self.env.get_template("module.py.j2")
        content = template.render(context)

        # Validate Python syntax
        try:
            ast.parse(content)
        except SyntaxError as e:
            raise ValueError(
                f"Generated invalid Python: {e}\nTemplate: module.py.j2"
            ) from e
        logger.debug("Rendered %d operation(s) into %d bytes", len(graphs), len(content))
        return content


class _ModuleContext:
    """Collects the template context for a module made of several graphs."""

    def __init__(self, graphs: list[TypeGraph], scalars_module: str):
        self.graphs = graphs
        self.scalars_module = scalars_module
        self.enums: dict[str, EnumDefinition] = {}
        self.inputs: dict[str, InputRecordType] = {}
        self.scalars: dict[str, ScalarReference] = {}
        self.records: dict[str, RecordType] = {}
        self.variants: dict[str, VariantType] = {}
        self.variables: dict[str, VariablesType] = {}
        self.frozen = False

    def build(self) -> dict[str, Any]:
        for graph in self.graphs:
            self._merge(self.enums, graph.enums)
            self._merge(self.inputs, graph.inputs)
            self._merge(self.scalars, graph.scalars)
            self._merge(self.records, graph.records)
            self._merge(self.variants, graph.variants)
            self._merge(self.variables, [graph.variables])
            if graph.response_derives & FROZEN_DERIVES:
                self.frozen = True

        operations = [self._operation(graph) for graph in self.graphs]
        return {
            "imports": self._imports(),
            "frozen": self.frozen,
            "enums": [self._enum(enum) for enum in self.enums.values()],
            "inputs": [self._input(input_type) for input_type in self.inputs.values()],
            "variables": [self._variables(v) for v in self.variables.values()],
            "records": [self._record(record) for record in self.records.values()],
            "variants": [self._variant(variant) for variant in self.variants.values()],
            "operations": operations,
            "single_operation": operations[0] if len(operations) == 1 else None,
        }

    @staticmethod
    def _merge(target: dict, items):
        for item in items:
            existing = target.get(item.name)
            if existing is not None and existing != item:
                raise ValueError(
                    f"Conflicting definitions generated for type '{item.name}'"
                )
            target[item.name] = item

    def _imports(self) -> list[str]:
        statements = set()
        external = []
        for scalar in self.scalars.values():
            if scalar.reference is not None:
                statement = import_statement(scalar.reference)
                if statement:
                    statements.add(statement)
            elif not scalar.opaque:
                external.append(scalar.name)
        imports = sorted(statements)
        if external:
            imports.append(f"from {self.scalars_module} import {', '.join(sorted(external))}")
        return imports

    def annotation(self, target: Target) -> str:
        if isinstance(target, OptionalTarget):
            return f"Optional[{self.annotation(target.of_type)}]"
        if isinstance(target, ListTarget):
            return f"list[{self.annotation(target.of_type)}]"
        assert isinstance(target, NamedTarget)
        if target.kind == "scalar":
            if target.name in BUILTIN_SCALAR_TYPES:
                return BUILTIN_SCALAR_TYPES[target.name]
            scalar = self.scalars[target.name]
            if scalar.opaque:
                return "Any"
            return scalar.reference or scalar.name
        return target.name

    def _enum(self, enum: EnumDefinition) -> dict[str, Any]:
        return {
            "name": enum.name,
            "members": [
                {
                    "name": safe_param_name(member.name),
                    "value": member.name,
                    "deprecated": member.deprecated,
                }
                for member in enum.values
            ],
        }

    def _input(self, input_type: InputRecordType) -> dict[str, Any]:
        taken: set[str] = set()
        return {
            "name": input_type.name,
            "fields": [
                {
                    "name": field_name(f.name, taken),
                    "alias": f.name,
                    "annotation": self.annotation(f.target),
                    "required": f.required,
                }
                for f in input_type.fields
            ],
        }

    def _variables(self, variables: VariablesType) -> dict[str, Any]:
        taken: set[str] = set()
        return {
            "name": variables.name,
            "fields": [
                {
                    "name": field_name(v.name, taken),
                    "alias": v.name,
                    "annotation": self.annotation(v.target),
                    "required": v.presence is Presence.REQUIRED,
                    "default": v.default if v.has_default else None,
                    "has_default": v.has_default,
                }
                for v in variables.fields
            ],
        }

    def _record(self, record: RecordType) -> dict[str, Any]:
        taken: set[str] = set()
        fields = [
            {
                "name": field_name(f.name, taken),
                "alias": f.name,
                "annotation": self.annotation(f.target),
                "optional": f.conditional,
                "deprecated": f.deprecated,
                "deprecation_reason": f.deprecation_reason,
            }
            for f in record.fields
        ]
        fragments = []
        for include in record.fragments:
            name = field_name(f"on_{snake_case(include.fragment_name)}", taken)
            annotation = include.type_name
            if include.conditional:
                annotation = f"Optional[{annotation}]"
            fragments.append({
                "name": name,
                "annotation": annotation,
                "conditional": include.conditional,
                "keys": self._required_keys(include.type_name),
            })
        return {
            "name": record.name,
            "graphql_type": record.graphql_type,
            "fields": fields,
            "fragments": fragments,
        }

    def _required_keys(self, type_name: str) -> tuple[str, ...]:
        """Response keys that must be present for a fragment to apply."""
        if type_name in self.variants:
            record = self.records[self.variants[type_name].fallback]
        else:
            record = self.records[type_name]
        return tuple(
            f.name for f in record.fields
            if not f.conditional and f.name != "__typename"
        )

    def _variant(self, variant: VariantType) -> dict[str, Any]:
        return {
            "name": variant.name,
            "graphql_type": variant.graphql_type,
            "discriminant": variant.discriminant,
            "typenames": tuple(a.type_name for a in variant.alternatives),
            "alternatives": [
                {"record": a.record, "tag": a.type_name} for a in variant.alternatives
            ],
            "fallback": {"record": variant.fallback, "tag": OTHER_TAG},
        }

    def _operation(self, graph: TypeGraph) -> dict[str, Any]:
        variables = graph.variables
        return {
            "name": graph.operation_name,
            "kind": graph.operation_kind,
            "function": snake_case(graph.operation_name),
            "constant": f"{upper_case(graph.operation_name)}_{graph.operation_kind.upper()}",
            "query": graph.query,
            "operation_name": None if graph.anonymous else graph.operation_name,
            "data": graph.response,
            "variables": variables.name,
            "has_required": any(v.presence is Presence.REQUIRED for v in variables.fields),
        }
