"""Command-line interface for gql-typegen."""

import logging
from pathlib import Path

import click
from pydantic import ValidationError

from .core.compiler import Compiler
from .core.document import Document, parse_document
from .core.errors import OperationNotFound, TypegenError
from .core.fragments import FragmentResolver
from .core.generator import CodeGenerator
from .core.ir import Schema
from .core.options import GenerationOptions
from .core.parser import SchemaParser
from .core.selector import select_all, select_operation
from .core.type_graph import TypeGraph

SCHEMA_SUFFIXES = (".graphql", ".graphqls", ".gql")


def read_schema(path: Path) -> Schema:
    """Parse a schema file (SDL or introspection JSON) or a directory of SDL files."""
    parser = SchemaParser(source_name=path.name)
    if path.is_dir():
        files = sorted(p for p in path.rglob("*") if p.suffix in SCHEMA_SUFFIXES)
        if not files:
            raise click.ClickException(f"No schema files found in {path}")
        return parser.parse_sdl(*(p.read_text(encoding="utf-8") for p in files))
    return parser.parse(path.read_text(encoding="utf-8"))


def read_documents(paths: tuple[str, ...]) -> list[Document]:
    return [
        parse_document(Path(p).read_text(encoding="utf-8"), source_name=Path(p).name)
        for p in paths
    ]


def compile_documents(
    schema: Schema,
    documents: list[Document],
    options: GenerationOptions,
) -> list[TypeGraph]:
    """Compile the requested operation, or every operation of every document."""
    compiler = Compiler(schema, options)
    if options.operation_name is not None:
        for document in documents:
            if any(op.name == options.operation_name for op in document.operations):
                return [compiler.compile(select_operation(document, options.operation_name))]
        available = [op.display_name for d in documents for op in d.operations]
        raise OperationNotFound(options.operation_name, available)

    graphs = []
    for document in documents:
        FragmentResolver(document).check_all()
        graphs.extend(compiler.compile(selected) for selected in select_all(document))
    return graphs


def parse_scalars(values: tuple[str, ...]) -> dict[str, str]:
    mapping = {}
    for value in values:
        name, sep, reference = value.partition("=")
        if not sep or not name.strip() or not reference.strip():
            raise click.BadParameter(
                f"expected NAME=REFERENCE, got {value!r}", param_hint="--scalar"
            )
        mapping[name.strip()] = reference.strip()
    return mapping


def configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


schema_option = click.option(
    "--schema",
    "-s",
    required=True,
    type=click.Path(exists=True),
    help="GraphQL schema: SDL file, introspection JSON, or directory of SDL files.",
)
query_option = click.option(
    "--query",
    "-q",
    "queries",
    required=True,
    multiple=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Operation document (.graphql). May be given more than once.",
)
operation_option = click.option(
    "--operation-name",
    "-n",
    default=None,
    help="Only compile the operation with this name.",
)
deprecated_option = click.option(
    "--deprecated",
    type=click.Choice(["allow", "warn", "deny"]),
    default="warn",
    show_default=True,
    help="Policy for selecting deprecated fields.",
)
verbose_option = click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)


@click.group()
@click.version_option()
def main():
    """Typed Python models from GraphQL schemas and operations.

    Compile operation documents against a schema into pydantic response
    models, variables models and request builders.
    """
    pass


@main.command()
@schema_option
@query_option
@click.option(
    "--output",
    "-o",
    required=True,
    type=click.Path(dir_okay=False),
    help="Output Python module.",
)
@operation_option
@deprecated_option
@click.option(
    "--scalar",
    "scalars",
    multiple=True,
    metavar="NAME=REFERENCE",
    help="Map a custom scalar to a Python type, e.g. DateTime=datetime.datetime.",
)
@click.option(
    "--scalar-mode",
    type=click.Choice(["external", "closed", "open"]),
    default="external",
    show_default=True,
    help="What to do with custom scalars that have no mapping.",
)
@click.option(
    "--derive",
    "derives",
    multiple=True,
    help="Extra capability the generated types must support (e.g. hash).",
)
@click.option(
    "--template-dir",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Directory with templates overriding the built-in ones.",
)
@click.option(
    "--scalars-module",
    default="scalars",
    show_default=True,
    help="Module the generated code imports unmapped custom scalars from.",
)
@verbose_option
def generate(
    schema: str,
    queries: tuple[str, ...],
    output: str,
    operation_name: str | None,
    deprecated: str,
    scalars: tuple[str, ...],
    scalar_mode: str,
    derives: tuple[str, ...],
    template_dir: str | None,
    scalars_module: str,
    verbose: bool,
):
    """Generate a Python module for the operations in QUERY files.

    Examples:

        gql-typegen generate -s schema.graphql -q queries.graphql -o api.py

        gql-typegen generate -s schema.json -q hero.graphql -o hero.py \\
            --operation-name GetHero --scalar DateTime=datetime.datetime
    """
    configure_logging(verbose)
    output_path = Path(output).resolve()

    try:
        options = GenerationOptions(
            deprecated=deprecated,
            operation_name=operation_name,
            scalar_mapping=parse_scalars(scalars),
            scalar_mode=scalar_mode,
            response_extra_derives=frozenset(derives),
        )
    except ValidationError as e:
        raise click.ClickException(str(e)) from e

    try:
        click.echo("Parsing schema...")
        schema_model = read_schema(Path(schema))
        if verbose:
            click.echo(f"  Types: {len(schema_model.types)}")

        click.echo("Compiling operations...")
        graphs = compile_documents(schema_model, read_documents(queries), options)
        if verbose:
            for graph in graphs:
                click.echo(
                    f"  {graph.operation_kind} {graph.operation_name}: "
                    f"{len(graph.records)} records, {len(graph.variants)} variants"
                )

        click.echo("Generating code...")
        code = CodeGenerator(template_dir, scalars_module).render(graphs)
    except (TypegenError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(code, encoding="utf-8")
    click.echo(f"Done! Generated {len(graphs)} operation(s) in {output_path}")


@main.command()
@schema_option
@query_option
@operation_option
@deprecated_option
@verbose_option
def check(
    schema: str,
    queries: tuple[str, ...],
    operation_name: str | None,
    deprecated: str,
    verbose: bool,
):
    """Validate operation documents against a schema without generating code.

    Custom scalars are not resolved; unmapped scalars never fail a check.

    Example:

        gql-typegen check -s schema.graphql -q queries.graphql
    """
    configure_logging(verbose)
    options = GenerationOptions(
        deprecated=deprecated,
        operation_name=operation_name,
        scalar_mode="open",
    )
    try:
        schema_model = read_schema(Path(schema))
        graphs = compile_documents(schema_model, read_documents(queries), options)
    except TypegenError as e:
        raise click.ClickException(str(e)) from e

    for graph in graphs:
        click.echo(f"OK {graph.operation_kind} {graph.operation_name}")
    click.echo(f"{len(graphs)} operation(s) checked.")


if __name__ == "__main__":
    main()
