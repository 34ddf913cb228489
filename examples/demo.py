#!/usr/bin/env python3
"""Demonstration of gql-typegen.

This script shows how to:
1. Parse the Star Wars schema and the operations next to it
2. Compile every operation into a Type Graph
3. Render the graphs into one Python module and print a summary

Run it from the repository root:

    python examples/demo.py
"""

from pathlib import Path

from gql_typegen.core import CodeGenerator, GenerationOptions, compile_document, parse_schema

HERE = Path(__file__).parent


def main():
    print("=== gql-typegen Demo ===\n")

    print("1. Parsing schema...")
    schema = parse_schema((HERE / "starwars.graphql").read_text(), "starwars.graphql")
    print(f"   {len(schema.types)} types")

    print("\n2. Compiling operations...")
    options = GenerationOptions(
        deprecated="warn",
        scalar_mapping={"DateTime": "datetime.datetime"},
    )
    graphs = compile_document(schema, (HERE / "queries.graphql").read_text(), options)
    for graph in graphs:
        print(
            f"   {graph.operation_kind} {graph.operation_name}: "
            f"{len(graph.records)} records, {len(graph.variants)} variants"
        )

    print("\n3. Request document for the first operation:")
    print(graphs[0].query)

    print("4. Generating code...")
    code = CodeGenerator().render(graphs)
    output = HERE / "starwars_api.py"
    output.write_text(code)
    print(f"   Wrote {len(code.splitlines())} lines to {output.name}")


if __name__ == "__main__":
    main()
