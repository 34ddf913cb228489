"""Shared schema and helpers for the test suite."""

import importlib.util
import sys

import pytest

from gql_typegen.core.parser import parse_schema


STARWARS_SDL = """
scalar DateTime

\"\"\"Episodes of the original trilogy.\"\"\"
enum Episode {
  NEWHOPE
  EMPIRE
  JEDI
  PHANTOM @deprecated(reason: "Not part of the trilogy")
}

enum LengthUnit {
  METER
  FOOT
}

interface Character {
  id: ID!
  name: String!
  friends: [Character]
  appearsIn: [Episode]!
}

type Human implements Character {
  id: ID!
  name: String!
  friends: [Character]
  appearsIn: [Episode]!
  homePlanet: String
  height(unit: LengthUnit = METER): Float
  secretRank: Int @deprecated(reason: "Use rank")
  rank: Int
}

type Droid implements Character {
  id: ID!
  name: String!
  friends: [Character]
  appearsIn: [Episode]!
  primaryFunction: String
}

type Starship {
  id: ID!
  name: String!
  length(unit: LengthUnit = METER): Float
}

union SearchResult = Human | Droid | Starship

input ReviewInput {
  stars: Int!
  commentary: String
  createdAt: DateTime
}

type Review {
  episode: Episode
  stars: Int!
  commentary: String
  createdAt: DateTime
}

type Query {
  hero(episode: Episode): Character
  character(id: ID!): Character
  human(id: ID!): Human
  droid(id: ID!): Droid
  search(text: String!): [SearchResult!]!
  reviews(episode: Episode!, first: Int = 10): [Review!]!
}

type Mutation {
  createReview(episode: Episode, review: ReviewInput!): Review
}
"""


@pytest.fixture(scope="session")
def starwars_sdl():
    return STARWARS_SDL


@pytest.fixture(scope="session")
def schema():
    """The parsed Star Wars schema, shared by every test."""
    return parse_schema(STARWARS_SDL, "starwars.graphql")


@pytest.fixture
def load_module(tmp_path):
    """Write generated source to disk and import it as a real module."""
    loaded = []

    def load(source: str, name: str = "generated_api"):
        path = tmp_path / f"{name}.py"
        path.write_text(source, encoding="utf-8")
        spec = importlib.util.spec_from_file_location(name, path)
        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        loaded.append(name)
        spec.loader.exec_module(module)
        return module

    yield load
    for name in loaded:
        sys.modules.pop(name, None)
