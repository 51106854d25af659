"""Tests for the Type Descriptor Model.

Tests descriptor construction from base SDL including:
- Node types, scalar fields and relationship fields
- Relationship pairing
- Reference errors collected instead of raised
- @identifier overrides
"""

import pytest
from graphql import GraphQLError

from relgraph.schema import (
    InvalidDirectiveError,
    RelationshipDirection,
    SchemaReferenceError,
    TypeReference,
    UnsupportedFieldTypeError,
    build_descriptors,
)

from tests.conftest import MOVIE_TYPE_DEFS


class TestBuildDescriptors:
    """Tests for descriptor construction."""

    def test_nodes_in_declaration_order(self):
        descriptors, errors = build_descriptors(MOVIE_TYPE_DEFS)

        assert errors == []
        assert [n.name for n in descriptors.nodes] == ["Movie", "Actor", "Genre"]

    def test_scalar_fields(self):
        descriptors, _ = build_descriptors(MOVIE_TYPE_DEFS)
        movie = descriptors.node("Movie")

        assert [f.name for f in movie.fields] == ["title", "released"]
        assert movie.field("title").required is True
        assert movie.field("released").required is False

    def test_identifier_defaults(self):
        descriptors, _ = build_descriptors(MOVIE_TYPE_DEFS)
        movie = descriptors.node("Movie")

        assert movie.identifier.declared is False
        assert movie.identifier.source_property == "id"
        assert movie.field("id").type == TypeReference(name="ID", non_null=True)

    def test_relationship_fields(self):
        descriptors, _ = build_descriptors(MOVIE_TYPE_DEFS)
        actors = descriptors.relationship("Movie", "actors")

        assert actors.related_type == "Actor"
        assert actors.direction is RelationshipDirection.IN
        assert actors.relationship_type == "ACTED_IN"
        assert actors.properties == "ActedIn"
        assert actors.type.to_sdl() == "[Actor!]!"

    def test_relationship_without_properties(self):
        descriptors, _ = build_descriptors(MOVIE_TYPE_DEFS)
        genres = descriptors.relationship("Movie", "genres")

        assert genres.properties is None
        assert descriptors.properties_of(genres) is None

    def test_properties_interface(self):
        descriptors, _ = build_descriptors(MOVIE_TYPE_DEFS)
        acted_in = descriptors.properties_interface("ActedIn")

        assert [f.name for f in acted_in.fields] == ["screenTime", "role"]
        assert [f.name for f in acted_in.required_fields] == ["screenTime"]

    def test_paired_relationship(self):
        descriptors, _ = build_descriptors(MOVIE_TYPE_DEFS)

        other_type, other_field = descriptors.paired("Movie", "actors")

        assert other_type.name == "Actor"
        assert other_field.name == "movies"
        assert descriptors.paired("Movie", "genres") is None

    def test_relationship_pairs_listed_once(self):
        descriptors, _ = build_descriptors(MOVIE_TYPE_DEFS)

        assert descriptors.relationship_pairs() == [
            (("Movie", "actors"), ("Actor", "movies"))
        ]

    def test_unknown_node_type_raises_key_error(self):
        descriptors, _ = build_descriptors(MOVIE_TYPE_DEFS)

        with pytest.raises(KeyError):
            descriptors.node("Director")

    def test_identifier_override(self):
        descriptors, errors = build_descriptors(
            """
            type Movie {
                id: ID! @identifier(property: "movieId")
                title: String
            }
            """
        )

        assert errors == []
        movie = descriptors.node("Movie")
        assert movie.identifier.declared is True
        assert movie.identifier.source_property == "movieId"
        assert movie.identifier_directive_fields == ("id",)

    def test_invalid_sdl_raises(self):
        with pytest.raises(GraphQLError):
            build_descriptors("type Movie {")


class TestReferenceErrors:
    """Reference problems are collected, not raised."""

    def test_undeclared_related_type(self):
        descriptors, errors = build_descriptors(
            """
            type Movie {
                director: Person @relationship(type: "DIRECTED", direction: IN)
            }
            """
        )

        assert len(errors) == 1
        assert isinstance(errors[0], SchemaReferenceError)
        assert errors[0].reference == "Person"
        assert descriptors.node("Movie").relationships == ()

    def test_undeclared_properties_interface(self):
        _, errors = build_descriptors(
            """
            type Movie {
                actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN, properties: "Missing")
            }
            type Actor { name: String }
            """
        )

        assert [e.reference for e in errors] == ["Missing"]

    def test_node_field_without_relationship_directive(self):
        _, errors = build_descriptors(
            """
            type Movie { lead: Actor }
            type Actor { name: String }
            """
        )

        assert isinstance(errors[0], SchemaReferenceError)
        assert "without a @relationship directive" in str(errors[0])

    def test_undeclared_scalar(self):
        _, errors = build_descriptors("type Movie { released: DateTime }")

        assert errors[0].reference == "DateTime"

    def test_declared_scalar_accepted(self):
        descriptors, errors = build_descriptors(
            """
            scalar DateTime
            type Movie { released: DateTime }
            """
        )

        assert errors == []
        assert descriptors.scalars == ("DateTime",)

    def test_invalid_direction(self):
        _, errors = build_descriptors(
            """
            type Movie {
                actors: [Actor!]! @relationship(type: "ACTED_IN", direction: SIDEWAYS)
            }
            type Actor { name: String }
            """
        )

        assert isinstance(errors[0], InvalidDirectiveError)

    def test_nested_list_field(self):
        descriptors, errors = build_descriptors(
            "type Movie { title: String tags: [[String]] }"
        )

        assert len(errors) == 1
        assert isinstance(errors[0], UnsupportedFieldTypeError)
        assert (errors[0].type_name, errors[0].field_name) == ("Movie", "tags")
        assert [f.name for f in descriptors.node("Movie").fields] == ["title"]

    def test_nested_list_property(self):
        _, errors = build_descriptors(
            """
            type Movie {
                actors: [Actor!]! @relationship(type: "ACTED_IN", direction: IN, properties: "ActedIn")
            }
            type Actor { name: String }
            interface ActedIn  { scenes: [[Int]] }
            """
        )

        assert [(e.type_name, e.field_name) for e in errors] == [("ActedIn", "scenes")]

    def test_all_errors_collected(self):
        _, errors = build_descriptors(
            """
            type Movie {
                director: Person @relationship(type: "DIRECTED", direction: IN)
                released: DateTime
            }
            """
        )

        assert len(errors) == 2
