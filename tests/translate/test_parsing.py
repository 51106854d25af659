"""Tests for the GraphQL operation adapter."""

import pytest

from relgraph.translate import (
    ConnectionSelection,
    CreateMutation,
    EdgeNodeSelection,
    EdgesSelection,
    FieldSelection,
    InvalidInputError,
    ListRead,
    NodeListSelection,
    NodeLookup,
    PageInfoSelection,
    RelationshipSelection,
    TypenameField,
    UpdateMutation,
)


class TestRootFields:
    def test_list_read(self, parse_operation):
        operation = parse_operation('{ movies(where: {title: "Heat"}) { title } }')

        assert operation.kind == "query"
        assert operation.is_mutation is False
        read = operation.fields[0]
        assert isinstance(read, ListRead)
        assert read.alias == "movies"
        assert read.type_name == "Movie"
        assert read.where == {"title": "Heat"}
        assert read.selection.fields == (FieldSelection(alias="title", name="title"),)

    def test_aliases_are_response_keys(self, parse_operation):
        operation = parse_operation("{ films: movies { name: title } }")

        read = operation.fields[0]
        assert read.alias == "films"
        assert read.selection.fields == (FieldSelection(alias="name", name="title"),)

    def test_root_typename(self, parse_operation):
        operation = parse_operation("{ __typename movies { title } }")

        assert operation.fields[0] == TypenameField(alias="__typename", type_name="Query")
        assert isinstance(operation.fields[1], ListRead)

    def test_node_lookup_has_variant_per_type(self, parse_operation):
        operation = parse_operation(
            '{ node(id: "m1") { id ... on Movie { title } ... on Actor { name } } }'
        )

        lookup = operation.fields[0]
        assert isinstance(lookup, NodeLookup)
        assert lookup.id == "m1"
        assert [v.type_name for v in lookup.variants] == ["Movie", "Actor", "Genre"]
        assert [f.name for f in lookup.variant("Movie").fields] == ["id", "title"]
        assert [f.name for f in lookup.variant("Actor").fields] == ["id", "name"]
        assert [f.name for f in lookup.variant("Genre").fields] == ["id"]

    def test_create_mutation(self, parse_operation):
        operation = parse_operation(
            """
            mutation {
                createMovies(input: [{title: "Heat"}]) { movies { title } }
            }
            """
        )

        assert operation.is_mutation is True
        create = operation.fields[0]
        assert isinstance(create, CreateMutation)
        assert create.type_name == "Movie"
        assert create.inputs == ({"title": "Heat"},)
        assert create.response.fields == (
            NodeListSelection(
                alias="movies",
                node=create.response.fields[0].node,
            ),
        )

    def test_update_mutation_arguments(self, parse_operation):
        operation = parse_operation(
            """
            mutation {
                updateMovies(
                    where: {title: "Heat"}
                    update: {released: 1995}
                    updateConnection: {actors: [{where: {name: "Al"}, properties: {screenTime: 120}}]}
                ) { movies { title } }
            }
            """
        )

        update = operation.fields[0]
        assert isinstance(update, UpdateMutation)
        assert update.where == {"title": "Heat"}
        assert update.update == {"released": 1995}
        assert update.update_connection == {
            "actors": [{"where": {"name": "Al"}, "properties": {"screenTime": 120}}]
        }

    def test_variables_are_used(self, parse_operation):
        operation = parse_operation(
            "query Films($title: String) { movies(where: {title: $title}) { title } }",
            {"title": "Heat"},
        )

        assert operation.fields[0].where == {"title": "Heat"}

    def test_unknown_operation_name(self, parse_operation):
        with pytest.raises(InvalidInputError):
            parse_operation("query A { movies { title } }", operation_name="B")


class TestSelections:
    def test_relationship_selection(self, parse_operation):
        operation = parse_operation("{ movies { actors { name } } }")

        field = operation.fields[0].selection.fields[0]
        assert isinstance(field, RelationshipSelection)
        assert field.name == "actors"
        assert field.node.type_name == "Actor"

    def test_connection_selection(self, parse_operation):
        operation = parse_operation(
            """
            {
                movies {
                    actorsConnection(first: 2, after: "abc") {
                        edges { cursor screenTime node { name } }
                        pageInfo { hasNextPage endCursor }
                    }
                }
            }
            """
        )

        connection = operation.fields[0].selection.fields[0]
        assert isinstance(connection, ConnectionSelection)
        assert connection.name == "actors"
        assert connection.first == 2
        assert connection.after == "abc"

        edges, page_info = connection.fields
        assert isinstance(edges, EdgesSelection)
        assert [type(f) for f in edges.fields] == [
            FieldSelection,
            FieldSelection,
            EdgeNodeSelection,
        ]
        assert isinstance(page_info, PageInfoSelection)
        assert [f.name for f in page_info.fields] == ["hasNextPage", "endCursor"]

    def test_fragments_are_merged(self, parse_operation):
        operation = parse_operation(
            """
            query { movies { title ...MovieFields } }
            fragment MovieFields on Movie { released title }
            """
        )

        assert [f.name for f in operation.fields[0].selection.fields] == [
            "title",
            "released",
        ]

    def test_skip_and_include(self, parse_operation):
        operation = parse_operation(
            """
            query ($hide: Boolean!) {
                movies { title @skip(if: $hide) released @include(if: true) }
            }
            """,
            {"hide": True},
        )

        assert [f.name for f in operation.fields[0].selection.fields] == ["released"]
