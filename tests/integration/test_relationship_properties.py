"""End-to-end tests against a real Neo4j instance.

Covers relationship properties through nested create, connect and
updateConnection, cursor pagination over connections, node(id) lookups and
the all-or-nothing behavior of mutations.

Uses testcontainers - no mocks.
"""

from __future__ import annotations

import pytest

from tests.conftest import requires_docker, requires_testcontainers

pytestmark = [pytest.mark.integration, requires_testcontainers, requires_docker]


CREATE_HEAT = """
mutation {
    createMovies(input: [{
        title: "Heat"
        actors: {create: [{node: {name: "Al"}, properties: {screenTime: 90}}]}
    }]) {
        movies {
            id
            title
            actorsConnection {
                edges { screenTime node { name } }
            }
        }
    }
}
"""

ACTORS_CONNECTION = """
query ($first: Int, $after: String) {
    movies(where: {title: "Heat"}) {
        actorsConnection(first: $first, after: $after) {
            edges { cursor screenTime node { name } }
            pageInfo { hasNextPage hasPreviousPage startCursor endCursor }
        }
    }
}
"""


def _count(database_manager, cypher):
    with database_manager.session() as session:
        return session.run(cypher).single()[0]


def _ok(result):
    assert result.errors is None, result.errors
    return result.data


def _create_movie_with_actors(engine, count):
    actors = ", ".join(
        f'{{node: {{name: "Actor {i}"}}, properties: {{screenTime: {i}}}}}'
        for i in range(count)
    )
    _ok(
        engine.execute(
            f'mutation {{ createMovies(input: [{{title: "Heat", actors: {{create: [{actors}]}}}}]) '
            f"{{ movies {{ title }} }} }}"
        )
    )


class TestNestedCreate:
    def test_create_returns_relationship_properties(self, engine):
        data = _ok(engine.execute(CREATE_HEAT))

        movie = data["createMovies"]["movies"][0]
        assert movie["title"] == "Heat"
        assert movie["id"]
        assert movie["actorsConnection"]["edges"] == [
            {"screenTime": 90, "node": {"name": "Al"}}
        ]

    def test_properties_readable_from_both_ends(self, engine):
        _ok(engine.execute(CREATE_HEAT))

        data = _ok(
            engine.execute(
                "{ actors { name moviesConnection { edges { screenTime node { title } } } } }"
            )
        )

        assert data["actors"] == [
            {
                "name": "Al",
                "moviesConnection": {
                    "edges": [{"screenTime": 90, "node": {"title": "Heat"}}]
                },
            }
        ]

    def test_plain_relationship_field(self, engine):
        _ok(engine.execute(CREATE_HEAT))

        data = _ok(engine.execute("{ movies { actors { name } } }"))

        assert data == {"movies": [{"actors": [{"name": "Al"}]}]}

    def test_missing_required_property_writes_nothing(self, engine, database_manager):
        result = engine.execute(
            """
            mutation {
                createMovies(input: [
                    {title: "Ronin"},
                    {title: "Heat", actors: {create: [{node: {name: "Al"}}]}}
                ]) { movies { title } }
            }
            """
        )

        assert result.data is None
        assert "ActedIn.screenTime" in result.errors[0].message
        assert _count(database_manager, "MATCH (n) RETURN count(n)") == 0

    def test_relationships_receive_increasing_sequence(self, engine, database_manager):
        _create_movie_with_actors(engine, 3)
        _ok(engine.execute(CREATE_HEAT))

        with database_manager.session() as session:
            sequences = [
                record["seq"]
                for record in session.run(
                    "MATCH ()-[r:ACTED_IN]->() RETURN r._seq AS seq ORDER BY seq"
                )
            ]

        assert sequences == [1, 2, 3, 4]


class TestConnect:
    def test_connect_existing_node_with_properties(self, engine):
        _ok(engine.execute('mutation { createActors(input: [{name: "Al"}]) { actors { name } } }'))

        data = _ok(
            engine.execute(
                """
                mutation {
                    createMovies(input: [{
                        title: "Heat"
                        actors: {connect: [{where: {name: "Al"}, properties: {screenTime: 45, role: "Neil"}}]}
                    }]) {
                        movies { actorsConnection { edges { screenTime role node { name } } } }
                    }
                }
                """
            )
        )

        edges = data["createMovies"]["movies"][0]["actorsConnection"]["edges"]
        assert edges == [{"screenTime": 45, "role": "Neil", "node": {"name": "Al"}}]

    def test_unmatched_connect_reports_not_found(self, engine, database_manager):
        result = engine.execute(
            """
            mutation {
                createMovies(input: [{
                    title: "Heat"
                    actors: {connect: [{where: {name: "Nobody"}, properties: {screenTime: 5}}]}
                }]) { movies { title } }
            }
            """
        )

        assert result.data == {"createMovies": {"movies": [{"title": "Heat"}]}}
        assert "createMovies[0].actors.connect[0]" in result.errors[0].message
        assert _count(database_manager, "MATCH (m:Movie) RETURN count(m)") == 1


class TestUpdateConnection:
    UPDATE = """
    mutation ($screenTime: Int) {
        updateMovies(
            where: {title: "Heat"}
            updateConnection: {actors: [{where: {name: "Al"}, properties: {screenTime: $screenTime}}]}
        ) {
            movies { actorsConnection { edges { screenTime node { name } } } }
        }
    }
    """

    def test_updates_property_in_place(self, engine, database_manager):
        _ok(engine.execute(CREATE_HEAT))
        nodes_before = _count(database_manager, "MATCH (n) RETURN count(n)")
        relationships_before = _count(database_manager, "MATCH ()-[r]->() RETURN count(r)")

        data = _ok(engine.execute(self.UPDATE, {"screenTime": 120}))

        edges = data["updateMovies"]["movies"][0]["actorsConnection"]["edges"]
        assert edges == [{"screenTime": 120, "node": {"name": "Al"}}]
        assert _count(database_manager, "MATCH (n) RETURN count(n)") == nodes_before
        assert (
            _count(database_manager, "MATCH ()-[r]->() RETURN count(r)")
            == relationships_before
        )

    def test_unmatched_update_connection_reports_not_found(self, engine):
        _ok(engine.execute(CREATE_HEAT))

        result = engine.execute(
            """
            mutation {
                updateMovies(
                    where: {title: "Heat"}
                    updateConnection: {actors: [{where: {name: "Nobody"}, properties: {screenTime: 1}}]}
                ) { movies { title } }
            }
            """
        )

        assert result.data == {"updateMovies": {"movies": [{"title": "Heat"}]}}
        assert "updateMovies.actors.updateConnection[0]" in result.errors[0].message

    def test_update_without_matching_root_reports_not_found(self, engine):
        result = engine.execute(self.UPDATE, {"screenTime": 1})

        assert result.data == {"updateMovies": {"movies": []}}
        assert [e.original_error.path for e in result.errors] == [
            "updateMovies.actors.updateConnection[0]"
        ]


class TestPagination:
    def test_pages_cover_all_edges_in_creation_order(self, engine):
        _create_movie_with_actors(engine, 5)

        names = []
        after = None
        pages = 0
        while True:
            data = _ok(engine.execute(ACTORS_CONNECTION, {"first": 2, "after": after}))
            connection = data["movies"][0]["actorsConnection"]
            names.extend(edge["node"]["name"] for edge in connection["edges"])
            pages += 1
            page_info = connection["pageInfo"]
            assert page_info["hasPreviousPage"] is (after is not None)
            if not page_info["hasNextPage"]:
                break
            after = page_info["endCursor"]

        assert pages == 3
        assert names == [f"Actor {i}" for i in range(5)]

    def test_first_page(self, engine):
        _create_movie_with_actors(engine, 3)

        data = _ok(engine.execute(ACTORS_CONNECTION, {"first": 2}))

        connection = data["movies"][0]["actorsConnection"]
        assert len(connection["edges"]) == 2
        assert connection["pageInfo"]["hasNextPage"] is True
        assert connection["pageInfo"]["hasPreviousPage"] is False
        assert connection["pageInfo"]["startCursor"] == connection["edges"][0]["cursor"]

    def test_exact_fit_has_no_next_page(self, engine):
        _create_movie_with_actors(engine, 2)

        data = _ok(engine.execute(ACTORS_CONNECTION, {"first": 2}))

        assert data["movies"][0]["actorsConnection"]["pageInfo"]["hasNextPage"] is False

    def test_first_zero(self, engine):
        _create_movie_with_actors(engine, 1)

        data = _ok(engine.execute(ACTORS_CONNECTION, {"first": 0}))

        connection = data["movies"][0]["actorsConnection"]
        assert connection["edges"] == []
        assert connection["pageInfo"]["hasNextPage"] is True
        assert connection["pageInfo"]["endCursor"] is None

    def test_empty_connection(self, engine):
        _ok(engine.execute('mutation { createMovies(input: [{title: "Heat"}]) { movies { title } } }'))

        data = _ok(engine.execute(ACTORS_CONNECTION, {"first": 2}))

        connection = data["movies"][0]["actorsConnection"]
        assert connection["edges"] == []
        assert connection["pageInfo"] == {
            "hasNextPage": False,
            "hasPreviousPage": False,
            "startCursor": None,
            "endCursor": None,
        }

    def test_cursor_for_other_connection_rejected(self, engine):
        _ok(engine.execute(CREATE_HEAT))
        data = _ok(engine.execute("{ actors { moviesConnection { edges { cursor } } } }"))
        cursor = data["actors"][0]["moviesConnection"]["edges"][0]["cursor"]

        result = engine.execute(ACTORS_CONNECTION, {"after": cursor})

        assert result.data is None
        assert "Invalid cursor" in result.errors[0].message


class TestNodeLookup:
    def test_node_by_id(self, engine):
        data = _ok(engine.execute(CREATE_HEAT))
        movie_id = data["createMovies"]["movies"][0]["id"]

        result = _ok(
            engine.execute(
                "query ($id: ID!) { node(id: $id) { __typename id ... on Movie { title } } }",
                {"id": movie_id},
            )
        )

        assert result["node"] == {"__typename": "Movie", "id": movie_id, "title": "Heat"}

    def test_unknown_id_is_null(self, engine):
        data = _ok(engine.execute('{ node(id: "missing") { id } }'))

        assert data == {"node": None}
