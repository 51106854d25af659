"""Fixtures for request translation tests (no database required)."""

from __future__ import annotations

import pytest
from graphql import parse

from relgraph.translate import RequestParser, Translator


@pytest.fixture
def parser(served):
    return RequestParser(served.augmented.graphql_schema, served.descriptors)


@pytest.fixture
def translator(served):
    return Translator(served.descriptors, served.settings, served.codec)


@pytest.fixture
def parse_operation(parser):
    """Parse a GraphQL document into selection IR."""

    def _parse(query, variables=None, operation_name=None):
        return parser.parse(parse(query), variables or {}, operation_name)

    return _parse


@pytest.fixture
def compile_field(parse_operation, translator):
    """Compile the first root field of a GraphQL document."""

    def _compile(query, variables=None):
        operation = parse_operation(query, variables)
        return translator.compile(operation.fields[0])

    return _compile
