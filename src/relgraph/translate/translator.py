"""Query/Mutation Translator.

Single entry point mapping each root field of a parsed operation to one
``CompiledStatement``. The translator holds only immutable inputs (descriptors,
settings and the cursor codec), so it is safe to share across concurrent
requests; all per-request state lives in the ``CypherContext`` of each
compilation.
"""

from __future__ import annotations

import logging
from typing import List

from relgraph.pagination import CursorCodec
from relgraph.schema.descriptors import DescriptorSet
from relgraph.settings import RelGraphSettings
from relgraph.translate.exceptions import QueryBuildError
from relgraph.translate.mutation import MutationCompiler
from relgraph.translate.read import ReadCompiler
from relgraph.translate.selection import (
    CreateMutation,
    ListRead,
    NodeLookup,
    Operation,
    RootField,
    UpdateMutation,
)
from relgraph.translate.statement import CompiledStatement

logger = logging.getLogger(__name__)


class Translator:
    """Compiles root fields into Cypher statements.

    Example:
        >>> translator = Translator(descriptors, RelGraphSettings(), CursorCodec())
        >>> statements = translator.compile_operation(operation)
    """

    def __init__(
        self,
        descriptors: DescriptorSet,
        settings: RelGraphSettings,
        codec: CursorCodec,
    ):
        self._reads = ReadCompiler(descriptors, settings, codec)
        self._mutations = MutationCompiler(descriptors, settings, codec)

    def compile(self, field: RootField) -> CompiledStatement:
        """Compile one root field.

        Raises:
            RequestError: If the field's arguments cannot be compiled
        """
        if isinstance(field, ListRead):
            statement = self._reads.compile_list(field)
        elif isinstance(field, NodeLookup):
            statement = self._reads.compile_node(field)
        elif isinstance(field, CreateMutation):
            statement = self._mutations.compile_create(field)
        elif isinstance(field, UpdateMutation):
            statement = self._mutations.compile_update(field)
        else:
            raise QueryBuildError(f"cannot compile {type(field).__name__}", field.alias)

        logger.debug(f"Compiled {field.alias}:\n{statement.cypher}\nparams={statement.params}")
        return statement

    def compile_operation(self, operation: Operation) -> List[CompiledStatement]:
        """Compile every database-backed root field of an operation, in order."""
        return [
            self.compile(field)
            for field in operation.fields
            if isinstance(field, (ListRead, NodeLookup, CreateMutation, UpdateMutation))
        ]
