# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Query engine over the persisted code graph.

Answers navigation queries:
- find_definition / find_references at a file position
- get_callgraph around a named symbol (one hop)
- search_symbols by case-sensitive substring
- name-based wrappers for callers that only have a symbol name

Lookups that match nothing return empty or "not found" results. The one
exception is the call-graph center: an unknown symbol raises
``SymbolNotFoundError``.
"""

import logging
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from codegraph.codebase.fragment import (
    DEFINITION_KINDS,
    EDGE_CALLS,
    EDGE_REFERENCES,
    NAMESPACE_KINDS,
    NODE_CALL,
)
from codegraph.codebase.graph.protocol import GraphStoreProtocol, NodeRecord
from codegraph.errors import InvalidQueryError, SymbolNotFoundError

logger = logging.getLogger(__name__)

DIRECTIONS = ("callers", "callees", "both")


class SymbolLocation(BaseModel):
    """Where a symbol lives in the source."""

    file: str
    line: int
    column: int
    end_line: int
    end_column: int
    node_type: str
    name: str
    qualified_name: Optional[str] = None
    context: Optional[str] = None  # source line at ``line``, when requested


class SymbolInfo(BaseModel):
    name: str
    qualified_name: Optional[str] = None
    node_type: str
    file: str
    line: int
    column: int


class DefinitionResult(BaseModel):
    found: bool
    definition: Optional[SymbolLocation] = None


class ReferencesResult(BaseModel):
    count: int = 0
    references: List[SymbolLocation] = Field(default_factory=list)


class CallGraphResult(BaseModel):
    center: SymbolInfo
    callers: List[SymbolInfo] = Field(default_factory=list)
    callees: List[SymbolInfo] = Field(default_factory=list)


class SymbolSearchResult(BaseModel):
    count: int = 0
    symbols: List[SymbolInfo] = Field(default_factory=list)


def _symbol_info(node: NodeRecord) -> SymbolInfo:
    return SymbolInfo(
        name=node.name,
        qualified_name=node.qualified_name,
        node_type=node.node_type,
        file=node.file_path or "",
        line=node.start_line,
        column=node.start_column,
    )


class QueryEngine:
    """Read-only queries against a graph store.

    Args:
        store: Graph store to read from
        include_context: Fill ``SymbolLocation.context`` with the source
            line, read from the project root on disk
    """

    def __init__(self, store: GraphStoreProtocol, include_context: bool = False):
        self.store = store
        self.include_context = include_context

    # ------------------------------------------------------------------
    # Position-based queries
    # ------------------------------------------------------------------

    def find_definition(self, project_id: int, file: str, line: int, column: int) -> DefinitionResult:
        """Resolve the symbol at a position to its definition.

        If the innermost node at the position has been linked to a
        definition, that definition is returned; otherwise the node itself
        (clicking directly on a definition).
        """
        node = self._node_at(project_id, file, line, column)
        if node is None:
            return DefinitionResult(found=False)

        targets = self.store.find_target_nodes(node.id, EDGE_REFERENCES)
        definition = targets[0] if targets else node
        return DefinitionResult(found=True, definition=self._location(project_id, definition))

    def find_references(self, project_id: int, file: str, line: int, column: int) -> ReferencesResult:
        """All nodes linked by a ``references`` edge to the node at a position."""
        node = self._node_at(project_id, file, line, column)
        if node is None:
            return ReferencesResult()

        sources = self.store.find_source_nodes(node.id, EDGE_REFERENCES)
        references = [self._location(project_id, n) for n in sources]
        return ReferencesResult(count=len(references), references=references)

    # ------------------------------------------------------------------
    # Name-based queries
    # ------------------------------------------------------------------

    def get_callgraph(
        self, project_id: int, symbol: str, depth: int = 1, direction: str = "both"
    ) -> CallGraphResult:
        """Callers and/or callees of a symbol, one hop deep.

        Args:
            project_id: Project to search
            symbol: Name or qualified name; the first matching node that is
                not a package or import declaration is used
            depth: 0 returns no neighbours; any positive depth returns one hop
            direction: "callers", "callees" or "both"

        Raises:
            SymbolNotFoundError: If no node matches ``symbol``
            InvalidQueryError: If depth is negative or direction unknown
        """
        if direction not in DIRECTIONS:
            raise InvalidQueryError(
                f"Invalid direction '{direction}'. Must be one of: {', '.join(DIRECTIONS)}"
            )
        if depth < 0:
            raise InvalidQueryError(f"Depth must be non-negative, got {depth}")

        node = self.store.find_symbol_by_name(project_id, symbol, NAMESPACE_KINDS)
        if node is None:
            raise SymbolNotFoundError(symbol)

        result = CallGraphResult(center=_symbol_info(node))
        if depth == 0:
            return result

        if direction in ("callers", "both"):
            result.callers = [_symbol_info(n) for n in self.store.find_source_nodes(node.id, EDGE_CALLS)]
        if direction in ("callees", "both"):
            result.callees = [_symbol_info(n) for n in self.store.find_target_nodes(node.id, EDGE_CALLS)]
        return result

    def search_symbols(
        self,
        project_id: int,
        query: str,
        symbol_type: Optional[str] = None,
        limit: int = 50,
    ) -> SymbolSearchResult:
        """Case-sensitive substring search over names and qualified names.

        Raises:
            InvalidQueryError: If limit is negative
        """
        if limit < 0:
            raise InvalidQueryError(f"Limit must be non-negative, got {limit}")
        nodes = self.store.search_symbols(project_id, query, node_type=symbol_type, limit=limit)
        symbols = [_symbol_info(n) for n in nodes]
        return SymbolSearchResult(count=len(symbols), symbols=symbols)

    def find_definition_by_symbol(self, project_id: int, symbol: str) -> DefinitionResult:
        """First definition-kind node matching a bare or qualified name."""
        node = self.store.find_definition_by_name(project_id, symbol, DEFINITION_KINDS)
        if node is None:
            return DefinitionResult(found=False)
        return DefinitionResult(found=True, definition=self._location(project_id, node))

    def find_references_by_symbol(
        self, project_id: int, symbol: str, limit: int = 100
    ) -> ReferencesResult:
        """Places that use a symbol, by name.

        Collects the nodes with a ``calls`` edge into the first node
        matching ``symbol``, then call sites named exactly ``symbol``,
        stopping at ``limit`` results.

        Raises:
            InvalidQueryError: If limit is negative
        """
        if limit < 0:
            raise InvalidQueryError(f"Limit must be non-negative, got {limit}")

        found: Dict[int, NodeRecord] = {}
        node = self.store.find_symbol_by_name(project_id, symbol, NAMESPACE_KINDS)
        if node is not None:
            for caller in self.store.find_source_nodes(node.id, EDGE_CALLS):
                found.setdefault(caller.id, caller)

        for call in self.store.search_symbols(project_id, symbol, node_type=NODE_CALL, limit=limit):
            if call.name == symbol:
                found.setdefault(call.id, call)

        references = [self._location(project_id, n) for n in list(found.values())[:limit]]
        return ReferencesResult(count=len(references), references=references)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _node_at(self, project_id: int, file: str, line: int, column: int) -> Optional[NodeRecord]:
        path = self.normalize_path(project_id, file)
        node = self.store.find_node_at_position(project_id, path, line, column)
        if node is None:
            logger.debug(f"No node at {path}:{line}:{column} in project {project_id}")
        return node

    def normalize_path(self, project_id: int, file: str) -> str:
        """Map a query path onto the stored form (relative, '/'-separated).

        Absolute paths under the project root are made relative; other
        paths are returned with separators normalized.
        """
        path = Path(file)
        if path.is_absolute():
            project = self.store.get_project(project_id)
            if project is not None:
                try:
                    return path.resolve().relative_to(Path(project.root_path)).as_posix()
                except ValueError:
                    pass
            return path.as_posix()
        return PurePosixPath(file.replace("\\", "/")).as_posix()

    def _location(self, project_id: int, node: NodeRecord) -> SymbolLocation:
        file = node.file_path or ""
        return SymbolLocation(
            file=file,
            line=node.start_line,
            column=node.start_column,
            end_line=node.end_line,
            end_column=node.end_column,
            node_type=node.node_type,
            name=node.name,
            qualified_name=node.qualified_name,
            context=self._context(project_id, file, node.start_line) if self.include_context else None,
        )

    def _context(self, project_id: int, file: str, line: int) -> Optional[str]:
        project = self.store.get_project(project_id)
        if project is None or not file:
            return None
        try:
            with open(Path(project.root_path) / file, "r", encoding="utf-8", errors="replace") as f:
                for number, text in enumerate(f, start=1):
                    if number == line:
                        return text.strip()
        except OSError as e:
            logger.debug(f"Could not read context for {file}:{line}: {e}")
        return None
