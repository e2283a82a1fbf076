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

"""Base types for language extractors.

An extractor turns a tree-sitter syntax tree into a file-local graph
fragment. Each language plugs in by subclassing ``BaseLanguageExtractor``
and providing a ``GraphWalker`` that knows the language's node kinds;
the graph builder and query engine never look at language names.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)

from codegraph.codebase.fragment import (
    EDGE_CALLS,
    EdgeData,
    Fragment,
    NodeData,
    encode_attributes,
)

if TYPE_CHECKING:
    from tree_sitter import Node, Tree


@dataclass
class LanguageConfig:
    """Identity of a language as seen by the registry.

    Attributes:
        name: Canonical language id (e.g., "go")
        display_name: Human-readable name (e.g., "Go")
        aliases: Alternative ids accepted by the registry
        extensions: File extensions, with leading dot
        tree_sitter_language: Grammar name for the tree-sitter manager
    """

    name: str
    display_name: str
    aliases: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=list)
    tree_sitter_language: Optional[str] = None


@runtime_checkable
class LanguageExtractor(Protocol):
    """Protocol for language extractors.

    Implementations must be deterministic and free of I/O: the same
    (source, tree) pair always yields an identical fragment.
    """

    @property
    def config(self) -> LanguageConfig:
        """Get language configuration."""
        ...

    @property
    def language_id(self) -> str:
        """Canonical language id."""
        ...

    @property
    def extensions(self) -> List[str]:
        """File extensions handled by this extractor."""
        ...

    @property
    def grammar(self) -> str:
        """Grammar name used to obtain a parser."""
        ...

    def extract(self, source: str, tree: "Tree") -> Fragment:
        """Convert a syntax tree into a graph fragment.

        Args:
            source: Source text the tree was parsed from
            tree: Parsed tree-sitter tree

        Returns:
            Fragment with nodes in traversal order and index-based edges
        """
        ...


class ScopeContext:
    """Enclosing scopes during one traversal.

    Tracks the current package, the enclosing type (qualified name and
    fragment index) and the fragment index of the enclosing function or
    method. Scopes are entered with ``enter()`` and restored when the
    block exits.
    """

    def __init__(self) -> None:
        self.package: Optional[str] = None
        self.type_name: Optional[str] = None
        self.type_idx: Optional[int] = None
        self.callable_idx: Optional[int] = None

    @contextmanager
    def enter(self, **scopes: Any) -> Iterator["ScopeContext"]:
        saved = {key: getattr(self, key) for key in scopes}
        for key, value in scopes.items():
            setattr(self, key, value)
        try:
            yield self
        finally:
            for key, value in saved.items():
                setattr(self, key, value)

    def qualify(self, name: str) -> str:
        """Prefix a name with the innermost enclosing type or package."""
        prefix = self.type_name or self.package
        return f"{prefix}.{name}" if prefix else name


class FragmentBuilder:
    """Accumulates nodes and index-based edges for one fragment."""

    def __init__(self) -> None:
        self.nodes: List[NodeData] = []
        self.edges: List[EdgeData] = []

    def add_node(self, node: NodeData) -> int:
        self.nodes.append(node)
        return len(self.nodes) - 1

    def add_edge(self, source_idx: int, target_idx: int, edge_type: str) -> None:
        self.edges.append(EdgeData(source_idx=source_idx, target_idx=target_idx, edge_type=edge_type))

    def build(self) -> Fragment:
        return Fragment(nodes=list(self.nodes), edges=list(self.edges))


class GraphWalker(ABC):
    """Recursive walk over one syntax tree.

    Subclasses map tree-sitter node types to handler methods through
    ``handlers()``; any other node is descended into. A walker is created
    per ``extract`` call, so its state never leaks between files.
    """

    def __init__(self, source: str):
        self._source = source.encode("utf-8")
        self.fragment = FragmentBuilder()
        self.scope = ScopeContext()
        self._dispatch: Dict[str, Callable[["Node"], None]] = self.handlers()

    @abstractmethod
    def handlers(self) -> Dict[str, Callable[["Node"], None]]:
        """Map of tree-sitter node type to handler."""
        ...

    def run(self, root: "Node") -> Fragment:
        self.walk(root)
        return self.fragment.build()

    def walk(self, node: "Node") -> None:
        handler = self._dispatch.get(node.type)
        if handler is not None:
            handler(node)
        else:
            self.walk_children(node)

    def walk_children(self, node: Optional["Node"]) -> None:
        if node is None:
            return
        for child in node.children:
            self.walk(child)

    def text(self, node: "Node") -> str:
        return self._source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def add_node(
        self,
        node_type: str,
        name: str,
        span: "Node",
        qualified_name: Optional[str] = None,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Append a node covering ``span`` and return its local index."""
        start_row, start_col = span.start_point
        end_row, end_col = span.end_point
        return self.fragment.add_node(
            NodeData(
                node_type=node_type,
                name=name,
                qualified_name=qualified_name,
                start_line=start_row + 1,
                start_column=start_col + 1,
                end_line=end_row + 1,
                end_column=end_col + 1,
                attributes=encode_attributes(attributes),
            )
        )

    def add_edge(self, source_idx: int, target_idx: int, edge_type: str) -> None:
        self.fragment.add_edge(source_idx, target_idx, edge_type)

    def link_call(self, call_idx: int) -> None:
        """Attach a call site to its enclosing function or method, if any."""
        if self.scope.callable_idx is not None:
            self.add_edge(self.scope.callable_idx, call_idx, EDGE_CALLS)


class BaseLanguageExtractor(ABC):
    """Base class for extractors with common functionality."""

    def __init__(self):
        self._config: Optional[LanguageConfig] = None

    @property
    def config(self) -> LanguageConfig:
        """Get language configuration."""
        if self._config is None:
            self._config = self._create_config()
        return self._config

    @property
    def language_id(self) -> str:
        return self.config.name

    @property
    def extensions(self) -> List[str]:
        return list(self.config.extensions)

    @property
    def grammar(self) -> str:
        """Grammar name used to obtain a parser for this language."""
        return self.config.tree_sitter_language or self.config.name

    def extract(self, source: str, tree: "Tree") -> Fragment:
        walker = self._create_walker(source)
        return walker.run(tree.root_node)

    @abstractmethod
    def _create_config(self) -> LanguageConfig:
        """Create language configuration."""
        ...

    @abstractmethod
    def _create_walker(self, source: str) -> GraphWalker:
        """Create a fresh walker for one extraction."""
        ...
