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

"""Graph store protocol and record types.

The graph builder and query engine depend only on ``GraphStoreProtocol``;
``SqliteGraphStore`` is the bundled implementation.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Iterable, List, Optional, Protocol, runtime_checkable

from pydantic import BaseModel


class ProjectRecord(BaseModel):
    id: int
    name: str
    root_path: str
    created_at: datetime
    updated_at: datetime


class FileRecord(BaseModel):
    id: int
    project_id: int
    path: str  # relative to the project root, '/'-separated
    language: str
    content_hash: str
    parsed_at: datetime


class NodeRecord(BaseModel):
    """Persisted node. ``file_path`` is filled in by lookups that join files."""

    id: int
    file_id: int
    node_type: str
    name: str
    qualified_name: Optional[str] = None
    start_line: int
    start_column: int
    end_line: int
    end_column: int
    attributes: Optional[str] = None
    file_path: Optional[str] = None


class EdgeRecord(BaseModel):
    id: int
    source_id: int
    target_id: int
    edge_type: str
    attributes: Optional[str] = None


class ProjectStatus(BaseModel):
    project_id: int
    name: str
    root_path: str
    file_count: int
    node_count: int
    edge_count: int
    status: str = "ready"
    last_updated: datetime


@runtime_checkable
class GraphStoreProtocol(Protocol):
    """Interface for pluggable graph stores.

    Mutations that must be atomic are grouped with ``transaction()``.
    Lookups return ``None`` or an empty list when nothing matches.
    """

    def init_schema(self) -> None: ...

    def transaction(self) -> AbstractContextManager: ...

    def close(self) -> None: ...

    # Projects

    def get_or_create_project(self, name: str, root_path: str) -> ProjectRecord: ...

    def get_project(self, project_id: int) -> Optional[ProjectRecord]: ...

    def get_project_by_path(self, root_path: str) -> Optional[ProjectRecord]: ...

    def get_project_by_name(self, name: str) -> Optional[ProjectRecord]: ...

    def list_projects(self) -> List[ProjectRecord]: ...

    def update_project_timestamp(self, project_id: int) -> None: ...

    def get_project_status(self, project_id: int) -> Optional[ProjectStatus]: ...

    # Files

    def insert_file(
        self, project_id: int, path: str, language: str, content_hash: str
    ) -> int: ...

    def get_file(self, file_id: int) -> Optional[FileRecord]: ...

    def get_file_by_path(self, project_id: int, path: str) -> Optional[FileRecord]: ...

    def list_files(self, project_id: int) -> List[FileRecord]: ...

    def delete_file_data(self, file_id: int) -> None:
        """Delete a file with its nodes and every edge touching them."""
        ...

    # Nodes and edges

    def insert_node(
        self,
        file_id: int,
        node_type: str,
        name: str,
        qualified_name: Optional[str],
        start_line: int,
        start_column: int,
        end_line: int,
        end_column: int,
        attributes: Optional[str] = None,
    ) -> int: ...

    def insert_edge(
        self, source_id: int, target_id: int, edge_type: str, attributes: Optional[str] = None
    ) -> int: ...

    def get_node(self, node_id: int) -> Optional[NodeRecord]: ...

    def list_file_nodes(self, file_id: int) -> List[NodeRecord]: ...

    def list_file_edges(self, file_id: int) -> List[EdgeRecord]: ...

    def list_project_edges(
        self, project_id: int, edge_type: Optional[str] = None
    ) -> List[EdgeRecord]: ...

    # Lookups

    def find_node_at_position(
        self, project_id: int, path: str, line: int, column: int
    ) -> Optional[NodeRecord]: ...

    def find_symbol_by_name(
        self, project_id: int, symbol: str, exclude_kinds: Iterable[str] = ()
    ) -> Optional[NodeRecord]: ...

    def find_definition_by_name(
        self, project_id: int, symbol: str, kinds: Iterable[str]
    ) -> Optional[NodeRecord]: ...

    def search_symbols(
        self, project_id: int, query: str, node_type: Optional[str] = None, limit: int = 50
    ) -> List[NodeRecord]: ...

    def get_unresolved_references(self, project_id: int) -> List[NodeRecord]: ...

    def find_reference_target(
        self, project_id: int, name: str, kinds: Iterable[str]
    ) -> Optional[NodeRecord]: ...

    def find_source_nodes(self, node_id: int, edge_type: str) -> List[NodeRecord]:
        """Nodes with an edge of ``edge_type`` into ``node_id``."""
        ...

    def find_target_nodes(self, node_id: int, edge_type: str) -> List[NodeRecord]:
        """Nodes that ``node_id`` has an edge of ``edge_type`` out to."""
        ...
