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

from pathlib import Path
from typing import Union

from codegraph.codebase.graph.builder import GraphBuilder
from codegraph.codebase.graph.protocol import (
    EdgeRecord,
    FileRecord,
    GraphStoreProtocol,
    NodeRecord,
    ProjectRecord,
    ProjectStatus,
)
from codegraph.codebase.graph.sqlite_store import SqliteGraphStore


def create_graph_store(db_path: Union[str, Path] = ":memory:") -> SqliteGraphStore:
    """Open a SQLite graph store with its schema in place."""
    store = SqliteGraphStore(db_path)
    store.init_schema()
    return store


__all__ = [
    "EdgeRecord",
    "FileRecord",
    "GraphBuilder",
    "GraphStoreProtocol",
    "NodeRecord",
    "ProjectRecord",
    "ProjectStatus",
    "SqliteGraphStore",
    "create_graph_store",
]
