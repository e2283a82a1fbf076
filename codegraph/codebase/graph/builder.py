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

"""Graph builder: persists fragments and resolves cross-references.

``store_file_graph`` commits one file's fragment, translating fragment-local
node positions into persisted ids as each node is inserted. Content hashes
make the operation idempotent: an unchanged file is left untouched, a
changed one is replaced wholesale.

``build_cross_references`` links every unresolved ``reference`` node in a
project to the first same-named definition, by name only.
"""

import logging
import threading
from collections import defaultdict
from typing import Dict

from codegraph.codebase.fragment import DEFINITION_KINDS, EDGE_REFERENCES, Fragment
from codegraph.codebase.graph.protocol import GraphStoreProtocol, ProjectRecord

logger = logging.getLogger(__name__)


class GraphBuilder:
    """Writes fragments into a graph store.

    Writes for the same project are serialized with a per-project lock,
    which also keeps the cross-reference pass from running while files of
    that project are being stored. The store transaction makes each file
    replacement atomic.
    """

    def __init__(self, store: GraphStoreProtocol):
        self.store = store
        self.last_dropped_edges = 0
        self._locks: Dict[int, threading.RLock] = defaultdict(threading.RLock)
        self._locks_guard = threading.Lock()

    def project_lock(self, project_id: int) -> threading.RLock:
        with self._locks_guard:
            return self._locks[project_id]

    def create_or_get_project(self, name: str, root_path: str) -> ProjectRecord:
        return self.store.get_or_create_project(name, root_path)

    def store_file_graph(
        self, project_id: int, path: str, language: str, fragment: Fragment
    ) -> int:
        """Persist a file's fragment.

        Args:
            project_id: Owning project
            path: File path relative to the project root
            language: Language id of the extractor that produced the fragment
            fragment: Extracted nodes and index-based edges

        Returns:
            Id of the stored file (the existing id when content is unchanged)

        Raises:
            PersistenceError: If any store operation fails; nothing is committed
        """
        content_hash = fragment.content_hash or ""

        with self.project_lock(project_id), self.store.transaction():
            existing = self.store.get_file_by_path(project_id, path)
            if existing is not None:
                if existing.content_hash == content_hash:
                    logger.debug(f"Unchanged, skipping: {path}")
                    self.last_dropped_edges = 0
                    return existing.id
                logger.debug(f"Content changed, replacing: {path}")
                self.store.delete_file_data(existing.id)

            file_id = self.store.insert_file(project_id, path, language, content_hash)

            id_map: Dict[int, int] = {}
            for idx, node in enumerate(fragment.nodes):
                id_map[idx] = self.store.insert_node(
                    file_id,
                    node.node_type,
                    node.name,
                    node.qualified_name,
                    node.start_line,
                    node.start_column,
                    node.end_line,
                    node.end_column,
                    node.attributes,
                )

            dropped = 0
            for edge in fragment.edges:
                source_id = id_map.get(edge.source_idx)
                target_id = id_map.get(edge.target_idx)
                if source_id is None or target_id is None:
                    dropped += 1
                    continue
                self.store.insert_edge(source_id, target_id, edge.edge_type, edge.attributes)

        self.last_dropped_edges = dropped
        if dropped:
            logger.warning(f"Dropped {dropped} edge(s) with out-of-range endpoints in {path}")
        logger.debug(
            f"Stored {path}: {len(fragment.nodes)} nodes, "
            f"{len(fragment.edges) - dropped} edges (file_id={file_id})"
        )
        return file_id

    def remove_file(self, project_id: int, path: str) -> bool:
        """Delete a stored file and everything extracted from it.

        Returns:
            True if the file was present
        """
        with self.project_lock(project_id), self.store.transaction():
            existing = self.store.get_file_by_path(project_id, path)
            if existing is None:
                return False
            self.store.delete_file_data(existing.id)
        logger.debug(f"Removed {path} from project {project_id}")
        return True

    def build_cross_references(self, project_id: int) -> int:
        """Resolve unresolved reference nodes by name across the project.

        Already-resolved references are excluded up front, so running the
        pass again creates no duplicate edges.

        Returns:
            Number of ``references`` edges created
        """
        resolved = 0
        with self.project_lock(project_id), self.store.transaction():
            unresolved = self.store.get_unresolved_references(project_id)
            for ref in unresolved:
                target = self.store.find_reference_target(project_id, ref.name, DEFINITION_KINDS)
                if target is None:
                    continue
                self.store.insert_edge(ref.id, target.id, EDGE_REFERENCES)
                resolved += 1
            self.store.update_project_timestamp(project_id)

        logger.info(
            f"Cross-reference pass for project {project_id}: "
            f"{resolved}/{len(unresolved)} references resolved"
        )
        return resolved
