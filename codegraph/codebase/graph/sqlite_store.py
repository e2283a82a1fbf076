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

"""SQLite-backed graph store.

Stores projects, files, nodes and edges in a single SQLite database.
Deleting a file cascades to its nodes, and deleting a node cascades to
every edge that touches it, so a replaced file leaves nothing behind.

Usage:
    store = SqliteGraphStore("codegraph.db")
    store.init_schema()

    with store.transaction():
        file_id = store.insert_file(project.id, "main.go", "go", content_hash)
        node_id = store.insert_node(file_id, "function", "main", "main.main", 3, 1, 5, 2)

    node = store.find_node_at_position(project.id, "main.go", 4, 5)
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Union

from codegraph.codebase.graph.protocol import (
    EdgeRecord,
    FileRecord,
    NodeRecord,
    ProjectRecord,
    ProjectStatus,
)
from codegraph.errors import PersistenceError

logger = logging.getLogger(__name__)

SCHEMA = """
    -- Projects: one per indexed root directory
    CREATE TABLE IF NOT EXISTS projects (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        root_path TEXT NOT NULL UNIQUE,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    -- Files: unique per (project, path)
    CREATE TABLE IF NOT EXISTS files (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
        path TEXT NOT NULL,
        language TEXT NOT NULL,
        content_hash TEXT NOT NULL,
        parsed_at TEXT NOT NULL,
        UNIQUE (project_id, path)
    );

    -- Nodes: symbols and syntactic units, owned by one file
    CREATE TABLE IF NOT EXISTS nodes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        file_id INTEGER NOT NULL REFERENCES files(id) ON DELETE CASCADE,
        node_type TEXT NOT NULL,
        name TEXT NOT NULL,
        qualified_name TEXT,
        start_line INTEGER NOT NULL,
        start_column INTEGER NOT NULL,
        end_line INTEGER NOT NULL,
        end_column INTEGER NOT NULL,
        attributes TEXT
    );

    -- Edges: typed, directed
    CREATE TABLE IF NOT EXISTS edges (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source_id INTEGER NOT NULL REFERENCES nodes(id) ON DELETE CASCADE,
        target_id INTEGER NOT NULL REFERENCES nodes(id) ON DELETE CASCADE,
        edge_type TEXT NOT NULL,
        attributes TEXT
    );

    CREATE INDEX IF NOT EXISTS idx_files_project ON files(project_id);
    CREATE INDEX IF NOT EXISTS idx_nodes_file ON nodes(file_id);
    CREATE INDEX IF NOT EXISTS idx_nodes_name ON nodes(name);
    CREATE INDEX IF NOT EXISTS idx_nodes_qualified_name ON nodes(qualified_name);
    CREATE INDEX IF NOT EXISTS idx_nodes_type ON nodes(node_type);
    CREATE INDEX IF NOT EXISTS idx_nodes_position ON nodes(file_id, start_line, end_line);
    CREATE INDEX IF NOT EXISTS idx_edges_source ON edges(source_id, edge_type);
    CREATE INDEX IF NOT EXISTS idx_edges_target ON edges(target_id, edge_type);
"""

NODE_COLUMNS = (
    "n.id, n.file_id, n.node_type, n.name, n.qualified_name, "
    "n.start_line, n.start_column, n.end_line, n.end_column, n.attributes, "
    "f.path AS file_path"
)
PROJECT_COLUMNS = "id, name, root_path, created_at, updated_at"
FILE_COLUMNS = "id, project_id, path, language, content_hash, parsed_at"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _placeholders(values: Sequence[Any]) -> str:
    return ", ".join("?" for _ in values)


class SqliteGraphStore:
    """Graph store over SQLite.

    Writes go through one connection shared between threads and guarded by
    a re-entrant lock; ``transaction()`` holds that lock until commit or
    rollback, so a transaction is never interleaved with statements from
    another thread.

    A file database also gets a read connection under WAL. Reads from
    threads outside the running transaction use it and see the last
    committed state without waiting for the writer. Reads issued inside a
    transaction go through the write connection and see its uncommitted
    rows. An in-memory database is private to one connection, so it reads
    through the write connection.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        """Open (or create) the database.

        Args:
            db_path: Database file, or ":memory:" for a private in-memory store

        Raises:
            PersistenceError: If the database cannot be opened
        """
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()
        self._read_lock = threading.Lock()
        self._tx_depth = 0
        self._tx_owner: Optional[int] = None
        self._read_conn: Optional[sqlite3.Connection] = None
        try:
            self._conn = self._connect()
            self._conn.execute("PRAGMA foreign_keys = ON")
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode = WAL")
                self._read_conn = self._connect()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to open database {self.db_path}: {e}") from e
        logger.debug(f"Opened graph store at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    def init_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        with self._lock:
            try:
                self._conn.executescript(SCHEMA)
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to initialize schema: {e}") from e

    def close(self) -> None:
        if self._read_conn is not None:
            with self._read_lock:
                self._read_conn.close()
        with self._lock:
            self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator["SqliteGraphStore"]:
        """Run a block of store operations atomically.

        Nested calls join the outermost transaction. Any exception rolls
        the whole transaction back and is re-raised.
        """
        with self._lock:
            if self._tx_depth > 0:
                self._tx_depth += 1
                try:
                    yield self
                finally:
                    self._tx_depth -= 1
                return

            self._execute("BEGIN IMMEDIATE")
            self._tx_depth = 1
            self._tx_owner = threading.get_ident()
            try:
                yield self
            except BaseException:
                self._tx_depth = 0
                self._tx_owner = None
                self._rollback()
                raise
            self._tx_depth = 0
            self._tx_owner = None
            self._execute("COMMIT")

    def _rollback(self) -> None:
        try:
            self._conn.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.warning(f"Rollback failed: {e}")

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                return self._conn.execute(sql, params)
            except sqlite3.Error as e:
                raise PersistenceError(f"Database error: {e}", {"sql": sql.split()[0]}) from e

    def _reads_from_writer(self) -> bool:
        return self._read_conn is None or self._tx_owner == threading.get_ident()

    def _fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        if self._reads_from_writer():
            with self._lock:
                return self._execute(sql, params).fetchone()
        # Drain the cursor so no statement keeps a stale read snapshot open
        rows = self._fetchall(sql, params)
        return rows[0] if rows else None

    def _fetchall(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        if self._reads_from_writer():
            with self._lock:
                return self._execute(sql, params).fetchall()
        with self._read_lock:
            return self._read(sql, params).fetchall()

    def _read(self, sql: str, params: Sequence[Any]) -> sqlite3.Cursor:
        try:
            return self._read_conn.execute(sql, params)
        except sqlite3.Error as e:
            raise PersistenceError(f"Database error: {e}", {"sql": sql.split()[0]}) from e

    def _nodes(self, sql: str, params: Sequence[Any] = ()) -> List[NodeRecord]:
        return [NodeRecord.model_validate(dict(row)) for row in self._fetchall(sql, params)]

    def _node(self, sql: str, params: Sequence[Any] = ()) -> Optional[NodeRecord]:
        row = self._fetchone(sql, params)
        return NodeRecord.model_validate(dict(row)) if row else None

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def insert_project(self, name: str, root_path: str) -> ProjectRecord:
        now = _now()
        cursor = self._execute(
            "INSERT INTO projects (name, root_path, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (name, root_path, now, now),
        )
        logger.info(f"Created project '{name}' at {root_path}")
        return ProjectRecord(
            id=cursor.lastrowid, name=name, root_path=root_path, created_at=now, updated_at=now
        )

    def get_or_create_project(self, name: str, root_path: str) -> ProjectRecord:
        """Look up a project by root path, creating it on first encounter."""
        with self.transaction():
            existing = self.get_project_by_path(root_path)
            if existing is not None:
                return existing
            return self.insert_project(name, root_path)

    def get_project(self, project_id: int) -> Optional[ProjectRecord]:
        row = self._fetchone(f"SELECT {PROJECT_COLUMNS} FROM projects WHERE id = ?", (project_id,))
        return ProjectRecord.model_validate(dict(row)) if row else None

    def get_project_by_path(self, root_path: str) -> Optional[ProjectRecord]:
        row = self._fetchone(
            f"SELECT {PROJECT_COLUMNS} FROM projects WHERE root_path = ?", (root_path,)
        )
        return ProjectRecord.model_validate(dict(row)) if row else None

    def get_project_by_name(self, name: str) -> Optional[ProjectRecord]:
        """First project (lowest id) with the given name."""
        row = self._fetchone(
            f"SELECT {PROJECT_COLUMNS} FROM projects WHERE name = ? ORDER BY id LIMIT 1", (name,)
        )
        return ProjectRecord.model_validate(dict(row)) if row else None

    def list_projects(self) -> List[ProjectRecord]:
        rows = self._fetchall(f"SELECT {PROJECT_COLUMNS} FROM projects ORDER BY name, id")
        return [ProjectRecord.model_validate(dict(row)) for row in rows]

    def update_project_timestamp(self, project_id: int) -> None:
        self._execute("UPDATE projects SET updated_at = ? WHERE id = ?", (_now(), project_id))

    def get_project_status(self, project_id: int) -> Optional[ProjectStatus]:
        project = self.get_project(project_id)
        if project is None:
            return None

        counts = self._fetchone(
            """SELECT
                   (SELECT COUNT(*) FROM files WHERE project_id = ?),
                   (SELECT COUNT(*) FROM nodes n JOIN files f ON n.file_id = f.id
                    WHERE f.project_id = ?),
                   (SELECT COUNT(*) FROM edges e JOIN nodes n ON e.source_id = n.id
                    JOIN files f ON n.file_id = f.id WHERE f.project_id = ?)""",
            (project_id, project_id, project_id),
        )
        file_count, node_count, edge_count = counts[0], counts[1], counts[2]

        return ProjectStatus(
            project_id=project.id,
            name=project.name,
            root_path=project.root_path,
            file_count=file_count,
            node_count=node_count,
            edge_count=edge_count,
            last_updated=project.updated_at,
        )

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def insert_file(self, project_id: int, path: str, language: str, content_hash: str) -> int:
        cursor = self._execute(
            "INSERT INTO files (project_id, path, language, content_hash, parsed_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (project_id, path, language, content_hash, _now()),
        )
        return cursor.lastrowid

    def get_file(self, file_id: int) -> Optional[FileRecord]:
        row = self._fetchone(f"SELECT {FILE_COLUMNS} FROM files WHERE id = ?", (file_id,))
        return FileRecord.model_validate(dict(row)) if row else None

    def get_file_by_path(self, project_id: int, path: str) -> Optional[FileRecord]:
        row = self._fetchone(
            f"SELECT {FILE_COLUMNS} FROM files WHERE project_id = ? AND path = ?",
            (project_id, path),
        )
        return FileRecord.model_validate(dict(row)) if row else None

    def list_files(self, project_id: int) -> List[FileRecord]:
        rows = self._fetchall(
            f"SELECT {FILE_COLUMNS} FROM files WHERE project_id = ? ORDER BY path", (project_id,)
        )
        return [FileRecord.model_validate(dict(row)) for row in rows]

    def delete_file_data(self, file_id: int) -> None:
        """Delete all data associated with a file.

        Edges go with their nodes through ON DELETE CASCADE.
        """
        with self.transaction():
            self._execute("DELETE FROM nodes WHERE file_id = ?", (file_id,))
            self._execute("DELETE FROM files WHERE id = ?", (file_id,))

    # ------------------------------------------------------------------
    # Nodes and edges
    # ------------------------------------------------------------------

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
    ) -> int:
        cursor = self._execute(
            """INSERT INTO nodes
               (file_id, node_type, name, qualified_name, start_line, start_column,
                end_line, end_column, attributes)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                file_id,
                node_type,
                name,
                qualified_name,
                start_line,
                start_column,
                end_line,
                end_column,
                attributes,
            ),
        )
        return cursor.lastrowid

    def insert_edge(
        self, source_id: int, target_id: int, edge_type: str, attributes: Optional[str] = None
    ) -> int:
        cursor = self._execute(
            "INSERT INTO edges (source_id, target_id, edge_type, attributes) VALUES (?, ?, ?, ?)",
            (source_id, target_id, edge_type, attributes),
        )
        return cursor.lastrowid

    def get_node(self, node_id: int) -> Optional[NodeRecord]:
        return self._node(
            f"SELECT {NODE_COLUMNS} FROM nodes n JOIN files f ON n.file_id = f.id WHERE n.id = ?",
            (node_id,),
        )

    def list_file_nodes(self, file_id: int) -> List[NodeRecord]:
        return self._nodes(
            f"SELECT {NODE_COLUMNS} FROM nodes n JOIN files f ON n.file_id = f.id "
            "WHERE n.file_id = ? ORDER BY n.id",
            (file_id,),
        )

    def list_file_edges(self, file_id: int) -> List[EdgeRecord]:
        """Edges whose source node belongs to the file."""
        rows = self._fetchall(
            "SELECT e.id, e.source_id, e.target_id, e.edge_type, e.attributes "
            "FROM edges e JOIN nodes n ON e.source_id = n.id "
            "WHERE n.file_id = ? ORDER BY e.id",
            (file_id,),
        )
        return [EdgeRecord.model_validate(dict(row)) for row in rows]

    def list_project_edges(self, project_id: int, edge_type: Optional[str] = None) -> List[EdgeRecord]:
        sql = (
            "SELECT e.id, e.source_id, e.target_id, e.edge_type, e.attributes "
            "FROM edges e JOIN nodes n ON e.source_id = n.id JOIN files f ON n.file_id = f.id "
            "WHERE f.project_id = ?"
        )
        params: List[Any] = [project_id]
        if edge_type is not None:
            sql += " AND e.edge_type = ?"
            params.append(edge_type)
        rows = self._fetchall(sql + " ORDER BY e.id", params)
        return [EdgeRecord.model_validate(dict(row)) for row in rows]

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_node_at_position(
        self, project_id: int, path: str, line: int, column: int
    ) -> Optional[NodeRecord]:
        """Innermost node whose span contains (line, column).

        Spans are inclusive; on the first line the column must be at or
        after the start column, on the last line at or before the end column.
        """
        return self._node(
            f"""SELECT {NODE_COLUMNS}
                FROM nodes n
                JOIN files f ON n.file_id = f.id
                WHERE f.project_id = ? AND f.path = ?
                  AND n.start_line <= ? AND n.end_line >= ?
                  AND (n.start_line < ? OR n.start_column <= ?)
                  AND (n.end_line > ? OR n.end_column >= ?)
                ORDER BY (n.end_line - n.start_line), (n.end_column - n.start_column), n.id
                LIMIT 1""",
            (project_id, path, line, line, line, column, line, column),
        )

    def find_symbol_by_name(
        self, project_id: int, symbol: str, exclude_kinds: Iterable[str] = ()
    ) -> Optional[NodeRecord]:
        """First node whose name or qualified name equals ``symbol``.

        Nodes whose type is in ``exclude_kinds`` are never matched.
        """
        exclude_kinds = list(exclude_kinds)
        sql = f"""SELECT {NODE_COLUMNS}
                  FROM nodes n
                  JOIN files f ON n.file_id = f.id
                  WHERE f.project_id = ? AND (n.name = ? OR n.qualified_name = ?)"""
        params: List[Any] = [project_id, symbol, symbol]
        if exclude_kinds:
            sql += f" AND n.node_type NOT IN ({_placeholders(exclude_kinds)})"
            params.extend(exclude_kinds)
        sql += " ORDER BY n.id LIMIT 1"
        return self._node(sql, params)

    def find_definition_by_name(
        self, project_id: int, symbol: str, kinds: Iterable[str]
    ) -> Optional[NodeRecord]:
        """First definition-kind node named ``symbol``.

        Matches the simple name, the full qualified name, or a qualified
        name ending in ``.symbol``.
        """
        kinds = list(kinds)
        suffix = "." + symbol
        return self._node(
            f"""SELECT {NODE_COLUMNS}
                FROM nodes n
                JOIN files f ON n.file_id = f.id
                WHERE f.project_id = ?
                  AND n.node_type IN ({_placeholders(kinds)})
                  AND (n.name = ? OR n.qualified_name = ?
                       OR substr(n.qualified_name, -length(?)) = ?)
                ORDER BY n.id
                LIMIT 1""",
            (project_id, *kinds, symbol, symbol, suffix, suffix),
        )

    def search_symbols(
        self, project_id: int, query: str, node_type: Optional[str] = None, limit: int = 50
    ) -> List[NodeRecord]:
        """Case-sensitive substring search over name and qualified name."""
        sql = f"""SELECT {NODE_COLUMNS}
                  FROM nodes n
                  JOIN files f ON n.file_id = f.id
                  WHERE f.project_id = ?
                    AND (instr(n.name, ?) > 0 OR instr(n.qualified_name, ?) > 0)"""
        params: List[Any] = [project_id, query, query]
        if node_type is not None:
            sql += " AND n.node_type = ?"
            params.append(node_type)
        sql += " ORDER BY n.id LIMIT ?"
        params.append(limit)
        return self._nodes(sql, params)

    def get_unresolved_references(self, project_id: int) -> List[NodeRecord]:
        """Reference nodes without an outgoing ``references`` edge."""
        return self._nodes(
            f"""SELECT {NODE_COLUMNS}
                FROM nodes n
                JOIN files f ON n.file_id = f.id
                WHERE f.project_id = ? AND n.node_type = 'reference'
                  AND NOT EXISTS (
                      SELECT 1 FROM edges e
                      WHERE e.source_id = n.id AND e.edge_type = 'references'
                  )
                ORDER BY n.id""",
            (project_id,),
        )

    def find_reference_target(
        self, project_id: int, name: str, kinds: Iterable[str]
    ) -> Optional[NodeRecord]:
        """First node in the project with this exact name and one of ``kinds``."""
        kinds = list(kinds)
        return self._node(
            f"""SELECT {NODE_COLUMNS}
                FROM nodes n
                JOIN files f ON n.file_id = f.id
                WHERE f.project_id = ? AND n.name = ?
                  AND n.node_type IN ({_placeholders(kinds)})
                ORDER BY n.id
                LIMIT 1""",
            (project_id, name, *kinds),
        )

    def find_source_nodes(self, node_id: int, edge_type: str) -> List[NodeRecord]:
        return self._nodes(
            f"""SELECT {NODE_COLUMNS}
                FROM nodes n
                JOIN files f ON n.file_id = f.id
                JOIN edges e ON e.source_id = n.id
                WHERE e.target_id = ? AND e.edge_type = ?
                ORDER BY e.id""",
            (node_id, edge_type),
        )

    def find_target_nodes(self, node_id: int, edge_type: str) -> List[NodeRecord]:
        return self._nodes(
            f"""SELECT {NODE_COLUMNS}
                FROM nodes n
                JOIN files f ON n.file_id = f.id
                JOIN edges e ON e.target_id = n.id
                WHERE e.source_id = ? AND e.edge_type = ?
                ORDER BY e.id""",
            (node_id, edge_type),
        )
