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

"""Project indexing: file driver -> graph builder -> cross-references.

Handles:
- New files: extracted and stored
- Modified files: old nodes/edges replaced wholesale
- Unchanged files: skipped by content hash
- Deleted files: removed from the store
- Failed files: logged, counted and skipped
"""

import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, Field

from codegraph.codebase.file_driver import SourceFile, collect_files, parse_files
from codegraph.codebase.graph.builder import GraphBuilder
from codegraph.codebase.graph.protocol import GraphStoreProtocol
from codegraph.errors import FileReadError, PersistenceError
from codegraph.languages.registry import ExtractionRegistry

logger = logging.getLogger(__name__)

# A persistence failure aborts one file; this many in a row aborts the batch
MAX_CONSECUTIVE_PERSISTENCE_FAILURES = 3


class ParseStats(BaseModel):
    """Statistics about one parse batch."""

    project_id: int
    project_name: str
    files_found: int = 0
    files_stored: int = 0
    files_unchanged: int = 0
    files_failed: int = 0
    files_removed: int = 0
    references_resolved: int = 0
    elapsed_seconds: float = 0.0
    # (path, error kind, message) for each failed file
    errors: List[Tuple[str, str, str]] = Field(default_factory=list)


def parse_project(
    store: GraphStoreProtocol,
    registry: ExtractionRegistry,
    root: Union[str, Path],
    name: Optional[str] = None,
    languages: Optional[Iterable[str]] = None,
    workers: int = 1,
    parallel_threshold: int = 50,
    skip_dirs: Optional[Iterable[str]] = None,
    builder: Optional[GraphBuilder] = None,
) -> ParseStats:
    """Index every supported file under ``root`` into one project.

    Args:
        store: Graph store to write into
        registry: Extractors to use
        root: Project root directory
        name: Project name (defaults to the directory name)
        languages: Optional allow-list of language ids
        workers: Extraction processes (0 = auto, 1 = sequential)
        parallel_threshold: Minimum batch size for the process pool
        skip_dirs: Extra directory names to skip
        builder: Builder to reuse (shares its per-project locks)

    Returns:
        Statistics for the batch

    Raises:
        FileReadError: If ``root`` is not a directory
        PersistenceError: If the project cannot be created, or storing
            keeps failing
    """
    start_time = time.time()
    root = Path(root).resolve()
    languages = list(languages) if languages else None
    if not root.is_dir():
        raise FileReadError(f"Project root is not a directory: {root}", {"path": str(root)})

    builder = builder or GraphBuilder(store)
    project = builder.create_or_get_project(name or root.name, str(root))
    stats = ParseStats(project_id=project.id, project_name=project.name)

    files = collect_files(root, registry, languages=languages, skip_dirs=skip_dirs)
    stats.files_found = len(files)
    logger.info(f"Parsing project '{project.name}': {len(files)} source files in {root}")

    consecutive_failures = 0
    for outcome in parse_files(files, registry, workers=workers, parallel_threshold=parallel_threshold):
        rel_path = outcome.source.rel_path
        if not outcome.ok:
            stats.files_failed += 1
            stats.errors.append((rel_path, outcome.error_kind or "error", outcome.error_message or ""))
            logger.warning(f"Failed to parse {rel_path}: {outcome.error_kind}: {outcome.error_message}")
            continue

        previous = store.get_file_by_path(project.id, rel_path)
        try:
            file_id = builder.store_file_graph(
                project.id, rel_path, outcome.source.language, outcome.fragment
            )
        except PersistenceError as e:
            consecutive_failures += 1
            stats.files_failed += 1
            stats.errors.append((rel_path, e.kind, e.message))
            logger.warning(f"Failed to store {rel_path}: {e.message}")
            if consecutive_failures >= MAX_CONSECUTIVE_PERSISTENCE_FAILURES:
                raise
            continue

        consecutive_failures = 0
        if previous is not None and previous.id == file_id:
            stats.files_unchanged += 1
        else:
            stats.files_stored += 1

    stats.files_removed = _prune_deleted_files(store, builder, project.id, files, registry, languages)
    stats.references_resolved = builder.build_cross_references(project.id)
    stats.elapsed_seconds = round(time.time() - start_time, 2)

    msg = (
        f"Parsed project '{project.name}': {stats.files_stored} stored, "
        f"{stats.files_unchanged} unchanged, {stats.files_removed} removed "
        f"in {stats.elapsed_seconds:.2f}s"
    )
    if stats.files_failed:
        msg += f" ({stats.files_failed} failed)"
    logger.info(msg)
    return stats


def _prune_deleted_files(
    store: GraphStoreProtocol,
    builder: GraphBuilder,
    project_id: int,
    files: List[SourceFile],
    registry: ExtractionRegistry,
    languages: Optional[Iterable[str]],
) -> int:
    """Remove stored files that no longer exist under the project root.

    With a language allow-list, only files of those languages are
    considered, so a partial parse never prunes other languages.
    """
    current = {f.rel_path for f in files}
    allowed = None
    if languages:
        allowed = {e.language_id for e in (registry.find(n) for n in languages) if e is not None}

    removed = 0
    for record in store.list_files(project_id):
        if record.path in current:
            continue
        if allowed is not None and record.language not in allowed:
            continue
        if builder.remove_file(project_id, record.path):
            removed += 1
            logger.debug(f"Removed deleted file from graph: {record.path}")
    return removed
