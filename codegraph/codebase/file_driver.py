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

"""File driver: walk, classify, fingerprint, parse and extract.

Extraction of one file depends only on that file's content, so batches
are spread over a process pool. Per-file failures are reported in the
``ParseOutcome`` instead of being raised, so one bad file never stops
a batch.
"""

import hashlib
import logging
import multiprocessing
import os
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Set, Union

from codegraph.codebase import tree_sitter_manager
from codegraph.codebase.fragment import Fragment
from codegraph.codebase.ignore_patterns import should_ignore_path
from codegraph.errors import (
    CodeGraphError,
    FileReadError,
    MalformedSourceError,
)
from codegraph.languages.registry import ExtractionRegistry

logger = logging.getLogger(__name__)


@dataclass
class SourceFile:
    """A file selected for indexing."""

    path: Path  # absolute
    rel_path: str  # relative to the project root, '/'-separated
    language: str


@dataclass
class ParseOutcome:
    """Result of parsing one file: a fragment, or the reason it failed."""

    source: SourceFile
    fragment: Optional[Fragment] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.fragment is not None


def compute_hash(content: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded text."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def resolve_workers(workers: int) -> int:
    """0 = auto-detect (min(cpu_count, 4)); anything else is taken as is."""
    if workers <= 0:
        return min(multiprocessing.cpu_count(), 4)
    return workers


def _allowed_languages(
    registry: ExtractionRegistry, languages: Optional[Iterable[str]]
) -> Optional[Set[str]]:
    if not languages:
        return None
    allowed = set()
    for name in languages:
        # Accept aliases; unknown ids can never match and are dropped
        extractor = registry.find(name)
        if extractor is None:
            logger.warning(f"Ignoring unknown language in allow-list: {name}")
            continue
        allowed.add(extractor.language_id)
    return allowed


def collect_files(
    root: Union[str, Path],
    registry: ExtractionRegistry,
    languages: Optional[Iterable[str]] = None,
    skip_dirs: Optional[Iterable[str]] = None,
) -> List[SourceFile]:
    """Find every file under ``root`` that a registered extractor handles.

    Symlinks are followed (each real directory is visited once), and any
    dot-prefixed file or directory is skipped.

    Args:
        root: Project root directory
        registry: Registry used to map extensions to languages
        languages: Optional allow-list of language ids
        skip_dirs: Extra directory names to skip

    Returns:
        Files sorted by relative path
    """
    root = Path(root).resolve()
    allowed = _allowed_languages(registry, languages)
    skip = set(skip_dirs or ())
    visited: Set[str] = set()
    files: List[SourceFile] = []

    for dirpath, dirnames, filenames in os.walk(root, followlinks=True):
        real = os.path.realpath(dirpath)
        if real in visited:
            dirnames[:] = []
            continue
        visited.add(real)

        dirnames[:] = sorted(d for d in dirnames if not should_ignore_path(Path(d), skip))

        for filename in sorted(filenames):
            if filename.startswith("."):
                continue
            path = Path(dirpath) / filename
            language = registry.detect_language(path)
            if language is None or (allowed is not None and language not in allowed):
                continue
            if not path.is_file():
                continue
            files.append(
                SourceFile(path=path, rel_path=path.relative_to(root).as_posix(), language=language)
            )

    files.sort(key=lambda f: f.rel_path)
    logger.debug(f"Collected {len(files)} source files under {root}")
    return files


def parse_source(source: str, language: str, registry: ExtractionRegistry) -> Fragment:
    """Parse and extract source text. No I/O.

    Raises:
        UnsupportedLanguageError: If no extractor handles the language
        MalformedSourceError: If no syntax tree could be produced
    """
    extractor = registry.get(language)
    tree = tree_sitter_manager.parse(source, extractor.grammar)
    if tree is None:
        raise MalformedSourceError(f"Failed to produce a syntax tree for {language} source")
    if tree.root_node.has_error:
        logger.debug(f"Syntax errors in {language} source; extracting what parsed")

    try:
        fragment = extractor.extract(source, tree)
    except RecursionError as e:
        raise MalformedSourceError("Syntax tree too deeply nested to extract") from e

    fragment.content_hash = compute_hash(source)
    return fragment


def parse_file(
    path: Union[str, Path], language: str, registry: ExtractionRegistry
) -> Fragment:
    """Read, parse and extract one file.

    Raises:
        FileReadError: If the file cannot be read
        UnsupportedLanguageError: If no extractor handles the language
        MalformedSourceError: If no syntax tree could be produced
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise FileReadError(f"Failed to read file {path}: {e}", {"path": str(path)}) from e

    source = data.decode("utf-8", errors="replace")
    try:
        return parse_source(source, language, registry)
    except MalformedSourceError as e:
        raise MalformedSourceError(f"{e.message}: {path}", {"path": str(path)}) from e


def _parse_outcome(source: SourceFile, registry: ExtractionRegistry) -> ParseOutcome:
    try:
        fragment = parse_file(source.path, source.language, registry)
    except CodeGraphError as e:
        return ParseOutcome(source=source, error_kind=e.kind, error_message=e.message)
    except Exception as e:
        return ParseOutcome(source=source, error_kind=type(e).__name__, error_message=str(e))
    return ParseOutcome(source=source, fragment=fragment)


# Worker-process state for ProcessPoolExecutor (set by the pool initializer)
_worker_registry: Optional[ExtractionRegistry] = None


def _init_worker(registry: ExtractionRegistry) -> None:
    global _worker_registry
    _worker_registry = registry


def _parse_file_parallel(source: SourceFile) -> ParseOutcome:
    """Module-level entry point so it can be pickled for the process pool."""
    if _worker_registry is None:
        raise RuntimeError("Worker registry not initialized")
    return _parse_outcome(source, _worker_registry)


def parse_files(
    files: List[SourceFile],
    registry: ExtractionRegistry,
    workers: int = 1,
    parallel_threshold: int = 50,
) -> Iterator[ParseOutcome]:
    """Parse a batch of files, in input order.

    Uses a process pool when more than one worker is requested and the
    batch has at least ``parallel_threshold`` files.
    """
    workers = resolve_workers(workers)
    if workers <= 1 or len(files) < parallel_threshold:
        for source in files:
            yield _parse_outcome(source, registry)
        return

    logger.info(f"Starting parallel parse: {len(files)} files, {workers} workers")
    with ProcessPoolExecutor(
        max_workers=workers, initializer=_init_worker, initargs=(registry,)
    ) as executor:
        futures = [executor.submit(_parse_file_parallel, source) for source in files]
        # Results are consumed in submission order so node ids stay deterministic
        for source, future in zip(files, futures):
            try:
                yield future.result()
            except Exception as exc:
                logger.debug(f"Parallel parse failed for {source.rel_path}: {exc}")
                yield ParseOutcome(
                    source=source, error_kind=type(exc).__name__, error_message=str(exc)
                )

