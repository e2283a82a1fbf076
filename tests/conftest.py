# Copyright 2026 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Shared fixtures for codegraph tests."""

import logging
import os
from pathlib import Path
from typing import Callable, Dict

import pytest

from codegraph.codebase.graph import GraphBuilder, SqliteGraphStore, create_graph_store
from codegraph.languages.registry import ExtractionRegistry, create_default_registry


@pytest.fixture
def store() -> SqliteGraphStore:
    graph_store = create_graph_store()
    yield graph_store
    graph_store.close()


@pytest.fixture
def builder(store) -> GraphBuilder:
    return GraphBuilder(store)


@pytest.fixture
def project(store, tmp_path):
    return store.get_or_create_project("demo", str(tmp_path.resolve()))


@pytest.fixture(scope="session")
def registry() -> ExtractionRegistry:
    return create_default_registry()


@pytest.fixture
def write_project(tmp_path) -> Callable[[Dict[str, str]], Path]:
    """Write {relative path: content} under a temp project root."""

    def _write(files: Dict[str, str]) -> Path:
        root = tmp_path / "project"
        for rel_path, content in files.items():
            path = root / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        root.mkdir(exist_ok=True)
        return root

    return _write


@pytest.fixture(autouse=True)
def _reset_codegraph_logger():
    yield
    logger = logging.getLogger("codegraph")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in list(os.environ):
        if key.upper().startswith("CODEGRAPH_"):
            monkeypatch.delenv(key)
