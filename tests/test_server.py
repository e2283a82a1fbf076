# Copyright 2026 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from codegraph import __version__
from codegraph.config import Settings
from codegraph.server import API_PREFIX, create_app
from samples import JAVA_SOURCE, column_of, line_of

MAIN_GO = """package main

func helper() int {
	return 1
}

func main() {
	helper()
}
"""


@pytest.fixture
def client(store, registry):
    app = create_app(Settings(), store=store, registry=registry)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def indexed(client, write_project):
    """Project with one Go and one Java file, already parsed."""
    root = write_project({"main.go": MAIN_GO, "src/UserService.java": JAVA_SOURCE})
    project = client.post(f"{API_PREFIX}/projects", json={"name": "demo", "root_path": str(root)})
    assert project.status_code == 201
    project_id = project.json()["id"]
    parsed = client.post(f"{API_PREFIX}/projects/{project_id}/parse")
    assert parsed.status_code == 200
    return project_id


class TestServiceRoutes:
    """Health and language listing."""

    def test_health(self, client):
        response = client.get(f"{API_PREFIX}/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": __version__}

    def test_languages(self, client):
        response = client.get(f"{API_PREFIX}/languages")
        assert [lang["id"] for lang in response.json()] == ["go", "java"]


class TestProjectRoutes:
    """Project lifecycle."""

    def test_create_is_idempotent_by_root(self, client, tmp_path):
        body = {"name": "demo", "root_path": str(tmp_path)}
        first = client.post(f"{API_PREFIX}/projects", json=body).json()
        second = client.post(f"{API_PREFIX}/projects", json=body).json()
        assert first["id"] == second["id"]
        assert first["root_path"] == str(tmp_path.resolve())

    def test_list_and_get(self, client, indexed):
        projects = client.get(f"{API_PREFIX}/projects").json()
        assert [p["name"] for p in projects] == ["demo"]
        assert client.get(f"{API_PREFIX}/projects/{indexed}").json()["name"] == "demo"

    def test_parse_stats_and_status(self, client, indexed):
        stats = client.post(f"{API_PREFIX}/projects/{indexed}/parse").json()
        assert stats["files_found"] == 2
        assert stats["files_unchanged"] == 2

        status = client.get(f"{API_PREFIX}/projects/{indexed}/status").json()
        assert status["file_count"] == 2
        assert status["node_count"] > 0
        assert status["status"] == "ready"

    def test_parse_with_language_filter(self, client, write_project):
        root = write_project({"main.go": MAIN_GO, "App.java": "class App {}\n"})
        project_id = client.post(
            f"{API_PREFIX}/projects", json={"name": "mixed", "root_path": str(root)}
        ).json()["id"]

        stats = client.post(
            f"{API_PREFIX}/projects/{project_id}/parse", json={"languages": ["go"]}
        ).json()

        assert stats["files_found"] == 1

    @pytest.mark.parametrize("suffix", ["", "/status"])
    def test_unknown_project_is_404(self, client, suffix):
        response = client.get(f"{API_PREFIX}/projects/999{suffix}")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_parse_missing_root_is_400(self, client, tmp_path):
        project_id = client.post(
            f"{API_PREFIX}/projects",
            json={"name": "gone", "root_path": str(tmp_path / "missing")},
        ).json()["id"]
        response = client.post(f"{API_PREFIX}/projects/{project_id}/parse")
        assert response.status_code == 400
        assert response.json()["error"] == "io"


class TestQueryRoutes:
    """Definition, references, call graph and search."""

    def test_definition_by_position(self, client, indexed):
        params = {
            "file": "src/UserService.java",
            "line": line_of(JAVA_SOURCE, "extends BaseService"),
            "column": column_of(JAVA_SOURCE, "BaseService"),
        }
        body = client.get(f"{API_PREFIX}/projects/{indexed}/definition", params=params).json()
        assert body["found"] is True
        assert body["definition"]["qualified_name"] == "com.example.BaseService"

    def test_definition_by_symbol(self, client, indexed):
        body = client.get(
            f"{API_PREFIX}/projects/{indexed}/definition", params={"symbol": "helper"}
        ).json()
        assert body["definition"]["file"] == "main.go"
        assert body["definition"]["node_type"] == "function"

    def test_definition_not_found_is_empty_result(self, client, indexed):
        response = client.get(
            f"{API_PREFIX}/projects/{indexed}/definition", params={"symbol": "Nope"}
        )
        assert response.status_code == 200
        assert response.json() == {"found": False, "definition": None}

    def test_definition_requires_position_or_symbol(self, client, indexed):
        response = client.get(
            f"{API_PREFIX}/projects/{indexed}/definition", params={"file": "main.go"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "invalid_query"

    def test_references_by_symbol(self, client, indexed):
        body = client.get(
            f"{API_PREFIX}/projects/{indexed}/references", params={"symbol": "helper"}
        ).json()
        assert body["count"] == 1
        assert body["references"][0]["node_type"] == "call"

    def test_callgraph(self, client, indexed):
        body = client.get(
            f"{API_PREFIX}/projects/{indexed}/callgraph", params={"symbol": "main.main"}
        ).json()
        assert body["center"]["name"] == "main"
        assert [c["name"] for c in body["callees"]] == ["helper"]
        assert body["callers"] == []

    def test_callgraph_unknown_symbol_is_404(self, client, indexed):
        response = client.get(
            f"{API_PREFIX}/projects/{indexed}/callgraph", params={"symbol": "nowhere"}
        )
        assert response.status_code == 404
        assert response.json() == {
            "error": "not_found",
            "message": "Symbol not found: nowhere",
            "details": {"symbol": "nowhere"},
        }

    def test_callgraph_bad_direction_is_400(self, client, indexed):
        response = client.get(
            f"{API_PREFIX}/projects/{indexed}/callgraph",
            params={"symbol": "main", "direction": "sideways"},
        )
        assert response.status_code == 400

    def test_symbols(self, client, indexed):
        body = client.get(
            f"{API_PREFIX}/projects/{indexed}/symbols",
            params={"query": "Service", "type": "class"},
        ).json()
        assert [s["name"] for s in body["symbols"]] == ["UserService", "BaseService"]
        assert body["count"] == 2
