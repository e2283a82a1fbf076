# Copyright 2026 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for the command-line interface."""

import json

import httpx
import pytest

from codegraph import cli

MAIN_GO = """package main

func helper() int {
	return 1
}

func main() {
	helper()
}
"""


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "graph.db")


@pytest.fixture
def parsed(write_project, db_path, capsys):
    root = write_project({"main.go": MAIN_GO})
    assert cli.main(["parse", "--path", str(root), "--name", "app", "--database", db_path]) == 0
    capsys.readouterr()
    return root


def run_json(capsys, argv):
    code = cli.main(argv)
    out = capsys.readouterr().out
    return code, json.loads(out)


class TestParseCommand:
    """Indexing from the command line."""

    def test_parse_reports_summary(self, write_project, db_path, capsys):
        root = write_project({"main.go": MAIN_GO})
        assert cli.main(["parse", "--path", str(root), "--database", db_path]) == 0
        out = capsys.readouterr().out
        assert "Parsed" in out
        assert "1 stored" in out

    def test_parse_missing_root(self, tmp_path, db_path, capsys):
        code = cli.main(["parse", "--path", str(tmp_path / "missing"), "--database", db_path])
        assert code == 1
        assert json.loads(capsys.readouterr().err)["error"] == "io"

    def test_language_filter(self, write_project, db_path, capsys):
        root = write_project({"main.go": MAIN_GO, "App.java": "class App {}\n"})
        assert cli.main(
            ["parse", "--path", str(root), "--languages", "java", "--database", db_path]
        ) == 0
        assert "1 stored" in capsys.readouterr().out


class TestQueryCommand:
    """JSON query output."""

    def test_callgraph(self, parsed, db_path, capsys):
        code, body = run_json(capsys, ["query", "--database", db_path, "callgraph", "main.main"])
        assert code == 0
        assert [c["name"] for c in body["callees"]] == ["helper"]
        assert body["callers"] == []

    def test_definition_by_symbol(self, parsed, db_path, capsys):
        code, body = run_json(
            capsys, ["query", "--database", db_path, "--project", "app", "definition", "helper"]
        )
        assert code == 0
        assert body["definition"]["qualified_name"] == "main.helper"

    def test_definition_by_position(self, parsed, db_path, capsys):
        argv = [
            "query", "--database", db_path, "definition",
            "--file", "main.go", "--line", "3", "--column", "1",
        ]
        code, body = run_json(capsys, argv)
        assert code == 0
        assert body["definition"]["name"] == "helper"

    def test_references(self, parsed, db_path, capsys):
        code, body = run_json(capsys, ["query", "--database", db_path, "references", "helper"])
        assert code == 0
        assert body["count"] == 1

    def test_symbols(self, parsed, db_path, capsys):
        code, body = run_json(
            capsys, ["query", "--database", db_path, "symbols", "help", "--type", "function"]
        )
        assert code == 0
        assert [s["name"] for s in body["symbols"]] == ["helper"]

    def test_no_match_is_empty_result(self, parsed, db_path, capsys):
        code, body = run_json(capsys, ["query", "--database", db_path, "symbols", "Nothing"])
        assert code == 0
        assert body == {"count": 0, "symbols": []}

    def test_unknown_symbol_is_error(self, parsed, db_path, capsys):
        code = cli.main(["query", "--database", db_path, "callgraph", "nowhere"])
        assert code == 1
        assert json.loads(capsys.readouterr().err)["error"] == "not_found"

    def test_missing_target_is_error(self, parsed, db_path, capsys):
        code = cli.main(["query", "--database", db_path, "definition", "--file", "main.go"])
        assert code == 1
        assert json.loads(capsys.readouterr().err)["error"] == "invalid_query"

    def test_no_projects(self, db_path, capsys):
        code = cli.main(["query", "--database", db_path, "symbols", "x"])
        assert code == 1
        assert json.loads(capsys.readouterr().err)["error"] == "not_found"

    def test_unknown_project(self, parsed, db_path, capsys):
        code = cli.main(["query", "--database", db_path, "--project", "other", "symbols", "x"])
        assert code == 1
        assert json.loads(capsys.readouterr().err)["error"] == "not_found"


class TestProjectResolution:
    """Choosing a project by id, name or default."""

    def test_ambiguous_without_project(self, tmp_path, db_path, capsys):
        for name in ("one", "two"):
            root = tmp_path / name
            root.mkdir()
            (root / "main.go").write_text(MAIN_GO)
            cli.main(["parse", "--path", str(root), "--database", db_path])
        capsys.readouterr()

        assert cli.main(["query", "--database", db_path, "symbols", "main"]) == 1
        assert json.loads(capsys.readouterr().err)["error"] == "invalid_query"

        code, body = run_json(
            capsys, ["query", "--database", db_path, "--project", "two", "symbols", "helper"]
        )
        assert code == 0 and body["count"] > 0

    def test_numeric_id(self, parsed, db_path, capsys):
        code, body = run_json(
            capsys, ["query", "--database", db_path, "--project", "1", "symbols", "helper"]
        )
        assert code == 0 and body["count"] == 2


class TestInfoCommands:
    """projects, languages and status."""

    def test_projects(self, parsed, db_path, capsys):
        assert cli.main(["projects", "--database", db_path]) == 0
        assert "app" in capsys.readouterr().out

    def test_projects_empty(self, db_path, capsys):
        assert cli.main(["projects", "--database", db_path]) == 0
        assert "No projects indexed" in capsys.readouterr().out

    def test_languages(self, capsys):
        assert cli.main(["languages"]) == 0
        out = capsys.readouterr().out
        assert "Go" in out and "Java" in out

    def test_status_reachable(self, monkeypatch, capsys):
        def fake_get(url, timeout):
            assert url == "http://127.0.0.1:9999/api/v1/health"
            return httpx.Response(
                200, json={"status": "ok", "version": "0.1.0"}, request=httpx.Request("GET", url)
            )

        monkeypatch.setattr(httpx, "get", fake_get)
        assert cli.main(["status", "--port", "9999"]) == 0
        assert "Server is ok" in capsys.readouterr().out

    def test_status_unreachable(self, monkeypatch, capsys):
        def fake_get(url, timeout):
            raise httpx.ConnectError("connection refused")

        monkeypatch.setattr(httpx, "get", fake_get)
        assert cli.main(["status"]) == 1
        assert "not reachable" in capsys.readouterr().out


class TestStartCommand:
    """Server startup wiring."""

    def test_start_runs_uvicorn(self, monkeypatch, db_path):
        import uvicorn

        calls = {}

        def fake_run(app, host, port, log_level):
            calls.update(app=app, host=host, port=port, log_level=log_level)

        monkeypatch.setattr(uvicorn, "run", fake_run)
        assert cli.main(["start", "--port", "9001", "--database", db_path]) == 0
        assert (calls["host"], calls["port"], calls["log_level"]) == ("127.0.0.1", 9001, "info")
        assert calls["app"].title == "codegraph"


class TestGlobalOptions:
    """Config file and verbosity."""

    def test_bad_config_file(self, tmp_path, capsys):
        config = tmp_path / "bad.yaml"
        config.write_text("logging:\n  level: loud\n")
        assert cli.main(["--config", str(config), "languages"]) == 1
        assert json.loads(capsys.readouterr().err)["error"] == "config"

    def test_config_database_path(self, write_project, tmp_path, capsys):
        root = write_project({"main.go": MAIN_GO})
        config = tmp_path / "codegraph.yaml"
        config.write_text(f"database:\n  path: {tmp_path / 'from-config.db'}\n")

        assert cli.main(["--config", str(config), "parse", "--path", str(root)]) == 0
        assert (tmp_path / "from-config.db").exists()

    def test_missing_command_exits(self):
        with pytest.raises(SystemExit):
            cli.main([])
