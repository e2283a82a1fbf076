# Copyright 2026 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for the query engine."""

import pytest

from codegraph.codebase.query import QueryEngine
from codegraph.errors import InvalidQueryError, SymbolNotFoundError
from samples import fragment, node


@pytest.fixture
def engine(store):
    return QueryEngine(store)


@pytest.fixture
def call_project(builder, project):
    """main calls helper; Server.Start calls helper too."""
    builder.store_file_graph(
        project.id,
        "main.go",
        "go",
        fragment(
            [
                node("function", "main", "main.main", start=(3, 1), end=(6, 2)),
                node("call", "helper", start=(4, 5), end=(4, 13)),
                node("function", "helper", "main.helper", start=(8, 1), end=(10, 2)),
                node("method", "Start", "Server.Start", start=(12, 1), end=(14, 2)),
                node("call", "helper", start=(13, 5), end=(13, 13)),
            ],
            edges=[(0, 1, "calls"), (3, 4, "calls")],
        ),
    )
    return project


@pytest.fixture
def reference_project(builder, project):
    """App.java extends Base, defined in Base.java."""
    builder.store_file_graph(
        project.id,
        "src/App.java",
        "java",
        fragment(
            [
                node("class", "App", "p.App", start=(1, 1), end=(20, 2)),
                node("reference", "Base", start=(1, 19), end=(1, 23)),
                node("method", "run", "p.App.run", start=(5, 5), end=(8, 6)),
            ],
            edges=[(0, 1, "extends")],
            content_hash="app",
        ),
    )
    builder.store_file_graph(
        project.id,
        "src/Base.java",
        "java",
        fragment([node("class", "Base", "p.Base", start=(1, 1), end=(3, 2))], content_hash="base"),
    )
    builder.build_cross_references(project.id)
    return project


class TestFindDefinition:
    """Position-based definition lookup."""

    def test_innermost_node_wins(self, engine, reference_project):
        result = engine.find_definition(reference_project.id, "src/App.java", 6, 1)
        assert result.found
        assert result.definition.name == "run"

    def test_enclosing_node(self, engine, reference_project):
        result = engine.find_definition(reference_project.id, "src/App.java", 2, 1)
        assert result.definition.name == "App"
        assert result.definition.node_type == "class"

    def test_reference_resolves_to_definition(self, engine, reference_project):
        result = engine.find_definition(reference_project.id, "src/App.java", 1, 20)
        assert result.found
        assert result.definition.file == "src/Base.java"
        assert result.definition.qualified_name == "p.Base"
        assert (result.definition.line, result.definition.column) == (1, 1)

    def test_nothing_at_position(self, engine, reference_project):
        result = engine.find_definition(reference_project.id, "src/App.java", 99, 1)
        assert result.found is False
        assert result.definition is None

    def test_unknown_file_or_project(self, engine, reference_project):
        assert not engine.find_definition(reference_project.id, "nope.java", 1, 1).found
        assert not engine.find_definition(reference_project.id + 1, "src/App.java", 1, 1).found

    def test_absolute_path_is_normalized(self, engine, reference_project):
        absolute = f"{reference_project.root_path}/src/App.java"
        assert engine.find_definition(reference_project.id, absolute, 6, 1).definition.name == "run"


class TestFindReferences:
    """Position-based reference lookup."""

    def test_references_to_definition(self, engine, reference_project):
        result = engine.find_references(reference_project.id, "src/Base.java", 1, 1)
        assert result.count == 1
        ref = result.references[0]
        assert (ref.file, ref.node_type, ref.name) == ("src/App.java", "reference", "Base")
        assert (ref.line, ref.column, ref.end_line, ref.end_column) == (1, 19, 1, 23)

    def test_no_references(self, engine, reference_project):
        result = engine.find_references(reference_project.id, "src/App.java", 6, 1)
        assert result.count == 0
        assert result.references == []


class TestCallGraph:
    """One-hop call graph around a symbol."""

    def test_callees_of_main(self, engine, call_project):
        result = engine.get_callgraph(call_project.id, "main")
        assert result.center.qualified_name == "main.main"
        assert [c.name for c in result.callees] == ["helper"]
        assert result.callers == []

    def test_callers_of_call_site(self, engine, call_project):
        result = engine.get_callgraph(call_project.id, "helper", direction="callers")
        assert result.center.node_type == "call"
        assert [c.name for c in result.callers] == ["main"]
        assert result.callees == []

    def test_direction_filters(self, engine, call_project):
        result = engine.get_callgraph(call_project.id, "Server.Start", direction="callers")
        assert result.callees == []
        result = engine.get_callgraph(call_project.id, "Server.Start", direction="callees")
        assert [c.line for c in result.callees] == [13]

    def test_depth_zero_is_center_only(self, engine, call_project):
        result = engine.get_callgraph(call_project.id, "main", depth=0)
        assert result.center.name == "main"
        assert result.callers == [] and result.callees == []

    def test_larger_depth_is_one_hop(self, engine, call_project):
        assert engine.get_callgraph(call_project.id, "main", depth=5) == engine.get_callgraph(
            call_project.id, "main", depth=1
        )

    def test_unknown_symbol(self, engine, call_project):
        with pytest.raises(SymbolNotFoundError) as exc_info:
            engine.get_callgraph(call_project.id, "nowhere")
        assert exc_info.value.to_dict()["error"] == "not_found"

    @pytest.mark.parametrize("depth, direction", [(-1, "both"), (1, "sideways")])
    def test_invalid_parameters(self, engine, call_project, depth, direction):
        with pytest.raises(InvalidQueryError):
            engine.get_callgraph(call_project.id, "main", depth=depth, direction=direction)

    def test_package_declaration_is_not_the_center(self, engine, builder, project):
        builder.store_file_graph(
            project.id,
            "main.go",
            "go",
            fragment(
                [
                    node("package", "main", "main", start=(1, 1), end=(1, 13)),
                    node("function", "main", "main.main", start=(3, 1), end=(5, 2)),
                    node("call", "helper", start=(4, 2), end=(4, 10)),
                ],
                edges=[(1, 2, "calls")],
            ),
        )

        result = engine.get_callgraph(project.id, "main", direction="callees")
        assert result.center.node_type == "function"
        assert [c.name for c in result.callees] == ["helper"]
        references = engine.find_references_by_symbol(project.id, "main")
        assert references.count == 0


class TestSearchSymbols:
    """Substring search."""

    @pytest.fixture
    def users(self, builder, project):
        builder.store_file_graph(
            project.id,
            "model.go",
            "go",
            fragment(
                [
                    node("struct", "User", "model.User"),
                    node("struct", "UserService", "model.UserService"),
                    node("variable", "user"),
                    node("function", "NewUser", "model.NewUser"),
                ]
            ),
        )
        return project

    def test_case_sensitive(self, engine, users):
        result = engine.search_symbols(users.id, "User")
        assert result.count == 3
        assert [s.name for s in result.symbols] == ["User", "UserService", "NewUser"]

    def test_type_filter(self, engine, users):
        result = engine.search_symbols(users.id, "User", symbol_type="struct")
        assert [s.name for s in result.symbols] == ["User", "UserService"]

    def test_limit(self, engine, users):
        assert engine.search_symbols(users.id, "User", limit=2).count == 2
        assert engine.search_symbols(users.id, "User", limit=0).count == 0

    def test_no_matches(self, engine, users):
        result = engine.search_symbols(users.id, "Order")
        assert result.count == 0 and result.symbols == []

    def test_negative_limit(self, engine, users):
        with pytest.raises(InvalidQueryError):
            engine.search_symbols(users.id, "User", limit=-1)


class TestNameWrappers:
    """Lookups for callers that only have a symbol name."""

    def test_definition_by_simple_name_skips_call_sites(self, engine, call_project):
        result = engine.find_definition_by_symbol(call_project.id, "helper")
        assert result.definition.node_type == "function"
        assert result.definition.line == 8

    def test_definition_by_qualified_suffix(self, engine, call_project):
        result = engine.find_definition_by_symbol(call_project.id, "Start")
        assert result.definition.qualified_name == "Server.Start"
        assert engine.find_definition_by_symbol(call_project.id, "Server.Start").found

    def test_definition_not_found(self, engine, call_project):
        assert engine.find_definition_by_symbol(call_project.id, "Missing").found is False

    def test_references_by_symbol(self, engine, call_project):
        result = engine.find_references_by_symbol(call_project.id, "helper")
        # main (caller of the first "helper" match) plus both call sites
        assert [(r.node_type, r.line) for r in result.references] == [
            ("function", 3),
            ("call", 4),
            ("call", 13),
        ]
        assert result.count == 3

    def test_references_by_symbol_limit(self, engine, call_project):
        assert engine.find_references_by_symbol(call_project.id, "helper", limit=1).count == 1

    def test_references_by_unknown_symbol(self, engine, call_project):
        assert engine.find_references_by_symbol(call_project.id, "Missing").count == 0


class TestContext:
    """Optional source-line context."""

    def test_context_line(self, store, builder, project, tmp_path):
        (tmp_path / "main.go").write_text("package main\n\nfunc main() {}\n")
        builder.store_file_graph(
            project.id,
            "main.go",
            "go",
            fragment([node("function", "main", "main.main", start=(3, 1), end=(3, 15))]),
        )
        engine = QueryEngine(store, include_context=True)

        result = engine.find_definition_by_symbol(project.id, "main")
        assert result.definition.context == "func main() {}"

    def test_missing_file_gives_no_context(self, store, builder, project):
        builder.store_file_graph(
            project.id, "gone.go", "go", fragment([node("function", "f", start=(1, 1), end=(1, 5))])
        )
        engine = QueryEngine(store, include_context=True)
        assert engine.find_definition_by_symbol(project.id, "f").definition.context is None
