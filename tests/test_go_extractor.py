# Copyright 2026 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for the Go extractor."""

import json

import pytest

from codegraph.codebase.file_driver import parse_source
from codegraph.languages.plugins.go import GoExtractor
from samples import GO_SOURCE, find, line_of, targets


@pytest.fixture(scope="module")
def go_fragment(registry):
    return parse_source(GO_SOURCE, "go", registry)


class TestGoExtractorConfig:
    """Identity as seen by the registry."""

    def test_identity(self):
        extractor = GoExtractor()
        assert extractor.language_id == "go"
        assert extractor.extensions == [".go"]
        assert extractor.config.aliases == ["golang"]
        assert extractor.grammar == "go"


class TestGoDeclarations:
    """Packages, imports and type declarations."""

    def test_package_node(self, go_fragment):
        _, pkg = find(go_fragment, "package", "main")
        assert pkg.qualified_name == "main"
        assert (pkg.start_line, pkg.start_column) == (1, 1)

    def test_imports_strip_quotes(self, go_fragment):
        names = [n.name for n in go_fragment.nodes_of_type("import")]
        assert names == ["fmt", "strings"]

    def test_struct_with_fields(self, go_fragment):
        struct_idx, struct = find(go_fragment, "struct", "Server")
        assert struct.qualified_name == "main.Server"
        assert targets(go_fragment, struct_idx, "contains") == ["Name", "port"]
        _, field = find(go_fragment, "field", "Name")
        assert field.qualified_name == "main.Server.Name"

    def test_interface_methods_are_abstract(self, go_fragment):
        iface_idx, iface = find(go_fragment, "interface", "Handler")
        assert iface.qualified_name == "main.Handler"
        assert targets(go_fragment, iface_idx, "contains") == ["Serve"]
        _, serve = find(go_fragment, "method", "Serve")
        assert json.loads(serve.attributes) == {"abstract": True}
        assert serve.qualified_name == "main.Handler.Serve"

    def test_plain_type_declaration(self, go_fragment):
        _, id_type = find(go_fragment, "type", "ID")
        assert id_type.qualified_name == "main.ID"

    def test_package_variable(self, go_fragment):
        _, var = find(go_fragment, "variable", "version")
        assert var.qualified_name == "main.version"


class TestGoCallables:
    """Functions, methods, parameters and call sites."""

    def test_function_qualified_by_package(self, go_fragment):
        _, helper = find(go_fragment, "function", "helper")
        assert helper.qualified_name == "main.helper"
        assert helper.start_line == line_of(GO_SOURCE, "func helper")
        assert helper.start_column == 1
        assert helper.end_line == helper.start_line + 2

    def test_grouped_parameters(self, go_fragment):
        helper_idx, _ = find(go_fragment, "function", "helper")
        assert targets(go_fragment, helper_idx, "has_parameter") == ["a", "b"]

    def test_method_receiver(self, go_fragment):
        start_idx, start = find(go_fragment, "method", "Start")
        assert start.qualified_name == "Server.Start"
        assert json.loads(start.attributes) == {"receiver": "Server"}
        assert targets(go_fragment, start_idx, "has_parameter") == ["addr"]

    def test_calls_from_method(self, go_fragment):
        start_idx, _ = find(go_fragment, "method", "Start")
        assert targets(go_fragment, start_idx, "calls") == [
            "fmt.Println",
            "strings.ToUpper",
            "helper",
        ]

    def test_calls_from_main(self, go_fragment):
        main_idx, _ = find(go_fragment, "function", "main")
        assert targets(go_fragment, main_idx, "calls") == ["s.Start"]

    def test_every_call_has_one_caller(self, go_fragment):
        call_indices = {i for i, n in enumerate(go_fragment.nodes) if n.node_type == "call"}
        linked = [e.target_idx for e in go_fragment.edges_of_type("calls")]
        assert sorted(linked) == sorted(call_indices)


class TestGoExtraction:
    """Fragment-level properties."""

    def test_edges_point_inside_fragment(self, go_fragment):
        for edge in go_fragment.edges:
            assert 0 <= edge.source_idx < len(go_fragment)
            assert 0 <= edge.target_idx < len(go_fragment)

    def test_deterministic(self, registry, go_fragment):
        again = parse_source(GO_SOURCE, "go", registry)
        assert again.nodes == go_fragment.nodes
        assert again.edges == go_fragment.edges

    def test_top_level_call_has_no_caller(self, registry):
        frag = parse_source('package p\n\nvar x = compute()\n', "go", registry)
        assert [n.name for n in frag.nodes_of_type("call")] == ["compute"]
        assert frag.edges_of_type("calls") == []

    def test_syntax_errors_still_extract(self, registry):
        frag = parse_source("package p\n\nfunc ok() {}\n\nfunc broken( {\n", "go", registry)
        assert "ok" in [n.name for n in frag.nodes_of_type("function")]
