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

"""Go language extractor.

Emits:
- package, import
- function (``pkg.name``) and method (``Receiver.name``, receiver in attributes)
- parameter nodes linked with ``has_parameter``
- struct / interface / type declarations; struct fields and interface
  methods linked with ``contains``
- package-level and local ``var``/``const`` names as variables
- call sites linked from their enclosing function with ``calls``
"""

from typing import TYPE_CHECKING, Callable, Dict, Optional

from codegraph.codebase.fragment import (
    EDGE_CONTAINS,
    EDGE_HAS_PARAMETER,
    NODE_CALL,
    NODE_FIELD,
    NODE_FUNCTION,
    NODE_IMPORT,
    NODE_INTERFACE,
    NODE_METHOD,
    NODE_PACKAGE,
    NODE_PARAMETER,
    NODE_STRUCT,
    NODE_TYPE,
    NODE_VARIABLE,
)
from codegraph.languages.base import BaseLanguageExtractor, GraphWalker, LanguageConfig

if TYPE_CHECKING:
    from tree_sitter import Node

# Interface members are "method_spec" in older grammars, "method_elem" in newer ones
INTERFACE_METHOD_TYPES = ("method_spec", "method_elem")
PARAMETER_TYPES = ("parameter_declaration", "variadic_parameter_declaration")


class GoGraphWalker(GraphWalker):
    """Walks a tree-sitter-go tree."""

    def handlers(self) -> Dict[str, Callable[["Node"], None]]:
        return {
            "package_clause": self._package,
            "import_declaration": self._imports,
            "function_declaration": self._function,
            "method_declaration": self._method,
            "type_declaration": self._type_declaration,
            "var_declaration": self._var_declaration,
            "const_declaration": self._var_declaration,
            "call_expression": self._call,
        }

    def _package(self, node: "Node") -> None:
        for child in node.children:
            if child.type == "package_identifier":
                name = self.text(child)
                self.scope.package = name
                self.add_node(NODE_PACKAGE, name, node, qualified_name=name)
                break

    def _imports(self, node: "Node") -> None:
        for child in node.children:
            if child.type == "import_spec_list":
                for spec in child.children:
                    if spec.type == "import_spec":
                        self._import_spec(spec)
            elif child.type == "import_spec":
                self._import_spec(child)

    def _import_spec(self, node: "Node") -> None:
        path = node.child_by_field_name("path")
        if path is None:
            return
        name = self.text(path).strip('"`')
        self.add_node(NODE_IMPORT, name, node, qualified_name=name)

    def _function(self, node: "Node") -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        name = self.text(name_node)
        func_idx = self.add_node(NODE_FUNCTION, name, node, qualified_name=self.scope.qualify(name))
        self._parameters(func_idx, node.child_by_field_name("parameters"))
        with self.scope.enter(callable_idx=func_idx):
            self.walk_children(node.child_by_field_name("body"))

    def _method(self, node: "Node") -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        name = self.text(name_node)
        receiver = self._receiver_type(node.child_by_field_name("receiver"))
        if receiver:
            qualified_name = f"{receiver}.{name}"
            attributes = {"receiver": receiver}
        else:
            qualified_name = self.scope.qualify(name)
            attributes = None

        method_idx = self.add_node(
            NODE_METHOD, name, node, qualified_name=qualified_name, attributes=attributes
        )
        self._parameters(method_idx, node.child_by_field_name("parameters"))
        with self.scope.enter(callable_idx=method_idx):
            self.walk_children(node.child_by_field_name("body"))

    def _receiver_type(self, receiver: Optional["Node"]) -> Optional[str]:
        if receiver is None:
            return None
        for child in receiver.children:
            if child.type == "parameter_declaration":
                type_node = child.child_by_field_name("type")
                if type_node is not None:
                    return self._type_name(type_node)
        return None

    def _type_name(self, node: "Node") -> str:
        # *Server -> Server, Box[T] -> Box
        if node.type in ("pointer_type", "generic_type"):
            for child in node.children:
                if child.type == "type_identifier":
                    return self.text(child)
                if child.type in ("pointer_type", "generic_type"):
                    return self._type_name(child)
        return self.text(node)

    def _parameters(self, owner_idx: int, params: Optional["Node"]) -> None:
        if params is None:
            return
        for param in params.children:
            if param.type not in PARAMETER_TYPES:
                continue
            # "a, b int" declares two parameters in one declaration
            for name_node in param.children_by_field_name("name"):
                param_idx = self.add_node(NODE_PARAMETER, self.text(name_node), param)
                self.add_edge(owner_idx, param_idx, EDGE_HAS_PARAMETER)

    def _type_declaration(self, node: "Node") -> None:
        for child in node.children:
            if child.type in ("type_spec", "type_alias"):
                self._type_spec(child)

    def _type_spec(self, node: "Node") -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        name = self.text(name_node)
        qualified_name = self.scope.qualify(name)
        type_node = node.child_by_field_name("type")
        type_kind = type_node.type if type_node is not None else ""

        if type_kind == "struct_type":
            node_type = NODE_STRUCT
        elif type_kind == "interface_type":
            node_type = NODE_INTERFACE
        else:
            node_type = NODE_TYPE

        type_idx = self.add_node(node_type, name, node, qualified_name=qualified_name)

        if node_type == NODE_STRUCT:
            with self.scope.enter(type_name=qualified_name):
                self._struct_fields(type_idx, type_node)
        elif node_type == NODE_INTERFACE:
            with self.scope.enter(type_name=qualified_name):
                self._interface_methods(type_idx, type_node)

    def _struct_fields(self, struct_idx: int, node: "Node") -> None:
        for child in node.children:
            if child.type != "field_declaration_list":
                continue
            for field in child.children:
                if field.type != "field_declaration":
                    continue
                # Embedded fields carry no name and are skipped
                for name_node in field.children_by_field_name("name"):
                    name = self.text(name_node)
                    field_idx = self.add_node(
                        NODE_FIELD, name, field, qualified_name=self.scope.qualify(name)
                    )
                    self.add_edge(struct_idx, field_idx, EDGE_CONTAINS)

    def _interface_methods(self, interface_idx: int, node: "Node") -> None:
        for child in node.children:
            if child.type not in INTERFACE_METHOD_TYPES:
                continue
            name_node = child.child_by_field_name("name")
            if name_node is None:
                continue
            name = self.text(name_node)
            method_idx = self.add_node(
                NODE_METHOD,
                name,
                child,
                qualified_name=self.scope.qualify(name),
                attributes={"abstract": True},
            )
            self.add_edge(interface_idx, method_idx, EDGE_CONTAINS)

    def _var_declaration(self, node: "Node") -> None:
        for spec in node.children:
            if spec.type == "var_spec_list":
                for inner in spec.children:
                    self._var_spec(inner)
            else:
                self._var_spec(spec)

    def _var_spec(self, node: "Node") -> None:
        if node.type not in ("var_spec", "const_spec"):
            return
        for name_node in node.children_by_field_name("name"):
            name = self.text(name_node)
            qualified_name = self.scope.qualify(name) if self.scope.callable_idx is None else None
            self.add_node(NODE_VARIABLE, name, name_node, qualified_name=qualified_name)
        # Initializers may contain calls
        for value in node.children_by_field_name("value"):
            self.walk(value)

    def _call(self, node: "Node") -> None:
        function = node.child_by_field_name("function")
        if function is not None:
            call_idx = self.add_node(NODE_CALL, self.text(function), node)
            self.link_call(call_idx)
            # Chained calls such as a().b() nest inside the callee expression
            if function.type == "selector_expression":
                self.walk_children(function)
        self.walk_children(node.child_by_field_name("arguments"))


class GoExtractor(BaseLanguageExtractor):
    """Go graph extractor."""

    def _create_config(self) -> LanguageConfig:
        return LanguageConfig(
            name="go",
            display_name="Go",
            aliases=["golang"],
            extensions=[".go"],
            tree_sitter_language="go",
        )

    def _create_walker(self, source: str) -> GraphWalker:
        return GoGraphWalker(source)
