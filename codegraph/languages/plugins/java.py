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

"""Java language extractor."""

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from codegraph.codebase.fragment import (
    EDGE_CONTAINS,
    EDGE_EXTENDS,
    EDGE_HAS_PARAMETER,
    EDGE_IMPLEMENTS,
    NODE_CALL,
    NODE_CLASS,
    NODE_CONSTRUCTOR,
    NODE_FIELD,
    NODE_IMPORT,
    NODE_INTERFACE,
    NODE_METHOD,
    NODE_PACKAGE,
    NODE_PARAMETER,
    NODE_REFERENCE,
    NODE_VARIABLE,
)
from codegraph.languages.base import BaseLanguageExtractor, GraphWalker, LanguageConfig

if TYPE_CHECKING:
    from tree_sitter import Node

NAME_TYPES = ("scoped_identifier", "identifier")
TYPE_LIST_MEMBERS = ("type_identifier", "generic_type", "scoped_type_identifier")


class JavaGraphWalker(GraphWalker):
    """Walks a tree-sitter-java tree.

    Type declarations are qualified by the package and any enclosing
    types (``com.example.Outer.Inner``); members by their declaring type.
    """

    def handlers(self) -> Dict[str, Callable[["Node"], None]]:
        return {
            "package_declaration": self._package,
            "import_declaration": self._import,
            "class_declaration": self._class,
            "record_declaration": self._class,
            "enum_declaration": self._class,
            "interface_declaration": self._interface,
            "method_declaration": self._method,
            "constructor_declaration": self._constructor,
            "field_declaration": self._field,
            "local_variable_declaration": self._local_variable,
            "method_invocation": self._method_invocation,
            "object_creation_expression": self._object_creation,
        }

    def _package(self, node: "Node") -> None:
        for child in node.children:
            if child.type in NAME_TYPES:
                name = self.text(child)
                self.scope.package = name
                self.add_node(NODE_PACKAGE, name, node, qualified_name=name)
                break

    def _import(self, node: "Node") -> None:
        name: Optional[str] = None
        for child in node.children:
            if child.type in NAME_TYPES and name is None:
                name = self.text(child)
            elif child.type == "asterisk" and name is not None:
                name += ".*"
        if name is not None:
            self.add_node(NODE_IMPORT, name, node, qualified_name=name)

    def _class(self, node: "Node") -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        name = self.text(name_node)
        qualified_name = self.scope.qualify(name)

        attributes: Optional[Dict[str, Any]] = None
        if node.type == "enum_declaration":
            attributes = {"enum": True}
        elif node.type == "record_declaration":
            attributes = {"record": True}

        class_idx = self.add_node(
            NODE_CLASS, name, node, qualified_name=qualified_name, attributes=attributes
        )

        superclass = node.child_by_field_name("superclass")
        if superclass is not None:
            for child in superclass.children:
                if child.type in TYPE_LIST_MEMBERS:
                    self._type_reference(class_idx, child, EDGE_EXTENDS)

        interfaces = node.child_by_field_name("interfaces")
        if interfaces is not None:
            self._type_list_references(class_idx, interfaces, EDGE_IMPLEMENTS)

        self._body(node, qualified_name, class_idx)

    def _interface(self, node: "Node") -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        name = self.text(name_node)
        qualified_name = self.scope.qualify(name)
        interface_idx = self.add_node(NODE_INTERFACE, name, node, qualified_name=qualified_name)

        for child in node.children:
            if child.type == "extends_interfaces":
                self._type_list_references(interface_idx, child, EDGE_EXTENDS)

        self._body(node, qualified_name, interface_idx)

    def _body(self, node: "Node", qualified_name: str, type_idx: int) -> None:
        # Members of a type are not inside any method body
        with self.scope.enter(type_name=qualified_name, type_idx=type_idx, callable_idx=None):
            self.walk_children(node.child_by_field_name("body"))

    def _type_list_references(self, owner_idx: int, node: "Node", edge_type: str) -> None:
        for child in node.children:
            if child.type == "type_list":
                for member in child.children:
                    if member.type in TYPE_LIST_MEMBERS:
                        self._type_reference(owner_idx, member, edge_type)
            elif child.type in TYPE_LIST_MEMBERS:
                self._type_reference(owner_idx, child, edge_type)

    def _type_reference(self, owner_idx: int, type_node: "Node", edge_type: str) -> None:
        ref_idx = self.add_node(NODE_REFERENCE, self._type_name(type_node), type_node)
        self.add_edge(owner_idx, ref_idx, edge_type)

    def _type_name(self, node: "Node") -> str:
        # List<String> -> List, java.util.List -> List
        if node.type == "generic_type":
            for child in node.children:
                if child.type in ("type_identifier", "scoped_type_identifier"):
                    return self._type_name(child)
        if node.type == "scoped_type_identifier":
            identifiers = [c for c in node.children if c.type == "type_identifier"]
            if identifiers:
                return self.text(identifiers[-1])
        return self.text(node)

    def _method(self, node: "Node") -> None:
        self._callable(node, NODE_METHOD)

    def _constructor(self, node: "Node") -> None:
        self._callable(node, NODE_CONSTRUCTOR)

    def _callable(self, node: "Node", node_type: str) -> None:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return
        name = self.text(name_node)
        body = node.child_by_field_name("body")
        attributes = {"abstract": True} if body is None else None

        method_idx = self.add_node(
            node_type, name, node, qualified_name=self.scope.qualify(name), attributes=attributes
        )
        self._parameters(method_idx, node.child_by_field_name("parameters"))
        with self.scope.enter(callable_idx=method_idx):
            self.walk_children(body)

    def _parameters(self, owner_idx: int, params: Optional["Node"]) -> None:
        if params is None:
            return
        for param in params.children:
            name_node = None
            if param.type == "formal_parameter":
                name_node = param.child_by_field_name("name")
            elif param.type == "spread_parameter":
                for child in param.children:
                    if child.type == "variable_declarator":
                        name_node = child.child_by_field_name("name")
            if name_node is None:
                continue
            param_idx = self.add_node(NODE_PARAMETER, self.text(name_node), param)
            self.add_edge(owner_idx, param_idx, EDGE_HAS_PARAMETER)

    def _field(self, node: "Node") -> None:
        for declarator in node.children_by_field_name("declarator"):
            name_node = declarator.child_by_field_name("name")
            if name_node is None:
                continue
            name = self.text(name_node)
            field_idx = self.add_node(NODE_FIELD, name, node, qualified_name=self.scope.qualify(name))
            if self.scope.type_idx is not None:
                self.add_edge(self.scope.type_idx, field_idx, EDGE_CONTAINS)
            value = declarator.child_by_field_name("value")
            if value is not None:
                self.walk(value)

    def _local_variable(self, node: "Node") -> None:
        for declarator in node.children_by_field_name("declarator"):
            name_node = declarator.child_by_field_name("name")
            if name_node is not None:
                self.add_node(NODE_VARIABLE, self.text(name_node), name_node)
            value = declarator.child_by_field_name("value")
            if value is not None:
                self.walk(value)

    def _method_invocation(self, node: "Node") -> None:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            call_idx = self.add_node(NODE_CALL, self.text(name_node), node)
            self.link_call(call_idx)
        # Receiver chains: a.b().c()
        receiver = node.child_by_field_name("object")
        if receiver is not None:
            self.walk(receiver)
        self.walk_children(node.child_by_field_name("arguments"))

    def _object_creation(self, node: "Node") -> None:
        type_node = node.child_by_field_name("type")
        if type_node is not None:
            call_idx = self.add_node(
                NODE_CALL, self._type_name(type_node), node, attributes={"constructor": True}
            )
            self.link_call(call_idx)
        self.walk_children(node.child_by_field_name("arguments"))
        for child in node.children:
            if child.type == "class_body":
                self.walk_children(child)


class JavaExtractor(BaseLanguageExtractor):
    """Java graph extractor."""

    def _create_config(self) -> LanguageConfig:
        return LanguageConfig(
            name="java",
            display_name="Java",
            aliases=[],
            extensions=[".java"],
            tree_sitter_language="java",
        )

    def _create_walker(self, source: str) -> GraphWalker:
        return JavaGraphWalker(source)
