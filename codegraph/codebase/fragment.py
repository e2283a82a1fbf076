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

"""File-local graph fragments produced by extractors.

A fragment is an arena: a flat, ordered list of nodes plus edges whose
endpoints are 0-based positions in that list. Persisted identifiers only
exist once the graph builder commits the fragment, at which point the
positions are translated.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Node kinds emitted by the reference extractors. Extractors may add their own.
NODE_PACKAGE = "package"
NODE_IMPORT = "import"
NODE_CLASS = "class"
NODE_INTERFACE = "interface"
NODE_STRUCT = "struct"
NODE_FUNCTION = "function"
NODE_METHOD = "method"
NODE_CONSTRUCTOR = "constructor"
NODE_FIELD = "field"
NODE_PARAMETER = "parameter"
NODE_VARIABLE = "variable"
NODE_CALL = "call"
NODE_REFERENCE = "reference"
NODE_TYPE = "type"

EDGE_CONTAINS = "contains"
EDGE_HAS_PARAMETER = "has_parameter"
EDGE_EXTENDS = "extends"
EDGE_IMPLEMENTS = "implements"
EDGE_CALLS = "calls"
EDGE_REFERENCES = "references"

# Kinds a reference may resolve to during cross-reference resolution
DEFINITION_KINDS = (
    NODE_CLASS,
    NODE_METHOD,
    NODE_FUNCTION,
    NODE_INTERFACE,
    NODE_STRUCT,
    NODE_FIELD,
    NODE_VARIABLE,
)

# Namespace declarations share names with symbols (`package main` and
# `func main`) and are never a call-graph center
NAMESPACE_KINDS = (NODE_PACKAGE, NODE_IMPORT)


def encode_attributes(attributes: Optional[Dict[str, Any]]) -> Optional[str]:
    """Serialize an attribute dict to the stored JSON text (keys sorted)."""
    if not attributes:
        return None
    return json.dumps(attributes, sort_keys=True, separators=(",", ":"))


@dataclass
class NodeData:
    """A node as emitted by an extractor.

    Attributes:
        node_type: Kind of node (function, class, call, ...)
        name: Simple name
        qualified_name: Scope-prefixed name, if the extractor computed one
        start_line: 1-based first line
        start_column: 1-based first column
        end_line: 1-based last line
        end_column: 1-based column just past the last character
        attributes: Opaque JSON text with extractor-specific metadata
    """

    node_type: str
    name: str
    qualified_name: Optional[str]
    start_line: int
    start_column: int
    end_line: int
    end_column: int
    attributes: Optional[str] = None


@dataclass
class EdgeData:
    """An edge between two fragment-local node positions."""

    source_idx: int
    target_idx: int
    edge_type: str
    attributes: Optional[str] = None


@dataclass
class Fragment:
    """Output of one extraction run over one file."""

    nodes: List[NodeData] = field(default_factory=list)
    edges: List[EdgeData] = field(default_factory=list)
    content_hash: Optional[str] = None

    def __len__(self) -> int:
        return len(self.nodes)

    def nodes_of_type(self, node_type: str) -> List[NodeData]:
        return [n for n in self.nodes if n.node_type == node_type]

    def edges_of_type(self, edge_type: str) -> List[EdgeData]:
        return [e for e in self.edges if e.edge_type == edge_type]
