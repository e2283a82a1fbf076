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

"""codegraph: multi-language code graph indexer.

Parses Go and Java sources with tree-sitter, stores symbols and their
relationships in a SQLite graph, and answers navigation queries
(definition, references, call graph, symbol search) over it.

Usage:
    from codegraph.codebase.graph import create_graph_store
    from codegraph.codebase.indexer import parse_project
    from codegraph.codebase.query import QueryEngine
    from codegraph.languages import create_default_registry

    store = create_graph_store("codegraph.db")
    stats = parse_project(store, create_default_registry(), "/path/to/repo")
    engine = QueryEngine(store)
    engine.get_callgraph(stats.project_id, "main", direction="callees")
"""

__version__ = "0.1.0"
