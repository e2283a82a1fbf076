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

"""Pluggable language extraction.

Each language implements the ``LanguageExtractor`` protocol and is
registered in an ``ExtractionRegistry``:

    ExtractionRegistry
      ├── GoExtractor    (.go)
      └── JavaExtractor  (.java)

Adding a language means writing an extractor and registering it; the
graph builder and query engine are untouched.
"""

from codegraph.languages.base import (
    BaseLanguageExtractor,
    GraphWalker,
    LanguageConfig,
    LanguageExtractor,
    ScopeContext,
)
from codegraph.languages.registry import ExtractionRegistry, create_default_registry

__all__ = [
    "BaseLanguageExtractor",
    "GraphWalker",
    "LanguageConfig",
    "LanguageExtractor",
    "ScopeContext",
    "ExtractionRegistry",
    "create_default_registry",
]
