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

"""Error taxonomy for codegraph.

Every error raised by the indexer and query engine derives from
``CodeGraphError`` and carries a machine-readable ``kind``:

- not_found: project, file or symbol absent
- unsupported: no extractor registered for a language
- io: a source file could not be read
- malformed: a syntax tree could not be produced
- persistence: a graph store operation failed
- invalid_query: query parameters are out of range
- config: configuration could not be loaded

The HTTP layer and CLI render errors through ``to_dict()`` so callers can
tell "no matches" (an empty result) apart from an actual error.
"""

from typing import Any, Dict, Optional


class CodeGraphError(Exception):
    """Base class for all codegraph errors."""

    kind: str = "internal"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation used by the CLI and HTTP API."""
        result: Dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


class NotFoundError(CodeGraphError):
    kind = "not_found"


class ProjectNotFoundError(NotFoundError):
    """Project could not be resolved by id, name or root path."""


class SymbolNotFoundError(NotFoundError):
    """Symbol could not be resolved to a node (call-graph center)."""

    def __init__(self, symbol: str):
        super().__init__(f"Symbol not found: {symbol}", {"symbol": symbol})
        self.symbol = symbol


class UnsupportedLanguageError(CodeGraphError):
    kind = "unsupported"

    def __init__(self, language: str, available: Optional[list] = None):
        message = f"Unsupported language: {language}"
        if available:
            message += f". Available: {', '.join(available)}"
        super().__init__(message, {"language": language})
        self.language = language


class FileReadError(CodeGraphError):
    kind = "io"


class MalformedSourceError(CodeGraphError):
    kind = "malformed"


class PersistenceError(CodeGraphError):
    kind = "persistence"


class InvalidQueryError(CodeGraphError):
    kind = "invalid_query"


class ConfigError(CodeGraphError):
    kind = "config"
