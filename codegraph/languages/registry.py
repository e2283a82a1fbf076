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

"""Extraction registry.

Maps language ids, aliases and file extensions to extractor instances.
A registry is built once (see ``create_default_registry``) and passed to
whatever needs it; there is no process-wide instance.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from codegraph.errors import UnsupportedLanguageError
from codegraph.languages.base import LanguageExtractor

logger = logging.getLogger(__name__)


def _normalize_extension(ext: str) -> str:
    ext = ext.lower()
    if not ext.startswith("."):
        ext = "." + ext
    return ext


class ExtractionRegistry:
    """Registry of language extractors.

    Provides:
    - Registration by language id, alias and extension
    - Lookup by id or by file extension (leading dot optional)
    - Enumeration of supported languages
    """

    def __init__(self):
        """Initialize empty registry."""
        self._extractors: Dict[str, LanguageExtractor] = {}
        self._extension_map: Dict[str, str] = {}  # .go -> go
        self._alias_map: Dict[str, str] = {}  # golang -> go

    def register(self, extractor: LanguageExtractor) -> None:
        """Register an extractor under its id, aliases and extensions.

        Re-registering an id replaces the previous extractor.

        Args:
            extractor: Extractor instance
        """
        name = extractor.language_id.lower()
        if name in self._extractors:
            self.unregister(name)

        self._extractors[name] = extractor
        for ext in extractor.extensions:
            self._extension_map[_normalize_extension(ext)] = name
        for alias in extractor.config.aliases:
            self._alias_map[alias.lower()] = name

        logger.debug(f"Registered extractor: {name} ({', '.join(extractor.extensions)})")

    def unregister(self, name: str) -> None:
        """Remove an extractor and its extension/alias mappings."""
        name = self._resolve_name(name) or name.lower()
        extractor = self._extractors.pop(name, None)
        if extractor is None:
            return
        for ext in extractor.extensions:
            self._extension_map.pop(_normalize_extension(ext), None)
        for alias in extractor.config.aliases:
            self._alias_map.pop(alias.lower(), None)
        logger.debug(f"Unregistered extractor: {name}")

    def get(self, name: str) -> LanguageExtractor:
        """Get an extractor by language id or alias.

        Raises:
            UnsupportedLanguageError: If no extractor is registered for the id
        """
        extractor = self.find(name)
        if extractor is None:
            raise UnsupportedLanguageError(name, self.language_ids())
        return extractor

    def find(self, name: str) -> Optional[LanguageExtractor]:
        """Get an extractor by language id or alias, or None."""
        resolved = self._resolve_name(name)
        return self._extractors.get(resolved) if resolved else None

    def get_by_extension(self, ext: str) -> Optional[LanguageExtractor]:
        """Get the extractor for a file extension (".go" or "go")."""
        name = self._extension_map.get(_normalize_extension(ext))
        return self._extractors.get(name) if name else None

    def detect_language(self, path: Union[str, Path]) -> Optional[str]:
        """Language id for a file path, based on its extension."""
        suffix = Path(path).suffix
        if not suffix:
            return None
        return self._extension_map.get(suffix.lower())

    def is_supported(self, ext: str) -> bool:
        return _normalize_extension(ext) in self._extension_map

    def language_ids(self) -> List[str]:
        """Sorted list of registered language ids."""
        return sorted(self._extractors)

    def list_languages(self) -> List[Dict[str, object]]:
        """Describe every registered language.

        Returns:
            Sorted list of {"id", "name", "extensions"} dicts
        """
        return [
            {
                "id": name,
                "name": self._extractors[name].config.display_name,
                "extensions": list(self._extractors[name].extensions),
            }
            for name in self.language_ids()
        ]

    def _resolve_name(self, name: str) -> Optional[str]:
        name = name.lower()
        if name in self._extractors:
            return name
        return self._alias_map.get(name)

    def __contains__(self, name: str) -> bool:
        return self._resolve_name(name) is not None

    def __len__(self) -> int:
        return len(self._extractors)


def create_default_registry() -> ExtractionRegistry:
    """Build a registry holding the built-in extractors."""
    from codegraph.languages.plugins import GoExtractor, JavaExtractor

    registry = ExtractionRegistry()
    for extractor in (GoExtractor(), JavaExtractor()):
        registry.register(extractor)
    logger.debug(f"Registered {len(registry)} built-in extractors")
    return registry
