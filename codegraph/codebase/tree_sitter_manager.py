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

"""Tree-sitter grammar loading and parser cache.

Uses the tree-sitter 0.25+ API with pre-compiled grammar packages
(``pip install tree-sitter-go tree-sitter-java``).
"""

import threading
from typing import TYPE_CHECKING, Dict, Tuple

from tree_sitter import Language, Parser

from codegraph.errors import UnsupportedLanguageError

if TYPE_CHECKING:
    from tree_sitter import Tree


# Format: "grammar_name": ("module_name", "function_name")
# function_name is the function that returns the language object (usually "language")
LANGUAGE_MODULES: Dict[str, Tuple[str, str]] = {
    "go": ("tree_sitter_go", "language"),
    "java": ("tree_sitter_java", "language"),
}

_language_cache: Dict[str, Language] = {}
_language_lock = threading.Lock()
# Parser objects are not safe to share between threads
_parsers = threading.local()


def get_language(language: str) -> Language:
    """
    Loads a tree-sitter Language object from its pre-compiled grammar package.

    Raises:
        UnsupportedLanguageError: If no grammar is known for the language
        ImportError: If the grammar package is not installed
    """
    with _language_lock:
        if language in _language_cache:
            return _language_cache[language]

        module_info = LANGUAGE_MODULES.get(language)
        if not module_info:
            raise UnsupportedLanguageError(language, sorted(LANGUAGE_MODULES))

        module_name, func_name = module_info
        try:
            language_module = __import__(module_name)
        except ImportError as e:
            raise ImportError(
                f"Language package '{module_name}' not installed. "
                f"Install it with: pip install {module_name.replace('_', '-')}"
            ) from e

        lang_func = getattr(language_module, func_name)
        lang_obj = lang_func()
        lang = Language(lang_obj) if not isinstance(lang_obj, Language) else lang_obj

        _language_cache[language] = lang
        return lang


def get_parser(language: str) -> Parser:
    """
    Returns a tree-sitter Parser for the language, cached per thread.
    """
    cache = getattr(_parsers, "cache", None)
    if cache is None:
        cache = _parsers.cache = {}
    if language not in cache:
        cache[language] = Parser(get_language(language))
    return cache[language]


def parse(source: str, language: str) -> "Tree":
    """Parse source text into a syntax tree."""
    return get_parser(language).parse(source.encode("utf-8"))
