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

"""Path filtering for the directory walk.

Rules:
- Any file or directory whose name starts with '.' is skipped
- Additional directory names can be excluded per project (e.g. "vendor")
"""

from pathlib import Path
from typing import Iterable, Optional


def is_hidden_path(path: Path) -> bool:
    """Check if any component of the path is hidden.

    Hidden entries follow Unix convention: they start with '.'
    Excludes '.' and '..' which are special directory entries.

    Args:
        path: Path to check (usually relative to the project root)

    Returns:
        True if path contains any hidden component
    """
    for part in path.parts:
        if part.startswith(".") and part not in (".", ".."):
            return True
    return False


def should_ignore_path(
    path: Path,
    skip_dirs: Optional[Iterable[str]] = None,
) -> bool:
    """Check if a path should be ignored during the walk.

    Args:
        path: Path to check, relative to the project root
        skip_dirs: Directory names to skip in addition to hidden entries

    Returns:
        True if the path should be ignored

    Example:
        >>> should_ignore_path(Path("cmd/main.go"))
        False
        >>> should_ignore_path(Path(".git/config"))
        True
        >>> should_ignore_path(Path("vendor/lib/x.go"), skip_dirs={"vendor"})
        True
    """
    if is_hidden_path(path):
        return True
    if not skip_dirs:
        return False
    skip = set(skip_dirs)
    return any(part in skip for part in path.parts)
