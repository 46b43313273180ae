# src/codewise/core/ignore.py
import logging
import re
from pathlib import Path, PurePath
from typing import Iterable, List, Optional, Union

import pathspec

logger = logging.getLogger(__name__)

# Characters with a special meaning in gitignore patterns
_GLOB_SPECIAL = re.compile(r"([\\*?\[\]!#])")


def to_posix(rel_path: Union[str, PurePath]) -> str:
    """Normalizes a relative path to the forward-slash form pathspec expects."""
    if isinstance(rel_path, PurePath):
        return rel_path.as_posix()
    return rel_path


def literal_pattern(rel_path: str) -> str:
    """Builds a root-anchored pattern that matches exactly one path."""
    escaped = _GLOB_SPECIAL.sub(r"\\\1", to_posix(rel_path).lstrip("/"))
    # Trailing spaces are stripped by gitignore unless escaped
    if escaped.endswith(" "):
        escaped = escaped[:-1] + "\\ "
    return "/" + escaped


class IgnoreMatcher:
    """Single predicate over excludes, the output file and .gitignore rules."""

    def __init__(self, patterns: Iterable[str]):
        self.patterns: List[str] = list(patterns)
        self._spec = pathspec.GitIgnoreSpec.from_lines(self.patterns)

    def is_ignored(self, rel_path: Union[str, PurePath], is_directory: bool = False) -> bool:
        path = to_posix(rel_path)
        if not path or path == ".":
            return False
        # A trailing slash lets directory-only patterns ("build/") apply
        if is_directory and not path.endswith("/"):
            path += "/"
        return self._spec.match_file(path)

    def __repr__(self) -> str:
        return f"IgnoreMatcher({len(self.patterns)} patterns)"


def build_ignore_matcher(
    exclude_patterns: Iterable[str],
    self_path: Optional[str],
    gitignore_content: Optional[str] = None,
) -> IgnoreMatcher:
    """
    Combines the ignore sources into one ruleset, in precedence order:
    1. configured exclude patterns
    2. the root .gitignore rules
    3. the output file itself (relative to the base directory)
    Later rules win, so a "!pattern" can re-include an earlier exclusion.
    The output file comes last so no negation can bring it back.
    """
    lines: List[str] = list(exclude_patterns)

    if gitignore_content:
        lines.extend(gitignore_content.splitlines())

    if self_path:
        posix_self = to_posix(self_path)
        # An output file outside the base directory can never be selected
        if not posix_self.startswith("../") and posix_self != "..":
            lines.append(literal_pattern(posix_self))

    return IgnoreMatcher(lines)


def load_gitignore(base_dir: Path, log: Optional[logging.Logger] = None) -> Optional[str]:
    """Returns the root .gitignore text, or None when there is none to use."""
    log = log or logger
    gitignore_file = base_dir / ".gitignore"
    if not gitignore_file.is_file():
        return None

    try:
        with open(gitignore_file, "r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Could not read {gitignore_file.name}: {e}")
        return None
