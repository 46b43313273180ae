# src/codewise/core/selector.py
import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from codewise.config import COLLAPSED_DIRS, Config
from codewise.core.ignore import IgnoreMatcher

logger = logging.getLogger(__name__)

DEFAULT_INCLUDE = ("**/*",)


def split_pattern(pattern: str) -> List[str]:
    """Splits an include glob into segments anchored at the base directory."""
    pattern = pattern.strip()
    if pattern.startswith("./"):
        pattern = pattern[2:]
    return [seg for seg in pattern.split("/") if seg]


def _match_segments(parts: Sequence[str], segs: Sequence[str]) -> bool:
    if not segs:
        return not parts
    if segs[0] == "**":
        # "**" spans zero or more whole directories
        return any(_match_segments(parts[i:], segs[1:]) for i in range(len(parts) + 1))
    if not parts:
        return False
    return fnmatch.fnmatchcase(parts[0], segs[0]) and _match_segments(parts[1:], segs[1:])


def glob_match(rel_path: str, pattern: str) -> bool:
    """
    Glob match of a file path: "*" and "?" stay within one path segment,
    "**" crosses directories, and a leading dot needs no explicit match.
    """
    return _match_segments(rel_path.split("/"), split_pattern(pattern))


def include_patterns(patterns: Iterable[str]) -> List[str]:
    return [p for p in patterns if p.strip()] or list(DEFAULT_INCLUDE)


def iter_candidates(base_dir: Path, matcher: Optional[IgnoreMatcher] = None) -> Iterable[str]:
    """
    Yields every file under base_dir as a POSIX relative path, depth-first
    with names sorted so the order is stable for an unchanged tree.
    Dotfiles are included; node_modules and .git are pruned at any depth,
    as is any directory the matcher ignores.
    """
    for root, dirs, files in os.walk(base_dir):
        root_path = Path(root)

        # In-place edit of dirs controls where os.walk descends
        kept = []
        for d in sorted(dirs):
            if d in COLLAPSED_DIRS:
                continue
            rel_dir = (root_path / d).relative_to(base_dir).as_posix()
            if matcher is not None and matcher.is_ignored(rel_dir, is_directory=True):
                continue
            kept.append(d)
        dirs[:] = kept

        for f in sorted(files):
            yield (root_path / f).relative_to(base_dir).as_posix()


def select_files(
    base_dir: Path,
    config: Config,
    matcher: IgnoreMatcher,
    log: Optional[logging.Logger] = None,
) -> List[str]:
    """
    Returns the ordered relative paths of files to include: matched by an
    include pattern, not ignored, and no larger than config.max_file_size.
    """
    log = log or logger
    patterns = include_patterns(config.include)
    selected: List[str] = []

    for rel_path in iter_candidates(base_dir, matcher):
        # One candidate per file, so overlapping patterns cannot duplicate it
        if not any(glob_match(rel_path, p) for p in patterns):
            continue
        if matcher.is_ignored(rel_path):
            log.debug(f"Ignored: {rel_path}")
            continue

        try:
            size = (base_dir / rel_path).stat().st_size
        except OSError as e:
            # Vanished or unreadable since the walk; skip it
            log.debug(f"Skipping {rel_path} (stat failed: {e})")
            continue

        if size > config.max_file_size:
            log.debug(f"Too large ({size} bytes): {rel_path}")
            continue

        selected.append(rel_path)

    return selected
