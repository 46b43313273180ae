# src/codewise/core/tree.py
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from codewise.config import COLLAPSED_DIRS
from codewise.core.ignore import IgnoreMatcher
from codewise.models import DirectoryEntry, DirectoryNode, EntryKind, FileNode

logger = logging.getLogger(__name__)

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE_PREFIX = "│   "
SPACE_PREFIX = "    "
PLACEHOLDER = "..."


def _connector(is_last: bool) -> Tuple[str, str]:
    """Returns (connector, child prefix extension) for a sibling position."""
    if is_last:
        return LAST_BRANCH, SPACE_PREFIX
    return BRANCH, PIPE_PREFIX


def list_directory(directory: Path, base_dir: Path, matcher: IgnoreMatcher) -> List[DirectoryEntry]:
    """Lists a directory in filesystem order (unsorted)."""
    entries = []
    for name in os.listdir(directory):
        path = directory / name
        # Symlinked directories are shown but not followed
        is_dir = path.is_dir() and not path.is_symlink()
        kind = EntryKind.DIRECTORY if is_dir else EntryKind.FILE
        rel_path = path.relative_to(base_dir).as_posix()
        entries.append(DirectoryEntry(
            name=name,
            path=path,
            kind=kind,
            ignored=matcher.is_ignored(rel_path, is_directory=is_dir),
        ))
    return entries


def generate_full_tree(base_dir: Path, matcher: IgnoreMatcher, log: Optional[logging.Logger] = None) -> str:
    """
    Renders everything on disk under base_dir.

    Ignored files are still listed; ignored directories are listed but not
    expanded. node_modules/.git get a single "..." child and are never walked.
    """
    log = log or logger
    lines: List[str] = []

    def _walk(directory: Path, prefix: str):
        try:
            entries = list_directory(directory, base_dir, matcher)
        except OSError as e:
            log.warning(f"Could not list directory {directory}: {e}")
            return

        for i, entry in enumerate(entries):
            connector, extension = _connector(i == len(entries) - 1)
            lines.append(f"{prefix}{connector}{entry.name}")
            if not entry.is_dir:
                continue

            if entry.name in COLLAPSED_DIRS:
                lines.append(f"{prefix}{extension}{LAST_BRANCH}{PLACEHOLDER}")
            elif not entry.ignored:
                _walk(entry.path, prefix + extension)

    _walk(base_dir, "")
    return "".join(line + "\n" for line in lines)


def build_inclusion_tree(file_paths: Iterable[str]) -> DirectoryNode:
    """Builds a trie of path segments; insertion order follows file_paths."""
    root = DirectoryNode()
    for path in file_paths:
        parts = [p for p in path.split("/") if p]
        if not parts:
            continue
        current = root
        for part in parts[:-1]:
            child = current.children.get(part)
            if not isinstance(child, DirectoryNode):
                child = DirectoryNode()
                current.children[part] = child
            current = child
        current.children.setdefault(parts[-1], FileNode())
    return root


def render_tree(node: DirectoryNode) -> str:
    lines: List[str] = []

    def _render(children, prefix: str):
        entries = list(children.items())
        for i, (name, child) in enumerate(entries):
            connector, extension = _connector(i == len(entries) - 1)
            lines.append(f"{prefix}{connector}{name}")
            if isinstance(child, DirectoryNode):
                _render(child.children, prefix + extension)
            elif not isinstance(child, FileNode):
                raise TypeError(f"Unexpected tree node: {child!r}")

    _render(node.children, "")
    return "".join(line + "\n" for line in lines)


def generate_inclusion_tree(file_paths: Iterable[str]) -> str:
    """Renders the tree of the selected files."""
    return render_tree(build_inclusion_tree(file_paths))
