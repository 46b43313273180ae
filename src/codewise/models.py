# src/codewise/models.py
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Union


class CodewiseError(Exception):
    """Base class for codewise errors."""


class ConfigError(CodewiseError):
    """Invalid configuration value."""


class OutputError(CodewiseError):
    """The output document could not be written."""


class EntryKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class DirectoryEntry:
    """One entry visited while walking the full tree."""
    name: str
    path: Path
    kind: EntryKind
    ignored: bool = False

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


@dataclass(frozen=True)
class FileNode:
    """Leaf of the inclusion tree."""


@dataclass
class DirectoryNode:
    """Inner node of the inclusion tree; children keep insertion order."""
    children: Dict[str, "TreeNode"] = field(default_factory=dict)


TreeNode = Union[FileNode, DirectoryNode]
