# src/codewise/core/assembler.py
import logging
import re
from pathlib import Path
from typing import List, Optional, Sequence
from xml.sax.saxutils import quoteattr

from codewise.config import Config, OutputFormat
from codewise.core.ignore import IgnoreMatcher
from codewise.core.selector import select_files
from codewise.core.tree import generate_full_tree, generate_inclusion_tree

logger = logging.getLogger(__name__)

FULL_TREE_HEADER = "Full File Tree:\n\n"
INCLUDED_FILES_HEADER = "\nIncluded Files:\n\n"
CODE_CONTEXT_HEADER = "\nCode Context:\n\n"

_BACKTICK_RUN = re.compile(r"`{3,}")


def _cdata(content: str) -> str:
    # "]]>" would close the section early; split it across two sections
    return "<![CDATA[" + content.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def _fence_for(content: str) -> str:
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN.finditer(content)), default=2)
    return "`" * (longest + 1)


def format_file_block(rel_path: str, content: str, output_format: OutputFormat) -> str:
    if output_format is OutputFormat.XML:
        return f"<file path={quoteattr(rel_path)}>\n{_cdata(content)}\n</file>\n\n"

    fence = _fence_for(content)
    return f"{fence}{rel_path}\n{content}\n{fence}\n\n"


def render_file(
    base_dir: Path,
    rel_path: str,
    output_format: OutputFormat,
    log: Optional[logging.Logger] = None,
) -> str:
    """Reads one file and formats it; a read failure becomes an inline error line."""
    log = log or logger
    try:
        # newline="" keeps the bytes' line endings untouched
        with open(base_dir / rel_path, "r", encoding="utf-8", newline="") as f:
            content = f.read()
    except (OSError, UnicodeDecodeError) as e:
        log.error(f"Error reading file {rel_path}: {e}")
        return f"Error reading file {rel_path}: {e}\n\n"

    return format_file_block(rel_path, content, output_format)


def assemble(
    base_dir: Path,
    config: Config,
    matcher: IgnoreMatcher,
    files: Optional[Sequence[str]] = None,
    log: Optional[logging.Logger] = None,
) -> str:
    """
    Builds the whole document: full tree, inclusion tree, then one block per
    selected file. Pass `files` to reuse a selection already computed.
    """
    log = log or logger
    if files is None:
        files = select_files(base_dir, config, matcher, log=log)

    parts: List[str] = [FULL_TREE_HEADER, generate_full_tree(base_dir, matcher, log=log)]
    parts.append(INCLUDED_FILES_HEADER)
    parts.append(generate_inclusion_tree(files))
    parts.append(CODE_CONTEXT_HEADER)

    for rel_path in files:
        parts.append(render_file(base_dir, rel_path, config.output_format, log=log))

    log.debug(f"Assembled {len(files)} file blocks")
    return "".join(parts)
