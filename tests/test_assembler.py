# tests/test_assembler.py
import logging
import re
import xml.etree.ElementTree as ET
import pytest
from dataclasses import replace
from pathlib import Path

from codewise.config import DEFAULT_CONFIG, OutputFormat
from codewise.core.assembler import (
    CODE_CONTEXT_HEADER,
    FULL_TREE_HEADER,
    INCLUDED_FILES_HEADER,
    assemble,
    format_file_block,
    render_file,
)
from codewise.core.ignore import build_ignore_matcher, load_gitignore


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def project(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text("def hello():\n    print('hello')\n")
    (tmp_path / "README.md").write_text("# My Project")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "dep.js").write_text("dep")
    return tmp_path


def matcher_for(root: Path, config=DEFAULT_CONFIG):
    return build_ignore_matcher(config.exclude, "codewise-output.md", load_gitignore(root))


def test_document_sections_in_order(project):
    doc = assemble(project, DEFAULT_CONFIG, matcher_for(project))

    assert doc.startswith(FULL_TREE_HEADER)
    full = doc.index(FULL_TREE_HEADER)
    included = doc.index(INCLUDED_FILES_HEADER)
    context = doc.index(CODE_CONTEXT_HEADER)
    assert full < included < context

    inclusion_tree = doc[included + len(INCLUDED_FILES_HEADER):context]
    assert inclusion_tree == "├── README.md\n└── src\n    └── main.py\n"
    assert "node_modules" not in inclusion_tree
    assert "└── ..." in doc[:included]


def test_markdown_blocks(project):
    doc = assemble(project, DEFAULT_CONFIG, matcher_for(project))

    assert "```README.md\n# My Project\n```\n\n" in doc
    assert "```src/main.py\ndef hello():\n    print('hello')\n\n```\n\n" in doc
    assert doc.index("```README.md") < doc.index("```src/main.py")


def test_markdown_round_trip(tmp_path):
    content = "line one\r\nline two\n\ttabbed <b>&amp;</b>"
    (tmp_path / "notes.txt").write_bytes(content.encode("utf-8"))

    doc = assemble(tmp_path, DEFAULT_CONFIG, matcher_for(tmp_path))
    match = re.search(r"```(?P<info>[^\n]+)\n(?P<body>.*)\n```\n\n", doc, re.S)
    assert match.group("info") == "notes.txt"
    assert match.group("body") == content


def test_markdown_fence_outgrows_inner_backticks():
    content = "Example:\n```python\nx = 1\n```"
    block = format_file_block("docs/x.md", content, OutputFormat.MARKDOWN)
    assert block == f"````docs/x.md\n{content}\n````\n\n"


def test_xml_blocks(project):
    config = replace(DEFAULT_CONFIG, output_format=OutputFormat.XML)
    doc = assemble(project, config, matcher_for(project, config))

    assert '<file path="README.md">\n<![CDATA[# My Project]]>\n</file>\n\n' in doc
    assert "```" not in doc


@pytest.mark.parametrize("content", [
    "plain text",
    "<tag attr=\"1\">&amp;</tag>",
    "tricky ]]> terminator ]]> twice",
    "",
])
def test_xml_round_trip(content):
    block = format_file_block('dir/we"ird & name.txt', content, OutputFormat.XML)
    element = ET.fromstring(block)

    assert element.tag == "file"
    assert element.get("path") == 'dir/we"ird & name.txt'
    # The CDATA section sits on its own line between the tags
    assert (element.text or "\n\n")[1:-1] == content


def test_read_failure_becomes_inline_error(tmp_path, caplog):
    (tmp_path / "good.txt").write_text("fine")
    (tmp_path / "bad.txt").write_bytes(b"\xff\xfe\xfa not utf-8")

    with caplog.at_level("ERROR"):
        doc = assemble(tmp_path, DEFAULT_CONFIG, matcher_for(tmp_path))

    assert "Error reading file bad.txt:" in doc
    assert "```good.txt\nfine\n```" in doc
    assert "Error reading file bad.txt" in caplog.text


def test_render_file_missing(tmp_path):
    block = render_file(tmp_path, "gone.txt", OutputFormat.MARKDOWN)
    assert block.startswith("Error reading file gone.txt: ")
    assert block.endswith("\n\n")


def test_precomputed_selection_is_used(project):
    doc = assemble(project, DEFAULT_CONFIG, matcher_for(project), files=["README.md"])
    assert "```README.md" in doc
    assert "src/main.py" not in doc[doc.index(CODE_CONTEXT_HEADER):]


def test_injected_logger_receives_diagnostics(tmp_path):
    (tmp_path / "bad.txt").write_bytes(b"\xff\xff")
    sink = logging.getLogger("codewise-test-sink")
    sink.propagate = False
    handler = ListHandler()
    sink.addHandler(handler)
    try:
        assemble(tmp_path, DEFAULT_CONFIG, matcher_for(tmp_path), log=sink)
    finally:
        sink.removeHandler(handler)

    messages = [r.getMessage() for r in handler.records]
    assert any("Error reading file bad.txt" in m for m in messages)


def test_assemble_is_repeatable(project):
    matcher = matcher_for(project)
    assert assemble(project, DEFAULT_CONFIG, matcher) == assemble(project, DEFAULT_CONFIG, matcher)
