"""Tests for the source model, import helpers and path predicates."""

import pytest

from multiaudit.errors import SourceParseError
from multiaudit.source import NodeCategory, read_source, split_lines
from multiaudit.source.imports import (
    ImportSection,
    classify,
    duplicate_statements,
    is_sorted,
    render_block,
    unused_bindings,
)
from multiaudit.source.paths import (
    find_project_root,
    first_party_packages,
    is_generated_path,
    is_stub_path,
    is_test_path,
)


class TestPythonSourceProvider:
    """Tests for parsing."""

    def test_parse_valid_source(self, parse):
        model = parse("x = 1\n")
        assert model.language == "python"
        assert model.root.category == NodeCategory.MODULE
        assert not model.has_errors

    def test_syntax_error_raises(self, provider):
        with pytest.raises(SourceParseError) as exc_info:
            provider.parse("broken.py", "def broken(:\n    pass\n")
        assert exc_info.value.path == "broken.py"
        assert "syntax error" in exc_info.value.reason

    def test_supports(self, provider):
        assert provider.supports("pkg/module.py")
        assert provider.supports("pkg/module.pyi")
        assert not provider.supports("README.md")

    def test_read_source_keeps_line_endings(self, tmp_path):
        path = tmp_path / "crlf.py"
        path.write_bytes(b"x = 1\r\ny = 2\r\n")
        assert read_source(path) == "x = 1\r\ny = 2\r\n"


class TestSourceModel:
    """Tests for the language-neutral model."""

    def test_offset_to_line_column(self, parse):
        model = parse("a = 1\nbb = 2\n")
        assert model.offset_to_line_column(0) == (1, 1)
        assert model.offset_to_line_column(6) == (2, 1)
        assert model.offset_to_line_column(8) == (2, 3)

    def test_offset_round_trip_with_unicode(self, parse):
        """Columns count characters, not UTF-8 bytes."""
        model = parse('name = "héllo"; value = None\n')
        node = model.find_kind("none")[0]
        line, column = model.offset_to_line_column(model.content.index("None"))

        assert (node.start_line, node.start_column) == (line, column)
        assert model.offset_of(line, column) == model.content.index("None")

    def test_lines_split_on_newline_only(self, provider):
        """Form feeds stay inside their line, matching parser rows."""
        model = provider.parse("legacy.py", "a = 1\n\x0c\nb = 2\r\n")

        assert model.line_count == 3
        assert model.line_text(2) == "\x0c"
        assert model.line_text(3) == "b = 2"
        assert model.find_kind("assignment")[1].start_line == 3

    def test_split_lines(self):
        assert split_lines("") == []
        assert split_lines("a\r\nb") == ["a", "b"]
        assert split_lines("a\r\nb", keepends=True) == ["a\r\n", "b"]
        assert split_lines("a\x1cb\n") == ["a\x1cb"]

    def test_offset_out_of_range(self, parse):
        model = parse("x = 1\n")
        with pytest.raises(ValueError):
            model.offset_to_line_column(100)

    def test_visit_reports_depth(self, parse):
        model = parse(
            """
            def outer():
                if True:
                    return 1
            """
        )
        seen = []
        model.visit(lambda node, depth: seen.append((node.category, depth)))

        assert seen[0] == (NodeCategory.MODULE, 0)
        branch_depth = next(depth for category, depth in seen if category == NodeCategory.BRANCH)
        function_depth = next(depth for category, depth in seen if category == NodeCategory.FUNCTION)
        assert branch_depth > function_depth

    def test_find_categories(self, parse):
        model = parse(
            """
            class Thing:
                def method(self):
                    for item in range(3):
                        try:
                            print(item)
                        except ValueError:
                            pass
            """
        )
        assert len(model.find(NodeCategory.CLASS)) == 1
        assert len(model.find(NodeCategory.FUNCTION)) == 1
        assert len(model.find(NodeCategory.LOOP)) == 1
        assert len(model.find(NodeCategory.HANDLER)) == 1

    def test_node_names_and_spans(self, parse):
        model = parse("def greet(name):\n    return name\n")
        func = model.find(NodeCategory.FUNCTION)[0]

        assert func.name == "greet"
        assert (func.start_line, func.end_line) == (1, 2)
        assert func.line_span == 2
        start, end = func.span
        assert model.content[start:end] == func.text

    def test_used_names_include_dunder_all_strings(self, parse):
        model = parse(
            """
            from json import dumps, loads

            __all__ = ["dumps"]
            """
        )
        assert "dumps" in model.used_names
        assert "loads" not in model.used_names


class TestImports:
    """Tests for import extraction and classification."""

    def test_extract_import_kinds(self, parse):
        model = parse(
            """
            from __future__ import annotations
            import os.path as osp
            from . import sibling
            from ..pkg.mod import a, b as c
            from typing import *
            """
        )
        future, plain, relative, parent, wildcard = model.imports

        assert future.is_future
        assert plain.kind == "import"
        assert plain.bindings[0].name == "os.path"
        assert plain.bindings[0].bound_name == "osp"
        assert relative.level == 1
        assert relative.module_key == "."
        assert parent.module_key == "..pkg.mod"
        assert [b.bound_name for b in parent.bindings] == ["a", "c"]
        assert wildcard.wildcard

    def test_classify_sections(self, parse):
        model = parse(
            """
            from __future__ import annotations
            import os
            import requests
            import myapp
            from . import local
            """
        )
        sections = [classify(s, frozenset({"myapp"})) for s in model.imports]
        assert sections == [
            ImportSection.FUTURE,
            ImportSection.STDLIB,
            ImportSection.THIRD_PARTY,
            ImportSection.FIRST_PARTY,
            ImportSection.LOCAL,
        ]

    def test_render_block_groups_sections(self, parse):
        model = parse("import requests\nimport sys\nimport os\n")

        assert not is_sorted(model.imports)
        assert render_block(model.imports) == ["import os", "import sys", "", "import requests"]

    def test_unused_bindings(self, parse, unused_import_source):
        model = parse(unused_import_source, path="main.py")
        unused = unused_bindings(model)

        assert len(unused) == 1
        statement, bindings = unused[0]
        assert statement.start_line == 3
        assert [b.name for b in bindings] == ["os"]

    def test_unused_bindings_skip_package_init(self, parse):
        model = parse("import os\n", path="pkg/__init__.py")
        assert unused_bindings(model) == []

    def test_reexport_alias_is_kept(self, parse):
        model = parse("from json import dumps as dumps\n")
        assert unused_bindings(model) == []

    def test_duplicate_statements(self, parse):
        model = parse("from os import path\nimport sys\nfrom os import sep\n")
        pairs = duplicate_statements(model)

        assert len(pairs) == 1
        first, repeat = pairs[0]
        assert (first.start_line, repeat.start_line) == (1, 3)


class TestPaths:
    """Tests for path predicates and project discovery."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("tests/helpers.py", True),
            ("pkg/test_module.py", True),
            ("pkg/module_test.py", True),
            ("conftest.py", True),
            ("pkg/testing.py", False),
            ("pkg/contest.py", False),
        ],
    )
    def test_is_test_path(self, path, expected):
        assert is_test_path(path) is expected

    def test_stub_and_generated(self):
        assert is_stub_path("pkg/api.pyi")
        assert not is_stub_path("pkg/api.py")
        assert is_generated_path("proto/service_pb2.py")
        assert is_generated_path("app/migrations/0001_initial.py")
        assert not is_generated_path("app/models.py")

    def test_find_project_root(self, project, write_file):
        module = write_file("pkg/sub/module.py", "x = 1\n")
        assert find_project_root(module) == project.resolve()

    def test_first_party_packages(self, project, write_file):
        write_file("pkg/__init__.py", "")
        write_file("src/other/__init__.py", "")
        write_file("script.py", "")
        write_file("setup.py", "")

        assert first_party_packages(project) == frozenset({"pkg", "other", "script"})
