"""Tests for candidate file selection."""

from pathlib import Path

import pytest

from archgraph.config_manager import ScanConfig
from archgraph.errors import ScanError, SelectionError
from archgraph.selector import glob_match, matches_any, select_files


def _rel(root: Path, files) -> list:
    return sorted(p.relative_to(root).as_posix() for p in files)


class TestGlobMatch:
    """Tests for glob_match."""

    def test_double_star_prefix_matches_top_level(self):
        """A leading **/ may match zero directories."""
        assert glob_match("lib.rs", "**/*.rs")
        assert glob_match("src/deep/mod_a.rs", "**/*.rs")

    def test_case_sensitive(self):
        """Matching does not fold case."""
        assert not glob_match("src/Lib.RS", "**/*.rs")

    def test_directory_patterns(self):
        """Directory excludes match files at any depth below them."""
        assert glob_match("target/debug/build.rs", "target/**")
        assert glob_match("crates/x/target/out.rs", "**/target/**")
        assert not glob_match("src/target_utils.rs", "**/target/**")

    def test_hidden_pattern(self):
        """The hidden-file pattern matches dot entries at any level."""
        assert glob_match(".hidden.rs", "**/.*")
        assert glob_match("src/.cache/x.rs", "**/.*")
        assert not glob_match("src/visible.rs", "**/.*")

    def test_inner_double_star_matches_zero_directories(self):
        """A **/ after a directory may match nothing, so src/**/*.rs covers src/lib.rs."""
        assert glob_match("src/lib.rs", "src/**/*.rs")
        assert glob_match("src/gen.rs", "src/**/gen.rs")
        assert glob_match("src/a/b/gen.rs", "src/**/gen.rs")
        assert not glob_match("tests/gen.rs", "src/**/gen.rs")

    def test_repeated_double_star(self):
        """Each **/ segment may collapse independently."""
        assert glob_match("crates/core/src/lib.rs", "**/src/**/*.rs")
        assert glob_match("src/lib.rs", "**/src/**/*.rs")
        assert glob_match("a/x.rs", "a/**/**/x.rs")

    def test_matches_any(self):
        """matches_any is true when at least one pattern hits."""
        assert matches_any("src/a.rs", ["docs/**", "src/*"])
        assert not matches_any("src/a.rs", [])


class TestSelectFiles:
    """Tests for select_files."""

    def test_selects_rust_sources(self, make_crate):
        """Only .rs files are selected."""
        root = make_crate({
            "src/lib.rs": "pub fn a() {}\n",
            "src/notes.txt": "not rust\n",
            "README.md": "# readme\n",
        })

        assert _rel(root, select_files(root)) == ["src/lib.rs"]

    def test_include_pattern_covers_top_of_directory(self, make_crate):
        """An include of src/**/*.rs keeps files directly under src/."""
        root = make_crate({
            "src/lib.rs": "",
            "src/net/socket.rs": "",
            "build.rs": "",
        })
        config = ScanConfig(include_patterns=["src/**/*.rs"])

        assert _rel(root, select_files(root, config)) == ["src/lib.rs", "src/net/socket.rs"]

    def test_default_excludes(self, make_crate):
        """Build output and hidden directories are skipped by default."""
        root = make_crate({
            "src/lib.rs": "",
            "target/debug/gen.rs": "",
            ".git/hooks/x.rs": "",
            "node_modules/pkg/y.rs": "",
        })

        assert _rel(root, select_files(root)) == ["src/lib.rs"]

    def test_include_flags(self, make_crate):
        """Tests are included by default; examples, benches and docs are not."""
        root = make_crate({
            "src/lib.rs": "",
            "tests/it.rs": "",
            "examples/demo.rs": "",
            "benches/speed.rs": "",
            "docs/snippet.rs": "",
        })

        assert _rel(root, select_files(root)) == ["src/lib.rs", "tests/it.rs"]

        config = ScanConfig(include_tests=False, include_examples=True)
        assert _rel(root, select_files(root, config)) == ["examples/demo.rs", "src/lib.rs"]

    def test_exclude_wins_over_include(self, make_crate):
        """A file matching both lists is excluded."""
        root = make_crate({"src/gen/out.rs": "", "src/lib.rs": ""})
        config = ScanConfig(
            exclude_patterns=["src/gen/**"],
            include_patterns=["src/**"],
        )

        assert _rel(root, select_files(root, config)) == ["src/lib.rs"]

    def test_include_patterns_restrict(self, make_crate):
        """Files outside every include pattern are dropped."""
        root = make_crate({"src/lib.rs": "", "build.rs": ""})
        config = ScanConfig(include_patterns=["src/**"])

        assert _rel(root, select_files(root, config)) == ["src/lib.rs"]

    def test_max_file_size(self, make_crate):
        """Files larger than max_file_size are dropped, None disables the limit."""
        root = make_crate({"small.rs": "x", "big.rs": "x" * 100})

        assert _rel(root, select_files(root, ScanConfig(max_file_size=10))) == ["small.rs"]
        assert _rel(root, select_files(root, ScanConfig(max_file_size=None))) == ["big.rs", "small.rs"]

    def test_empty_directory(self, temp_dir: Path):
        """An empty root yields no files."""
        assert select_files(temp_dir) == []

    def test_missing_root(self, temp_dir: Path):
        """A missing root raises SelectionError."""
        missing = temp_dir / "nope"
        with pytest.raises(SelectionError) as excinfo:
            select_files(missing)
        assert excinfo.value.root == missing

    def test_file_root(self, temp_dir: Path):
        """A root that is a file is rejected as a scan error."""
        target = temp_dir / "lib.rs"
        target.write_text("", encoding="utf-8")

        with pytest.raises(ScanError):
            select_files(target)
