import os
from pathlib import Path

import pytest

from distpreview.index import buildIndex, normalizePath


def test_lists_files_recursively(project: Path):
	index = buildIndex(project / "dist")
	assert set(index) == {
		"index.html",
		"app.abc123.js",
		"assets/style.css",
		"about.html",
		"docs/index.html",
	}
	assert "assets/style.css" in index
	assert "assets" not in index


def test_missing_directory_is_empty(tmp_path: Path):
	index = buildIndex(tmp_path / "dist")
	assert len(index) == 0


def test_snapshot(project: Path):
	index = buildIndex(project / "dist")
	(project / "dist" / "late.js").write_text("late")
	assert "late.js" not in index


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="Symbolic links unavailable")
def test_symlinks_followed_without_cycles(project: Path, tmp_path: Path):
	dist = project / "dist"
	outside = tmp_path / "shared"
	outside.mkdir()
	(outside / "logo.svg").write_text("<svg/>")
	os.symlink(outside, dist / "shared")
	os.symlink(dist, dist / "assets" / "loop")
	os.symlink(outside / "logo.svg", dist / "logo.svg")
	index = buildIndex(dist)
	assert "shared/logo.svg" in index
	assert "logo.svg" in index
	assert not any(_.startswith("assets/loop/") for _ in index)


@pytest.mark.parametrize(
	"path, expected",
	[
		("/", ""),
		("/app.js", "app.js"),
		("/a/./b/../c.js", "a/c.js"),
		("/assets%2Fstyle.css", "assets/style.css"),
		("//double//slash.js", "double/slash.js"),
		("/../etc/passwd", "etc/passwd"),
		("/a\\..\\..\\b", "b"),
	],
)
def test_normalize_path(path: str, expected: str):
	assert normalizePath(path) == expected


def test_normalize_rejects_nul():
	assert normalizePath("/a%00.js") is None


def test_resolve_candidates(project: Path):
	index = buildIndex(project / "dist")
	assert index.resolve("/") == "index.html"
	assert index.resolve("/app.abc123.js") == "app.abc123.js"
	assert index.resolve("/about") == "about.html"
	assert index.resolve("/docs") == "docs/index.html"
	assert index.resolve("/docs/") == "docs/index.html"
	assert index.resolve("/about/") is None
	assert index.resolve("/missing.js") is None


# EOF
