import os
import posixpath
from pathlib import Path
from typing import Iterable, Iterator
from urllib.parse import unquote

from .config import ROOT_DOCUMENT
from .utils.logging import debug


def normalizePath(path: str) -> str | None:
	"""Normalizes a request path into a relative POSIX path, or `None`
	when it points outside of the root."""
	p = unquote(path).replace("\\", "/")
	if "\0" in p:
		return None
	p = posixpath.normpath("/" + p.lstrip("/")).lstrip("/")
	if p == ".." or p.startswith("../"):
		return None
	return "" if p == "." else p


class PublicFiles:
	"""An immutable snapshot of the files available under a directory,
	keyed by their normalized relative path."""

	__slots__ = ["root", "paths"]

	def __init__(self, root: Path, paths: Iterable[str] = ()) -> None:
		self.root: Path = root
		self.paths: frozenset[str] = frozenset(paths)

	def __contains__(self, path: object) -> bool:
		return path in self.paths

	def __iter__(self) -> Iterator[str]:
		return iter(self.paths)

	def __len__(self) -> int:
		return len(self.paths)

	def candidates(self, path: str) -> list[str]:
		"""Lists the index keys a request path may refer to, supporting
		directory indexes and clean URLs (`/about` for `about.html`)."""
		rel = normalizePath(path)
		if rel is None:
			return []
		elif not rel:
			return [ROOT_DOCUMENT]
		elif path.endswith("/"):
			return [f"{rel}/{ROOT_DOCUMENT}"]
		else:
			return [rel, f"{rel}.html", f"{rel}/{ROOT_DOCUMENT}"]

	def resolve(self, path: str) -> str | None:
		"""Returns the indexed relative path matching the request path."""
		for candidate in self.candidates(path):
			if candidate in self.paths:
				return candidate
		return None

	def __repr__(self) -> str:
		return f"(PublicFiles {self.root} :count {len(self.paths)})"


def buildIndex(distDir: str | Path) -> PublicFiles:
	"""Recursively lists the regular files under `distDir`. Symbolic links
	are followed, but a directory is only visited once (by real path) so
	that link cycles terminate. A missing directory gives an empty index."""
	root = Path(distDir)
	if not root.is_dir():
		debug("Output directory does not exist yet", Path=str(root))
		return PublicFiles(root)
	paths: list[str] = []
	visited: set[str] = set()
	queue: list[tuple[str, str]] = [(str(root), "")]
	while queue:
		directory, prefix = queue.pop()
		real = os.path.realpath(directory)
		if real in visited:
			continue
		visited.add(real)
		try:
			with os.scandir(directory) as entries:
				for item in entries:
					name = f"{prefix}{item.name}"
					try:
						if item.is_dir(follow_symlinks=True):
							queue.append((item.path, f"{name}/"))
						elif item.is_file(follow_symlinks=True):
							paths.append(name)
					except OSError:
						# Broken links and unreadable entries are skipped
						continue
		except OSError as e:
			debug("Unable to list directory", Path=directory, Error=str(e))
	return PublicFiles(root, paths)


# EOF
