import mimetypes
import os
import re
from email.utils import formatdate
from pathlib import Path

mimetypes.init()

# Module loaders in browsers reject ambiguous MIME types, so anything that
# looks like a script is served as `text/javascript`.
RE_JAVASCRIPT: re.Pattern[str] = re.compile(r"\.(?:[jt]sx?|m[jt]s|c[jt]s)$")

MIME_TYPES: dict[str, str] = dict(
	html="text/html; charset=utf-8",
	htm="text/html; charset=utf-8",
	json="application/json",
	map="application/json",
	wasm="application/wasm",
	webmanifest="application/manifest+json",
	svg="image/svg+xml",
	woff2="font/woff2",
	avif="image/avif",
	gz="application/x-gzip",
	bz2="application/x-bzip",
)


def isJavaScript(path: Path | str) -> bool:
	return RE_JAVASCRIPT.search(str(path)) is not None


def contentType(path: Path | str) -> str:
	"""Guesses the content type from the given path"""
	name = str(path)
	if isJavaScript(name):
		return "text/javascript"
	elif name.endswith("importmap.json"):
		return "application/importmap+json"
	else:
		return (
			res
			if (res := MIME_TYPES.get(name.rsplit(".", 1)[-1].lower()))
			else mimetypes.guess_type(name)[0] or "application/octet-stream"
		)


def etag(stat: os.stat_result) -> str:
	"""A weak entity tag derived from the file size and modification time."""
	return f'W/"{stat.st_size}-{int(stat.st_mtime * 1000)}"'


def httpdate(timestamp: float) -> str:
	return formatdate(timestamp, usegmt=True)


# EOF
