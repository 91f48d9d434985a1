import http.client
import socket
import ssl
from pathlib import Path
from typing import NamedTuple

import pytest

INDEX: bytes = b"<!doctype html><html><body><div id=app></div></body></html>"
SCRIPT: bytes = b"import('./chunk.js');console.log('app')"
STYLE: bytes = b"body{margin:0}"
ABOUT: bytes = b"<!doctype html><title>About</title>"
DOCS: bytes = b"<!doctype html><title>Docs</title>"


class Fetched(NamedTuple):
	status: int
	headers: http.client.HTTPMessage
	body: bytes


@pytest.fixture
def project(tmp_path: Path) -> Path:
	"""A project root with a built `dist` directory."""
	dist = tmp_path / "dist"
	(dist / "assets").mkdir(parents=True)
	(dist / "docs").mkdir()
	(dist / "index.html").write_bytes(INDEX)
	(dist / "app.abc123.js").write_bytes(SCRIPT)
	(dist / "assets" / "style.css").write_bytes(STYLE)
	(dist / "about.html").write_bytes(ABOUT)
	(dist / "docs" / "index.html").write_bytes(DOCS)
	return tmp_path


def freePort() -> int:
	with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
		s.bind(("127.0.0.1", 0))
		return s.getsockname()[1]


def fetch(
	port: int,
	path: str,
	headers: dict[str, str] | None = None,
	*,
	method: str = "GET",
	tls: bool = False,
) -> Fetched:
	"""Blocking client, to be run with `asyncio.to_thread`."""
	conn: http.client.HTTPConnection = (
		http.client.HTTPSConnection(
			"127.0.0.1",
			port,
			timeout=5,
			context=ssl._create_unverified_context(),  # nosec: B323
		)
		if tls
		else http.client.HTTPConnection("127.0.0.1", port, timeout=5)
	)
	try:
		conn.request(method, path, headers=headers or {})
		res = conn.getresponse()
		return Fetched(res.status, res.headers, res.read())
	finally:
		conn.close()


# EOF
