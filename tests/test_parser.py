import pytest

from distpreview.http.model import (
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
)
from distpreview.http.parser import HTTPParser, parseQuery

REQUEST: bytes = (
	b"GET /assets/app.js?v=1&debug HTTP/1.1\r\n"
	b"Host: localhost\r\n"
	b"Accept: */*\r\n"
	b"\r\n"
)

POST: bytes = (
	b"POST /submit HTTP/1.1\r\n"
	b"Content-Type: text/plain\r\n"
	b"Content-Length: 11\r\n"
	b"\r\n"
	b"hello world"
)


def requests(parser: HTTPParser, *chunks: bytes) -> list[HTTPRequest]:
	return [
		_ for chunk in chunks for _ in parser.feed(chunk) if isinstance(_, HTTPRequest)
	]


def test_request():
	atoms = list(HTTPParser("127.0.0.1").feed(REQUEST))
	assert isinstance(atoms[0], HTTPRequestLine)
	assert isinstance(atoms[1], HTTPHeaders)
	req = atoms[-1]
	assert isinstance(req, HTTPRequest)
	assert req.method == "GET"
	assert req.path == "/assets/app.js"
	assert req.query == {"v": "1", "debug": ""}
	assert req.header("host") == "localhost"
	assert req.peer == "127.0.0.1"
	assert req.keepAlive


def test_request_fed_byte_by_byte():
	parser = HTTPParser()
	reqs = requests(parser, *(REQUEST[i : i + 1] for i in range(len(REQUEST))))
	assert len(reqs) == 1
	assert reqs[0].path == "/assets/app.js"
	assert reqs[0].header("Accept") == "*/*"


def test_body():
	(req,) = requests(HTTPParser(), POST[:60], POST[60:])
	assert req.body.raw == b"hello world"
	assert req.body.length == 11


def test_pipelined_requests():
	reqs = requests(HTTPParser(), POST + REQUEST + REQUEST)
	assert [_.method for _ in reqs] == ["POST", "GET", "GET"]
	assert reqs[0].body.raw == b"hello world"


def test_repeated_headers():
	(req,) = requests(
		HTTPParser(),
		b"GET / HTTP/1.1\r\nAccept: text/html\r\nAccept: */*\r\n\r\n",
	)
	assert req.headers["Accept"] == ["text/html", "*/*"]
	assert req.header("Accept") == "text/html, */*"


def test_connection_close():
	(req,) = requests(HTTPParser(), b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n")
	assert not req.keepAlive
	(req,) = requests(HTTPParser(), b"GET / HTTP/1.0\r\n\r\n")
	assert not req.keepAlive


def test_bad_request_line():
	atoms = list(HTTPParser().feed(b"NOT A REQUEST\r\n\r\n"))
	assert atoms == [HTTPProcessingStatus.BadFormat]


def test_oversized_request_line():
	atoms = list(HTTPParser().feed(b"GET /" + b"a" * 10_000))
	assert HTTPProcessingStatus.BadFormat in atoms


@pytest.mark.parametrize("length", [b"-5", b"+5", b"five", b"1e3"])
def test_invalid_content_length(length: bytes):
	parser = HTTPParser()
	atoms = list(parser.feed(b"GET / HTTP/1.1\r\nContent-Length: " + length + b"\r\n\r\n"))
	assert atoms[-1] is HTTPProcessingStatus.BadFormat
	assert not any(isinstance(_, HTTPRequest) for _ in atoms)
	# The parser is usable again for the following request
	(req,) = requests(parser, b"GET /next HTTP/1.1\r\n\r\n")
	assert req.path == "/next"


def test_parse_query():
	assert parseQuery("") == {}
	assert parseQuery("a=1&b=%20x") == {"a": "1", "b": " x"}


# EOF
