import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping, NamedTuple, TypeAlias, Union

from ..utils.io import DEFAULT_ENCODING
from .api import ResponseFactory
from .status import HTTP_STATUS, NO_BODY

THeaderValue: TypeAlias = str | list[str]

# -----------------------------------------------------------------------------
#
# HELPERS
#
# -----------------------------------------------------------------------------

# Cache of normalized header names, seeded with the ones that don't follow
# the `Kebab-Case` convention.
HEADER_NAMES: dict[str, str] = {
	"etag": "ETag",
	"www-authenticate": "WWW-Authenticate",
	"content-md5": "Content-MD5",
	"x-xss-protection": "X-XSS-Protection",
}


def headername(name: str) -> str:
	"""Normalizes the header name as `Kebab-Case`."""
	key: str = name.lower()
	if key in HEADER_NAMES:
		return HEADER_NAMES[key]
	else:
		normalized: str = "-".join(_.capitalize() for _ in key.split("-"))
		HEADER_NAMES[key] = normalized
		return normalized


def headervalue(value: str | int | Iterable[str | int]) -> THeaderValue:
	"""Normalizes a header value, which may have multiple occurrences."""
	if isinstance(value, (str, int)):
		return str(value)
	else:
		return [str(_) for _ in value]


# -----------------------------------------------------------------------------
#
# DATA MODEL
#
# -----------------------------------------------------------------------------


class HTTPRequestLine(NamedTuple):
	"""Represents a request status line"""

	method: str
	path: str
	query: str
	protocol: str


class HTTPHeaders(NamedTuple):
	"""Wraps HTTP headers, keeping key information for response/request processing."""

	headers: dict[str, THeaderValue]
	contentType: str | None = None
	contentLength: int | None = None

	@staticmethod
	def FromItems(items: Mapping[str, str | int | Iterable[str | int]]) -> "HTTPHeaders":
		headers: dict[str, THeaderValue] = {
			headername(k): headervalue(v) for k, v in items.items()
		}
		length = headers.get("Content-Length")
		content_type = headers.get("Content-Type")
		return HTTPHeaders(
			headers,
			contentType=content_type if isinstance(content_type, str) else None,
			contentLength=int(length) if isinstance(length, str) and length.isdigit() else None,
		)


class HTTPProcessingStatus(Enum):
	"""Internal parser/processor state management"""

	Body = 1
	BadFormat = 12


HTTPAtom: TypeAlias = Union[
	HTTPRequestLine,
	HTTPHeaders,
	HTTPProcessingStatus,
	"HTTPRequest",
]

# -----------------------------------------------------------------------------
#
# BODY
#
# -----------------------------------------------------------------------------


class HTTPBodyBlob(NamedTuple):
	"""Represents a body as bytes."""

	payload: bytes = b""
	length: int = 0

	@staticmethod
	def FromBytes(data: bytes) -> "HTTPBodyBlob":
		return HTTPBodyBlob(payload=data, length=len(data))

	@property
	def raw(self) -> bytes:
		return self.payload


class HTTPBodyFile(NamedTuple):
	"""Represents an HTTP body streamed from a file."""

	path: Path

	@property
	def length(self) -> int:
		return self.path.stat().st_size


THTTPBody: TypeAlias = HTTPBodyBlob | HTTPBodyFile


class HTTPBodyWriter(ABC):
	"""A generic writer for bodies, subclasses implement the actual
	transport."""

	__slots__ = ["chunkSize"]

	def __init__(self, chunkSize: int = 64_000) -> None:
		self.chunkSize: int = chunkSize

	async def write(self, body: THTTPBody | bytes | None) -> bool:
		"""Writes the given type of body."""
		if isinstance(body, bytes):
			return await self._writeBytes(body)
		elif isinstance(body, HTTPBodyBlob):
			return await self._writeBytes(body.payload)
		elif isinstance(body, HTTPBodyFile):
			return await self._writeFile(body.path)
		elif body is None:
			return True
		else:
			raise ValueError(f"Unsupported body format: {body}")

	async def _writeFile(self, path: Path) -> bool:
		# File reads happen in a worker thread so that a large file
		# doesn't stall the other connections.
		with open(path, "rb") as f:
			while chunk := await asyncio.to_thread(f.read, self.chunkSize):
				await self._writeBytes(chunk)
		return True

	@abstractmethod
	async def _writeBytes(self, chunk: bytes) -> bool: ...

	@abstractmethod
	async def flush(self) -> bool: ...


# -----------------------------------------------------------------------------
#
# REQUESTS
#
# -----------------------------------------------------------------------------


class HTTPRequest(ResponseFactory["HTTPResponse"]):
	"""Represents an HTTP requests, which also acts as a factory for
	responses."""

	__slots__ = [
		"protocol",
		"method",
		"path",
		"query",
		"peer",
		"_headers",
		"_body",
	]

	@staticmethod
	def Create(
		method: str,
		path: str,
		headers: Mapping[str, str] | None = None,
		*,
		query: dict[str, str] | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPRequest":
		return HTTPRequest(
			method=method,
			path=path,
			query=query,
			headers=HTTPHeaders.FromItems(headers or {}),
			protocol=protocol,
		)

	def __init__(
		self,
		method: str,
		path: str,
		query: dict[str, str] | None,
		headers: HTTPHeaders,
		body: HTTPBodyBlob | None = None,
		protocol: str = "HTTP/1.1",
		peer: str | None = None,
	):
		super().__init__()
		self.method: str = method
		self.path: str = path
		self.query: dict[str, str] | None = query
		self.protocol: str = protocol
		self.peer: str | None = peer
		self._headers: HTTPHeaders = headers
		self._body: HTTPBodyBlob | None = body

	@property
	def headers(self) -> dict[str, THeaderValue]:
		return self._headers.headers

	@property
	def body(self) -> HTTPBodyBlob:
		return self._body or HTTPBodyBlob()

	def header(self, name: str) -> str | None:
		value = self._headers.headers.get(headername(name))
		return ", ".join(value) if isinstance(value, list) else value

	@property
	def keepAlive(self) -> bool:
		connection = (self.header("Connection") or "").lower()
		if self.protocol == "HTTP/1.0":
			return connection == "keep-alive"
		else:
			return connection != "close"

	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: Mapping[str, str | int | Iterable[str]] | None = None,
		message: str | None = None,
	) -> "HTTPResponse":
		return HTTPResponse.Create(
			status=status,
			message=message,
			content=content,
			contentType=contentType,
			contentLength=contentLength,
			protocol="HTTP/1.1",
			headers=headers,
		)

	def __str__(self) -> str:
		return f"Request({self.method} {self.path}{f'?{self.query}' if self.query else ''} {self.headers})"


# -----------------------------------------------------------------------------
#
# RESPONSE
#
# -----------------------------------------------------------------------------


class HTTPResponse:
	"""An HTTP response."""

	__slots__ = [
		"protocol",
		"status",
		"message",
		"headers",
		"body",
	]

	@staticmethod
	def Create(
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		headers: Mapping[str, str | int | Iterable[str]] | None = None,
		status: int = 200,
		message: str | None = None,
		protocol: str = "HTTP/1.1",
	) -> "HTTPResponse":
		"""Factory method to create HTTP response objects."""
		updated: dict[str, THeaderValue] = (
			{headername(k): headervalue(v) for k, v in headers.items()}
			if headers
			else {}
		)
		body: THTTPBody | None = None
		if content is None:
			pass
		elif isinstance(content, str):
			body = HTTPBodyBlob.FromBytes(content.encode(DEFAULT_ENCODING))
		elif isinstance(content, bytes):
			body = HTTPBodyBlob.FromBytes(content)
		elif isinstance(content, Path):
			body = HTTPBodyFile(content.absolute())
		else:
			raise ValueError(f"Unsupported content {type(content)}:{content}")
		if contentType is not None:
			updated["Content-Type"] = contentType
		if status in NO_BODY:
			updated.pop("Content-Length", None)
		elif contentLength is not None:
			updated["Content-Length"] = str(contentLength)
		elif "Content-Length" not in updated:
			# Without a length, keep-alive clients can't delimit the body
			updated["Content-Length"] = str(body.length if body else 0)
		return HTTPResponse(
			status=status,
			message=message or HTTP_STATUS.get(status, "Unknown status"),
			headers=HTTPHeaders(
				updated,
				contentType=contentType,
				contentLength=contentLength,
			),
			body=None if status in NO_BODY else body,
			protocol=protocol,
		)

	def __init__(
		self,
		protocol: str,
		status: int,
		message: str | None,
		headers: HTTPHeaders,
		body: THTTPBody | None = None,
	):
		self.protocol: str = protocol
		self.status: int = status
		self.message: str | None = message
		self.headers: HTTPHeaders = headers
		self.body: THTTPBody | None = body

	def getHeader(self, name: str) -> str | None:
		value = self.headers.headers.get(headername(name))
		return ", ".join(value) if isinstance(value, list) else value

	def setHeader(
		self, name: str, value: str | int | Iterable[str | int] | None
	) -> "HTTPResponse":
		if value is None:
			self.headers.headers.pop(headername(name), None)
		else:
			self.headers.headers[headername(name)] = headervalue(value)
		return self

	def setHeaders(
		self, headers: Mapping[str, str | int | Iterable[str | int] | None]
	) -> "HTTPResponse":
		for k, v in headers.items():
			self.setHeader(k, v)
		return self

	def head(self) -> bytes:
		"""Serializes the head as a payload."""
		message: str = self.message or HTTP_STATUS.get(self.status, "Unknown status")
		lines: list[str] = [f"{self.protocol} {self.status} {message}"]
		for k, v in self.headers.headers.items():
			# Multi-valued headers are sent as repeated fields
			if isinstance(v, list):
				lines += [f"{k}: {_}" for _ in v]
			else:
				lines.append(f"{k}: {v}")
		lines.append("")
		lines.append("")
		# Header values are expected to be Latin-1 per RFC 9110
		return "\r\n".join(lines).encode("latin-1")

	def __str__(self) -> str:
		return f"Response({self.protocol} {self.status} {self.message} {self.headers} {self.body})"


# EOF
