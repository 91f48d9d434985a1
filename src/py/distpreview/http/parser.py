from typing import Iterator, Literal
from urllib.parse import parse_qsl

from ..utils.io import LineParser
from .model import (
	HTTPAtom,
	HTTPBodyBlob,
	HTTPHeaders,
	HTTPProcessingStatus,
	HTTPRequest,
	HTTPRequestLine,
	THeaderValue,
	headername,
)


class MessageParser:
	"""Parses an HTTP request line."""

	__slots__ = ["line", "value"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser(limit=8_192)
		self.value: HTTPRequestLine | None = None

	def flush(self) -> HTTPRequestLine | None:
		res = self.value
		self.reset()
		return res

	def reset(self) -> "MessageParser":
		self.line.reset()
		self.value = None
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		"""Returns `True` when a line was parsed (`value` is `None` when the
		line is malformed), `None` when more data is needed."""
		line, read = self.line.feed(chunk, start)
		if line is None:
			return (True, read) if self.line.isOverflowing else (None, read)
		elif not line:
			# Empty lines before a request line are tolerated (RFC 9112 §2.2)
			return None, read
		else:
			parts: list[str] = line.decode("latin-1").split(" ")
			if len(parts) == 3 and parts[2].startswith("HTTP/"):
				method, target, protocol = parts
				p: list[str] = target.split("?", 1)
				self.value = HTTPRequestLine(
					method, p[0], p[1] if len(p) > 1 else "", protocol
				)
			return True, read

	def __str__(self) -> str:
		return f"MessageParser({self.value})"


class HeadersParser:
	__slots__ = ["headers", "contentType", "contentLength", "line", "size", "isMalformed"]

	def __init__(self) -> None:
		self.line: LineParser = LineParser(limit=8_192)
		self.headers: dict[str, THeaderValue] = {}
		self.contentType: str | None = None
		self.contentLength: int | None = None
		self.size: int = 0
		# Set when a header value makes the message unprocessable
		self.isMalformed: bool = False

	def flush(self) -> HTTPHeaders:
		res = HTTPHeaders(self.headers, self.contentType, self.contentLength)
		self.reset()
		return res

	def reset(self) -> "HeadersParser":
		self.line.reset()
		self.headers = {}
		self.contentType = None
		self.contentLength = None
		self.size = 0
		self.isMalformed = False
		return self

	@property
	def isOverflowing(self) -> bool:
		return self.line.isOverflowing or self.size > 65_536

	def feed(
		self, chunk: bytes, start: int = 0
	) -> tuple[str | Literal[False] | None, int]:
		"""Feeds data from chunk, starting at `start` offset. Returns
		a value and the number of bytes read. When the value is `None`, no
		header has been extracted, when the value is `False` it's the empty
		line ending the headers, otherwise it's the name of the parsed header."""
		line, read = self.line.feed(chunk, start)
		self.size += read
		if line is None:
			return None, read
		elif line:
			# Headers are expected to be in ASCII format
			ln: str = line.decode("latin-1")
			i = ln.find(":")
			if i == -1:
				return None, read
			h = ln[:i].strip().lower()
			v = ln[i + 1 :].strip()
			if h == "content-length":
				# Only plain digits, so that `-5` or `+5` are rejected (RFC 9110 §8.6)
				if v.isascii() and v.isdigit():
					self.contentLength = int(v)
				else:
					self.isMalformed = True
			elif h == "content-type":
				self.contentType = v
			n: str = headername(h)
			existing = self.headers.get(n)
			if existing is None:
				self.headers[n] = v
			elif isinstance(existing, list):
				existing.append(v)
			else:
				self.headers[n] = [existing, v]
			return n, read
		else:
			return False, read

	def __str__(self) -> str:
		return f"HeadersParser({self.headers})"


class BodyLengthParser:
	"""Parses the body of a request with ContentLength set"""

	__slots__ = ["expected", "read", "data"]

	def __init__(self) -> None:
		self.expected: int = 0
		self.read: int = 0
		self.data: list[bytes] = []

	def flush(self) -> HTTPBodyBlob:
		res = HTTPBodyBlob(b"".join(self.data), self.read)
		self.reset()
		return res

	def reset(self, length: int = 0) -> "BodyLengthParser":
		self.expected = length
		self.read = 0
		self.data.clear()
		return self

	def feed(self, chunk: bytes, start: int = 0) -> tuple[bool | None, int]:
		to_read: int = max(0, min(len(chunk) - start, self.expected - self.read))
		self.data.append(chunk[start : start + to_read])
		self.read += to_read
		return (True if self.read >= self.expected else None), to_read


class HTTPParser:
	"""A stateful HTTP request parser, fed with chunks as they are read
	from the connection. With pipelining, a single chunk may produce more
	than one request."""

	def __init__(self, peer: str | None = None) -> None:
		self.peer: str | None = peer
		self.message: MessageParser = MessageParser()
		self.headers: HeadersParser = HeadersParser()
		self.bodyLength: BodyLengthParser = BodyLengthParser()
		self.parser: MessageParser | HeadersParser | BodyLengthParser = self.message
		self.requestLine: HTTPRequestLine | None = None
		self.requestHeaders: HTTPHeaders | None = None

	def reset(self) -> "HTTPParser":
		self.requestLine = None
		self.requestHeaders = None
		self.parser = self.message.reset()
		return self

	def complete(self, body: HTTPBodyBlob) -> HTTPRequest:
		line = self.requestLine
		headers = self.requestHeaders
		self.reset()
		if line is None:
			raise RuntimeError("Request completed without a request line")
		return HTTPRequest(
			method=line.method,
			path=line.path,
			query=parseQuery(line.query),
			headers=headers or HTTPHeaders({}),
			body=body,
			protocol=line.protocol,
			peer=self.peer,
		)

	def feed(self, chunk: bytes) -> Iterator[HTTPAtom]:
		size: int = len(chunk)
		offset: int = 0
		while offset < size:
			# Partially read chunks are buffered by the underlying parser
			# until it is flushed, so we never need to re-feed them.
			value, read = self.parser.feed(chunk, offset)
			offset += read
			if self.parser is self.message:
				if value is None:
					continue
				line = self.message.flush()
				if line is None:
					yield HTTPProcessingStatus.BadFormat
					self.reset()
					return
				self.requestLine = line
				self.parser = self.headers.reset()
				yield line
			elif self.parser is self.headers:
				if self.headers.isOverflowing:
					yield HTTPProcessingStatus.BadFormat
					self.reset()
					return
				elif value is False:
					if self.headers.isMalformed:
						yield HTTPProcessingStatus.BadFormat
						self.headers.reset()
						self.reset()
						return
					headers = self.headers.flush()
					self.requestHeaders = headers
					yield headers
					if headers.contentLength:
						self.parser = self.bodyLength.reset(headers.contentLength)
						yield HTTPProcessingStatus.Body
					else:
						yield self.complete(HTTPBodyBlob())
			elif self.parser is self.bodyLength:
				if value:
					yield self.complete(self.bodyLength.flush())
			else:
				raise RuntimeError(f"Unsupported parser: {self.parser}")


def parseQuery(text: str) -> dict[str, str]:
	return dict(parse_qsl(text, keep_blank_values=True)) if text else {}


# EOF
