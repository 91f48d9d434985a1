from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Generic, Iterable, Mapping, TypeVar

from ..utils.files import contentType as getContentType
from .status import HTTP_STATUS

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# API
#
# -----------------------------------------------------------------------------

# --
# == HTTP Request Response API
#
# Defines the high level API functions (orthogonal to the underlying model)
# to create responses from a request.


class ResponseFactory(ABC, Generic[T]):
	@abstractmethod
	def respond(
		self,
		content: Any = None,
		contentType: str | None = None,
		contentLength: int | None = None,
		status: int = 200,
		headers: Mapping[str, str | int | Iterable[str]] | None = None,
		message: str | None = None,
	) -> T: ...

	def error(
		self,
		status: int,
		content: str | None = None,
		contentType: str = "text/plain",
		headers: Mapping[str, str] | None = None,
	) -> T:
		message = HTTP_STATUS.get(status, "Server Error")
		return self.respond(
			content=message if content is None else content,
			contentType=contentType,
			status=status,
			message=message,
			headers=headers,
		)

	def notFound(
		self,
		content: str = "Not Found",
		contentType: str = "text/plain",
		*,
		status: int = 404,
	) -> T:
		return self.error(status, content=content, contentType=contentType)

	def notModified(self, headers: Mapping[str, str] | None = None) -> T:
		return self.respondEmpty(status=304, headers=headers)

	def respondFile(
		self,
		path: Path | str,
		headers: Mapping[str, str] | None = None,
		status: int = 200,
		contentType: str | None = None,
	) -> T:
		p: Path = path if isinstance(path, Path) else Path(path)
		base_headers = {
			"Content-Type": contentType or getContentType(p),
			"Content-Length": str(p.stat().st_size),
		}
		return self.respond(
			content=p,
			status=status,
			headers=base_headers | dict(headers) if headers else base_headers,
		)

	def respondEmpty(
		self, status: int, headers: Mapping[str, str] | None = None
	) -> T:
		return self.respond(content=None, status=status, headers=headers)


# EOF
