from abc import ABC, abstractmethod
from pathlib import Path
from typing import Awaitable, Callable, Iterable, TypeAlias

from .config import ROOT_DOCUMENT
from .http.model import HTTPRequest, HTTPResponse
from .index import PublicFiles
from .model import ResolvedServerOptions, THeaders
from .utils.files import contentType, etag, httpdate

Next: TypeAlias = Callable[[], Awaitable[HTTPResponse]]
RequestHandler: TypeAlias = Callable[[HTTPRequest], Awaitable[HTTPResponse]]

READ_METHODS: frozenset[str] = frozenset(("GET", "HEAD"))

# -----------------------------------------------------------------------------
#
# STATIC FILES
#
# -----------------------------------------------------------------------------


class StaticFiles:
	"""Creates the responses for files under the output directory, with
	validation headers and the configured custom headers."""

	def __init__(self, root: Path, headers: THeaders | None = None) -> None:
		self.root: Path = root
		self.headers: THeaders = dict(headers) if headers else {}

	def decorate(self, response: HTTPResponse) -> HTTPResponse:
		"""Applies the custom headers, which go on every response."""
		return response.setHeaders(self.headers) if self.headers else response

	def respond(self, request: HTTPRequest, path: str) -> HTTPResponse | None:
		"""Responds with the file at the given relative path, or returns
		`None` when it's gone since the index was built."""
		local_path: Path = self.root / path
		try:
			stat = local_path.stat()
		except OSError:
			return None
		tag: str = etag(stat)
		headers: dict[str, str] = {
			"ETag": tag,
			"Last-Modified": httpdate(stat.st_mtime),
			"Cache-Control": "no-cache",
		}
		expected = {_.strip() for _ in (request.header("If-None-Match") or "").split(",")}
		if tag in expected or "*" in expected:
			return self.decorate(request.notModified(headers))
		else:
			return self.decorate(
				request.respondFile(local_path, headers, contentType=contentType(path))
			)

	async def notFound(self, request: HTTPRequest) -> HTTPResponse:
		return self.decorate(request.notFound())


# -----------------------------------------------------------------------------
#
# MIDDLEWARE
#
# -----------------------------------------------------------------------------


class Middleware(ABC):
	"""A request handler that either responds or delegates to `next`."""

	@abstractmethod
	async def handle(self, request: HTTPRequest, next: Next) -> HTTPResponse: ...

	def __repr__(self) -> str:
		return f"({self.__class__.__name__})"


class PublicFileMiddleware(Middleware):
	"""Serves the files present in the public files index."""

	def __init__(self, index: PublicFiles, files: StaticFiles) -> None:
		self.index: PublicFiles = index
		self.files: StaticFiles = files

	async def handle(self, request: HTTPRequest, next: Next) -> HTTPResponse:
		if request.method in READ_METHODS and (path := self.index.resolve(request.path)):
			if res := self.files.respond(request, path):
				return res
		return await next()


def isNavigation(request: HTTPRequest) -> bool:
	"""Tells if the request is a browser navigation expecting HTML."""
	return request.method in READ_METHODS and "text/html" in (
		request.header("Accept") or ""
	)


class SPAFallbackMiddleware(Middleware):
	"""Serves the root document for HTML navigations, so that client-side
	routed applications can handle any path. As for public files, the root
	document is only served when it is in the startup index."""

	def __init__(
		self, files: StaticFiles, index: PublicFiles, document: str = ROOT_DOCUMENT
	) -> None:
		self.files: StaticFiles = files
		self.index: PublicFiles = index
		self.document: str = document

	async def handle(self, request: HTTPRequest, next: Next) -> HTTPResponse:
		if (
			isNavigation(request)
			and self.document in self.index
			and (res := self.files.respond(request, self.document))
		):
			return res
		return await next()


# -----------------------------------------------------------------------------
#
# CHAIN
#
# -----------------------------------------------------------------------------


class MiddlewareChain:
	"""Runs the middlewares in order, the last `next` going to `fallback`."""

	def __init__(self, middlewares: Iterable[Middleware], fallback: RequestHandler) -> None:
		self.middlewares: tuple[Middleware, ...] = tuple(middlewares)
		self.fallback: RequestHandler = fallback

	async def __call__(self, request: HTTPRequest) -> HTTPResponse:
		return await self.dispatch(request, 0)

	async def dispatch(self, request: HTTPRequest, index: int) -> HTTPResponse:
		if index < len(self.middlewares):
			return await self.middlewares[index].handle(
				request, lambda: self.dispatch(request, index + 1)
			)
		else:
			return await self.fallback(request)

	def __repr__(self) -> str:
		return f"(MiddlewareChain {' → '.join(repr(_) for _ in self.middlewares)})"


def createChain(options: ResolvedServerOptions, index: PublicFiles) -> MiddlewareChain:
	"""Assembles the chain, where public files must come before the SPA
	fallback or every asset would resolve to the root document."""
	# NOTE: Imported here as the CORS feature depends on `Middleware`
	from .features.cors import CORSMiddleware

	files = StaticFiles(options.distDir, options.headers)
	middlewares: list[Middleware] = [CORSMiddleware(files)] if options.cors else []
	middlewares += [
		PublicFileMiddleware(index, files),
		SPAFallbackMiddleware(files, index),
	]
	return MiddlewareChain(middlewares, files.notFound)


# EOF
