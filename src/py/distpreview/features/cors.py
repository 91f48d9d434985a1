from ..http.model import HTTPRequest, HTTPResponse
from ..middleware import Middleware, Next, StaticFiles

# SEE: http://stackoverflow.com/questions/16386148/why-browser-do-not-follow-redirects-using-xmlhttprequest-and-cors/20854800#20854800


def setCORSHeaders(
	response: HTTPResponse,
	*,
	origin: str | None = None,
	headers: list[str] | None = None,
	allowAll: bool = True,
) -> HTTPResponse:
	"""Sets the CORS headers on the given response.

	See <https://en.wikipedia.org/wiki/Cross-origin_resource_sharing>
	"""
	response.setHeaders(
		{
			"Access-Control-Allow-Origin": origin if origin and not allowAll else "*",
			"Access-Control-Allow-Headers": ",".join(headers) if headers else "*",
			"Access-Control-Allow-Methods": "GET, HEAD, OPTIONS",
			"Vary": None if allowAll else "Origin",
		}
	)
	return response


class CORSMiddleware(Middleware):
	"""Answers preflight requests and adds the CORS headers to every
	response going through it. Preflight answers also get the configured
	custom headers."""

	def __init__(self, files: StaticFiles | None = None, allowAll: bool = True) -> None:
		self.files: StaticFiles | None = files
		self.allowAll: bool = allowAll

	async def handle(self, request: HTTPRequest, next: Next) -> HTTPResponse:
		if request.method == "OPTIONS" and request.header("Access-Control-Request-Method"):
			response = request.respondEmpty(status=204)
			if self.files:
				self.files.decorate(response)
		else:
			response = await next()
		return setCORSHeaders(
			response, origin=request.header("Origin"), allowAll=self.allowAll
		)


# EOF
