import socket
import webbrowser

from .model import ResolvedUrls
from .utils.logging import info, warning
from .utils.term import Term

WILDCARD_HOSTS: frozenset[str] = frozenset(("", "0.0.0.0", "::", "0:0:0:0:0:0:0:0"))  # nosec: B104
LOOPBACK_HOSTS: frozenset[str] = frozenset(("localhost", "::1"))


def isLoopback(host: str) -> bool:
	return host in LOOPBACK_HOSTS or host.startswith("127.")


def formatURL(protocol: str, host: str, port: int, path: str = "/") -> str:
	if ":" in host:
		host = f"[{host}]"
	return f"{protocol}://{host}:{port}/{path.lstrip('/')}"


def networkAddresses() -> list[str]:
	"""Lists the IPv4 addresses of this machine, loopback excluded."""
	try:
		addresses = socket.gethostbyname_ex(socket.gethostname())[2]
	except OSError:
		return []
	return sorted({_ for _ in addresses if not isLoopback(_)})


def resolveServerUrls(address: tuple[str, int], host: str, protocol: str) -> ResolvedUrls:
	"""Derives the URLs to display from the bound address and the
	configured host."""
	port = address[1]
	if host in WILDCARD_HOSTS:
		return ResolvedUrls(
			local=[formatURL(protocol, "localhost", port)],
			network=[formatURL(protocol, _, port) for _ in networkAddresses()],
		)
	elif isLoopback(host):
		return ResolvedUrls(local=[formatURL(protocol, host, port)], network=[])
	else:
		return ResolvedUrls(local=[], network=[formatURL(protocol, host, port)])


def printServerUrls(urls: ResolvedUrls, host: str) -> None:
	for url in urls.local:
		info(f"➜ {Term.BOLD}Local{Term.RESET}:   {Term.Link(url)}")
	for url in urls.network:
		info(f"➜ {Term.BOLD}Network{Term.RESET}: {Term.Link(url)}")
	if not urls.network and host not in WILDCARD_HOSTS:
		info(f"➜ {Term.BOLD}Network{Term.RESET}: use --host to expose")


def openBrowser(urls: ResolvedUrls, target: bool | str) -> str | None:
	"""Opens the first resolved URL, with `target` as path when given."""
	candidates = urls.local or urls.network
	if not (target and candidates):
		return None
	url: str = candidates[0]
	if isinstance(target, str):
		url = f"{url.rstrip('/')}/{target.lstrip('/')}"
	if not webbrowser.open(url):
		warning("Unable to open browser", URL=url)
	return url


# EOF
