import asyncio
import errno
import os
import socket
import ssl
import tempfile
from pathlib import Path
from typing import NamedTuple

from .config import KEEPALIVE, LOG_REQUESTS, PORT_PROBES
from .http.model import HTTPBodyWriter, HTTPProcessingStatus, HTTPRequest, HTTPResponse
from .http.parser import HTTPParser
from .http.status import HTTP_STATUS
from .middleware import RequestHandler
from .model import (
	BindError,
	ResolvedServerOptions,
	ServerCreationError,
	THeaders,
	TLSCredentials,
)
from .options import resolveKeepAlive
from .utils.logging import debug, event, exception, info, logged, warning


def errorPayload(status: int, headers: THeaders | None = None) -> bytes:
	"""Serializes the response sent when the connection can't go on, which
	closes it."""
	message: str = HTTP_STATUS[status]
	res = HTTPResponse.Create(
		message,
		contentType="text/plain",
		status=status,
		headers={"Connection": "close"},
	)
	if headers:
		res.setHeaders(headers)
	return res.head() + message.encode("latin-1")


class ListenerOptions(NamedTuple):
	backlog: int = 511
	readsize: int = 64_000
	# Idle time after which a keep-alive connection is closed
	keepalive: float = 5.0
	logRequests: bool = LOG_REQUESTS
	# Custom headers, also sent with the responses written by the listener
	headers: THeaders | None = None


class StreamBodyWriter(HTTPBodyWriter):
	"""Writes bodies to an asyncio stream, applying backpressure."""

	def __init__(self, writer: asyncio.StreamWriter, chunkSize: int = 64_000) -> None:
		super().__init__(chunkSize)
		self.writer: asyncio.StreamWriter = writer

	async def _writeBytes(self, chunk: bytes) -> bool:
		if chunk:
			self.writer.write(chunk)
			await self.writer.drain()
		return True

	async def flush(self) -> bool:
		await self.writer.drain()
		return True


# -----------------------------------------------------------------------------
#
# TRANSPORT
#
# -----------------------------------------------------------------------------


def createSSLContext(tls: TLSCredentials) -> ssl.SSLContext:
	"""Creates the server TLS context. The standard library only loads
	certificates from files, so the material transits through a private
	temporary directory."""
	try:
		context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
		context.minimum_version = ssl.TLSVersion.TLSv1_2
		with tempfile.TemporaryDirectory(prefix="preview-tls-") as tmp:
			cert_path = Path(tmp) / "cert.pem"
			key_path = Path(tmp) / "key.pem"
			cert_path.write_bytes(tls.cert + (b"\n" + tls.ca if tls.ca else b""))
			key_path.write_bytes(tls.key)
			os.chmod(key_path, 0o600)
			context.load_cert_chain(cert_path, key_path, password=tls.passphrase)
		# NOTE: HTTP/2 framing isn't supported, so ALPN only offers HTTP/1.1
		context.set_alpn_protocols(["http/1.1"])
	except (ssl.SSLError, OSError, ValueError, TypeError) as e:
		raise ServerCreationError(f"Unable to create TLS context: {e}") from e
	return context


def openSocket(host: str, port: int, backlog: int) -> socket.socket:
	"""Creates a non-blocking listening socket for the given address."""
	family, kind, proto, _, address = socket.getaddrinfo(
		host or None, port, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE
	)[0]
	sock = socket.socket(family, kind, proto)
	try:
		if os.name == "posix":
			# Allows restarting right away while connections are in TIME_WAIT,
			# a listening socket on the port still makes `bind` fail.
			sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
		sock.bind(address)
		sock.listen(backlog)
		sock.setblocking(False)
	except BaseException:
		sock.close()
		raise
	return sock


def bindSocket(host: str, port: int, *, strictPort: bool, backlog: int = 511) -> socket.socket:
	"""Binds to host:port, trying the following ports when the port is
	taken and not strict."""
	candidate: int = port
	while True:
		try:
			return openSocket(host, candidate, backlog)
		except socket.gaierror as e:
			raise BindError(f"Unable to resolve host: {e}", host, port) from e
		except OSError as e:
			if e.errno != errno.EADDRINUSE:
				raise BindError(f"Unable to bind: {e.strerror or e}", host, candidate) from e
			elif strictPort or candidate >= min(port + PORT_PROBES, 65535):
				raise BindError("Port is already in use", host, candidate) from e
			warning(f"Port {candidate} is in use, trying another one", Host=host)
			candidate += 1


# -----------------------------------------------------------------------------
#
# SERVER HANDLE
#
# -----------------------------------------------------------------------------


class ServerHandle:
	"""Wraps the listening socket and processes the connections with the
	entry point. The handle is created bound to its entry point, and only
	accepts connections once started."""

	def __init__(
		self,
		entry: RequestHandler,
		*,
		context: ssl.SSLContext | None = None,
		options: ListenerOptions = ListenerOptions(),
	) -> None:
		self.entry: RequestHandler = entry
		self.context: ssl.SSLContext | None = context
		self.options: ListenerOptions = options
		self.server: asyncio.Server | None = None
		self.clients: set[asyncio.StreamWriter] = set()
		self.serverError: bytes = errorPayload(500, options.headers)
		self.badRequest: bytes = errorPayload(400, options.headers)

	@property
	def protocol(self) -> str:
		return "https" if self.context else "http"

	@property
	def isListening(self) -> bool:
		return self.server is not None

	@property
	def address(self) -> tuple[str, int] | None:
		if self.server and self.server.sockets:
			name = self.server.sockets[0].getsockname()
			return name[0], name[1]
		return None

	async def start(self, host: str, port: int, *, strictPort: bool = True) -> tuple[str, int]:
		"""Binds the address and starts accepting connections, returning the
		bound address."""
		if self.server:
			raise RuntimeError(f"Server is already listening on {self.address}")
		sock = bindSocket(host, port, strictPort=strictPort, backlog=self.options.backlog)
		try:
			self.server = await asyncio.start_server(
				self.onConnection,
				sock=sock,
				ssl=self.context,
				backlog=self.options.backlog,
			)
		except BaseException:
			sock.close()
			raise
		address = self.address
		if address is None:
			raise RuntimeError("Server has no listening socket")
		info(
			"Preview server listening",
			icon="🚀",
			Host=address[0],
			Port=address[1],
			Protocol=self.protocol,
		)
		return address

	async def close(self) -> None:
		"""Stops listening and waits for the socket to be released. Open
		connections are aborted. Calling it again is a no-op."""
		server, self.server = self.server, None
		if server is None:
			return
		server.close()
		for client in list(self.clients):
			client.transport.abort()
		await server.wait_closed()
		info("Preview server closed")

	async def onConnection(
		self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
	) -> None:
		"""Processes the requests of a connection, as long as it is kept
		alive."""
		self.clients.add(writer)
		peer = writer.get_extra_info("peername")
		parser = HTTPParser(peer=f"{peer[0]}:{peer[1]}" if peer else None)
		body = StreamBodyWriter(writer, self.options.readsize)
		keep_alive: bool = True
		req_count: int = 0
		try:
			while keep_alive:
				try:
					chunk = await asyncio.wait_for(
						reader.read(self.options.readsize),
						timeout=self.options.keepalive,
					)
				except asyncio.TimeoutError:
					logged(debug) and debug("Client timed out", Requests=req_count)
					break
				if not chunk:
					# A no-data means a close
					break
				for atom in parser.feed(chunk):
					if atom is HTTPProcessingStatus.BadFormat:
						warning("Malformed request", Client=parser.peer)
						await body.write(self.badRequest)
						keep_alive = False
						break
					elif isinstance(atom, HTTPRequest):
						req_count += 1
						keep_alive = atom.keepAlive
						if await self.send(atom, body, keepAlive=keep_alive) is None:
							keep_alive = False
						if not keep_alive:
							break
		except (ConnectionError, ssl.SSLError) as e:
			logged(debug) and debug("Connection lost", Client=parser.peer, Error=str(e))
		except Exception as e:
			exception(e)
		finally:
			self.clients.discard(writer)
			writer.close()
			try:
				await writer.wait_closed()
			except (ConnectionError, ssl.SSLError):
				# The client may have gone away already
				pass

	async def send(
		self, request: HTTPRequest, writer: HTTPBodyWriter, *, keepAlive: bool = True
	) -> HTTPResponse | None:
		"""Processes the request with the entry point and sends the
		response using the given writer."""
		if self.options.logRequests:
			event(request.method, request.path)
		try:
			res = await self.entry(request)
		except Exception as e:
			exception(e)
			await writer.write(self.serverError)
			return None
		if not keepAlive:
			res.setHeader("Connection", "close")
		await writer.write(res.head())
		if request.method != "HEAD":
			await writer.write(res.body)
		await writer.flush()
		return res


def createListener(
	options: ResolvedServerOptions,
	entry: RequestHandler,
	tls: TLSCredentials | None,
) -> ServerHandle:
	"""Creates a server handle bound to `entry`, terminating TLS when
	credentials are given. The handle doesn't listen until started."""
	debug(
		"Creating listener",
		Protocol="https" if tls else "http",
		Host=options.host,
		Port=options.port,
	)
	return ServerHandle(
		entry,
		context=createSSLContext(tls) if tls else None,
		options=ListenerOptions(
			keepalive=resolveKeepAlive(KEEPALIVE),
			headers=options.headers,
		),
	)


# EOF
