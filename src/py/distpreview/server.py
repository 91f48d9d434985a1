import asyncio
import inspect
import threading
from contextlib import contextmanager
from pathlib import Path
from signal import SIGINT, SIGTERM
from typing import Any, Awaitable, Callable, Iterator, Mapping

from .index import PublicFiles, buildIndex
from .listener import ServerHandle, createListener
from .middleware import MiddlewareChain, RequestHandler, createChain
from .model import (
	PreviewState,
	ResolvedServerOptions,
	ResolvedUrls,
	TLSCredentials,
	UserConfig,
)
from .options import resolveOptions
from .resolver import resolveConfig
from .tls import resolveTLS
from .urls import openBrowser, printServerUrls, resolveServerUrls
from .utils.limits import LimitType, unlimit
from .utils.logging import event, info

ConfigResolver = Callable[..., UserConfig | Awaitable[UserConfig]]
TLSResolver = Callable[..., TLSCredentials | None]
ListenerFactory = Callable[
	[ResolvedServerOptions, RequestHandler, TLSCredentials | None], ServerHandle
]


class PreviewServer:
	"""Serves the build output directory. The server goes through
	`createServer()`, `listen()` and `close()`, in that order. A failure
	before listening leaves the instance failed, and a new one must be
	created to try again."""

	def __init__(
		self,
		inlineConfig: Mapping[str, Any] | None = None,
		*,
		configFile: str | Path | None = None,
		root: str | Path | None = None,
		configResolver: ConfigResolver = resolveConfig,
		tlsResolver: TLSResolver = resolveTLS,
		listenerFactory: ListenerFactory = createListener,
		urlPrinter: Callable[[ResolvedUrls, str], None] = printServerUrls,
	) -> None:
		self.inlineConfig: Mapping[str, Any] = inlineConfig or {}
		self.configFile: str | Path | None = configFile
		self.root: str | Path | None = root
		self.configResolver: ConfigResolver = configResolver
		self.tlsResolver: TLSResolver = tlsResolver
		self.listenerFactory: ListenerFactory = listenerFactory
		self.urlPrinter: Callable[[ResolvedUrls, str], None] = urlPrinter
		self.state: PreviewState = PreviewState.Uninitialized
		self.config: UserConfig | None = None
		self.options: ResolvedServerOptions | None = None
		self.index: PublicFiles | None = None
		self.chain: MiddlewareChain | None = None
		self.handle: ServerHandle | None = None
		self.resolvedUrls: ResolvedUrls | None = None

	@property
	def isListening(self) -> bool:
		return self.state is PreviewState.Listening

	def expect(self, state: PreviewState) -> None:
		if self.state is PreviewState.Failed:
			raise RuntimeError(
				"Preview server failed to start, a new instance must be created"
			)
		elif self.state is not state:
			raise RuntimeError(
				f"Preview server is {self.state.name}, expected {state.name}"
			)

	@contextmanager
	def failing(self) -> Iterator[None]:
		"""Any exception within marks the server as failed."""
		try:
			yield
		except BaseException:
			self.state = PreviewState.Failed
			raise

	async def createServer(self) -> "PreviewServer":
		"""Resolves the configuration and options, then builds the public
		files index, the middleware chain and the listener."""
		self.expect(PreviewState.Uninitialized)
		with self.failing():
			config = self.configResolver(
				self.inlineConfig, configFile=self.configFile, root=self.root
			)
			self.config = await config if inspect.isawaitable(config) else config
			options = resolveOptions(self.config)
			self.options = options
			self.state = PreviewState.Configured
			self.index = buildIndex(options.distDir)
			tls = self.tlsResolver(options.https, host=options.host)
			self.options = options = options._replace(tls=tls)
			self.chain = createChain(options, self.index)
			self.handle = self.listenerFactory(options, self.chain, tls)
			self.state = PreviewState.ServerBuilt
		info(
			"Preview server created",
			DistDir=str(options.distDir),
			Files=len(self.index),
		)
		return self

	async def listen(self) -> ResolvedUrls:
		"""Binds the configured address and prints the resolved URLs. The
		port is always strict in preview, so a port in use is fatal."""
		self.expect(PreviewState.ServerBuilt)
		options = self.options
		handle = self.handle
		if options is None or handle is None:
			raise RuntimeError("Preview server was not created")
		with self.failing():
			address = await handle.start(options.host, options.port, strictPort=True)
		self.state = PreviewState.Listening
		self.resolvedUrls = urls = resolveServerUrls(
			address, options.host, options.protocol
		)
		self.urlPrinter(urls, options.host)
		if options.open:
			openBrowser(urls, options.open)
		return urls

	async def close(self) -> None:
		"""Releases the listening socket, safe to call more than once. A closed
		server can't listen anymore."""
		if self.handle:
			await self.handle.close()
		if self.state is not PreviewState.Failed:
			self.state = PreviewState.Closed

	async def __aenter__(self) -> "PreviewServer":
		await self.createServer()
		await self.listen()
		return self

	async def __aexit__(self, *args: Any) -> None:
		await self.close()

	def __repr__(self) -> str:
		return f"(PreviewServer :state {self.state.name})"


async def serve(
	inlineConfig: Mapping[str, Any] | None = None,
	*,
	configFile: str | Path | None = None,
	root: str | Path | None = None,
	stopSignals: bool = True,
) -> None:
	"""Runs the preview server until SIGINT/SIGTERM is received."""
	stop = asyncio.Event()
	loop = asyncio.get_running_loop()
	# Signal handlers can only be registered from the main thread
	if stopSignals and threading.current_thread() is threading.main_thread():
		loop.add_signal_handler(SIGINT, stop.set)
		loop.add_signal_handler(SIGTERM, stop.set)
	async with PreviewServer(inlineConfig, configFile=configFile, root=root):
		await stop.wait()
		info("Preview server stopping…")


def run(
	inlineConfig: Mapping[str, Any] | None = None,
	*,
	configFile: str | Path | None = None,
	root: str | Path | None = None,
) -> None:
	"""High level function to run the preview server."""
	unlimit(LimitType.Files)
	try:
		asyncio.run(serve(inlineConfig, configFile=configFile, root=root))
	except KeyboardInterrupt:
		event("ManualShutdown")
	event("EOK")


# EOF
