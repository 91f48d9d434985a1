from enum import Enum
from pathlib import Path
from typing import Any, Mapping, NamedTuple, TypeAlias

THeaders: TypeAlias = dict[str, str | list[str]]

# -----------------------------------------------------------------------------
#
# ERRORS
#
# -----------------------------------------------------------------------------


class PreviewError(Exception):
	"""Base class for the errors that abort the preview server startup."""

	def __init__(self, message: str):
		super().__init__(message)
		self.message: str = message


class ConfigError(PreviewError):
	"""Malformed or unreadable TLS material, invalid host or port values."""


class ServerCreationError(PreviewError):
	"""The underlying transport could not be constructed."""


class BindError(PreviewError):
	"""The requested address is unavailable."""

	def __init__(self, message: str, host: str, port: int):
		super().__init__(f"{message} ({host}:{port})")
		self.host: str = host
		self.port: int = port


# -----------------------------------------------------------------------------
#
# USER CONFIGURATION
#
# -----------------------------------------------------------------------------


class PreviewConfig(NamedTuple):
	distDir: str | None = None
	host: str | bool | None = None
	port: int | None = None
	strictPort: bool | None = None
	https: Any = None
	open: bool | str | None = None
	cors: bool | None = None
	headers: Mapping[str, Any] | None = None


class ServerConfig(NamedTuple):
	https: Any = None
	headers: Mapping[str, Any] | None = None


class OutputConfig(NamedTuple):
	path: str | None = None


class CompilationConfig(NamedTuple):
	root: str | None = None
	output: OutputConfig = OutputConfig()


class UserConfig(NamedTuple):
	"""The subset of the resolved user configuration that the preview
	server consumes."""

	preview: PreviewConfig = PreviewConfig()
	server: ServerConfig = ServerConfig()
	compilation: CompilationConfig = CompilationConfig()

	@staticmethod
	def FromDict(data: Mapping[str, Any]) -> "UserConfig":
		compilation: Mapping[str, Any] = data.get("compilation") or {}
		output: Mapping[str, Any] = compilation.get("output") or {}
		return UserConfig(
			preview=PreviewConfig(**pick(data.get("preview"), PreviewConfig._fields)),
			server=ServerConfig(**pick(data.get("server"), ServerConfig._fields)),
			compilation=CompilationConfig(
				root=compilation.get("root"),
				output=OutputConfig(**pick(output, OutputConfig._fields)),
			),
		)


def pick(data: Mapping[str, Any] | None, fields: tuple[str, ...]) -> dict[str, Any]:
	return {k: v for k, v in data.items() if k in fields} if data else {}


# -----------------------------------------------------------------------------
#
# SERVER MODEL
#
# -----------------------------------------------------------------------------


class TLSCredentials(NamedTuple):
	"""PEM encoded certificate chain and private key."""

	cert: bytes
	key: bytes
	ca: bytes | None = None
	passphrase: bytes | None = None


class ResolvedServerOptions(NamedTuple):
	headers: THeaders
	host: str
	port: int
	strictPort: bool
	# The raw HTTPS option, `tls` holds the credentials once resolved
	https: Any
	tls: TLSCredentials | None
	# Always absolute
	distDir: Path
	open: bool | str
	cors: bool
	root: Path

	@property
	def protocol(self) -> str:
		return "https" if self.tls else "http"


class ResolvedUrls(NamedTuple):
	local: list[str]
	network: list[str]


class PreviewState(Enum):
	Uninitialized = 0
	Configured = 1
	ServerBuilt = 2
	Listening = 3
	Closed = 4
	Failed = 10


# EOF
