import os
from pathlib import Path
from typing import Any, Mapping, TypeVar

from .config import DEFAULT_HOST, DEFAULT_OUTPUT, DEFAULT_PORT
from .model import ConfigError, ResolvedServerOptions, THeaders, UserConfig

T = TypeVar("T")

# -----------------------------------------------------------------------------
#
# PRECEDENCE
#
# -----------------------------------------------------------------------------


def precedence(preview: T | None, server: T | None = None, default: T | None = None) -> T | None:
	"""Returns the first of the preview option, the generic server option
	and the default that is set. `None` means unset, while falsy values
	such as `False` or `{}` are kept."""
	if preview is not None:
		return preview
	elif server is not None:
		return server
	else:
		return default


def absolute(base: Path, path: str | Path) -> Path:
	"""Resolves `path` against `base`, normalizing `..` segments."""
	return Path(os.path.normpath(os.path.join(base, path)))


def resolveDistDir(root: Path, distDir: str | None, outputPath: str | None) -> Path:
	"""The preview directory takes precedence, then an absolute output path,
	then the output path (or its default) relative to the root."""
	if distDir:
		return absolute(root, distDir)
	elif outputPath and os.path.isabs(outputPath):
		return Path(os.path.normpath(outputPath))
	else:
		return absolute(root, outputPath or DEFAULT_OUTPUT)


# -----------------------------------------------------------------------------
#
# VALIDATION
#
# -----------------------------------------------------------------------------


def resolveHost(host: Any) -> str:
	if host is None or host is False:
		return DEFAULT_HOST
	elif host is True:
		# Listens on all the interfaces
		return "0.0.0.0"  # nosec: B104
	elif isinstance(host, str) and host.strip() and not any(_.isspace() for _ in host):
		return host
	else:
		raise ConfigError(f"Invalid host: {host!r}")


def resolvePort(port: Any) -> int:
	if isinstance(port, str) and port.isdigit():
		port = int(port)
	if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
		raise ConfigError(f"Invalid port, expected an integer in 1-65535: {port!r}")
	return port


def resolveKeepAlive(value: Any) -> float:
	try:
		res = float(value)
	except (TypeError, ValueError):
		res = 0.0
	if not 0 < res < float("inf"):
		raise ConfigError(f"Invalid keep-alive timeout, expected seconds: {value!r}")
	return res


def resolveHeaders(headers: Mapping[str, Any] | None) -> THeaders:
	if headers is None:
		return {}
	elif not isinstance(headers, Mapping):
		raise ConfigError(f"Headers should be a mapping, got: {headers!r}")
	res: THeaders = {}
	for name, value in headers.items():
		if isinstance(value, (list, tuple)):
			res[str(name)] = [str(_) for _ in value]
		elif isinstance(value, (str, int, float)) and not isinstance(value, bool):
			res[str(name)] = str(value)
		else:
			raise ConfigError(f"Invalid value for header {name!r}: {value!r}")
	return res


def resolveOpen(value: Any) -> bool | str:
	if value is None:
		return False
	elif isinstance(value, (bool, str)):
		return value
	else:
		raise ConfigError(f"Invalid open option: {value!r}")


# -----------------------------------------------------------------------------
#
# OPTIONS
#
# -----------------------------------------------------------------------------


def resolveOptions(config: UserConfig) -> ResolvedServerOptions:
	"""Derives the server options from the user configuration, layering
	the preview options over the server ones and the defaults."""
	preview = config.preview
	server = config.server
	root: Path = Path(os.path.abspath(config.compilation.root or os.getcwd()))
	return ResolvedServerOptions(
		headers=resolveHeaders(precedence(preview.headers, server.headers)),
		host=resolveHost(preview.host),
		port=resolvePort(precedence(preview.port, None, DEFAULT_PORT)),
		strictPort=bool(precedence(preview.strictPort, None, False)),
		https=precedence(preview.https, server.https, False),
		tls=None,
		distDir=resolveDistDir(root, preview.distDir, config.compilation.output.path),
		open=resolveOpen(preview.open),
		cors=bool(precedence(preview.cors, None, False)),
		root=root,
	)


# EOF
