import json
import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

from .config import CONFIG_FILES
from .model import ConfigError, UserConfig
from .options import absolute
from .utils.logging import debug

__doc__ = """\
Resolves the user configuration from an optional configuration file
(TOML or JSON) and inline options, typically coming from the command line.
"""


def findConfigFile(base: Path) -> Path | None:
	for name in CONFIG_FILES:
		if (path := base / name).is_file():
			return path
	return None


def loadConfigFile(path: Path) -> dict[str, Any]:
	try:
		text: bytes = path.read_bytes()
	except OSError as e:
		raise ConfigError(f"Unable to read configuration file {path}: {e}") from e
	try:
		match path.suffix:
			case ".toml":
				data = tomllib.loads(text.decode("utf8"))
			case ".json":
				data = json.loads(text)
			case _:
				raise ConfigError(f"Unsupported configuration format: {path}")
	except ValueError as e:
		raise ConfigError(f"Malformed configuration file {path}: {e}") from e
	if not isinstance(data, dict):
		raise ConfigError(f"Configuration file should define a mapping: {path}")
	return data


def merge(base: Mapping[str, Any], update: Mapping[str, Any]) -> dict[str, Any]:
	"""Deep merges `update` into a copy of `base`, where `None` values in
	`update` leave the base value untouched."""
	res: dict[str, Any] = dict(base)
	for k, v in update.items():
		if v is None:
			continue
		elif isinstance(v, Mapping) and isinstance(res.get(k), Mapping):
			res[k] = merge(res[k], v)
		else:
			res[k] = v
	return res


def section(data: Mapping[str, Any], name: str) -> dict[str, Any]:
	value = data.get(name)
	if value is None:
		return {}
	elif isinstance(value, Mapping):
		return dict(value)
	else:
		raise ConfigError(f"Configuration section '{name}' should be a mapping, got: {value!r}")


def resolveConfig(
	inline: Mapping[str, Any] | None = None,
	*,
	configFile: str | Path | None = None,
	root: str | Path | None = None,
) -> UserConfig:
	"""Loads the configuration file (given or found in the root) and layers
	the inline options on top of it."""
	base: Path = Path(os.path.abspath(root or os.getcwd()))
	path: Path | None = absolute(base, configFile) if configFile else findConfigFile(base)
	if configFile and not (path and path.is_file()):
		raise ConfigError(f"Configuration file not found: {path}")
	data: dict[str, Any] = merge(loadConfigFile(path) if path else {}, inline or {})
	compilation = section(data, "compilation")
	# A configured root is relative to the configuration file
	compilation["root"] = (
		str(absolute(path.parent if path else base, compilation["root"]))
		if compilation.get("root")
		else str(base)
	)
	compilation["output"] = section(compilation, "output")
	data = data | {
		"preview": section(data, "preview"),
		"server": section(data, "server"),
		"compilation": compilation,
	}
	debug(
		"Configuration resolved",
		File=str(path) if path else None,
		Root=compilation["root"],
	)
	return UserConfig.FromDict(data)


# EOF
