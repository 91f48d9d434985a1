from os import getenv

# Environment values are kept as given, `options` validates them
DEFAULT_PORT: int | str = getenv("PREVIEW_PORT", 1911)

DEFAULT_HOST: str = getenv("PREVIEW_HOST", "localhost")

# The output directory used when the build configuration doesn't name one
DEFAULT_OUTPUT: str = "dist"

# The document served to client-side routed navigations
ROOT_DOCUMENT: str = "index.html"

CONFIG_FILES: tuple[str, ...] = ("preview.config.toml", "preview.config.json")

LOG_REQUESTS: bool = getenv("PREVIEW_LOG_REQUESTS", "1") == "1"

# Idle time after which a keep-alive connection is closed
KEEPALIVE: float | str = getenv("PREVIEW_KEEPALIVE", 5.0)

# How many following ports are tried when the port isn't strict
PORT_PROBES: int = 5

# EOF
