from .model import (
	PreviewError,
	ConfigError,
	ServerCreationError,
	BindError,
	ResolvedServerOptions,
	ResolvedUrls,
	TLSCredentials,
	UserConfig,
)  # NOQA: F401
from .server import PreviewServer, serve, run  # NOQA: F401
from .resolver import resolveConfig  # NOQA: F401


# EOF
