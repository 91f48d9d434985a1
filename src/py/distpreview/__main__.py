import argparse
import sys
from typing import Any

from .model import ConfigError, PreviewError
from .server import run
from .utils.logging import error


def parseHeader(value: str) -> tuple[str, str]:
	name, sep, content = value.partition(":")
	if not (sep and name.strip()):
		raise argparse.ArgumentTypeError(f"Expected NAME:VALUE, got: {value}")
	return name.strip(), content.strip()


def parser() -> argparse.ArgumentParser:
	res = argparse.ArgumentParser(
		prog="distpreview",
		description="Serves the production build output for preview",
	)
	res.add_argument("root", nargs="?", default=None, help="Project root")
	res.add_argument("-c", "--config", dest="configFile", help="Configuration file")
	res.add_argument("--host", help="Host to listen on, 0.0.0.0 for all interfaces")
	res.add_argument("--port", type=int, help="Port to listen on (default 1911)")
	res.add_argument("--strict-port", dest="strictPort", action="store_true", default=None)
	res.add_argument("--dist-dir", dest="distDir", help="Directory to serve")
	res.add_argument("--https", action="store_true", default=None, help="Serve over TLS")
	res.add_argument("--cert", help="TLS certificate file (implies --https)")
	res.add_argument("--key", help="TLS private key file (implies --https)")
	res.add_argument(
		"--open", nargs="?", const=True, default=None, help="Opens the browser, optionally at PATH"
	)
	res.add_argument("--cors", action="store_true", default=None)
	res.add_argument(
		"-H",
		"--header",
		dest="headers",
		action="append",
		type=parseHeader,
		help="Custom response header, as NAME:VALUE",
	)
	return res


def inlineConfig(args: argparse.Namespace) -> dict[str, Any]:
	"""Maps the command line arguments to the configuration structure,
	unset arguments being `None`."""
	if bool(args.cert) != bool(args.key):
		raise ConfigError("Both --cert and --key must be given")
	headers: dict[str, Any] | None = None
	if args.headers:
		headers = {}
		for name, value in args.headers:
			headers.setdefault(name, []).append(value)
		headers = {k: v[0] if len(v) == 1 else v for k, v in headers.items()}
	return {
		"preview": {
			"host": args.host,
			"port": args.port,
			"strictPort": args.strictPort,
			"distDir": args.distDir,
			"https": {"cert": args.cert, "key": args.key} if args.cert else args.https,
			"open": args.open,
			"cors": args.cors,
			"headers": headers,
		}
	}


def main(argv: list[str] | None = None) -> int:
	args = parser().parse_args(argv)
	try:
		run(inlineConfig(args), configFile=args.configFile, root=args.root)
	except PreviewError as e:
		error(e.message, e.__class__.__name__)
		return 1
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
