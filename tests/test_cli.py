import pytest

from distpreview import __main__ as cli
from distpreview.model import BindError


def test_unset_arguments_are_none():
	preview = cli.inlineConfig(cli.parser().parse_args([]))["preview"]
	assert all(_ is None for _ in preview.values())


def test_arguments():
	args = cli.parser().parse_args(
		[
			"site",
			"--host",
			"0.0.0.0",
			"--port",
			"4000",
			"--open",
			"/docs",
			"-H",
			"X-A: 1",
			"-H",
			"X-B:2",
			"-H",
			"X-B: 3",
			"--cors",
		]
	)
	assert args.root == "site"
	preview = cli.inlineConfig(args)["preview"]
	assert preview["host"] == "0.0.0.0"
	assert preview["port"] == 4000
	assert preview["open"] == "/docs"
	assert preview["cors"] is True
	assert preview["headers"] == {"X-A": "1", "X-B": ["2", "3"]}


def test_open_without_path():
	assert cli.inlineConfig(cli.parser().parse_args(["--open"]))["preview"]["open"] is True


def test_certificate_implies_https():
	args = cli.parser().parse_args(["--cert", "cert.pem", "--key", "key.pem"])
	assert cli.inlineConfig(args)["preview"]["https"] == {
		"cert": "cert.pem",
		"key": "key.pem",
	}


def test_certificate_requires_key():
	assert cli.main(["--cert", "cert.pem"]) == 1


def test_invalid_header():
	with pytest.raises(SystemExit):
		cli.parser().parse_args(["-H", "no-separator"])


def test_startup_failure_exit_code(monkeypatch: pytest.MonkeyPatch):
	def failing(*args, **kwargs):
		raise BindError("Port is already in use", "localhost", 1911)

	monkeypatch.setattr(cli, "run", failing)
	assert cli.main([]) == 1


# EOF
