from pathlib import Path

import pytest

from distpreview import options as resolution
from distpreview.model import ConfigError, UserConfig
from distpreview.options import (
	precedence,
	resolveDistDir,
	resolveKeepAlive,
	resolveOptions,
)


def options(data: dict, root: Path):
	data = dict(data)
	data.setdefault("compilation", {})["root"] = str(root)
	return resolveOptions(UserConfig.FromDict(data))


def test_precedence_order():
	assert precedence(1, 2, 3) == 1
	assert precedence(None, 2, 3) == 2
	assert precedence(None, None, 3) == 3
	assert precedence(None, None) is None


def test_precedence_keeps_falsy_values():
	assert precedence(False, True, True) is False
	assert precedence({}, {"X": "1"}) == {}


def test_dist_dir_relative_output(tmp_path: Path):
	assert resolveDistDir(tmp_path, None, "build") == tmp_path / "build"
	assert resolveDistDir(tmp_path, None, None) == tmp_path / "dist"


def test_dist_dir_absolute_output(tmp_path: Path):
	output = tmp_path / "elsewhere" / "out"
	assert resolveDistDir(Path("/proj"), None, str(output)) == output


def test_dist_dir_preview_wins(tmp_path: Path):
	assert resolveDistDir(tmp_path, "public/../site", "build") == tmp_path / "site"
	assert resolveDistDir(tmp_path, "/srv/site", "build") == Path("/srv/site")


@pytest.mark.parametrize("output", [None, "dist", "./out/../dist", "/abs/dist"])
def test_dist_dir_is_always_absolute(tmp_path: Path, output):
	assert options({"compilation": {"output": {"path": output}}}, tmp_path).distDir.is_absolute()


def test_defaults(tmp_path: Path):
	res = options({}, tmp_path)
	assert res.port == 1911
	assert res.host == "localhost"
	assert res.strictPort is False
	assert res.https is False
	assert res.tls is None
	assert res.open is False
	assert res.cors is False
	assert res.headers == {}
	assert res.root == tmp_path
	assert res.distDir == tmp_path / "dist"
	assert res.protocol == "http"


def test_preview_over_server(tmp_path: Path):
	res = options(
		{
			"preview": {"headers": {"X-Preview": "1"}, "https": False},
			"server": {"headers": {"X-Server": "1"}, "https": True},
		},
		tmp_path,
	)
	assert res.headers == {"X-Preview": "1"}
	assert res.https is False


def test_server_fallback(tmp_path: Path):
	res = options(
		{"server": {"headers": {"X-Server": ["a", "b"]}, "https": True}}, tmp_path
	)
	assert res.headers == {"X-Server": ["a", "b"]}
	assert res.https is True


def test_host_true_means_all_interfaces(tmp_path: Path):
	assert options({"preview": {"host": True}}, tmp_path).host == "0.0.0.0"


@pytest.mark.parametrize("port", [0, -1, 70000, "http", 1.5, True])
def test_invalid_port(tmp_path: Path, port):
	with pytest.raises(ConfigError):
		options({"preview": {"port": port}}, tmp_path)


@pytest.mark.parametrize("host", ["", "local host", 12])
def test_invalid_host(tmp_path: Path, host):
	with pytest.raises(ConfigError):
		options({"preview": {"host": host}}, tmp_path)


def test_invalid_headers(tmp_path: Path):
	with pytest.raises(ConfigError):
		options({"preview": {"headers": {"X-Bad": {"nested": 1}}}}, tmp_path)


def test_environment_port_is_validated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
	monkeypatch.setattr(resolution, "DEFAULT_PORT", "4000")
	assert options({}, tmp_path).port == 4000
	monkeypatch.setattr(resolution, "DEFAULT_PORT", "http")
	with pytest.raises(ConfigError):
		options({}, tmp_path)


@pytest.mark.parametrize("value", ["soon", "0", "-1", "nan", None])
def test_invalid_keep_alive(value):
	with pytest.raises(ConfigError):
		resolveKeepAlive(value)


def test_keep_alive():
	assert resolveKeepAlive("2.5") == 2.5
	assert resolveKeepAlive(5.0) == 5.0


def test_open_path(tmp_path: Path):
	assert options({"preview": {"open": "/docs"}}, tmp_path).open == "/docs"


# EOF
