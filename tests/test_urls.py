import pytest

from distpreview import urls
from distpreview.model import ResolvedUrls
from distpreview.urls import formatURL, openBrowser, resolveServerUrls


def test_format_url():
	assert formatURL("http", "localhost", 1911) == "http://localhost:1911/"
	assert formatURL("https", "::1", 443, "/docs") == "https://[::1]:443/docs"


def test_loopback_host():
	assert resolveServerUrls(("127.0.0.1", 4000), "localhost", "http") == ResolvedUrls(
		local=["http://localhost:4000/"], network=[]
	)


def test_wildcard_host(monkeypatch: pytest.MonkeyPatch):
	monkeypatch.setattr(urls, "networkAddresses", lambda: ["192.168.1.20"])
	assert resolveServerUrls(("0.0.0.0", 4000), "0.0.0.0", "https") == ResolvedUrls(
		local=["https://localhost:4000/"], network=["https://192.168.1.20:4000/"]
	)


def test_named_host():
	assert resolveServerUrls(("10.0.0.2", 80), "10.0.0.2", "http") == ResolvedUrls(
		local=[], network=["http://10.0.0.2:80/"]
	)


def test_open_browser(monkeypatch: pytest.MonkeyPatch):
	opened: list[str] = []
	monkeypatch.setattr(urls.webbrowser, "open", lambda url: opened.append(url) or True)
	found = ResolvedUrls(local=["http://localhost:4000/"], network=[])
	assert openBrowser(found, False) is None
	assert openBrowser(found, True) == "http://localhost:4000/"
	assert openBrowser(found, "/docs/") == "http://localhost:4000/docs/"
	assert openBrowser(ResolvedUrls(local=[], network=[]), True) is None
	assert opened == ["http://localhost:4000/", "http://localhost:4000/docs/"]


# EOF
