import ssl
from pathlib import Path

import pytest

from distpreview.listener import createSSLContext
from distpreview.model import ConfigError, ServerCreationError, TLSCredentials
from distpreview.tls import resolveTLS, selfSigned


def test_plain_http():
	assert resolveTLS(None) is None
	assert resolveTLS(False) is None


def test_self_signed_is_cached():
	creds = resolveTLS(True)
	assert creds is not None
	assert creds.cert.startswith(b"-----BEGIN CERTIFICATE-----")
	assert b"PRIVATE KEY" in creds.key
	assert resolveTLS(True) is creds


def test_paths(tmp_path: Path):
	creds = selfSigned()
	(tmp_path / "cert.pem").write_bytes(creds.cert)
	(tmp_path / "key.pem").write_bytes(creds.key)
	res = resolveTLS({"cert": str(tmp_path / "cert.pem"), "key": tmp_path / "key.pem"})
	assert res == TLSCredentials(cert=creds.cert, key=creds.key)


def test_pem_content():
	creds = selfSigned()
	res = resolveTLS({"cert": creds.cert.decode("ascii"), "key": creds.key})
	assert res is not None
	assert res.cert == creds.cert


def test_unreadable_file(tmp_path: Path):
	with pytest.raises(ConfigError):
		resolveTLS({"cert": str(tmp_path / "missing.pem"), "key": selfSigned().key})


def test_malformed_certificate():
	with pytest.raises(ConfigError):
		resolveTLS(
			{
				"cert": "-----BEGIN CERTIFICATE-----\ngarbage\n-----END CERTIFICATE-----\n",
				"key": selfSigned().key,
			}
		)


def test_key_must_match():
	with pytest.raises(ConfigError):
		resolveTLS({"cert": selfSigned().cert, "key": selfSigned("preview.test").key})


@pytest.mark.parametrize("raw", [{"cert": "cert.pem"}, {"key": "key.pem"}, "yes", 1])
def test_incomplete_options(raw):
	with pytest.raises(ConfigError):
		resolveTLS(raw)


def test_ssl_context():
	context = createSSLContext(selfSigned())
	assert isinstance(context, ssl.SSLContext)
	assert context.minimum_version == ssl.TLSVersion.TLSv1_2


def test_ssl_context_failure():
	with pytest.raises(ServerCreationError):
		createSSLContext(TLSCredentials(cert=b"garbage", key=b"garbage"))


# EOF
