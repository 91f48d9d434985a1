import ipaddress
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from .model import ConfigError, TLSCredentials
from .utils.logging import info

PEM_MARKER: bytes = b"-----BEGIN"

# Self-signed credentials are generated once per process and host name.
SELF_SIGNED: dict[str, TLSCredentials] = {}


# -----------------------------------------------------------------------------
#
# MATERIAL
#
# -----------------------------------------------------------------------------


def loadMaterial(value: Any, name: str) -> bytes:
	"""Loads PEM material given either as content or as a path to a file."""
	if isinstance(value, bytes):
		data = value
	elif isinstance(value, str) and PEM_MARKER.decode("ascii") in value:
		data = value.encode("ascii")
	elif isinstance(value, (str, Path)):
		try:
			data = Path(value).expanduser().read_bytes()
		except OSError as e:
			raise ConfigError(f"Unable to read HTTPS {name} from {value}: {e}") from e
	elif isinstance(value, (list, tuple)):
		data = b"\n".join(loadMaterial(_, name) for _ in value)
	else:
		raise ConfigError(f"Invalid HTTPS {name}: {value!r}")
	if PEM_MARKER not in data:
		raise ConfigError(f"HTTPS {name} is not PEM encoded")
	return data


def validate(credentials: TLSCredentials) -> TLSCredentials:
	"""Makes sure the certificate and key parse, and that they match."""
	try:
		certs: list[x509.Certificate] = x509.load_pem_x509_certificates(credentials.cert)
		if credentials.ca:
			x509.load_pem_x509_certificates(credentials.ca)
	except ValueError as e:
		raise ConfigError(f"Malformed HTTPS certificate: {e}") from e
	try:
		key = serialization.load_pem_private_key(
			credentials.key, password=credentials.passphrase
		)
	except (ValueError, TypeError) as e:
		raise ConfigError(f"Malformed HTTPS key: {e}") from e
	spki = (serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo)
	if certs[0].public_key().public_bytes(*spki) != key.public_key().public_bytes(*spki):
		raise ConfigError("HTTPS key does not match the certificate")
	return credentials


# -----------------------------------------------------------------------------
#
# SELF SIGNED
#
# -----------------------------------------------------------------------------


def subjectNames(host: str) -> Iterable[x509.GeneralName]:
	names: list[str] = ["localhost", "127.0.0.1", "::1"]
	if host not in names and host not in ("0.0.0.0", "::"):  # nosec: B104
		names.append(host)
	for name in names:
		try:
			yield x509.IPAddress(ipaddress.ip_address(name))
		except ValueError:
			yield x509.DNSName(name)


def selfSigned(host: str = "localhost") -> TLSCredentials:
	"""Generates (or returns the cached) self-signed credential for host."""
	if host in SELF_SIGNED:
		return SELF_SIGNED[host]
	info("Generating self-signed certificate", icon="🔐", Host=host)
	key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
	name = x509.Name(
		[
			x509.NameAttribute(NameOID.COMMON_NAME, host if host.isascii() else "localhost"),
			x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Preview Server"),
		]
	)
	now = datetime.now(timezone.utc)
	cert = (
		x509.CertificateBuilder()
		.subject_name(name)
		.issuer_name(name)
		.public_key(key.public_key())
		.serial_number(x509.random_serial_number())
		.not_valid_before(now - timedelta(days=1))
		.not_valid_after(now + timedelta(days=30))
		.add_extension(x509.SubjectAlternativeName(list(subjectNames(host))), critical=False)
		.add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
		.sign(key, hashes.SHA256())
	)
	res = TLSCredentials(
		cert=cert.public_bytes(serialization.Encoding.PEM),
		key=key.private_bytes(
			encoding=serialization.Encoding.PEM,
			format=serialization.PrivateFormat.PKCS8,
			encryption_algorithm=serialization.NoEncryption(),
		),
	)
	SELF_SIGNED[host] = res
	return res


# -----------------------------------------------------------------------------
#
# API
#
# -----------------------------------------------------------------------------


def resolveTLS(raw: Any, *, host: str = "localhost") -> TLSCredentials | None:
	"""Turns the raw HTTPS option into credentials, `None` meaning plain
	HTTP. The option is a boolean, credentials, or a mapping with `cert`
	and `key` (and optionally `ca` and `passphrase`) given as PEM content
	or file paths."""
	if raw is None or raw is False:
		return None
	elif raw is True:
		return selfSigned(host)
	elif isinstance(raw, TLSCredentials):
		return validate(raw)
	elif isinstance(raw, Mapping):
		if raw.get("cert") is None or raw.get("key") is None:
			raise ConfigError("HTTPS option requires both 'cert' and 'key'")
		passphrase = raw.get("passphrase")
		return validate(
			TLSCredentials(
				cert=loadMaterial(raw["cert"], "cert"),
				key=loadMaterial(raw["key"], "key"),
				ca=loadMaterial(raw["ca"], "ca") if raw.get("ca") else None,
				passphrase=(
					passphrase.encode("utf8")
					if isinstance(passphrase, str)
					else passphrase
				),
			)
		)
	else:
		raise ConfigError(f"Unsupported HTTPS option: {raw!r}")


# EOF
