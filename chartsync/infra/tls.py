"""
Secure HTTP client construction for chartsync.

Resolves a repository's trust references (CA bundle config object,
client certificate secret) into TrustMaterial, turns that into a
hardened ssl.SSLContext and mounts it on a requests.Session.

Resolution happens entirely before any connection is opened, so a
missing or broken trust object fails the pass without network traffic.
"""

import logging
import os
import ssl
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests
from requests.adapters import HTTPAdapter

from ..domain.repository import RepositoryConfig
from ..errors import ConfigKeyError, ConfigLookupError, TrustParseError
from .object_store import TrustLookup

logger = logging.getLogger(__name__)

CA_BUNDLE_KEY = "ca-bundle.crt"
TLS_CERT_KEY = "tls.crt"
TLS_PRIVATE_KEY_KEY = "tls.key"

# SSLv3, TLS 1.0 and TLS 1.1 are all broken (POODLE, BEAST, RC4)
MINIMUM_TLS_VERSION = ssl.TLSVersion.TLSv1_2

# AEAD with ephemeral key exchange first, then CBC suites kept for older
# servers. 3DES is left out (SWEET32). Only affects TLS <= 1.2; TLS 1.3
# suites are always strong.
DEFAULT_CIPHERS = (
    "ECDHE-ECDSA-CHACHA20-POLY1305",
    "ECDHE-RSA-CHACHA20-POLY1305",
    "ECDHE-ECDSA-AES128-GCM-SHA256",
    "ECDHE-RSA-AES128-GCM-SHA256",
    "ECDHE-ECDSA-AES256-GCM-SHA384",
    "ECDHE-RSA-AES256-GCM-SHA384",
    "ECDHE-ECDSA-AES128-SHA256",
    "ECDHE-RSA-AES128-SHA256",
    "ECDHE-ECDSA-AES128-SHA",
    "ECDHE-ECDSA-AES256-SHA",
    "ECDHE-RSA-AES128-SHA",
    "ECDHE-RSA-AES256-SHA",
    "AES128-GCM-SHA256",
    "AES256-GCM-SHA384",
    "AES128-SHA",
    "AES256-SHA",
)


@dataclass(frozen=True)
class TrustMaterial:
    """
    Resolved trust inputs for one pass. Never persisted.

    A ``ca_bundle`` of None means the platform's default trust pool.
    """
    ca_bundle: Optional[str] = None
    client_cert: Optional[str] = None
    client_key: Optional[str] = None

    @property
    def has_client_cert(self) -> bool:
        return self.client_cert is not None and self.client_key is not None


def resolve_trust(repository: RepositoryConfig, lookup: TrustLookup) -> TrustMaterial:
    """
    Look up the trust objects a repository references.

    Raises:
        ConfigLookupError: a referenced config object or secret is missing
        ConfigKeyError: the object lacks ``ca-bundle.crt``, ``tls.crt`` or ``tls.key``
    """
    ca_bundle = None
    if repository.ca_name:
        config_map = lookup.get_config_map(repository.ca_name)
        if config_map is None:
            raise ConfigLookupError("config object", repository.ca_name)
        if CA_BUNDLE_KEY not in config_map:
            raise ConfigKeyError("config object", repository.ca_name, CA_BUNDLE_KEY)
        # An empty bundle falls back to the default pool
        ca_bundle = config_map[CA_BUNDLE_KEY] or None

    client_cert = client_key = None
    if repository.tls_client_config_name:
        secret_name = repository.tls_client_config_name
        secret = lookup.get_secret(secret_name)
        if secret is None:
            raise ConfigLookupError("secret", secret_name)
        for key in (TLS_CERT_KEY, TLS_PRIVATE_KEY_KEY):
            if key not in secret:
                raise ConfigKeyError("secret", secret_name, key)
        client_cert = secret[TLS_CERT_KEY]
        client_key = secret[TLS_PRIVATE_KEY_KEY]

    return TrustMaterial(ca_bundle=ca_bundle, client_cert=client_cert, client_key=client_key)


def build_ssl_context(material: TrustMaterial) -> ssl.SSLContext:
    """
    Build a client SSLContext from resolved trust material.

    Raises:
        TrustParseError: the CA bundle or client key pair is malformed
    """
    if material.ca_bundle:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        try:
            context.load_verify_locations(cadata=material.ca_bundle)
        except (ssl.SSLError, ValueError) as e:
            raise TrustParseError(f"Failed to parse CA bundle: {e}") from e
    else:
        context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)

    context.minimum_version = MINIMUM_TLS_VERSION
    context.set_ciphers(':'.join(DEFAULT_CIPHERS))
    context.check_hostname = True
    context.verify_mode = ssl.CERT_REQUIRED

    if material.has_client_cert:
        _load_client_cert(context, material.client_cert, material.client_key)

    return context


def _load_client_cert(context: ssl.SSLContext, cert_pem: str, key_pem: str) -> None:
    """Attach a PEM key pair; ssl only loads key pairs from files."""
    with tempfile.TemporaryDirectory(prefix="chartsync-") as tmp:
        cert_path = Path(tmp) / TLS_CERT_KEY
        key_path = Path(tmp) / TLS_PRIVATE_KEY_KEY
        for path, content in ((cert_path, cert_pem), (key_path, key_pem)):
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, 'w') as f:
                f.write(content)
        try:
            context.load_cert_chain(certfile=str(cert_path), keyfile=str(key_path))
        except ssl.SSLError as e:
            raise TrustParseError(f"Failed to load client certificate: {e}") from e


class TLSAdapter(HTTPAdapter):
    """HTTPAdapter that uses a fixed SSLContext, including through proxies."""

    def __init__(self, ssl_context: ssl.SSLContext, **kwargs):
        # Must be set before HTTPAdapter.__init__ builds the pool manager
        self.ssl_context = ssl_context
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs['ssl_context'] = self.ssl_context
        return super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, proxy, **proxy_kwargs):
        proxy_kwargs['ssl_context'] = self.ssl_context
        return super().proxy_manager_for(proxy, **proxy_kwargs)

    def cert_verify(self, conn, url, verify, cert):
        # The context is the only trust pool. Setting ca_certs here would
        # load REQUESTS_CA_BUNDLE or certifi into it.
        if url.lower().startswith('https'):
            conn.cert_reqs = 'CERT_REQUIRED'
            conn.ca_certs = None
            conn.ca_cert_dir = None


class SecureClientBuilder:
    """
    Builds per-pass HTTP sessions for repositories.

    Example:
        builder = SecureClientBuilder(TrustLookup.from_config(config))
        with builder.build(repository) as session:
            session.get(index_url, timeout=30)
    """

    def __init__(self, lookup: TrustLookup, user_agent: Optional[str] = None):
        self.lookup = lookup
        self.user_agent = user_agent

    def build(self, repository: RepositoryConfig) -> requests.Session:
        """
        Build a session for one repository.

        The session honours HTTPS_PROXY, HTTP_PROXY and NO_PROXY from the
        environment (requests' ``trust_env``).

        Raises:
            ConfigLookupError, ConfigKeyError, TrustParseError
        """
        material = resolve_trust(repository, self.lookup)
        context = build_ssl_context(material)

        logger.debug(
            f"Built TLS context for {repository.name} "
            f"(custom CA: {material.ca_bundle is not None}, "
            f"client cert: {material.has_client_cert})"
        )

        session = requests.Session()
        session.trust_env = True
        if self.user_agent:
            session.headers['User-Agent'] = self.user_agent
        session.mount('https://', TLSAdapter(context))
        return session
