"""
Infrastructure layer for chartsync.

Contains abstractions for external systems:
- ObjectStore / TrustLookup: Config-object and secret lookups
- SecureClientBuilder: Hardened HTTPS sessions per repository
- IndexClient: Index document retrieval

These provide clean interfaces that can be mocked for testing.
"""

from .object_store import ObjectStore, TrustLookup
from .tls import SecureClientBuilder, TrustMaterial, resolve_trust, build_ssl_context
from .index_client import IndexClient, normalize_index_url

__all__ = [
    'ObjectStore',
    'TrustLookup',
    'SecureClientBuilder',
    'TrustMaterial',
    'resolve_trust',
    'build_ssl_context',
    'IndexClient',
    'normalize_index_url',
]
