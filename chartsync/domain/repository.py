"""
Repository configuration domain object for chartsync.

A RepositoryConfig describes one remote chart repository to mirror.
It is owned by whoever writes the configuration and is read-only to
the sync engine.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any


@dataclass(frozen=True)
class RepositoryConfig:
    """
    Immutable description of a remote chart repository.

    Attributes:
        name: Identity of the repository, used as the record key prefix
        url: Base URL of the repository (index.yaml is appended if missing)
        display_name: Human readable name copied onto every record
        disabled: Skip network access for this repository
        ca_name: Name of a config object holding ``ca-bundle.crt``
        tls_client_config_name: Name of a secret holding ``tls.crt``/``tls.key``
    """
    name: str
    url: str
    display_name: Optional[str] = None
    disabled: bool = False
    ca_name: Optional[str] = None
    tls_client_config_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RepositoryConfig':
        """
        Create from a configuration mapping.

        Accepts either a flat mapping::

            {name: stable, url: https://charts.example.com, ca: my-ca}

        or the HelmChartRepository resource shape::

            {metadata: {name: stable},
             spec: {name: Stable, disabled: false,
                    connectionConfig: {url: ..., ca: {name: my-ca},
                                       tlsClientConfig: {name: my-cert}}}}
        """
        if 'spec' in data or 'metadata' in data:
            metadata = data.get('metadata') or {}
            spec = data.get('spec') or {}
            connection = spec.get('connectionConfig') or {}
            return cls(
                name=metadata.get('name', ''),
                url=connection.get('url', ''),
                display_name=spec.get('name') or None,
                disabled=bool(spec.get('disabled', False)),
                ca_name=_reference_name(connection.get('ca')),
                tls_client_config_name=_reference_name(connection.get('tlsClientConfig')),
            )

        return cls(
            name=data.get('name', ''),
            url=data.get('url', ''),
            display_name=data.get('display_name') or data.get('displayName') or None,
            disabled=bool(data.get('disabled', False)),
            ca_name=_reference_name(data.get('ca')),
            tls_client_config_name=_reference_name(
                data.get('tls_client_config') or data.get('tlsClientConfig')
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'name': self.name,
            'url': self.url,
            'display_name': self.display_name,
            'disabled': self.disabled,
            'ca': self.ca_name,
            'tls_client_config': self.tls_client_config_name,
        }
        return {k: v for k, v in result.items() if v is not None}

    def __str__(self) -> str:
        return f"{self.name} ({self.url})"


def _reference_name(ref: Any) -> Optional[str]:
    """Accept ``{name: x}`` or a bare string; empty references become None."""
    if isinstance(ref, dict):
        ref = ref.get('name')
    if not ref:
        return None
    return str(ref)
