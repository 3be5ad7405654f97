"""
Trust material commands for chartsync.

CA bundles are stored as config objects under the ``ca-bundle.crt``
key; client key pairs as secrets under ``tls.crt`` and ``tls.key``.
Repositories reference them by name.
"""

from pathlib import Path

import click

from ..cli_utils import add_common_options, standard_command
from ..config import load_config
from ..infra.object_store import TrustLookup
from ..infra.tls import CA_BUNDLE_KEY, TLS_CERT_KEY, TLS_PRIVATE_KEY_KEY
from ..render import render_trust_table

PEM_MARKER = "-----BEGIN "


def _read_pem(path: Path, what: str) -> str:
    text = path.read_text()
    if PEM_MARKER not in text:
        raise click.BadParameter(f"{path} does not contain PEM data", param_hint=what)
    return text


@click.group("trust")
def trust_cmd():
    """Manage CA bundles and client certificates."""
    pass


@trust_cmd.command("add-ca")
@click.argument('name')
@click.argument('ca_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@standard_command
def add_ca(name, ca_file):
    """Store a CA bundle under NAME.

    Reference it from a repository with ``ca: NAME``.
    """
    lookup = TrustLookup.from_config(load_config())
    lookup.config_maps.set(name, {CA_BUNDLE_KEY: _read_pem(ca_file, 'CA_FILE')})
    return {'kind': 'config_map', 'name': name, 'keys': [CA_BUNDLE_KEY]}


@trust_cmd.command("add-client-cert")
@click.argument('name')
@click.option('--cert', 'cert_file', required=True,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='PEM client certificate')
@click.option('--key', 'key_file', required=True,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='PEM private key')
@standard_command
def add_client_cert(name, cert_file, key_file):
    """Store a client certificate and key under NAME.

    Reference it from a repository with ``tls_client_config: NAME``.
    """
    lookup = TrustLookup.from_config(load_config())
    lookup.secrets.set(name, {
        TLS_CERT_KEY: _read_pem(cert_file, '--cert'),
        TLS_PRIVATE_KEY_KEY: _read_pem(key_file, '--key'),
    })
    return {'kind': 'secret', 'name': name, 'keys': [TLS_CERT_KEY, TLS_PRIVATE_KEY_KEY]}


@trust_cmd.command("list")
@add_common_options('pretty')
@standard_command
def list_trust(pretty):
    """List stored trust material (names and keys, never contents)."""
    lookup = TrustLookup.from_config(load_config())
    objects = []
    for kind, store in (('config_map', lookup.config_maps), ('secret', lookup.secrets)):
        for name in store.names():
            objects.append({'kind': kind, 'name': name, 'keys': sorted(store.get(name) or {})})

    if pretty:
        render_trust_table(objects)
        return None
    return objects


@trust_cmd.command("remove")
@click.argument('name')
@click.option('--kind', type=click.Choice(['config_map', 'secret']), required=True,
              help='Which store the object lives in')
@standard_command
def remove_trust(name, kind):
    """Delete stored trust material."""
    lookup = TrustLookup.from_config(load_config())
    store = lookup.config_maps if kind == 'config_map' else lookup.secrets
    return {'kind': kind, 'name': name, 'removed': store.delete(name)}
