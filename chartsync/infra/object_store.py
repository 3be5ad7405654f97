"""
Named object store infrastructure for chartsync.

Stands in for the external config-object and secret stores the sync
engine reads trust material from. Each store is one JSON or YAML file
mapping an object name to its string key/value data::

    my-ca:
      ca-bundle.crt: |
        -----BEGIN CERTIFICATE-----
        ...

Provides:
- Atomic writes (write to temp, then rename)
- Format chosen by file suffix (.yaml/.yml or JSON)
- Thread-safe operations
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging

import yaml

logger = logging.getLogger(__name__)


class ObjectStore:
    """
    File persistence for named string-to-string objects.

    Example:
        store = ObjectStore(Path("~/.chartsync/configmaps.yaml"))
        store.set("my-ca", {"ca-bundle.crt": pem_text})
        data = store.get("my-ca")
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser().resolve()
        self._lock = threading.RLock()
        self._cache: Optional[Dict[str, Dict[str, str]]] = None

    @property
    def _is_yaml(self) -> bool:
        return self.path.suffix.lower() in ('.yaml', '.yml')

    def _write_atomic(self, data: Dict[str, Dict[str, str]]) -> None:
        """Write data atomically using temp file and rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp"
        )

        try:
            with os.fdopen(fd, 'w') as f:
                if self._is_yaml:
                    yaml.safe_dump(data, f, default_flow_style=False, sort_keys=True)
                else:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                    f.write('\n')
            # Secrets live here too
            os.chmod(temp_path, 0o600)
            os.replace(temp_path, self.path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def read(self) -> Dict[str, Dict[str, str]]:
        """
        Read the entire store.

        A missing file is an empty store. An unreadable file is logged
        and treated as empty, so every lookup reports the object missing.
        """
        with self._lock:
            if self._cache is not None:
                return dict(self._cache)

            data: Any = {}
            if self.path.exists():
                try:
                    with open(self.path, 'r') as f:
                        data = yaml.safe_load(f) if self._is_yaml else json.load(f)
                except (json.JSONDecodeError, yaml.YAMLError, IOError) as e:
                    logger.warning(f"Error reading {self.path}: {e}")
                    data = {}

            if not isinstance(data, dict):
                logger.warning(f"Ignoring {self.path}: top level is not a mapping")
                data = {}

            self._cache = {
                str(name): _string_map(obj)
                for name, obj in data.items()
                if isinstance(obj, dict)
            }
            return dict(self._cache)

    def get(self, name: str) -> Optional[Dict[str, str]]:
        """Get an object's data, or None if no such object exists."""
        obj = self.read().get(name)
        return dict(obj) if obj is not None else None

    def set(self, name: str, data: Dict[str, str]) -> None:
        """Create or replace an object."""
        with self._lock:
            current = self.read()
            current[name] = _string_map(data)
            self._write_atomic(current)
            self._cache = current

    def delete(self, name: str) -> bool:
        """
        Delete an object.

        Returns:
            True if the object was deleted, False if not found
        """
        with self._lock:
            current = self.read()
            if name not in current:
                return False
            del current[name]
            self._write_atomic(current)
            self._cache = current
            return True

    def names(self) -> List[str]:
        return sorted(self.read().keys())

    def invalidate_cache(self) -> None:
        """Force the next read to go to disk."""
        with self._lock:
            self._cache = None

    def __contains__(self, name: str) -> bool:
        return name in self.read()

    def __len__(self) -> int:
        return len(self.read())


def _string_map(obj: Dict[Any, Any]) -> Dict[str, str]:
    return {str(k): '' if v is None else str(v) for k, v in obj.items()}


class TrustLookup:
    """
    Lookup of trust material by name.

    Config objects hold CA bundles, secrets hold client key pairs. Both
    lookups re-read their file so that edits are picked up by the next
    pass without a restart.
    """

    def __init__(self, config_maps: ObjectStore, secrets: ObjectStore):
        self.config_maps = config_maps
        self.secrets = secrets

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'TrustLookup':
        trust = config.get('trust', {})
        return cls(
            config_maps=ObjectStore(Path(trust['config_maps_path'])),
            secrets=ObjectStore(Path(trust['secrets_path'])),
        )

    def get_config_map(self, name: str) -> Optional[Dict[str, str]]:
        self.config_maps.invalidate_cache()
        return self.config_maps.get(name)

    def get_secret(self, name: str) -> Optional[Dict[str, str]]:
        self.secrets.invalidate_cache()
        return self.secrets.get(name)
