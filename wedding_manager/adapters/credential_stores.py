"""Credential store adapters — implement CredentialStore.

MemoryCredentialStore keeps values for the lifetime of the process (tests,
throwaway sessions). FileCredentialStore persists them as JSON on disk,
one object per namespace, so a CLI session survives restarts.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from wedding_manager.ports.credential_port import CredentialError

logger = logging.getLogger(__name__)


class MemoryCredentialStore:
    """In-process implementation of CredentialStore."""

    def __init__(self, namespace: str = "WeddingManager") -> None:
        self.namespace = namespace
        self._values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class FileCredentialStore:
    """JSON-file implementation of CredentialStore.

    The file holds ``{namespace: {key: value}}`` so several namespaces can
    share one file without clobbering each other.
    """

    def __init__(self, path: str | None = None, namespace: str | None = None) -> None:
        if path is None or namespace is None:
            from wedding_manager.config import settings
            path = path or settings.CREDENTIAL_STORE_PATH
            namespace = namespace or settings.CREDENTIAL_NAMESPACE

        self._path = Path(path)
        self.namespace = namespace

    def _read_all(self) -> dict[str, dict[str, str]]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise CredentialError(f"Cannot read credentials at {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise CredentialError(f"Credentials file {self._path} is not a JSON object")
        return data

    def _write_all(self, data: dict[str, dict[str, str]]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            raise CredentialError(f"Cannot write credentials at {self._path}: {exc}") from exc
        logger.debug("Credentials saved to %s", self._path)

    def get(self, key: str) -> str | None:
        return self._read_all().get(self.namespace, {}).get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data.setdefault(self.namespace, {})[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_all()
        bucket = data.get(self.namespace, {})
        if key not in bucket:
            return
        del bucket[key]
        if not bucket:
            data.pop(self.namespace)
        self._write_all(data)
