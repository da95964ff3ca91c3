"""Declarative records loaded from YAML manifest files.

Every ``*.yaml`` / ``*.yml`` file under a directory is read as a
multi-document stream. Recognised kinds:

- ``NotificationRule`` / ``SlackNotificationRule``
- ``Destination`` / ``SlackConfig``
- ``Secret`` (``data`` base64-decoded, ``stringData`` taken verbatim)

Documents of other kinds are ignored. Invalid documents are logged and
skipped so one broken manifest does not hide every other rule; the
problems stay available on ``ManifestStore.errors``.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import yaml

from schednotify.core.errors import ManifestError
from schednotify.core.logging import get_logger
from schednotify.domain.rules import Destination, NotificationRule
from schednotify.stores.memory import InMemoryStore

logger = get_logger(__name__)


class ManifestStore(InMemoryStore):
    """``RuleStore`` and ``SecretStore`` populated from manifest files."""

    def __init__(self, default_namespace: str = "default"):
        super().__init__()
        self.default_namespace = default_namespace
        self.errors: list[ManifestError] = []

    @classmethod
    def from_directory(cls, path: str | Path, *, default_namespace: str = "default") -> ManifestStore:
        """Load every manifest file below ``path``.

        Raises:
            ManifestError: If ``path`` is not a directory
        """
        root = Path(path)
        if not root.is_dir():
            raise ManifestError(f"Manifest directory not found: {root}")

        store = cls(default_namespace=default_namespace)
        files = sorted(p for p in root.rglob("*") if p.suffix in (".yaml", ".yml") and p.is_file())
        for file in files:
            store.load_file(file)

        logger.info(
            "manifests.loaded",
            path=str(root),
            files=len(files),
            errors=len(store.errors),
        )
        return store

    def load_file(self, path: Path) -> None:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            self._reject(ManifestError(f"Cannot read {path}", cause=e), source=str(path))
            return
        self.load_text(text, source=str(path))

    def load_text(self, text: str, *, source: str = "<string>") -> None:
        try:
            docs = [d for d in yaml.safe_load_all(text) if d is not None]
        except yaml.YAMLError as e:
            self._reject(ManifestError(f"Invalid YAML in {source}", cause=e), source=source)
            return
        self.load_documents(docs, source=source)

    def load_documents(self, docs: Iterable[Any], *, source: str = "<documents>") -> None:
        for doc in docs:
            if not isinstance(doc, Mapping):
                self._reject(ManifestError(f"Manifest in {source} is not a mapping"), source=source)
                continue
            try:
                self._load_document(doc)
            except ManifestError as e:
                self._reject(e, source=source)

    def _load_document(self, doc: Mapping[str, Any]) -> None:
        kind = doc.get("kind")
        if kind in NotificationRule.kinds:
            self.add_rule(NotificationRule.from_manifest(doc, namespace=self.default_namespace))
        elif kind in Destination.kinds:
            self.add_destination(Destination.from_manifest(doc, namespace=self.default_namespace))
        elif kind == "Secret":
            namespace, name, data = _parse_secret(doc, self.default_namespace)
            self.set_secret(namespace, name, data)
        else:
            logger.debug("manifests.ignored_kind", kind=kind)

    def _reject(self, error: ManifestError, *, source: str) -> None:
        self.errors.append(error.with_context(source=source))
        logger.warning("manifests.invalid_document", source=source, error=error.message)


def _parse_secret(doc: Mapping[str, Any], default_namespace: str) -> tuple[str, str, dict[str, bytes]]:
    meta = doc.get("metadata") or {}
    name = meta.get("name")
    if not name:
        raise ManifestError("Secret manifest has no metadata.name")
    namespace = meta.get("namespace") or default_namespace

    data: dict[str, bytes] = {}
    for key, value in (doc.get("data") or {}).items():
        try:
            data[str(key)] = base64.b64decode(str(value), validate=True)
        except (binascii.Error, ValueError) as e:
            raise ManifestError(f"Secret {namespace}/{name}: key {key!r} is not valid base64", cause=e) from e
    for key, value in (doc.get("stringData") or {}).items():
        data[str(key)] = str(value).encode("utf-8")
    return namespace, name, data


__all__ = ["ManifestStore"]
