"""Secrets read from mounted secret volumes.

Expects the layout ``<root>/<namespace>/<secret-name>/<key>``, i.e. one
directory per namespace containing the usual Kubernetes secret volume
mounts. File contents are cached together with the file's modification
time and re-read when it changes, so secrets rotated in place by the
kubelet are picked up without a restart.
"""

from __future__ import annotations

import threading
from pathlib import Path

from schednotify.core.errors import SecretNotFoundError


class MountedSecretStore:
    """``SecretStore`` over a directory tree of mounted secrets."""

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self._cache: dict[tuple[str, str, str], tuple[int, bytes]] = {}
        self._lock = threading.Lock()

    def get_secret_value(self, namespace: str, name: str, key: str) -> bytes:
        secret_dir = self.root / namespace / name
        if not _is_plain_child(self.root, secret_dir) or not secret_dir.is_dir():
            raise SecretNotFoundError(namespace, name)

        key_path = secret_dir / key
        if not _is_plain_child(secret_dir, key_path) or not key_path.is_file():
            raise SecretNotFoundError(namespace, name, key)

        cache_key = (namespace, name, key)
        try:
            mtime = key_path.stat().st_mtime_ns
            with self._lock:
                cached = self._cache.get(cache_key)
            if cached is not None and cached[0] == mtime:
                return cached[1]
            content = key_path.read_bytes()
        except OSError as e:
            raise SecretNotFoundError(namespace, name, key) from e

        with self._lock:
            self._cache[cache_key] = (mtime, content)
        return content

    def clear_cache(self) -> None:
        """Forget every cached value."""
        with self._lock:
            self._cache.clear()


def _is_plain_child(parent: Path, child: Path) -> bool:
    # Refuse ".." and absolute components smuggled in through names
    try:
        child.resolve().relative_to(parent.resolve())
    except ValueError:
        return False
    return True


__all__ = ["MountedSecretStore"]
