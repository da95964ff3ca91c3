"""
Stores the engine reads declarative records and secrets from.

The engine only depends on the ``RuleStore`` and ``SecretStore``
protocols; the implementations here cover tests (in-memory), manifest
directories, and mounted secret volumes.
"""

from schednotify.stores.manifests import ManifestStore
from schednotify.stores.memory import InMemoryStore
from schednotify.stores.mounted import MountedSecretStore
from schednotify.stores.protocol import RuleStore, SecretStore

__all__ = [
    "RuleStore",
    "SecretStore",
    "InMemoryStore",
    "ManifestStore",
    "MountedSecretStore",
]
