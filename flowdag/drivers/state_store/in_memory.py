"""Process-local state store."""

from __future__ import annotations

import copy
from typing import Any

from flowdag.kernel.ports.state_store import StoredRecord


class InMemoryStateStore:
    """Keeps checkpoints in a dict. Values are deep-copied in and out.

    Useful for tests and for single-process runs where ``amonitor()`` is
    called from the same process as ``aexecute()``.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = {}

    async def aput(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        self._data.setdefault(namespace, {})[key] = copy.deepcopy(value)

    async def alist(self, namespace: str, prefix: str = "") -> list[StoredRecord]:
        entries = self._data.get(namespace, {})
        return [
            StoredRecord(key, copy.deepcopy(value))
            for key, value in entries.items()
            if key.startswith(prefix)
        ]

    def keys(self, namespace: str) -> list[str]:
        return list(self._data.get(namespace, {}))
