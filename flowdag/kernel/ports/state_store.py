"""Port interface for checkpoint persistence.

Records are JSON-compatible dicts grouped by namespace. The engine relies
only on independent writes and a full listing of one namespace; no
transactions or locking are assumed, so a single writer per pipeline id is
expected.
"""

from abc import abstractmethod
from typing import Any, NamedTuple, Protocol, runtime_checkable


class StoredRecord(NamedTuple):
    key: str
    value: dict[str, Any]


@runtime_checkable
class StateStore(Protocol):
    """Namespaced key-value store used for pipeline checkpoints."""

    @abstractmethod
    async def aput(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        """Store ``value`` under ``namespace``/``key``, replacing any prior value.

        Raises
        ------
        StateStoreError
            If the write fails
        """
        ...

    @abstractmethod
    async def alist(self, namespace: str, prefix: str = "") -> list[StoredRecord]:
        """Return every record in ``namespace`` whose key starts with ``prefix``.

        Raises
        ------
        StateStoreError
            If the read fails
        """
        ...
