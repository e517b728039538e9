"""State store writing one JSON document per key."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

from flowdag.kernel.exceptions import StateStoreError
from flowdag.kernel.logging import get_logger
from flowdag.kernel.ports.state_store import StoredRecord

logger = get_logger(__name__)


class JsonFileStateStore:
    """Stores ``<root>/<namespace>/<quoted key>.json`` files.

    Writes go through a temporary file and ``os.replace`` so a concurrent
    reader in another process never sees a half-written record.

    Examples
    --------
    Example usage::

        store = JsonFileStateStore(".flowdag/state")
        await store.aput("workflows", "release/started", {"status": "running"})
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, namespace: str, key: str) -> Path:
        return self.root / quote(namespace, safe="") / f"{quote(key, safe='')}.json"

    async def aput(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, namespace, key, value)

    async def alist(self, namespace: str, prefix: str = "") -> list[StoredRecord]:
        return await asyncio.to_thread(self._read_all, namespace, prefix)

    def _write(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        path = self._path(namespace, key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(value, default=str), encoding="utf-8")
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise StateStoreError("put", f"{namespace}/{key}", str(e)) from e

    def _read_all(self, namespace: str, prefix: str) -> list[StoredRecord]:
        directory = self.root / quote(namespace, safe="")
        if not directory.exists():
            return []
        records: list[StoredRecord] = []
        try:
            for path in sorted(directory.glob("*.json")):
                key = unquote(path.name[: -len(".json")])
                if not key.startswith(prefix):
                    continue
                value = json.loads(path.read_text(encoding="utf-8"))
                if isinstance(value, dict):
                    records.append(StoredRecord(key, value))
                else:
                    logger.warning("Skipping non-object record {path}", path=path)
        except (OSError, json.JSONDecodeError) as e:
            raise StateStoreError("list", f"{namespace}/{prefix}*", str(e)) from e
        return records
