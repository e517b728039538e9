"""State store backed by the orchestration CLI's ``memory`` commands."""

from __future__ import annotations

import json
from typing import Any

from flowdag.kernel.exceptions import StateStoreError, TransportError
from flowdag.kernel.logging import get_logger
from flowdag.kernel.ports.command_runner import CommandRunner
from flowdag.kernel.ports.state_store import StoredRecord

logger = get_logger(__name__)


class CliStateStore:
    """Persists checkpoints with ``memory store``, ``memory list`` and ``memory get``.

    Keys are stored as ``<namespace>/<key>``. Listing runs one ``memory get``
    per matching key, so it is slow for namespaces with many records.
    """

    def __init__(
        self,
        runner: CommandRunner,
        command: tuple[str, ...] = ("npx", "claude-flow"),
        *,
        timeout: float = 60.0,
    ) -> None:
        self.runner = runner
        self.command = command
        self.timeout = timeout

    async def _arun(self, operation: str, key: str, *args: str) -> str:
        try:
            result = await self.runner.arun([*self.command, "memory", *args], timeout=self.timeout)
        except TransportError as e:
            raise StateStoreError(operation, key, str(e)) from e
        if not result.ok:
            reason = result.stderr.strip() or f"exit code {result.exit_code}"
            if result.timed_out:
                reason = f"timed out after {self.timeout}s"
            raise StateStoreError(operation, key, reason)
        return result.stdout

    async def aput(self, namespace: str, key: str, value: dict[str, Any]) -> None:
        full_key = f"{namespace}/{key}"
        await self._arun("put", full_key, "store", full_key, json.dumps(value, default=str))

    async def alist(self, namespace: str, prefix: str = "") -> list[StoredRecord]:
        pattern = f"{namespace}/{prefix}*"
        listing = await self._arun("list", pattern, "list", "--pattern", pattern)
        ns_prefix = f"{namespace}/"

        records: list[StoredRecord] = []
        for line in listing.splitlines():
            full_key = line.strip()
            if not full_key.startswith(ns_prefix + prefix):
                continue
            raw = await self._arun("get", full_key, "get", full_key, "--json")
            try:
                value = json.loads(raw)
            except json.JSONDecodeError as e:
                raise StateStoreError("get", full_key, f"invalid JSON: {e}") from e
            if isinstance(value, dict):
                records.append(StoredRecord(full_key[len(ns_prefix) :], value))
            else:
                logger.warning("Skipping non-object record {key}", key=full_key)
        return records
