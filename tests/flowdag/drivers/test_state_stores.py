"""Tests for the state store drivers."""

import json
from unittest.mock import AsyncMock

import pytest

from flowdag.drivers.state_store import CliStateStore, InMemoryStateStore, JsonFileStateStore
from flowdag.kernel.exceptions import StateStoreError, TransportError
from flowdag.kernel.ports import StateStore
from flowdag.kernel.ports.command_runner import CommandResult


class TestInMemoryStateStore:
    @pytest.mark.asyncio
    async def test_put_and_list(self) -> None:
        store = InMemoryStateStore()
        await store.aput("workflows", "demo/started", {"status": "running"})
        await store.aput("workflows", "other/started", {"status": "running"})
        await store.aput("ci", "demo/started", {"status": "completed"})

        records = await store.alist("workflows", prefix="demo/")

        assert [(r.key, r.value) for r in records] == [("demo/started", {"status": "running"})]

    @pytest.mark.asyncio
    async def test_values_are_copied(self) -> None:
        store = InMemoryStateStore()
        value = {"nested": {"count": 1}}
        await store.aput("ns", "k", value)
        value["nested"]["count"] = 2

        [record] = await store.alist("ns")
        record.value["nested"]["count"] = 3

        assert (await store.alist("ns"))[0].value == {"nested": {"count": 1}}

    def test_satisfies_port(self) -> None:
        assert isinstance(InMemoryStateStore(), StateStore)


class TestJsonFileStateStore:
    @pytest.mark.asyncio
    async def test_put_overwrites_and_lists(self, tmp_path) -> None:
        store = JsonFileStateStore(tmp_path)
        await store.aput("workflows", "demo/build", {"status": "running"})
        await store.aput("workflows", "demo/build", {"status": "completed"})
        await store.aput("workflows", "demo/started", {"status": "running"})

        records = await store.alist("workflows", prefix="demo/")

        assert {r.key: r.value for r in records} == {
            "demo/build": {"status": "completed"},
            "demo/started": {"status": "running"},
        }
        assert not list(tmp_path.rglob("*.tmp"))

    @pytest.mark.asyncio
    async def test_visible_to_another_instance(self, tmp_path) -> None:
        await JsonFileStateStore(tmp_path).aput("ns", "demo/started", {"run_id": "r1"})

        records = await JsonFileStateStore(tmp_path).alist("ns")

        assert records[0].value == {"run_id": "r1"}

    @pytest.mark.asyncio
    async def test_empty_namespace(self, tmp_path) -> None:
        assert await JsonFileStateStore(tmp_path).alist("nothing") == []

    @pytest.mark.asyncio
    async def test_corrupt_record(self, tmp_path) -> None:
        store = JsonFileStateStore(tmp_path)
        await store.aput("ns", "k", {"ok": True})
        next((tmp_path / "ns").glob("*.json")).write_text("{not json")

        with pytest.raises(StateStoreError):
            await store.alist("ns")

    @pytest.mark.asyncio
    async def test_unwritable_root(self, tmp_path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")

        with pytest.raises(StateStoreError):
            await JsonFileStateStore(blocker).aput("ns", "k", {})


class TestCliStateStore:
    @pytest.mark.asyncio
    async def test_put(self) -> None:
        runner = AsyncMock()
        runner.arun.return_value = CommandResult(exit_code=0)

        await CliStateStore(runner).aput("workflows", "demo/started", {"status": "running"})

        argv = runner.arun.call_args.args[0]
        assert argv[:5] == ["npx", "claude-flow", "memory", "store", "workflows/demo/started"]
        assert json.loads(argv[5]) == {"status": "running"}

    @pytest.mark.asyncio
    async def test_list(self) -> None:
        runner = AsyncMock()
        runner.arun.side_effect = [
            CommandResult(exit_code=0, stdout="workflows/demo/started\nworkflows/demo/build\n"),
            CommandResult(exit_code=0, stdout='{"status": "running"}'),
            CommandResult(exit_code=0, stdout='{"status": "completed"}'),
        ]

        records = await CliStateStore(runner).alist("workflows", prefix="demo/")

        assert [(r.key, r.value["status"]) for r in records] == [
            ("demo/started", "running"),
            ("demo/build", "completed"),
        ]
        list_argv = runner.arun.call_args_list[0].args[0]
        assert list_argv[2:] == ["memory", "list", "--pattern", "workflows/demo/*"]
        get_argv = runner.arun.call_args_list[1].args[0]
        assert get_argv[2:] == ["memory", "get", "workflows/demo/started", "--json"]

    @pytest.mark.asyncio
    async def test_command_failure(self) -> None:
        runner = AsyncMock()
        runner.arun.return_value = CommandResult(exit_code=1, stderr="no such namespace")

        with pytest.raises(StateStoreError, match="no such namespace"):
            await CliStateStore(runner).aput("ns", "k", {})

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self) -> None:
        runner = AsyncMock()
        runner.arun.side_effect = TransportError("container down")

        with pytest.raises(StateStoreError, match="container down"):
            await CliStateStore(runner).alist("ns")

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        runner = AsyncMock()
        runner.arun.side_effect = [
            CommandResult(exit_code=0, stdout="ns/k\n"),
            CommandResult(exit_code=0, stdout="not json"),
        ]

        with pytest.raises(StateStoreError, match="invalid JSON"):
            await CliStateStore(runner).alist("ns")
