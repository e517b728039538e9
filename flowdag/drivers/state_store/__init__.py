"""State store drivers."""

from flowdag.drivers.state_store.cli_store import CliStateStore
from flowdag.drivers.state_store.in_memory import InMemoryStateStore
from flowdag.drivers.state_store.json_file import JsonFileStateStore

__all__ = ["CliStateStore", "InMemoryStateStore", "JsonFileStateStore"]
