"""
BindingsModule: turns BridgeSettings + one transport into binding facades.
Configure via .settings(...) / .fetch(...), then look bindings up by name.
"""
from __future__ import annotations

from typing import Union

from wrangler_bridge.bindings.database import DatabaseBinding
from wrangler_bridge.bindings.kinds import BindingKind
from wrangler_bridge.bindings.queue import QueueBinding
from wrangler_bridge.core.config import BridgeSettings
from wrangler_bridge.rpc.protocol import Fetch, HttpxFetch

Binding = Union[DatabaseBinding, QueueBinding]

_FACADES: dict[BindingKind, type[DatabaseBinding] | type[QueueBinding]] = {
    BindingKind.DATABASE: DatabaseBinding,
    BindingKind.QUEUE: QueueBinding,
}


class BindingsModule:
    """
    Bindings as one object: origin + declared bindings + transport.
    Facades are created once per name and reused.
    """

    def __init__(self, settings: BridgeSettings | None = None, fetch: Fetch | None = None) -> None:
        self._settings = settings or BridgeSettings()
        self._fetch: Fetch = fetch or HttpxFetch()
        self._facades: dict[str, Binding] = {}

    def settings(self, settings: BridgeSettings) -> BindingsModule:
        self._settings = settings
        self._facades.clear()
        return self

    def fetch(self, fetch: Fetch) -> BindingsModule:
        """Use a custom transport (protocol: async fetch(origin, request) -> response)."""
        self._fetch = fetch
        self._facades.clear()
        return self

    def declare(self, name: str, kind: BindingKind) -> BindingsModule:
        self._settings.bindings[name] = kind
        return self

    def get(self, name: str) -> Binding:
        if name not in self._facades:
            kind = self._settings.bindings.get(name)
            if kind is None:
                raise KeyError(f"No binding declared as {name!r}")
            self._facades[name] = _FACADES[kind](self._settings.origin, name, self._fetch)
        return self._facades[name]

    def database(self, name: str) -> DatabaseBinding:
        binding = self.get(name)
        if not isinstance(binding, DatabaseBinding):
            raise TypeError(f"Binding {name!r} is a {binding.kind.name}, not a DATABASE")
        return binding

    def queue(self, name: str) -> QueueBinding:
        binding = self.get(name)
        if not isinstance(binding, QueueBinding):
            raise TypeError(f"Binding {name!r} is a {binding.kind.name}, not a QUEUE")
        return binding

    def all(self) -> dict[str, Binding]:
        return {name: self.get(name) for name in self._settings.bindings}
