"""Bridge config: where the bridge endpoint lives and which bindings it exposes."""
from __future__ import annotations

import os
from dataclasses import dataclass, field

from wrangler_bridge.bindings.kinds import BindingKind


@dataclass
class BridgeSettings:
    """
    Process-wide bridge settings. Build one from the environment with
    BridgeSettings.from_env() or pass values directly.
    """

    origin: str = "http://127.0.0.1:8787"
    bindings: dict[str, BindingKind] = field(default_factory=dict)

    @staticmethod
    def bindings_from_env(suffix: str = "_BINDING") -> dict[str, BindingKind]:
        """
        Build binding name -> kind map from env.
        Env vars: SQL_BINDING=D1, JOBS_BINDING=QUEUE -> {"sql": DATABASE, "jobs": QUEUE}.
        Key is the part before suffix, lowercased; unknown kinds raise ValueError.
        """
        out: dict[str, BindingKind] = {}
        for key, value in os.environ.items():
            if not value or not key.endswith(suffix):
                continue
            name = key[: -len(suffix)].lower()
            if name:
                out[name] = BindingKind.parse(value.strip())
        return out

    @classmethod
    def from_env(cls, prefix: str = "BRIDGE_", suffix: str = "_BINDING") -> BridgeSettings:
        """{prefix}ORIGIN for the origin, *{suffix} variables for the bindings."""
        origin = os.environ.get(f"{prefix}ORIGIN") or cls.origin
        return cls(origin=origin.strip(), bindings=cls.bindings_from_env(suffix))
