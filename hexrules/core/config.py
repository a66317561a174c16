"""
Engine Configuration
====================

Tunables for the move engine, loadable from JSON so designers can adjust
fallback behaviour without code changes.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any
import json
from pathlib import Path


@dataclass(frozen=True)
class EngineConfig:
    """
    Move engine settings.

    Attributes
    ----------
    budget_property_name : str
        Concept-local name tried when no subtract relation identifies the
        traveler's budget.
    permissive_budget : int
        Budget used when no budget property resolves at all.
    include_origin : bool
        Whether the token's own position counts as a valid move.
    explain_out_of_range : bool
        Record an explanation for positions dropped for lack of budget.
        Out-of-range positions are otherwise simply absent.
    """

    budget_property_name: str = "budget"
    permissive_budget: int = 10**9
    include_origin: bool = True
    explain_out_of_range: bool = False

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "EngineConfig":
        """Build a config, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(config) - known)
        if unknown:
            raise ValueError(f"Unknown engine config keys: {unknown}")

        permissive_budget = config.get("permissive_budget", cls.permissive_budget)
        if isinstance(permissive_budget, bool) or not isinstance(permissive_budget, int):
            raise ValueError("permissive_budget must be an integer")
        if permissive_budget < 0:
            raise ValueError("permissive_budget must be non-negative")

        return cls(**config)

    @classmethod
    def from_json_file(cls, path: Path | str) -> "EngineConfig":
        """Load configuration from a JSON file."""
        with open(path) as f:
            config = json.load(f)
        print(f"[EngineConfig] Loaded engine config from {path}")
        return cls.from_dict(config)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
