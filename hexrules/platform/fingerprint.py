"""
Deterministic fingerprints of engine inputs.

Used to tell whether a recompute is needed without diffing whole boards.
"""

from __future__ import annotations

import dataclasses
import hashlib
import json
from enum import Enum
from typing import Any
from uuid import UUID


def input_fingerprint(payload: Any, *, namespace: str = "hexrules.inputs.v1") -> str:
    """
    Generate a deterministic SHA-256 fingerprint of a canonical payload.
    """
    normalized = _normalize_for_hash(payload)
    blob = json.dumps(normalized, sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(f"{namespace}|{blob}".encode("utf-8")).hexdigest()


def _normalize_for_hash(value: Any) -> Any:
    """Normalize nested values into stable, JSON-safe form."""
    if isinstance(value, dict):
        return {
            _key(k): _normalize_for_hash(v)
            for k, v in sorted(value.items(), key=lambda item: _key(item[0]))
        }

    if isinstance(value, (list, tuple)):
        return [_normalize_for_hash(item) for item in value]

    if isinstance(value, (set, frozenset)):
        items = [_normalize_for_hash(item) for item in value]
        return sorted(items, key=lambda item: json.dumps(item, sort_keys=True))

    if isinstance(value, UUID):
        return str(value)

    if isinstance(value, Enum):
        return value.value

    if hasattr(value, "fingerprint_payload"):
        return _normalize_for_hash(value.fingerprint_payload())

    if hasattr(value, "model_dump"):
        return _normalize_for_hash(value.model_dump(mode="json"))

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _normalize_for_hash(dataclasses.asdict(value))

    return value


def _key(key: Any) -> str:
    """Dictionary keys become strings; dataclass keys (positions) keep their fields."""
    if dataclasses.is_dataclass(key) and not isinstance(key, type):
        return json.dumps(dataclasses.asdict(key), sort_keys=True)
    return str(key)
