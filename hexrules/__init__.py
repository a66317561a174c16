"""
HexRules: Ontology-Driven Rules Engine for Hex Boards
=====================================================

Designers describe entity types, abstract concepts, relations and
constraints as data; this package checks that description for consistency
and answers "where may the selected token move, and why not elsewhere?".

Public API:
- OntologyRegistries: The designer's ontology, passed explicitly
- validate_schema: Structural consistency check
- ConstraintEvaluator: Boolean constraint expressions over bound entities
- MoveEngine / compute_valid_moves: Budgeted move search
- RulesSession: Change-notified recomputation for frame-driven hosts
"""

from hexrules.core import (
    ConstraintEvaluator,
    EngineConfig,
    OntologyRegistries,
    SchemaValidation,
    validate_schema,
)
from hexrules.grid import GraphGeometry, HexGrid, HexPosition
from hexrules.movement import BoardState, MoveEngine, TokenState, ValidMoveSet, compute_valid_moves
from hexrules.platform import RulesSession, input_fingerprint

__version__ = "0.1.0"

__all__ = [
    "OntologyRegistries",
    "validate_schema",
    "SchemaValidation",
    "ConstraintEvaluator",
    "EngineConfig",
    "HexPosition",
    "HexGrid",
    "GraphGeometry",
    "BoardState",
    "TokenState",
    "MoveEngine",
    "ValidMoveSet",
    "compute_valid_moves",
    "RulesSession",
    "input_fingerprint",
]
