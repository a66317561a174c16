"""
HexRules Movement Package
=========================

Board snapshots and the budgeted valid-move search.
"""

from hexrules.movement.board import BoardState, TokenState
from hexrules.movement.engine import MoveEngine, ValidMoveSet, compute_valid_moves

__all__ = [
    "BoardState",
    "TokenState",
    "MoveEngine",
    "ValidMoveSet",
    "compute_valid_moves",
]
