"""
Change-Notified Recomputation
=============================

Caches the schema validation and the valid move set, recomputing each only
when its inputs actually changed. Hosts call the ``refresh_*`` methods once
per frame; unchanged inputs cost a fingerprint comparison.
"""

from __future__ import annotations

from typing import Optional

from hexrules.core.config import EngineConfig
from hexrules.core.registry import OntologyRegistries, sync_auto_constraints
from hexrules.core.validator import SchemaValidation, validate_schema
from hexrules.grid.hex import GridGeometry
from hexrules.movement.board import BoardState
from hexrules.movement.engine import MoveEngine, ValidMoveSet
from hexrules.platform.fingerprint import input_fingerprint


class RulesSession:
    """
    Single-writer owner of the derived rules state.

    Example
    -------
    >>> session = RulesSession(registries, HexGrid(map_radius=4))
    >>> validation = session.refresh_validation()
    >>> moves = session.refresh_moves(board)
    >>> session.refresh_moves(board) is moves
    True
    """

    def __init__(
        self,
        registries: OntologyRegistries,
        geometry: GridGeometry,
        config: Optional[EngineConfig] = None,
    ):
        self.registries = registries
        self.engine = MoveEngine(registries, geometry, config)

        self._validation: Optional[SchemaValidation] = None
        self._validation_revision: Optional[tuple[int, int, int, int]] = None
        self._moves: Optional[ValidMoveSet] = None
        self._moves_fingerprint: Optional[str] = None

        self.validation_recompute_count = 0
        self.moves_recompute_count = 0

    @property
    def recompute_count(self) -> int:
        """Total recomputations of either derived value."""
        return self.validation_recompute_count + self.moves_recompute_count

    @property
    def validation(self) -> Optional[SchemaValidation]:
        return self._validation

    @property
    def moves(self) -> Optional[ValidMoveSet]:
        return self._moves

    def refresh_validation(self) -> SchemaValidation:
        """Re-validate the ontology if any registry changed."""
        if self._validation is not None and self._validation_revision == self.registries.revision:
            return self._validation

        changes = sync_auto_constraints(self.registries.relations, self.registries.constraints)
        validation = validate_schema(self.registries)
        # Syncing may itself bump the constraint revision.
        self._validation_revision = self.registries.revision
        self._validation = validation
        self.validation_recompute_count += 1

        status = "valid" if validation.is_valid else f"{len(validation.errors)} error(s)"
        print(f"[RulesSession] Schema validated: {status} ({changes} auto constraint change(s))")
        return validation

    def refresh_moves(self, board: BoardState) -> ValidMoveSet:
        """Recompute valid moves if the board or registries changed."""
        fingerprint = input_fingerprint(
            {"revision": self.registries.revision, "board": board.fingerprint_payload()}
        )
        if self._moves is not None and fingerprint == self._moves_fingerprint:
            return self._moves

        moves = self.engine.compute_valid_moves(board)
        self._moves = moves
        self._moves_fingerprint = fingerprint
        self.moves_recompute_count += 1

        print(
            f"[RulesSession] Moves recomputed for {moves.for_entity}: "
            f"{len(moves.valid_positions)} valid, {len(moves.blocked_explanations)} blocked"
        )
        return moves

    def invalidate(self) -> None:
        """Drop cached results so the next refresh recomputes."""
        self._validation = None
        self._validation_revision = None
        self._moves = None
        self._moves_fingerprint = None

    def __repr__(self) -> str:
        return (
            f"RulesSession(validations={self.validation_recompute_count}, "
            f"move_computations={self.moves_recompute_count})"
        )
