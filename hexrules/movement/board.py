"""
Board State
===========

Immutable snapshot of the board handed to the move engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from hexrules.core.schema import EntityInstance, TokenId
from hexrules.grid.hex import HexPosition


@dataclass(frozen=True)
class TokenState:
    """A token on the board: where it stands and what it is."""

    position: HexPosition
    instance: EntityInstance


@dataclass(frozen=True)
class BoardState:
    """
    Tiles, tokens and the current selection.

    Attributes
    ----------
    tiles : dict[HexPosition, EntityInstance]
        Tile instance per position; positions without a tile are empty
    tokens : dict[TokenId, TokenState]
        Every token on the board
    selected : TokenId, optional
        The token whose moves are being computed
    """

    tiles: dict[HexPosition, EntityInstance] = field(default_factory=dict)
    tokens: dict[TokenId, TokenState] = field(default_factory=dict)
    selected: Optional[TokenId] = None

    def tile_at(self, position: HexPosition) -> Optional[EntityInstance]:
        return self.tiles.get(position)

    def selected_token(self) -> Optional[TokenState]:
        """The selected token, or None when nothing (known) is selected."""
        if self.selected is None:
            return None
        return self.tokens.get(self.selected)

    def with_selection(self, token_id: Optional[TokenId]) -> "BoardState":
        return BoardState(tiles=self.tiles, tokens=self.tokens, selected=token_id)

    def fingerprint_payload(self) -> dict[str, Any]:
        """Canonical, JSON-safe description used for change detection."""
        return {
            "tiles": [
                {"position": position.to_dict(), "instance": instance}
                for position, instance in sorted(self.tiles.items())
            ],
            "tokens": {
                str(token_id): {"position": state.position.to_dict(), "instance": state.instance}
                for token_id, state in self.tokens.items()
            },
            "selected": str(self.selected) if self.selected is not None else None,
        }
