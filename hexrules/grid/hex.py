"""
Grid Geometry
=============

Adjacency primitives consumed by the move engine.

The engine only needs ``neighbors(position)``, ``in_bounds(position)`` and a
``graph`` view; any object providing those works. Two implementations ship:

- HexGrid: hexagon-shaped map of axial hex coordinates
- GraphGeometry: wraps an arbitrary NetworkX graph (lines, custom boards)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

import networkx as nx


@dataclass(frozen=True, order=True)
class HexPosition:
    """Axial hex coordinate."""

    q: int
    r: int

    @property
    def s(self) -> int:
        """Third cube coordinate (q + r + s == 0)."""
        return -self.q - self.r

    def distance_to(self, other: "HexPosition") -> int:
        return max(abs(self.q - other.q), abs(self.r - other.r), abs(self.s - other.s))

    def to_dict(self) -> dict[str, int]:
        return {"q": self.q, "r": self.r}

    def __repr__(self) -> str:
        return f"HexPosition({self.q}, {self.r})"


AXIAL_DIRECTIONS: tuple[tuple[int, int], ...] = (
    (1, 0),
    (1, -1),
    (0, -1),
    (-1, 0),
    (-1, 1),
    (0, 1),
)
"""The six axial neighbour offsets, in a fixed order."""


class GridGeometry(Protocol):
    """What the move engine needs from the grid."""

    @property
    def graph(self) -> nx.Graph: ...

    def neighbors(self, position: HexPosition) -> list[HexPosition]: ...

    def in_bounds(self, position: HexPosition) -> bool: ...


class HexGrid:
    """
    Hexagon-shaped hex map.

    Bounds: ``max(|q|, |r|, |q + r|) <= map_radius``.

    Example
    -------
    >>> grid = HexGrid(map_radius=2)
    >>> len(grid.positions())
    19
    """

    def __init__(self, map_radius: int):
        if map_radius < 0:
            raise ValueError("map_radius must be non-negative")
        self.map_radius = map_radius
        self._graph: Optional[nx.Graph] = None

    def in_bounds(self, position: HexPosition) -> bool:
        return max(abs(position.q), abs(position.r), abs(position.s)) <= self.map_radius

    def neighbors(self, position: HexPosition) -> list[HexPosition]:
        """All six adjacent positions, in bounds or not."""
        return [HexPosition(position.q + dq, position.r + dr) for dq, dr in AXIAL_DIRECTIONS]

    def positions(self) -> list[HexPosition]:
        radius = self.map_radius
        return [
            HexPosition(q, r)
            for q in range(-radius, radius + 1)
            for r in range(-radius, radius + 1)
            if abs(q + r) <= radius
        ]

    @property
    def graph(self) -> nx.Graph:
        """Adjacency graph over in-bounds positions (built once)."""
        if self._graph is None:
            graph = nx.Graph()
            graph.add_nodes_from(self.positions())
            for position in self.positions():
                for neighbor in self.neighbors(position):
                    if self.in_bounds(neighbor):
                        graph.add_edge(position, neighbor)
            self._graph = graph
        return self._graph

    def __repr__(self) -> str:
        return f"HexGrid(map_radius={self.map_radius})"


class GraphGeometry:
    """
    Geometry backed by an explicit NetworkX graph.

    The graph's nodes are the in-bounds set; its edges are adjacency.
    """

    def __init__(self, graph: nx.Graph):
        self._graph = graph

    @classmethod
    def line(cls, positions: Iterable[HexPosition]) -> "GraphGeometry":
        """A straight chain of positions, each adjacent to the next."""
        graph = nx.Graph()
        nx.add_path(graph, list(positions))
        return cls(graph)

    @property
    def graph(self) -> nx.Graph:
        return self._graph

    def in_bounds(self, position: HexPosition) -> bool:
        return position in self._graph

    def neighbors(self, position: HexPosition) -> list[HexPosition]:
        if position not in self._graph:
            return []
        return list(self._graph.neighbors(position))

    def __repr__(self) -> str:
        return (
            f"GraphGeometry(nodes={self._graph.number_of_nodes()}, "
            f"edges={self._graph.number_of_edges()})"
        )
