"""
Grid geometry: hex coordinates and adjacency.
"""

from hexrules.grid.hex import AXIAL_DIRECTIONS, GraphGeometry, GridGeometry, HexGrid, HexPosition

__all__ = [
    "AXIAL_DIRECTIONS",
    "GraphGeometry",
    "GridGeometry",
    "HexGrid",
    "HexPosition",
]
