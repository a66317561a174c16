"""
Tests for grid geometry.
"""

import networkx as nx
import pytest

from hexrules.grid import AXIAL_DIRECTIONS, GraphGeometry, HexGrid, HexPosition


class TestHexPosition:
    """Tests for axial coordinates."""

    def test_cube_coordinate(self):
        assert HexPosition(2, -3).s == 1

    def test_distance(self):
        assert HexPosition(0, 0).distance_to(HexPosition(2, -1)) == 2
        assert HexPosition(-1, 2).distance_to(HexPosition(-1, 2)) == 0

    def test_ordering_is_by_q_then_r(self):
        positions = [HexPosition(1, 0), HexPosition(0, 1), HexPosition(0, -1)]
        assert sorted(positions) == [HexPosition(0, -1), HexPosition(0, 1), HexPosition(1, 0)]


class TestHexGrid:
    """Tests for the hexagon-shaped map."""

    @pytest.mark.parametrize("radius,count", [(0, 1), (1, 7), (2, 19), (3, 37)])
    def test_position_count(self, radius, count):
        assert len(HexGrid(map_radius=radius).positions()) == count

    def test_bounds(self):
        grid = HexGrid(map_radius=2)
        assert grid.in_bounds(HexPosition(2, -2))
        assert not grid.in_bounds(HexPosition(2, 1))
        assert not grid.in_bounds(HexPosition(3, 0))

    def test_neighbors_are_adjacent(self):
        center = HexPosition(1, -1)
        neighbors = HexGrid(map_radius=1).neighbors(center)

        assert len(neighbors) == len(AXIAL_DIRECTIONS) == 6
        assert all(center.distance_to(n) == 1 for n in neighbors)

    def test_graph_only_contains_in_bounds_edges(self):
        grid = HexGrid(map_radius=1)
        graph = grid.graph

        assert graph.number_of_nodes() == 7
        assert graph.degree(HexPosition(0, 0)) == 6
        assert graph.degree(HexPosition(1, 0)) == 3
        assert grid.graph is graph

    def test_negative_radius_rejected(self):
        with pytest.raises(ValueError):
            HexGrid(map_radius=-1)


class TestGraphGeometry:
    """Tests for graph-backed geometry."""

    def test_line(self):
        a, b, c = HexPosition(0, 0), HexPosition(1, 0), HexPosition(2, 0)
        geometry = GraphGeometry.line([a, b, c])

        assert geometry.neighbors(b) == [a, c]
        assert geometry.in_bounds(c)
        assert not geometry.in_bounds(HexPosition(3, 0))

    def test_unknown_position_has_no_neighbors(self):
        geometry = GraphGeometry(nx.Graph())
        assert geometry.neighbors(HexPosition(0, 0)) == []
