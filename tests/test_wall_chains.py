import os
import sys
import unittest

THIS_DIR = os.path.dirname(__file__)
if THIS_DIR not in sys.path:
    sys.path.insert(0, THIS_DIR)

from synthetic import seg, unit_square, two_rooms
from floorplan_vectorizer.pipeline import PolygonEntry, StructureCategory
from floorplan_vectorizer.room_detection import Connection, extract_room_outlines
from floorplan_vectorizer.wall_chains import build_chains, build_chains_from_walls, build_outer_boundary


def square_walls():
    """Normalized walls of a room spanning 0.2..0.8, 0.02 thick."""
    boxes = [
        ((0.2, 0.19), (0.8, 0.19), (0.8, 0.21), (0.2, 0.21)),
        ((0.2, 0.79), (0.8, 0.79), (0.8, 0.81), (0.2, 0.81)),
        ((0.19, 0.2), (0.21, 0.2), (0.21, 0.8), (0.19, 0.8)),
        ((0.79, 0.2), (0.81, 0.2), (0.81, 0.8), (0.79, 0.8)),
    ]
    return [PolygonEntry(b, StructureCategory.WALL) for b in boxes]


class OuterBoundaryTests(unittest.TestCase):
    def test_walks_the_cycle(self):
        connections = {
            0: Connection(0, 0, 1, 0.1),
            1: Connection(1, 1, 2, 0.3),
            2: Connection(2, 2, 0, 0.2),
        }
        positions = {0: (0.0, 0.0, 0.0), 1: (1.0, 0.0, 0.0), 2: (1.0, 0.0, 1.0)}
        chain = build_outer_boundary({0, 1, 2}, connections, positions)
        self.assertEqual(chain.points, [positions[0], positions[1], positions[2]])
        self.assertAlmostEqual(chain.thickness, 0.2)
        self.assertTrue(chain.is_exterior and chain.is_closed)

    def test_empty(self):
        chain = build_outer_boundary(set(), {}, {})
        self.assertEqual(chain.points, [])


class ChainTests(unittest.TestCase):
    def test_unit_square(self):
        chains = build_chains(extract_room_outlines(unit_square()))
        self.assertEqual(len(chains), 1)
        self.assertTrue(chains[0].is_exterior)
        self.assertEqual(len(chains[0].points), 4)

    def test_two_rooms(self):
        chains = build_chains(extract_room_outlines(two_rooms()))
        self.assertEqual(len(chains), 2)
        self.assertTrue(chains[0].is_exterior)
        self.assertEqual(len(chains[0].points), 6)

        internal = chains[1]
        self.assertFalse(internal.is_exterior or internal.is_closed)
        self.assertEqual(len(internal.points), 2)
        self.assertAlmostEqual(internal.thickness, 0.2)

    def test_open_graph_gives_open_chains(self):
        chains = build_chains(extract_room_outlines([seg(0, 0, 1, 0)]))
        self.assertEqual(len(chains), 1)
        self.assertFalse(chains[0].is_exterior)

    def test_from_wall_polygons(self):
        chains = build_chains_from_walls(square_walls(), (7.0, 7.0))
        self.assertEqual(len(chains), 1)
        self.assertTrue(chains[0].is_exterior)
        self.assertEqual(len(chains[0].points), 4)
        for point in chains[0].points:
            self.assertAlmostEqual(abs(point[0]), 2.1, places=6)
            self.assertAlmostEqual(abs(point[2]), 2.1, places=6)

    def test_no_walls(self):
        self.assertEqual(build_chains_from_walls([]), [])


if __name__ == "__main__":
    unittest.main()
