import unittest

from floorplan_vectorizer.heatmap import ConfidencePoint
from floorplan_vectorizer.point_analysis import (
    POINT_ORIENTATIONS, orientation_ranges, calc_point_info, opposite_orientation
)


def corner(x, y, sub):
    return ConfidencePoint(x, y, 0, sub, 1.0)


RIGHT = 3  # corner sub-index extending right
LEFT = 1   # corner sub-index extending left


class OrientationTableTests(unittest.TestCase):
    def test_direction_counts_per_type(self):
        for point_type, count in enumerate((1, 2, 3, 4)):
            for directions in POINT_ORIENTATIONS[point_type]:
                self.assertEqual(len(directions), count)
        self.assertEqual(len(POINT_ORIENTATIONS[3]), 1)

    def test_opposites(self):
        self.assertEqual([opposite_orientation(o) for o in range(4)], [2, 3, 0, 1])

    def test_ranges(self):
        self.assertEqual(orientation_ranges(100, 50)[1], (100, 50, 100, 0))


class PointInfoTests(unittest.TestCase):
    def test_facing_corners_form_a_line(self):
        points = [corner(10, 20, RIGHT), corner(60, 20, LEFT)]
        graph = calc_point_info(points, 10, 100, 100)
        self.assertEqual(graph.lines, [(0, 1)])
        self.assertEqual(graph.orientation_lines[0], {1: [0]})
        self.assertEqual(graph.orientation_lines[1], {3: [0]})
        self.assertEqual(graph.neighbors, [[1], [0]])

    def test_line_starts_with_smaller_coordinate_sum(self):
        points = [corner(60, 20, LEFT), corner(10, 20, RIGHT)]
        graph = calc_point_info(points, 10, 100, 100)
        self.assertEqual(graph.lines, [(1, 0)])

    def test_diagonal_pair_rejected(self):
        points = [corner(10, 20, RIGHT), corner(15, 28, LEFT)]
        self.assertEqual(calc_point_info(points, 10, 100, 100).lines, [])

    def test_incompatible_orientation_rejected(self):
        points = [corner(10, 20, RIGHT), corner(60, 20, RIGHT)]
        self.assertEqual(calc_point_info(points, 10, 100, 100).lines, [])

    def test_min_distance_only(self):
        points = [corner(10, 20, RIGHT), corner(40, 20, LEFT), corner(70, 20, LEFT)]
        self.assertEqual(calc_point_info(points, 10, 100, 100).lines, [(0, 1), (0, 2)])
        self.assertEqual(calc_point_info(points, 10, 100, 100, min_distance_only=True).lines, [(0, 1)])

    def test_double_direction_records_line_once(self):
        points = [corner(10, 20, RIGHT), corner(60, 20, LEFT)]
        graph = calc_point_info(points, 10, 100, 100, double_direction=True)
        self.assertEqual(graph.lines, [(0, 1)])

    def test_connected_orientations(self):
        points = [ConfidencePoint(10, 20, 1, 2, 1.0), corner(60, 20, LEFT)]  # right + down
        graph = calc_point_info(points, 10, 100, 100)
        self.assertEqual(graph.connected_orientations(0), 1)


if __name__ == "__main__":
    unittest.main()
