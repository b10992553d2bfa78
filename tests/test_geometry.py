import unittest

import numpy as np

from floorplan_vectorizer.geometry import (
    bresenham_line, calc_line_dim, calc_polygon_dim, get_intersect,
    point_inside_polygon, points_in_polygon, rectangles_overlap, rectangle_size,
    polygon_iou, stats_mode, evidence_in_box, clip_polygon
)


class BresenhamTests(unittest.TestCase):
    def test_horizontal_includes_both_ends(self):
        self.assertEqual(bresenham_line(0, 0, 3, 0), [(0, 0), (0, 1), (0, 2), (0, 3)])

    def test_vertical_returns_row_col(self):
        self.assertEqual(bresenham_line(0, 0, 0, 2), [(0, 0), (1, 0), (2, 0)])

    def test_diagonal(self):
        self.assertEqual(bresenham_line(0, 0, 2, 2), [(0, 0), (1, 1), (2, 2)])


class AxisTests(unittest.TestCase):
    def test_line_dim(self):
        points = [(0, 0), (10, 1), (1, 10)]
        self.assertEqual(calc_line_dim(points, (0, 1)), 0)
        self.assertEqual(calc_line_dim(points, (0, 2)), 1)

    def test_polygon_dim(self):
        horizontal = np.array([[0, 0], [10, 0], [10, 4], [0, 4]])
        vertical = np.array([[0, 0], [4, 0], [4, 10], [0, 10]])
        self.assertEqual(calc_polygon_dim(horizontal), 0)
        self.assertEqual(calc_polygon_dim(vertical), 1)


class IntersectTests(unittest.TestCase):
    def test_perpendicular_lines(self):
        self.assertEqual(get_intersect((0, 5), (10, 5), (3, 0), (3, 10)), (3, 5))

    def test_parallel_lines_fall_back_to_midpoint(self):
        self.assertEqual(get_intersect((0, 0), (10, 0), (0, 5), (10, 5)), (0, 2))

    def test_degenerate_second_line(self):
        self.assertEqual(get_intersect((0, 0), (10, 0), (4, 7), (4, 7)), (4, 7))


class RectangleTests(unittest.TestCase):
    def setUp(self):
        self.rect = np.array([[0, 0], [10, 0], [10, 4], [0, 4]])

    def test_containment_includes_border(self):
        self.assertTrue(point_inside_polygon((5, 2), self.rect))
        self.assertTrue(point_inside_polygon((10, 4), self.rect))
        self.assertFalse(point_inside_polygon((11, 2), self.rect))
        self.assertFalse(points_in_polygon((5, 2), (5, 5), self.rect))

    def test_size_and_overlap(self):
        self.assertEqual(rectangle_size(self.rect), 40)
        other = self.rect + np.array([5, 2])
        far = self.rect + np.array([50, 0])
        self.assertTrue(rectangles_overlap(self.rect, other))
        self.assertFalse(rectangles_overlap(self.rect, far))

    def test_iou(self):
        self.assertAlmostEqual(polygon_iou(self.rect, self.rect), 1.0)
        self.assertEqual(polygon_iou(self.rect, self.rect + np.array([50, 0])), 0.0)

    def test_clip(self):
        poly = np.array([[-3, 2], [70, 2], [70, 80], [-3, 80]])
        clip_polygon(poly, 64, 64)
        self.assertEqual(poly[:, 0].min(), 0)
        self.assertEqual(poly[:, 0].max(), 64)
        self.assertEqual(poly[:, 1].max(), 64)


class ModeAndEvidenceTests(unittest.TestCase):
    def test_mode_ties_pick_smallest(self):
        self.assertEqual(stats_mode([3.2, 2.9, 5, 5.1, 1]), 3)

    def test_mode_of_empty(self):
        self.assertEqual(stats_mode([]), 0)

    def test_evidence_in_box_is_clipped(self):
        seg = np.zeros((3, 5, 5))
        seg[1, 1:3, 1:3] = 1.0
        np.testing.assert_array_equal(evidence_in_box(seg, [0, 1, 2], 0, 100, -5, 4), [0, 4, 0])
        np.testing.assert_array_equal(evidence_in_box(seg, [1], 10, 20, 10, 20), [0])


if __name__ == "__main__":
    unittest.main()
