import unittest

from floorplan_vectorizer.centerline import WallSegment, extract_centerline, extract_centerlines, to_world
from floorplan_vectorizer.pipeline import PolygonEntry, StructureCategory


def wall(*vertices, category=StructureCategory.WALL):
    return PolygonEntry(tuple(vertices), category)


class ToWorldTests(unittest.TestCase):
    def test_center_and_corners(self):
        self.assertEqual(to_world((0.5, 0.5), (10.0, 10.0)), (0.0, 0.0, 0.0))
        self.assertEqual(to_world((0.0, 0.0), (10.0, 8.0)), (-5.0, 0.0, 4.0))
        self.assertEqual(to_world((1.0, 1.0), (10.0, 8.0)), (5.0, 0.0, -4.0))


class CenterlineTests(unittest.TestCase):
    def assertVecAlmostEqual(self, a, b):
        for x, y in zip(a, b):
            self.assertAlmostEqual(x, y, places=6)

    def test_horizontal_wall(self):
        segment = extract_centerline(
            wall((0.2, 0.5), (0.8, 0.5), (0.8, 0.52), (0.2, 0.52)), (10.0, 10.0)
        )
        self.assertVecAlmostEqual(segment.start, (3.0, 0.0, -0.1))
        self.assertVecAlmostEqual(segment.end, (-3.0, 0.0, -0.1))
        self.assertAlmostEqual(segment.thickness, 0.2, places=6)
        self.assertTrue(segment.is_horizontal)

    def test_vertical_wall(self):
        segment = extract_centerline(
            wall((0.5, 0.1), (0.52, 0.1), (0.52, 0.9), (0.5, 0.9)), (10.0, 10.0)
        )
        self.assertVecAlmostEqual(segment.start, (0.1, 0.0, 4.0))
        self.assertVecAlmostEqual(segment.end, (0.1, 0.0, -4.0))
        self.assertAlmostEqual(segment.thickness, 0.2, places=6)
        self.assertAlmostEqual(segment.length, 8.0, places=6)
        self.assertFalse(segment.is_horizontal)

    def test_skewed_wall_is_snapped(self):
        segment = extract_centerline(
            wall((0.2, 0.5), (0.8, 0.51), (0.8, 0.53), (0.2, 0.52)), (10.0, 10.0)
        )
        self.assertAlmostEqual(segment.start[2], segment.end[2])
        self.assertAlmostEqual(segment.start[2], -0.15, places=6)

    def test_invalid_capture_size(self):
        entry = wall((0.2, 0.5), (0.8, 0.5), (0.8, 0.52), (0.2, 0.52))
        with self.assertRaises(ValueError):
            extract_centerline(entry, (0.0, 10.0))

    def test_only_walls_are_converted(self):
        entries = [
            wall((0.2, 0.5), (0.8, 0.5), (0.8, 0.52), (0.2, 0.52)),
            wall((0.3, 0.5), (0.4, 0.5), (0.4, 0.52), (0.3, 0.52), category=StructureCategory.DOOR),
        ]
        segments = extract_centerlines(entries, (10.0, 10.0))
        self.assertEqual(len(segments), 1)
        self.assertIsInstance(segments[0], WallSegment)


if __name__ == "__main__":
    unittest.main()
