import os
import sys
import unittest

import numpy as np

THIS_DIR = os.path.dirname(__file__)
if THIS_DIR not in sys.path:
    sys.path.insert(0, THIS_DIR)

from synthetic import two_rooms
from floorplan_vectorizer.pipeline import PolygonEntry, PolygonResult, StructureCategory
from floorplan_vectorizer.room_detection import extract_room_outlines
from floorplan_vectorizer.visualization import outlines_to_image, polygons_to_image, world_to_pixel


class PolygonImageTests(unittest.TestCase):
    def setUp(self):
        self.result = PolygonResult([
            PolygonEntry(((0.1, 0.1), (0.9, 0.1), (0.9, 0.2), (0.1, 0.2)), StructureCategory.WALL),
            PolygonEntry(((0.4, 0.1), (0.6, 0.1), (0.6, 0.2), (0.4, 0.2)), StructureCategory.DOOR),
        ], width=50, height=40)

    def test_default_shape_and_colors(self):
        img = polygons_to_image(self.result)
        self.assertEqual(img.shape, (40, 50, 3))
        self.assertEqual(tuple(img[6, 10]), (200, 200, 200))
        self.assertEqual(tuple(img[6, 25]), (0, 165, 255))
        self.assertEqual(img[30, 25].sum(), 0)

    def test_outline_only(self):
        img = polygons_to_image(self.result, shape=(100, 100), fill=False)
        self.assertEqual(img.shape, (100, 100, 3))
        self.assertGreater(np.count_nonzero(img), 0)
        self.assertEqual(img[15, 20].sum(), 0)


class OutlineImageTests(unittest.TestCase):
    def test_world_to_pixel(self):
        self.assertEqual(world_to_pixel((0.0, 0.0, 0.0), (101, 101), (7.0, 7.0)), (50, 50))
        self.assertEqual(world_to_pixel((-3.5, 0.0, 3.5), (101, 101), (7.0, 7.0)), (0, 0))

    def test_draws_graph(self):
        extraction = extract_room_outlines(two_rooms())
        img = outlines_to_image(extraction, (128, 128), capture_size=(4.0, 4.0))
        self.assertEqual(img.shape, (128, 128, 3))
        self.assertTrue(np.any(img != 255))
        self.assertTrue(np.any((img[:, :, 2] == 255) & (img[:, :, 0] == 0) & (img[:, :, 1] == 0)))


if __name__ == "__main__":
    unittest.main()
