import os
import sys
import unittest

import numpy as np

THIS_DIR = os.path.dirname(__file__)
if THIS_DIR not in sys.path:
    sys.path.insert(0, THIS_DIR)

from synthetic import room_scene, add_door, add_icon
from floorplan_vectorizer.config import PostProcessingConfig
from floorplan_vectorizer.pipeline import (
    FloorPlanPostProcessor, PolygonEntry, PolygonResult, StructureCategory,
    get_polygons, normalize_polygon, validate_network_output
)


def empty_output(h=32, w=32):
    return (
        np.zeros((21, h, w), dtype=np.float32),
        np.zeros((12, h, w), dtype=np.float32),
        np.zeros((11, h, w), dtype=np.float32),
    )


class ValidationTests(unittest.TestCase):
    def test_valid_shapes(self):
        self.assertEqual(validate_network_output(*empty_output(16, 24)), (16, 24))

    def test_wrong_ndim(self):
        heatmaps, rooms, icons = empty_output()
        with self.assertRaises(ValueError):
            validate_network_output(heatmaps[0], rooms, icons)

    def test_wrong_channel_count(self):
        heatmaps, rooms, icons = empty_output()
        with self.assertRaises(ValueError):
            validate_network_output(heatmaps[:13], rooms, icons)

    def test_spatial_mismatch(self):
        heatmaps, rooms, _ = empty_output(32, 32)
        icons = np.zeros((11, 16, 32), dtype=np.float32)
        with self.assertRaises(ValueError):
            validate_network_output(heatmaps, rooms, icons)

    def test_empty_spatial_size(self):
        with self.assertRaises(ValueError):
            validate_network_output(*empty_output(0, 10))


class PolygonEntryTests(unittest.TestCase):
    def test_four_vertices_required(self):
        with self.assertRaises(ValueError):
            PolygonEntry(((0.0, 0.0), (1.0, 0.0), (1.0, 1.0)), StructureCategory.WALL)

    def test_normalize_polygon(self):
        vertices = normalize_polygon(np.array([[0, 0], [64, 0], [64, 32], [0, 32]]), 64, 64)
        self.assertEqual(vertices, ((0.0, 0.0), (1.0, 0.0), (1.0, 0.5), (0.0, 0.5)))

    def test_result_to_dict(self):
        square = ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0))
        result = PolygonResult([
            PolygonEntry(square, StructureCategory.WALL),
            PolygonEntry(square, StructureCategory.WALL),
            PolygonEntry(square, StructureCategory.DOOR),
        ], width=10, height=20)
        data = result.to_dict()
        self.assertEqual(data['counts'], {'wall': 2, 'door': 1})
        self.assertEqual(data['polygons'][2]['category'], 'door')
        self.assertEqual(len(result.by_category(StructureCategory.WINDOW)), 0)


class PostProcessorTests(unittest.TestCase):
    def test_config_opening_classes(self):
        self.assertEqual(PostProcessingConfig().opening_classes, (1, 2))

    def test_all_zero_output(self):
        result = FloorPlanPostProcessor().process(*empty_output(32, 48))
        self.assertEqual(result.polygons, [])
        self.assertEqual((result.width, result.height), (48, 32))

    def test_room_with_door(self):
        heatmaps, rooms, icons = room_scene()
        add_door(heatmaps, icons)
        result = get_polygons(heatmaps, rooms, icons)

        self.assertEqual(result.category_counts(), {'wall': 4, 'door': 1})
        for entry in result.polygons:
            self.assertEqual(len(entry.vertices), 4)
            for x, y in entry.vertices:
                self.assertTrue(0.0 <= x <= 1.0 and 0.0 <= y <= 1.0)

        door = result.by_category(StructureCategory.DOOR)[0]
        self.assertEqual(door.vertices[0], (round(20 / 64, 6), round(8 / 64, 6)))

    def test_unmapped_icon_classes_are_skipped(self):
        heatmaps, rooms, icons = room_scene()
        add_icon(heatmaps, icons, icon_class=5)
        result = get_polygons(heatmaps, rooms, icons)
        self.assertEqual(result.category_counts(), {'wall': 4})

    def test_icon_mapped_to_window(self):
        heatmaps, rooms, icons = room_scene()
        add_icon(heatmaps, icons, icon_class=5)
        config = PostProcessingConfig(window_classes=(1, 5))
        result = FloorPlanPostProcessor(config).process(heatmaps, rooms, icons)
        self.assertEqual(len(result.by_category(StructureCategory.WINDOW)), 1)


if __name__ == "__main__":
    unittest.main()
