import unittest

import numpy as np

from floorplan_vectorizer.tensor_utils import (
    argmax_channel_axis, prepare_network_output, sigmoid, softmax_channel_axis, split_channels
)


class SplitChannelsTests(unittest.TestCase):
    def test_channel_major_split(self):
        h, w = 3, 4
        flat = np.arange(44 * h * w, dtype=np.float32)
        heatmaps, rooms, icons = split_channels(flat, h, w)

        self.assertEqual(heatmaps.shape, (21, h, w))
        self.assertEqual(rooms.shape, (12, h, w))
        self.assertEqual(icons.shape, (11, h, w))
        self.assertEqual(heatmaps[0, 0, 1], 1)
        self.assertEqual(rooms[0, 0, 0], 21 * h * w)
        self.assertEqual(icons[10, 2, 3], 44 * h * w - 1)

    def test_size_mismatch(self):
        with self.assertRaises(ValueError):
            split_channels(np.zeros(10), 3, 4)


class ActivationTests(unittest.TestCase):
    def test_softmax_sums_to_one(self):
        data = np.random.RandomState(0).randn(5, 4, 4).astype(np.float32) * 50
        probs = softmax_channel_axis(data)
        np.testing.assert_allclose(probs.sum(axis=0), 1.0, rtol=1e-5)

    def test_sigmoid(self):
        self.assertAlmostEqual(float(sigmoid(np.float32(0.0))), 0.5)

    def test_argmax_ties_take_lowest(self):
        data = np.ones((3, 2, 2))
        np.testing.assert_array_equal(argmax_channel_axis(data), np.zeros((2, 2)))


class PrepareTests(unittest.TestCase):
    def test_batched_output(self):
        raw = np.zeros((1, 44, 8, 6), dtype=np.float32)
        heatmaps, rooms, icons = prepare_network_output(raw)
        self.assertEqual(heatmaps.shape, (21, 8, 6))
        np.testing.assert_allclose(rooms, 1.0 / 12, rtol=1e-5)
        np.testing.assert_allclose(icons, 1.0 / 11, rtol=1e-5)

    def test_heatmap_activation(self):
        raw = np.zeros((44, 2, 2), dtype=np.float32)
        heatmaps, _, _ = prepare_network_output(raw, heatmaps_activated=False)
        np.testing.assert_allclose(heatmaps, 0.5)

    def test_bad_shapes(self):
        with self.assertRaises(ValueError):
            prepare_network_output(np.zeros((2, 44, 4, 4)))
        with self.assertRaises(ValueError):
            prepare_network_output(np.zeros((40, 4, 4)))


if __name__ == "__main__":
    unittest.main()
