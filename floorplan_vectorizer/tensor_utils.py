"""
Network Output Helpers
=======================
Splitting and activating the raw 44-channel network output:
1. Flat (1, 44, H, W) buffer to heat maps, room and icon evidence
2. Channel-axis softmax and argmax
3. Sigmoid for raw heat map logits
"""

import numpy as np
from typing import Tuple

from .config import HEATMAP_CHANNELS, ROOM_CHANNELS, ICON_CHANNELS, TOTAL_CHANNELS


def split_channels(flat_output: np.ndarray, height: int, width: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Split channel-major network output into its three parts.

    Args:
        flat_output: Array with TOTAL_CHANNELS * height * width values
        height, width: Spatial size

    Returns:
        (heatmaps (21, H, W), rooms (12, H, W), icons (11, H, W))
    """
    flat_output = np.asarray(flat_output, dtype=np.float32)
    expected = TOTAL_CHANNELS * height * width
    if flat_output.size != expected:
        raise ValueError(
            f"Expected {expected} values for {TOTAL_CHANNELS}x{height}x{width}, got {flat_output.size}"
        )

    volume = flat_output.reshape(TOTAL_CHANNELS, height, width)
    heatmaps = volume[:HEATMAP_CHANNELS].copy()
    rooms = volume[HEATMAP_CHANNELS:HEATMAP_CHANNELS + ROOM_CHANNELS].copy()
    icons = volume[HEATMAP_CHANNELS + ROOM_CHANNELS:].copy()
    return heatmaps, rooms, icons


def softmax_channel_axis(data: np.ndarray) -> np.ndarray:
    """Numerically stable softmax over axis 0 of a (C, H, W) array."""
    shifted = np.exp(data - data.max(axis=0, keepdims=True))
    return shifted / shifted.sum(axis=0, keepdims=True)


def sigmoid(data: np.ndarray) -> np.ndarray:
    return 1.0 / (1.0 + np.exp(-data))


def argmax_channel_axis(data: np.ndarray) -> np.ndarray:
    """(H, W) class indices; ties resolve to the lowest channel."""
    return np.argmax(data, axis=0)


def prepare_network_output(
    raw_output: np.ndarray, heatmaps_activated: bool = True
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Activate a (44, H, W) or (1, 44, H, W) network output for post-processing.

    Room and icon evidence are softmaxed; heat maps are passed through a
    sigmoid unless the network already applied one.
    """
    raw_output = np.asarray(raw_output, dtype=np.float32)
    if raw_output.ndim == 4:
        if raw_output.shape[0] != 1:
            raise ValueError(f"Expected a batch of one, got shape {raw_output.shape}")
        raw_output = raw_output[0]
    if raw_output.ndim != 3 or raw_output.shape[0] != TOTAL_CHANNELS:
        raise ValueError(f"Expected ({TOTAL_CHANNELS}, H, W) output, got shape {raw_output.shape}")

    _, height, width = raw_output.shape
    heatmaps, rooms, icons = split_channels(raw_output, height, width)

    if not heatmaps_activated:
        heatmaps = sigmoid(heatmaps)
    return heatmaps, softmax_channel_axis(rooms), softmax_channel_axis(icons)
