"""Point cloud frames as they come from a sensor and after preprocessing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np


def _as_points(values) -> np.ndarray:
    """N x 4 homogeneous points; N x 3 input gets a trailing column of ones."""
    arr = np.array(values, dtype=float)
    if arr.size == 0:
        return np.empty((0, 4))
    if arr.ndim != 2 or arr.shape[1] not in (3, 4):
        raise ValueError("points must be an N x 3 or N x 4 array")
    if arr.shape[1] == 3:
        arr = np.hstack([arr, np.ones((arr.shape[0], 1))])
    return arr


def _as_colors(values) -> np.ndarray:
    arr = np.array(values, dtype=float)
    if arr.size == 0:
        return np.empty((0, 4))
    if arr.ndim != 2 or arr.shape[1] != 4:
        raise ValueError("colors must be an N x 4 array")
    return arr


def _as_scalars(values) -> np.ndarray:
    return np.array(values, dtype=float).reshape(-1)


@dataclass
class RawPoints:
    """A raw point cloud frame.

    ``stamp`` is the time of the first point and ``times`` are per-point
    times relative to it.
    """

    stamp: float = 0.0
    times: np.ndarray = field(default_factory=lambda: np.empty(0))
    intensities: np.ndarray = field(default_factory=lambda: np.empty(0))
    points: np.ndarray = field(default_factory=lambda: np.empty((0, 4)))
    colors: np.ndarray = field(default_factory=lambda: np.empty((0, 4)))

    def __post_init__(self) -> None:
        self.stamp = float(self.stamp)
        self.times = _as_scalars(self.times)
        self.intensities = _as_scalars(self.intensities)
        self.points = _as_points(self.points)
        self.colors = _as_colors(self.colors)

    def __len__(self) -> int:
        return int(self.points.shape[0])


@dataclass
class PreprocessedFrame:
    """A filtered, time-sorted point cloud with its nearest-neighbour table.

    ``neighbors`` holds ``k_neighbors`` indices per point, row after row.
    """

    stamp: float = 0.0
    scan_end_time: float = 0.0
    times: np.ndarray = field(default_factory=lambda: np.empty(0))
    intensities: np.ndarray = field(default_factory=lambda: np.empty(0))
    points: np.ndarray = field(default_factory=lambda: np.empty((0, 4)))
    k_neighbors: int = 0
    neighbors: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=int))
    raw_points: Optional[RawPoints] = None

    def __post_init__(self) -> None:
        self.stamp = float(self.stamp)
        self.scan_end_time = float(self.scan_end_time)
        self.times = _as_scalars(self.times)
        self.intensities = _as_scalars(self.intensities)
        self.points = _as_points(self.points)
        self.k_neighbors = int(self.k_neighbors)
        self.neighbors = np.array(self.neighbors, dtype=int).reshape(-1)

    def __len__(self) -> int:
        return int(self.points.shape[0])