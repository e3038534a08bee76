"""Keeps odometry poses and re-anchors them to a world frame."""

from __future__ import annotations

import bisect
from typing import List

import numpy as np

from .transforms import isometry_inverse, transform_point


class TrajectoryManager:
    """Tracks odometry-frame sensor poses and the world-from-odometry transform."""

    def __init__(self) -> None:
        self._odom_stamps: List[float] = [0.0]
        self._T_odom_sensor: List[np.ndarray] = [np.eye(4)]
        self._T_world_odom = np.eye(4)

    def add_odom(self, stamp: float, T_odom_sensor) -> None:
        """Record the sensor pose in the odometry frame at ``stamp``."""
        self._odom_stamps.append(stamp)
        self._T_odom_sensor.append(np.array(T_odom_sensor, dtype=float))

    def update_anchor(self, stamp: float, T_world_sensor) -> None:
        """Align the odometry frame so the pose at ``stamp`` matches ``T_world_sensor``.

        The first odometry pose not older than ``stamp`` is used; a stamp newer
        than every recorded pose uses the newest one.
        """
        idx = min(bisect.bisect_left(self._odom_stamps, stamp), len(self._odom_stamps) - 1)
        self._T_world_odom = np.asarray(T_world_sensor, dtype=float) @ isometry_inverse(self._T_odom_sensor[idx])

        if idx > 1:
            del self._odom_stamps[: idx - 1]
            del self._T_odom_sensor[: idx - 1]

    def current_pose(self) -> np.ndarray:
        """World pose of the newest odometry sample."""
        return self._T_world_odom @ self._T_odom_sensor[-1]

    def odom2world(self, pose) -> np.ndarray:
        """Map a 4x4 pose or a 3D point from the odometry frame to the world."""
        arr = np.asarray(pose, dtype=float)
        if arr.shape == (4, 4):
            return self._T_world_odom @ arr
        return transform_point(self._T_world_odom, arr)

    @property
    def T_world_odom(self) -> np.ndarray:
        return self._T_world_odom.copy()