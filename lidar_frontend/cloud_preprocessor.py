"""Downsampling, range filtering, outlier removal and neighbour search for scans."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy.spatial import cKDTree

from .config import Config, GlobalConfig
from .frames import PreprocessedFrame, RawPoints

logger = logging.getLogger(__name__)

Sampled = Tuple[np.ndarray, np.ndarray, Optional[np.ndarray]]


@dataclass
class CloudPreprocessorParams:
    """Point cloud preprocessing parameters."""

    distance_near_thresh: float = 1.0
    distance_far_thresh: float = 100.0
    global_shutter: bool = False  # zero all point times, disabling deskewing
    use_random_grid_downsampling: bool = False
    downsample_resolution: float = 0.15
    downsample_target: int = 0
    downsample_rate: float = 0.3
    enable_outlier_removal: bool = False
    outlier_removal_k: int = 10
    outlier_std_mul_factor: float = 2.0
    k_correspondences: int = 8
    num_threads: int = 10

    @classmethod
    def from_global_config(cls) -> "CloudPreprocessorParams":
        """Read the parameters from the preprocess and sensor configuration files."""
        config = Config(GlobalConfig.get_config_path("config_preprocess"))
        sensor_config = Config(GlobalConfig.get_config_path("config_sensors"))
        return cls(
            global_shutter=sensor_config.param("sensors", "global_shutter_lidar", False),
            distance_near_thresh=config.param("preprocess", "distance_near_thresh", 1.0),
            distance_far_thresh=config.param("preprocess", "distance_far_thresh", 100.0),
            use_random_grid_downsampling=config.param("preprocess", "use_random_grid_downsampling", False),
            downsample_resolution=config.param("preprocess", "downsample_resolution", 0.15),
            downsample_target=config.param("preprocess", "random_downsample_target", 0),
            downsample_rate=config.param("preprocess", "random_downsample_rate", 0.3),
            enable_outlier_removal=config.param("preprocess", "enable_outlier_removal", False),
            outlier_removal_k=config.param("preprocess", "outlier_removal_k", 10),
            outlier_std_mul_factor=config.param("preprocess", "outlier_std_mul_factor", 2.0),
            k_correspondences=config.param("preprocess", "k_correspondences", 8),
            num_threads=config.param("preprocess", "num_threads", 10),
        )


def _points4(points) -> np.ndarray:
    arr = np.asarray(points, dtype=float)
    if arr.size == 0:
        return np.empty((0, 4))
    if arr.ndim != 2 or arr.shape[1] not in (3, 4):
        raise ValueError("points must be an N x 3 or N x 4 array")
    if arr.shape[1] == 3:
        arr = np.hstack([arr, np.ones((arr.shape[0], 1))])
    return arr


def _attributes(points: np.ndarray, times, intensities) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    time_values = np.asarray(times, dtype=float).reshape(-1)
    if time_values.shape[0] != points.shape[0]:
        raise ValueError("times must have one entry per point")
    intensity_values = None
    if intensities is not None:
        intensity_values = np.asarray(intensities, dtype=float).reshape(-1)
        if intensity_values.shape[0] != points.shape[0]:
            raise ValueError("intensities must have one entry per point")
    return time_values, intensity_values


def _voxel_groups(xyz: np.ndarray, resolution: float) -> Tuple[np.ndarray, np.ndarray]:
    if not resolution > 0.0:
        raise ValueError("resolution must be positive")
    keys = np.floor(xyz / resolution).astype(np.int64)
    _, inverse, counts = np.unique(keys, axis=0, return_inverse=True, return_counts=True)
    return inverse.reshape(-1), counts


def voxelgrid_sampling(points, times, intensities, resolution: float) -> Sampled:
    """Replace the points in each voxel by their average (with averaged attributes).

    Non-finite points are dropped.
    """
    pts = _points4(points)
    time_values, intensity_values = _attributes(pts, times, intensities)
    if not resolution > 0.0:
        raise ValueError("resolution must be positive")

    finite = np.isfinite(pts).all(axis=1)
    pts = pts[finite]
    time_values = time_values[finite]
    if intensity_values is not None:
        intensity_values = intensity_values[finite]
    if pts.shape[0] == 0:
        return np.empty((0, 4)), np.empty(0), (np.empty(0) if intensity_values is not None else None)

    inverse, counts = _voxel_groups(pts[:, :3], resolution)

    def average(values: np.ndarray) -> np.ndarray:
        sums = np.zeros((counts.shape[0],) + values.shape[1:])
        np.add.at(sums, inverse, values)
        return sums / counts.reshape((-1,) + (1,) * (values.ndim - 1))

    sampled_intensities = average(intensity_values) if intensity_values is not None else None
    return average(pts), average(time_values), sampled_intensities


def randomgrid_sampling(points, times, intensities, resolution: float, rate: float, rng: np.random.Generator) -> Sampled:
    """Randomly keep about ``rate`` of the points, spread evenly over voxels.

    A rate of 0.99 or more keeps every point. Non-finite points are dropped
    otherwise.
    """
    pts = _points4(points)
    time_values, intensity_values = _attributes(pts, times, intensities)
    if not resolution > 0.0:
        raise ValueError("resolution must be positive")

    if rate >= 0.99:
        return pts.copy(), time_values.copy(), (intensity_values.copy() if intensity_values is not None else None)

    candidates = np.flatnonzero(np.isfinite(pts).all(axis=1))
    if candidates.size == 0:
        return np.empty((0, 4)), np.empty(0), (np.empty(0) if intensity_values is not None else None)

    inverse, counts = _voxel_groups(pts[candidates, :3], resolution)
    num_samples = int(pts.shape[0] * rate)
    per_voxel = math.ceil(num_samples / counts.shape[0]) if num_samples > 0 else 0

    order = candidates[np.argsort(inverse, kind="stable")]
    groups = np.split(order, np.cumsum(counts)[:-1])
    chosen = [
        group if group.size <= per_voxel else rng.choice(group, size=per_voxel, replace=False)
        for group in groups
        if per_voxel > 0
    ]
    selected = np.sort(np.concatenate(chosen)) if chosen else np.empty(0, dtype=int)

    sampled_intensities = intensity_values[selected] if intensity_values is not None else None
    return pts[selected], time_values[selected], sampled_intensities


def find_neighbors(points, k: int) -> np.ndarray:
    """Indices of the ``k`` nearest points of every point, row after row.

    The point itself counts as its own nearest neighbour. With fewer than
    ``k`` points the farthest found neighbour fills the remaining slots.
    """
    if k <= 0:
        raise ValueError("k must be positive")
    xyz = _points4(points)[:, :3]
    num_points = xyz.shape[0]
    if num_points == 0:
        return np.empty(0, dtype=int)

    k_eff = min(k, num_points)
    _, indices = cKDTree(xyz).query(xyz, k=k_eff)
    indices = np.asarray(indices, dtype=int).reshape(num_points, k_eff)
    if k_eff < k:
        indices = np.hstack([indices, np.repeat(indices[:, -1:], k - k_eff, axis=1)])
    return indices.reshape(-1)


def remove_outliers(points, k: int, std_mul_factor: float) -> np.ndarray:
    """Indices of points whose mean distance to their k neighbours is not an outlier.

    A point is kept when that distance is at most the mean plus
    ``std_mul_factor`` standard deviations over all points.
    """
    xyz = _points4(points)[:, :3]
    num_points = xyz.shape[0]
    if num_points == 0:
        return np.empty(0, dtype=int)

    neighbors = find_neighbors(xyz, k).reshape(num_points, -1)
    dists = np.linalg.norm(xyz[neighbors] - xyz[:, None, :], axis=2).mean(axis=1)
    thresh = dists.mean() + std_mul_factor * dists.std()
    return np.flatnonzero(dists <= thresh)


class CloudPreprocessor:
    """Turns raw scans into filtered, time-sorted frames with neighbour tables."""

    def __init__(self, params: Optional[CloudPreprocessorParams] = None, seed: Optional[int] = None) -> None:
        self.params = params if params is not None else CloudPreprocessorParams()
        self._rng = np.random.default_rng(seed)

    def preprocess(self, raw_points: RawPoints) -> PreprocessedFrame:
        """Downsample, range-filter, sort by time and find neighbours."""
        params = self.params
        num_raw = len(raw_points)
        logger.debug("preprocessing input: %d points", num_raw)

        points = _points4(raw_points.points)
        intensities_in = raw_points.intensities if np.size(raw_points.intensities) else None
        times, intensities = _attributes(points, raw_points.times, intensities_in)

        if params.use_random_grid_downsampling:
            if params.downsample_target > 0:
                rate = params.downsample_target / num_raw if num_raw else 1.0
            else:
                rate = params.downsample_rate
            points, times, intensities = randomgrid_sampling(
                points, times, intensities, params.downsample_resolution, rate, self._rng
            )
        else:
            points, times, intensities = voxelgrid_sampling(points, times, intensities, params.downsample_resolution)

        if points.shape[0] < 100:
            logger.warning("too few points in the downsampled cloud (%d points)", points.shape[0])

        finite = np.isfinite(points).all(axis=1)
        with np.errstate(invalid="ignore"):
            dist = np.linalg.norm(points[:, :3], axis=1)
            keep = finite & (dist > params.distance_near_thresh) & (dist < params.distance_far_thresh)
        indices = np.flatnonzero(keep)

        if indices.size < 100:
            logger.warning("too few points in the filtered cloud (%d points)", indices.size)

        indices = indices[np.argsort(times[indices], kind="stable")]
        points = points[indices]
        times = times[indices]
        if intensities is not None:
            intensities = intensities[indices]

        if params.global_shutter:
            times = np.zeros_like(times)

        if params.enable_outlier_removal and points.shape[0]:
            inliers = remove_outliers(points, params.outlier_removal_k, params.outlier_std_mul_factor)
            points = points[inliers]
            times = times[inliers]
            if intensities is not None:
                intensities = intensities[inliers]

        stamp = raw_points.stamp
        scan_end_time = stamp + times[-1] if times.size else stamp
        neighbors = (
            find_neighbors(points, params.k_correspondences) if points.shape[0] else np.empty(0, dtype=int)
        )

        frame = PreprocessedFrame(
            stamp=stamp,
            scan_end_time=scan_end_time,
            times=times,
            intensities=intensities if intensities is not None else np.empty(0),
            points=points,
            k_neighbors=params.k_correspondences,
            neighbors=neighbors,
        )
        logger.debug("preprocessed: %d -> %d points", num_raw, len(frame))
        return frame