"""Checks incoming IMU and point cloud streams and reports suspicious data."""

from __future__ import annotations

import logging
import sys
import time
from typing import List, Optional

import numpy as np

from .convert_to_string import format_vector
from .frames import RawPoints
from .log_setup import set_default_logger
from .time_keeper import TimeKeeper

_LOG_FORMAT = "[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s"


class _DuplicateFilter(logging.Filter):
    """Drops a message identical to the previous one within ``window`` seconds."""

    def __init__(self, window: float = 10.0) -> None:
        super().__init__()
        self.window = window
        self._last_message: Optional[str] = None
        self._last_time = 0.0

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        now = time.monotonic()
        if message == self._last_message and now - self._last_time < self.window:
            return False
        self._last_message = message
        self._last_time = now
        return True


class DataValidator:
    """Watches sensor callbacks for stalls, time gaps and invalid points.

    Each callback logs what it finds and returns the warning messages.
    """

    def __init__(self, debug: bool = False) -> None:
        self.logger = logging.getLogger("lidar_frontend.validator")
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
        self.logger.propagate = False
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler.addFilter(_DuplicateFilter(10.0))
        self.logger.addHandler(handler)
        self.logger.setLevel(logging.DEBUG if debug else logging.INFO)

        set_default_logger(self.logger)
        self.logger.info("Starting data validator")

        now = time.monotonic()
        self._last_imu_time = now
        self._last_points_time = now

        self._last_imu_stamp = -1.0
        self._last_points_stamp = -1.0

        self._time_keeper = TimeKeeper()

    def _warn(self, issues: List[str], message: str) -> None:
        self.logger.warning("%s", message)
        issues.append(message)

    def timer_callback(self) -> List[str]:
        """Report streams that have been silent for more than a second."""
        started = time.perf_counter()
        self.logger.debug("timer_callback")
        issues: List[str] = []

        now = time.monotonic()
        if now - self._last_imu_time > 1.0:
            self._warn(issues, "No IMU data received in last 1 second")
        if now - self._last_points_time > 1.0:
            self._warn(issues, "No points received in last 1 second")

        self.logger.debug("timer_callback done (elapsed=%.3f[msec])", (time.perf_counter() - started) * 1e3)
        return issues

    def imu_callback(self, stamp: float, linear_acc, angular_vel) -> List[str]:
        """Check an IMU sample's stamp against the previous one."""
        self.logger.debug("imu_callback (stamp=%.6f)", stamp)
        issues: List[str] = []
        self._last_imu_time = time.monotonic()

        last = self._last_imu_stamp
        if last >= 0.0:
            if stamp < last:
                self._warn(issues, f"IMU timestamp rewind detected!! (last={last:.6f} current={stamp:.6f})")
            elif stamp - last > 0.1:
                self._warn(
                    issues,
                    f"A large time gap between consecutive IMU data!! "
                    f"(last={last:.6f} current={stamp:.6f} diff={stamp - last:.6f})",
                )

        self._last_imu_stamp = stamp
        return issues

    def points_callback(self, stamp: float, raw_points: RawPoints) -> List[str]:
        """Check a point cloud's stamps, per-point times and coordinates."""
        started = time.perf_counter()
        self.logger.debug("points_callback (stamp=%.6f)", stamp)
        issues: List[str] = []
        self._last_points_time = time.monotonic()

        last = self._last_points_stamp
        if last >= 0.0:
            if stamp < last:
                self._warn(issues, f"Point cloud timestamp rewind detected!! (last={last:.6f} current={stamp:.6f})")
            elif stamp - last > 1.0:
                self._warn(
                    issues,
                    f"A large time gap between consecutive point clouds!! "
                    f"(last={last:.6f} current={stamp:.6f} diff={stamp - last:.6f})",
                )

        if self._last_imu_stamp >= 0.0 and abs(self._last_imu_stamp - stamp) > 1.0:
            self._warn(
                issues,
                f"Too large time gap between points and IMU timestamps!! "
                f"(IMU={self._last_imu_stamp:.6f} points={stamp:.6f})",
            )

        self._time_keeper.process(raw_points)

        times = np.asarray(raw_points.times, dtype=float).reshape(-1)
        if times.size:
            self.logger.debug(
                "points size=%d stamp=%.6f times=%.3f~%.3f",
                len(raw_points),
                raw_points.stamp,
                times[0],
                times[-1],
            )
            if np.any(times < 0.0):
                self._warn(issues, f"A negative per-point timestamp found!! (t={times.min():.6f})")
            if np.any(times > 1.0):
                self._warn(issues, f"A large per-point timestamp found!! (t={times.max():.6f})")

        points = np.asarray(raw_points.points, dtype=float)
        if points.size:
            invalid = np.flatnonzero(~np.isfinite(points).all(axis=1))
            if invalid.size:
                self._warn(issues, f"An invalid point found!! (pt={format_vector(points[invalid[0]])})")

        self._last_points_stamp = stamp
        self.logger.debug("points_callback done (elapsed=%.3f[msec])", (time.perf_counter() - started) * 1e3)
        return issues