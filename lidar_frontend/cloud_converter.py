"""Conversion between PointCloud2-style messages and raw point frames."""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np

from .frames import RawPoints

logger = logging.getLogger(__name__)


class PointFieldType(enum.IntEnum):
    """Data type codes of point fields."""

    INT8 = 1
    UINT8 = 2
    INT16 = 3
    UINT16 = 4
    INT32 = 5
    UINT32 = 6
    FLOAT32 = 7
    FLOAT64 = 8


_NUMPY_CODES = {
    PointFieldType.INT8: "i1",
    PointFieldType.UINT8: "u1",
    PointFieldType.INT16: "i2",
    PointFieldType.UINT16: "u2",
    PointFieldType.INT32: "i4",
    PointFieldType.UINT32: "u4",
    PointFieldType.FLOAT32: "f4",
    PointFieldType.FLOAT64: "f8",
}

_TIME_TYPES = (PointFieldType.UINT32, PointFieldType.FLOAT32, PointFieldType.FLOAT64)
_INTENSITY_TYPES = (
    PointFieldType.UINT8,
    PointFieldType.UINT16,
    PointFieldType.UINT32,
    PointFieldType.FLOAT32,
    PointFieldType.FLOAT64,
)


@dataclass
class PointField:
    """One named channel of a point record."""

    name: str
    offset: int
    datatype: int
    count: int = 1


@dataclass(frozen=True)
class Time:
    """A timestamp split into whole seconds and nanoseconds."""

    sec: int = 0
    nanosec: int = 0


@dataclass
class PointCloud2:
    """A point cloud message: fixed-size point records packed in ``data``."""

    stamp: Time = field(default_factory=Time)
    frame_id: str = ""
    height: int = 1
    width: int = 0
    fields: List[PointField] = field(default_factory=list)
    is_bigendian: bool = False
    point_step: int = 0
    row_step: int = 0
    data: bytes = b""


class UnsupportedCloudError(ValueError):
    """The message lacks required fields or uses unsupported field types."""


def to_sec(stamp: Time) -> float:
    """Seconds as a float."""
    return stamp.sec + stamp.nanosec / 1e9


def from_sec(time: float) -> Time:
    """Split float seconds into seconds and nanoseconds."""
    sec = math.floor(time)
    return Time(sec=int(sec), nanosec=int((time - sec) * 1e9))


def _field_type(datatype: int) -> Optional[PointFieldType]:
    try:
        return PointFieldType(datatype)
    except ValueError:
        return None


def _read_field(rows: np.ndarray, offset: int, datatype: PointFieldType, bigendian: bool) -> np.ndarray:
    dtype = np.dtype(_NUMPY_CODES[datatype]).newbyteorder(">" if bigendian else "<")
    size = dtype.itemsize
    if offset < 0 or offset + size > rows.shape[1]:
        raise UnsupportedCloudError(f"field at offset {offset} does not fit in the point record")
    chunk = np.ascontiguousarray(rows[:, offset : offset + size])
    return chunk.view(dtype).reshape(-1).astype(float)


def _point_rows(msg: PointCloud2, num_points: int) -> np.ndarray:
    step = int(msg.point_step)
    if num_points == 0:
        return np.empty((0, max(step, 0)), dtype=np.uint8)
    if step <= 0:
        raise UnsupportedCloudError("point_step must be positive")
    total = num_points * step
    data = bytes(msg.data)
    if len(data) < total:
        raise UnsupportedCloudError(f"data holds {len(data)} bytes but {total} are needed")
    return np.frombuffer(data, dtype=np.uint8, count=total).reshape(num_points, step)


def extract_raw_points(points_msg: PointCloud2, intensity_channel: str = "intensity") -> RawPoints:
    """Read coordinates, per-point times, intensities and colors from a message."""
    num_points = int(points_msg.width) * int(points_msg.height)

    roles = {
        "x": "x",
        "y": "y",
        "z": "z",
        "t": "time",
        "time": "time",
        "time_stamp": "time",
        "timestamp": "time",
    }
    roles[intensity_channel] = "intensity"
    roles["rgba"] = "color"

    found: Dict[str, Tuple[int, int]] = {}
    for point_field in points_msg.fields:
        role = roles.get(point_field.name)
        if role is not None:
            found[role] = (int(point_field.datatype), int(point_field.offset))

    if not all(axis in found for axis in ("x", "y", "z")):
        logger.warning("missing point coordinate fields")
        raise UnsupportedCloudError("missing point coordinate fields")

    x_type = _field_type(found["x"][0])
    if (
        x_type not in (PointFieldType.FLOAT32, PointFieldType.FLOAT64)
        or found["y"][0] != found["x"][0]
        or found["z"][0] != found["x"][0]
    ):
        logger.warning("unsupported points type")
        raise UnsupportedCloudError("unsupported points type")

    rows = _point_rows(points_msg, num_points)
    big = bool(points_msg.is_bigendian)

    coords = [_read_field(rows, found[axis][1], x_type, big) for axis in ("x", "y", "z")]
    points = np.column_stack(coords + [np.ones(num_points)]) if num_points else np.empty((0, 4))

    times = np.empty(0)
    if "time" in found:
        time_code, time_offset = found["time"]
        time_type = _field_type(time_code)
        if time_type not in _TIME_TYPES:
            logger.warning("unsupported time type %s", time_code)
            raise UnsupportedCloudError(f"unsupported time type {time_code}")
        times = _read_field(rows, time_offset, time_type, big)
        if time_type is PointFieldType.UINT32:
            times = times / 1e9

    intensities = np.empty(0)
    if "intensity" in found:
        intensity_code, intensity_offset = found["intensity"]
        intensity_type = _field_type(intensity_code)
        if intensity_type not in _INTENSITY_TYPES:
            logger.warning("unsupported intensity type %s", intensity_code)
            raise UnsupportedCloudError(f"unsupported intensity type {intensity_code}")
        intensities = _read_field(rows, intensity_offset, intensity_type, big)

    colors = np.empty((0, 4))
    if "color" in found:
        color_code, color_offset = found["color"]
        if _field_type(color_code) is not PointFieldType.UINT32:
            logger.warning("unsupported color type %s", color_code)
        else:
            if color_offset < 0 or color_offset + 4 > rows.shape[1]:
                raise UnsupportedCloudError("color field does not fit in the point record")
            colors = rows[:, color_offset : color_offset + 4].astype(float) / 255.0

    return RawPoints(
        stamp=to_sec(points_msg.stamp),
        times=times,
        intensities=intensities,
        points=points,
        colors=colors,
    )


def frame_to_pointcloud2(frame_id: str, stamp: float, points, times=None) -> PointCloud2:
    """Pack points (and optional per-point times) as little-endian float32 records."""
    pts = np.asarray(points, dtype=float)
    if pts.size == 0:
        pts = np.empty((0, 3))
    if pts.ndim != 2 or pts.shape[1] < 3:
        raise ValueError("points must be an N x 3 or N x 4 array")
    num_points = pts.shape[0]

    columns = [pts[:, 0], pts[:, 1], pts[:, 2]]
    names = ["x", "y", "z"]
    if times is not None:
        time_values = np.asarray(times, dtype=float).reshape(-1)
        if time_values.shape[0] != num_points:
            raise ValueError("times must have one entry per point")
        columns.append(time_values)
        names.append("t")

    itemsize = np.dtype("<f4").itemsize
    fields = [PointField(name=name, offset=itemsize * i, datatype=PointFieldType.FLOAT32, count=1) for i, name in enumerate(names)]
    point_step = itemsize * len(names)
    data = np.column_stack(columns).astype("<f4").tobytes() if num_points else b""

    return PointCloud2(
        stamp=from_sec(stamp),
        frame_id=frame_id,
        height=1,
        width=num_points,
        fields=fields,
        is_bigendian=False,
        point_step=point_step,
        row_step=point_step * num_points,
        data=data,
    )