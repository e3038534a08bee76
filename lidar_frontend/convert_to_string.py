"""Human-readable text for parameter values, used in log messages."""

from __future__ import annotations

import math
from typing import Any

import numpy as np

from .transforms import matrix_to_quaternion


def _format_scalar(value: Any) -> str:
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    if isinstance(value, (float, np.floating)):
        number = float(value)
        if math.isnan(number):
            return "nan"
        if math.isinf(number):
            return "inf" if number > 0 else "-inf"
        if number.is_integer() and abs(number) < 1e16:
            if number == 0.0 and math.copysign(1.0, number) < 0:
                return "-0"
            return str(int(number))
        return repr(number)
    return str(value)


def format_vector(values) -> str:
    """Format a 1-D vector as ``vec(a,b,...)`` with six decimals per element."""
    arr = np.asarray(values, dtype=float)
    if arr.ndim != 1:
        raise ValueError("a vector must be one-dimensional")
    return "vec(" + ",".join(f"{x:.6f}" for x in arr) + ")"


def format_quaternion(quat) -> str:
    """Format an (x, y, z, w) quaternion as ``quat(x,y,z,w)``."""
    arr = np.asarray(quat, dtype=float).reshape(-1)
    if arr.shape != (4,):
        raise ValueError("a quaternion needs exactly 4 components (x, y, z, w)")
    return "quat(" + ",".join(f"{x:.6f}" for x in arr) + ")"


def format_isometry(pose) -> str:
    """Format a 4x4 rigid transform as ``se3(tx,ty,tz,qx,qy,qz,qw)``."""
    matrix = np.asarray(pose, dtype=float)
    if matrix.shape != (4, 4):
        raise ValueError("a pose must be a 4x4 matrix")
    trans = matrix[:3, 3]
    quat = matrix_to_quaternion(matrix[:3, :3])
    return "se3(" + ",".join(f"{x:.6f}" for x in (*trans, *quat)) + ")"


def convert_to_string(value: Any) -> str:
    """Text form of a scalar, a sequence, a vector or a 4x4 pose."""
    if isinstance(value, np.ndarray):
        if value.shape == (4, 4):
            return format_isometry(value)
        if value.ndim == 1:
            return format_vector(value)
        return convert_to_string(value.tolist())
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(convert_to_string(item) for item in value) + "]"
    return _format_scalar(value)