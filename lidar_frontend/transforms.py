"""Rigid-transform helpers on 4x4 homogeneous matrices and (x, y, z, w) quaternions."""

from __future__ import annotations

from typing import Optional

import numpy as np
from scipy.spatial.transform import Rotation


def _normalized_quaternion(q) -> np.ndarray:
    quat = np.asarray(q, dtype=float).reshape(-1)
    if quat.shape != (4,):
        raise ValueError("a quaternion needs exactly 4 components (x, y, z, w)")
    norm = np.linalg.norm(quat)
    if not np.isfinite(norm) or norm == 0.0:
        raise ValueError("quaternion must have a finite, non-zero norm")
    return quat / norm


def quaternion_to_matrix(q) -> np.ndarray:
    """Rotation matrix of the normalized (x, y, z, w) quaternion ``q``."""
    return Rotation.from_quat(_normalized_quaternion(q)).as_matrix()


def matrix_to_quaternion(rotation) -> np.ndarray:
    """Unit (x, y, z, w) quaternion with a non-negative w for a 3x3 rotation."""
    matrix = np.asarray(rotation, dtype=float)
    if matrix.shape != (3, 3):
        raise ValueError("rotation must be a 3x3 matrix")
    quat = Rotation.from_matrix(matrix).as_quat()
    return -quat if quat[3] < 0.0 else quat


def make_isometry(translation=(0.0, 0.0, 0.0), rotation: Optional[object] = None) -> np.ndarray:
    """Build a 4x4 transform from a translation and a 3x3 matrix or quaternion."""
    trans = np.asarray(translation, dtype=float).reshape(-1)
    if trans.shape != (3,):
        raise ValueError("translation must have 3 components")
    transform = np.eye(4)
    if rotation is not None:
        rot = np.asarray(rotation, dtype=float)
        if rot.shape == (3, 3):
            transform[:3, :3] = rot
        elif rot.reshape(-1).shape == (4,):
            transform[:3, :3] = quaternion_to_matrix(rot)
        else:
            raise ValueError("rotation must be a 3x3 matrix or a 4-component quaternion")
    transform[:3, 3] = trans
    return transform


def _check_transform(transform) -> np.ndarray:
    matrix = np.asarray(transform, dtype=float)
    if matrix.shape != (4, 4):
        raise ValueError("transform must be a 4x4 matrix")
    return matrix


def isometry_inverse(transform) -> np.ndarray:
    """Inverse of a rigid 4x4 transform."""
    matrix = _check_transform(transform)
    rot_t = matrix[:3, :3].T
    inverse = np.eye(4)
    inverse[:3, :3] = rot_t
    inverse[:3, 3] = -rot_t @ matrix[:3, 3]
    return inverse


def transform_point(transform, point) -> np.ndarray:
    """Apply a 4x4 transform to a 3D point or a homogeneous 4-vector."""
    matrix = _check_transform(transform)
    vec = np.asarray(point, dtype=float).reshape(-1)
    if vec.shape == (3,):
        return matrix[:3, :3] @ vec + matrix[:3, 3]
    if vec.shape == (4,):
        return matrix @ vec
    raise ValueError("point must have 3 or 4 components")