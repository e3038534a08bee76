import numpy as np
import pytest

from lidar_frontend.frames import PreprocessedFrame, RawPoints


def test_raw_points_len_counts_points():
    raw = RawPoints(stamp=1.0, points=np.zeros((5, 4)))
    assert len(raw) == 5


def test_raw_points_defaults_are_empty():
    raw = RawPoints()
    assert len(raw) == 0
    assert raw.times.size == 0
    assert raw.intensities.size == 0
    assert raw.colors.shape == (0, 4)


def test_three_column_points_become_homogeneous():
    raw = RawPoints(points=[[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    assert raw.points.shape == (2, 4)
    np.testing.assert_array_equal(raw.points[:, 3], [1.0, 1.0])
    np.testing.assert_array_equal(raw.points[:, :3], [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])


def test_input_points_are_copied():
    source = np.zeros((2, 4))
    raw = RawPoints(points=source)
    raw.points[0, 0] = 7.0
    assert source[0, 0] == 0.0


def test_bad_point_shape_raises():
    with pytest.raises(ValueError):
        RawPoints(points=[[1.0, 2.0]])


def test_bad_color_shape_raises():
    with pytest.raises(ValueError):
        RawPoints(points=[[0.0, 0.0, 0.0]], colors=[[1.0, 1.0, 1.0]])


def test_preprocessed_frame_len_and_neighbors():
    frame = PreprocessedFrame(
        stamp=2.0,
        scan_end_time=2.1,
        times=[0.0, 0.1],
        points=[[0.0, 0.0, 0.0], [1.0, 0.0, 0.0]],
        k_neighbors=2,
        neighbors=[[0, 1], [1, 0]],
    )
    assert len(frame) == 2
    np.testing.assert_array_equal(frame.neighbors, [0, 1, 1, 0])
    assert frame.neighbors.size == frame.k_neighbors * len(frame)
    assert frame.raw_points is None