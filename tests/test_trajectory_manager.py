import numpy as np

from lidar_frontend.trajectory_manager import TrajectoryManager
from lidar_frontend.transforms import make_isometry, transform_point


def odom_pose(stamp):
    return make_isometry([stamp, 0.5 * stamp, 0.0], [0.0, 0.0, 0.1 * stamp, 1.0])


def filled_manager():
    manager = TrajectoryManager()
    for stamp in [1.0, 2.0, 3.0, 4.0, 5.0]:
        manager.add_odom(stamp, odom_pose(stamp))
    return manager


def test_initial_state_is_identity():
    manager = TrajectoryManager()
    np.testing.assert_allclose(manager.current_pose(), np.eye(4))
    np.testing.assert_allclose(manager.T_world_odom, np.eye(4))


def test_current_pose_follows_latest_odom_without_anchor():
    manager = filled_manager()
    np.testing.assert_allclose(manager.current_pose(), odom_pose(5.0))


def test_anchor_at_latest_stamp_sets_current_pose():
    manager = filled_manager()
    world = make_isometry([10.0, -3.0, 1.0], [0.2, 0.0, 0.3, 0.9])
    manager.update_anchor(5.0, world)
    np.testing.assert_allclose(manager.current_pose(), world, atol=1e-12)


def test_anchored_pose_maps_to_world_pose():
    manager = filled_manager()
    world = make_isometry([7.0, 2.0, 0.0], [0.0, 0.1, 0.0, 1.0])
    manager.update_anchor(2.0, world)
    np.testing.assert_allclose(manager.odom2world(odom_pose(2.0)), world, atol=1e-12)


def test_anchor_still_correct_after_pruning():
    manager = filled_manager()
    manager.update_anchor(4.0, make_isometry([1.0, 1.0, 1.0]))
    world = make_isometry([-5.0, 4.0, 2.0], [0.3, 0.0, 0.0, 0.95])
    manager.update_anchor(3.0, world)
    np.testing.assert_allclose(manager.odom2world(odom_pose(3.0)), world, atol=1e-12)


def test_stamp_between_samples_uses_next_sample():
    manager = filled_manager()
    world = make_isometry([0.0, 0.0, 9.0])
    manager.update_anchor(2.5, world)
    np.testing.assert_allclose(manager.odom2world(odom_pose(3.0)), world, atol=1e-12)


def test_stamp_after_all_samples_uses_newest():
    manager = filled_manager()
    world = make_isometry([3.0, 3.0, 3.0])
    manager.update_anchor(100.0, world)
    np.testing.assert_allclose(manager.current_pose(), world, atol=1e-12)


def test_odom2world_point_matches_pose_transform():
    manager = filled_manager()
    manager.update_anchor(1.0, make_isometry([2.0, 0.0, 0.0], [0.0, 0.0, 0.4, 0.9]))
    point = np.array([1.0, -1.0, 0.5])
    expected = transform_point(manager.T_world_odom, point)
    np.testing.assert_allclose(manager.odom2world(point), expected)


def test_add_odom_copies_pose():
    manager = TrajectoryManager()
    pose = make_isometry([1.0, 2.0, 3.0])
    manager.add_odom(1.0, pose)
    pose[0, 3] = 99.0
    np.testing.assert_allclose(manager.current_pose(), make_isometry([1.0, 2.0, 3.0]))