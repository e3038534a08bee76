import json

import numpy as np
import pytest

from lidar_frontend.config import Config, GlobalConfig, ParamKind, ParamNotFoundError
from lidar_frontend.transforms import make_isometry, quaternion_to_matrix


def _write(tmp_path, data, name="config.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.fixture
def global_reset():
    GlobalConfig.reset()
    yield
    GlobalConfig.reset()


def test_empty_filename_gives_defaults():
    config = Config("")
    assert config.param("a", "b") is None
    assert config.param("a", "b", 5) == 5


def test_missing_file_gives_defaults(tmp_path):
    config = Config(tmp_path / "absent.json")
    assert config.param("preprocess", "distance_far_thresh", 100.0) == 100.0


def test_scalar_params(tmp_path):
    path = _write(tmp_path, {"m": {"flag": True, "count": 7, "rate": 0.25, "name": "VGICP"}})
    config = Config(path)
    assert config.param("m", "flag", False) is True
    assert config.param("m", "count", 1) == 7
    assert config.param("m", "rate", 1.0) == 0.25
    assert config.param("m", "name", "GICP") == "VGICP"


def test_double_from_integer_json(tmp_path):
    config = Config(_write(tmp_path, {"m": {"v": 3}}))
    value = config.param("m", "v", 1.0)
    assert value == 3.0 and isinstance(value, float)


def test_type_mismatch_raises(tmp_path):
    config = Config(_write(tmp_path, {"m": {"text": "abc", "number": 1}}))
    with pytest.raises(TypeError):
        config.param("m", "text", 1)
    with pytest.raises(TypeError):
        config.param("m", "number", False)


def test_comments_are_ignored(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(
        '{\n  // line comment\n  "m": {\n    /* block\n comment */ "url": "a//b",\n    "n": 4\n  }\n}\n',
        encoding="utf-8",
    )
    config = Config(path)
    assert config.param("m", "url", "") == "a//b"
    assert config.param("m", "n", 0) == 4


def test_missing_param_logs_warning(tmp_path, caplog):
    config = Config(_write(tmp_path, {"m": {}}))
    with caplog.at_level("WARNING", logger="lidar_frontend.config"):
        assert config.param("m", "p", 2) == 2
    assert "param m/p not found" in caplog.text


def test_list_params(tmp_path):
    config = Config(_write(tmp_path, {"m": {"ints": [1, 2, 3], "names": ["x", "y"], "bias": [0, 0.5, 1]}}))
    assert config.param("m", "ints", [0]) == [1, 2, 3]
    assert config.param("m", "names", ["z"]) == ["x", "y"]
    assert config.param("m", "bias", kind=ParamKind.DOUBLE_LIST) == [0.0, 0.5, 1.0]


def test_vector_param_and_size_mismatch(tmp_path):
    config = Config(_write(tmp_path, {"m": {"v3": [1, 2, 3], "short": [1, 2]}}))
    assert np.array_equal(config.param("m", "v3", kind=ParamKind.VECTOR3), [1.0, 2.0, 3.0])
    default = np.zeros(3)
    assert config.param("m", "short", default) is default


def test_quaternion_is_normalized(tmp_path):
    raw = [0.0, 0.0, 2.0, 0.0]
    config = Config(_write(tmp_path, {"m": {"q": raw}}))
    quat = config.param("m", "q", kind=ParamKind.QUATERNION)
    assert np.isclose(np.linalg.norm(quat), 1.0)
    assert np.allclose(quat * 2.0, raw)


def test_isometry_param(tmp_path):
    config = Config(_write(tmp_path, {"sensors": {"T_lidar_imu": [1, 2, 3, 0, 0, 0, 1]}}))
    pose = config.param("sensors", "T_lidar_imu", np.eye(4))
    assert np.allclose(pose[:3, 3], [1, 2, 3])
    assert np.allclose(pose[:3, :3], np.eye(3))


def test_isometry_list_param(tmp_path):
    config = Config(_write(tmp_path, {"m": {"poses": [1, 2, 3, 0, 0, 0, 1, 4, 5, 6, 0, 0, 0, 1], "bad": [1] * 8}}))
    poses = config.param("m", "poses", kind=ParamKind.ISOMETRY_LIST)
    assert len(poses) == 2
    assert np.allclose(poses[1][:3, 3], [4, 5, 6])
    assert config.param("m", "bad", kind=ParamKind.ISOMETRY_LIST) is None


def test_raw_value_is_a_copy(tmp_path):
    config = Config(_write(tmp_path, {"m": {"raw": [{"k": 1}]}}))
    raw = config.param("m", "raw")
    assert raw == [{"k": 1}]
    raw[0]["k"] = 99
    assert config.param("m", "raw") == [{"k": 1}]


def test_param_cast(tmp_path):
    config = Config(_write(tmp_path, {"m": {"p": 5}}))
    assert config.param_cast("m", "p", ParamKind.INT) == 5
    with pytest.raises(ParamNotFoundError):
        config.param_cast("m", "missing", ParamKind.INT)


def test_param_nested(tmp_path):
    config = Config(_write(tmp_path, {"a": {"b": {"p": 5}, "leaf": 1}}))
    assert config.param_nested(["a", "b"], "p", 0) == 5
    assert config.param_nested(["a", "c"], "p", 9) == 9
    assert config.param_nested(["a", "leaf"], "p") is None
    with pytest.raises(ValueError):
        config.param_nested([], "p")


def test_param_cast_nested(tmp_path):
    config = Config(_write(tmp_path, {"a": {"b": {"p": "x"}}}))
    assert config.param_cast_nested(["a", "b"], "p", ParamKind.STRING) == "x"
    with pytest.raises(ParamNotFoundError):
        config.param_cast_nested(["a", "b"], "q")


def test_override_round_trip():
    config = Config("")
    assert config.override_param("m", "v", np.array([1.0, 2.0, 3.0])) is True
    assert np.allclose(config.param("m", "v", kind=ParamKind.VECTOR3), [1.0, 2.0, 3.0])

    quat = np.array([0.1, 0.2, 0.3, 0.9])
    quat /= np.linalg.norm(quat)
    pose = make_isometry((1.0, -2.0, 0.5), quaternion_to_matrix(quat))
    config.override_param("m", "pose", pose)
    assert np.allclose(config.param("m", "pose", kind=ParamKind.ISOMETRY), pose)


def test_override_into_non_object_module_raises(tmp_path):
    config = Config(_write(tmp_path, {"m": 5}))
    with pytest.raises(TypeError):
        config.override_param("m", "p", 1)


def test_save_and_reload(tmp_path):
    config = Config("")
    config.override_param("beta", "n", 3)
    config.override_param("alpha", "names", ["x", "y"])
    config.override_param("alpha", "pose", np.eye(4))
    out = tmp_path / "saved.json"
    config.save(out)

    text = out.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert text.index('"alpha"') < text.index('"beta"')

    reloaded = Config(out)
    assert reloaded.param("beta", "n", 0) == 3
    assert reloaded.param("alpha", "names", ["z"]) == ["x", "y"]
    assert np.allclose(reloaded.param("alpha", "pose", np.zeros((4, 4))), np.eye(4))


def test_global_config_paths(tmp_path, global_reset):
    _write(tmp_path, {"global": {"config_preprocess": "pre.json"}})
    inst = GlobalConfig.instance(str(tmp_path))
    assert GlobalConfig.instance() is inst
    assert inst.param("global", "config_path", "") == str(tmp_path)
    assert GlobalConfig.get_config_path("config_preprocess") == f"{tmp_path}/pre.json"
    assert GlobalConfig.get_config_path("config_sensors") == f"{tmp_path}/config_sensors.json"


def test_global_config_reset(tmp_path, global_reset):
    first = GlobalConfig.instance(str(tmp_path))
    GlobalConfig.reset()
    second = GlobalConfig.instance(str(tmp_path))
    assert first is not second
    assert second.param("global", "config_path", "") == str(tmp_path)