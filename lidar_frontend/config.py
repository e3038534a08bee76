"""JSON configuration files with typed parameter access."""

from __future__ import annotations

import copy
import enum
import json
import logging
import os
import re
import threading
from pathlib import Path
from typing import Any, ClassVar, Optional, Sequence

import numpy as np

from .convert_to_string import convert_to_string
from .transforms import make_isometry, matrix_to_quaternion

logger = logging.getLogger(__name__)

_MISSING = object()

_TOKENS = re.compile(r'"(?:\\.|[^"\\])*"|//[^\n]*|/\*.*?\*/', re.S)


def _strip_comments(text: str) -> str:
    return _TOKENS.sub(lambda m: m.group(0) if m.group(0).startswith('"') else " ", text)


class ParamKind(enum.Enum):
    """The type a parameter is read as or written from."""

    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    DOUBLE = "double"
    STRING = "string"
    BOOL_LIST = "bool_list"
    INT_LIST = "int_list"
    DOUBLE_LIST = "double_list"
    STRING_LIST = "string_list"
    VECTOR2 = "vector2"
    VECTOR3 = "vector3"
    VECTOR4 = "vector4"
    QUATERNION = "quaternion"
    ISOMETRY = "isometry"
    ISOMETRY_LIST = "isometry_list"


_VECTOR_SIZES = {ParamKind.VECTOR2: 2, ParamKind.VECTOR3: 3, ParamKind.VECTOR4: 4}


class ParamNotFoundError(KeyError):
    """A required parameter is missing from the configuration."""


def _is_number(raw: Any) -> bool:
    return isinstance(raw, (bool, int, float))


def _as_bool(raw: Any) -> bool:
    if not isinstance(raw, bool):
        raise TypeError(f"expected a boolean, got {raw!r}")
    return raw


def _as_int(raw: Any) -> int:
    if not _is_number(raw):
        raise TypeError(f"expected a number, got {raw!r}")
    return int(raw)


def _as_float(raw: Any) -> float:
    if not _is_number(raw):
        raise TypeError(f"expected a number, got {raw!r}")
    return float(raw)


def _as_str(raw: Any) -> str:
    if not isinstance(raw, str):
        raise TypeError(f"expected a string, got {raw!r}")
    return raw


def _as_list(raw: Any, item) -> list:
    if not isinstance(raw, list):
        raise TypeError(f"expected an array, got {raw!r}")
    return [item(x) for x in raw]


def _normalize(quat: np.ndarray) -> np.ndarray:
    norm = np.linalg.norm(quat)
    return quat / norm if norm > 0.0 else quat


def _convert(kind: Optional[ParamKind], raw: Any) -> Any:
    """Convert a JSON value; returns ``_MISSING`` when the size does not fit."""
    if kind is None:
        return copy.deepcopy(raw)
    if kind is ParamKind.BOOL:
        return _as_bool(raw)
    if kind is ParamKind.INT:
        return _as_int(raw)
    if kind in (ParamKind.FLOAT, ParamKind.DOUBLE):
        return _as_float(raw)
    if kind is ParamKind.STRING:
        return _as_str(raw)
    if kind is ParamKind.BOOL_LIST:
        return _as_list(raw, _as_bool)
    if kind is ParamKind.INT_LIST:
        return _as_list(raw, _as_int)
    if kind is ParamKind.DOUBLE_LIST:
        return _as_list(raw, _as_float)
    if kind is ParamKind.STRING_LIST:
        return _as_list(raw, _as_str)

    numbers = _as_list(raw, _as_float)
    if kind in _VECTOR_SIZES:
        if len(numbers) != _VECTOR_SIZES[kind]:
            return _MISSING
        return np.array(numbers)
    if kind is ParamKind.QUATERNION:
        if len(numbers) != 4:
            return _MISSING
        return _normalize(np.array(numbers))
    if kind is ParamKind.ISOMETRY:
        if len(numbers) != 7:
            return _MISSING
        return make_isometry(numbers[:3], numbers[3:7])
    if kind is ParamKind.ISOMETRY_LIST:
        if len(numbers) % 7:
            return _MISSING
        return [make_isometry(numbers[i : i + 3], numbers[i + 3 : i + 7]) for i in range(0, len(numbers), 7)]
    raise ValueError(f"unsupported parameter kind {kind}")


def _to_json(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return _to_json(value.tolist())
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    if isinstance(value, (list, tuple)):
        return [_to_json(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _to_json(item) for key, item in value.items()}
    return copy.deepcopy(value)


def _pose_values(pose: Any) -> list:
    matrix = np.asarray(pose, dtype=float)
    if matrix.shape != (4, 4):
        raise ValueError("a pose must be a 4x4 matrix")
    quat = matrix_to_quaternion(matrix[:3, :3])
    return [float(x) for x in (*matrix[:3, 3], *quat)]


def _invert(kind: Optional[ParamKind], value: Any) -> Any:
    """Encode a value as JSON for the given kind."""
    if kind is None:
        return _to_json(value)
    if kind is ParamKind.BOOL:
        return bool(value)
    if kind is ParamKind.INT:
        return int(value)
    if kind in (ParamKind.FLOAT, ParamKind.DOUBLE):
        return float(value)
    if kind is ParamKind.STRING:
        return str(value)
    if kind is ParamKind.BOOL_LIST:
        return [bool(x) for x in value]
    if kind is ParamKind.INT_LIST:
        return [int(x) for x in value]
    if kind is ParamKind.DOUBLE_LIST:
        return [float(x) for x in value]
    if kind is ParamKind.STRING_LIST:
        return [str(x) for x in value]
    if kind in _VECTOR_SIZES or kind is ParamKind.QUATERNION:
        size = 4 if kind is ParamKind.QUATERNION else _VECTOR_SIZES[kind]
        arr = np.asarray(value, dtype=float).reshape(-1)
        if arr.shape != (size,):
            raise ValueError(f"expected {size} components for {kind.value}")
        return [float(x) for x in arr]
    if kind is ParamKind.ISOMETRY:
        return _pose_values(value)
    if kind is ParamKind.ISOMETRY_LIST:
        return [x for pose in value for x in _pose_values(pose)]
    raise ValueError(f"unsupported parameter kind {kind}")


def _is_pose(value: Any) -> bool:
    return isinstance(value, np.ndarray) and value.shape == (4, 4)


def _infer_kind(value: Any) -> Optional[ParamKind]:
    """Guess a kind from a default or a value to store; ``None`` means raw JSON."""
    if isinstance(value, (bool, np.bool_)):
        return ParamKind.BOOL
    if isinstance(value, (int, np.integer)):
        return ParamKind.INT
    if isinstance(value, (float, np.floating)):
        return ParamKind.DOUBLE
    if isinstance(value, str):
        return ParamKind.STRING
    if isinstance(value, np.ndarray):
        if value.shape == (4, 4):
            return ParamKind.ISOMETRY
        for kind, size in _VECTOR_SIZES.items():
            if value.shape == (size,):
                return kind
        raise TypeError(f"no parameter kind for an array of shape {value.shape}")
    if isinstance(value, (list, tuple)) and value:
        if all(_is_pose(item) for item in value):
            return ParamKind.ISOMETRY_LIST
        if all(isinstance(item, bool) for item in value):
            return ParamKind.BOOL_LIST
        if all(isinstance(item, int) and not isinstance(item, bool) for item in value):
            return ParamKind.INT_LIST
        if all(_is_number(item) and not isinstance(item, bool) for item in value):
            return ParamKind.DOUBLE_LIST
        if all(isinstance(item, str) for item in value):
            return ParamKind.STRING_LIST
    return None


class Config:
    """Parameters loaded from a JSON file that may contain comments."""

    def __init__(self, config_filename: "str | os.PathLike[str]" = "") -> None:
        filename = os.fspath(config_filename)
        self._json: Any = {}
        if not filename:
            return
        try:
            text = Path(filename).read_text(encoding="utf-8")
        except OSError:
            logger.error("failed to open %s", filename)
            return
        self._json = json.loads(_strip_comments(text))

    def _lookup(self, module_names: Sequence[str], param_name: str, kind: Optional[ParamKind]) -> Any:
        if not module_names:
            raise ValueError("at least one module name is required")
        node = self._json
        for name in module_names:
            if not isinstance(node, dict) or name not in node:
                return _MISSING
            node = node[name]
        if not isinstance(node, dict) or param_name not in node:
            return _MISSING
        return _convert(kind, node[param_name])

    def param(self, module_name: str, param_name: str, default: Any = None, kind: Optional[ParamKind] = None) -> Any:
        """Value of ``module_name/param_name``, or ``default`` when it is missing.

        ``kind`` defaults to the kind of ``default``; raw JSON is returned when
        neither tells the type.
        """
        if kind is None:
            kind = _infer_kind(default)
        found = self._lookup([module_name], param_name, kind)
        if found is _MISSING:
            if default is not None:
                logger.warning("param %s/%s not found", module_name, param_name)
                logger.warning("use default_value=%s", convert_to_string(default))
            return default
        logger.debug("param %s/%s=%s", module_name, param_name, convert_to_string(found))
        return found

    def param_cast(self, module_name: str, param_name: str, kind: Optional[ParamKind] = None) -> Any:
        """Value of ``module_name/param_name``; raises when it is missing."""
        found = self._lookup([module_name], param_name, kind)
        if found is _MISSING:
            logger.critical("param %s/%s not found", module_name, param_name)
            raise ParamNotFoundError(f"{module_name}/{param_name}")
        logger.debug("param %s/%s=%s", module_name, param_name, convert_to_string(found))
        return found

    def param_nested(
        self,
        nested_module_names: Sequence[str],
        param_name: str,
        default: Any = None,
        kind: Optional[ParamKind] = None,
    ) -> Any:
        """Value under a chain of nested modules, or ``default`` when missing."""
        if kind is None:
            kind = _infer_kind(default)
        found = self._lookup(list(nested_module_names), param_name, kind)
        if found is _MISSING:
            if default is not None:
                path = "".join(f"{name}/" for name in nested_module_names)
                logger.warning("param %s not found", path)
                logger.warning("use default_value=%s", convert_to_string(default))
            return default
        return found

    def param_cast_nested(self, nested_module_names: Sequence[str], param_name: str, kind: Optional[ParamKind] = None) -> Any:
        """Value under a chain of nested modules; raises when it is missing."""
        found = self._lookup(list(nested_module_names), param_name, kind)
        if found is _MISSING:
            path = "".join(f"{name}/" for name in nested_module_names)
            logger.critical("param %s not found", path)
            raise ParamNotFoundError(f"{path}{param_name}")
        return found

    def override_param(self, module_name: str, param_name: str, value: Any, kind: Optional[ParamKind] = None) -> bool:
        """Set ``module_name/param_name`` in memory; the file is left unchanged."""
        if kind is None:
            kind = _infer_kind(value)
        encoded = _invert(kind, value)
        if self._json is None:
            self._json = {}
        if not isinstance(self._json, dict):
            raise TypeError("the configuration root is not an object")
        module = self._json.get(module_name)
        if module is None:
            module = self._json[module_name] = {}
        if not isinstance(module, dict):
            raise TypeError(f"module {module_name} is not an object")
        module[param_name] = encoded
        return True

    def save(self, path: "str | os.PathLike[str]") -> None:
        """Write all parameters as indented JSON."""
        text = json.dumps(self._json, indent=2, sort_keys=True, ensure_ascii=False)
        Path(path).write_text(text + "\n", encoding="utf-8")


class GlobalConfig(Config):
    """Process-wide configuration that locates the other configuration files."""

    _instance: ClassVar[Optional["GlobalConfig"]] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()

    @classmethod
    def instance(cls, config_path: str = "") -> "GlobalConfig":
        """The shared instance, loaded from ``<config_path>/config.json`` on first use."""
        with GlobalConfig._lock:
            if GlobalConfig._instance is None:
                inst = GlobalConfig(f"{config_path}/config.json")
                inst.override_param("global", "config_path", config_path)
                GlobalConfig._instance = inst
            return GlobalConfig._instance

    @classmethod
    def get_config_path(cls, config_name: str) -> str:
        """Path of the file named by ``global/<config_name>`` in the config directory."""
        config = cls.instance()
        directory = config.param("global", "config_path", ".")
        filename = config.param("global", config_name, config_name + ".json")
        return f"{directory}/{filename}"

    @classmethod
    def reset(cls) -> None:
        """Forget the shared instance."""
        with GlobalConfig._lock:
            GlobalConfig._instance = None