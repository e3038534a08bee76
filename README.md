# lidar_frontend

Building blocks for the front end of a LiDAR mapping pipeline. The package decodes point cloud messages, normalises their timestamps, checks sensor streams and preprocesses scans into frames that are ready for registration.

## What is in the package

- **`frames`**: `RawPoints` holds a scan as it arrives. It has a stamp, per-point relative times, intensities, N x 4 homogeneous points and colors. `PreprocessedFrame` holds a filtered, time-sorted scan with a flat k-nearest-neighbour table. Both accept N x 3 points and add a column of ones.
- **`cloud_converter`**: `extract_raw_points` decodes a `PointCloud2` message into `RawPoints`. The message is made of packed point records described by `PointField` entries.
  - Coordinates must be float32 or float64.
  - Times are read from `t`, `time`, `time_stamp` or `timestamp` fields. uint32 times are treated as nanoseconds.
  - Intensities come from a channel you name.
  - Colors come from a uint32 `rgba` field.
  - Messages that cannot be read raise `UnsupportedCloudError`.
  - `frame_to_pointcloud2` packs points, and optional times, as little-endian float32 records.
  - `to_sec` and `from_sec` convert between `Time` and float seconds.
- **`time_keeper`**: `TimeKeeper.process` rewrites a scan's stamp and times in place, so that the stamp marks the first point and times are relative to it.
  - Absolute point times are made relative. Times above 1e16 are treated as nanoseconds.
  - Missing times are filled with pseudo times. These are spread over a scan duration that is estimated from past frame stamps; they are zero until such an estimate exists.
  - `validate_imu_stamp` returns `False` for an IMU stamp that goes backwards.
  - The behaviour is set by `AbsPointTimeParams`.
- **`data_validator`**: `DataValidator` has `timer_callback`, `imu_callback` and `points_callback`. They log warnings about stalled streams, timestamp rewinds, large gaps, out-of-range per-point times and non-finite points. Each callback also returns its warnings as a list of strings.
- **`cloud_preprocessor`**: `CloudPreprocessor.preprocess` turns `RawPoints` into a `PreprocessedFrame` in these steps:
  1. Voxel-grid averaging, or random-grid sampling.
  2. A near/far distance filter.
  3. A sort by time.
  4. Optional zeroing of times (`global_shutter`).
  5. Optional statistical outlier removal.
  6. A k-nearest-neighbour search.

  The building blocks are also available on their own: `voxelgrid_sampling`, `randomgrid_sampling`, `remove_outliers` and `find_neighbors`. Parameters live in `CloudPreprocessorParams`.
- **`config`**: `Config` reads JSON files, and comments are allowed in them. Typed access is selected with `ParamKind`. `GlobalConfig` is a process-wide instance that locates the other configuration files.
- **Utilities**:
  - `concurrent_vector.ConcurrentVector`, a lock-guarded FIFO with a `DataStorePolicy` size limit and end-of-data signalling.
  - `callback_slot.CallbackSlot`.
  - `interpolation_helper.InterpolationHelper`, which finds the stamped values around a target time.
  - `transforms`, a set of rigid-transform helpers on 4x4 matrices and (x, y, z, w) quaternions.
  - `trajectory_manager.TrajectoryManager`, which anchors odometry poses to a world frame.
  - `convert_to_string`, which gives the text form of values for logs.
  - `log_setup`, which provides per-module loggers that share a `RingBufferHandler` of recent messages.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example

```python
import numpy as np

from lidar_frontend.frames import RawPoints
from lidar_frontend.time_keeper import TimeKeeper
from lidar_frontend.cloud_preprocessor import CloudPreprocessor, CloudPreprocessorParams

rng = np.random.default_rng(0)
n = 5000
xyz = rng.uniform(-20.0, 20.0, size=(n, 3))

raw = RawPoints(stamp=100.0, times=np.linspace(0.0, 0.1, n), points=xyz)

TimeKeeper().process(raw)

preprocessor = CloudPreprocessor(CloudPreprocessorParams(), seed=0)
frame = preprocessor.preprocess(raw)
print(len(frame), frame.scan_end_time, frame.k_neighbors)
```

## Configuration

```python
from lidar_frontend.config import Config, ParamKind

config = Config("config_preprocess.json")
resolution = config.param("preprocess", "downsample_resolution", 0.15)
pose = config.param_cast("sensors", "T_lidar_imu", kind=ParamKind.ISOMETRY)
```

`param` infers the kind from its default. When the value is missing, it logs a warning and returns the default. `param_cast` and `param_cast_nested` raise `ParamNotFoundError` instead. `override_param` changes values in memory only, and `save` writes the configuration as indented JSON.

`GlobalConfig.instance(path)` loads `<path>/config.json`. After that, `GlobalConfig.get_config_path(name)` resolves the file it names for `name`, and `CloudPreprocessorParams.from_global_config()` reads the preprocessing and sensor settings from those files.

## What the package does not do

The package has no command-line program. It does not subscribe to live sensor topics or read recorded bags: messages must be built as `PointCloud2` objects by the caller. It stops at preprocessed frames. It does not estimate odometry, integrate IMU data, deskew scans or build maps.