# occmap

A library for working with 2D occupancy grid maps as produced by laser SLAM
systems, with GeoTIFF export and helpers for a scanning lidar's wire
protocol.

## Modules

- `occmap.grid` – `MapInfo` and `OccupancyGrid` (cells are -1 unknown,
  0 free, 100 occupied), `CoordinateTransformer` with `to_c1`, `to_c2`,
  `c1_scale` and `c2_scale`, built by `transformer_from_map_info` (world ↔
  cells) or `transformer_between` (from two pairs of points).
  `DistanceMeasurementProvider` casts Bresenham rays through the grid
  (`get_dist` in world coordinates, `check_occupancy_bresenham` in cells) and
  returns a `Hit` or `None`. `get_map_extents` gives the bounding box of the
  known cells, or `None` if there are none.
- `occmap.map_image` – `full_map_image` renders a grid as a uint8 image
  flipped so map y points up (free 255, occupied 0, anything else 127).
  `tile_bounds` picks a window (64×64 by default) around the robot, kept
  inside the map, and `tile_map_image` renders it. `MapImageProvider` takes
  map updates (`on_map`) and robot positions (`on_pose`) and passes
  `MapImage` objects to the callbacks you give it; maps smaller than 3×3
  are skipped.
- `occmap.markers` – `MarkerDrawer` builds `Marker` values (points, arrows,
  2D and 3D covariance ellipses) from a template of namespace, scale, colour
  and time. `send_and_reset` hands out the pending batch and restarts ids;
  `reset` produces deletions for everything sent so far.
- `occmap.transforms` – `Quaternion`, `Transform`, `StampedTransform`,
  `quaternion_from_rpy`, `quaternion_to_rpy`, `rotate_vector`, and two
  message processors: `ImuAttitudeToTf` turns IMU orientation into a
  roll/pitch-only transform; `PoseOrientationToImu` fuses IMU roll/pitch
  with the yaw of the latest `PoseStamped`, emitting a fused `Imu` on every
  IMU message and odometry on every fifth one once a pose is known.
- `occmap.writer_interface` – the `MapWriter` and `MapWriterPlugin`
  abstract classes, plus `Color` and `Shape`.
- `occmap.geotiff_layout` – `compute_layout` works out the pixel geometry of
  a GeoTIFF for the known part of a grid (raising `ValueError` if there is
  none); `GeotiffLayout` offers `world_to_geo`, `checkerboard_tiles` and
  `world_file_lines` for the `.tfw` file.
- `occmap.geotiff_writer` – `GeotiffWriter`, a `MapWriter` that draws the
  background, map, scale marker, objects and paths with Pillow and writes a
  `.tif` image and `.tfw` world file.
- `occmap.lidar_results` – `LidarResult` codes, `is_ok`, `is_fail` and
  `check_result`, which raises `LidarError` on failure codes.
- `occmap.lidar_protocol` – `Command` and `AnswerType` codes, parsers for
  device info, device health and measurement nodes, packers for express
  scan, motor PWM and baud rate confirmation payloads, and
  `varbitscale_src_max`.

## Examples

Ray casting and extents:

```python
import numpy as np
from occmap.grid import MapInfo, OccupancyGrid, DistanceMeasurementProvider, get_map_extents

data = np.zeros((10, 10), dtype=np.int8)
data[5, 8] = 100
grid = OccupancyGrid(MapInfo(width=10, height=10, resolution=0.5), data)

get_map_extents(grid)                       # MapExtents(top_left=(0, 0), bottom_right=(10, 10))
DistanceMeasurementProvider(grid).get_dist((0.25, 2.75), (4.75, 2.75))
```

Map image:

```python
from occmap.map_image import full_map_image

image = full_map_image(grid)   # (height, width) uint8 array
```

Writing a GeoTIFF:

```python
from occmap.geotiff_writer import GeotiffWriter

writer = GeotiffWriter(map_file_path="out", use_utc_time_suffix=False)
writer.set_map_file_name("floor1")
if writer.setup_transforms(grid):
    writer.setup_image_size()
    writer.draw_background_checkerboard()
    writer.draw_map(grid)
    writer.draw_coords()
    writer.write_geotiff_image()   # out/floor1.tif and out/floor1.tfw
```

With the time suffix on (the default), `set_map_file_name` appends the
current local time as `_HH:MM:SS`.

Lidar protocol values:

```python
from occmap.lidar_protocol import varbitscale_src_max
from occmap.lidar_results import check_result

varbitscale_src_max(12)   # 28671
check_result(0)           # LidarResult.OK; failure codes raise LidarError
```

Orientation helpers:

```python
from occmap.transforms import quaternion_from_rpy, quaternion_to_rpy

q = quaternion_from_rpy(0.1, -0.2, 0.0)
roll, pitch, yaw = quaternion_to_rpy(q)
```

## What this package does not do

- It installs no command; everything is used from Python.
- It does not subscribe to or publish on any message bus. The processors
  take messages through their `on_*` methods and hand results to callbacks
  you supply.
- It has no server that keeps the latest map and answers map or
  distance queries, and nothing that drives a `GeotiffWriter` from incoming
  maps or commands; you call the writer yourself.
- It ships no `MapWriterPlugin` implementation; the interface is there for
  your own.
- It does not talk to lidar hardware; it only encodes and decodes payloads.

## Requirements

Python 3.10 or later, with numpy and pillow.