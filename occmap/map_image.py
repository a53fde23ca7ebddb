"""Render occupancy grids as 8-bit greyscale images, whole or as a tile around the robot."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional, Sequence

import numpy as np

from occmap.grid import FREE, OCCUPIED, OccupancyGrid, transformer_from_map_info

logger = logging.getLogger(__name__)

TILE_SIZE = 64
MIN_MAP_SIZE = 3

UNKNOWN_PIXEL = 127
FREE_PIXEL = 255
OCCUPIED_PIXEL = 0


def _to_pixels(cells: np.ndarray) -> np.ndarray:
    pixels = np.full(cells.shape, UNKNOWN_PIXEL, dtype=np.uint8)
    pixels[cells == FREE] = FREE_PIXEL
    pixels[cells == OCCUPIED] = OCCUPIED_PIXEL
    return pixels


def full_map_image(grid: OccupancyGrid) -> np.ndarray:
    """The whole grid as a (height, width) uint8 image, flipped so map y points up."""
    return np.flipud(_to_pixels(grid.cells)).copy()


class TileBounds(NamedTuple):
    """Cell window [min, max) of a tile in map coordinates."""

    min_x: int
    min_y: int
    max_x: int
    max_y: int

    @property
    def width(self) -> int:
        return self.max_x - self.min_x

    @property
    def height(self) -> int:
        return self.max_y - self.min_y


def tile_bounds(
    size_x: int,
    size_y: int,
    robot_map: Sequence[float],
    tile_width: int = TILE_SIZE,
    tile_height: int = TILE_SIZE,
) -> TileBounds:
    """Window of the given size centred on the robot, shifted to stay inside the map."""

    def axis(robot: int, tile: int, size: int) -> tuple[int, int]:
        low = max(robot - tile // 2, 0)
        high = low + tile
        if high > size:
            low -= high - size
            high = size
        return max(low, 0), high

    min_x, max_x = axis(int(robot_map[0]), tile_width, size_x)
    min_y, max_y = axis(int(robot_map[1]), tile_height, size_y)
    return TileBounds(min_x, min_y, max_x, max_y)


def tile_map_image(grid: OccupancyGrid, bounds: TileBounds) -> np.ndarray:
    """The cells inside ``bounds`` as a uint8 image, flipped so map y points up."""
    if not (0 <= bounds.min_x <= bounds.max_x <= grid.width and 0 <= bounds.min_y <= bounds.max_y <= grid.height):
        raise ValueError(f"tile bounds {tuple(bounds)} do not fit a {grid.width}x{grid.height} map")
    window = grid.cells[bounds.min_y:bounds.max_y, bounds.min_x:bounds.max_x]
    return np.flipud(_to_pixels(window)).copy()


@dataclass(frozen=True, eq=False)
class MapImage:
    """A rendered map image with its frame and pixel encoding."""

    pixels: np.ndarray
    frame_id: str = "map_image"
    encoding: str = "mono8"


ImageSink = Callable[[MapImage], None]


class MapImageProvider:
    """Turns each received map into a full image and a tile around the last pose.

    A sink left as None stands for an output nobody listens to; its image is
    then not computed.
    """

    def __init__(
        self,
        publish_full: Optional[ImageSink] = None,
        publish_tile: Optional[ImageSink] = None,
        tile_width: int = TILE_SIZE,
        tile_height: int = TILE_SIZE,
    ) -> None:
        self.publish_full = publish_full
        self.publish_tile = publish_tile
        self.tile_width = tile_width
        self.tile_height = tile_height
        self._pose: Optional[tuple[float, float]] = None

    @property
    def pose(self) -> Optional[tuple[float, float]]:
        return self._pose

    def on_pose(self, pose: Sequence[float]) -> None:
        """Remember the robot position, given as world (x, y)."""
        self._pose = (float(pose[0]), float(pose[1]))

    def on_map(self, grid: OccupancyGrid) -> None:
        size_x, size_y = grid.width, grid.height
        if size_x < MIN_MAP_SIZE or size_y < MIN_MAP_SIZE:
            logger.info(
                "Map size is only x: %d, y: %d. Not running map to image conversion",
                size_x,
                size_y,
            )
            return

        if self.publish_full is not None:
            self.publish_full(MapImage(full_map_image(grid)))

        if self.publish_tile is not None and self._pose is not None:
            robot_map = transformer_from_map_info(grid.info).to_c2(self._pose)
            bounds = tile_bounds(size_x, size_y, robot_map, self.tile_width, self.tile_height)
            self.publish_tile(MapImage(tile_map_image(grid, bounds)))