"""Occupancy grids, coordinate transforms and ray-based obstacle lookup."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence

import numpy as np

UNKNOWN = -1
FREE = 0
OCCUPIED = 100

_MAX_TRACE_LENGTH = 5000

Point = tuple[float, float]
Cell = tuple[int, int]


@dataclass(frozen=True)
class MapInfo:
    """Grid geometry: size in cells, metres per cell and world origin of cell (0, 0)."""

    width: int
    height: int
    resolution: float
    origin: Point = (0.0, 0.0)


@dataclass(eq=False)
class OccupancyGrid:
    """A row-major grid of occupancy values (-1 unknown, 0 free, 100 occupied)."""

    info: MapInfo
    data: np.ndarray
    frame_id: str = "map"

    def __post_init__(self) -> None:
        cells = np.array(self.data, dtype=np.int8).ravel()
        expected = self.info.width * self.info.height
        if cells.size != expected:
            raise ValueError(
                f"grid data holds {cells.size} cells, expected {expected} "
                f"({self.info.width}x{self.info.height})"
            )
        cells.setflags(write=False)
        self.data = cells

    @property
    def width(self) -> int:
        return self.info.width

    @property
    def height(self) -> int:
        return self.info.height

    @property
    def cells(self) -> np.ndarray:
        """The data as a (height, width) array, row 0 being map y = 0."""
        return self.data.reshape(self.info.height, self.info.width)

    def cell(self, x: int, y: int) -> int:
        """Return the occupancy value of cell (x, y)."""
        if not (0 <= x < self.info.width and 0 <= y < self.info.height):
            raise IndexError(f"cell ({x}, {y}) lies outside the grid")
        return int(self.data[y * self.info.width + x])


@dataclass(frozen=True)
class CoordinateTransformer:
    """Affine map between two 2D frames sharing one scale factor.

    ``to_c1`` computes ``origin + point * scale``; ``to_c2`` is its inverse.
    """

    origin: Point
    scale: float

    @property
    def inv_scale(self) -> float:
        return 1.0 / self.scale

    def to_c1(self, point: Sequence[float]) -> Point:
        x, y = point
        return (self.origin[0] + x * self.scale, self.origin[1] + y * self.scale)

    def to_c2(self, point: Sequence[float]) -> Point:
        x, y = point
        inv = self.inv_scale
        return ((x - self.origin[0]) * inv, (y - self.origin[1]) * inv)

    def c1_scale(self, value: float) -> float:
        return self.scale * value

    def c2_scale(self, value: float) -> float:
        return self.inv_scale * value


def transformer_from_map_info(info: MapInfo) -> CoordinateTransformer:
    """Transformer whose c1 frame is the world and c2 frame the grid cells."""
    return CoordinateTransformer(
        origin=(float(info.origin[0]), float(info.origin[1])),
        scale=float(info.resolution),
    )


def _linear_transform(a0: float, a1: float, b0: float, b1: float) -> tuple[float, float]:
    if a0 == a1:
        raise ValueError("coordinate span of the first system is zero")
    scaling = (b0 - b1) / (a0 - a1)
    translation = b0 - a0 * scaling
    return scaling, translation


def transformer_between(
    origin1: Sequence[float],
    end1: Sequence[float],
    origin2: Sequence[float],
    end2: Sequence[float],
) -> CoordinateTransformer:
    """Transformer whose ``to_c1`` maps origin1/end1 onto origin2/end2.

    The scale is taken from the x axis; the y axis contributes only its offset.
    """
    x_scale, x_offset = _linear_transform(origin1[0], end1[0], origin2[0], end2[0])
    _, y_offset = _linear_transform(origin1[1], end1[1], origin2[1], end2[1])
    return CoordinateTransformer(origin=(x_offset, y_offset), scale=x_scale)


class Hit(NamedTuple):
    """Distance to the first occupied cell along a ray and where it was found."""

    distance: float
    point: tuple


class MapExtents(NamedTuple):
    """Bounding box of known cells; ``bottom_right`` is exclusive."""

    top_left: Cell
    bottom_right: Cell


class DistanceMeasurementProvider:
    """Casts rays through an occupancy grid to find the nearest obstacle."""

    def __init__(self, grid: Optional[OccupancyGrid] = None) -> None:
        self._grid: Optional[OccupancyGrid] = None
        self._transformer: Optional[CoordinateTransformer] = None
        if grid is not None:
            self.set_map(grid)

    def set_map(self, grid: OccupancyGrid) -> None:
        self._grid = grid
        self._transformer = transformer_from_map_info(grid.info)

    def _require_map(self) -> tuple[OccupancyGrid, CoordinateTransformer]:
        if self._grid is None or self._transformer is None:
            raise RuntimeError("no map has been set")
        return self._grid, self._transformer

    def get_dist(self, begin_world: Sequence[float], end_world: Sequence[float]) -> Optional[Hit]:
        """Trace from begin to end in world coordinates.

        Returns the world distance and world position of the hit cell, or
        None if no occupied cell lies on the ray.
        """
        _, transformer = self._require_map()
        begin_map = _truncate(transformer.to_c2(begin_world))
        end_map = _truncate(transformer.to_c2(end_world))
        hit = self.check_occupancy_bresenham(begin_map, end_map)
        if hit is None:
            return None
        hit_world = transformer.to_c1((float(hit.point[0]), float(hit.point[1])))
        return Hit(transformer.c1_scale(hit.distance), hit_world)

    def check_occupancy_bresenham(self, begin_map: Sequence[int], end_map: Sequence[int]) -> Optional[Hit]:
        """Trace between two cells; the distance is in cells, truncated to a whole number.

        Returns None when either end lies outside the grid or no occupied
        cell is met before the end cell (the end cell itself is not tested).
        """
        grid, _ = self._require_map()
        size_x, size_y = grid.width, grid.height
        x0, y0 = int(begin_map[0]), int(begin_map[1])
        x1, y1 = int(end_map[0]), int(end_map[1])

        if not (0 <= x0 < size_x and 0 <= y0 < size_y):
            return None
        if not (0 <= x1 < size_x and 0 <= y1 < size_y):
            return None

        dx = x1 - x0
        dy = y1 - y0
        abs_dx, abs_dy = abs(dx), abs(dy)
        step_x = 1 if dx > 0 else -1
        step_y = (1 if dy > 0 else -1) * size_x
        start = y0 * size_x + x0

        if abs_dx >= abs_dy:
            end_offset = self._trace(grid.data, abs_dx, abs_dy, abs_dx // 2, step_x, step_y, start)
        else:
            end_offset = self._trace(grid.data, abs_dy, abs_dx, abs_dy // 2, step_y, step_x, start)

        if end_offset is None:
            return None
        hit_cell = (end_offset % size_x, end_offset // size_x)
        distance = int(math.hypot(x0 - hit_cell[0], y0 - hit_cell[1]))
        return Hit(float(distance), hit_cell)

    @staticmethod
    def _trace(
        data: np.ndarray,
        abs_da: int,
        abs_db: int,
        error_b: int,
        offset_a: int,
        offset_b: int,
        offset: int,
    ) -> Optional[int]:
        for _ in range(min(_MAX_TRACE_LENGTH, abs_da)):
            if data[offset] == OCCUPIED:
                return offset
            offset += offset_a
            error_b += abs_db
            if error_b >= abs_da:
                offset += offset_b
                error_b -= abs_da
        return None


def _truncate(point: Sequence[float]) -> Cell:
    return (int(point[0]), int(point[1]))


def get_map_extents(grid: OccupancyGrid) -> Optional[MapExtents]:
    """Bounding box of all cells that are not unknown, or None if there are none."""
    ys, xs = np.nonzero(grid.cells != UNKNOWN)
    if xs.size == 0:
        return None
    return MapExtents(
        top_left=(int(xs.min()), int(ys.min())),
        bottom_right=(int(xs.max()) + 1, int(ys.max()) + 1),
    )