"""Pixel layout of a GeoTIFF map image and its accompanying world file."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, NamedTuple, Sequence

from occmap.grid import (
    CoordinateTransformer,
    OccupancyGrid,
    get_map_extents,
    transformer_between,
    transformer_from_map_info,
)

RESOLUTION_FACTOR = 3
RIGHT_BOTTOM_MARGIN_METERS = (1.0, 1.0)
LEFT_TOP_MARGIN_METERS = (3.0, 3.0)

CHECKER_COLOR_EVEN = (226, 226, 227)
CHECKER_COLOR_ODD = (237, 237, 238)

_WORLD_REFERENCE_FAR = (100.0, 100.0)


class CheckerTile(NamedTuple):
    """One square of the background checkerboard, in GeoTIFF pixel coordinates."""

    x: float
    y: float
    size: float
    color: tuple[int, int, int]


def _fmt(value: float) -> str:
    return f"{value:.10f}"


@dataclass(frozen=True)
class GeotiffLayout:
    """Geometry relating world, map cell and GeoTIFF pixel coordinates.

    GeoTIFF pixel coordinates are those of the drawing frame before the
    image is rotated: x runs along map x and y along map y.
    """

    resolution: float
    resolution_factor: int
    pixels_per_map_meter: float
    pixels_per_geotiff_meter: float
    min_coords_map: tuple[int, int]
    max_coords_map: tuple[int, int]
    right_bottom_margin_pixels_f: tuple[float, float]
    right_bottom_margin_pixels: tuple[int, int]
    total_meters: tuple[float, float]
    geotiff_size_pixels: tuple[int, int]
    map_orig_in_geotiff: tuple[float, float]
    map_end_in_geotiff: tuple[float, float]
    world_map: CoordinateTransformer
    map_geo: CoordinateTransformer
    world_geo: CoordinateTransformer

    @property
    def size_map(self) -> tuple[int, int]:
        return (
            self.max_coords_map[0] - self.min_coords_map[0],
            self.max_coords_map[1] - self.min_coords_map[1],
        )

    @property
    def image_size(self) -> tuple[int, int]:
        """(width, height) of the stored image, which is rotated by 90 degrees."""
        return (self.geotiff_size_pixels[1], self.geotiff_size_pixels[0])

    @property
    def font_pixel_size(self) -> int:
        return 6 * self.resolution_factor

    def world_to_geo(self, point: Sequence[float]) -> tuple[float, float]:
        """GeoTIFF pixel coordinates of a world point."""
        return self.world_geo.to_c2(point)

    def checkerboard_tiles(self) -> Iterator[CheckerTile]:
        """One-metre background squares in alternating shades, covering the image."""
        size = self.pixels_per_geotiff_meter
        max_x, max_y = self.geotiff_size_pixels
        y = 0
        while y * size < max_y:
            x = 0
            while x * size < max_x:
                color = CHECKER_COLOR_EVEN if (x + y) % 2 == 0 else CHECKER_COLOR_ODD
                yield CheckerTile(x * size, y * size, size, color)
                x += 1
            y += 1

    def world_file_lines(self) -> list[str]:
        """The six lines of the ``.tfw`` world file."""
        resolution_geo = _fmt(self.resolution / float(self.resolution_factor))
        zero = _fmt(0.0)
        corner = self.world_geo.to_c1(
            (float(self.geotiff_size_pixels[0] + 1), float(self.geotiff_size_pixels[1] + 1))
        )
        return [
            resolution_geo,
            zero,
            zero,
            "-" + resolution_geo,
            _fmt(-corner[1]),
            _fmt(corner[0]),
        ]


def compute_layout(grid: OccupancyGrid) -> GeotiffLayout:
    """Lay out a GeoTIFF for the known part of ``grid``.

    Raises ValueError when the grid holds no known cell.
    """
    extents = get_map_extents(grid)
    if extents is None:
        raise ValueError("cannot determine map extents: no known cells")

    resolution = float(grid.info.resolution)
    factor = RESOLUTION_FACTOR
    factor_f = float(factor)
    ppmm = 1.0 / resolution
    ppgm = ppmm * factor_f

    min_coords = extents.top_left
    max_coords = extents.bottom_right
    size_map = (max_coords[0] - min_coords[0], max_coords[1] - min_coords[1])

    margin_px_f = (
        RIGHT_BOTTOM_MARGIN_METERS[0] * ppgm,
        RIGHT_BOTTOM_MARGIN_METERS[1] * ppgm,
    )
    margin_px = (int(margin_px_f[0] + 0.5), int(margin_px_f[1] + 0.5))

    total = tuple(
        float(math.ceil(RIGHT_BOTTOM_MARGIN_METERS[i] + size_map[i] * resolution + LEFT_TOP_MARGIN_METERS[i]))
        for i in range(2)
    )
    geo_size = (int(total[0] * ppgm), int(total[1] * ppgm))

    map_orig = margin_px_f
    map_end = (margin_px_f[0] + size_map[0] * factor_f, margin_px_f[1] + size_map[1] * factor_f)

    world_map = transformer_from_map_info(grid.info)
    map_geo = transformer_between(
        map_orig,
        map_end,
        (float(min_coords[0]), float(min_coords[1])),
        (float(max_coords[0]), float(max_coords[1])),
    )

    p1_w = (0.0, 0.0)
    p2_w = _WORLD_REFERENCE_FAR
    p1_g = map_geo.to_c2(world_map.to_c2(p1_w))
    p2_g = map_geo.to_c2(world_map.to_c2(p2_w))
    world_geo = transformer_between(p1_g, p2_g, p1_w, p2_w)

    return GeotiffLayout(
        resolution=resolution,
        resolution_factor=factor,
        pixels_per_map_meter=ppmm,
        pixels_per_geotiff_meter=ppgm,
        min_coords_map=min_coords,
        max_coords_map=max_coords,
        right_bottom_margin_pixels_f=margin_px_f,
        right_bottom_margin_pixels=margin_px,
        total_meters=(total[0], total[1]),
        geotiff_size_pixels=geo_size,
        map_orig_in_geotiff=map_orig,
        map_end_in_geotiff=map_end,
        world_map=world_map,
        map_geo=map_geo,
        world_geo=world_geo,
    )