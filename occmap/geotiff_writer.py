"""Render an occupancy grid with background, coordinates, objects and paths into a GeoTIFF and world file."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Sequence

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from occmap.geotiff_layout import GeotiffLayout, compute_layout
from occmap.grid import FREE, OCCUPIED, OccupancyGrid
from occmap.writer_interface import Color, MapWriter, Shape

logger = logging.getLogger(__name__)

BACKGROUND_COLOR = (128, 128, 128)
OCCUPIED_COLOR = (0, 40, 120)
FREE_COLOR = (255, 255, 255)
EXPLORED_GRID_COLOR = (190, 190, 191)
COORDS_COLOR = (0, 50, 140)
ARROW_COLOR = (255, 200, 0)
TEXT_COLOR = (255, 255, 255)

PATH_WIDTH = 3


def _load_font(size: int):
    try:
        return ImageFont.load_default(size)
    except TypeError:
        return ImageFont.load_default()


def _px(value: float) -> int:
    return int(math.floor(value + 0.5))


class GeotiffWriter(MapWriter):
    """Draws a map image in GeoTIFF pixel coordinates and writes it with a ``.tfw`` file.

    The drawing frame has x along map x and y along map y; the stored image
    is that frame rotated by 90 degrees.
    """

    def __init__(
        self,
        map_file_path: str = ".",
        use_utc_time_suffix: bool = True,
        use_checkerboard_cache: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.map_file_path = map_file_path
        self.map_file_name = ""
        self.use_utc_time_suffix = use_utc_time_suffix
        self.use_checkerboard_cache = use_checkerboard_cache
        self._clock = clock
        self.layout: Optional[GeotiffLayout] = None
        self.image: Optional[Image.Image] = None
        self._checkerboard_cache: Optional[Image.Image] = None
        self._cache_key: Optional[tuple] = None
        self._map_font = _load_font(18)

    # -- configuration -----------------------------------------------------

    def set_map_file_name(self, name: str) -> None:
        """Set the output name, followed by ``_HH:MM:SS`` when the time suffix is on."""
        self.map_file_name = name
        if self.use_utc_time_suffix:
            self.map_file_name += "_" + self._clock().strftime("%H:%M:%S")

    def base_path_and_file_name(self) -> str:
        return self.map_file_path + "/" + self.map_file_name

    def setup_transforms(self, grid: OccupancyGrid) -> bool:
        """Compute the layout for ``grid``; False when the map extents cannot be determined."""
        try:
            layout = compute_layout(grid)
        except ValueError:
            logger.info("Cannot determine map extends!")
            return False
        self.layout = layout
        self._map_font = _load_font(layout.font_pixel_size)

        if self.use_checkerboard_cache:
            key = (grid.info.width, grid.info.height, grid.info.resolution)
            if key != self._cache_key or self._checkerboard_cache is None:
                self._cache_key = key
                cache = Image.new("RGB", layout.image_size, BACKGROUND_COLOR)
                self._paint_checkerboard(ImageDraw.Draw(cache), layout)
                self._checkerboard_cache = cache
        return True

    # -- helpers -----------------------------------------------------------

    def _require_layout(self) -> GeotiffLayout:
        if self.layout is None:
            raise RuntimeError("transforms have not been set up")
        return self.layout

    def _require_image(self) -> tuple[GeotiffLayout, Image.Image]:
        layout = self._require_layout()
        if self.image is None:
            raise RuntimeError("image has not been set up")
        return layout, self.image

    @staticmethod
    def _geo_to_image(layout: GeotiffLayout, x: float, y: float) -> tuple[float, float]:
        width, height = layout.geotiff_size_pixels
        return (height - y, width - x)

    def _fill_geo_rect(self, draw, layout: GeotiffLayout, x: float, y: float, w: float, h: float, color) -> None:
        width, height = layout.geotiff_size_pixels
        x0 = _px(height - (y + h))
        x1 = _px(height - y) - 1
        y0 = _px(width - (x + w))
        y1 = _px(width - x) - 1
        if x1 < x0 or y1 < y0:
            return
        draw.rectangle([x0, y0, x1, y1], fill=color)

    def _paint_checkerboard(self, draw, layout: GeotiffLayout) -> None:
        for tile in layout.checkerboard_tiles():
            self._fill_geo_rect(draw, layout, tile.x, tile.y, tile.size, tile.size, tile.color)

    # -- drawing -----------------------------------------------------------

    def setup_image_size(self) -> None:
        """Create the image, filled grey, unless the checkerboard cache supplies it."""
        layout = self._require_layout()
        if not self.use_checkerboard_cache:
            self.image = Image.new("RGB", layout.image_size, BACKGROUND_COLOR)

    def draw_background_checkerboard(self) -> None:
        layout = self._require_layout()
        if self.use_checkerboard_cache and self._checkerboard_cache is not None:
            w, h = layout.image_size
            self.image = self._checkerboard_cache.crop((0, 0, w, h))
            return
        _, image = self._require_image()
        self._paint_checkerboard(ImageDraw.Draw(image), layout)

    def draw_map(self, grid: OccupancyGrid, draw_explored_space_grid: bool = True) -> None:
        """Paint free and occupied cells, with a half-metre grid over explored space."""
        layout, image = self._require_image()
        draw = ImageDraw.Draw(image)
        factor = float(layout.resolution_factor)
        orig_x, orig_y = layout.map_orig_in_geotiff
        grid_step = layout.pixels_per_geotiff_meter * 0.5
        (min_x, min_y), (max_x, max_y) = layout.min_coords_map, layout.max_coords_map
        cells = grid.cells

        y_geo = 0.0
        curr_y_limit = 0.0
        draw_y = False
        for y in range(min_y, max_y):
            row = cells[y].tolist()
            x_geo = 0.0
            if y_geo >= curr_y_limit:
                draw_y = True
            curr_x_limit = 0.0
            draw_x = False
            for x in range(min_x, max_x):
                value = row[x]
                if x_geo >= curr_x_limit:
                    draw_x = True
                if value == FREE:
                    cx, cy = orig_x + x_geo, orig_y + y_geo
                    self._fill_geo_rect(draw, layout, cx, cy, factor, factor, FREE_COLOR)
                    if draw_explored_space_grid:
                        if draw_y:
                            self._fill_geo_rect(draw, layout, cx, orig_y + curr_y_limit, factor, 1.0, EXPLORED_GRID_COLOR)
                        if draw_x:
                            self._fill_geo_rect(draw, layout, orig_x + curr_x_limit, cy, 1.0, factor, EXPLORED_GRID_COLOR)
                elif value == OCCUPIED:
                    self._fill_geo_rect(draw, layout, orig_x + x_geo, orig_y + y_geo, factor, factor, OCCUPIED_COLOR)
                if draw_x:
                    curr_x_limit += grid_step
                    draw_x = False
                x_geo += factor
            if draw_y:
                draw_y = False
                curr_y_limit += grid_step
            y_geo += factor

    def _draw_centered_text(self, draw, center: tuple[float, float], text: str, font, color) -> None:
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        x = center[0] - (right - left) / 2.0 - left
        y = center[1] - (bottom - top) / 2.0 - top
        draw.text((x, y), text, fill=color, font=font)

    def draw_object_of_interest(
        self,
        coords: Sequence[float],
        text: str,
        color: Color,
        shape: Shape = Shape.CIRCLE,
    ) -> None:
        """Mark a world position with a filled circle or diamond and a centred label."""
        layout, image = self._require_image()
        draw = ImageDraw.Draw(image)
        gx, gy = layout.world_to_geo(coords)
        cx, cy = self._geo_to_image(layout, gx, gy)
        radius = layout.pixels_per_geotiff_meter * 0.175
        fill = color.as_tuple()

        if shape is Shape.CIRCLE:
            draw.ellipse([cx - radius, cy - radius, cx + radius, cy + radius], fill=fill)
        elif shape is Shape.DIAMOND:
            d = radius * math.sqrt(2.0)
            draw.polygon([(cx + d, cy), (cx, cy + d), (cx - d, cy), (cx, cy - d)], fill=fill)

        if len(text) < 2:
            font = self._map_font
        else:
            font = _load_font(3 * layout.resolution_factor)
        if text:
            self._draw_centered_text(draw, (cx, cy), text, font, TEXT_COLOR)

    def draw_path(
        self,
        start: Sequence[float],
        points: Sequence[Sequence[float]],
        color: Optional[Color] = None,
    ) -> None:
        """Draw a polyline from ``start`` (x, y, heading in degrees) through ``points``."""
        super().draw_path(start, points, color)

    def _render_path(
        self,
        start: tuple[float, ...],
        points: list[tuple[float, float]],
        color: Color,
    ) -> None:
        layout, image = self._require_image()
        draw = ImageDraw.Draw(image)
        heading = start[2] if len(start) > 2 else 0.0
        start_geo = layout.world_to_geo((start[0], start[1]))
        geo_points = [start_geo] + [layout.world_to_geo(p) for p in points]
        image_points = [self._geo_to_image(layout, gx, gy) for gx, gy in geo_points]
        if len(image_points) > 1:
            draw.line(image_points, fill=color.as_tuple(), width=PATH_WIDTH)
        self._draw_arrow(draw, layout, start_geo, heading)

    def _draw_arrow(self, draw, layout: GeotiffLayout, at: tuple[float, float], heading_deg: float) -> None:
        tip = layout.pixels_per_geotiff_meter * 0.3
        shape = [(tip, 0.0), (-tip * 0.5, -tip * 0.5), (0.0, 0.0), (-tip * 0.5, tip * 0.5)]
        a = math.radians(heading_deg)
        c, s = math.cos(a), math.sin(a)
        polygon = [
            self._geo_to_image(layout, at[0] + c * x - s * y, at[1] + s * x + c * y)
            for x, y in shape
        ]
        draw.polygon(polygon, fill=ARROW_COLOR)

    def draw_coords(self) -> None:
        """Draw the scale bar, axis arrows and file name in the image corner."""
        _, image = self._require_image()
        draw = ImageDraw.Draw(image)
        p = self._require_layout().pixels_per_geotiff_meter
        off = p * 0.15
        lines = [
            (p / 2, p, p / 2, 2.0 * p),
            (p * 2 / 5, p - 1, p * 3 / 5, p - 1),
            (p * 2 / 5, 2 * p, p * 3 / 5, 2 * p),
            (p, 2 * p, 2 * p, 2 * p),
            (p, 2 * p, p + off, 2 * p - off),
            (p, 2 * p, p + off, 2 * p + off),
            (2 * p, p, 2 * p, 2 * p),
            (2 * p, p, 2 * p + off, p + off),
            (2 * p, p, 2 * p - off, p + off),
        ]
        for x0, y0, x1, y1 in lines:
            draw.line([(x0, y0), (x1, y1)], fill=COORDS_COLOR, width=1)

        labels = [
            (0.6 * p, 1.6 * p, "1m"),
            (2.2 * p, 1.1 * p, "x"),
            (1.2 * p, 1.8 * p, "y"),
            (0.5 * p, 0.75 * p, self.map_file_name + ".tif"),
        ]
        for x, y, text in labels:
            bottom = draw.textbbox((0, 0), text, font=self._map_font)[3]
            draw.text((x, y - bottom), text, fill=COORDS_COLOR, font=self._map_font)

    # -- output ------------------------------------------------------------

    def write_geotiff_image(self) -> tuple[Path, Path]:
        """Write the ``.tif`` image and ``.tfw`` world file; returns both paths.

        The world file is written even if the image cannot be; the image
        error is raised afterwards.
        """
        layout, image = self._require_image()
        base = self.base_path_and_file_name()
        tif_path = Path(base + ".tif")
        tfw_path = Path(base + ".tfw")

        error: Optional[OSError] = None
        try:
            try:
                image.save(tif_path, format="TIFF", compression="tiff_lzw")
            except (OSError, ValueError):
                image.save(tif_path, format="TIFF")
        except OSError as exc:
            error = exc

        tfw_path.write_text("".join(line + "\n" for line in layout.world_file_lines()))

        if error is not None:
            logger.info("Writing image with file %s failed with error %s", tif_path, error)
            raise error
        logger.info("Successfully wrote geotiff to %s", tif_path)
        return tif_path, tfw_path

    @property
    def pixels(self) -> np.ndarray:
        """The current image as an (height, width, 3) array."""
        _, image = self._require_image()
        return np.asarray(image)