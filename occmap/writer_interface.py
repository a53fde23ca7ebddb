"""Interfaces for map image writers and for plugins that draw onto them."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence


class Shape(enum.Enum):
    CIRCLE = "circle"
    DIAMOND = "diamond"


@dataclass(frozen=True)
class Color:
    """An 8-bit RGB colour."""

    r: int
    g: int
    b: int

    def __post_init__(self) -> None:
        for channel in (self.r, self.g, self.b):
            if not 0 <= channel <= 255:
                raise ValueError(f"colour channel {channel} outside 0..255")

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)


DEFAULT_PATH_COLOR = Color(120, 0, 240)


class MapWriter(ABC):
    """Something a map, objects and paths can be drawn onto."""

    @abstractmethod
    def base_path_and_file_name(self) -> str:
        """Output path and file name without extension."""

    @abstractmethod
    def draw_object_of_interest(
        self,
        coords: Sequence[float],
        text: str,
        color: Color,
        shape: Shape = Shape.CIRCLE,
    ) -> None:
        """Mark a labelled object at world coordinates."""

    def draw_path(
        self,
        start: Sequence[float],
        points: Sequence[Sequence[float]],
        color: Optional[Color] = None,
    ) -> None:
        """Draw a path from ``start`` (x, y, heading) through world ``points``."""
        self._render_path(
            tuple(float(c) for c in start),
            [(float(p[0]), float(p[1])) for p in points],
            color if color is not None else DEFAULT_PATH_COLOR,
        )

    @abstractmethod
    def _render_path(
        self,
        start: tuple[float, ...],
        points: list[tuple[float, float]],
        color: Color,
    ) -> None:
        """Draw a path with all arguments resolved."""


class MapWriterPlugin(ABC):
    """A named extension that adds drawings to a map writer."""

    @abstractmethod
    def initialize(self, name: str) -> None:
        """Configure the plugin under the given name."""

    @abstractmethod
    def draw(self, writer: MapWriter) -> object:
        """Draw the plugin's content onto ``writer``."""