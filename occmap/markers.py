"""Accumulate visualisation markers (points, arrows, covariance ellipses) and publish them in batches."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional, Sequence

import numpy as np


class MarkerType(enum.IntEnum):
    ARROW = 0
    CUBE = 1
    SPHERE = 2
    CYLINDER = 3


class MarkerAction(enum.IntEnum):
    ADD = 0
    DELETE = 2


Vector3 = tuple[float, float, float]
Quat = tuple[float, float, float, float]
Rgba = tuple[float, float, float, float]


@dataclass(frozen=True)
class Marker:
    """One visualisation marker; orientation is (x, y, z, w)."""

    id: int = 0
    ns: str = ""
    frame_id: str = ""
    stamp: float = 0.0
    type: MarkerType = MarkerType.ARROW
    action: MarkerAction = MarkerAction.ADD
    position: Vector3 = (0.0, 0.0, 0.0)
    orientation: Quat = (0.0, 0.0, 0.0, 0.0)
    scale: Vector3 = (0.0, 0.0, 0.0)
    color: Rgba = (0.0, 0.0, 0.0, 0.0)


MarkerSink = Callable[[list[Marker]], None]


def _quaternion_from_matrix(m: np.ndarray) -> Quat:
    trace = float(m[0, 0] + m[1, 1] + m[2, 2])
    if trace > 0.0:
        s = math.sqrt(trace + 1.0)
        w = 0.5 * s
        s = 0.5 / s
        return (
            float((m[2, 1] - m[1, 2]) * s),
            float((m[0, 2] - m[2, 0]) * s),
            float((m[1, 0] - m[0, 1]) * s),
            w,
        )
    i = int(np.argmax(np.diag(m)))
    j = (i + 1) % 3
    k = (j + 1) % 3
    s = math.sqrt(float(m[i, i] - m[j, j] - m[k, k]) + 1.0)
    q = [0.0, 0.0, 0.0]
    q[i] = 0.5 * s
    s = 0.5 / s
    w = float((m[k, j] - m[j, k]) * s)
    q[j] = float((m[j, i] + m[i, j]) * s)
    q[k] = float((m[k, i] + m[i, k]) * s)
    return (q[0], q[1], q[2], w)


class MarkerDrawer:
    """Builds markers from a template and hands pending batches to a sink.

    Every drawing call copies the current template (namespace, scale, colour,
    time) into a new marker with the next id. ``send_and_reset`` publishes the
    pending batch and restarts ids at zero; ``reset`` publishes deletions for
    everything sent so far.
    """

    def __init__(self, publish: Optional[MarkerSink] = None) -> None:
        self._publish = publish
        self.id_counter = 0
        self.max_id = 0
        self.template = Marker(frame_id="map", ns="marker", action=MarkerAction.ADD)
        self.pending: list[Marker] = []
        self.all_markers: list[Marker] = []
        self.set_scale(1.0)
        self.set_color(1.0, 1.0, 1.0)

    def _next_id(self) -> int:
        current = self.id_counter
        self.id_counter += 1
        return current

    def _emit(self, markers: list[Marker]) -> None:
        if self._publish is not None:
            self._publish(list(markers))

    def set_namespace(self, ns: str) -> None:
        self.template = replace(self.template, ns=ns)

    def draw_point(self, point: Sequence[float]) -> Marker:
        _, _, z = self.template.position
        ox, oy, _, _ = self.template.orientation
        self.template = replace(
            self.template,
            id=self._next_id(),
            position=(float(point[0]), float(point[1]), z),
            orientation=(ox, oy, 0.0, 0.0),
            type=MarkerType.CUBE,
        )
        self.pending.append(self.template)
        return self.template

    def draw_arrow(self, pose: Sequence[float]) -> Marker:
        """Draw an arrow at world pose (x, y, heading)."""
        _, _, z = self.template.position
        ox, oy, _, _ = self.template.orientation
        half = float(pose[2]) * 0.5
        self.template = replace(
            self.template,
            id=self._next_id(),
            position=(float(pose[0]), float(pose[1]), z),
            orientation=(ox, oy, math.sin(half), math.cos(half)),
            type=MarkerType.ARROW,
        )
        self.pending.append(self.template)
        return self.template

    def draw_covariance_2d(self, mean: Sequence[float], cov: Sequence[Sequence[float]]) -> Marker:
        values, vectors = np.linalg.eigh(np.asarray(cov, dtype=float).reshape(2, 2))
        angle = math.atan2(vectors[1, 0], vectors[0, 0])
        _, _, z = self.template.position
        ox, oy, _, _ = self.template.orientation
        self.template = replace(
            self.template,
            position=(float(mean[0]), float(mean[1]), z),
            type=MarkerType.CYLINDER,
            scale=(math.sqrt(values[0]), math.sqrt(values[1]), 0.001),
            orientation=(ox, oy, math.sin(angle * 0.5), math.cos(angle * 0.5)),
            id=self._next_id(),
        )
        self.pending.append(self.template)
        return self.template

    def draw_covariance_3d(self, mean: Sequence[float], cov: Sequence[Sequence[float]]) -> Marker:
        values, vectors = np.linalg.eigh(np.asarray(cov, dtype=float).reshape(3, 3))
        flipped = vectors[:, ::-1].copy()
        if np.linalg.det(flipped) < 0:
            flipped[:, 2] = -flipped[:, 2]
        _, g, b, _ = self.template.color
        self.template = replace(
            self.template,
            type=MarkerType.SPHERE,
            color=(0.0, g, b, 0.5),
            position=(float(mean[0]), float(mean[1]), float(mean[2])),
            orientation=_quaternion_from_matrix(flipped),
            scale=(math.sqrt(values[2]), math.sqrt(values[1]), math.sqrt(values[0])),
            id=self._next_id(),
        )
        self.pending.append(self.template)
        return self.template

    def set_scale(self, scale: float) -> None:
        s = float(scale)
        self.template = replace(self.template, scale=(s, s, s))

    def set_color(self, r: float, g: float, b: float, a: float = 1.0) -> None:
        self.template = replace(self.template, color=(float(r), float(g), float(b), float(a)))

    def add_marker(self, marker: Marker) -> Marker:
        """Queue a ready-made marker, filling in a missing id and namespace."""
        if marker.id == 0:
            marker = replace(marker, id=self._next_id())
        if not marker.ns:
            marker = replace(marker, ns=self.template.ns)
        self.pending.append(marker)
        return marker

    def add_markers(self, markers: Iterable[Marker]) -> None:
        for marker in markers:
            self.add_marker(marker)

    def send_and_reset(self) -> list[Marker]:
        """Publish the pending batch, remember it and restart ids at zero."""
        batch = list(self.pending)
        self.all_markers.extend(batch)
        self._emit(batch)
        self.pending.clear()
        self.max_id = max(self.max_id, self.id_counter)
        self.id_counter = 0
        return batch

    def set_time(self, stamp: float) -> None:
        self.template = replace(self.template, stamp=float(stamp))

    def reset(self) -> list[Marker]:
        """Publish deletions for every marker sent so far and forget them."""
        deletions = [replace(m, action=MarkerAction.DELETE) for m in self.all_markers]
        self._emit(deletions)
        self.all_markers.clear()
        return deletions