"""Quaternion helpers and the IMU attitude / pose fusion that turn sensor messages into transforms."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

Vector3 = tuple[float, float, float]


@dataclass(frozen=True)
class Quaternion:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0

    def conjugate(self) -> "Quaternion":
        return Quaternion(-self.x, -self.y, -self.z, self.w)


def quaternion_from_rpy(roll: float, pitch: float, yaw: float) -> Quaternion:
    """Quaternion for a fixed-axis roll, pitch, yaw rotation."""
    hr, hp, hy = roll * 0.5, pitch * 0.5, yaw * 0.5
    cr, sr = math.cos(hr), math.sin(hr)
    cp, sp = math.cos(hp), math.sin(hp)
    cy, sy = math.cos(hy), math.sin(hy)
    return Quaternion(
        x=sr * cp * cy - cr * sp * sy,
        y=cr * sp * cy + sr * cp * sy,
        z=cr * cp * sy - sr * sp * cy,
        w=cr * cp * cy + sr * sp * sy,
    )


def _matrix(q: Quaternion) -> list[list[float]]:
    d = q.x * q.x + q.y * q.y + q.z * q.z + q.w * q.w
    if d == 0.0:
        raise ValueError("zero-length quaternion")
    s = 2.0 / d
    xs, ys, zs = q.x * s, q.y * s, q.z * s
    wx, wy, wz = q.w * xs, q.w * ys, q.w * zs
    xx, xy, xz = q.x * xs, q.x * ys, q.x * zs
    yy, yz, zz = q.y * ys, q.y * zs, q.z * zs
    return [
        [1.0 - (yy + zz), xy - wz, xz + wy],
        [xy + wz, 1.0 - (xx + zz), yz - wx],
        [xz - wy, yz + wx, 1.0 - (xx + yy)],
    ]


def quaternion_to_rpy(q: Quaternion) -> tuple[float, float, float]:
    """Roll, pitch and yaw of a quaternion, yaw being zero at gimbal lock."""
    m = _matrix(q)
    if abs(m[2][0]) >= 1.0:
        yaw = 0.0
        if m[2][0] < 0:
            pitch = math.pi / 2.0
            roll = math.atan2(m[0][1], m[0][2])
        else:
            pitch = -math.pi / 2.0
            roll = math.atan2(-m[0][1], -m[0][2])
        return roll, pitch, yaw
    pitch = -math.asin(m[2][0])
    cp = math.cos(pitch)
    roll = math.atan2(m[2][1] / cp, m[2][2] / cp)
    yaw = math.atan2(m[1][0] / cp, m[0][0] / cp)
    return roll, pitch, yaw


def rotate_vector(q: Quaternion, v: Sequence[float]) -> Vector3:
    m = _matrix(q)
    x, y, z = (float(c) for c in v)
    return (
        m[0][0] * x + m[0][1] * y + m[0][2] * z,
        m[1][0] * x + m[1][1] * y + m[1][2] * z,
        m[2][0] * x + m[2][1] * y + m[2][2] * z,
    )


@dataclass(frozen=True)
class Transform:
    rotation: Quaternion = field(default_factory=Quaternion)
    origin: Vector3 = (0.0, 0.0, 0.0)

    def apply(self, point: Sequence[float]) -> Vector3:
        rx, ry, rz = rotate_vector(self.rotation, point)
        ox, oy, oz = self.origin
        return (rx + ox, ry + oy, rz + oz)


@dataclass(frozen=True)
class StampedTransform:
    transform: Transform
    stamp: float
    frame_id: str
    child_frame_id: str


@dataclass(frozen=True)
class Imu:
    orientation: Quaternion
    stamp: float = 0.0
    frame_id: str = ""


@dataclass(frozen=True)
class PoseStamped:
    position: Vector3
    orientation: Quaternion
    stamp: float = 0.0
    frame_id: str = ""


@dataclass(frozen=True)
class Odometry:
    position: Vector3
    orientation: Quaternion
    stamp: float = 0.0
    frame_id: str = "map"


TransformSink = Callable[[StampedTransform], None]
TransformsSink = Callable[[list[StampedTransform]], None]


class ImuAttitudeToTf:
    """Turns IMU orientation into a roll/pitch-only transform, dropping yaw."""

    def __init__(
        self,
        broadcast: Optional[TransformSink] = None,
        base_stabilized_frame: str = "base_stabilized",
        base_frame: str = "base_link",
    ) -> None:
        self._broadcast = broadcast
        self.base_stabilized_frame = base_stabilized_frame
        self.base_frame = base_frame

    def on_imu(self, imu: Imu) -> StampedTransform:
        roll, pitch, _ = quaternion_to_rpy(imu.orientation)
        stamped = StampedTransform(
            Transform(quaternion_from_rpy(roll, pitch, 0.0)),
            imu.stamp,
            self.base_stabilized_frame,
            self.base_frame,
        )
        if self._broadcast is not None:
            self._broadcast(stamped)
        return stamped


class PoseOrientationToImu:
    """Fuses IMU roll/pitch with the yaw of the latest pose.

    Each IMU message yields a fused IMU orientation; every fifth one, once a
    pose is known, also yields an odometry message.
    """

    ODOMETRY_EVERY = 5

    def __init__(
        self,
        broadcast: Optional[TransformsSink] = None,
        publish_imu: Optional[Callable[[Imu], None]] = None,
        publish_odometry: Optional[Callable[[Odometry], None]] = None,
        map_frame: str = "map",
        base_footprint_frame: str = "base_footprint",
        base_stabilized_frame: str = "base_stabilized",
        base_frame: str = "base_link",
    ) -> None:
        self._broadcast = broadcast
        self._publish_imu = publish_imu
        self._publish_odometry = publish_odometry
        self.map_frame = map_frame
        self.base_footprint_frame = base_footprint_frame
        self.base_stabilized_frame = base_stabilized_frame
        self.base_frame = base_frame
        self.callback_count = 0
        self.last_pose: Optional[PoseStamped] = None
        self.orientation = Quaternion()

    def _send(self, transforms: list[StampedTransform]) -> None:
        if self._broadcast is not None:
            self._broadcast(transforms)

    def on_imu(self, imu: Imu) -> Imu:
        self.callback_count += 1
        roll, pitch, _ = quaternion_to_rpy(imu.orientation)

        self._send([
            StampedTransform(
                Transform(quaternion_from_rpy(roll, pitch, 0.0)),
                imu.stamp,
                self.base_stabilized_frame,
                self.base_frame,
            )
        ])

        pose_yaw = 0.0
        if self.last_pose is not None:
            _, _, pose_yaw = quaternion_to_rpy(self.last_pose.orientation)

        self.orientation = quaternion_from_rpy(roll, pitch, pose_yaw)
        fused = Imu(self.orientation, imu.stamp, self.base_stabilized_frame)
        if self._publish_imu is not None:
            self._publish_imu(fused)

        if self.last_pose is not None and self.callback_count % self.ODOMETRY_EVERY == 0:
            odometry = Odometry(self.last_pose.position, fused.orientation, imu.stamp, "map")
            if self._publish_odometry is not None:
                self._publish_odometry(odometry)
        return fused

    def on_pose(self, pose: PoseStamped) -> list[StampedTransform]:
        position = tuple(float(c) for c in pose.position)
        transforms = [
            StampedTransform(
                Transform(pose.orientation, position),  # type: ignore[arg-type]
                pose.stamp,
                self.map_frame,
                self.base_footprint_frame,
            ),
            StampedTransform(
                Transform(),
                pose.stamp,
                self.base_footprint_frame,
                self.base_stabilized_frame,
            ),
        ]
        self._send(transforms)
        self.last_pose = pose
        return transforms