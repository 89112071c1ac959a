"""Planar rigid-body geometry and a model of a 2D laser range finder."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Sequence

__all__ = [
    "normalize_angle_pi",
    "deg2rad",
    "almost_equal",
    "Vector2D",
    "Pose",
    "Transform2D",
    "range_to_cartesian",
    "LaserProperties",
    "LaserScanner",
]


def normalize_angle_pi(angle: float) -> float:
    """Wrap an angle into the interval (-pi, pi]."""
    return math.atan2(math.sin(angle), math.cos(angle))


def deg2rad(deg: float) -> float:
    """Convert degrees to radians."""
    return deg * math.pi / 180.0


def almost_equal(a: float, b: float, epsilon: float = 1.0e-12) -> bool:
    """Return True when two numbers differ by less than ``epsilon``."""
    return abs(a - b) < epsilon


@dataclass(frozen=True)
class Vector2D:
    """A point or direction in the plane."""

    x: float = 0.0
    y: float = 0.0


@dataclass
class Pose:
    """Planar pose: heading and position."""

    theta: float = 0.0
    x: float = 0.0
    y: float = 0.0


class Transform2D:
    """A rigid transform in the plane: rotation by ``theta`` then an offset."""

    __slots__ = ("_x", "_y", "_cos", "_sin")

    def __init__(self, x: float = 0.0, y: float = 0.0, theta: float = 0.0) -> None:
        self._x = float(x)
        self._y = float(y)
        self._cos = math.cos(theta)
        self._sin = math.sin(theta)

    @classmethod
    def _from_parts(cls, x: float, y: float, cos_t: float, sin_t: float) -> "Transform2D":
        transform = cls.__new__(cls)
        transform._x = x
        transform._y = y
        transform._cos = cos_t
        transform._sin = sin_t
        return transform

    def __mul__(self, other: "Transform2D") -> "Transform2D":
        if not isinstance(other, Transform2D):
            return NotImplemented
        cos_t = self._cos * other._cos - self._sin * other._sin
        sin_t = self._sin * other._cos + self._cos * other._sin
        x = self._cos * other._x - self._sin * other._y + self._x
        y = self._sin * other._x + self._cos * other._y + self._y
        return Transform2D._from_parts(x, y, cos_t, sin_t)

    def __call__(self, point: Vector2D) -> Vector2D:
        return Vector2D(
            self._cos * point.x - self._sin * point.y + self._x,
            self._sin * point.x + self._cos * point.y + self._y,
        )

    def inv(self) -> "Transform2D":
        """Return the inverse transform."""
        x = -(self._cos * self._x + self._sin * self._y)
        y = -(-self._sin * self._x + self._cos * self._y)
        return Transform2D._from_parts(x, y, self._cos, -self._sin)

    def displacement(self) -> Pose:
        """Return the heading and position offset of the transform."""
        return Pose(math.atan2(self._sin, self._cos), self._x, self._y)

    def __repr__(self) -> str:
        pose = self.displacement()
        return f"Transform2D(x={pose.x!r}, y={pose.y!r}, theta={pose.theta!r})"


def range_to_cartesian(range_: float, beam_angle: float) -> Vector2D:
    """Convert a polar range measurement to Cartesian coordinates."""
    return Vector2D(range_ * math.cos(beam_angle), range_ * math.sin(beam_angle))


@dataclass
class LaserProperties:
    """Limits and noise-model parameters of a laser range finder."""

    beam_min: float = 0.0
    beam_max: float = 0.0
    beam_delta: float = 0.0
    range_min: float = 0.0
    range_max: float = 0.0
    z_hit: float = 0.25
    z_short: float = 0.25
    z_max: float = 0.25
    z_rand: float = 0.25
    sigma_hit: float = 1.0


class LaserScanner:
    """Models a 2D laser range finder mounted on a robot."""

    def __init__(self, props: LaserProperties, trs: Transform2D) -> None:
        self.z_hit = props.z_hit
        self.z_short = props.z_short
        self.z_max = props.z_max
        self.z_rand = props.z_rand
        self.sigma_hit = props.sigma_hit
        self._trs = trs
        self._beam_min = props.beam_min
        self._beam_max = props.beam_max
        self._beam_delta = props.beam_delta
        self._range_min = props.range_min
        self._range_max = props.range_max

    def _beam_angles(self) -> Iterator[float]:
        angle = self._beam_min
        while True:
            yield angle
            angle += self._beam_delta
            if self._beam_max < 0.0:
                if angle <= self._beam_max:
                    angle = self._beam_min
            elif angle >= self._beam_max:
                angle = self._beam_min

    def _is_valid(self, range_: float) -> bool:
        return self._range_min <= range_ < self._range_max

    def laser_end_points(self, beam_length: Sequence[float], pose: Transform2D) -> list[Vector2D]:
        """End points, in the map frame, of the beams within the range limits."""
        map_to_sensor = pose * self._trs
        return [
            map_to_sensor(range_to_cartesian(range_, angle))
            for range_, angle in zip(beam_length, self._beam_angles())
            if self._is_valid(range_)
        ]

    def number_valid_measurements(self, beam_length: Sequence[float]) -> int:
        """Number of ranges within the limits of the sensor."""
        return sum(1 for range_ in beam_length if self._is_valid(range_))