"""
Geometric primitives used to approximate an image.

Every shape knows how to create a random instance, how to produce a slightly
changed copy of itself (for hill climbing) and how to rasterise itself into a
small coverage mask at any scale.  Coordinates are floats in working-image
pixels; rendering at a larger size just multiplies them by `scale`.
"""
from __future__ import annotations
from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Tuple
import math

import numpy as np
import cv2

# How far a shape's points may stray outside the canvas.
MARGIN = 16


class ShapeType(IntEnum):
    COMBO = 0
    TRIANGLE = 1
    RECTANGLE = 2
    ELLIPSE = 3
    CIRCLE = 4
    ROTATED_RECTANGLE = 5
    QUADRATIC = 6
    ROTATED_ELLIPSE = 7
    POLYGON = 8


def _clamp(v: float, lo: float, hi: float) -> float:
    return float(min(max(v, lo), hi))


def _ellipse_points(x, y, rx, ry, angle_deg, n: int = 48) -> np.ndarray:
    t = np.linspace(0.0, 2.0 * math.pi, n, endpoint=False)
    ex, ey = rx * np.cos(t), ry * np.sin(t)
    a = math.radians(angle_deg)
    ca, sa = math.cos(a), math.sin(a)
    return np.stack([x + ex * ca - ey * sa, y + ex * sa + ey * ca], axis=1)


class Shape:
    """Base class; subclasses provide points(), random() and mutate()."""

    def points(self) -> np.ndarray:
        raise NotImplementedError

    def stroke_width(self, scale: float) -> int:
        """0 for filled shapes, line thickness in output pixels otherwise."""
        return 0

    @classmethod
    def random(cls, rng: np.random.Generator, width: int, height: int) -> Shape:
        raise NotImplementedError

    def mutate(self, rng: np.random.Generator, width: int, height: int) -> Shape:
        raise NotImplementedError

    def mask(self, width: int, height: int, scale: float = 1.0, antialias: bool = False):
        """
        Rasterise into the bounding box clipped to a width x height canvas.

        Returns:
            (y0, x0, mask) with a uint8 mask holding 1 inside the shape, or
            0-255 coverage when `antialias` is set; None if nothing is visible.
        """
        pts = self.points() * scale
        thickness = self.stroke_width(scale)
        pad = thickness + 1
        x0 = max(0, int(math.floor(pts[:, 0].min())) - pad)
        y0 = max(0, int(math.floor(pts[:, 1].min())) - pad)
        x1 = min(width, int(math.ceil(pts[:, 0].max())) + pad + 1)
        y1 = min(height, int(math.ceil(pts[:, 1].max())) + pad + 1)
        if x0 >= x1 or y0 >= y1:
            return None

        local = np.rint(pts - (x0, y0)).astype(np.int32)
        m = np.zeros((y1 - y0, x1 - x0), np.uint8)
        value = 255 if antialias else 1
        line_type = cv2.LINE_AA if antialias else cv2.LINE_8
        if thickness:
            cv2.polylines(m, [local], False, value, thickness=thickness, lineType=line_type)
        else:
            cv2.fillPoly(m, [local], value, lineType=line_type)
        return y0, x0, m


@dataclass(frozen=True)
class Triangle(Shape):
    p: Tuple[Tuple[float, float], ...]

    def points(self) -> np.ndarray:
        return np.array(self.p, dtype=np.float64)

    @classmethod
    def random(cls, rng, width, height):
        x1, y1 = rng.uniform(0, width), rng.uniform(0, height)
        x2, y2 = x1 + rng.uniform(-15, 16), y1 + rng.uniform(-15, 16)
        x3, y3 = x1 + rng.uniform(-15, 16), y1 + rng.uniform(-15, 16)
        return cls(((float(x1), float(y1)), (float(x2), float(y2)), (float(x3), float(y3))))

    def mutate(self, rng, width, height):
        p = list(self.p)
        i = int(rng.integers(len(p)))
        dx, dy = rng.normal(0, 16, 2)
        p[i] = (_clamp(p[i][0] + dx, -MARGIN, width - 1 + MARGIN),
                _clamp(p[i][1] + dy, -MARGIN, height - 1 + MARGIN))
        return replace(self, p=tuple(p))


@dataclass(frozen=True)
class Polygon(Triangle):
    """Four free vertices; self-intersecting outlines are filled even-odd by OpenCV."""

    @classmethod
    def random(cls, rng, width, height):
        x, y = rng.uniform(0, width), rng.uniform(0, height)
        offsets = rng.uniform(-16, 16, (4, 2))
        return cls(tuple((float(x + dx), float(y + dy)) for dx, dy in offsets))


@dataclass(frozen=True)
class Rectangle(Shape):
    x1: float
    y1: float
    x2: float
    y2: float

    def points(self) -> np.ndarray:
        xa, xb = sorted((self.x1, self.x2))
        ya, yb = sorted((self.y1, self.y2))
        return np.array([(xa, ya), (xb, ya), (xb, yb), (xa, yb)], dtype=np.float64)

    @classmethod
    def random(cls, rng, width, height):
        x1, y1 = rng.uniform(0, width), rng.uniform(0, height)
        x2 = _clamp(x1 + rng.integers(1, 33), 0, width - 1)
        y2 = _clamp(y1 + rng.integers(1, 33), 0, height - 1)
        return cls(float(x1), float(y1), x2, y2)

    def mutate(self, rng, width, height):
        dx, dy = rng.normal(0, 16, 2)
        if rng.integers(2) == 0:
            return replace(self, x1=_clamp(self.x1 + dx, 0, width - 1), y1=_clamp(self.y1 + dy, 0, height - 1))
        return replace(self, x2=_clamp(self.x2 + dx, 0, width - 1), y2=_clamp(self.y2 + dy, 0, height - 1))


@dataclass(frozen=True)
class RotatedRectangle(Shape):
    x: float
    y: float
    sx: float
    sy: float
    angle: float

    def points(self) -> np.ndarray:
        hx, hy = self.sx / 2.0, self.sy / 2.0
        a = math.radians(self.angle)
        ca, sa = math.cos(a), math.sin(a)
        corners = [(-hx, -hy), (hx, -hy), (hx, hy), (-hx, hy)]
        return np.array([(self.x + cx * ca - cy * sa, self.y + cx * sa + cy * ca) for cx, cy in corners])

    @classmethod
    def random(cls, rng, width, height):
        return cls(float(rng.uniform(0, width)), float(rng.uniform(0, height)),
                   float(rng.integers(1, 33)), float(rng.integers(1, 33)), float(rng.integers(0, 360)))

    def mutate(self, rng, width, height):
        choice = int(rng.integers(3))
        if choice == 0:
            dx, dy = rng.normal(0, 16, 2)
            return replace(self, x=_clamp(self.x + dx, 0, width - 1), y=_clamp(self.y + dy, 0, height - 1))
        if choice == 1:
            dx, dy = rng.normal(0, 16, 2)
            return replace(self, sx=_clamp(self.sx + dx, 1, width - 1), sy=_clamp(self.sy + dy, 1, height - 1))
        return replace(self, angle=float(self.angle + rng.normal(0, 32)))


@dataclass(frozen=True)
class Ellipse(Shape):
    x: float
    y: float
    rx: float
    ry: float

    def points(self) -> np.ndarray:
        return _ellipse_points(self.x, self.y, self.rx, self.ry, 0.0)

    @classmethod
    def random(cls, rng, width, height):
        return cls(float(rng.uniform(0, width)), float(rng.uniform(0, height)),
                   float(rng.integers(1, 33)), float(rng.integers(1, 33)))

    def mutate(self, rng, width, height):
        choice = int(rng.integers(3))
        if choice == 0:
            dx, dy = rng.normal(0, 16, 2)
            return replace(self, x=_clamp(self.x + dx, 0, width - 1), y=_clamp(self.y + dy, 0, height - 1))
        if choice == 1:
            return replace(self, rx=_clamp(self.rx + rng.normal(0, 16), 1, width - 1))
        return replace(self, ry=_clamp(self.ry + rng.normal(0, 16), 1, height - 1))


@dataclass(frozen=True)
class Circle(Ellipse):

    @classmethod
    def random(cls, rng, width, height):
        r = float(rng.integers(1, 33))
        return cls(float(rng.uniform(0, width)), float(rng.uniform(0, height)), r, r)

    def mutate(self, rng, width, height):
        if rng.integers(2) == 0:
            dx, dy = rng.normal(0, 16, 2)
            return replace(self, x=_clamp(self.x + dx, 0, width - 1), y=_clamp(self.y + dy, 0, height - 1))
        r = _clamp(self.rx + rng.normal(0, 16), 1, min(width, height) - 1)
        return replace(self, rx=r, ry=r)


@dataclass(frozen=True)
class RotatedEllipse(Shape):
    x: float
    y: float
    rx: float
    ry: float
    angle: float

    def points(self) -> np.ndarray:
        return _ellipse_points(self.x, self.y, self.rx, self.ry, self.angle)

    @classmethod
    def random(cls, rng, width, height):
        return cls(float(rng.uniform(0, width)), float(rng.uniform(0, height)),
                   float(rng.uniform(1, 33)), float(rng.uniform(1, 33)), float(rng.uniform(0, 360)))

    def mutate(self, rng, width, height):
        choice = int(rng.integers(3))
        if choice == 0:
            dx, dy = rng.normal(0, 16, 2)
            return replace(self, x=_clamp(self.x + dx, 0, width - 1), y=_clamp(self.y + dy, 0, height - 1))
        if choice == 1:
            dx, dy = rng.normal(0, 16, 2)
            return replace(self, rx=_clamp(self.rx + dx, 1, width - 1), ry=_clamp(self.ry + dy, 1, height - 1))
        return replace(self, angle=float(self.angle + rng.normal(0, 32)))


@dataclass(frozen=True)
class Quadratic(Shape):
    """Quadratic Bezier stroke through p1, bent towards control point p2, ending at p3."""
    p: Tuple[Tuple[float, float], ...]
    width: float = 0.5

    def points(self) -> np.ndarray:
        (x1, y1), (x2, y2), (x3, y3) = self.p
        t = np.linspace(0.0, 1.0, 17)[:, None]
        p1, p2, p3 = np.array([x1, y1]), np.array([x2, y2]), np.array([x3, y3])
        return (1 - t) ** 2 * p1 + 2 * (1 - t) * t * p2 + t ** 2 * p3

    def stroke_width(self, scale: float) -> int:
        return max(1, int(round(self.width * scale)))

    @classmethod
    def random(cls, rng, width, height):
        x1, y1 = rng.uniform(0, width), rng.uniform(0, height)
        x2, y2 = x1 + rng.uniform(-20, 20), y1 + rng.uniform(-20, 20)
        x3, y3 = x2 + rng.uniform(-20, 20), y2 + rng.uniform(-20, 20)
        return cls(((float(x1), float(y1)), (float(x2), float(y2)), (float(x3), float(y3))))

    def mutate(self, rng, width, height):
        choice = int(rng.integers(4))
        if choice == 3:
            return replace(self, width=_clamp(self.width + rng.normal(), 0.5, 16))
        p = list(self.p)
        dx, dy = rng.normal(0, 16, 2)
        p[choice] = (_clamp(p[choice][0] + dx, -MARGIN, width - 1 + MARGIN),
                     _clamp(p[choice][1] + dy, -MARGIN, height - 1 + MARGIN))
        return replace(self, p=tuple(p))


SHAPE_CLASSES = {
    ShapeType.TRIANGLE: Triangle,
    ShapeType.RECTANGLE: Rectangle,
    ShapeType.ELLIPSE: Ellipse,
    ShapeType.CIRCLE: Circle,
    ShapeType.ROTATED_RECTANGLE: RotatedRectangle,
    ShapeType.QUADRATIC: Quadratic,
    ShapeType.ROTATED_ELLIPSE: RotatedEllipse,
    ShapeType.POLYGON: Polygon,
}


def random_shape(shape_type: ShapeType, rng: np.random.Generator, width: int, height: int) -> Shape:
    """New random shape; COMBO picks one of the concrete kinds at random."""
    shape_type = ShapeType(shape_type)
    if shape_type == ShapeType.COMBO:
        shape_type = ShapeType(int(rng.integers(1, len(ShapeType))))
    return SHAPE_CLASSES[shape_type].random(rng, width, height)
