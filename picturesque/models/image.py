from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable
import numpy as np


@dataclass(frozen=True)
class Rectangle:
    """
    Integer rectangle, min corner inclusive, max corner exclusive.
    """
    x0: int
    y0: int
    x1: int
    y1: int

    def __post_init__(self):
        if self.x0 > self.x1 or self.y0 > self.y1:
            raise ValueError(f"Invalid rectangle ({self.x0},{self.y0})-({self.x1},{self.y1})")

    @classmethod
    def from_xywh(cls, x: int, y: int, width: int, height: int) -> Rectangle:
        return cls(x, y, x + width, y + height)

    @property
    def width(self) -> int:
        return self.x1 - self.x0

    @property
    def height(self) -> int:
        return self.y1 - self.y0

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        return self.area == 0

    def contains(self, other: Rectangle) -> bool:
        return (self.x0 <= other.x0 and self.y0 <= other.y0
                and other.x1 <= self.x1 and other.y1 <= self.y1)

    def intersect(self, other: Rectangle) -> Rectangle:
        """Largest rectangle inside both; an empty one at our min corner if they are disjoint."""
        x0, y0 = max(self.x0, other.x0), max(self.y0, other.y0)
        x1, y1 = min(self.x1, other.x1), min(self.y1, other.y1)
        if x0 >= x1 or y0 >= y1:
            return Rectangle(self.x0, self.y0, self.x0, self.y0)
        return Rectangle(x0, y0, x1, y1)

    def translate(self, dx: int, dy: int) -> Rectangle:
        return Rectangle(self.x0 + dx, self.y0 + dy, self.x1 + dx, self.y1 + dy)


@runtime_checkable
class SubImager(Protocol):
    """Capability: the image can hand out a view restricted to a rectangle."""

    def sub_image(self, rect: Rectangle) -> "Image":
        ...


@dataclass
class Image:
    """
    Simple data object: uint8 pixels (+ optional source path for bookkeeping).

    `pixels` has shape (H, W) for grey or (H, W, C) for RGB / RGBA.
    `origin` is the absolute coordinate of pixels[0, 0]; it is (0, 0) for
    decoded images and the crop corner for sub-image views.
    """
    pixels: np.ndarray
    path: Path | None = None
    origin: tuple[int, int] = (0, 0)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def bounds(self) -> Rectangle:
        ox, oy = self.origin
        return Rectangle(ox, oy, ox + self.width, oy + self.height)

    def at(self, x: int, y: int):
        """Pixel at absolute coordinates (x, y)."""
        ox, oy = self.origin
        if not (ox <= x < ox + self.width and oy <= y < oy + self.height):
            raise IndexError(f"({x}, {y}) is outside {self.bounds}")
        return self.pixels[y - oy, x - ox]

    def sub_image(self, rect: Rectangle) -> Image:
        """
        View of the pixels inside `rect`, sharing storage with this image.
        Copy the result if it is going to be modified on its own.
        """
        r = self.bounds.intersect(rect)
        ox, oy = self.origin
        view = self.pixels[r.y0 - oy:r.y1 - oy, r.x0 - ox:r.x1 - ox]
        return Image(pixels=view, path=None, origin=(r.x0, r.y0))

    def copy(self) -> Image:
        return Image(pixels=self.pixels.copy(), path=self.path, origin=self.origin)
