from __future__ import annotations
from dataclasses import dataclass
from typing import List, Tuple
import logging
import math

import numpy as np
import cv2

from .image import Rectangle
from ..errors import RegionDetectionError

logger = logging.getLogger(__name__)


@dataclass
class CropCandidate:
    rect: Rectangle  # in source pixel coordinates, origin (0, 0)
    score: float


class SmartCropEngine:
    """
    Content-aware crop finder in the spirit of smartcrop.

    The image is shrunk to an analysis resolution and turned into a single
    "interest" map (edge detail + saturated colour + optional face boost).
    Every window of the requested size is weighted by an importance mask
    that favours the centre and the rule-of-thirds lines and penalises the
    borders; interest outside the window counts negatively.
    """

    def __init__(
        self,
        *,
        detail_weight: float = 0.2,
        saturation_weight: float = 0.1,
        boost_weight: float = 100.0,
        saturation_threshold: float = 0.4,
        saturation_brightness_min: float = 0.05,
        saturation_brightness_max: float = 0.9,
        edge_radius: float = 0.4,
        edge_weight: float = -20.0,
        outside_importance: float = -0.5,
        rule_of_thirds: bool = True,
        analysis_size: int = 256,
        min_scale: float = 0.9,
        scale_step: float = 0.1,
        face_boost: bool = False,
    ):
        self.detail_weight = detail_weight
        self.saturation_weight = saturation_weight
        self.boost_weight = boost_weight
        self.saturation_threshold = saturation_threshold
        self.saturation_brightness_min = saturation_brightness_min
        self.saturation_brightness_max = saturation_brightness_max
        self.edge_radius = edge_radius
        self.edge_weight = edge_weight
        self.outside_importance = outside_importance
        self.rule_of_thirds = rule_of_thirds
        self.analysis_size = analysis_size
        self.min_scale = min_scale
        self.scale_step = scale_step
        self.face_boost = face_boost
        self._face_cascade = None
        self._face_cascade_checked = False

    # ---------- feature maps ----------
    @staticmethod
    def _to_rgb(pixels: np.ndarray) -> np.ndarray:
        if pixels.ndim == 2:
            return cv2.cvtColor(pixels, cv2.COLOR_GRAY2RGB)
        if pixels.shape[2] == 4:
            return cv2.cvtColor(pixels, cv2.COLOR_RGBA2RGB)
        return pixels

    def _detail_map(self, rgb: np.ndarray) -> np.ndarray:
        r, g, b = [rgb[:, :, i].astype(np.float32) for i in range(3)]
        lum = 0.2126 * r + 0.7152 * g + 0.0722 * b
        edges = np.abs(cv2.Laplacian(lum, cv2.CV_32F, ksize=1))
        return np.clip(edges, 0, 255) / 255.0

    def _saturation_map(self, rgb: np.ndarray) -> np.ndarray:
        hls = cv2.cvtColor(rgb.astype(np.float32) / 255.0, cv2.COLOR_RGB2HLS)
        light, sat = hls[:, :, 1], hls[:, :, 2]
        thr = self.saturation_threshold
        acceptable = (
            (sat > thr)
            & (light > self.saturation_brightness_min)
            & (light < self.saturation_brightness_max)
        )
        return np.where(acceptable, (sat - thr) / (1.0 - thr), 0.0).astype(np.float32)

    @staticmethod
    def _load_face_cascade():
        # OpenCV 5 moved CascadeClassifier out of the main module
        if not hasattr(cv2, "CascadeClassifier") or not hasattr(cv2, "data"):
            return None
        cascade = cv2.CascadeClassifier(cv2.data.haarcascades + "haarcascade_frontalface_default.xml")
        return None if cascade.empty() else cascade

    def _boost_map(self, rgb: np.ndarray) -> np.ndarray:
        boost = np.zeros(rgb.shape[:2], np.float32)
        if not self.face_boost:
            return boost
        if not self._face_cascade_checked:
            self._face_cascade = self._load_face_cascade()
            self._face_cascade_checked = True
            if self._face_cascade is None:
                logger.warning("Face cascade could not be loaded, face boost disabled")
        if self._face_cascade is None:
            return boost
        gray = cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)
        faces = self._face_cascade.detectMultiScale(gray, scaleFactor=1.1, minNeighbors=5)
        for (x, y, w, h) in faces:
            boost[y:y + h, x:x + w] = 1.0
        logger.debug(f"Face boost: {len(faces)} face(s)")
        return boost

    def interest_map(self, rgb: np.ndarray) -> np.ndarray:
        return (
            self._detail_map(rgb) * self.detail_weight
            + self._saturation_map(rgb) * self.saturation_weight
            + self._boost_map(rgb) * self.boost_weight
        ).astype(np.float32)

    # ---------- importance ----------
    @staticmethod
    def _thirds(x: np.ndarray) -> np.ndarray:
        x = (np.mod(x - 1.0 / 3.0 + 1.0, 2.0) * 0.5 - 0.5) * 16.0
        return np.maximum(1.0 - x * x, 0.0)

    def importance(self, width: int, height: int) -> np.ndarray:
        """Weight of every pixel inside a width x height window."""
        px = np.abs(0.5 - np.arange(width, dtype=np.float32) / width) * 2.0
        py = np.abs(0.5 - np.arange(height, dtype=np.float32) / height) * 2.0
        px, py = np.meshgrid(px, py)
        dx = np.maximum(px - 1.0 + self.edge_radius, 0.0)
        dy = np.maximum(py - 1.0 + self.edge_radius, 0.0)
        d = (dx * dx + dy * dy) * self.edge_weight
        s = 1.41 - np.sqrt(px * px + py * py)
        if self.rule_of_thirds:
            s = s + np.maximum(0.0, s + d + 0.5) * 1.2 * (self._thirds(px) + self._thirds(py))
        return (s + d).astype(np.float32)

    # ---------- search ----------
    @staticmethod
    def crop_size(img_w: int, img_h: int, width: int, height: int) -> Tuple[int, int]:
        """The target size if it fits, else the largest fit with the same aspect ratio."""
        if width <= img_w and height <= img_h:
            return width, height
        scale = min(img_w / width, img_h / height)
        return int(math.floor(width * scale)), int(math.floor(height * scale))

    def _scales(self) -> List[float]:
        scales, s = [], 1.0
        while s >= self.min_scale - 1e-9:
            scales.append(round(s, 6))
            s -= self.scale_step
        return scales

    def find_best_crop(self, pixels: np.ndarray, width: int, height: int) -> CropCandidate:
        """
        Args:
            pixels (np.ndarray): Source pixels, (H, W) or (H, W, C) uint8.
            width, height (int): Requested crop size in source pixels.

        Returns:
            (CropCandidate): Highest scoring window, fully inside the source.
        """
        if width <= 0 or height <= 0:
            raise RegionDetectionError(
                f"Smartcrop failed: target size must be positive, got {width}x{height}", phase="detect"
            )
        img_h, img_w = pixels.shape[:2]
        if img_w == 0 or img_h == 0:
            raise RegionDetectionError("Smartcrop failed: empty image", phase="detect")

        base_w, base_h = self.crop_size(img_w, img_h, width, height)
        if base_w <= 0 or base_h <= 0:
            raise RegionDetectionError(
                f"Smartcrop failed: no {width}x{height} shaped crop fits in {img_w}x{img_h}",
                phase="detect",
            )

        factor = min(1.0, self.analysis_size / max(img_w, img_h))
        rgb = self._to_rgb(np.ascontiguousarray(pixels))
        if factor < 1.0:
            size = (max(1, round(img_w * factor)), max(1, round(img_h * factor)))
            rgb = cv2.resize(rgb, size, interpolation=cv2.INTER_AREA)
        interest = self.interest_map(rgb)
        a_h, a_w = interest.shape
        total = float(interest.sum())

        best: CropCandidate | None = None
        for scale in self._scales():
            crop_w, crop_h = int(base_w * scale), int(base_h * scale)
            if crop_w <= 0 or crop_h <= 0:
                continue
            win_w = min(a_w, max(1, round(crop_w * factor)))
            win_h = min(a_h, max(1, round(crop_h * factor)))

            weighted = cv2.matchTemplate(interest, self.importance(win_w, win_h), cv2.TM_CCORR)
            inside = cv2.matchTemplate(interest, np.ones((win_h, win_w), np.float32), cv2.TM_CCORR)
            scores = (weighted + (total - inside) * self.outside_importance) / (win_w * win_h)

            ay, ax = np.unravel_index(int(np.argmax(scores)), scores.shape)
            x = min(max(0, round(int(ax) / factor)), img_w - crop_w)
            y = min(max(0, round(int(ay) / factor)), img_h - crop_h)
            candidate = CropCandidate(Rectangle.from_xywh(x, y, crop_w, crop_h), float(scores[ay, ax]))
            logger.debug(f"scale={scale} best={candidate}")
            if best is None or candidate.score > best.score:
                best = candidate

        if best is None:
            raise RegionDetectionError("Smartcrop failed: no candidate window", phase="detect")
        return best
