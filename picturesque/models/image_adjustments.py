from __future__ import annotations
from dataclasses import dataclass
import numpy as np
import cv2


def _split_alpha(pixels: np.ndarray):
    if pixels.ndim == 3 and pixels.shape[2] == 4:
        return np.ascontiguousarray(pixels[:, :, :3]), pixels[:, :, 3:]
    return np.ascontiguousarray(pixels), None


def _join_alpha(color: np.ndarray, alpha: np.ndarray | None) -> np.ndarray:
    if alpha is None:
        return color
    return np.concatenate([color, alpha], axis=2)


@dataclass(frozen=True)
class Saturation:
    """
    Value-object for a relative saturation change.
    amount = 0.5 means +50 %, -1.0 removes all colour.
    """
    amount: float = 0.5

    def apply_to_pixels(self, pixels: np.ndarray) -> np.ndarray:
        color, alpha = _split_alpha(pixels)
        if color.ndim == 2:
            return pixels.copy()

        # float HLS: H in [0,360), L and S in [0,1]
        hls = cv2.cvtColor(color.astype(np.float32) / 255.0, cv2.COLOR_RGB2HLS)
        hls[:, :, 2] = np.clip(hls[:, :, 2] * (1.0 + self.amount), 0.0, 1.0)
        rgb = cv2.cvtColor(hls, cv2.COLOR_HLS2RGB)
        out = np.clip(np.rint(rgb * 255.0), 0, 255).astype(np.uint8)
        return _join_alpha(out, alpha)


@dataclass(frozen=True)
class MultiplyBlend:
    """Image multiplied with itself, out = a * a / 255 per channel (alpha kept)."""

    def apply_to_pixels(self, pixels: np.ndarray) -> np.ndarray:
        color, alpha = _split_alpha(pixels)
        out = cv2.multiply(color, color, scale=1.0 / 255.0)
        return _join_alpha(out, alpha)


@dataclass(frozen=True)
class UnsharpMask:
    """
    Unsharp masking: in + (in - blur(in)) * amount.
    radius is the Gaussian sigma in pixels.
    """
    radius: float = 0.6
    amount: float = 1.2

    def apply_to_pixels(self, pixels: np.ndarray) -> np.ndarray:
        color, alpha = _split_alpha(pixels)
        blurred = cv2.GaussianBlur(color, (0, 0), sigmaX=self.radius, sigmaY=self.radius)
        out = cv2.addWeighted(color, 1.0 + self.amount, blurred, -self.amount, 0)
        return _join_alpha(out, alpha)
