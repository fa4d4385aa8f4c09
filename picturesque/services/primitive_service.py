from __future__ import annotations

import logging
import os
import time

import numpy as np
import cv2
from tqdm import trange
from dotenv import load_dotenv

from ..models.image import Image
from ..models.primitive_model import PrimitiveModel
from ..models.shapes import ShapeType

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _env(name: str, default: str, cast=int):
    """Setting from the environment; unset or blank falls back to `default`, blank default means None."""
    value = os.getenv(name) or default
    return cast(value) if value != "" else None


class PrimitiveService:
    """
    Turns an image into "primitive art": the picture is shrunk to a small
    working size and rebuilt from `steps` shapes, then rendered large.

    Without an explicit `rng` (or PRIMITIVE_SEED) every call is seeded from
    the clock, so two runs over the same image give different pictures.
    """

    def __init__(self,
                 steps: int = None,
                 shape_type: ShapeType = None,
                 alpha: int = None,
                 repeat: int = None,
                 output_size: int = None,
                 working_size: int = None,
                 workers: int = None,
                 candidates: int = None,
                 climbs: int = None,
                 age: int = None,
                 seed: int = None):
        self.steps = steps if steps is not None else _env("PRIMITIVE_STEPS", "100")
        self.shape_type = ShapeType(shape_type if shape_type is not None
                                    else _env("PRIMITIVE_SHAPE", str(int(ShapeType.ROTATED_RECTANGLE))))
        self.alpha = alpha if alpha is not None else _env("PRIMITIVE_ALPHA", "128")
        self.repeat = repeat if repeat is not None else _env("PRIMITIVE_REPEAT", "0")
        self.output_size = output_size if output_size is not None else _env("PRIMITIVE_OUTPUT_SIZE", "1024")
        self.working_size = working_size if working_size is not None else _env("PRIMITIVE_WORKING_SIZE", "256")
        self.workers = workers if workers is not None else (_env("PRIMITIVE_WORKERS", "") or os.cpu_count() or 1)
        self.candidates = candidates if candidates is not None else _env("PRIMITIVE_CANDIDATES", "200")
        self.climbs = climbs if climbs is not None else _env("PRIMITIVE_CLIMBS", "4")
        self.age = age if age is not None else _env("PRIMITIVE_AGE", "50")
        self.seed = seed if seed is not None else _env("PRIMITIVE_SEED", "")

    # ─── Helpers ───────────────────────────────────────────────────
    @staticmethod
    def _to_rgb(pixels: np.ndarray) -> np.ndarray:
        pixels = np.ascontiguousarray(pixels)
        if pixels.ndim == 2:
            return cv2.cvtColor(pixels, cv2.COLOR_GRAY2RGB)
        if pixels.shape[2] == 4:
            return cv2.cvtColor(pixels, cv2.COLOR_RGBA2RGB)
        return pixels

    def downsample(self, img: Image, working_size: int = None) -> np.ndarray:
        """RGB pixels resized so the longer side equals `working_size`."""
        working_size = self.working_size if working_size is None else working_size
        rgb = self._to_rgb(img.pixels)
        h, w = rgb.shape[:2]
        scale = working_size / max(w, h)
        size = (max(1, round(w * scale)), max(1, round(h * scale)))
        interpolation = cv2.INTER_AREA if scale < 1 else cv2.INTER_LINEAR
        return cv2.resize(rgb, size, interpolation=interpolation)

    @staticmethod
    def average_color(pixels: np.ndarray) -> np.ndarray:
        return np.rint(pixels.reshape(-1, 3).mean(axis=0))

    def make_rng(self) -> np.random.Generator:
        seed = self.seed if self.seed is not None else time.time_ns()
        logger.info(f"Primitive seed: {seed}")
        return np.random.default_rng(seed)

    # ─── Public API ────────────────────────────────────────────────
    def build_model(self, img: Image, *, output_size: int = None, working_size: int = None,
                    workers: int = None, rng: np.random.Generator = None) -> PrimitiveModel:
        target = self.downsample(img, working_size)
        return PrimitiveModel(
            target,
            self.average_color(target),
            output_size=self.output_size if output_size is None else output_size,
            workers=self.workers if workers is None else workers,
            rng=rng if rng is not None else self.make_rng(),
            candidates=self.candidates,
            climbs=self.climbs,
            age=self.age,
        )

    def primitive_approximate(
        self,
        img: Image,
        steps: int = None,
        shape_type: ShapeType = None,
        alpha: int = None,
        repeat: int = None,
        output_size: int = None,
        *,
        working_size: int = None,
        workers: int = None,
        rng: np.random.Generator = None,
        progress: bool = True,
    ) -> Image:
        steps = self.steps if steps is None else steps
        shape_type = self.shape_type if shape_type is None else ShapeType(shape_type)
        alpha = self.alpha if alpha is None else alpha
        repeat = self.repeat if repeat is None else repeat

        model = self.build_model(img, output_size=output_size, working_size=working_size,
                                 workers=workers, rng=rng)
        logger.info(
            f"Primitive: {steps} x {shape_type.name.lower()} on {model.width}x{model.height}, "
            f"{model.workers} worker(s)"
        )
        for _ in trange(steps, desc="primitive", ncols=70, disable=not progress):
            model.step(shape_type, alpha, repeat)

        logger.info(f"Primitive: {len(model.shapes)} shapes, score {model.scores[0]:.4f} -> {model.score:.4f}")
        return Image(model.render())
