import cv2
import numpy as np
import pytest

from picturesque.models.image import Image
from picturesque.services.image_service import ImageService
from picturesque.services.primitive_service import PrimitiveService


def make_photo(width: int, height: int, seed: int = 0) -> np.ndarray:
    """Smooth sky-ish gradient with one busy, colourful subject."""
    rng = np.random.default_rng(seed)
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    pixels = np.empty((height, width, 3), np.uint8)
    pixels[:, :, 0] = 120 + 60 * xs / width
    pixels[:, :, 1] = 150 + 40 * ys / height
    pixels[:, :, 2] = 190
    cx, cy, r = int(width * 0.7), int(height * 0.45), max(4, min(width, height) // 6)
    cv2.circle(pixels, (cx, cy), r, (200, 40, 30), -1)
    noise = rng.integers(0, 255, (2 * r, 2 * r, 3), dtype=np.uint8)
    y0, x0 = max(0, cy - r), max(0, cx - r)
    patch = pixels[y0:cy + r, x0:cx + r]
    patch[:] = (patch.astype(np.uint16) + noise[:patch.shape[0], :patch.shape[1]]) // 2
    return pixels


@pytest.fixture
def photo() -> Image:
    return Image(make_photo(320, 240))


@pytest.fixture
def photo_file(tmp_path):
    path = tmp_path / "original.jpg"
    ImageService(jpeg_quality=90).save(Image(make_photo(400, 300)), tmp_path, path.name)
    return path


@pytest.fixture
def fast_primitive_service() -> PrimitiveService:
    return PrimitiveService(
        steps=4,
        output_size=64,
        working_size=32,
        workers=2,
        candidates=16,
        climbs=2,
        age=5,
        seed=7,
    )
