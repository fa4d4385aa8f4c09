import logging
import os
from dotenv import load_dotenv

from ..errors import RegionDetectionError, UnsupportedViewError
from ..models.crop_engine import SmartCropEngine
from ..models.image import Image, Rectangle, SubImager

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class RegionService:
    """
    Finds the most interesting region of an image and crops to it.
    Cropping returns a view: the result shares pixels with the source.
    """

    def __init__(self, engine: SmartCropEngine = None, face_boost: bool = None):
        if face_boost is None:
            face_boost = os.getenv("FACE_BOOST", "false").lower() in ("1", "true", "yes")
        self.engine = engine or SmartCropEngine(face_boost=face_boost)

    @staticmethod
    def supports_view(img) -> bool:
        return isinstance(img, SubImager)

    def detect_region(self, img: Image, width: int, height: int) -> Rectangle:
        """
        Ask the crop engine for the best width x height window.

        Returns:
            (Rectangle): Non-empty, contained in `img.bounds` (absolute coordinates).
        """
        try:
            candidate = self.engine.find_best_crop(img.pixels, width, height)
        except RegionDetectionError as err:
            raise RegionDetectionError(str(err), path=img.path, phase=err.phase) from err
        ox, oy = img.origin
        rect = candidate.rect.translate(ox, oy)
        if rect.is_empty or not img.bounds.contains(rect):
            raise RegionDetectionError(
                f"Smartcrop failed: {rect} is not a valid crop of {img.bounds}",
                path=img.path, phase="detect",
            )
        logger.info(f"Smartcrop picked {rect.width}x{rect.height} at ({rect.x0},{rect.y0}), score={candidate.score:.4f}")
        return rect

    def crop_to_region(self, img, rect: Rectangle) -> Image:
        """
        Restrict `img` to `rect` without copying pixels.

        Raises:
            UnsupportedViewError: If the image cannot hand out sub-image views.
        """
        if not self.supports_view(img):
            raise UnsupportedViewError(
                f"crop(): {type(img).__name__} does not support sub_image()",
                path=getattr(img, "path", None), phase="crop",
            )
        return img.sub_image(rect)

    def crop(self, img: Image, width: int, height: int) -> Image:
        """Detect the best region and crop to it."""
        return self.crop_to_region(img, self.detect_region(img, width, height))
