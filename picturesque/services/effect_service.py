from __future__ import annotations

import logging
import os
from dotenv import load_dotenv

from ..models.image import Image
from ..models.image_adjustments import Saturation, MultiplyBlend, UnsharpMask

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class EffectService:
    """
    Stateless colour, blend and sharpen effects.
    *   Every effect returns a *new* Image; inputs may be views shared with
        other images and are never written to.
    *   Defaults come from environment variables, call arguments win.
    """

    def __init__(self,
                 saturation_amount: float = None,
                 sharpen_radius: float = None,
                 sharpen_amount: float = None):
        self.saturation_amount = (saturation_amount if saturation_amount is not None
                                  else float(os.getenv("SATURATION_AMOUNT") or "0.5"))
        self.sharpen_radius = (sharpen_radius if sharpen_radius is not None
                               else float(os.getenv("SHARPEN_RADIUS") or "0.6"))
        self.sharpen_amount = (sharpen_amount if sharpen_amount is not None
                               else float(os.getenv("SHARPEN_AMOUNT") or "1.2"))

    def saturate(self, img: Image, amount: float = None) -> Image:
        amount = self.saturation_amount if amount is None else amount
        logger.debug(f"saturate amount={amount}")
        return Image(Saturation(amount).apply_to_pixels(img.pixels))

    def multiply_self(self, img: Image) -> Image:
        """Multiply the image with itself: darks get darker, colours more intense."""
        return Image(MultiplyBlend().apply_to_pixels(img.pixels))

    def sharpen(self, img: Image, radius: float = None, amount: float = None) -> Image:
        radius = self.sharpen_radius if radius is None else radius
        amount = self.sharpen_amount if amount is None else amount
        logger.debug(f"sharpen radius={radius} amount={amount}")
        return Image(UnsharpMask(radius, amount).apply_to_pixels(img.pixels))
