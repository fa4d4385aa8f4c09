from pathlib import Path
from typing import Union
from io import BytesIO
import logging
import os
import tempfile

import numpy as np
import cv2
from PIL import Image as PILImage

from ..models.image import Image
from ..errors import ImageIOError, ImageDecodeError, ImageEncodeError

logger = logging.getLogger(__name__)


class ImageRepository:
    """
    Handles file I/O for Image entities: decode from disk, encode to JPEG.
    """

    @staticmethod
    def load(path: Union[str, Path]) -> Image:
        path = Path(path)

        try:
            data = path.read_bytes()
        except OSError as err:
            raise ImageIOError(f"Cannot open {path}: {err}", path=path, phase="open") from err

        buf = np.frombuffer(data, dtype=np.uint8)
        arr = cv2.imdecode(buf, cv2.IMREAD_ANYCOLOR) if buf.size else None
        if arr is None:
            raise ImageDecodeError(f"Decoding the image failed: {path}", path=path, phase="decode")

        if arr.ndim == 3:
            arr = cv2.cvtColor(arr, cv2.COLOR_BGR2RGB)
        logger.debug(f"Loaded {path}: {arr.shape}")
        return Image(pixels=arr, path=path)

    @staticmethod
    def encode(image: Image, quality: int) -> bytes:
        """Serialise the pixels as JPEG bytes without touching the disk."""
        pixels = image.pixels
        if pixels.dtype != np.uint8 or pixels.size == 0:
            raise ImageEncodeError(
                f"Failed to encode the image as JPEG: need non-empty uint8 pixels, "
                f"got {pixels.dtype} {pixels.shape}",
                path=image.path, phase="encode",
            )
        # Views are usually not C-contiguous
        if not pixels.flags['C_CONTIGUOUS']:
            pixels = np.ascontiguousarray(pixels)

        buffer = BytesIO()
        try:
            pil_image = PILImage.fromarray(pixels)
            if pil_image.mode == "RGBA":
                pil_image = pil_image.convert("RGB")
            pil_image.save(buffer, format="JPEG", quality=quality)
        except (OSError, ValueError, TypeError) as err:
            raise ImageEncodeError(
                f"Failed to encode the image as JPEG: {err}", path=image.path, phase="encode"
            ) from err
        return buffer.getvalue()

    @classmethod
    def save(cls, image: Image, path: Union[str, Path], quality: int = 85) -> Path:
        """
        Encode and write atomically: a temp file in the target directory is
        renamed over `path`, so a failed write leaves no partial file.
        """
        path = Path(path)
        data = cls.encode(image, quality)

        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except OSError as err:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ImageIOError(f"Cannot create file {path}: {err}", path=path, phase="create") from err

        logger.debug(f"Saved {path} ({len(data)} bytes)")
        return path
