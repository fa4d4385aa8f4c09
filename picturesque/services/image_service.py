from pathlib import Path
from typing import Union
import os
from dotenv import load_dotenv

from ..models.image import Image
from ..repositories.image_repository import ImageRepository

# Load environment variables
load_dotenv()


class ImageService:
    """I/O helpers.  No effect logic here."""
    def __init__(self, jpeg_quality: int = None):
        self.jpeg_quality = (jpeg_quality if jpeg_quality is not None
                             else int(os.getenv("JPEG_QUALITY") or "85"))
        self.image_repository = ImageRepository()

    def load(self, path: Union[str, Path]) -> Image:
        """Load a single image from disk into an Image object."""
        return self.image_repository.load(path)

    def save(self, image: Image, directory: Union[str, Path], filename: str) -> Path:
        """
        Save the image as `directory/filename`, overwriting any existing file.

        Returns:
            (Path): The path that was written.
        """
        return self.image_repository.save(image, Path(directory) / filename, quality=self.jpeg_quality)
