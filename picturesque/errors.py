from __future__ import annotations
from pathlib import Path
from typing import Union


class PicturesqueError(Exception):
    """
    Base class for every failure raised by the pipeline.

    Carries the path and the phase (open, decode, create, encode, detect,
    crop, wiring) that triggered it so the caller can log a precise cause.
    """

    def __init__(self, message: str, *, path: Union[str, Path, None] = None, phase: str | None = None):
        super().__init__(message)
        self.path = Path(path) if path is not None else None
        self.phase = phase


class ImageIOError(PicturesqueError):
    """A file could not be opened, created or written."""


class ImageDecodeError(PicturesqueError):
    """The bytes read from disk are not a decodable image."""


class ImageEncodeError(PicturesqueError):
    """The image could not be serialised to the output format."""


class RegionDetectionError(PicturesqueError):
    """The region detector could not produce a crop rectangle."""


class UnsupportedViewError(PicturesqueError):
    """The image cannot yield a restricted view of its pixels."""


class PipelineConfigError(PicturesqueError):
    """A pipeline step asks for an input no earlier step produced."""
