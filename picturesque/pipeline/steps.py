"""
The picture pipeline as an explicit, ordered list of named steps.

Each step reads images by name from what earlier steps produced and stores
its own result under `output`; `save_as` names the file written for it.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, List, Mapping, Tuple, Union
import os

from dotenv import load_dotenv

from ..errors import PipelineConfigError
from ..models.image import Image
from ..services.image_service import ImageService
from ..services.region_service import RegionService
from ..services.effect_service import EffectService
from ..services.primitive_service import PrimitiveService

# Load environment variables
load_dotenv()
CROP_WIDTH = int(os.getenv("CROP_WIDTH") or "1000")
CROP_HEIGHT = int(os.getenv("CROP_HEIGHT") or "1000")

CROPPED_FILE = "cropped.jpg"
SATURATED_FILE = "saturated.jpg"
MULTIPLIED_FILE = "multiplied.jpg"
SHARPENED_FILE = "sharpened.jpg"
PRIMITIVE_FILE = "primitive.jpg"


@dataclass(frozen=True)
class PipelineStep:
    name: str
    inputs: Tuple[str, ...]
    output: str
    run: Callable[..., Image]
    save_as: str | None = None


def build_default_steps(
    input_path: Union[str, Path],
    output_dir: Union[str, Path],
    *,
    image_service: ImageService,
    region_service: RegionService,
    effect_service: EffectService,
    primitive_service: PrimitiveService,
    width: int = CROP_WIDTH,
    height: int = CROP_HEIGHT,
    sources: Mapping[str, str] | None = None,
) -> List[PipelineStep]:
    """
    load -> crop -> reload -> saturate / multiply / sharpen / primitive.

    The crop is saved and read back so the effects work on an independent
    decode instead of a view into the original.  `sources` rewires the single
    input of a step by step name, e.g. {"sharpen": "reloaded"}.
    """
    output_dir = Path(output_dir)
    steps = [
        PipelineStep("load", (), "original", lambda: image_service.load(input_path)),
        PipelineStep("crop", ("original",), "cropped",
                     lambda img: region_service.crop(img, width, height), CROPPED_FILE),
        PipelineStep("reload", (), "reloaded", lambda: image_service.load(output_dir / CROPPED_FILE)),
        PipelineStep("saturate", ("reloaded",), "saturated", effect_service.saturate, SATURATED_FILE),
        PipelineStep("multiply", ("reloaded",), "multiplied", effect_service.multiply_self, MULTIPLIED_FILE),
        PipelineStep("sharpen", ("saturated",), "sharpened", effect_service.sharpen, SHARPENED_FILE),
        PipelineStep("primitive", ("saturated",), "primitive",
                     primitive_service.primitive_approximate, PRIMITIVE_FILE),
    ]
    return rewire(steps, sources or {})


def rewire(steps: List[PipelineStep], sources: Mapping[str, str]) -> List[PipelineStep]:
    """Replace the input of single-input steps named in `sources`."""
    names = {s.name for s in steps}
    unknown = set(sources) - names
    if unknown:
        raise PipelineConfigError(f"Unknown pipeline step(s): {sorted(unknown)}", phase="wiring")

    rewired = []
    for step in steps:
        if step.name in sources:
            if len(step.inputs) != 1:
                raise PipelineConfigError(
                    f"Step '{step.name}' takes {len(step.inputs)} inputs and cannot be rewired", phase="wiring"
                )
            step = replace(step, inputs=(sources[step.name],))
        rewired.append(step)
    return rewired
