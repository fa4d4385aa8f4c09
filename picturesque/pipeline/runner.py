from pathlib import Path
from typing import Dict, List, Mapping, Union
import logging
import os

from dotenv import load_dotenv

from ..errors import PipelineConfigError
from ..models.image import Image
from ..services.image_service import ImageService
from ..services.region_service import RegionService
from ..services.effect_service import EffectService
from ..services.primitive_service import PrimitiveService
from .steps import PipelineStep, build_default_steps, CROP_WIDTH, CROP_HEIGHT

# Load environment variables
load_dotenv()
INPUT_IMAGE = os.getenv("INPUT_IMAGE") or "original.jpg"
OUTPUT_DIR = os.getenv("OUTPUT_DIR") or "."

logger = logging.getLogger(__name__)


def run_step(step: PipelineStep, images: Mapping[str, Image]) -> Image:
    """Run one step on already-produced images, looked up by name."""
    missing = [name for name in step.inputs if name not in images]
    if missing:
        raise PipelineConfigError(
            f"Step '{step.name}' needs {missing}, which no earlier step produced", phase="wiring"
        )
    return step.run(*(images[name] for name in step.inputs))


def run_pipeline(
    steps: List[PipelineStep],
    output_dir: Union[str, Path],
    *,
    image_service: ImageService = None,
) -> Dict[str, Image]:
    """
    Run `steps` in order, saving every output that has a file name.

    There is no recovery: the first exception aborts the run and files that
    were already written stay on disk.

    Returns:
        Dict[str, Image]: Every produced image by output name.
    """
    image_service = image_service or ImageService()
    images: Dict[str, Image] = {}

    for i, step in enumerate(steps, 1):
        logger.info(f"Step {i}/{len(steps)}: {step.name}")
        images[step.output] = run_step(step, images)
        if step.save_as:
            path = image_service.save(images[step.output], output_dir, step.save_as)
            logger.info(f"   saved {path}")

    return images


def process_image(
    input_path: Union[str, Path] = INPUT_IMAGE,
    output_dir: Union[str, Path] = OUTPUT_DIR,
    *,
    image_service: ImageService = None,
    region_service: RegionService = None,
    effect_service: EffectService = None,
    primitive_service: PrimitiveService = None,
    width: int = CROP_WIDTH,
    height: int = CROP_HEIGHT,
    sources: Mapping[str, str] = None,
) -> Dict[str, Image]:
    """Build the default picture pipeline and run it on one photo."""
    image_service = image_service or ImageService()
    steps = build_default_steps(
        input_path,
        output_dir,
        image_service=image_service,
        region_service=region_service or RegionService(),
        effect_service=effect_service or EffectService(),
        primitive_service=primitive_service or PrimitiveService(),
        width=width,
        height=height,
        sources=sources,
    )
    return run_pipeline(steps, output_dir, image_service=image_service)
