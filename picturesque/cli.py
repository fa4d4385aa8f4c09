"""
Command-line entry point: smart-crop a photo and run it through the effects.
"""

import argparse
import logging
import sys

from .errors import PicturesqueError
from .models.shapes import ShapeType
from .pipeline.runner import process_image, INPUT_IMAGE, OUTPUT_DIR
from .pipeline.steps import CROP_WIDTH, CROP_HEIGHT
from .services.primitive_service import PrimitiveService

logger = logging.getLogger(__name__)


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        prog="picturesque",
        description="Crop, saturate, multiply, sharpen and primitive-ise a photo.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Shapes:
  0=combo 1=triangle 2=rect 3=ellipse 4=circle
  5=rotatedrect 6=beziers 7=rotatedellipse 8=polygon
        """,
    )
    parser.add_argument("input", nargs="?", default=INPUT_IMAGE,
                        help=f"Input JPEG (default: {INPUT_IMAGE})")
    parser.add_argument("--output", "-o", default=OUTPUT_DIR,
                        help=f"Directory for the result images (default: {OUTPUT_DIR})")
    parser.add_argument("--width", type=int, default=CROP_WIDTH, help="Crop width")
    parser.add_argument("--height", type=int, default=CROP_HEIGHT, help="Crop height")
    parser.add_argument("--steps", type=int, default=None, help="Number of primitive shapes")
    parser.add_argument("--shape", type=int, choices=[int(t) for t in ShapeType], default=None,
                        help="Primitive shape kind")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the primitive step (default: time based)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_arguments(argv)

    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    primitive_service = PrimitiveService(steps=args.steps, shape_type=args.shape, seed=args.seed)
    try:
        process_image(args.input, args.output, primitive_service=primitive_service,
                      width=args.width, height=args.height)
    except PicturesqueError as err:
        logger.error(err)
        return 1

    logger.info("Pipeline complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
