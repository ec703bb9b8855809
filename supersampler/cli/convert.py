import argparse
import logging
import os
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from ..repositories.image_repository import ImageRepository
from ..services.image_service import ImageService

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {value}")
    return number


def round_main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="supersampler-round",
        description="Crop an image to a circle with transparent corners.",
    )
    parser.add_argument("input", help="Encoded source image (PNG, JPEG, ...)")
    parser.add_argument("output", help="Destination file in a format with alpha (.png, .webp, .tiff, ...)")
    parser.add_argument("--size", type=_positive_int, required=True,
                        help="Length of the shorter side of the result")
    args = parser.parse_args(argv)

    image_repository = ImageRepository()
    if not image_repository.supports_alpha(args.output):
        parser.error(f"{args.output}: output format must keep transparency (e.g. .png, .webp, .tiff)")
    _configure_logging()

    image_service = ImageService(image_repository=image_repository)

    rounded = image_service.rounded_image(image_repository.load(args.input), args.size)
    if rounded is None:
        logger.error("Could not decode %s", args.input)
        return 1

    image_repository.save(rounded, args.output)
    logger.info("Saved %sx%s rounded image to %s", rounded.width, rounded.height, args.output)
    return 0


def resize_main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="supersampler-resize",
        description="Supersample an image, then resize it.",
    )
    parser.add_argument("input", help="Encoded source image (PNG, JPEG, ...)")
    parser.add_argument("output", help="Destination file")
    parser.add_argument("--size", type=_positive_int,
                        help="Fit the longer side to this length, keeping the aspect ratio")
    parser.add_argument("--width", type=_positive_int)
    parser.add_argument("--height", type=_positive_int)
    args = parser.parse_args(argv)

    exact = args.width is not None or args.height is not None
    if args.size is not None and exact:
        parser.error("use either --size or --width/--height")
    if exact and (args.width is None or args.height is None):
        parser.error("--width and --height go together")
    if args.size is None and not exact:
        parser.error("one of --size or --width/--height is required")
    _configure_logging()

    image_repository = ImageRepository()
    image_service = ImageService(image_repository=image_repository)
    data = image_repository.load(args.input)

    if args.size is not None:
        resized = image_service.image_from_bytes_fit(data, args.size)
    else:
        resized = image_service.image_from_bytes(data, args.width, args.height)
    if resized is None:
        logger.error("Could not decode %s", args.input)
        return 1

    image_repository.save(resized, args.output)
    logger.info("Saved %sx%s image to %s", resized.width, resized.height, args.output)
    return 0
