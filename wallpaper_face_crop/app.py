"""
Command-line entry point.

Usage:
    python -m wallpaper_face_crop add ~/Pictures/new --export ~/Pictures/Wallpapers
    python -m wallpaper_face_crop crop 3000 1000 1x1 --face 900,1100,400,600
    python -m wallpaper_face_crop resolution Portrait 1080x1920
    wallpaper-face-crop ...     (after pip install)
"""

import argparse
import logging
import sys
from pathlib import Path

from wallpaper_face_crop.config import (
    FACE_DETECTOR_CMD, HAS_FACE_DETECTOR, OUTPUT_FORMAT_DEFAULT, OUTPUT_FORMATS,
)
from wallpaper_face_crop.cropper import Cropper
from wallpaper_face_crop.detector import ExternalFaceDetector
from wallpaper_face_crop.models import AspectRatio, Face
from wallpaper_face_crop.pipeline import WallpaperPipeline
from wallpaper_face_crop.resolutions import (
    add_resolution, closest_resolution, load_resolutions, save_resolutions,
)
from wallpaper_face_crop.wallpapers import WallpaperStore

logger = logging.getLogger(__name__)


def _parse_face(text: str) -> Face:
    parts = text.split(",")
    if len(parts) != 4 or not all(p.strip().isdigit() for p in parts):
        raise argparse.ArgumentTypeError(f"face must be xmin,xmax,ymin,ymax, got {text!r}")
    try:
        return Face(*(int(p) for p in parts))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _parse_ratio(text: str) -> AspectRatio:
    try:
        return AspectRatio.parse(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wallpaper-face-crop",
        description="Face-aware wallpaper cropping for multiple monitor resolutions",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--store", type=Path, help="Wallpaper CSV store (default: in the config directory)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Add command
    add_parser = subparsers.add_parser("add", help="Detect faces and compute crops for images")
    add_parser.add_argument("paths", nargs="+", type=Path, help="Images or directories to add")
    add_parser.add_argument("--force", action="store_true", help="Reprocess images already in the store")
    add_parser.add_argument("--workers", type=int, default=None, help="Number of worker processes")
    add_parser.add_argument("--export", type=Path, help="Write cropped images below this directory")
    add_parser.add_argument("--format", choices=OUTPUT_FORMATS, default=OUTPUT_FORMAT_DEFAULT, help="Export format")
    add_parser.add_argument("--detector", default=FACE_DETECTOR_CMD, help="Face detector command")

    # Crop command
    crop_parser = subparsers.add_parser("crop", help="Print the crop for given dimensions and faces")
    crop_parser.add_argument("width", type=int, help="Image width")
    crop_parser.add_argument("height", type=int, help="Image height")
    crop_parser.add_argument("ratio", type=_parse_ratio, help="Target ratio as <w>x<h>")
    crop_parser.add_argument(
        "--face", dest="faces", action="append", type=_parse_face, default=[],
        help="Face as xmin,xmax,ymin,ymax (repeatable)",
    )
    crop_parser.add_argument("--candidates", action="store_true", help="Print every candidate crop")

    # Resolution command
    res_parser = subparsers.add_parser("resolution", help="Add a named resolution for cropping")
    res_parser.add_argument("name", help="Name of the new resolution")
    res_parser.add_argument("resolution", type=_parse_ratio, help="The new resolution as <w>x<h>")

    return parser


# =============================================================================
# Commands
# =============================================================================
def cmd_add(args) -> int:
    if args.detector == FACE_DETECTOR_CMD and not HAS_FACE_DETECTOR:
        logger.warning("%s was not found; detection will fail for new images", FACE_DETECTOR_CMD)

    resolutions = load_resolutions()
    store = WallpaperStore(args.store, resolutions).load()
    export = {"output_root": str(args.export), "format": args.format} if args.export else None

    pipeline = WallpaperPipeline(
        store, resolutions, ExternalFaceDetector(args.detector),
        workers=args.workers, export=export, force=args.force,
    )
    result = pipeline.run(args.paths)

    print(f"Processed {len(result.processed)}, unchanged {len(result.unchanged)}, "
          f"skipped {len(result.skipped)}, failed {len(result.failed)}")
    for name, error in result.failed:
        print(f"  failed: {name}: {error}", file=sys.stderr)
    if result.to_review:
        print("Needs review:")
        for path in result.to_review:
            print(f"  {path}")
    return 1 if result.failed else 0


def cmd_crop(args) -> int:
    cropper = Cropper(args.width, args.height, args.faces)
    if args.candidates:
        for geom in cropper.crop_candidates(args.ratio):
            print(geom)
    else:
        print(cropper.crop(args.ratio))
    return 0


def cmd_resolution(args) -> int:
    resolutions = load_resolutions()
    ratio = args.resolution
    closest = closest_resolution(resolutions, ratio)

    existing = next((name for name, r in resolutions.items() if r == ratio), None)
    if existing is not None and existing != args.name:
        logger.warning("Aspect ratio %s is already configured as '%s'", ratio, existing)
        return 1
    resolutions = add_resolution(resolutions, args.name, ratio)
    save_resolutions(resolutions)

    store = WallpaperStore(args.store, resolutions).load()
    to_review = []
    for info in store:
        if args.name in info.geometries:
            continue
        geom = info.seed_geometry(ratio, closest, resolutions.get(closest))
        info.set_geometry(args.name, geom)
        if geom != info.cropper().crop(ratio):
            to_review.append(info.filename)
    store.save()

    for filename in to_review:
        print(filename)
    return 0


COMMANDS = {
    "add": cmd_add,
    "crop": cmd_crop,
    "resolution": cmd_resolution,
}


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return COMMANDS[args.command](args)
    except (ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
