"""
Image I/O utilities.

Provides helpers to open images (including PSD), read dimensions without
full loading, discover images below a set of paths, slice a crop out of an
image, and generate unique file paths.  Safe to import in worker processes.
"""

from collections.abc import Iterable, Iterator
from pathlib import Path

from PIL import Image
from psd_tools import PSDImage

from wallpaper_face_crop.config import (
    IMAGE_EXTENSIONS, JPEG_QUALITY_DEFAULT, JPEG_SUBSAMPLING_DEFAULT, PNG_COMPRESS_LEVEL,
)
from wallpaper_face_crop.models import Geometry

# Allow very large images (Pillow's default limit is ~178MP)
Image.MAX_IMAGE_PIXELS = None


def open_image(path: Path) -> Image.Image:
    """Open an image file, using psd-tools for PSD and Pillow for the rest."""
    if path.suffix.lower() == ".psd":
        psd = PSDImage.open(str(path))
        return psd.composite()
    return Image.open(path)


def get_image_size(path: Path) -> tuple[int, int]:
    """Get image dimensions without fully loading/compositing."""
    if path.suffix.lower() == ".psd":
        psd = PSDImage.open(str(path))
        return psd.width, psd.height
    with Image.open(path) as img:
        return img.size


def is_image(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS


def find_images(paths: Iterable[Path]) -> Iterator[Path]:
    """Yield image files from *paths*, descending into directories in sorted order."""
    for path in paths:
        if path.is_dir():
            yield from sorted(p for p in path.rglob("*") if is_image(p))
        elif is_image(path):
            yield path


def crop_image(img: Image.Image, geom: Geometry) -> Image.Image:
    """Slice *geom* out of *img*."""
    if not geom.fits(img.width, img.height):
        raise ValueError(f"crop {geom} does not fit inside {img.width}x{img.height} image")
    return img.crop((geom.x, geom.y, geom.xmax, geom.ymax))


def save_image(img: Image.Image, out_dir: Path, stem: str, fmt: str = "PNG") -> Path:
    """Save *img* as *stem* in *out_dir* without overwriting; returns the path written."""
    out_dir.mkdir(parents=True, exist_ok=True)
    if fmt == "JPEG":
        out_path = unique_path(out_dir / f"{stem}.jpg")
        img.convert("RGB").save(
            str(out_path), "JPEG",
            quality=JPEG_QUALITY_DEFAULT,
            optimize=True,
            subsampling=JPEG_SUBSAMPLING_DEFAULT,
        )
    else:
        out_path = unique_path(out_dir / f"{stem}.png")
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA" if "A" in img.mode or "transparency" in img.info else "RGB")
        img.save(str(out_path), "PNG", compress_level=PNG_COMPRESS_LEVEL)
    return out_path


def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
