"""
Crop worker function for parallel batch processing.

This module is imported in child processes spawned by
``concurrent.futures.ProcessPoolExecutor``.  Arguments and results are
plain dicts of strings and ints so they pickle cheaply.
"""

from pathlib import Path

from wallpaper_face_crop.cropper import Cropper
from wallpaper_face_crop.image_io import crop_image, open_image, save_image
from wallpaper_face_crop.models import AspectRatio, Face, Geometry


def build_worker_args(
    index: int,
    path: Path,
    img_w: int,
    img_h: int,
    faces: list[Face],
    resolutions: dict[str, AspectRatio],
    crops: dict[str, Geometry] | None = None,
    export: dict | None = None,
) -> dict:
    """Build serializable arguments for ``process_worker``."""
    return {
        "index": index,
        "path": str(path),
        "img_w": img_w,
        "img_h": img_h,
        "faces": [face.to_list() for face in faces],
        "resolutions": {name: str(ratio) for name, ratio in resolutions.items()},
        "crops": {name: str(geom) for name, geom in (crops or {}).items()},
        "export": export,
    }


def process_worker(args: dict) -> dict:
    """Compute (and optionally export) one crop per resolution. Runs in a separate process.

    ``args["crops"]`` holds crops that were already chosen; they are kept
    as-is and only missing resolutions are computed.  ``args["export"]``
    is ``None`` or ``{"output_root": str, "format": "PNG" | "JPEG"}``.
    """
    idx = args["index"]
    img_path = Path(args["path"])

    try:
        cropper = Cropper(args["img_w"], args["img_h"], [Face(*f) for f in args["faces"]])
        existing = {name: Geometry.parse(g) for name, g in args.get("crops", {}).items()}

        geometries: dict[str, Geometry] = {}
        for name, ratio_str in args["resolutions"].items():
            geom = existing.get(name)
            if geom is None:
                geom = cropper.crop(AspectRatio.parse(ratio_str))
            geometries[name] = geom

        export = args.get("export")
        if export:
            output_root = Path(export["output_root"])
            fmt = export.get("format", "PNG")
            img = open_image(img_path)
            for name, geom in geometries.items():
                cropped = crop_image(img, geom)
                save_image(cropped, output_root / name, img_path.stem, fmt)

        return {
            "index": idx,
            "success": True,
            "name": img_path.name,
            "geometries": {name: str(geom) for name, geom in geometries.items()},
        }
    except Exception as e:
        return {"index": idx, "success": False, "name": img_path.name, "error": str(e)}
