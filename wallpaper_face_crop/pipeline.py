"""
Batch pipeline: detect faces, compute crops for every resolution, persist.

For each image the pipeline probes its size, reuses the stored faces when
the store already knows the image (same name and size), otherwise runs the
face detector, and then fans the crop computation out to a
``ProcessPoolExecutor`` (one job per image covering all resolutions).
Results are written back to the ``WallpaperStore``.

Images whose crops deserve a manual look (no face or several faces, and
still on the cropper's defaults) are collected in ``PipelineResult.to_review``.
"""

import logging
import os
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from wallpaper_face_crop.config import MIN_HEIGHT, MIN_WIDTH
from wallpaper_face_crop.detector import FaceDetector
from wallpaper_face_crop.image_io import find_images, get_image_size
from wallpaper_face_crop.models import AspectRatio, Face, Geometry
from wallpaper_face_crop.wallpapers import WallInfo, WallpaperStore
from wallpaper_face_crop.worker import build_worker_args, process_worker

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    processed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)          # too small
    failed: list[tuple[str, str]] = field(default_factory=list)  # (name, error)
    to_review: list[Path] = field(default_factory=list)


class WallpaperPipeline:
    def __init__(
        self,
        store: WallpaperStore,
        resolutions: dict[str, AspectRatio],
        detector: FaceDetector,
        workers: int | None = None,
        export: dict | None = None,
        force: bool = False,
        min_width: int = MIN_WIDTH,
        min_height: int = MIN_HEIGHT,
    ):
        self.store = store
        self.resolutions = resolutions
        self.detector = detector
        self.workers = workers or max(1, (os.cpu_count() or 2) - 1)
        self.export = export
        self.force = force
        self.min_width = min_width
        self.min_height = min_height

    def _needs_review(self, info: WallInfo) -> bool:
        return len(info.faces) != 1 and info.is_default_crops(self.resolutions)

    @staticmethod
    def _clip_faces(path: Path, faces: list[Face], img_w: int, img_h: int) -> list[Face]:
        """Cut detector boxes that overshoot the image edge."""
        clipped = []
        for face in faces:
            inside = face.clip(img_w, img_h)
            if inside is None:
                logger.warning("Dropping face %s outside %s (%dx%d)", face.to_list(), path.name, img_w, img_h)
            else:
                clipped.append(inside)
        return clipped

    def _prepare(self, paths: list[Path], result: PipelineResult) -> tuple[list[dict], dict[int, tuple[Path, int, int, list[Face]]]]:
        """Probe and detect; returns worker args and index -> (path, w, h, faces)."""
        args_list: list[dict] = []
        jobs: dict[int, tuple[Path, int, int, list[Face]]] = {}

        for path in paths:
            try:
                img_w, img_h = get_image_size(path)
            except OSError as exc:
                logger.error("Could not read %s: %s", path, exc)
                result.failed.append((path.name, str(exc)))
                continue

            if img_w < self.min_width or img_h < self.min_height:
                logger.warning(
                    "%s is too small (%dx%d < %dx%d) — skipping",
                    path.name, img_w, img_h, self.min_width, self.min_height,
                )
                result.skipped.append(path.name)
                continue

            info = None if self.force else self.store.lookup(path.name, img_w, img_h)
            crops: dict[str, Geometry] = {}
            if info is not None:
                if all(name in info.geometries for name in self.resolutions) and not self.export:
                    result.unchanged.append(path.name)
                    if self._needs_review(info):
                        result.to_review.append(path)
                    continue
                faces = info.faces
                crops = info.geometries
            else:
                try:
                    faces = self.detector.detect(path)
                except (OSError, RuntimeError, ValueError) as exc:
                    logger.error("Face detection failed for %s: %s", path.name, exc)
                    result.failed.append((path.name, str(exc)))
                    continue
                faces = self._clip_faces(path, faces, img_w, img_h)

            index = len(args_list)
            jobs[index] = (path, img_w, img_h, faces)
            args_list.append(build_worker_args(
                index, path, img_w, img_h, faces, self.resolutions, crops, self.export,
            ))

        return args_list, jobs

    def run(self, paths: list[Path]) -> PipelineResult:
        """Process every image found below *paths* and save the store."""
        result = PipelineResult()
        images = list(find_images(paths))
        logger.info("Found %d image(s)", len(images))

        args_list, jobs = self._prepare(images, result)
        total = len(args_list)

        if args_list:
            with ProcessPoolExecutor(max_workers=min(self.workers, total)) as executor:
                futures = [executor.submit(process_worker, args) for args in args_list]

                for completed, future in enumerate(as_completed(futures), start=1):
                    res = future.result()
                    if not res["success"]:
                        logger.error("Failed to process %s: %s", res["name"], res["error"])
                        result.failed.append((res["name"], res["error"]))
                        continue

                    path, img_w, img_h, faces = jobs[res["index"]]
                    old = None if self.force else self.store.lookup(path.name, img_w, img_h)
                    geometries = dict(old.geometries) if old is not None else {}
                    geometries.update(
                        (name, Geometry.parse(g)) for name, g in res["geometries"].items()
                    )
                    info = WallInfo(path.name, img_w, img_h, faces, geometries)
                    self.store.insert(info)
                    result.processed.append(path.name)
                    logger.info("Processed %s (%d/%d)", path.name, completed, total)

                    if self._needs_review(info):
                        result.to_review.append(path)

        self.store.save()
        result.to_review.sort()
        return result
