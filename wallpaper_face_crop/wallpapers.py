"""
Persistent wallpaper store: faces and chosen crops for every processed image.

One CSV row per image, keyed by file name, with one column per named
resolution::

    filename,width,height,faces,Vertical,Square,HD,Ultrawide
    a.png,3840,2160,"[[1200, 1500, 300, 640]]",1215x2160+0+0,...

``faces`` is a JSON array of ``[xmin, xmax, ymin, ymax]`` lists and every
resolution cell holds a Geometry in ``"<w>x<h>+<x>+<y>"`` form.  Empty cells
mean "no crop chosen yet"; ``WallInfo.get_geometry`` falls back to the
cropper for those.  Malformed cells raise on load, naming the row and
column.
"""

import csv
import json
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from wallpaper_face_crop.config import WALLPAPERS_CSV, config_dir
from wallpaper_face_crop.cropper import Cropper
from wallpaper_face_crop.models import AspectRatio, Direction, Face, Geometry, InvalidCoordinate

logger = logging.getLogger(__name__)

_BASE_COLUMNS = ["filename", "width", "height", "faces"]


# =============================================================================
# WallInfo
# =============================================================================
@dataclass
class WallInfo:
    """Faces and crops for one image."""
    filename: str
    width: int
    height: int
    faces: list[Face] = field(default_factory=list)
    geometries: dict[str, Geometry] = field(default_factory=dict)  # resolution name -> crop

    def cropper(self) -> Cropper:
        return Cropper(self.width, self.height, self.faces)

    def get_geometry(self, name: str, ratio: AspectRatio) -> Geometry:
        """Stored crop for *name*, or the computed default."""
        geom = self.geometries.get(name)
        if geom is None:
            geom = self.cropper().crop(ratio)
        return geom

    def set_geometry(self, name: str, geom: Geometry) -> None:
        if not geom.fits(self.width, self.height):
            raise ValueError(f"{self.filename}: crop {geom} exceeds {self.width}x{self.height}")
        self.geometries[name] = geom

    def candidates(self, ratio: AspectRatio) -> list[Geometry]:
        return self.cropper().crop_candidates(ratio)

    def is_default_crops(self, resolutions: Mapping[str, AspectRatio]) -> bool:
        """True when no crop was moved away from what the cropper picks."""
        cropper = self.cropper()
        return all(
            self.get_geometry(name, ratio) == cropper.crop(ratio)
            for name, ratio in resolutions.items()
        )

    def seed_geometry(self, ratio: AspectRatio, closest_name: str | None, closest_ratio: AspectRatio | None) -> Geometry:
        """
        Initial crop for a newly added resolution.

        If the crop of the closest existing resolution was adjusted by hand,
        the new crop is centred on it; otherwise the cropper's default is used.
        """
        cropper = self.cropper()
        default = cropper.crop(ratio)
        if closest_name is None or closest_ratio is None:
            return default

        previous = self.geometries.get(closest_name)
        if previous is None or previous == cropper.crop(closest_ratio):
            return default

        direction = default.direction_in(self.width, self.height)
        if previous.direction_in(self.width, self.height) is not direction:
            return default

        start, end = previous.bounds(direction)
        extent = default.w if direction is Direction.X else default.h
        return cropper.clamp((start + end) / 2 - extent / 2, direction, default.w, default.h)


# =============================================================================
# Row serialization helpers
# =============================================================================
def _faces_to_cell(faces: list[Face]) -> str:
    return json.dumps([face.to_list() for face in faces])


def _cell_to_faces(cell: str) -> list[Face]:
    raw = json.loads(cell) if cell else []
    if not isinstance(raw, list):
        raise ValueError(f"faces must be a JSON array, got {cell!r}")
    faces = []
    for item in raw:
        if not isinstance(item, list) or len(item) != 4 or not all(isinstance(v, int) for v in item):
            raise ValueError(f"face must be [xmin, xmax, ymin, ymax], got {item!r}")
        faces.append(Face(*item))
    return faces


def _info_to_row(info: WallInfo) -> dict[str, str]:
    row = {
        "filename": info.filename,
        "width": str(info.width),
        "height": str(info.height),
        "faces": _faces_to_cell(info.faces),
    }
    for name, geom in info.geometries.items():
        row[name] = str(geom)
    return row


def _row_to_info(row: dict[str, str]) -> WallInfo:
    filename = row.get("filename") or ""
    if not filename:
        raise ValueError("row is missing a filename")
    try:
        width = int(row.get("width") or "")
        height = int(row.get("height") or "")
        faces = _cell_to_faces(row.get("faces") or "")
    except ValueError as exc:
        raise ValueError(f"{filename}: {exc}") from exc

    geometries: dict[str, Geometry] = {}
    for name, cell in row.items():
        if name in _BASE_COLUMNS or name is None or not cell:
            continue
        try:
            geometries[name] = Geometry.parse(cell)
        except InvalidCoordinate as exc:
            raise InvalidCoordinate(f"{filename}: column '{name}': {exc}") from exc

    return WallInfo(filename, width, height, faces, geometries)


# =============================================================================
# Store
# =============================================================================
class WallpaperStore:
    """All WallInfo rows, keyed by file name."""

    def __init__(self, path: Path | None = None, resolutions: Mapping[str, AspectRatio] | None = None):
        self.path = path if path is not None else config_dir() / WALLPAPERS_CSV
        self.resolutions = dict(resolutions or {})
        self._infos: dict[str, WallInfo] = {}

    def __len__(self) -> int:
        return len(self._infos)

    def __iter__(self) -> Iterator[WallInfo]:
        return iter(self._infos[name] for name in sorted(self._infos))

    def __contains__(self, filename: str) -> bool:
        return filename in self._infos

    def __getitem__(self, filename: str) -> WallInfo:
        return self._infos[filename]

    def lookup(self, filename: str, width: int, height: int) -> WallInfo | None:
        """
        Stored info for *filename* if its dimensions still match.

        Returns ``None`` on a miss or when the image was replaced by one of a
        different size, so the caller processes it again.
        """
        info = self._infos.get(filename)
        if info is None:
            return None
        if (info.width, info.height) != (width, height):
            logger.debug(
                "Dimension mismatch for %s: stored %sx%s, actual %sx%s — ignoring",
                filename, info.width, info.height, width, height,
            )
            return None
        return info

    def insert(self, info: WallInfo) -> None:
        self._infos[info.filename] = info

    # -------------------------------------------------------------------------
    # Load / Save
    # -------------------------------------------------------------------------
    def load(self) -> "WallpaperStore":
        """
        Read the CSV file, replacing anything in memory.

        A missing file yields an empty store.  Raises ``ValueError`` (or
        ``InvalidCoordinate``) if a row cannot be parsed.
        """
        self._infos = {}
        if not self.path.exists():
            logger.debug("No wallpaper store found at %s — starting fresh", self.path)
            return self

        with open(self.path, newline="", encoding="utf-8") as f:
            for line_no, row in enumerate(csv.DictReader(f), start=2):
                try:
                    info = _row_to_info(row)
                except ValueError as exc:
                    raise type(exc)(f"{self.path}:{line_no}: {exc}") from exc
                self._infos[info.filename] = info

        logger.info("Loaded %d wallpaper(s) from %s", len(self._infos), self.path)
        return self

    def columns(self) -> list[str]:
        """Header row: base columns, configured resolutions, then any extra names found."""
        names = list(self.resolutions)
        extra = sorted({n for info in self._infos.values() for n in info.geometries} - set(names))
        return _BASE_COLUMNS + names + extra

    def save(self) -> None:
        """Write every row to the CSV file, sorted by file name."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=self.columns(), restval="")
            writer.writeheader()
            for info in self:
                writer.writerow(_info_to_row(info))
        logger.debug("Saved %d wallpaper(s) to %s", len(self._infos), self.path)
