"""
Face-aware crop selection.

``Cropper`` picks the largest rectangle of a target aspect ratio that fits
inside an image, then slides it along its one free axis to keep as many
detected faces in frame as possible:

1. Same aspect ratio: the whole image.
2. No faces: centred on the free axis.
3. One face: centred on the face midpoint (both axes), clamped to the image.
4. Several faces: a sliding-window scan scores every offset by the number
   of faces it contains (partially contained faces count fractionally).
   Ties on the best score are broken by covered face area, then by taking
   the median offset of what is left.

``crop_candidates`` lists alternative offsets for manual review: one per
distinct face area, each the median offset of the windows that fully
contain a face of that area.

The module is pure (no I/O, no logging) and safe to call from worker
processes.
"""

from collections.abc import Iterable, Mapping

from wallpaper_face_crop.models import AspectRatio, Direction, Face, Geometry

# Single-precision machine epsilon; face scores are sums of fractions.
FACE_SCORE_EPSILON = 1.1920929e-07


class CropError(RuntimeError):
    """Raised when the face search finds no usable window."""


class Cropper:
    """Crop calculator for one image and its detected faces."""

    def __init__(self, width: int, height: int, faces: Iterable[Face] = ()):
        if width <= 0 or height <= 0:
            raise ValueError(f"image dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.faces = list(faces)
        for face in self.faces:
            if face.xmax > width or face.ymax > height:
                raise ValueError(f"face {face} lies outside the {width}x{height} image")

    def __repr__(self):
        return f"Cropper({self.width}, {self.height}, faces={self.faces!r})"

    # -------------------------------------------------------------------------
    # Rectangle sizing
    # -------------------------------------------------------------------------
    def crop_rect(self, ratio: AspectRatio) -> tuple[int, int, Direction]:
        """Largest (width, height) of *ratio* that fits, and its free axis."""
        target_w, target_h = ratio.w, ratio.h

        crop_w = min(self.width, self.height * target_w // target_h)
        crop_h = min(self.height, self.width * target_h // target_w)

        # Keep whichever pairing gives the larger rectangle
        if crop_w * target_h <= crop_h * target_w:
            crop_w = crop_h * target_w // target_h

        if crop_w == 0 or crop_h == 0:
            raise ValueError(f"{self.width}x{self.height} image is too small for ratio {ratio}")

        direction = Direction.Y if crop_w == self.width else Direction.X
        return crop_w, crop_h, direction

    def clamp(self, value: float, direction: Direction, target_w: int, target_h: int) -> Geometry:
        """Place a *target_w* x *target_h* rectangle at *value* on the free axis.

        *value* is truncated toward zero and clamped so the rectangle stays
        inside the image.  The fixed axis offset is always 0.
        """
        offset = max(int(value), 0)
        if direction is Direction.X:
            return Geometry(x=min(offset, self.width - target_w), y=0, w=target_w, h=target_h)
        return Geometry(x=0, y=min(offset, self.height - target_h), w=target_w, h=target_h)

    def _extent(self, direction: Direction) -> int:
        return self.width if direction is Direction.X else self.height

    # -------------------------------------------------------------------------
    # Trivial cases
    # -------------------------------------------------------------------------
    def _crop_single_face(self, direction: Direction, target_w: int, target_h: int) -> Geometry:
        face_min, face_max = self.faces[0].bounds(direction)
        target = target_w if direction is Direction.X else target_h
        return self.clamp((face_min + face_max) / 2 - target / 2, direction, target_w, target_h)

    def _crop_trivial(self, direction: Direction, target_w: int, target_h: int) -> Geometry | None:
        """Resolve the whole-image, no-face and single-face cases, or return None."""
        if self.width == target_w and self.height == target_h:
            return Geometry(0, 0, target_w, target_h)

        if not self.faces:
            if direction is Direction.X:
                return Geometry((self.width - target_w) // 2, 0, target_w, target_h)
            return Geometry(0, (self.height - target_h) // 2, target_w, target_h)

        if len(self.faces) == 1:
            return self._crop_single_face(direction, target_w, target_h)

        return None

    # -------------------------------------------------------------------------
    # Sliding window
    # -------------------------------------------------------------------------
    def _sorted_faces(self, direction: Direction) -> list[Face]:
        return sorted(self.faces, key=lambda face: face.bounds(direction)[0])

    def window_starts(
        self,
        faces: list[Face],
        direction: Direction,
        target: int,
        exhaustive: bool = False,
    ) -> range:
        """Offsets of the sliding window to evaluate.

        The exhaustive range covers every legal offset.  The default range
        drops windows that end before the first face starts or begin after
        the last face ends; they can never contain any part of a face, so
        both ranges pick the same offsets.
        """
        img_max = self._extent(direction) - target
        if exhaustive:
            return range(0, img_max + 1)

        first_min = faces[0].bounds(direction)[0]
        last_max = max(face.bounds(direction)[1] for face in faces)
        start = min(max(first_min - target, 0), img_max)
        end = min(last_max, img_max)
        return range(start, end + 1)

    @staticmethod
    def _score_window(faces: list[Face], direction: Direction, start: int, end: int) -> tuple[float, int]:
        """Return (face score, covered face area) for the window [start, end]."""
        score = 0.0
        area = 0
        for face in faces:
            face_min, face_max = face.bounds(direction)
            # sorted by face_min, nothing after this one can intersect
            if face_min > end:
                break
            if face_max < start:
                continue
            if face_min >= start and face_max <= end:
                score += 1.0
                area += face.area
                continue
            # face runs past the end of the window
            if face_max > end:
                score += (end - face_min) / (face_max - face_min)
                area += (end - face_min) * face.cross_extent(direction)
        return score, area

    def best_offset(self, direction: Direction, target: int, exhaustive: bool = False) -> int:
        """Offset along *direction* whose window covers the most faces."""
        faces = self._sorted_faces(direction)

        max_score = 0.0
        tied: list[tuple[int, int]] = []  # (covered area, window start)

        for start in self.window_starts(faces, direction, target, exhaustive):
            score, area = self._score_window(faces, direction, start, start + target)
            if score <= 0.0:
                continue
            if score > max_score:
                max_score = score
                tied = [(area, start)]
            elif abs(score - max_score) < FACE_SCORE_EPSILON:
                tied.append((area, start))

        if not tied:
            raise CropError(f"no window intersects any of {len(faces)} faces")

        best_area = max(area for area, _ in tied)
        starts = sorted(start for area, start in tied if area == best_area)
        return starts[len(starts) // 2]

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------
    def crop(self, ratio: AspectRatio, exhaustive: bool = False) -> Geometry:
        """Best crop rectangle for *ratio*.

        *exhaustive* scans every window offset instead of the range that can
        intersect a face.  The result is the same; it exists for testing.
        """
        target_w, target_h, direction = self.crop_rect(ratio)

        geom = self._crop_trivial(direction, target_w, target_h)
        if geom is not None:
            return geom

        target = target_w if direction is Direction.X else target_h
        start = self.best_offset(direction, target, exhaustive)
        return self.clamp(start, direction, target_w, target_h)

    def crop_candidates(self, ratio: AspectRatio, exhaustive: bool = False) -> list[Geometry]:
        """Distinct plausible crops for *ratio*, ordered by offset on the free axis."""
        target_w, target_h, direction = self.crop_rect(ratio)

        geom = self._crop_trivial(direction, target_w, target_h)
        if geom is not None:
            return [geom]

        target = target_w if direction is Direction.X else target_h
        faces = self._sorted_faces(direction)

        # face area -> window starts that fully contain a face of that area
        starts_by_area: dict[int, list[int]] = {}
        for start in self.window_starts(faces, direction, target, exhaustive):
            end = start + target
            for face in faces:
                face_min, face_max = face.bounds(direction)
                if face_min > end:
                    break
                if face_min >= start and face_max <= end:
                    starts_by_area.setdefault(face.area, []).append(start)

        if not starts_by_area:
            # every face is larger than the window
            return [self.crop(ratio, exhaustive)]

        candidates = set()
        for area in sorted(starts_by_area):
            starts = sorted(starts_by_area[area])
            candidates.add(self.clamp(starts[len(starts) // 2], direction, target_w, target_h))

        return sorted(candidates, key=lambda g: g.offset(direction))

    def crop_all(self, resolutions: Mapping[str, AspectRatio]) -> dict[str, Geometry]:
        """Best crop for every named resolution."""
        return {name: self.crop(ratio) for name, ratio in resolutions.items()}
