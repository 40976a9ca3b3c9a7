"""
Value types shared by the cropper, the wallpaper store and the batch worker.

AspectRatio, Geometry and Face are immutable and hashable, so they can be
used as dict keys and deduplicated with sets.  All coordinates are integer
pixels in image space.  Parsing helpers raise ``InvalidAspectRatio`` or
``InvalidCoordinate``; both are ``ValueError`` subclasses so callers can
catch either the specific or the generic error.
"""

import enum
from dataclasses import dataclass, replace
from functools import total_ordering
from math import gcd


# =============================================================================
# Errors
# =============================================================================
class InvalidAspectRatio(ValueError):
    """Raised when a ``"<w>x<h>"`` string cannot be parsed."""


class InvalidCoordinate(ValueError):
    """Raised when a ``"<w>x<h>+<x>+<y>"`` string cannot be parsed."""


def _parse_int(token: str) -> int | None:
    token = token.strip()
    if not token.isdigit():
        return None
    return int(token)


# =============================================================================
# Direction
# =============================================================================
class Direction(enum.Enum):
    """Axis along which a crop rectangle is free to move."""
    X = "X"
    Y = "Y"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# AspectRatio
# =============================================================================
@total_ordering
@dataclass(frozen=True)
class AspectRatio:
    """Aspect ratio stored in lowest terms.  AspectRatio(32, 18) == AspectRatio(16, 9)"""
    w: int
    h: int

    def __post_init__(self):
        if self.w <= 0 or self.h <= 0:
            raise ValueError(f"aspect ratio components must be positive, got {self.w}x{self.h}")
        g = gcd(self.w, self.h)
        object.__setattr__(self, "w", self.w // g)
        object.__setattr__(self, "h", self.h // g)

    @classmethod
    def parse(cls, text: str) -> "AspectRatio":
        """Parse ``"1920x1080"`` into ``AspectRatio(16, 9)``."""
        if not isinstance(text, str):
            raise InvalidAspectRatio(f"Invalid aspect ratio: {text!r}")
        parts = [_parse_int(p) for p in text.split("x")]
        if len(parts) != 2 or any(p is None or p <= 0 for p in parts):
            raise InvalidAspectRatio(f"Invalid aspect ratio: {text!r}")
        return cls(parts[0], parts[1])

    def __float__(self) -> float:
        return self.w / self.h

    def __lt__(self, other):
        if not isinstance(other, AspectRatio):
            return NotImplemented
        return float(self) < float(other)

    def __str__(self) -> str:
        return f"{self.w}x{self.h}"


# =============================================================================
# Geometry
# =============================================================================
@dataclass(frozen=True)
class Geometry:
    """Axis-aligned crop rectangle in image coordinates."""
    x: int = 0
    y: int = 0
    w: int = 0
    h: int = 0

    @classmethod
    def parse(cls, text: str) -> "Geometry":
        """Parse the ``"<w>x<h>+<x>+<y>"`` form written by ``str()``."""
        if not isinstance(text, str):
            raise InvalidCoordinate(f"Invalid geometry: {text!r}")
        size, sep, offset = text.partition("+")
        tokens = size.split("x") + offset.split("+") if sep else []
        values = [_parse_int(t) for t in tokens]
        if len(values) != 4 or any(v is None for v in values):
            raise InvalidCoordinate(f"Invalid geometry: {text!r}")
        w, h, x, y = values
        return cls(x=x, y=y, w=w, h=h)

    def __str__(self) -> str:
        return f"{self.w}x{self.h}+{self.x}+{self.y}"

    @property
    def xmax(self) -> int:
        return self.x + self.w

    @property
    def ymax(self) -> int:
        return self.y + self.h

    @property
    def area(self) -> int:
        return self.w * self.h

    def bounds(self, direction: Direction) -> tuple[int, int]:
        """(start, end) of the rectangle along *direction*."""
        if direction is Direction.X:
            return self.x, self.xmax
        return self.y, self.ymax

    def offset(self, direction: Direction) -> int:
        return self.x if direction is Direction.X else self.y

    def direction_in(self, img_w: int, img_h: int) -> Direction:
        """Free axis of this rectangle inside an *img_w* x *img_h* image."""
        return Direction.X if self.h == img_h else Direction.Y

    def fits(self, img_w: int, img_h: int) -> bool:
        return self.x >= 0 and self.y >= 0 and self.xmax <= img_w and self.ymax <= img_h

    # Alignment along the free axis.  The fixed axis stays at offset 0.
    def align_start(self, img_w: int, img_h: int) -> "Geometry":
        return replace(self, x=0, y=0)

    def align_center(self, img_w: int, img_h: int) -> "Geometry":
        if self.direction_in(img_w, img_h) is Direction.X:
            return replace(self, x=(img_w - self.w) // 2, y=0)
        return replace(self, x=0, y=(img_h - self.h) // 2)

    def align_end(self, img_w: int, img_h: int) -> "Geometry":
        if self.direction_in(img_w, img_h) is Direction.X:
            return replace(self, x=img_w - self.w, y=0)
        return replace(self, x=0, y=img_h - self.h)


# =============================================================================
# Face
# =============================================================================
@dataclass(frozen=True)
class Face:
    """Bounding box of a detected face, as reported by the detector."""
    xmin: int
    xmax: int
    ymin: int
    ymax: int

    def __post_init__(self):
        if min(self.xmin, self.ymin) < 0:
            raise ValueError(f"face coordinates must be non-negative: {self}")
        if self.xmin >= self.xmax or self.ymin >= self.ymax:
            raise ValueError(f"face has no area: {self}")

    @classmethod
    def from_dict(cls, data: dict) -> "Face":
        """Build a Face from a ``{"xmin", "xmax", "ymin", "ymax"}`` mapping."""
        try:
            values = [data[k] for k in ("xmin", "xmax", "ymin", "ymax")]
        except (KeyError, TypeError) as exc:
            raise ValueError(f"face must have xmin, xmax, ymin and ymax: {data!r}") from exc
        if not all(isinstance(v, int) and not isinstance(v, bool) for v in values):
            raise ValueError(f"face coordinates must be integers: {data!r}")
        return cls(*values)

    def clip(self, img_w: int, img_h: int) -> "Face | None":
        """This box cut to the image, or None when nothing of it is inside."""
        xmax, ymax = min(self.xmax, img_w), min(self.ymax, img_h)
        if self.xmin >= xmax or self.ymin >= ymax:
            return None
        if (xmax, ymax) == (self.xmax, self.ymax):
            return self
        return replace(self, xmax=xmax, ymax=ymax)

    def to_list(self) -> list[int]:
        return [self.xmin, self.xmax, self.ymin, self.ymax]

    @property
    def width(self) -> int:
        return self.xmax - self.xmin

    @property
    def height(self) -> int:
        return self.ymax - self.ymin

    @property
    def area(self) -> int:
        return self.width * self.height

    def bounds(self, direction: Direction) -> tuple[int, int]:
        """(min, max) of the face along *direction*."""
        if direction is Direction.X:
            return self.xmin, self.xmax
        return self.ymin, self.ymax

    def cross_extent(self, direction: Direction) -> int:
        """Size of the face perpendicular to *direction*."""
        return self.height if direction is Direction.X else self.width
