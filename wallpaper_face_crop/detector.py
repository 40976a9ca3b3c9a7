"""
Face detection collaborator.

The cropper only consumes bounding boxes.  Detection is delegated to an
external command that prints a JSON array of
``{"xmin": .., "xmax": .., "ymin": .., "ymax": ..}`` objects for the image
passed as its only argument.  Anything with a ``detect(path)`` method can
stand in for it, which keeps the pipeline testable without spawning
processes.
"""

import json
import logging
import subprocess
from pathlib import Path
from typing import Protocol

from wallpaper_face_crop.config import FACE_DETECTOR_CMD, FACE_DETECTOR_TIMEOUT
from wallpaper_face_crop.models import Face

logger = logging.getLogger(__name__)


class FaceDetector(Protocol):
    def detect(self, path: Path) -> list[Face]:
        ...


def parse_faces(text: str) -> list[Face]:
    """Parse detector output into Faces, in the order the detector reported them."""
    try:
        raw = json.loads(text.strip())
    except json.JSONDecodeError as exc:
        raise ValueError(f"face detector output is not JSON: {text[:80]!r}") from exc

    if not isinstance(raw, list):
        raise ValueError(f"face detector output must be a JSON array, got {type(raw).__name__}")

    return [Face.from_dict(item) for item in raw]


class ExternalFaceDetector:
    """Runs the face detector command once per image."""

    def __init__(self, command: str = FACE_DETECTOR_CMD, timeout: float = FACE_DETECTOR_TIMEOUT):
        self.command = command
        self.timeout = timeout

    def detect(self, path: Path) -> list[Face]:
        try:
            result = subprocess.run(
                [self.command, str(path)],
                capture_output=True, text=True, timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise RuntimeError(f"{self.command} timed out after {self.timeout}s on {path.name}") from exc
        if result.returncode != 0:
            raise RuntimeError(f"{self.command} failed on {path.name}: {result.stderr.strip()}")
        faces = parse_faces(result.stdout)
        logger.debug("Detected %d face(s) in %s", len(faces), path.name)
        return faces
