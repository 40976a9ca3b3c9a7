"""
Application constants and configuration.

DEFAULT_RESOLUTIONS provides the built-in named target resolutions. Runtime
resolutions are loaded from resolutions.json via the resolutions module.
The remaining constants control image discovery, export and the external
face detector.

The ``config_dir()`` helper returns the platform-appropriate config
directory and is shared by all persistence modules (resolutions, the
wallpaper store).
"""

import os
import shutil
import sys
from pathlib import Path

# =============================================================================
# APP IDENTITY & CONFIG DIRECTORY
# =============================================================================
APP_NAME = "wallpaper-face-crop"


def config_dir() -> Path:
    """Return the platform-appropriate config directory, creating it if needed."""
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    directory = base / APP_NAME
    directory.mkdir(parents=True, exist_ok=True)
    return directory


# =============================================================================
# DEFAULT RESOLUTIONS: built-in fallback when resolutions.json is missing
# =============================================================================
# name -> "<w>x<h>"; ratios are reduced when loaded
DEFAULT_RESOLUTIONS = {
    "HD": "1920x1080",
    "Ultrawide": "3440x1440",
    "Vertical": "1440x2560",
    "Framework": "2256x1504",
    "Square": "1x1",
}

# Store file name inside config_dir()
WALLPAPERS_CSV = "wallpapers.csv"

# Images smaller than this are reported rather than cropped
MIN_WIDTH = 1920
MIN_HEIGHT = 1080

# PNG compression level (0-9, 9 = maximum compression)
PNG_COMPRESS_LEVEL = 9

# JPEG export defaults
JPEG_QUALITY_DEFAULT = 95
JPEG_SUBSAMPLING_DEFAULT = 0  # Pillow value for 4:4:4

# Output format options
OUTPUT_FORMATS = ["PNG", "JPEG"]
OUTPUT_FORMAT_DEFAULT = "PNG"

# Supported image extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".tiff", ".tif", ".webp", ".psd"}

# ---------------------------------------------------------------------------
# Face detector availability detection
# ---------------------------------------------------------------------------
# The detector prints a JSON array of {xmin, xmax, ymin, ymax} objects.
FACE_DETECTOR_CMD = os.environ.get("WALLPAPER_FACE_DETECTOR", "anime-face-detector")
FACE_DETECTOR_TIMEOUT = 300  # seconds per image

# Looked up on PATH only
HAS_FACE_DETECTOR = shutil.which(FACE_DETECTOR_CMD) is not None
