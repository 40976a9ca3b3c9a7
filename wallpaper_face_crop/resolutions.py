"""
Resolutions persistence: load, save, and validate the named target resolutions.

Runtime resolutions are stored in a JSON file in the user's config directory
(provided by ``config.config_dir()``).  On first launch (or if the file is
missing/corrupt), the file is created from DEFAULT_RESOLUTIONS.

The on-disk format uses a versioned envelope::

    {"version": 1, "resolutions": {"HD": "1920x1080", "Square": "1x1"}}

Loaded resolutions are returned as ``{name: AspectRatio}`` ordered by ratio,
which is also the column order of the wallpaper store.
"""

import json
import logging
from pathlib import Path

from wallpaper_face_crop.config import DEFAULT_RESOLUTIONS, config_dir
from wallpaper_face_crop.models import AspectRatio, InvalidAspectRatio

logger = logging.getLogger(__name__)

_RESOLUTIONS_FILENAME = "resolutions.json"
_FORMAT_VERSION = 1

# Column names used by the wallpaper store
_RESERVED_NAMES = frozenset({"filename", "width", "height", "faces"})


def _resolutions_path() -> Path:
    """Return the full path to resolutions.json."""
    return config_dir() / _RESOLUTIONS_FILENAME


def sort_resolutions(resolutions: dict[str, AspectRatio]) -> dict[str, AspectRatio]:
    """Order resolutions by aspect ratio, narrowest first."""
    return dict(sorted(resolutions.items(), key=lambda item: item[1]))


def default_resolutions() -> dict[str, AspectRatio]:
    return sort_resolutions({name: AspectRatio.parse(v) for name, v in DEFAULT_RESOLUTIONS.items()})


# =============================================================================
# Validation
# =============================================================================
def validate_resolutions(data: object) -> list[str]:
    """
    Validate a ``{name: "<w>x<h>"}`` mapping.

    Returns a list of error strings (empty means valid).
    """
    errors: list[str] = []

    if not isinstance(data, dict):
        errors.append("Resolutions data must be a dict")
        return errors

    if not data:
        errors.append("At least one resolution is required")

    ratios_seen: dict[AspectRatio, str] = {}

    for name, value in data.items():
        if not isinstance(name, str) or not name.strip():
            errors.append(f"Resolution name must be a non-empty string, got {name!r}")
            continue
        if name != name.strip() or "," in name:
            errors.append(f"'{name}': name must not contain commas or surrounding spaces")
        if name.lower() in _RESERVED_NAMES:
            errors.append(f"'{name}': name is reserved")

        try:
            ratio = AspectRatio.parse(value)
        except InvalidAspectRatio:
            errors.append(f"'{name}': value must be '<width>x<height>', got {value!r}")
            continue

        # Two names for the same reduced ratio would always get the same crop
        if ratio in ratios_seen:
            errors.append(
                f"'{name}': aspect ratio {ratio} duplicates resolution '{ratios_seen[ratio]}'"
            )
        else:
            ratios_seen[ratio] = name

    return errors


# =============================================================================
# Load / Save
# =============================================================================
def load_resolutions() -> dict[str, AspectRatio]:
    """
    Load resolutions from resolutions.json.

    If the file is missing, corrupt, or fails validation, writes the
    defaults and returns them.
    """
    path = _resolutions_path()

    if not path.exists():
        logger.info("resolutions.json not found — creating with defaults at %s", path)
        _write_defaults(path)
        return default_resolutions()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read resolutions.json (%s) — restoring defaults", exc)
        _write_defaults(path)
        return default_resolutions()

    if not isinstance(raw, dict) or "version" not in raw or "resolutions" not in raw:
        logger.warning("resolutions.json missing version envelope — restoring defaults")
        _write_defaults(path)
        return default_resolutions()

    data = raw["resolutions"]
    errors = validate_resolutions(data)
    if errors:
        logger.warning(
            "resolutions.json validation failed:\n  %s\nRestoring defaults.",
            "\n  ".join(errors),
        )
        _write_defaults(path)
        return default_resolutions()

    return sort_resolutions({name: AspectRatio.parse(value) for name, value in data.items()})


def save_resolutions(resolutions: dict[str, AspectRatio]) -> None:
    """
    Validate and write resolutions to resolutions.json in versioned envelope.

    Raises ValueError if validation fails.
    Raises OSError if the file cannot be written.
    """
    data = {name: str(ratio) for name, ratio in resolutions.items()}
    errors = validate_resolutions(data)
    if errors:
        raise ValueError("Invalid resolutions data:\n  " + "\n  ".join(errors))

    envelope = {"version": _FORMAT_VERSION, "resolutions": data}
    path = _resolutions_path()
    path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Saved %d resolution(s) to %s", len(data), path)


def _write_defaults(path: Path) -> None:
    """Write DEFAULT_RESOLUTIONS to the given path in versioned envelope."""
    try:
        envelope = {"version": _FORMAT_VERSION, "resolutions": dict(DEFAULT_RESOLUTIONS)}
        path.write_text(json.dumps(envelope, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        logger.error("Could not write default resolutions to %s: %s", path, exc)


# =============================================================================
# Editing helpers
# =============================================================================
def add_resolution(
    resolutions: dict[str, AspectRatio], name: str, ratio: AspectRatio,
) -> dict[str, AspectRatio]:
    """Return a copy of *resolutions* with *name* added, kept in ratio order."""
    updated = dict(resolutions)
    updated[name] = ratio
    return sort_resolutions(updated)


def closest_resolution(resolutions: dict[str, AspectRatio], ratio: AspectRatio) -> str | None:
    """
    Name of the configured resolution nearest to *ratio*, ignoring an exact match.

    Used to seed the crop for a newly added resolution from an existing one.
    """
    best = None
    best_diff = float("inf")
    for name, existing in resolutions.items():
        diff = abs(float(existing) - float(ratio))
        if diff == 0.0:
            continue
        if diff < best_diff:
            best, best_diff = name, diff
    return best
