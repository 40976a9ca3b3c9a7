from pathlib import Path

import pytest
from PIL import Image


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """Redirect every persistence module to a throwaway config directory."""
    home = tmp_path / "config"
    home.mkdir()
    monkeypatch.setattr("wallpaper_face_crop.resolutions.config_dir", lambda: home)
    monkeypatch.setattr("wallpaper_face_crop.wallpapers.config_dir", lambda: home)
    return home


@pytest.fixture
def make_image(tmp_path):
    """Write a solid-colour image of the given size and return its path."""
    def _make(name: str, width: int, height: int, folder: Path | None = None) -> Path:
        folder = folder or tmp_path / "images"
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / name
        Image.new("RGB", (width, height), (40, 80, 120)).save(path)
        return path
    return _make
