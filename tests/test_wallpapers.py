import pytest

from wallpaper_face_crop.models import AspectRatio, Face, Geometry, InvalidCoordinate
from wallpaper_face_crop.wallpapers import WallInfo, WallpaperStore

SQUARE = AspectRatio(1, 1)
RESOLUTIONS = {"Square": SQUARE, "HD": AspectRatio(16, 9)}


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "wallpapers.csv"


def test_save_and_load_round_trip(store_path):
    store = WallpaperStore(store_path, RESOLUTIONS)
    store.insert(WallInfo(
        "b.png", 3000, 1000,
        faces=[Face(900, 1100, 400, 600)],
        geometries={"Square": Geometry(500, 0, 1000, 1000)},
    ))
    store.insert(WallInfo("a.png", 1920, 1080))
    store.save()

    header = store_path.read_text(encoding="utf-8").splitlines()[0]
    assert header == "filename,width,height,faces,Square,HD"

    loaded = WallpaperStore(store_path, RESOLUTIONS).load()
    assert [info.filename for info in loaded] == ["a.png", "b.png"]
    info = loaded["b.png"]
    assert (info.width, info.height) == (3000, 1000)
    assert info.faces == [Face(900, 1100, 400, 600)]
    assert info.geometries == {"Square": Geometry(500, 0, 1000, 1000)}
    assert loaded["a.png"].geometries == {}


def test_unknown_columns_survive_round_trip(store_path):
    store = WallpaperStore(store_path, RESOLUTIONS)
    store.insert(WallInfo("a.png", 3000, 1000, geometries={"Old": Geometry(0, 0, 1500, 1000)}))
    store.save()

    loaded = WallpaperStore(store_path, RESOLUTIONS).load()
    assert loaded["a.png"].geometries["Old"] == Geometry(0, 0, 1500, 1000)


def test_missing_file_is_empty(store_path):
    store = WallpaperStore(store_path, RESOLUTIONS).load()
    assert len(store) == 0
    assert "a.png" not in store


def test_default_path_in_config_dir(config_home):
    assert WallpaperStore().path == config_home / "wallpapers.csv"


def test_malformed_geometry_names_row_and_column(store_path):
    store_path.write_text(
        "filename,width,height,faces,Square\n"
        "a.png,3000,1000,[],1000x1000+oops\n",
        encoding="utf-8",
    )
    with pytest.raises(InvalidCoordinate, match="a.png: column 'Square'"):
        WallpaperStore(store_path, RESOLUTIONS).load()


@pytest.mark.parametrize("faces_cell", ['"not json"', '"[[1, 2, 3]]"', '"[[5, 1, 0, 1]]"'])
def test_malformed_faces_rejected(store_path, faces_cell):
    store_path.write_text(
        f"filename,width,height,faces\na.png,3000,1000,{faces_cell}\n",
        encoding="utf-8",
    )
    with pytest.raises(ValueError, match="a.png"):
        WallpaperStore(store_path, RESOLUTIONS).load()


def test_lookup_ignores_resized_image(store_path):
    store = WallpaperStore(store_path, RESOLUTIONS)
    store.insert(WallInfo("a.png", 3000, 1000))

    assert store.lookup("a.png", 3000, 1000) is store["a.png"]
    assert store.lookup("a.png", 6000, 2000) is None
    assert store.lookup("missing.png", 3000, 1000) is None


def test_get_geometry_falls_back_to_cropper():
    info = WallInfo("a.png", 3000, 1000, geometries={"HD": Geometry(0, 0, 1777, 1000)})
    assert info.get_geometry("HD", AspectRatio(16, 9)) == Geometry(0, 0, 1777, 1000)
    assert info.get_geometry("Square", SQUARE) == Geometry(1000, 0, 1000, 1000)


def test_set_geometry_rejects_out_of_bounds():
    info = WallInfo("a.png", 3000, 1000)
    with pytest.raises(ValueError):
        info.set_geometry("Square", Geometry(2500, 0, 1000, 1000))


def test_is_default_crops():
    info = WallInfo("a.png", 3000, 1000)
    assert info.is_default_crops(RESOLUTIONS)

    info.set_geometry("Square", Geometry(0, 0, 1000, 1000))
    assert not info.is_default_crops(RESOLUTIONS)


def test_candidates_use_faces():
    info = WallInfo("a.png", 2000, 1000, faces=[Face(900, 1100, 400, 600)])
    assert info.candidates(SQUARE) == [Geometry(500, 0, 1000, 1000)]


def test_seed_geometry_follows_adjusted_crop():
    info = WallInfo("a.png", 3000, 1000, geometries={"Square": Geometry(0, 0, 1000, 1000)})
    classic = AspectRatio(4, 3)

    assert info.seed_geometry(classic, "Square", SQUARE) == Geometry(0, 0, 1333, 1000)


def test_seed_geometry_uses_default_when_untouched():
    info = WallInfo("a.png", 3000, 1000, geometries={"Square": Geometry(1000, 0, 1000, 1000)})
    classic = AspectRatio(4, 3)

    assert info.seed_geometry(classic, "Square", SQUARE) == Geometry(833, 0, 1333, 1000)
    assert info.seed_geometry(classic, None, None) == Geometry(833, 0, 1333, 1000)
