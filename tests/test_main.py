import numpy as np
import pytest
from PIL import Image

from scribble_kde.cste import ClassInfo, DataPath
from scribble_kde.exceptions import DimensionMismatch
from scribble_kde.io_utils import load_densities_tsv
from scribble_kde.main import run_pipeline


def write_scribble(path, shape, rows, cols):
    sheet = np.full(shape, 255, dtype=np.uint8)
    sheet[rows, cols] = 0
    Image.fromarray(sheet).save(path)


@pytest.fixture
def two_color_scene(tmp_path):
    """8x8 image, red left half, blue right half, one scribble per half."""
    rgb = np.zeros((8, 8, 3), dtype=np.uint8)
    rgb[:, :4, 0] = 255
    rgb[:, 4:, 2] = 255
    img_path = tmp_path / "img.png"
    Image.fromarray(rgb).save(img_path)

    fg_path = tmp_path / "fg.png"
    bg_path = tmp_path / "bg.png"
    write_scribble(fg_path, (8, 8), slice(2, 6), slice(1, 3))
    write_scribble(bg_path, (8, 8), slice(2, 6), slice(5, 7))
    return str(img_path), str(fg_path), str(bg_path)


def test_run_pipeline_separates_two_colors(two_color_scene, tmp_path):
    img_path, fg_path, bg_path = two_color_scene
    out_dir = tmp_path / "results"

    maps = run_pipeline(img_path, fg_path, bg_path, output_dir=str(out_dir), num_workers=1)

    fg_map = maps[ClassInfo.FOREGROUND]
    bg_map = maps[ClassInfo.BACKGROUND]
    np.testing.assert_array_equal(fg_map.values[:, :4], 1.0)
    np.testing.assert_array_equal(fg_map.values[:, 4:], 0.0)
    np.testing.assert_array_equal(bg_map.values[:, :4], 0.0)
    np.testing.assert_array_equal(bg_map.values[:, 4:], 1.0)

    for name in (DataPath.DENSITIES_NOMEDFILTER, DataPath.DENSITIES_MEDFILTER):
        fg_tables, bg_tables = load_densities_tsv(str(out_dir / name))
        assert len(fg_tables) == len(bg_tables) == 3

    for class_name in ClassInfo.CLASS_NAMES:
        assert (out_dir / f"{class_name}_prob.png").exists()
        assert (out_dir / f"{class_name}_prob.txt").exists()


def test_run_pipeline_log_space(two_color_scene, tmp_path):
    img_path, fg_path, bg_path = two_color_scene

    maps = run_pipeline(
        img_path, fg_path, bg_path, output_dir=str(tmp_path / "log"), log_space=True, num_workers=1
    )

    fg_map = maps[ClassInfo.FOREGROUND]
    assert fg_map.log_space
    np.testing.assert_array_equal(fg_map.values[:, :4], 0.0)
    assert np.all(fg_map.values[:, 4:] == -np.inf)


def test_run_pipeline_rejects_mismatched_scribble(two_color_scene, tmp_path):
    img_path, fg_path, _ = two_color_scene
    small_bg = tmp_path / "small_bg.png"
    write_scribble(small_bg, (4, 4), slice(0, 2), slice(0, 2))

    with pytest.raises(DimensionMismatch):
        run_pipeline(img_path, fg_path, str(small_bg), output_dir=str(tmp_path / "x"), num_workers=1)


def test_run_pipeline_shows_heatmaps_when_asked(two_color_scene, tmp_path, monkeypatch):
    import scribble_kde.main as main

    shown = []
    monkeypatch.setattr(main, "show_image", lambda img, name: shown.append((name, img.shape)))
    img_path, fg_path, bg_path = two_color_scene

    run_pipeline(img_path, fg_path, bg_path, output_dir=str(tmp_path / "s"), num_workers=1, show=True)

    assert [name for name, _ in shown] == [f"{c} probability" for c in ClassInfo.CLASS_NAMES]
    assert all(shape == (8, 8, 3) for _, shape in shown)


def test_run_pipeline_hides_heatmaps_by_default(two_color_scene, tmp_path, monkeypatch):
    import scribble_kde.main as main

    shown = []
    monkeypatch.setattr(main, "show_image", lambda img, name: shown.append(name))
    img_path, fg_path, bg_path = two_color_scene

    run_pipeline(img_path, fg_path, bg_path, output_dir=str(tmp_path / "h"), num_workers=1)

    assert shown == []


@pytest.mark.parametrize("smooth", [None, 0, 1])
def test_run_pipeline_accepts_non_bool_smooth(two_color_scene, tmp_path, smooth):
    img_path, fg_path, bg_path = two_color_scene

    maps = run_pipeline(
        img_path, fg_path, bg_path, output_dir=str(tmp_path / "t"), smooth=smooth, num_workers=1
    )

    np.testing.assert_array_equal(maps[ClassInfo.FOREGROUND].values[:, :4], 1.0)
    np.testing.assert_array_equal(maps[ClassInfo.FOREGROUND].values[:, 4:], 0.0)
