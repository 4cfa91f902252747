from PIL import Image

from sprite2gif import cli
from spritesheet2gif.core import GridEstimate

from conftest import build_sheet


def write_sheet(tmp_path, rows=1, cols=2, **kwargs):
    path = tmp_path / "sheet.png"
    build_sheet(rows, cols, **kwargs).save(path)
    return path


def test_build_parser_creates_arguments():
    parser = cli.build_parser()
    args = parser.parse_args(
        ["sheet.png", "out.gif", "--rows", "2", "--fps", "8", "--crop", "1", "2", "3", "4", "--dry-run"]
    )
    assert args.input.name == "sheet.png"
    assert args.output.name == "out.gif"
    assert args.rows == 2
    assert args.cols is None
    assert args.fps == 8
    assert args.crop == [1.0, 2.0, 3.0, 4.0]
    assert args.dry_run is True


def test_config_from_args_uses_whole_grid_by_default():
    args = cli.build_parser().parse_args(["sheet.png", "--rows", "2", "--cols", "3", "--exclude", "1,4-5"])
    config = cli.config_from_args(args)
    assert config.total_frames == 6
    assert config.excluded_frames == frozenset({1, 4, 5})
    assert config.use_flood_fill is True


def test_main_dry_run_writes_nothing(tmp_path, capsys):
    sheet = write_sheet(tmp_path)
    output = tmp_path / "out.gif"
    assert cli.main([str(sheet), str(output), "--rows", "1", "--cols", "2", "--dry-run"]) == 0
    assert not output.exists()
    assert "Frames: 2" in capsys.readouterr().out


def test_main_writes_gif(tmp_path):
    sheet = write_sheet(tmp_path)
    output = tmp_path / "nested" / "out.gif"
    assert cli.main([str(sheet), str(output), "--rows", "1", "--cols", "2", "--transparent", "#ffffff"]) == 0
    with Image.open(output) as gif:
        assert gif.n_frames == 2
        assert gif.size == (10, 10)


def test_main_defaults_output_next_to_input(tmp_path):
    sheet = write_sheet(tmp_path)
    assert cli.main([str(sheet), "--rows", "1", "--cols", "2"]) == 0
    assert (tmp_path / "sheet.gif").exists()


def test_main_reports_bad_crop(tmp_path, capsys):
    sheet = write_sheet(tmp_path)
    assert cli.main([str(sheet), "--rows", "1", "--cols", "2", "--crop", "0", "0", "6", "6"]) == 1
    assert "Crop exceeds cell size" in capsys.readouterr().err


def test_main_reports_missing_input(tmp_path):
    assert cli.main([str(tmp_path / "missing.png")]) == 1


def test_estimate_grid_keeps_explicit_flags(tmp_path, monkeypatch, capsys):
    class FakeEstimator:
        def estimate(self, image):
            return GridEstimate(rows=2, cols=2, total_frames=3)

    monkeypatch.setattr(cli, "GeminiGridEstimator", FakeEstimator)
    sheet = write_sheet(tmp_path, rows=2, cols=2)
    assert cli.main([str(sheet), "--estimate-grid", "--total-frames", "4", "--dry-run"]) == 0
    assert "Frames: 4" in capsys.readouterr().out
