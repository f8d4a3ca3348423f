import io

import pytest

from gcodexform.cli.transform import main

pytestmark = pytest.mark.unit


def test_file_to_file(tmp_path):
    source = tmp_path / "in.nc"
    target = tmp_path / "out.nc"
    source.write_text("G1 X10 Y0\n(done)\n")
    assert main([str(source), "-o", str(target), "--stage", "mirror:x=5"]) == 0
    assert target.read_text() == "G1 X0 Y0\n(done)\n"


def test_stdin_to_stdout(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("g1 x1.50\n"))
    assert main(["--stage", "normalize", "--stage", "scale:factor=2"]) == 0
    assert capsys.readouterr().out == "G1 X3\n"


def test_abort_returns_error_code(tmp_path):
    source = tmp_path / "in.nc"
    source.write_text("G1 X1\nG1 X1Y\nG1 X2\n")
    target = tmp_path / "out.nc"
    assert main([str(source), "-o", str(target)]) == 1
    assert target.read_text() == "G1 X1\n"


def test_on_error_drop(tmp_path):
    source = tmp_path / "in.nc"
    source.write_text("G1 X1\nG1 X1Y\nG1 X2\n")
    target = tmp_path / "out.nc"
    assert main([str(source), "-o", str(target), "--on-error", "drop"]) == 0
    assert target.read_text() == "G1 X1\nG1 X2\n"


@pytest.mark.parametrize("stage", ["warp", "mirror", "mirror:x=1,angle=2", "feed:percent=abc"])
def test_bad_stage(tmp_path, stage):
    source = tmp_path / "in.nc"
    source.write_text("G1 X1\n")
    assert main([str(source), "--stage", stage]) == 2


def test_missing_input(tmp_path):
    assert main([str(tmp_path / "missing.nc")]) == 2


def test_list(capsys):
    assert main(["--list"]) == 0
    out = capsys.readouterr().out
    assert "mirror" in out
    assert "arc" in out
