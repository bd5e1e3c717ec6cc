from __future__ import annotations

import json

import pytest

from gpu_layout.compiler.cli import main

LIGHTS = """
const N = 2u;
type Light = struct { position: vec<3, f32>, intensity: f32 };
type Lights = array<Light, N>;
"""


@pytest.fixture(autouse=True)
def _plain_output(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("NO_COLOR", "1")


def test_requires_source(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 2
    assert "source file required" in capsys.readouterr().err


def test_missing_file(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main([str(tmp_path / "missing.types")]) == 2
    assert "cannot read" in capsys.readouterr().err


def test_version_banner(capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["--version"]) == 0
    assert "gpu-layout" in capsys.readouterr().out


def test_table_output(write_source, capsys: pytest.CaptureFixture[str]) -> None:
    path = write_source(LIGHTS)

    assert main([str(path), "--members"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[0].split() == ["#", "name", "kind", "size", "align"]
    rows = {line.split()[1]: line.split() for line in out[1:] if not line.startswith(" " * 8)}
    assert rows["Light"][2:] == ["struct", "16", "16"]
    assert rows["Lights"][2:] == ["array", "32", "16"]
    assert any(".position: vec3<f32> @ 0..12 (align 16)" in line for line in out)
    assert any(".intensity: f32 @ 12..16 (align 4)" in line for line in out)


def test_json_output(write_source, capsys: pytest.CaptureFixture[str]) -> None:
    path = write_source(LIGHTS)

    assert main([str(path), "--json", "--llvm"]) == 0

    doc = json.loads(capsys.readouterr().out)
    by_name = {row["name"]: row for row in doc["types"] if row["name"]}
    light = by_name["Light"]
    assert (light["size"], light["alignment"]) == (16, 16)
    assert [(m["name"], m["offset"], m["end"]) for m in light["members"]] == [
        ("position", 0, 12), ("intensity", 12, 16),
    ]
    assert light["llvm"] == "<{[3 x float], float}>"
    assert by_name["Lights"]["llvm"] == "[2 x <{[3 x float], float}>]"


def test_description_errors_exit_2(write_source, capsys: pytest.CaptureFixture[str]) -> None:
    path = write_source("type A = array<Missing>;\n")

    assert main([str(path)]) == 2
    assert "[CE1003]" in capsys.readouterr().err


def test_warnings_exit_1(write_source, capsys: pytest.CaptureFixture[str]) -> None:
    path = write_source("type E = struct {};\n")

    assert main([str(path)]) == 1
    assert "[CW1001]" in capsys.readouterr().err


def test_internal_error_reported_by_default(write_source, capsys: pytest.CaptureFixture[str]) -> None:
    path = write_source("const L = 1.5; type A = array<f32, L>;\n")

    assert main([str(path)]) == 2
    assert "[CE0001]" in capsys.readouterr().err


def test_internal_error_fatal_mode(write_source, capsys: pytest.CaptureFixture[str]) -> None:
    path = write_source("const L = 1.5; type A = array<f32, L>;\n")

    assert main([str(path), "--fatal"]) == 2
    assert capsys.readouterr().err.startswith("fatal: CE0001:")
