import importlib
import json
from pathlib import Path

import pytest

cli_main = importlib.import_module("tpkexport.cli.main")


def test_export_writes_tiles_and_summary(make_tpk, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    tpk = make_tpk(bundles={"L01/R0000C0000.bundle": {(0, 0): b"a", (1, 0): b"b"}})
    out_dir = tmp_path / "out"
    summary_path = tmp_path / "summary.json"

    exit_code = cli_main.main(
        [
            "export",
            str(tpk),
            "--out",
            str(out_dir),
            "--zoom",
            "1",
            "--workers",
            "1",
            "--summary",
            str(summary_path),
        ]
    )

    assert exit_code == 0
    assert (out_dir / "1" / "0" / "0.png").read_bytes() == b"a"
    assert (out_dir / "1" / "1" / "0.png").read_bytes() == b"b"
    summary = json.loads(summary_path.read_text())
    assert summary["tiles_written"] == 2
    assert summary["zoom_levels"] == [1]
    assert summary["bundles_exported"] == 1
    assert summary["bundles_cancelled"] == 0


def test_export_without_tiles_is_partial(make_tpk, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    exit_code = cli_main.main(["export", str(make_tpk()), "--out", str(tmp_path / "out"), "--no-metadata"])

    assert exit_code == cli_main.EXIT_PARTIAL
    assert not (tmp_path / "out" / "metadata.json").exists()


def test_export_mixed_package_is_fatal(make_tpk, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    tpk = make_tpk(tile_format="MIXED", bundles={"L01/R0000C0000.bundle": {(0, 0): b"a"}})

    exit_code = cli_main.main(["export", str(tpk), "--out", str(tmp_path / "out")])

    assert exit_code == cli_main.EXIT_FATAL
    assert not (tmp_path / "out").exists()


@pytest.mark.parametrize("package", ["", "missing.tpk"])
def test_export_rejects_bad_package_path(package: str, tmp_path: Path) -> None:
    exit_code = cli_main.main(["export", package, "--out", str(tmp_path / "out")])

    assert exit_code == cli_main.EXIT_FATAL
    assert not (tmp_path / "out").exists()


def test_export_uses_config_file(make_tpk, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    tpk = make_tpk(
        bundles={
            "L00/R0000C0000.bundle": {(0, 0): b"z0"},
            "L01/R0000C0000.bundle": {(0, 0): b"z1"},
        }
    )
    config_path = tmp_path / "export.yaml"
    config_path.write_text("output_dir: exported\nzoom_levels: [0]\nwrite_metadata: false\n", encoding="utf-8")

    exit_code = cli_main.main(["export", str(tpk), "--config", str(config_path)])

    assert exit_code == 0
    assert (tmp_path / "exported" / "0" / "0" / "0.png").exists()
    assert not (tmp_path / "exported" / "1").exists()


def test_info_prints_package_metadata(make_tpk, capsys: pytest.CaptureFixture[str]) -> None:  # type: ignore[no-untyped-def]
    exit_code = cli_main.main(["info", str(make_tpk())])

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["name"] == "Sample"
    assert payload["format"] == "PNG"
    assert [lod["zoom"] for lod in payload["lods"]] == [0, 1, 2]
    assert payload["legend"] == ["Land cover"]


def test_export_json_log_carries_package_fields(make_tpk, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    tpk = make_tpk(bundles={"L01/R0000C0000.bundle": {(0, 0): b"a"}})
    log_file = tmp_path / "export.log"

    exit_code = cli_main.main(
        ["--log-json", "--log-file", str(log_file), "export", str(tpk), "--out", str(tmp_path / "out")]
    )

    assert exit_code == 0
    records = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
    (loaded,) = [record for record in records if record["message"] == "loaded tile package"]
    assert loaded["package_name"] == "Sample"
    (summary,) = [record for record in records if record["message"] == "export summary"]
    assert summary["bundles_exported"] == 1
    assert summary["bundles_cancelled"] == 0
