import json
from pathlib import Path

from typer.testing import CliRunner

from srampack.cli.app import app

DEMO_LAYOUT = Path(__file__).resolve().parents[1] / "examples" / "layouts" / "demo_rpg.json"
EXAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "examples" / "compare_config.json"
SLOT_2_HP = 16 + 256 + 0x09


def _write_saves(tmp_path: Path, *, edits: dict[int, int] | None = None) -> tuple[Path, Path]:
    current = bytearray(8192)
    for offset, value in (edits or {}).items():
        current[offset] = value
    current_path = tmp_path / "current.srm"
    comparison_path = tmp_path / "previous.srm"
    current_path.write_bytes(bytes(current))
    comparison_path.write_bytes(bytes(8192))
    return current_path, comparison_path


def test_cli_compare_text_output_labels_slot_changes(tmp_path: Path) -> None:
    current, comparison = _write_saves(tmp_path, edits={SLOT_2_HP + 1: 0x2C})
    runner = CliRunner()
    result = runner.invoke(
        app,
        ["compare", str(current), str(comparison), "--layout", str(DEMO_LAYOUT)],
    )

    assert result.exit_code == 0
    assert "layout=demo_rpg unit=1 regions=7 changed_regions=1 changed_units=1" in result.stdout
    assert "[slot_2] base=0x0110 length=256 changed_units=1" in result.stdout
    assert "0x000A (hp): 0x00 -> 0x2C delta=+44 flipped=3" in result.stdout


def test_cli_compare_identical_saves(tmp_path: Path) -> None:
    current, comparison = _write_saves(tmp_path)
    runner = CliRunner()
    result = runner.invoke(app, ["compare", str(current), str(comparison)])

    assert result.exit_code == 0
    assert "changed_units=0" in result.stdout
    assert "no differences detected" in result.stdout


def test_cli_compare_json_output(tmp_path: Path) -> None:
    current, comparison = _write_saves(tmp_path, edits={SLOT_2_HP: 0x01, 0: 0x80})
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "compare",
            str(current),
            str(comparison),
            "--layout",
            str(DEMO_LAYOUT),
            "--json",
        ],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout.strip())
    assert payload["status"] == "ok"
    assert payload["exit_code"] == 0
    assert payload["total_changed_units"] == 2
    assert payload["options"]["flags"] == ["slot_bytes", "non_slot"]
    changed = [region for region in payload["regions"] if region["changed_units"]]
    assert [region["name"] for region in changed] == ["slot_2", "header"]
    assert changed[1]["changes"][0]["single_bit"] is True
    assert changed[1]["changes"][0]["name"] == "header[0]"


def test_cli_compare_flags_override_config(tmp_path: Path) -> None:
    current, comparison = _write_saves(tmp_path, edits={SLOT_2_HP: 0x01})
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "compare",
            str(current),
            str(comparison),
            "--layout",
            str(DEMO_LAYOUT),
            "--config",
            str(EXAMPLE_CONFIG),
            "--unit",
            "4",
            "--slot",
            "2",
            "--no-non-slot",
            "--json",
        ],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout.strip())
    assert payload["unit_width"] == 4
    assert payload["options"]["max_changes"] == 16
    assert payload["options"]["current_slot"] == 2
    assert [region["name"] for region in payload["regions"]] == ["slot_2"]
    change = payload["regions"][0]["changes"][0]
    assert change["offset"] == 8
    assert change["width"] == 4


def test_cli_compare_whole_buffer_and_max_changes(tmp_path: Path) -> None:
    current, comparison = _write_saves(tmp_path, edits={offset: 0xFF for offset in range(8)})
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "compare",
            str(current),
            str(comparison),
            "--whole",
            "--max-changes",
            "2",
            "--json",
        ],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout.strip())
    region = payload["regions"][0]
    assert region["name"] == "buffer"
    assert region["changed_units"] == 8
    assert len(region["changes"]) == 2
    assert region["truncated_changes"] is True


def test_cli_compare_missing_file_fails(tmp_path: Path) -> None:
    current, _ = _write_saves(tmp_path)
    runner = CliRunner()
    result = runner.invoke(app, ["compare", str(current), str(tmp_path / "nope.srm")])

    assert result.exit_code == 1
    assert "compare failed: Save file not found" in result.stderr


def test_cli_compare_size_mismatch_json_error(tmp_path: Path) -> None:
    current, comparison = _write_saves(tmp_path)
    comparison.write_bytes(bytes(8191))
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "compare",
            str(current),
            str(comparison),
            "--layout",
            str(DEMO_LAYOUT),
            "--json",
        ],
    )

    assert result.exit_code == 1
    payload = json.loads(result.stdout.strip())
    assert payload["status"] == "error"
    assert payload["exit_code"] == 1
    assert "expected 8192 bytes, got 8191" in payload["message"]
    assert payload["comparison_path"] == str(comparison)


def test_cli_compare_rejects_bad_unit_and_config(tmp_path: Path) -> None:
    current, comparison = _write_saves(tmp_path)
    runner = CliRunner()

    bad_unit = runner.invoke(app, ["compare", str(current), str(comparison), "--unit", "3"])
    assert bad_unit.exit_code == 1
    assert "compare failed: Unit width must be one of" in bad_unit.stderr

    config = tmp_path / "config.json"
    config.write_text(json.dumps({"colour": "red"}), encoding="utf-8")
    bad_config = runner.invoke(
        app, ["compare", str(current), str(comparison), "--config", str(config)]
    )
    assert bad_config.exit_code == 1
    assert "Unsupported comparison config keys: colour" in bad_config.stderr


def test_cli_compare_debug_logging_goes_to_stderr(tmp_path: Path) -> None:
    current, comparison = _write_saves(tmp_path)
    runner = CliRunner()
    result = runner.invoke(
        app,
        ["--log-level", "debug", "compare", str(current), str(comparison), "--json"],
    )

    assert result.exit_code == 0
    assert json.loads(result.stdout.strip())["status"] == "ok"
    events = [json.loads(line)["event"] for line in result.stderr.splitlines() if line.strip()]
    assert "comparison_finished" in events


def test_cli_compare_exports_text_report(tmp_path: Path) -> None:
    current, comparison = _write_saves(tmp_path, edits={SLOT_2_HP + 1: 0x2C})
    export = tmp_path / "reports" / "compare.txt"
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "compare",
            str(current),
            str(comparison),
            "--layout",
            str(DEMO_LAYOUT),
            "--export",
            str(export),
        ],
    )

    assert result.exit_code == 0
    assert f"exported comparison: {export}" in result.stdout
    contents = export.read_text(encoding="utf-8")
    assert contents.startswith("layout=demo_rpg unit=1 regions=7 changed_regions=1")
    assert "[slot_2] base=0x0110 length=256 changed_units=1\n" in contents
    assert "exported comparison" not in contents


def test_cli_compare_exports_json_report(tmp_path: Path) -> None:
    current, comparison = _write_saves(tmp_path, edits={0: 0x80})
    export = tmp_path / "compare.json"
    runner = CliRunner()
    result = runner.invoke(
        app,
        ["compare", str(current), str(comparison), "--export", str(export), "--json"],
    )

    assert result.exit_code == 0
    payload = json.loads(result.stdout.strip())
    assert payload["export_path"] == str(export)
    exported = json.loads(export.read_text(encoding="utf-8"))
    assert exported["total_changed_units"] == 1
    assert exported["regions"] == payload["regions"]
    assert "status" not in exported


def test_cli_compare_reports_os_errors(tmp_path: Path) -> None:
    _, comparison = _write_saves(tmp_path)
    folder = tmp_path / "not-a-save"
    folder.mkdir()
    runner = CliRunner()
    result = runner.invoke(
        app, ["compare", str(folder), str(comparison), "--size", "8192", "--json"]
    )

    assert result.exit_code == 1
    payload = json.loads(result.stdout.strip())
    assert payload["status"] == "error"
    assert payload["message"].startswith("compare failed:")

    export_dir = tmp_path / "export-dir"
    export_dir.mkdir()
    current, comparison = _write_saves(tmp_path)
    export_failure = runner.invoke(
        app, ["compare", str(current), str(comparison), "--export", str(export_dir)]
    )
    assert export_failure.exit_code == 1
    assert "compare failed:" in export_failure.stderr


def test_cli_compare_rejects_slot_with_whole_buffer(tmp_path: Path) -> None:
    current, comparison = _write_saves(tmp_path)
    runner = CliRunner()
    result = runner.invoke(
        app,
        [
            "compare",
            str(current),
            str(comparison),
            "--layout",
            str(DEMO_LAYOUT),
            "--whole",
            "--slot",
            "1",
        ],
    )

    assert result.exit_code == 1
    assert "Slot selection cannot be combined with whole_buffer" in result.stderr
