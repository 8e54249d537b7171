import json
from pathlib import Path

import pytest

from srampack.config import (
    ComparisonConfigError,
    comparison_options_from_config,
    load_comparison_options_from_file,
)
from srampack.diff import ComparisonFlag, ComparisonOptions

EXAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "examples" / "compare_config.json"


def test_example_config_loads() -> None:
    options = load_comparison_options_from_file(EXAMPLE_CONFIG)

    assert options.flags == ComparisonFlag.SLOT_BYTES | ComparisonFlag.NON_SLOT
    assert options.unit_width == 2
    assert options.max_changes == 16


def test_config_overlays_base_options() -> None:
    base = ComparisonOptions(unit_width=4, max_changes=7)

    options = comparison_options_from_config(
        {"flags": ["whole_buffer"], "reverse_byte_order": True},
        base=base,
    )

    assert options.flags == ComparisonFlag.WHOLE_BUFFER
    assert options.reverse_byte_order is True
    assert options.unit_width == 4
    assert options.max_changes == 7
    assert base.reverse_byte_order is False


def test_max_changes_may_be_reset_to_unlimited() -> None:
    options = comparison_options_from_config(
        {"max_changes": None},
        base=ComparisonOptions(max_changes=5),
    )

    assert options.max_changes is None


@pytest.mark.parametrize(
    ("config", "message"),
    [
        ({"colour": "red"}, "Unsupported comparison config keys: colour"),
        ({"flags": "slot_bytes"}, "list of strings"),
        ({"flags": ["everything"]}, "Unknown comparison flag"),
        ({"reverse_byte_order": "yes"}, "must be a boolean"),
        ({"unit_width": True}, "must be an integer"),
        ({"unit_width": 3}, "Unit width"),
        ({"current_slot": -2}, "1-based"),
        ({"flags": ["non_slot"], "current_slot": 1}, "requires the slot_bytes flag"),
        ({"flags": ["whole_buffer", "slot_bytes"], "comparison_slot": 2}, "whole_buffer"),
        ({"max_changes": "10"}, "must be an integer"),
    ],
)
def test_invalid_config_values_are_rejected(config: dict, message: str) -> None:
    with pytest.raises(ComparisonConfigError, match=message):
        comparison_options_from_config(config)


def test_load_config_file_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_comparison_options_from_file(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(ComparisonConfigError, match="Invalid comparison config JSON"):
        load_comparison_options_from_file(broken)

    listing = tmp_path / "list.json"
    listing.write_text(json.dumps(["slot_bytes"]), encoding="utf-8")
    with pytest.raises(ComparisonConfigError, match="JSON object"):
        load_comparison_options_from_file(listing)

    # a ValueError for callers outside the CLI
    assert issubclass(ComparisonConfigError, ValueError)
