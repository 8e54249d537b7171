from pathlib import Path

import pytest

from srampack.diff import (
    ALL_FLAGS,
    ComparisonFlag,
    ComparisonOptions,
    ComparisonSession,
    DiffContractError,
    RegionMarker,
    SessionStateError,
    parse_comparison_flags,
)
from srampack.marshal import RecordLayout, bytes_field, load_layout_from_file, opaque_layout
from srampack.savefile import SaveFile

DEMO_LAYOUT = Path(__file__).resolve().parents[1] / "examples" / "layouts" / "demo_rpg.json"
SLOT_BASE = 16
SLOT_SIZE = 256
SETTINGS_BASE = SLOT_BASE + 4 * SLOT_SIZE


def _demo_pair() -> tuple[SaveFile, SaveFile]:
    layout = load_layout_from_file(DEMO_LAYOUT)
    return (
        SaveFile.from_bytes(bytes(8192), layout),
        SaveFile.from_bytes(bytes(8192), layout),
    )


def test_identical_saves_report_no_changes() -> None:
    current, comparison = _demo_pair()

    result = ComparisonSession(current, comparison).run()

    assert result.identical is True
    assert result.total_changed_units == 0
    assert list(result.events()) == []
    # four slots plus header, settings and unused
    assert [region.name for region in result.regions] == [
        "slot_1",
        "slot_2",
        "slot_3",
        "slot_4",
        "header",
        "settings",
        "unused",
    ]


def test_slot_changes_are_labelled_with_slot_fields() -> None:
    current, comparison = _demo_pair()
    current.write_offset(0x09, 300, slot=2)
    current.write_offset(2, 1, 1)
    current.write_offset(SETTINGS_BASE + 2, 2)

    result = ComparisonSession(current, comparison).run()

    assert result.total_changed_units == 4
    slot_2 = next(region for region in result.regions if region.name == "slot_2")
    assert slot_2.marker == RegionMarker(name="slot_2", base_offset=SLOT_BASE + SLOT_SIZE, length=256)
    assert [(change.offset, change.name, change.current) for change in slot_2.changes] == [
        (0x09, "hp", 0x01),
        (0x0A, "hp", 0x2C),
    ]
    assert slot_2.changes[0].absolute_offset == SLOT_BASE + SLOT_SIZE + 0x09

    header = next(region for region in result.regions if region.name == "header")
    assert [change.name for change in header.changes] == ["header[2]"]

    settings = next(region for region in result.regions if region.name == "settings")
    assert settings.changes[0].offset == 2
    assert settings.changes[0].name == "settings.last_slot"


def test_events_stream_orders_markers_before_their_changes() -> None:
    current, comparison = _demo_pair()
    current.write_offset(0, 1, slot=1)
    current.write_offset(0, 1, slot=3)

    events = list(ComparisonSession(current, comparison).run().events())

    assert [type(event).__name__ for event in events] == [
        "RegionMarker",
        "ChangeDescriptor",
        "RegionMarker",
        "ChangeDescriptor",
    ]
    assert events[2].name == "slot_3"


def test_cross_slot_comparison_pairs_selected_slots() -> None:
    current, comparison = _demo_pair()
    comparison.write_offset(0x08, 5, slot=3)

    options = ComparisonOptions(
        flags=ComparisonFlag.SLOT_BYTES,
        current_slot=1,
        comparison_slot=3,
    )
    result = ComparisonSession(current, comparison, options).run()

    assert [region.name for region in result.regions] == ["slot_1<>slot_3"]
    change = result.regions[0].changes[0]
    assert change.name == "level"
    assert change.delta == -5
    assert change.absolute_offset == SLOT_BASE + 0x08


def test_same_slot_is_used_when_comparison_slot_is_zero() -> None:
    current, comparison = _demo_pair()
    current.write_offset(0, 9, slot=2)

    options = ComparisonOptions(flags=ComparisonFlag.SLOT_BYTES, current_slot=2)
    result = ComparisonSession(current, comparison, options).run()

    assert [region.name for region in result.regions] == ["slot_2"]
    assert result.total_changed_units == 1


def test_whole_buffer_mode_uses_one_region() -> None:
    current, comparison = _demo_pair()
    current.write_offset(SLOT_BASE + 0x0D, 1)

    options = ComparisonOptions(flags=ComparisonFlag.WHOLE_BUFFER | ComparisonFlag.NON_SLOT)
    result = ComparisonSession(current, comparison, options).run()

    assert [region.name for region in result.regions] == ["buffer"]
    assert result.regions[0].changes[0].name == "slot_1.gold"


def test_word_units_with_reverse_byte_order() -> None:
    layout = opaque_layout(4)
    current = SaveFile.from_bytes(b"\x12\x34\x00\x00", layout)
    comparison = SaveFile.from_bytes(b"\x00\x00\x00\x00", layout)

    plain = ComparisonSession(current, comparison, ComparisonOptions(unit_width=2)).run()
    reversed_ = ComparisonSession(
        current,
        comparison,
        ComparisonOptions(unit_width=2, reverse_byte_order=True),
    ).run()

    assert plain.regions[0].changes[0].current == 0x3412
    assert reversed_.regions[0].changes[0].current == 0x1234
    assert reversed_.to_dict()["reverse_byte_order"] is True


def test_session_is_single_use() -> None:
    current, comparison = _demo_pair()
    session = ComparisonSession(current, comparison)

    session.run()

    assert session.state == "done"
    with pytest.raises(SessionStateError):
        session.run()


def test_size_mismatch_and_bad_slots_are_contract_errors() -> None:
    current, _ = _demo_pair()
    small = SaveFile.from_bytes(bytes(16), opaque_layout(16))

    with pytest.raises(DiffContractError, match="differ in size"):
        ComparisonSession(current, small)

    current, comparison = _demo_pair()
    with pytest.raises(DiffContractError, match="between 1 and 4"):
        ComparisonSession(current, comparison, ComparisonOptions(current_slot=5)).run()

    plain = SaveFile.from_bytes(bytes(16), opaque_layout(16))
    with pytest.raises(DiffContractError, match="no save slots"):
        ComparisonSession(plain, small, ComparisonOptions(current_slot=1)).run()


def test_options_validate_eagerly() -> None:
    with pytest.raises(DiffContractError):
        ComparisonOptions(unit_width=3)
    with pytest.raises(DiffContractError):
        ComparisonOptions(current_slot=-1)
    with pytest.raises(DiffContractError):
        ComparisonOptions(max_changes=-1)


def test_saves_with_different_layouts_are_contract_errors() -> None:
    split = RecordLayout(name="split", fields=(bytes_field("header", 4), bytes_field("body", 4)))
    current = SaveFile.from_bytes(bytes(8), split)
    comparison = SaveFile.from_bytes(bytes(8), opaque_layout(8))

    with pytest.raises(DiffContractError, match="different layouts"):
        ComparisonSession(current, comparison)


def test_slot_selection_needs_a_flag_that_compares_slots() -> None:
    with pytest.raises(DiffContractError, match="requires the slot_bytes flag"):
        ComparisonOptions(flags=ComparisonFlag.NON_SLOT, comparison_slot=2)
    with pytest.raises(DiffContractError, match="whole_buffer"):
        ComparisonOptions(flags=ComparisonFlag.WHOLE_BUFFER, current_slot=1)
    with pytest.raises(DiffContractError, match="whole_buffer"):
        ComparisonOptions(flags=ALL_FLAGS, current_slot=1)

    options = ComparisonOptions(flags=ComparisonFlag.WHOLE_BUFFER)
    assert options.current_slot == 0


def test_parse_comparison_flags() -> None:
    assert parse_comparison_flags(["slot_bytes", "NON-SLOT"]) == (
        ComparisonFlag.SLOT_BYTES | ComparisonFlag.NON_SLOT
    )
    assert parse_comparison_flags([]) == ComparisonFlag.NONE
    with pytest.raises(ValueError, match="whole_buffer"):
        parse_comparison_flags(["everything"])

    assert ComparisonOptions().to_dict()["flags"] == ["slot_bytes", "non_slot"]
