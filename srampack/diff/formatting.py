"""CLI-friendly rendering for comparison results."""

from __future__ import annotations

from srampack.diff.models import ChangeDescriptor, ComparisonResult


def render_comparison_summary(result: ComparisonResult) -> str:
    summary = result.summary()
    return (
        f"layout={result.layout_name} unit={result.unit_width} "
        f"regions={summary['regions']} changed_regions={summary['changed_regions']} "
        f"changed_units={summary['changed_units']}"
    )


def render_region_diffs(result: ComparisonResult, *, show_binary: bool = False) -> str:
    if result.identical:
        return "no differences detected"

    lines: list[str] = []
    for region in result.regions:
        if region.marker is None:
            continue
        lines.append(
            f"[{region.name}] base=0x{region.base_offset:04X} length={region.length} "
            f"changed_units={region.changed_units}"
        )
        for change in region.changes:
            lines.append(f"  {render_change(change)}")
            if show_binary:
                lines.append(
                    f"      {format_binary(change.comparison, change.width)} -> "
                    f"{format_binary(change.current, change.width)}"
                )
        if region.truncated_changes:
            lines.append("  ... additional changes omitted")
    return "\n".join(lines)


def render_change(change: ChangeDescriptor) -> str:
    digits = change.width * 2
    label = f" ({change.name})" if change.name else ""
    bit_note = " single-bit" if change.single_bit else ""
    return (
        f"0x{change.offset:04X}{label}: "
        f"0x{change.comparison:0{digits}X} -> 0x{change.current:0{digits}X} "
        f"delta={change.delta:+d} flipped={change.flipped_bits}{bit_note}"
    )


def format_binary(value: int, width: int) -> str:
    """Render ``value`` as nibble groups, e.g. ``0000-0101`` for 5 at width 1."""
    bits = f"{value:0{width * 8}b}"
    return "-".join(bits[index : index + 4] for index in range(0, len(bits), 4))
