"""Diff subsystem for SRAMKit."""

from srampack.diff.classifier import (
    ChangeClassification,
    ChangeSign,
    classify_change,
    count_flipped_bits,
    count_magnitude_bits,
)
from srampack.diff.engine import UNIT_WIDTHS, diff_region, iter_region_events, reorder_units
from srampack.diff.exceptions import DiffContractError, DiffError, SessionStateError
from srampack.diff.formatting import (
    format_binary,
    render_change,
    render_comparison_summary,
    render_region_diffs,
)
from srampack.diff.models import (
    ChangeDescriptor,
    ComparisonResult,
    RegionDiff,
    RegionEvent,
    RegionMarker,
)
from srampack.diff.session import (
    ALL_FLAGS,
    DEFAULT_FLAGS,
    ComparisonFlag,
    ComparisonOptions,
    ComparisonSession,
    flag_names,
    parse_comparison_flags,
)

__all__ = [
    "ChangeClassification",
    "ChangeSign",
    "classify_change",
    "count_flipped_bits",
    "count_magnitude_bits",
    "UNIT_WIDTHS",
    "diff_region",
    "iter_region_events",
    "reorder_units",
    "DiffError",
    "DiffContractError",
    "SessionStateError",
    "format_binary",
    "render_change",
    "render_comparison_summary",
    "render_region_diffs",
    "ChangeDescriptor",
    "ComparisonResult",
    "RegionDiff",
    "RegionEvent",
    "RegionMarker",
    "ALL_FLAGS",
    "DEFAULT_FLAGS",
    "ComparisonFlag",
    "ComparisonOptions",
    "ComparisonSession",
    "flag_names",
    "parse_comparison_flags",
]
