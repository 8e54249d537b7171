"""Single-use comparison of two save files over a selection of regions."""

from __future__ import annotations

from dataclasses import dataclass, field
import enum
from typing import Any, Iterable

from srampack.diff.engine import UNIT_WIDTHS, OffsetNamer, diff_region, reorder_units
from srampack.diff.exceptions import DiffContractError, SessionStateError
from srampack.diff.models import ComparisonResult, RegionDiff
from srampack.observability import get_logger
from srampack.savefile.models import SaveFile

logger = get_logger("diff.session")


class ComparisonFlag(enum.Flag):
    NONE = 0
    SLOT_BYTES = enum.auto()
    NON_SLOT = enum.auto()
    WHOLE_BUFFER = enum.auto()


DEFAULT_FLAGS = ComparisonFlag.SLOT_BYTES | ComparisonFlag.NON_SLOT
ALL_FLAGS = ComparisonFlag.SLOT_BYTES | ComparisonFlag.NON_SLOT | ComparisonFlag.WHOLE_BUFFER


def parse_comparison_flags(names: Iterable[str]) -> ComparisonFlag:
    """Combine flag names such as ``"slot_bytes"`` into one flag value."""
    flags = ComparisonFlag.NONE
    for raw_name in names:
        name = str(raw_name).strip().upper().replace("-", "_")
        if name not in ComparisonFlag.__members__:
            valid = ", ".join(flag_names(ALL_FLAGS))
            raise ValueError(f"Unknown comparison flag {raw_name!r}; expected one of {valid}")
        flags |= ComparisonFlag[name]
    return flags


def flag_names(flags: ComparisonFlag) -> list[str]:
    return [member.name.lower() for member in ComparisonFlag if member.value and member in flags]


@dataclass(slots=True)
class ComparisonOptions:
    """Region selection and reporting options for one comparison."""

    flags: ComparisonFlag = DEFAULT_FLAGS
    unit_width: int = 1
    reverse_byte_order: bool = False
    current_slot: int = 0
    comparison_slot: int = 0
    max_changes: int | None = None

    def __post_init__(self) -> None:
        if self.unit_width not in UNIT_WIDTHS:
            raise DiffContractError(
                f"Unit width must be one of {UNIT_WIDTHS}, got {self.unit_width}"
            )
        if self.current_slot < 0 or self.comparison_slot < 0:
            raise DiffContractError("Slot numbers are 1-based; use 0 for all slots")
        if self.max_changes is not None and self.max_changes < 0:
            raise DiffContractError(f"max_changes must be >= 0, got {self.max_changes}")
        if self.current_slot or self.comparison_slot:
            if ComparisonFlag.WHOLE_BUFFER in self.flags:
                raise DiffContractError("Slot selection cannot be combined with whole_buffer")
            if ComparisonFlag.SLOT_BYTES not in self.flags:
                raise DiffContractError("Slot selection requires the slot_bytes flag")

    def to_dict(self) -> dict[str, Any]:
        return {
            "flags": flag_names(self.flags),
            "unit_width": self.unit_width,
            "reverse_byte_order": self.reverse_byte_order,
            "current_slot": self.current_slot,
            "comparison_slot": self.comparison_slot,
            "max_changes": self.max_changes,
        }


@dataclass(slots=True)
class _RegionPlan:
    name: str
    base_offset: int
    current: bytes
    comparison: bytes
    offset_name: OffsetNamer | None


@dataclass(slots=True)
class ComparisonSession:
    """Pairs a current and a comparison save file. ``run()`` may be called once."""

    current: SaveFile
    comparison: SaveFile
    options: ComparisonOptions = field(default_factory=ComparisonOptions)
    state: str = field(default="created", init=False)
    result: ComparisonResult | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if self.current.size != self.comparison.size:
            raise DiffContractError(
                f"Save files differ in size: current={self.current.size} "
                f"comparison={self.comparison.size}"
            )
        if self.current.layout != self.comparison.layout:
            raise DiffContractError(
                f"Save files use different layouts: current={self.current.layout.name} "
                f"comparison={self.comparison.layout.name}"
            )

    def run(self) -> ComparisonResult:
        if self.state != "created":
            raise SessionStateError(f"Comparison session already {self.state}")
        self.state = "executing"

        options = self.options
        layout = self.current.layout
        logger.info(
            "comparison_started",
            layout=layout.name,
            current=str(self.current.path) if self.current.path else None,
            comparison=str(self.comparison.path) if self.comparison.path else None,
            **options.to_dict(),
        )
        try:
            regions: list[RegionDiff] = []
            for plan in self._plan_regions():
                current = plan.current
                comparison = plan.comparison
                if options.reverse_byte_order:
                    current = reorder_units(current, options.unit_width)
                    comparison = reorder_units(comparison, options.unit_width)
                regions.append(
                    diff_region(
                        plan.name,
                        plan.base_offset,
                        current,
                        comparison,
                        unit_width=options.unit_width,
                        offset_name=plan.offset_name,
                        max_changes=options.max_changes,
                    )
                )
            self.result = ComparisonResult(
                layout_name=layout.name,
                unit_width=options.unit_width,
                reverse_byte_order=options.reverse_byte_order,
                regions=regions,
            )
        finally:
            self.state = "done"

        logger.info(
            "comparison_finished",
            layout=layout.name,
            regions=len(self.result.regions),
            changed_units=self.result.total_changed_units,
        )
        return self.result

    def _plan_regions(self) -> list[_RegionPlan]:
        flags = self.options.flags
        layout = self.current.layout

        if ComparisonFlag.WHOLE_BUFFER in flags:
            return [
                _RegionPlan(
                    name="buffer",
                    base_offset=0,
                    current=self.current.data,
                    comparison=self.comparison.data,
                    offset_name=layout.field_at,
                )
            ]

        plans: list[_RegionPlan] = []
        if ComparisonFlag.SLOT_BYTES in flags:
            plans.extend(self._plan_slot_regions())
        if ComparisonFlag.NON_SLOT in flags:
            for spec, offset in layout.iter_fields():
                if spec.name in layout.slots:
                    continue
                plans.append(
                    _RegionPlan(
                        name=spec.name,
                        base_offset=offset,
                        current=self.current.region(spec.name),
                        comparison=self.comparison.region(spec.name),
                        offset_name=_shifted_namer(layout.field_at, offset),
                    )
                )
        return plans

    def _plan_slot_regions(self) -> list[_RegionPlan]:
        options = self.options
        layout = self.current.layout
        slot_count = len(layout.slots)

        if slot_count == 0:
            if options.current_slot or options.comparison_slot:
                raise DiffContractError(f"Layout {layout.name} defines no save slots")
            return []

        for slot in (options.current_slot, options.comparison_slot):
            if slot > slot_count:
                raise DiffContractError(
                    f"Save slot must be between 1 and {slot_count}, got {slot}"
                )

        if options.current_slot == 0:
            if options.comparison_slot:
                raise DiffContractError("A comparison slot requires a current slot")
            pairs = [(slot, slot) for slot in range(1, slot_count + 1)]
        else:
            pairs = [(options.current_slot, options.comparison_slot or options.current_slot)]

        slot_layout = layout.slot_layout
        assert slot_layout is not None
        plans: list[_RegionPlan] = []
        for current_slot, comparison_slot in pairs:
            name = layout.slots[current_slot - 1]
            if comparison_slot != current_slot:
                name = f"{name}<>{layout.slots[comparison_slot - 1]}"
            plans.append(
                _RegionPlan(
                    name=name,
                    base_offset=layout.slot_offset(current_slot),
                    current=self.current.slot_bytes(current_slot),
                    comparison=self.comparison.slot_bytes(comparison_slot),
                    offset_name=slot_layout.field_at,
                )
            )
        return plans


def _shifted_namer(namer: OffsetNamer, base_offset: int) -> OffsetNamer:
    def name_at(offset: int) -> str | None:
        return namer(base_offset + offset)

    return name_at
