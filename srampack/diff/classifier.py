"""Per-unit change classification."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

ChangeSign = Literal["positive", "negative"]

CLASSIFIER_WIDTHS: tuple[int, ...] = (1, 2, 3, 4)


@dataclass(frozen=True, slots=True)
class ChangeClassification:
    """Delta, sign, magnitude and bit-flip summary of one changed value."""

    delta: int
    sign: ChangeSign
    magnitude: int
    flipped_bits: int
    single_bit: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "delta": self.delta,
            "sign": self.sign,
            "magnitude": self.magnitude,
            "flipped_bits": self.flipped_bits,
            "single_bit": self.single_bit,
        }


def classify_change(current: int, comparison: int, width: int = 1) -> ChangeClassification:
    """Classify the change from ``comparison`` to ``current``.

    ``single_bit`` only says that at most one bit differs. Whether that
    means a boolean flag toggled is left to the reader.
    """
    _check_value(current, width, label="current")
    _check_value(comparison, width, label="comparison")

    delta = current - comparison
    flipped = count_flipped_bits(current, comparison)
    return ChangeClassification(
        delta=delta,
        sign="negative" if delta < 0 else "positive",
        magnitude=abs(delta),
        flipped_bits=flipped,
        single_bit=flipped <= 1,
    )


def count_flipped_bits(current: int, comparison: int) -> int:
    return (current ^ comparison).bit_count()


def count_magnitude_bits(current: int, comparison: int) -> int:
    """Set bits in ``|current - comparison|``.

    Differs from :func:`count_flipped_bits` whenever the subtraction borrows,
    e.g. 0x10 -> 0x0F flips five bits but has magnitude 1.
    """
    return abs(current - comparison).bit_count()


def _check_value(value: int, width: int, *, label: str) -> None:
    if width not in CLASSIFIER_WIDTHS:
        raise ValueError(f"Unsupported value width {width}; expected one of {CLASSIFIER_WIDTHS}")
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{label} value must be an int, got {type(value).__name__}")
    if value < 0 or value >= 1 << (width * 8):
        raise ValueError(f"{label} value {value} does not fit {width} byte(s)")
