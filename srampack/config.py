"""Comparison option config files."""

from __future__ import annotations

from dataclasses import replace
import json
from pathlib import Path
from typing import Any, Mapping

from srampack.diff.exceptions import DiffContractError
from srampack.diff.session import ComparisonOptions, parse_comparison_flags

SUPPORTED_CONFIG_KEYS = frozenset(
    {
        "flags",
        "unit_width",
        "reverse_byte_order",
        "current_slot",
        "comparison_slot",
        "max_changes",
    }
)


class ComparisonConfigError(ValueError):
    """Comparison config is malformed or holds invalid values."""


def comparison_options_from_config(
    config: Mapping[str, Any],
    *,
    base: ComparisonOptions | None = None,
) -> ComparisonOptions:
    """Overlay config values onto ``base`` (defaults when omitted)."""
    unknown = sorted(set(config.keys()) - SUPPORTED_CONFIG_KEYS)
    if unknown:
        raise ComparisonConfigError("Unsupported comparison config keys: " + ", ".join(unknown))

    options = base or ComparisonOptions()
    changes: dict[str, Any] = {}

    if "flags" in config:
        raw_flags = config["flags"]
        if not isinstance(raw_flags, list) or not all(isinstance(item, str) for item in raw_flags):
            raise ComparisonConfigError("comparison config key 'flags' must be a list of strings.")
        try:
            changes["flags"] = parse_comparison_flags(raw_flags)
        except ValueError as error:
            raise ComparisonConfigError(str(error)) from error

    if "reverse_byte_order" in config:
        value = config["reverse_byte_order"]
        if not isinstance(value, bool):
            raise ComparisonConfigError(
                "comparison config key 'reverse_byte_order' must be a boolean."
            )
        changes["reverse_byte_order"] = value

    for key in ("unit_width", "current_slot", "comparison_slot"):
        if key in config:
            changes[key] = _read_int(config, key=key)

    if "max_changes" in config:
        changes["max_changes"] = (
            None if config["max_changes"] is None else _read_int(config, key="max_changes")
        )

    try:
        return replace(options, **changes)
    except DiffContractError as error:
        raise ComparisonConfigError(str(error)) from error


def _read_int(config: Mapping[str, Any], *, key: str) -> int:
    value = config[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ComparisonConfigError(f"comparison config key '{key}' must be an integer.")
    return value


def load_comparison_options_from_file(
    path: str | Path,
    *,
    base: ComparisonOptions | None = None,
) -> ComparisonOptions:
    """Load comparison options from a JSON file."""
    config_path = Path(path)
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise
    except json.JSONDecodeError as error:
        raise ComparisonConfigError(
            f"Invalid comparison config JSON ({config_path}): {error}"
        ) from error

    if not isinstance(raw, dict):
        raise ComparisonConfigError(f"Comparison config must be a JSON object ({config_path}).")

    return comparison_options_from_config(raw, base=base)
