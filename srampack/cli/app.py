import json
from dataclasses import dataclass, replace
from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path
from typing import Any

import typer

from srampack.config import ComparisonConfigError, load_comparison_options_from_file
from srampack.diff import (
    ComparisonFlag,
    ComparisonOptions,
    ComparisonSession,
    DiffError,
    format_binary,
    render_comparison_summary,
    render_region_diffs,
)
from srampack.marshal import (
    LayoutConfigError,
    MarshalError,
    RecordLayout,
    load_layout_from_file,
    opaque_layout,
)
from srampack.observability import get_logger, setup_logging
from srampack.observability.logging import LOG_LEVELS
from srampack.savefile import SaveFile, SaveFileError, infer_value_width, write_text_export

app = typer.Typer(help="SRAMKit CLI")
logger = get_logger("cli")


@dataclass(slots=True)
class _OutputOptions:
    quiet: bool = False
    no_color: bool = False
    stable_json: bool = True


_OUTPUT_OPTIONS = _OutputOptions()
_RECOVERABLE_ERRORS = (
    SaveFileError,
    MarshalError,
    DiffError,
    ComparisonConfigError,
    OSError,
    ValueError,
)


def _resolve_cli_version() -> str:
    try:
        return package_version("sramkit")
    except PackageNotFoundError:
        from srampack import __version__ as local_version

        return local_version


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(_resolve_cli_version(), color=False)
    raise typer.Exit()


@app.callback()
def app_options(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show SRAMKit version and exit.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Suppress non-error text output.",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable ANSI color output.",
    ),
    stable_json: bool = typer.Option(
        True,
        "--stable-json/--pretty-json",
        help="Emit stable compact JSON (or pretty JSON).",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help=f"Structured log level on stderr ({', '.join(LOG_LEVELS)}).",
    ),
) -> None:
    """Global output controls for all CLI commands."""
    _OUTPUT_OPTIONS.quiet = quiet
    _OUTPUT_OPTIONS.no_color = no_color
    _OUTPUT_OPTIONS.stable_json = stable_json
    try:
        setup_logging(log_level)
    except ValueError as error:
        raise typer.BadParameter(str(error), param_hint="--log-level") from error


def _echo(message: str, *, err: bool = False, force: bool = False) -> None:
    if _OUTPUT_OPTIONS.quiet and not err and not force:
        return
    typer.echo(message, err=err, color=not _OUTPUT_OPTIONS.no_color)


def _render_json(payload: dict[str, Any]) -> str:
    if _OUTPUT_OPTIONS.stable_json:
        return json.dumps(
            payload,
            ensure_ascii=True,
            sort_keys=True,
            separators=(",", ":"),
        )
    return json.dumps(
        payload,
        ensure_ascii=True,
        sort_keys=True,
        indent=2,
    )


def _echo_json(payload: dict[str, Any], *, err: bool = False) -> None:
    typer.echo(_render_json(payload), err=err, color=not _OUTPUT_OPTIONS.no_color)


def _fail(
    command: str,
    error: Exception,
    *,
    json_output: bool,
    context: dict[str, Any],
) -> typer.Exit:
    message = f"{command} failed: {error}"
    logger.info("command_failed", command=command, error_type=error.__class__.__name__)
    if json_output:
        _echo_json(
            {
                "status": "error",
                "exit_code": 1,
                "message": message,
                **context,
            }
        )
    else:
        _echo(message, err=True)
    return typer.Exit(code=1)


def _parse_int(raw: str, *, label: str) -> int:
    try:
        return int(raw, 0)
    except ValueError as error:
        raise ValueError(
            f"{label} must be a decimal or 0x-prefixed integer, got {raw!r}"
        ) from error


def _resolve_layout(layout_path: Path | None, size: int | None, sample: Path) -> RecordLayout:
    if layout_path is not None and size is not None:
        raise ValueError("pass either --layout or --size, not both")
    if layout_path is not None:
        try:
            return load_layout_from_file(layout_path)
        except FileNotFoundError as error:
            raise LayoutConfigError(f"layout file not found: {layout_path}") from error
    if size is not None:
        return opaque_layout(size)
    try:
        return opaque_layout(sample.stat().st_size)
    except FileNotFoundError as error:
        raise FileNotFoundError(f"Save file not found: {sample}") from error


def _resolve_comparison_options(
    *,
    config_path: Path | None,
    unit: int | None,
    reverse: bool | None,
    slot: int | None,
    comp_slot: int | None,
    non_slot: bool | None,
    whole: bool | None,
    max_changes: int | None,
) -> ComparisonOptions:
    options = ComparisonOptions()
    if config_path is not None:
        try:
            options = load_comparison_options_from_file(config_path)
        except FileNotFoundError as error:
            raise ComparisonConfigError(f"comparison config not found: {config_path}") from error

    flags = options.flags
    if non_slot is not None:
        flags = flags | ComparisonFlag.NON_SLOT if non_slot else flags & ~ComparisonFlag.NON_SLOT
    if whole is not None:
        flags = (
            flags | ComparisonFlag.WHOLE_BUFFER if whole else flags & ~ComparisonFlag.WHOLE_BUFFER
        )
    if slot is not None:
        flags |= ComparisonFlag.SLOT_BYTES

    overrides: dict[str, Any] = {"flags": flags}
    if unit is not None:
        overrides["unit_width"] = unit
    if reverse is not None:
        overrides["reverse_byte_order"] = reverse
    if slot is not None:
        overrides["current_slot"] = slot
    if comp_slot is not None:
        overrides["comparison_slot"] = comp_slot
    if max_changes is not None:
        overrides["max_changes"] = max_changes
    return replace(options, **overrides)


@app.command()
def compare(
    current: Path = typer.Argument(..., help="Path to the current save file."),
    comparison: Path = typer.Argument(..., help="Path to the save file to compare against."),
    layout_path: Path | None = typer.Option(
        None,
        "--layout",
        help="Path to a JSON record layout describing the save file.",
    ),
    size: int | None = typer.Option(
        None,
        "--size",
        help="Expected save size in bytes when no layout is given.",
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="Path to a JSON comparison config; flags below override it.",
    ),
    unit: int | None = typer.Option(
        None,
        "--unit",
        help="Comparison unit width in bytes (1, 2 or 4).",
    ),
    reverse: bool | None = typer.Option(
        None,
        "--reverse/--no-reverse",
        help="Reverse the byte order of each unit before comparing.",
    ),
    slot: int | None = typer.Option(
        None,
        "--slot",
        help="Current save slot to compare (1-based, 0 for all slots).",
    ),
    comp_slot: int | None = typer.Option(
        None,
        "--comp-slot",
        help="Comparison save slot (0 for the same slot as --slot).",
    ),
    non_slot: bool | None = typer.Option(
        None,
        "--non-slot/--no-non-slot",
        help="Compare regions outside the save slots.",
    ),
    whole: bool | None = typer.Option(
        None,
        "--whole/--no-whole",
        help="Compare the entire buffer as one region.",
    ),
    max_changes: int | None = typer.Option(
        None,
        "--max-changes",
        help="Maximum number of changes reported per region.",
    ),
    binary: bool = typer.Option(
        False,
        "--binary",
        help="Show bit patterns of each change in text mode.",
    ),
    export_path: Path | None = typer.Option(
        None,
        "--export",
        help="Also write the comparison report (text, or JSON with --json) to this file.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable comparison output.",
    ),
) -> None:
    """Compare two save files and report every changed unit."""
    context = {"current_path": str(current), "comparison_path": str(comparison)}
    try:
        layout = _resolve_layout(layout_path, size, current)
        options = _resolve_comparison_options(
            config_path=config_path,
            unit=unit,
            reverse=reverse,
            slot=slot,
            comp_slot=comp_slot,
            non_slot=non_slot,
            whole=whole,
            max_changes=max_changes,
        )
        current_save = SaveFile.load(current, layout)
        comparison_save = SaveFile.load(comparison, layout)
        result = ComparisonSession(current_save, comparison_save, options).run()
        report = {**result.to_dict(), "options": options.to_dict(), **context}
        rendered = "\n".join(
            (render_comparison_summary(result), render_region_diffs(result, show_binary=binary))
        )
        if export_path is not None:
            write_text_export(export_path, _render_json(report) if json_output else rendered)
    except _RECOVERABLE_ERRORS as error:
        raise _fail("compare", error, json_output=json_output, context=context) from error

    if json_output:
        payload = {
            **report,
            "status": "ok",
            "exit_code": 0,
            "message": "compare completed",
        }
        if export_path is not None:
            payload["export_path"] = str(export_path)
        _echo_json(payload)
        return

    _echo(rendered)
    if export_path is not None:
        _echo(f"exported comparison: {export_path}")


def _describe_offset(save: SaveFile, offset: int, slot: int | None) -> tuple[int, str | None]:
    layout = save.layout
    if slot is None:
        return offset, layout.field_at(offset)
    slot_layout = layout.slot_layout
    name = slot_layout.field_at(offset) if slot_layout is not None else None
    return layout.slot_offset(slot) + offset, name


@app.command("show-offset")
def show_offset(
    path: Path = typer.Argument(..., help="Path to the save file."),
    offset: str = typer.Argument(..., help="Offset to read (decimal or 0x-prefixed)."),
    slot: int | None = typer.Option(
        None,
        "--slot",
        help="Read relative to this 1-based save slot.",
    ),
    width: int = typer.Option(
        1,
        "--width",
        help="Value width in bytes (1, 2 or 4).",
    ),
    layout_path: Path | None = typer.Option(
        None,
        "--layout",
        help="Path to a JSON record layout describing the save file.",
    ),
    size: int | None = typer.Option(
        None,
        "--size",
        help="Expected save size in bytes when no layout is given.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable output.",
    ),
) -> None:
    """Read one value from a save file."""
    context: dict[str, Any] = {"path": str(path)}
    try:
        resolved_offset = _parse_int(offset, label="offset")
        layout = _resolve_layout(layout_path, size, path)
        save = SaveFile.load(path, layout)
        value = save.read_offset(resolved_offset, width, slot=slot)
        absolute_offset, name = _describe_offset(save, resolved_offset, slot)
    except _RECOVERABLE_ERRORS as error:
        raise _fail("show-offset", error, json_output=json_output, context=context) from error

    if json_output:
        _echo_json(
            {
                "status": "ok",
                "exit_code": 0,
                "message": "offset read",
                **context,
                "offset": resolved_offset,
                "absolute_offset": absolute_offset,
                "slot": slot,
                "name": name,
                "width": width,
                "value": value,
                "binary": format_binary(value, width),
            }
        )
        return

    label = f" ({name})" if name else ""
    where = f"slot {slot} " if slot is not None else ""
    _echo(
        f"{where}offset 0x{resolved_offset:04X}{label}: "
        f"0x{value:0{width * 2}X} ({value}) {format_binary(value, width)}"
    )


@app.command("set-offset")
def set_offset(
    path: Path = typer.Argument(..., help="Path to the save file."),
    offset: str = typer.Argument(..., help="Offset to write (decimal or 0x-prefixed)."),
    value: str = typer.Argument(..., help="Value to write (decimal or 0x-prefixed)."),
    slot: int | None = typer.Option(
        None,
        "--slot",
        help="Write relative to this 1-based save slot.",
    ),
    width: int | None = typer.Option(
        None,
        "--width",
        help="Value width in bytes (1, 2 or 4); inferred from the value when omitted.",
    ),
    out: Path | None = typer.Option(
        None,
        "--out",
        help="Write the edited save here instead of overwriting the input.",
    ),
    layout_path: Path | None = typer.Option(
        None,
        "--layout",
        help="Path to a JSON record layout describing the save file.",
    ),
    size: int | None = typer.Option(
        None,
        "--size",
        help="Expected save size in bytes when no layout is given.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable output.",
    ),
) -> None:
    """Write one whole value into a save file."""
    context: dict[str, Any] = {"path": str(path), "out_path": str(out or path)}
    try:
        resolved_offset = _parse_int(offset, label="offset")
        resolved_value = _parse_int(value, label="value")
        layout = _resolve_layout(layout_path, size, path)
        save = SaveFile.load(path, layout)
        written_width = width if width is not None else infer_value_width(resolved_value)
        previous = save.read_offset(resolved_offset, written_width, slot=slot)
        save.write_offset(resolved_offset, resolved_value, written_width, slot=slot)
        absolute_offset, name = _describe_offset(save, resolved_offset, slot)
        written_path = save.save(out)
    except _RECOVERABLE_ERRORS as error:
        raise _fail("set-offset", error, json_output=json_output, context=context) from error

    if json_output:
        _echo_json(
            {
                "status": "ok",
                "exit_code": 0,
                "message": "offset written",
                **context,
                "offset": resolved_offset,
                "absolute_offset": absolute_offset,
                "slot": slot,
                "name": name,
                "width": written_width,
                "previous": previous,
                "value": resolved_value,
            }
        )
        return

    label = f" ({name})" if name else ""
    digits = written_width * 2
    _echo(
        f"wrote 0x{resolved_value:0{digits}X} at offset 0x{resolved_offset:04X}{label}: "
        f"{written_path}"
    )


def _render_field_value(value: Any) -> str:
    if isinstance(value, bytes):
        return value.hex()
    return f"{value} (0x{value:X})"


@app.command("show-slot")
def show_slot(
    path: Path = typer.Argument(..., help="Path to the save file."),
    slot: int = typer.Argument(..., help="1-based save slot to decode."),
    layout_path: Path | None = typer.Option(
        None,
        "--layout",
        help="Path to a JSON record layout that declares save slots.",
    ),
    export_path: Path | None = typer.Option(
        None,
        "--export",
        help="Also write the slot summary (text, or JSON with --json) to this file.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable output.",
    ),
) -> None:
    """Decode one save slot through the layout and list its fields."""
    context: dict[str, Any] = {"path": str(path), "slot": slot}
    try:
        layout = _resolve_layout(layout_path, None, path)
        save = SaveFile.load(path, layout)
        record = save.slot_record(slot)
        slot_name = layout.slots[slot - 1]
        slot_offset = layout.slot_offset(slot)
        report = {
            **context,
            "name": slot_name,
            "offset": slot_offset,
            "record": record.to_dict(),
        }
        lines = [
            f"slot {slot} ({slot_name}) record={record.layout.name} offset=0x{slot_offset:04X}"
        ]
        lines.extend(
            f"  {field_path} = {_render_field_value(value)}"
            for field_path, value in record.iter_leaves()
        )
        rendered = "\n".join(lines)
        if export_path is not None:
            write_text_export(export_path, _render_json(report) if json_output else rendered)
    except _RECOVERABLE_ERRORS as error:
        raise _fail("show-slot", error, json_output=json_output, context=context) from error

    if json_output:
        payload = {**report, "status": "ok", "exit_code": 0, "message": "slot decoded"}
        if export_path is not None:
            payload["export_path"] = str(export_path)
        _echo_json(payload)
        return

    _echo(rendered)
    if export_path is not None:
        _echo(f"exported slot summary: {export_path}")


@app.command("layout")
def describe_layout(
    path: Path = typer.Argument(..., help="Path to a JSON record layout."),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable layout description.",
    ),
) -> None:
    """Validate a layout file and describe its fields."""
    context = {"path": str(path)}
    try:
        layout = load_layout_from_file(path)
    except _RECOVERABLE_ERRORS as error:
        raise _fail("layout", error, json_output=json_output, context=context) from error

    if json_output:
        _echo_json(
            {
                **layout.to_dict(),
                "status": "ok",
                "exit_code": 0,
                "message": "layout valid",
                **context,
            }
        )
        return

    _echo(
        f"layout={layout.name} size={layout.size} byte_order={layout.byte_order} "
        f"slots={len(layout.slots)}"
    )
    for spec, field_offset in layout.iter_fields():
        suffix = f" record={spec.layout.name}" if spec.layout is not None else ""
        marker = " [slot]" if spec.name in layout.slots else ""
        _echo(
            f"  0x{field_offset:04X} {spec.name} {spec.kind}[{spec.width}] "
            f"endian={spec.endian}{suffix}{marker}"
        )


def main() -> None:
    app()
