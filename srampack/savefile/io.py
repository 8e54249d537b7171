"""Exact-size read/write utilities for save files."""

from __future__ import annotations

import os
from pathlib import Path
import tempfile
from typing import BinaryIO

from srampack.observability import get_logger
from srampack.savefile.exceptions import InvalidSizeError, SaveFileNotFoundError

logger = get_logger("savefile.io")


def read_save_buffer(path: str | Path, *, expected_size: int) -> bytes:
    """Read a whole save file and verify it has exactly ``expected_size`` bytes.

    The file is opened read-only so an emulator still writing to it is not
    blocked; a torn read surfaces as a size error or as ordinary differences.
    """
    target = Path(path)
    try:
        with target.open("rb") as handle:
            data = handle.read()
    except FileNotFoundError as error:
        raise SaveFileNotFoundError(f"Save file not found: {target}") from error

    if len(data) != expected_size:
        raise InvalidSizeError(target, expected=expected_size, actual=len(data))

    logger.debug("save_buffer_read", path=str(target), size=len(data))
    return data


def write_save_buffer(path: str | Path, data: bytes | bytearray, *, expected_size: int) -> Path:
    """Write a whole save buffer, replacing ``path`` only after a verified write."""
    payload = bytes(data)
    target = Path(path)
    if len(payload) != expected_size:
        raise InvalidSizeError(target, expected=expected_size, actual=len(payload))

    _replace_with_payload(target, payload)
    logger.info("save_buffer_written", path=str(target), size=expected_size)
    return target


def write_text_export(path: str | Path, contents: str) -> Path:
    """Write an exported report as UTF-8 text, with the same verified replace."""
    payload = contents.encode("utf-8")
    if not payload.endswith(b"\n"):
        payload += b"\n"
    target = Path(path)
    _replace_with_payload(target, payload)
    logger.info("export_written", path=str(target), size=len(payload))
    return target


def _replace_with_payload(target: Path, payload: bytes) -> None:
    expected_size = len(payload)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            written = _write_payload(handle, payload)
            handle.flush()
            os.fsync(handle.fileno())
        actual = temp_path.stat().st_size
        if written != expected_size or actual != expected_size:
            raise InvalidSizeError(target, expected=expected_size, actual=min(written, actual))
        os.replace(temp_path, target)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def _write_payload(handle: BinaryIO, payload: bytes) -> int:
    return handle.write(payload)
