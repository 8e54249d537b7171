"""Save-file loading, persistence and offset access."""

from srampack.savefile.exceptions import InvalidSizeError, SaveFileError, SaveFileNotFoundError
from srampack.savefile.io import read_save_buffer, write_save_buffer, write_text_export
from srampack.savefile.models import OFFSET_WIDTHS, SaveFile, infer_value_width

__all__ = [
    "SaveFileError",
    "SaveFileNotFoundError",
    "InvalidSizeError",
    "read_save_buffer",
    "write_save_buffer",
    "write_text_export",
    "OFFSET_WIDTHS",
    "SaveFile",
    "infer_value_width",
]
