"""Marshal subsystem exceptions."""


class MarshalError(Exception):
    """Base class for record layout and marshaling errors."""


class LayoutMismatchError(MarshalError):
    """Buffer length or declared size does not match the layout's field widths."""


class UnsupportedFieldError(MarshalError):
    """Field kind, width or endian policy cannot be marshaled."""


class LayoutConfigError(MarshalError):
    """Layout definition file is malformed."""
