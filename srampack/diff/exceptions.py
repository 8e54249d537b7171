"""Diff subsystem exceptions."""


class DiffError(Exception):
    """Base class for comparison errors."""


class DiffContractError(DiffError, ValueError):
    """Spans or unit width violate the comparison contract."""


class SessionStateError(DiffError, RuntimeError):
    """Comparison session used outside its lifecycle."""
