"""SRAMKit internals: layouts, save-file I/O and byte-level comparison."""

__version__ = "0.1.0"
