"""repodrop: upload directory trees into GitHub repositories."""

__version__ = "0.1.0"
