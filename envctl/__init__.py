"""Environment & deployment control — in-memory environment orchestration."""

__version__ = "0.1.0"
