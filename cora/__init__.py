"""CORA - Command-line Operations & Recovery Assistant."""

__version__ = "0.1.0"
