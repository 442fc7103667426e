"""Clixen: workflow validation and deployment orchestration."""

__version__ = "0.1.0"
