"""Asana custom field inventory and export."""

__version__ = "0.1.0"
