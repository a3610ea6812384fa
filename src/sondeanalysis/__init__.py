"""Meteorological analysis engine for atmospheric soundings."""

__version__ = "0.3.0"
