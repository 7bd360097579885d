"""Accessible pictogram markers for points of interest on a map."""

__version__ = "0.1.0"
