"""Consolidate byte-identical files and the references pointing at them."""

__version__ = "1.2.0"
