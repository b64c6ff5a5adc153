"""Visa application case-processing workflow."""

__version__ = "0.1.0"
