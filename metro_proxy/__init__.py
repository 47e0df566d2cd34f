"""Caching proxy between the WMATA API and the metro map dashboard."""

__version__ = "0.1.0"
