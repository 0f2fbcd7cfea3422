"""Coordinate conversion, KML/KMZ exchange for drawings, and satellite map tile handling."""

__version__ = "0.1.0"