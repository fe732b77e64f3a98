"""Geosite: interactive site map for geotechnical project assets."""

__version__ = "0.1.0"
