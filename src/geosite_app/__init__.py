"""Geosite HTTP application."""
