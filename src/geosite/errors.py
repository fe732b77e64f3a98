"""Exception types raised by the site map subsystem."""

from __future__ import annotations


class GeositeError(Exception):
    """Base class for site map errors."""


class MalformedGeometryError(GeositeError, ValueError):
    """A GeoJSON payload is not a well-formed feature collection."""


class RendererBusyError(GeositeError, RuntimeError):
    """A renderer is already owned by another mounted view."""


class UnknownAssetTypeError(GeositeError, TypeError):
    """An asset variant reached a consumption site that does not handle it."""


class ClusterProviderUnavailable(GeositeError):
    """The marker clustering capability could not be loaded."""
