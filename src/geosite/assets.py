"""Site assets: boreholes, monitoring points, infrastructure.

An asset is one of three frozen dataclasses sharing a ``type``
discriminator.  Code that needs per-type behaviour dispatches on the
concrete class and ends with :func:`unknown_asset`, so a new variant
fails loudly at every consumption site instead of falling through a
default branch.

Assets are loaded from plain dicts (the JSON shape used by the project
files), camelCase or snake_case keys accepted.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import NoReturn, Union

from loguru import logger

from geosite.errors import UnknownAssetTypeError
from geosite.geo import LatLng

# Assets with no recorded date are treated as existing from this day on.
DEFAULT_ASSET_DATE = date(2024, 1, 1)


@dataclass(frozen=True)
class Location:
    """Where an asset sits."""

    lat: float
    lng: float
    address: str = ""

    @property
    def latlng(self) -> LatLng:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class SoilLayer:
    depth: str
    description: str
    classification: str
    n_value: int
    moisture: float


@dataclass(frozen=True)
class Reading:
    parameter: str
    value: float
    unit: str
    status: str = "normal"  # normal | warning | alert


@dataclass(frozen=True)
class Specification:
    key: str
    value: str


@dataclass(frozen=True)
class Borehole:
    asset_id: str
    name: str
    location: Location
    depth: float
    date: date | None = None
    soil_layers: tuple[SoilLayer, ...] = ()
    type: str = field(default="borehole", init=False)


@dataclass(frozen=True)
class MonitoringPoint:
    asset_id: str
    name: str
    location: Location
    instrument_type: str = ""
    date: date | None = None
    parameters: tuple[str, ...] = ()
    latest_readings: tuple[Reading, ...] = ()
    type: str = field(default="monitoring", init=False)


@dataclass(frozen=True)
class Infrastructure:
    asset_id: str
    name: str
    location: Location
    infrastructure_type: str = ""
    status: str = "operational"  # operational | under-construction | planned
    date: date | None = None
    specifications: tuple[Specification, ...] = ()
    type: str = field(default="infrastructure", init=False)


Asset = Union[Borehole, MonitoringPoint, Infrastructure]

ASSET_TYPES: tuple[type, ...] = (Borehole, MonitoringPoint, Infrastructure)


def unknown_asset(asset: object) -> NoReturn:
    """Terminal branch for per-type dispatch."""
    raise UnknownAssetTypeError(f"Unhandled asset variant: {type(asset).__name__}")


def recorded_date(asset: Asset) -> date:
    """Date an asset was recorded, defaulting to 2024-01-01."""
    if isinstance(asset, ASSET_TYPES):
        return asset.date or DEFAULT_ASSET_DATE
    unknown_asset(asset)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _get(raw: dict, *keys, default=None):
    for key in keys:
        if key in raw:
            return raw[key]
    return default


def _parse_date(value) -> date | None:
    if not value:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_location(raw: dict) -> Location:
    return Location(
        lat=float(raw["lat"]),
        lng=float(raw["lng"]),
        address=raw.get("address", ""),
    )


def asset_from_dict(raw: dict) -> Asset:
    """Build an asset from its dict form.

    Raises:
        UnknownAssetTypeError: If ``type`` is not a known discriminator.
        KeyError: If a required field is missing.
    """
    kind = raw.get("type")
    asset_id = str(_get(raw, "id", "asset_id"))
    name = raw["name"]
    location = _parse_location(raw["location"])
    when = _parse_date(raw.get("date"))

    if kind == "borehole":
        layers = tuple(
            SoilLayer(
                depth=layer["depth"],
                description=layer.get("description", ""),
                classification=layer.get("classification", ""),
                n_value=int(_get(layer, "nValue", "n_value", default=0)),
                moisture=float(layer.get("moisture", 0)),
            )
            for layer in _get(raw, "soilLayers", "soil_layers", default=[])
        )
        return Borehole(
            asset_id=asset_id,
            name=name,
            location=location,
            depth=float(raw.get("depth", 0.0)),
            date=when,
            soil_layers=layers,
        )
    if kind == "monitoring":
        readings = tuple(
            Reading(
                parameter=r["parameter"],
                value=float(r["value"]),
                unit=r.get("unit", ""),
                status=r.get("status", "normal"),
            )
            for r in _get(raw, "latestReadings", "latest_readings", default=[])
        )
        return MonitoringPoint(
            asset_id=asset_id,
            name=name,
            location=location,
            instrument_type=_get(raw, "instrumentType", "instrument_type", default=""),
            date=when,
            parameters=tuple(raw.get("parameters", [])),
            latest_readings=readings,
        )
    if kind == "infrastructure":
        specs = tuple(
            Specification(key=s["key"], value=str(s["value"]))
            for s in raw.get("specifications", [])
        )
        return Infrastructure(
            asset_id=asset_id,
            name=name,
            location=location,
            infrastructure_type=_get(raw, "infrastructureType", "infrastructure_type", default=""),
            status=raw.get("status", "operational"),
            date=when,
            specifications=specs,
        )
    raise UnknownAssetTypeError(f"Unknown asset type: {kind!r}")


def asset_to_dict(asset: Asset) -> dict:
    """Flat JSON-friendly summary of an asset (used by the API)."""
    base = {
        "id": asset.asset_id,
        "type": asset.type,
        "name": asset.name,
        "location": {
            "lat": asset.location.lat,
            "lng": asset.location.lng,
            "address": asset.location.address,
        },
        "date": asset.date.isoformat() if asset.date else None,
    }
    if isinstance(asset, Borehole):
        base["depth"] = asset.depth
        base["soilLayers"] = len(asset.soil_layers)
    elif isinstance(asset, MonitoringPoint):
        base["instrumentType"] = asset.instrument_type
        base["parameters"] = list(asset.parameters)
    elif isinstance(asset, Infrastructure):
        base["infrastructureType"] = asset.infrastructure_type
        base["status"] = asset.status
    else:
        unknown_asset(asset)
    return base


def load_assets(path: str | Path) -> list[Asset]:
    """Load a list of assets from a JSON file.

    The file holds either a bare list of assets or an object with an
    ``assets`` key.  Entries that fail to parse are logged and skipped.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("assets", [])

    assets: list[Asset] = []
    for idx, raw in enumerate(data):
        try:
            assets.append(asset_from_dict(raw))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping asset #{idx} in {path}: {e}")
    return assets
