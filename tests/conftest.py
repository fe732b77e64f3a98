"""Shared fixtures: a small project around London Paddington."""

from __future__ import annotations

from datetime import date

import pytest

from geosite.assets import (
    Borehole,
    Infrastructure,
    Location,
    MonitoringPoint,
    Reading,
    SoilLayer,
    Specification,
)
from geosite.layers.layer import GeometryType, ShapefileLayer

PADDINGTON = (51.5154, -0.1755)


def _loc(dlat: float, dlng: float, address: str = "") -> Location:
    return Location(PADDINGTON[0] + dlat, PADDINGTON[1] + dlng, address)


@pytest.fixture
def boreholes():
    return [
        Borehole(
            "BH-01", "BH-01 Praed Street", _loc(0.0010, 0.0010), depth=25.0,
            date=date(2024, 1, 15),
            soil_layers=(
                SoilLayer("0-2m", "Made ground", "MG", 5, 18.0),
                SoilLayer("2-12m", "London Clay", "CH", 22, 28.5),
            ),
        ),
        Borehole("BH-02", "BH-02 Eastbourne Terrace", _loc(-0.0010, 0.0015), depth=30.5,
                 date=date(2024, 3, 2)),
        Borehole("BH-03", "BH-03 Bishop's Bridge", _loc(0.0020, -0.0020), depth=18.0),
    ]


@pytest.fixture
def monitoring_points():
    return [
        MonitoringPoint(
            "MP-01", "Inclinometer IN-1", _loc(0.0005, -0.0005), instrument_type="Inclinometer",
            date=date(2024, 6, 1), parameters=("displacement",),
            latest_readings=(Reading("displacement", 2.4, "mm"),),
        ),
        MonitoringPoint("MP-02", "Piezometer PZ-1", _loc(-0.0015, -0.0010),
                        instrument_type="Piezometer", date=date(2024, 9, 1)),
    ]


@pytest.fixture
def infrastructure():
    return [
        Infrastructure(
            "INF-01", "Crossrail Box", _loc(0.0, 0.0025), infrastructure_type="Station box",
            status="under-construction", date=date(2024, 2, 1),
            specifications=(Specification("Depth", "23m"),),
        ),
    ]


@pytest.fixture
def assets(boreholes, monitoring_points, infrastructure):
    return [*boreholes, *monitoring_points, *infrastructure]


@pytest.fixture
def polygon_geojson():
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [[
                        [-0.1770, 51.5150], [-0.1740, 51.5150],
                        [-0.1740, 51.5165], [-0.1770, 51.5165], [-0.1770, 51.5150],
                    ]],
                },
                "properties": {"name": "Site boundary", "owner": "Network Rail"},
            },
        ],
    }


@pytest.fixture
def shapefile(polygon_geojson):
    return ShapefileLayer(
        layer_id="shp-boundary",
        name="Site boundary",
        project_id="proj-1",
        geometry_type=GeometryType.POLYGON,
        geojson=polygon_geojson,
        color="#1d2759",
    )


@pytest.fixture
def malformed_shapefile():
    return ShapefileLayer(
        layer_id="shp-broken",
        name="Broken",
        project_id="proj-1",
        geometry_type=GeometryType.POLYGON,
        geojson={
            "type": "FeatureCollection",
            "features": [{"type": "Feature", "geometry": {"type": "Polygon", "coordinates": [1, 2]}}],
        },
    )
