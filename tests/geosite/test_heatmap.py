"""Tests for the heatmap placeholder."""

import numpy as np
import pytest

from geosite.geo import mean_center
from geosite.tools.heatmap import (
    RING_FILL_OPACITY,
    RING_RADII_M,
    build_heatmap,
    intensity_bucket,
)
from geosite.tools.modes import HeatmapCategory


@pytest.mark.unit
class TestBuildHeatmap:
    def test_no_assets_no_heatmap(self):
        assert build_heatmap(HeatmapCategory.SETTLEMENT, [], np.random.default_rng(0)) is None

    def test_rings_centered_on_assets(self, assets):
        heatmap = build_heatmap(HeatmapCategory.SETTLEMENT, assets, np.random.default_rng(0))
        center = mean_center(a.location.latlng for a in assets)
        assert [r.radius_m for r in heatmap.rings] == list(RING_RADII_M) == [800.0, 550.0, 300.0]
        assert [r.fill_opacity for r in heatmap.rings] == list(RING_FILL_OPACITY)
        assert all(r.center == center for r in heatmap.rings)
        assert [r.color for r in heatmap.rings] == list(HeatmapCategory.SETTLEMENT.palette)

    def test_at_most_five_samples_near_assets(self, assets):
        heatmap = build_heatmap(HeatmapCategory.STRENGTH, assets, np.random.default_rng(3))
        assert len(heatmap.samples) == 5
        for asset, sample in zip(assets, heatmap.samples):
            assert abs(sample.location[0] - asset.location.lat) <= 0.001 + 1e-9
            assert abs(sample.location[1] - asset.location.lng) <= 0.001 + 1e-9
            assert 0 <= sample.value < 100
            assert sample.unit == "kPa"
            assert sample.color in HeatmapCategory.STRENGTH.palette

    def test_seeded_generator_is_deterministic(self, assets):
        first = build_heatmap(HeatmapCategory.GROUNDWATER, assets, np.random.default_rng(42))
        second = build_heatmap(HeatmapCategory.GROUNDWATER, assets, np.random.default_rng(42))
        assert first == second

    def test_units(self):
        assert HeatmapCategory.SETTLEMENT.unit == "mm"
        assert HeatmapCategory.GROUNDWATER.unit == "m"
        assert HeatmapCategory.STRENGTH.unit == "kPa"


@pytest.mark.unit
class TestIntensityBucket:
    @pytest.mark.parametrize("value,bucket", [(0.0, 0), (33.0, 0), (34.0, 1), (66.0, 1),
                                              (67.0, 2), (99.99, 2)])
    def test_tertiles(self, value, bucket):
        assert intensity_bucket(value) == bucket
