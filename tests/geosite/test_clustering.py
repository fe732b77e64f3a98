"""Tests for marker clustering providers."""

import pytest

from geosite.canvas.clustering import (
    RadiusClusterProvider,
    UnavailableClusterProvider,
    load_cluster_provider,
)
from geosite.canvas.primitives import Marker, MarkerStyle
from geosite.errors import ClusterProviderUnavailable

STYLE = MarkerStyle(color="#186181", background="#ffffff", icon_color="#186181", icon="layers")


def _marker(lat, lng, asset_id):
    return Marker((lat, lng), STYLE, asset_id=asset_id)


@pytest.mark.unit
class TestRadiusClusterProvider:
    def test_nearby_markers_share_a_cluster(self):
        markers = [
            _marker(51.5154, -0.1755, "a"),
            _marker(51.5155, -0.1754, "b"),
            _marker(51.6000, -0.1000, "c"),
        ]
        group = RadiusClusterProvider().group(markers, radius_m=200.0)
        assert len(group.clusters) == 2
        assert sorted(c.count for c in group.clusters) == [1, 2]
        assert {m.asset_id for m in group.markers} == {"a", "b", "c"}

    def test_cluster_center_is_member_mean(self):
        markers = [_marker(0.0, 0.0, "a"), _marker(0.0002, 0.0, "b")]
        group = RadiusClusterProvider().group(markers, radius_m=100.0)
        assert len(group.clusters) == 1
        assert group.clusters[0].center == pytest.approx((0.0001, 0.0))

    def test_size_classes(self):
        markers = [_marker(0.0, 0.00001 * i, str(i)) for i in range(12)]
        group = RadiusClusterProvider().group(markers, radius_m=500.0)
        assert group.clusters[0].size == "large"
        group = RadiusClusterProvider().group(markers[:6], radius_m=500.0)
        assert group.clusters[0].size == "medium"
        group = RadiusClusterProvider().group(markers[:5], radius_m=500.0)
        assert group.clusters[0].size == "small"


@pytest.mark.unit
class TestProviderLookup:
    def test_radius_by_name(self):
        assert isinstance(load_cluster_provider("radius"), RadiusClusterProvider)

    def test_unknown_name_is_unavailable(self):
        provider = load_cluster_provider("supercluster")
        assert isinstance(provider, UnavailableClusterProvider)
        with pytest.raises(ClusterProviderUnavailable):
            provider.group([], 100.0)
