"""Marker clustering as an injectable capability.

The canvas adapter depends on a :class:`ClusterProvider`.  The radius
provider groups markers greedily by ground distance; the unavailable
provider stands in when clustering cannot be offered, and the adapter
falls back to plain markers when it raises.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from geosite.canvas.primitives import Cluster, ClusterGroup, Marker
from geosite.canvas.symbology import cluster_size
from geosite.errors import ClusterProviderUnavailable
from geosite.geo import haversine_distance, mean_center


class ClusterProvider(ABC):
    """Groups markers into clusters."""

    @abstractmethod
    def group(self, markers: list[Marker], radius_m: float) -> ClusterGroup:
        """Cluster markers whose positions fall within ``radius_m`` of a cluster."""


class RadiusClusterProvider(ClusterProvider):
    """Greedy radius clustering.

    Markers are visited in order; each joins the first cluster whose
    centre is within the radius, otherwise it seeds a new cluster.
    Centres are recomputed as member means after each join.
    """

    def group(self, markers: list[Marker], radius_m: float) -> ClusterGroup:
        buckets: list[list[Marker]] = []
        centers: list[tuple[float, float]] = []
        for marker in markers:
            for idx, center in enumerate(centers):
                if haversine_distance(center, marker.location) <= radius_m:
                    buckets[idx].append(marker)
                    centers[idx] = mean_center(m.location for m in buckets[idx])
                    break
            else:
                buckets.append([marker])
                centers.append(marker.location)

        clusters = [
            Cluster(center=center, members=members, size=cluster_size(len(members)))
            for center, members in zip(centers, buckets)
        ]
        return ClusterGroup(clusters=clusters, radius_m=radius_m)


class UnavailableClusterProvider(ClusterProvider):
    """Placeholder used when clustering cannot be loaded."""

    def __init__(self, reason: str = "clustering not available") -> None:
        self.reason = reason

    def group(self, markers: list[Marker], radius_m: float) -> ClusterGroup:
        raise ClusterProviderUnavailable(self.reason)


_PROVIDERS = {
    "radius": RadiusClusterProvider,
}


def load_cluster_provider(name: str = "radius") -> ClusterProvider:
    """Look up a cluster provider by name; unknown names give the unavailable one."""
    cls = _PROVIDERS.get(name)
    if cls is None:
        return UnavailableClusterProvider(f"unknown cluster provider {name!r}")
    return cls()
