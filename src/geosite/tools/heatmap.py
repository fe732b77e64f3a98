"""Heatmap placeholder: concentric rings and random sample points.

This is cosmetic.  There is no interpolation (no kriging, no IDW): three
fixed rings at the asset mean centre and a handful of jittered sample
points with uniform random values bucketed into low/medium/high.  The
random generator is injectable so tests get deterministic samples.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from geosite.assets import Asset
from geosite.geo import LatLng, mean_center
from geosite.tools.modes import HeatmapCategory

RING_RADII_M = (800.0, 550.0, 300.0)
RING_FILL_OPACITY = (0.15, 0.12, 0.09)
MAX_SAMPLES = 5
JITTER_DEG = 0.002
INTENSITY_LEVELS = ("low", "medium", "high")


@dataclass(frozen=True)
class HeatmapRing:
    center: LatLng
    radius_m: float
    color: str
    fill_opacity: float


@dataclass(frozen=True)
class HeatmapSample:
    location: LatLng
    value: float
    intensity: str
    color: str
    unit: str

    @property
    def popup(self) -> str:
        return f"{self.value:.1f}{self.unit}"


@dataclass(frozen=True)
class Heatmap:
    category: HeatmapCategory
    rings: tuple[HeatmapRing, ...]
    samples: tuple[HeatmapSample, ...]


def intensity_bucket(value: float) -> int:
    """Tertile index (0, 1, 2) for a value in [0, 100)."""
    return min(int(value // (100 / 3)), 2)


def build_heatmap(
    category: HeatmapCategory,
    assets: Sequence[Asset],
    rng: np.random.Generator | None = None,
) -> Heatmap | None:
    """Rings and samples for a category, or None when there are no assets."""
    center = mean_center(a.location.latlng for a in assets)
    if center is None:
        return None
    rng = rng if rng is not None else np.random.default_rng()
    palette = category.palette

    rings = tuple(
        HeatmapRing(center, radius, palette[idx], RING_FILL_OPACITY[idx])
        for idx, radius in enumerate(RING_RADII_M)
    )

    samples = []
    for asset in assets[:MAX_SAMPLES]:
        jitter = (rng.random(2) - 0.5) * JITTER_DEG
        value = float(rng.random() * 100)
        bucket = intensity_bucket(value)
        samples.append(HeatmapSample(
            location=(asset.location.lat + float(jitter[0]), asset.location.lng + float(jitter[1])),
            value=value,
            intensity=INTENSITY_LEVELS[bucket],
            color=palette[bucket],
            unit=category.unit,
        ))

    return Heatmap(category=category, rings=rings, samples=tuple(samples))
