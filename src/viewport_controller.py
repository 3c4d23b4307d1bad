"""Camera framing for the drill-down map.

Commands are final states, not deltas: re-issuing one while the previous
transition is still animating simply supersedes it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np

import map_config
from navigation_state import NavigationState
from region_features import HierarchyLevel, RegionFeature
from utils.logger_config import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class Bounds:
    west: float
    south: float
    east: float
    north: float

    @property
    def center(self) -> Tuple[float, float]:
        """(lat, lon) midpoint."""
        return ((self.south + self.north) / 2, (self.west + self.east) / 2)

    def union(self, other: 'Bounds') -> 'Bounds':
        return Bounds(
            min(self.west, other.west),
            min(self.south, other.south),
            max(self.east, other.east),
            max(self.north, other.north),
        )


@dataclass(frozen=True)
class FitBounds:
    bounds: Bounds
    padding: int = 0
    max_zoom: float = 13.0


@dataclass(frozen=True)
class SetView:
    lat: float
    lon: float
    zoom: float


CameraCommand = Union[FitBounds, SetView]


def exterior_rings(geometry: Mapping[str, Any]) -> List[Any]:
    """Outer ring of a Polygon, or of every polygon in a MultiPolygon."""
    if not geometry:
        return []
    geometry_type = geometry.get('type')
    coordinates = geometry.get('coordinates') or []
    if not isinstance(coordinates, (list, tuple)):
        return []
    if geometry_type == 'Polygon':
        polygons = [coordinates]
    elif geometry_type == 'MultiPolygon':
        polygons = coordinates
    else:
        return []
    return [polygon[0] for polygon in polygons if isinstance(polygon, (list, tuple)) and polygon]


def _ring_array(ring: Any) -> Optional[np.ndarray]:
    """(n, 2) lon/lat array of one ring; None when the ring is malformed or empty."""
    if not isinstance(ring, (list, tuple)) or not ring:
        return None
    try:
        points = np.asarray(ring, dtype=float)
    except (ValueError, TypeError):
        return None
    if points.ndim != 2 or points.shape[1] < 2:
        return None
    points = points[:, :2]
    points = points[np.isfinite(points).all(axis=1)]
    return points if len(points) else None


def _ring_points(geometry: Mapping[str, Any]) -> Optional[np.ndarray]:
    rings = [points for points in map(_ring_array, exterior_rings(geometry)) if points is not None]
    if not rings:
        return None
    return np.concatenate(rings)


def geometry_bounds(geometry: Mapping[str, Any]) -> Optional[Bounds]:
    points = _ring_points(geometry)
    if points is None:
        return None
    west, south = points.min(axis=0)
    east, north = points.max(axis=0)
    return Bounds(float(west), float(south), float(east), float(north))


def geometry_centroid(geometry: Mapping[str, Any]) -> Optional[Tuple[float, float]]:
    """(lat, lon) vertex mean of the exterior rings, closing vertices dropped."""
    rings = []
    for ring in exterior_rings(geometry):
        points = _ring_array(ring)
        if points is None:
            continue
        if len(points) > 1 and np.array_equal(points[0], points[-1]):
            points = points[:-1]
        rings.append(points)
    if not rings:
        return None
    points = np.concatenate(rings)
    lon, lat = points.mean(axis=0)
    return (float(lat), float(lon))


def union_bounds(features: Iterable[RegionFeature]) -> Optional[Bounds]:
    combined: Optional[Bounds] = None
    for feature in features:
        bounds = geometry_bounds(feature.geometry)
        if bounds is None:
            logger.warning(f'Skipping {feature.name!r} in camera framing: degenerate geometry')
            continue
        combined = bounds if combined is None else combined.union(bounds)
    return combined


class ViewportController:
    """Turn navigation state and feature geometry into camera commands.

    Attributes:
        root_view (SetView): pinned overview camera
        city_views (dict): pinned entry cameras per city
        level_padding (dict): fit padding in pixels, keyed by `HierarchyLevel.key`
        max_zoom (float): zoom cap for fit-to-bounds
    """

    def __init__(
        self,
        root_view: SetView,
        city_views: Optional[Mapping[str, SetView]] = None,
        level_padding: Optional[Mapping[str, int]] = None,
        max_zoom: float = 13.0,
    ) -> None:
        self.root_view = root_view
        self.city_views: Dict[str, SetView] = dict(city_views or {})
        self.level_padding: Dict[str, int] = dict(level_padding or {})
        self.max_zoom = max_zoom

    @classmethod
    def from_config(cls) -> 'ViewportController':
        return cls(
            root_view=SetView(*map_config.GERMANY_VIEW),
            city_views={city: SetView(*view) for city, view in map_config.CITY_VIEWS.items()},
            level_padding=map_config.LEVEL_PADDING,
            max_zoom=map_config.MAX_FIT_ZOOM,
        )

    def padding_for(self, level: HierarchyLevel) -> int:
        return self.level_padding.get(level.key, 0)

    def for_feature(self, feature: RegionFeature) -> Optional[FitBounds]:
        bounds = geometry_bounds(feature.geometry)
        if bounds is None:
            logger.warning(f'Cannot frame {feature.name!r}: degenerate geometry')
            return None
        return FitBounds(bounds, self.padding_for(feature.level), self.max_zoom)

    def for_features(self, features: Iterable[RegionFeature], level: HierarchyLevel) -> Optional[FitBounds]:
        bounds = union_bounds(features)
        if bounds is None:
            return None
        return FitBounds(bounds, self.padding_for(level), self.max_zoom)

    def default_view(self, city_name: Optional[str] = None) -> SetView:
        if city_name and city_name in self.city_views:
            return self.city_views[city_name]
        return self.root_view

    def for_state(self, state: NavigationState, features: Iterable[RegionFeature]) -> CameraCommand:
        """Camera for a state reached by back/reset rather than a click."""
        features = tuple(features)
        level = state.current_level
        if level == HierarchyLevel.REGION:
            return self.root_view
        if level == HierarchyLevel.DISTRICT:
            if state.selected_region_name in self.city_views:
                return self.city_views[state.selected_region_name]
            return self.for_features(features, HierarchyLevel.DISTRICT) or self.root_view
        if state.selected_subregion_name:
            for feature in features:
                if feature.name == state.selected_subregion_name:
                    command = self.for_feature(feature)
                    if command is not None:
                        return command
        # A district's neighborhoods together cover the district itself
        command = self.for_features(features, HierarchyLevel.DISTRICT)
        return command or self.default_view(state.history[0].name if state.history else None)
