"""Boundary collections per hierarchy level and the parent/child filtering over them."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from region_features import (
    MAJOR_GERMAN_CITIES,
    CityMarker,
    DistrictFeature,
    HierarchyLevel,
    NeighborhoodFeature,
    RegionFeature,
    district_from_geojson,
    neighborhood_from_geojson,
)
from utils.exceptions import DatasetLoadError
from utils.logger_config import setup_logger

logger = setup_logger(__name__)


class RegionDataset:
    """Immutable view over the loaded district and neighborhood features.

    Attributes:
        city_districts: district features per supported city name
        neighborhoods: every neighborhood feature, attributed or not
        cities: Region-level markers for the overview map
    """

    def __init__(
        self,
        city_districts: Mapping[str, Iterable[DistrictFeature]],
        neighborhoods: Iterable[NeighborhoodFeature],
        cities: Iterable[CityMarker] = MAJOR_GERMAN_CITIES,
    ) -> None:
        self.city_districts: Dict[str, Tuple[DistrictFeature, ...]] = {
            city: tuple(features) for city, features in city_districts.items()
        }
        self.neighborhoods: Tuple[NeighborhoodFeature, ...] = tuple(neighborhoods)
        self.cities: Tuple[CityMarker, ...] = tuple(cities)

    @property
    def supported_cities(self) -> List[str]:
        return [city for city, features in self.city_districts.items() if features]

    def districts_of(self, city_name: Optional[str]) -> Tuple[DistrictFeature, ...]:
        if not city_name:
            return ()
        return self.city_districts.get(city_name, ())

    def neighborhoods_of(self, district_name: Optional[str]) -> Tuple[NeighborhoodFeature, ...]:
        # Exact match against the parsed parent: both come from the same source text.
        if not district_name:
            return ()
        return tuple(
            feature for feature in self.neighborhoods
            if feature.parent_name is not None and feature.parent_name == district_name
        )

    def features_for(self, level: HierarchyLevel, name: Optional[str]) -> Tuple[RegionFeature, ...]:
        if level == HierarchyLevel.DISTRICT:
            return self.districts_of(name)
        if level == HierarchyLevel.NEIGHBORHOOD:
            return self.neighborhoods_of(name)
        return ()

    def city_named(self, name: str) -> Optional[CityMarker]:
        for city in self.cities:
            if city.name == name:
                return city
        return None

    def unattributed(self) -> Tuple[NeighborhoodFeature, ...]:
        return tuple(feature for feature in self.neighborhoods if feature.parent_name is None)


def load_feature_collection(path: Path) -> List[Dict[str, Any]]:
    path = Path(path)
    if not path.exists():
        raise DatasetLoadError(f'Boundary file not found: {path}')
    try:
        with path.open('r', encoding='utf-8') as fh:
            raw = json.load(fh)
    except json.JSONDecodeError as err:
        raise DatasetLoadError(f'Boundary file is not valid JSON: {path} ({err})') from err
    if not isinstance(raw, dict) or raw.get('type') != 'FeatureCollection':
        raise DatasetLoadError(f'Expected a GeoJSON FeatureCollection in {path}')
    features = raw.get('features') or []
    if not isinstance(features, list):
        raise DatasetLoadError(f"'features' must be a list in {path}")
    return features


def _adapt(raw_features: Sequence[Mapping[str, Any]], adapter: Callable) -> List:
    adapted = []
    for raw in raw_features:
        if not isinstance(raw, Mapping):
            logger.warning(f'Skipping non-object feature entry: {raw!r:.60}')
            continue
        feature = adapter(raw)
        if feature is not None:
            adapted.append(feature)
    return adapted


def load_region_dataset(
    city_district_paths: Mapping[str, Path],
    neighborhood_path: Path,
    cities: Iterable[CityMarker] = MAJOR_GERMAN_CITIES,
) -> RegionDataset:
    """Load every boundary file once at startup.

    A city whose district file is missing is logged and left unsupported (its
    view renders empty); a missing neighborhood file is fatal.
    """
    city_districts: Dict[str, List[DistrictFeature]] = {}
    for city, path in city_district_paths.items():
        try:
            raw_features = load_feature_collection(path)
        except DatasetLoadError as err:
            logger.warning(f'No district collection for {city}: {err}')
            continue
        city_districts[city] = _adapt(raw_features, district_from_geojson)
        logger.info(f'Loaded {len(city_districts[city])} districts for {city} from {path}')

    neighborhoods = _adapt(load_feature_collection(neighborhood_path), neighborhood_from_geojson)
    dataset = RegionDataset(city_districts, neighborhoods, cities)
    unattributed = dataset.unattributed()
    logger.info(
        f'Loaded {len(neighborhoods)} neighborhoods from {neighborhood_path} '
        f'({len(unattributed)} without a parent district)'
    )
    if not dataset.supported_cities:
        logger.warning('No city has a district collection; only the overview map will have data')
    return dataset
