"""Region feature types for each hierarchy level and the GeoJSON adapters that build them.

Each boundary dataset names its properties differently (Bezirke use ``name``,
Ortsteile use ``Name`` plus an HTML ``Description``). The adapters below read
those fields once at load time so the rest of the app only sees a uniform
``name`` / ``parent_name``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple

from utils.logger_config import setup_logger

logger = setup_logger(__name__)

DISTRICT_NAME_FIELD = 'name'
NEIGHBORHOOD_NAME_FIELD = 'Name'
NEIGHBORHOOD_DESCRIPTION_FIELD = 'Description'

# The Ortsteile export embeds the owning Bezirk in an HTML table row.
PARENT_NAME_PATTERN = re.compile(r'BEZNAME</td>\s*<td>([^<]+)</td>')


class HierarchyLevel(IntEnum):
    REGION = 0
    DISTRICT = 1
    NEIGHBORHOOD = 2

    @property
    def key(self) -> str:
        return self.name.lower()

    @property
    def label(self) -> str:
        return LEVEL_GUIDE[self]['label']

    @property
    def local_label(self) -> str:
        return LEVEL_GUIDE[self]['local']

    @property
    def local_plural(self) -> str:
        return LEVEL_GUIDE[self]['local_plural']


LEVEL_GUIDE: Dict[HierarchyLevel, Dict[str, str]] = {
    HierarchyLevel.REGION: {'label': 'City', 'local': 'Stadt', 'local_plural': 'Städte'},
    HierarchyLevel.DISTRICT: {'label': 'District', 'local': 'Bezirk', 'local_plural': 'Bezirke'},
    HierarchyLevel.NEIGHBORHOOD: {'label': 'Neighborhood', 'local': 'Ortsteil', 'local_plural': 'Ortsteile'},
}


@dataclass(frozen=True)
class RegionFeature:
    name: str
    geometry: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)
    parent_name: Optional[str] = None

    level: ClassVar[HierarchyLevel]

    def to_geojson(self) -> Dict[str, Any]:
        """Plain GeoJSON feature keyed by name, as the map surface expects."""
        return {
            'type': 'Feature',
            'id': self.name,
            'properties': {'name': self.name, 'parent_name': self.parent_name},
            'geometry': dict(self.geometry),
        }


@dataclass(frozen=True)
class DistrictFeature(RegionFeature):
    level: ClassVar[HierarchyLevel] = HierarchyLevel.DISTRICT


@dataclass(frozen=True)
class NeighborhoodFeature(RegionFeature):
    level: ClassVar[HierarchyLevel] = HierarchyLevel.NEIGHBORHOOD

    @property
    def is_attributed(self) -> bool:
        return self.parent_name is not None


@dataclass(frozen=True)
class CityMarker:
    """Region-level entry point drawn as a circle marker on the overview map."""

    name: str
    lat: float
    lon: float
    population: int

    level: ClassVar[HierarchyLevel] = HierarchyLevel.REGION


MAJOR_GERMAN_CITIES: Tuple[CityMarker, ...] = (
    CityMarker('Berlin', 52.5200, 13.4050, 3669495),
    CityMarker('Hamburg', 53.5511, 9.9937, 1841179),
    CityMarker('Munich', 48.1351, 11.5820, 1471508),
    CityMarker('Cologne', 50.9375, 6.9603, 1085664),
    CityMarker('Frankfurt', 50.1109, 8.6821, 753056),
    CityMarker('Stuttgart', 48.7758, 9.1829, 634830),
    CityMarker('Düsseldorf', 51.2277, 6.7735, 619294),
    CityMarker('Leipzig', 51.3397, 12.3731, 597493),
    CityMarker('Dortmund', 51.5136, 7.4653, 588250),
    CityMarker('Essen', 51.4556, 7.0116, 582760),
)


def extract_parent_name(description: Optional[str]) -> Optional[str]:
    """Pull the Bezirk name out of an Ortsteil description, verbatim; None if absent."""
    if not description:
        return None
    match = PARENT_NAME_PATTERN.search(str(description))
    if not match:
        return None
    return match.group(1)


def _feature_name(raw: Mapping[str, Any], name_field: str) -> Optional[str]:
    properties = raw.get('properties') or {}
    name = properties.get(name_field)
    if not isinstance(name, str) or not name.strip():
        return None
    return name.strip()


def district_from_geojson(raw: Mapping[str, Any], name_field: str = DISTRICT_NAME_FIELD) -> Optional[DistrictFeature]:
    name = _feature_name(raw, name_field)
    if name is None:
        logger.warning(f'Skipping district feature without {name_field!r} property')
        return None
    return DistrictFeature(name=name, geometry=raw.get('geometry') or {})


def neighborhood_from_geojson(
    raw: Mapping[str, Any],
    name_field: str = NEIGHBORHOOD_NAME_FIELD,
    description_field: str = NEIGHBORHOOD_DESCRIPTION_FIELD,
) -> Optional[NeighborhoodFeature]:
    name = _feature_name(raw, name_field)
    if name is None:
        logger.warning(f'Skipping neighborhood feature without {name_field!r} property')
        return None
    properties = raw.get('properties') or {}
    parent = extract_parent_name(properties.get(description_field))
    if parent is None:
        logger.warning(f'Neighborhood {name!r} has no parseable parent district; it will not be shown')
    return NeighborhoodFeature(name=name, geometry=raw.get('geometry') or {}, parent_name=parent)
