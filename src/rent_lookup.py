"""Average rent lookups and the rent → fill color scale.

Missing rent data is common (not every Ortsteil has survey coverage), so every
point query answers `0` for an unknown key instead of raising. `0` is the
"no data" sentinel and is colored with its own gray token.
"""
from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

import pandas as pd

from utils.exceptions import DatasetLoadError
from utils.logger_config import setup_logger
from utils.naming import normalize_name

logger = setup_logger(__name__)

NO_DATA_COLOR = '#e0e0e0'

# (lower bound in €, color), cheapest to most expensive
RENT_BANDS: Tuple[Tuple[float, str], ...] = (
    (0.0, '#31a354'),
    (750.0, '#addd8e'),
    (780.0, '#fed976'),
    (800.0, '#feb24c'),
    (850.0, '#fd8d3c'),
    (900.0, '#fc4e2a'),
    (950.0, '#e31a1c'),
    (1000.0, '#bd0026'),
)
RENT_PALETTE: Tuple[str, ...] = tuple(color for _, color in RENT_BANDS)


def _has_rent(rent: Optional[float]) -> bool:
    if rent is None:
        return False
    try:
        value = float(rent)
    except (TypeError, ValueError):
        return False
    return not math.isnan(value) and value > 0


def color_for_rent(rent: Optional[float]) -> str:
    """Return the fill color for a rent; 0/missing maps to `NO_DATA_COLOR`."""
    if not _has_rent(rent):
        return NO_DATA_COLOR
    color = RENT_PALETTE[0]
    for lower_bound, band_color in RENT_BANDS:
        if float(rent) >= lower_bound:
            color = band_color
    return color


def color_intensity(color: str) -> int:
    """Rank of a color on the palette: 0 for no data, 1 (cheapest) upwards."""
    try:
        return RENT_PALETTE.index(color.lower()) + 1
    except ValueError:
        return 0


def is_color_dark(color: str) -> bool:
    hex_value = color.lstrip('#')
    r, g, b = (int(hex_value[i:i + 2], 16) for i in (0, 2, 4))
    brightness = (r * 299 + g * 587 + b * 114) / 1000
    return brightness < 128


@dataclass(frozen=True)
class RentRecord:
    city_averages: Mapping[str, float] = field(default_factory=dict)
    district_averages: Mapping[str, float] = field(default_factory=dict)
    neighborhood_rents: Mapping[str, Mapping[str, float]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping) -> 'RentRecord':
        """Build a record from the combined rent JSON layout.

        Top-level keys ending in ``_average`` are city averages
        (``berlin_average`` → ``berlin``), ``bezirk_averages`` holds district
        averages and ``districts`` the per-Ortsteil rents.
        """
        if not isinstance(raw, Mapping):
            raise DatasetLoadError(f'Expected a mapping of rent data, got {type(raw).__name__}')
        city_averages: Dict[str, float] = {}
        for key, value in raw.items():
            if key.endswith('_average') and isinstance(value, (int, float)):
                city_averages[normalize_name(key[: -len('_average')])] = float(value)

        district_raw = raw.get('bezirk_averages', {}) or {}
        neighborhood_raw = raw.get('districts', {}) or {}
        if not isinstance(district_raw, Mapping) or not isinstance(neighborhood_raw, Mapping):
            raise DatasetLoadError("'bezirk_averages' and 'districts' must be mappings")

        district_averages = {
            str(key): float(value)
            for key, value in district_raw.items()
            if isinstance(value, (int, float))
        }
        neighborhood_rents: Dict[str, Dict[str, float]] = {}
        for district_key, rents in neighborhood_raw.items():
            if not isinstance(rents, Mapping):
                logger.warning(f'Skipping rent block for {district_key!r}: not a mapping')
                continue
            neighborhood_rents[str(district_key)] = {
                str(name): float(value)
                for name, value in rents.items()
                if isinstance(value, (int, float))
            }
        return cls(city_averages, district_averages, neighborhood_rents)


def load_rent_record(path: Path) -> RentRecord:
    path = Path(path)
    if not path.exists():
        raise DatasetLoadError(f'Rent data file not found: {path}')
    try:
        with path.open('r', encoding='utf-8') as fh:
            raw = json.load(fh)
    except json.JSONDecodeError as err:
        raise DatasetLoadError(f'Rent data file is not valid JSON: {path} ({err})') from err
    record = RentRecord.from_mapping(raw)
    logger.info(
        f'Loaded rent data from {path}: {len(record.city_averages)} cities, '
        f'{len(record.district_averages)} districts, '
        f'{sum(len(v) for v in record.neighborhood_rents.values())} neighborhoods'
    )
    return record


class RentLookup:
    """Read-only queries over a `RentRecord`.

    District keys must already be normalized (`normalize_name`); neighborhood
    names are used verbatim, as they appear in the boundary file.
    """

    def __init__(self, record: RentRecord) -> None:
        self.record = record

    def average_for_city(self, city_name: str) -> float:
        return self.record.city_averages.get(normalize_name(city_name), 0)

    def average_for_district(self, district_key: str) -> float:
        return self.record.district_averages.get(district_key, 0)

    def average_for_neighborhood(self, district_key: str, neighborhood_name: str) -> float:
        return self.record.neighborhood_rents.get(district_key, {}).get(neighborhood_name, 0)

    def color_for_rent(self, rent: Optional[float]) -> str:
        return color_for_rent(rent)

    def rents_for_area(self, district_key: str, neighborhood_name: Optional[str] = None) -> List[float]:
        if neighborhood_name:
            return [self.average_for_neighborhood(district_key, neighborhood_name)]
        return list(self.record.neighborhood_rents.get(district_key, {}).values())

    def rent_range(self) -> Tuple[float, float]:
        rents = [
            rent
            for neighborhoods in self.record.neighborhood_rents.values()
            for rent in neighborhoods.values()
            if _has_rent(rent)
        ]
        if not rents:
            return (0, 0)
        return (min(rents), max(rents))

    def to_frame(self) -> pd.DataFrame:
        rows = [
            {'district_key': district_key, 'neighborhood': name, 'rent': rent}
            for district_key, neighborhoods in self.record.neighborhood_rents.items()
            for name, rent in neighborhoods.items()
        ]
        if not rows:
            return pd.DataFrame(columns=['district_key', 'neighborhood', 'rent'])
        return pd.DataFrame(rows)
