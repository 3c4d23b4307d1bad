#!/usr/bin/env python3
"""Generate a rent coverage summary CSV for the loaded boundary and rent data.

One row per (city, district) with its neighborhood count, how many of those
have a rent figure, and the district average; plus one row per neighborhood
whose parent district could not be parsed from its description.

Writes: reports/rent_coverage.csv
"""
from pathlib import Path
import pandas as pd
import sys

ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / 'src'
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

import map_config
from region_dataset import RegionDataset, load_region_dataset
from rent_lookup import RentLookup, load_rent_record
from utils.exceptions import DatasetLoadError
from utils.naming import normalize_name

OUT = map_config.REPORTS_DIR / 'rent_coverage.csv'


def district_rows(dataset: RegionDataset, rents: RentLookup):
    rows = []
    for city in dataset.supported_cities:
        for district in dataset.districts_of(city):
            key = normalize_name(district.name)
            neighborhoods = dataset.neighborhoods_of(district.name)
            covered = [n for n in neighborhoods if rents.average_for_neighborhood(key, n.name) > 0]
            rows.append({
                'type': 'district',
                'city': city,
                'district': district.name,
                'district_key': key,
                'neighborhood': None,
                'n_neighborhoods': len(neighborhoods),
                'n_with_rent': len(covered),
                'district_average': rents.average_for_district(key),
            })
    return rows


def unattributed_rows(dataset: RegionDataset):
    return [
        {
            'type': 'unattributed',
            'city': None,
            'district': None,
            'district_key': None,
            'neighborhood': feature.name,
            'n_neighborhoods': None,
            'n_with_rent': None,
            'district_average': None,
        }
        for feature in dataset.unattributed()
    ]


def summarise(dataset: RegionDataset, rents: RentLookup) -> pd.DataFrame:
    all_rows = district_rows(dataset, rents) + unattributed_rows(dataset)
    return pd.DataFrame(all_rows, columns=[
        'type', 'city', 'district', 'district_key', 'neighborhood',
        'n_neighborhoods', 'n_with_rent', 'district_average',
    ])


def main():
    try:
        dataset = load_region_dataset(map_config.city_district_paths(), map_config.NEIGHBORHOOD_PATH)
        rents = RentLookup(load_rent_record(map_config.RENT_DATA_PATH))
    except DatasetLoadError as e:
        print(f'Cannot build coverage summary: {e}', file=sys.stderr)
        return 2
    df = summarise(dataset, rents)
    if df.empty:
        print('No districts or neighborhoods found; nothing to report.', file=sys.stderr)
        return 2
    OUT.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(OUT, index=False)
    print('Wrote', OUT)
    return 0

if __name__ == '__main__':
    raise SystemExit(main())
