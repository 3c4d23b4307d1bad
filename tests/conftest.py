import os
import sys
import tempfile
from pathlib import Path

import pytest

os.environ.setdefault('RENT_MAP_LOG_DIR', str(Path(tempfile.gettempdir()) / 'rent_map_test_logs'))

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from region_dataset import RegionDataset
from region_features import DistrictFeature, NeighborhoodFeature, neighborhood_from_geojson
from rent_lookup import RentLookup, RentRecord


def square(lon, lat, size=0.02):
    ring = [[lon, lat], [lon + size, lat], [lon + size, lat + size], [lon, lat + size], [lon, lat]]
    return {'type': 'Polygon', 'coordinates': [ring]}


def ortsteil_description(parent):
    return (
        '<html><table><tr><td>Name</td><td>x</td></tr>'
        f'<tr><td>BEZNAME</td>\n    <td>{parent}</td></tr></table></html>'
    )


def raw_ortsteil(name, parent, geometry=None):
    return {
        'type': 'Feature',
        'properties': {'Name': name, 'Description': ortsteil_description(parent) if parent else 'no table here'},
        'geometry': geometry or square(13.4, 52.5),
    }


RENT_DATA = {
    'berlin_average': 870.0,
    'hamburg_average': 910.0,
    'bezirk_averages': {
        'mitte': 940.0,
        'pankow': 820.0,
        'friedrichshain-kreuzberg': 990.0,
        'neukoelln': 760.0,
    },
    'districts': {
        'mitte': {'Moabit': 905.0, 'Wedding': 0},
        'pankow': {'Buch': 710.0, 'Prenzlauer Berg': 1040.0},
        'friedrichshain-kreuzberg': {'Kreuzberg': 1005.0},
        'neukoelln': {'Britz': 780.0},
    },
}


@pytest.fixture
def rent_lookup():
    return RentLookup(RentRecord.from_mapping(RENT_DATA))


@pytest.fixture
def districts():
    return [
        DistrictFeature('Mitte', square(13.35, 52.52)),
        DistrictFeature('Pankow', square(13.40, 52.56, 0.1)),
        DistrictFeature('Friedrichshain-Kreuzberg', square(13.42, 52.49)),
        DistrictFeature('Neukölln', square(13.43, 52.45)),
    ]


@pytest.fixture
def neighborhoods():
    raw = [
        raw_ortsteil('Moabit', 'Mitte', square(13.33, 52.52, 0.01)),
        raw_ortsteil('Wedding', 'Mitte', square(13.35, 52.54, 0.01)),
        raw_ortsteil('Buch', 'Pankow', square(13.48, 52.63, 0.01)),
        raw_ortsteil('Prenzlauer Berg', 'Pankow', square(13.41, 52.53, 0.01)),
        raw_ortsteil('Kreuzberg', 'Friedrichshain-Kreuzberg', square(13.40, 52.49, 0.01)),
        raw_ortsteil('Britz', 'Neukölln', square(13.43, 52.44, 0.01)),
        raw_ortsteil('Irgendwo', None),
    ]
    return [neighborhood_from_geojson(feature) for feature in raw]


@pytest.fixture
def dataset(districts, neighborhoods):
    return RegionDataset({'Berlin': districts}, neighborhoods)
