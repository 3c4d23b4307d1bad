"""Runtime configuration for the rent map.

Values come from module constants, optionally overridden through environment
variables (a local `.env` file is loaded first).
"""
import os
from pathlib import Path
from typing import Dict, Tuple

from dotenv import load_dotenv

from utils.exceptions import ConfigError

load_dotenv()

ROOT = Path(__file__).resolve().parent.parent


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as err:
        raise ConfigError(f'{name} must be numeric, got {raw!r}') from err


def _env_int(name: str, default: int) -> int:
    value = _env_float(name, default)
    if value != int(value):
        raise ConfigError(f'{name} must be a whole number, got {value}')
    return int(value)


DATA_DIR = Path(os.getenv('RENT_MAP_DATA_DIR', ROOT / 'data'))
RENT_DATA_PATH = DATA_DIR / os.getenv('RENT_MAP_RENT_FILE', 'combined_rent_data.json')
NEIGHBORHOOD_PATH = DATA_DIR / os.getenv('RENT_MAP_NEIGHBORHOOD_FILE', 'ortsteile.geojson')
REPORTS_DIR = ROOT / 'reports'

# Cities with a modeled district (Bezirk) collection
CITY_DISTRICT_FILES: Dict[str, str] = {
    'Berlin': 'berlin_bezirke.geojson',
    'Hamburg': 'hamburg_bezirke.geojson',
}

DEFAULT_CITY = os.getenv('RENT_MAP_DEFAULT_CITY', 'Berlin')

# Pinned (lat, lon, zoom) entry views; more stable than fitting filtered data
GERMANY_VIEW: Tuple[float, float, float] = (51.1657, 10.4515, 5.5)
CITY_VIEWS: Dict[str, Tuple[float, float, float]] = {
    'Berlin': (52.52, 13.405, 11.0),
    'Hamburg': (53.5511, 9.9937, 10.5),
}

# Fit-to-bounds padding in pixels, keyed by the level of the clicked feature.
# Negative padding lets small neighborhoods overflow the frame slightly.
LEVEL_PADDING: Dict[str, int] = {
    'district': 10,
    'neighborhood': -30,
}
MAX_FIT_ZOOM = _env_float('RENT_MAP_MAX_FIT_ZOOM', 13.0)

MAP_WIDTH = _env_int('RENT_MAP_WIDTH', 900)
MAP_HEIGHT = _env_int('RENT_MAP_HEIGHT', 650)
MAP_STYLE = 'carto-positron'


def city_district_paths(data_dir: Path = DATA_DIR) -> Dict[str, Path]:
    return {city: data_dir / filename for city, filename in CITY_DISTRICT_FILES.items()}
