"""
Station Directory

Turns getpublicdata results into StationDescriptors and persists them to
a CSV cache, so a later run can reuse the same station list without
querying the directory again.
"""
import logging
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd

from .api_client import fetch_public_data
from .errors import DataError, ValidationError
from .models import AccessToken, BoundingBox, StationDescriptor
from .storage import atomic_write_csv

logger = logging.getLogger(__name__)

RAIN_MODULE_PREFIX = '05'
WIND_MODULE_PREFIX = '06'

# Cache column -> station category
CACHE_MODULE_COLUMNS = {
    't_id': 'temperature',
    'h_id': 'humidity',
    'p_id': 'pressure',
    'r_id': 'rain',
}
CACHE_COLUMNS = ['device_id', 'lon', 'lat', 'altitude', 'timezone'] + list(CACHE_MODULE_COLUMNS)


def classify_modules(measures: Dict[str, Any]) -> Dict[str, str]:
    """
    Work out which module measures each category.

    Rain and wind modules carry no `type` list; they are recognised by
    their id prefix (05 and 06). Every other module lists the categories
    it measures.

    Args:
        measures: The `measures` map of a raw station record

    Returns:
        Mapping of category to module id
    """
    variables = {}
    for module_id, module in measures.items():
        if module_id.startswith(RAIN_MODULE_PREFIX):
            variables['rain'] = module_id
        elif module_id.startswith(WIND_MODULE_PREFIX):
            variables['wind'] = module_id
        else:
            for category in module.get('type', []):
                variables[category.lower()] = module_id
    return variables


def make_station_list(public_data: List[Dict[str, Any]]) -> List[StationDescriptor]:
    """
    Convert raw getpublicdata records to StationDescriptors.

    Raises:
        DataError: If a record is missing its id, place or measures
    """
    stations = []
    for raw in public_data:
        try:
            place = raw['place']
            stations.append(StationDescriptor(
                device_id=raw['_id'],
                lon=float(place['location'][0]),
                lat=float(place['location'][1]),
                altitude=float(place['altitude']),
                timezone=place['timezone'],
                variables=classify_modules(raw['measures']),
            ))
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            station_id = raw.get('_id', '?') if isinstance(raw, dict) else '?'
            raise DataError(f"Malformed station record {station_id}: {e!r}") from e
    return stations


def stations_to_csv(stations: List[StationDescriptor], csv_path: Path) -> None:
    """
    Save a station list to the CSV cache.

    Missing modules are written as empty cells. Wind modules are not
    part of the cache schema and are dropped.
    """
    rows = []
    for station in stations:
        row = {
            'device_id': station.device_id,
            'lon': station.lon,
            'lat': station.lat,
            'altitude': station.altitude,
            'timezone': station.timezone,
        }
        for column, category in CACHE_MODULE_COLUMNS.items():
            row[column] = station.variables.get(category, '')
        rows.append(row)

    atomic_write_csv(pd.DataFrame(rows, columns=CACHE_COLUMNS), csv_path)
    logger.info(f"Saved {len(stations)} stations to {csv_path}")


def csv_to_stations(csv_path: Path) -> List[StationDescriptor]:
    """
    Load a station list saved by stations_to_csv.

    Raises:
        DataError: If the cache cannot be read, a required column is missing
            or a number does not parse
    """
    try:
        df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    except (OSError, pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise DataError(f"Cannot read station cache {csv_path}: {e}") from e

    missing = [c for c in CACHE_COLUMNS if c not in df.columns]
    if missing:
        raise DataError(f"Station cache {csv_path} is missing columns: {', '.join(missing)}")

    stations = []
    for _, row in df.iterrows():
        try:
            stations.append(StationDescriptor(
                device_id=row['device_id'],
                lon=float(row['lon']),
                lat=float(row['lat']),
                altitude=float(row['altitude']),
                timezone=row['timezone'],
                variables={category: row[column]
                           for column, category in CACHE_MODULE_COLUMNS.items() if row[column]},
            ))
        except ValueError as e:
            raise DataError(f"Bad numeric value for station {row['device_id']} in {csv_path}: {e}") from e
    return stations


def get_station_list(use_existing: bool, csv_path: Path, access_token: AccessToken = None,
                     bbox: BoundingBox = None, filter_stations: bool = True) -> List[StationDescriptor]:
    """
    Load the cached station list, or fetch a fresh one and cache it.

    Args:
        use_existing: Read csv_path instead of querying the directory
        csv_path: Station cache location
        access_token: Token for the directory query (unused with use_existing)
        bbox: Area to query (unused with use_existing)
        filter_stations: Passed through to getpublicdata

    Returns:
        Station list
    """
    csv_path = Path(csv_path)
    if use_existing:
        stations = csv_to_stations(csv_path)
        logger.info(f"Retrieved {len(stations)} stations from {csv_path}")
        return stations

    if access_token is None or bbox is None:
        raise ValidationError("access_token and bbox are required to fetch a new station list")

    stations = make_station_list(fetch_public_data(access_token, bbox, filter_stations))
    logger.info(f"Retrieved {len(stations)} stations from the Netatmo API")
    stations_to_csv(stations, csv_path)
    return stations
