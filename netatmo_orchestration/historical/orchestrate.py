"""
Historical Measurement Orchestrator

Sequential ingestion of many stations. Stations are processed one after
another with a fixed pause in between, because every request of the run
draws on the same Netatmo rate budget.
"""
import sys
import argparse
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .api_client import request_token
from .config import (
    BASE_DATA_DIR,
    DEFAULT_BBOX,
    DEFAULT_FILTER,
    DEFAULT_SCALE,
    LOGS_DIR,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    SCALES,
    STATION_PAUSE_SECONDS,
    STATIONS_CSV,
    get_credentials,
)
from .errors import NetatmoError, ValidationError
from .merger import VariableMerger, validate_variables
from .models import AccessToken, BoundingBox, StationDescriptor, WindowTemplate
from .paginator import MeasurementPaginator
from .station_directory import get_station_list
from .storage import export_dataset
from .structured_logger import StructuredLogger

logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(__name__)


def setup_logging(verbose: bool = False):
    """
    Configure logging for the orchestrator.

    Args:
        verbose: If True, set DEBUG level; otherwise INFO

    Returns:
        Tuple of (human log file path, JSON log file path)
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    log_file = LOGS_DIR / f"historical_orchestrator_{timestamp}.log"
    json_log_file = LOGS_DIR / f"historical_orchestrator_{timestamp}.json"

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    logging.getLogger().addHandler(file_handler)

    # Structured events from every stage go to the same JSON file
    from .merger import structured_logger as merger_logger
    from .paginator import structured_logger as paginator_logger
    for stage_logger in (structured_logger, merger_logger, paginator_logger):
        stage_logger.setup_json_logging(json_log_file)

    logging.info(f"Logging to: {log_file}")
    logging.info(f"JSON logs: {json_log_file}")

    return log_file, json_log_file


class StationBatchCoordinator:
    """
    Runs the variable merger over an ordered station list.

    The run is fail-fast: the first station error aborts it and no partial
    dataset is returned.
    """

    def __init__(self, merger: VariableMerger, pause_seconds: float = STATION_PAUSE_SECONDS):
        """
        Args:
            merger: Per-station merger (owns the paginator and token)
            pause_seconds: Fixed delay between two stations
        """
        self.merger = merger
        self.pause_seconds = pause_seconds

    def run(self, stations: Sequence[StationDescriptor], template: WindowTemplate,
            variables: Sequence[str]) -> List[Dict[str, Any]]:
        """
        Fetch and merge the requested variables for every station.

        Args:
            stations: Stations in the order their records should appear
            template: Scale and time range for every fetch
            variables: Requested variable names

        Returns:
            All records, station by station, each station's records in
            merge order

        Raises:
            ValidationError: If stations or variables are malformed
            AuthError, ApiError, NetworkError, DataError: From the first failing station
        """
        if isinstance(stations, (str, bytes)) or not isinstance(stations, (list, tuple)):
            raise ValidationError(f"Station list must be a list, got {type(stations).__name__}")
        for station in stations:
            if not isinstance(station, StationDescriptor):
                raise ValidationError(f"Not a StationDescriptor: {station!r}")
        variables = validate_variables(variables)

        start_time = time.time()
        dataset: List[Dict[str, Any]] = []

        for index, station in enumerate(stations):
            if index > 0:
                time.sleep(self.pause_seconds)

            logger.info(f"Processing station {index + 1}/{len(stations)}: {station.device_id}")
            try:
                records = self.merger.merge_station(station, template, variables)
            except NetatmoError as e:
                logger.error(f"[FAIL] {station.device_id}: {e}. Aborting run "
                             f"({index} of {len(stations)} stations completed)")
                raise

            dataset.extend(records)

        elapsed = time.time() - start_time
        structured_logger.log_run_complete(
            total_stations=len(stations),
            total_records=len(dataset),
            duration_sec=elapsed
        )
        return dataset


def run_historical_export(
    start_day: str,
    end_day: str,
    variables: List[str],
    scale: str = DEFAULT_SCALE,
    bbox: BoundingBox = None,
    stations_csv: Path = STATIONS_CSV,
    output_csv: Path = None,
    use_existing: bool = False,
    filter_stations: bool = DEFAULT_FILTER,
) -> Dict[str, Any]:
    """
    Fetch a date range for every station in an area and export it as CSV.

    Steps:
    1. Acquire one access token for the whole run
    2. Load or fetch (and cache) the station list
    3. Fetch and merge all variables, station by station
    4. Write the export CSV

    Args:
        start_day: First day (e.g., "2016-09-01")
        end_day: Last day, included
        variables: Requested variable names
        scale: getmeasure scale
        bbox: Area to query (default: Amsterdam)
        stations_csv: Station cache path
        output_csv: Export path (default: data/net_<start>_to_<end>.csv)
        use_existing: Reuse the station cache instead of querying the directory
        filter_stations: Passed through to getpublicdata

    Returns:
        Summary dictionary
    """
    template = WindowTemplate.from_days(start_day, end_day, scale)
    variables = validate_variables(variables)
    bbox = bbox or BoundingBox(**DEFAULT_BBOX)
    output_csv = output_csv or BASE_DATA_DIR / f"net_{start_day}_to_{end_day}.csv"

    start_time = datetime.now()

    logger.info("=" * 80)
    logger.info("NETATMO HISTORICAL EXPORT - SEQUENTIAL STATION LOADING")
    logger.info("=" * 80)
    logger.info(f"Days: {start_day} to {end_day} (scale {scale})")
    logger.info(f"Variables: {', '.join(variables)}")
    logger.info(f"Station list: {'cache ' + str(stations_csv) if use_existing else str(bbox)}")
    logger.info("=" * 80)

    token: AccessToken = request_token(get_credentials())
    structured_logger.log_token_acquired(token.expires_in)

    stations = get_station_list(use_existing, stations_csv, token, bbox, filter_stations)

    coordinator = StationBatchCoordinator(VariableMerger(MeasurementPaginator(token)))
    dataset = coordinator.run(stations, template, variables)

    logger.info(f"Saving {len(dataset)} records to {output_csv}")
    export_dataset(dataset, variables, output_csv)

    elapsed = (datetime.now() - start_time).total_seconds()
    if elapsed > token.expires_in:
        logger.warning(f"Run took {elapsed:.0f}s, longer than the token lifetime "
                       f"({token.expires_in}s)")

    logger.info("=" * 80)
    logger.info("EXPORT COMPLETE")
    logger.info(f"Stations: {len(stations)}")
    logger.info(f"Records: {len(dataset)}")
    logger.info(f"Total time: {elapsed:.1f}s ({elapsed/60:.1f} minutes)")
    logger.info("=" * 80)

    return {
        'success': True,
        'total_stations': len(stations),
        'total_records': len(dataset),
        'output_csv': str(output_csv),
        'elapsed_seconds': round(elapsed, 2),
    }


def parse_bbox(value: str) -> BoundingBox:
    """Parse "lat_ne,lon_ne,lat_sw,lon_sw" into a BoundingBox."""
    try:
        lat_ne, lon_ne, lat_sw, lon_sw = (float(part) for part in value.split(','))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected lat_ne,lon_ne,lat_sw,lon_sw, got {value!r}")
    try:
        return BoundingBox(lat_ne=lat_ne, lon_ne=lon_ne, lat_sw=lat_sw, lon_sw=lon_sw)
    except ValidationError as e:
        raise argparse.ArgumentTypeError(str(e))


def main():
    """CLI entry point for the historical export"""
    parser = argparse.ArgumentParser(
        description="Netatmo Historical Export - Sequential Station Loading",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Hourly temperature for Amsterdam, September 2016
  python -m netatmo_orchestration.historical.orchestrate --start-day 2016-09-01 --end-day 2016-09-30

  # Several variables, reusing the cached station list
  python -m netatmo_orchestration.historical.orchestrate --start-day 2016-09-01 --end-day 2016-09-30 \\
      --variables temperature,humidity,sum_rain --use-existing

  # Custom bounding box, daily maxima
  python -m netatmo_orchestration.historical.orchestrate --start-day 2016-09-01 --end-day 2016-09-30 \\
      --bbox 51.55,0.05,51.45,-0.2 --variables max_temp --scale 1day
        """
    )

    parser.add_argument('--start-day', type=str, required=True,
                        help='First day to load (e.g., 2016-09-01)')
    parser.add_argument('--end-day', type=str, required=True,
                        help='Last day to load, included (e.g., 2016-09-30)')
    parser.add_argument('--variables', type=str, default='temperature',
                        help='Comma-separated variables (e.g., "temperature,humidity,sum_rain")')
    parser.add_argument('--scale', type=str, default=DEFAULT_SCALE, choices=SCALES,
                        help=f'Measurement scale (default: {DEFAULT_SCALE})')
    parser.add_argument('--bbox', type=parse_bbox, default=None,
                        help='Bounding box "lat_ne,lon_ne,lat_sw,lon_sw" (default: Amsterdam)')
    parser.add_argument('--stations-csv', type=Path, default=STATIONS_CSV,
                        help=f'Station cache file (default: {STATIONS_CSV})')
    parser.add_argument('--use-existing', action='store_true',
                        help='Load the station list from the cache instead of the API')
    parser.add_argument('--no-filter', action='store_true',
                        help='Do not ask Netatmo to filter out irrelevant stations')
    parser.add_argument('--output', type=Path, default=None,
                        help='Output CSV (default: data/net_<start>_to_<end>.csv)')
    parser.add_argument('--verbose', action='store_true',
                        help='Enable verbose logging (DEBUG level)')

    args = parser.parse_args()

    setup_logging(args.verbose)

    variables = [v.strip() for v in args.variables.split(',') if v.strip()]

    try:
        summary = run_historical_export(
            start_day=args.start_day,
            end_day=args.end_day,
            variables=variables,
            scale=args.scale,
            bbox=args.bbox,
            stations_csv=args.stations_csv,
            output_csv=args.output,
            use_existing=args.use_existing,
            filter_stations=not args.no_filter,
        )
    except NetatmoError as e:
        logger.error(f"[FAIL] Run aborted: {type(e).__name__}: {e}")
        sys.exit(1)

    sys.exit(0 if summary['success'] else 1)


if __name__ == "__main__":
    main()
