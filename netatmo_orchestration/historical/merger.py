"""
Variable Merger - Per-Station Record Assembly

Fetches each requested variable of one station in turn and joins the
streams on timestamp into one record per timestamp.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

from .errors import ValidationError
from .models import ABSENT, MeasurementWindow, StationDescriptor, WindowTemplate
from .paginator import MeasurementPaginator
from .structured_logger import StructuredLogger
from .variables import canonicalize

logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(__name__)

RESERVED_FIELDS = ('device_id', 'timestamp', 'date', 'isoTime')


def validate_variables(variables: Sequence[str]) -> List[str]:
    """
    Check the requested variable list and return it as a list.

    Raises:
        ValidationError: If it is not a sequence of non-empty strings
    """
    if isinstance(variables, (str, bytes)) or not isinstance(variables, (list, tuple)):
        raise ValidationError(f"Requested variables must be a list of names, got {variables!r}")
    if not variables:
        raise ValidationError("At least one variable must be requested")
    for variable in variables:
        if not isinstance(variable, str) or not variable.strip():
            raise ValidationError(f"Invalid variable name: {variable!r}")
        if variable in RESERVED_FIELDS:
            raise ValidationError(f"Variable name clashes with a record field: {variable!r}")
    return list(variables)


class VariableMerger:
    """
    Builds the merged timestep records for a single station.

    The output looks like:
        [
            {
                'device_id': '70:ee:50:02:3d:2c',
                'timestamp': '1472688000',
                'date': datetime(2016, 9, 1, tzinfo=timezone.utc),
                'temperature': 12.6,
                'rain': None,
            },
            ...
        ]

    Every requested variable is a key of every record, holding ABSENT when
    the station has no reading, so the export always has the same columns.
    """

    def __init__(self, paginator: MeasurementPaginator):
        self.paginator = paginator

    def merge_station(self, station: StationDescriptor, template: WindowTemplate,
                      variables: Sequence[str]) -> List[Dict[str, Any]]:
        """
        Fetch and merge all requested variables for one station.

        Variables are fetched one at a time, in the given order. Variables
        the station has no module for are skipped. If any fetch fails the
        error propagates and nothing is returned for this station.

        Args:
            station: Station to read
            template: Scale and time range of the run
            variables: Requested variable names (e.g., ["temperature", "sum_rain"])

        Returns:
            Records in the order their timestamps were first seen

        Raises:
            ValidationError: If variables is malformed
            AuthError, ApiError, NetworkError, DataError: From the paginator
        """
        variables = validate_variables(variables)
        start_time = time.time()

        # timestamp -> {variable: value}, in first-seen order
        merged: Dict[str, Dict[str, Any]] = {}
        fetched = []
        skipped = []

        for variable in variables:
            module_id = station.module_for(canonicalize(variable))
            if module_id is None:
                logger.debug(f"  {station.device_id} has no module for {variable}, skipping")
                skipped.append(variable)
                continue

            # The request type is the variable as asked for (e.g. max_temp),
            # sent to the module that measures its category
            window = MeasurementWindow.for_station(station, module_id, variable.lower(), template)
            observations = self.paginator.fetch(window)
            fetched.append(variable)

            for timestamp, values in observations.items():
                values_at = merged.setdefault(timestamp, {})
                values_at[variable] = values[0] if values else ABSENT

        records = [self._build_record(station, timestamp, values_at, variables)
                   for timestamp, values_at in merged.items()]

        structured_logger.log_station_merged(
            device_id=station.device_id,
            records=len(records),
            fetched=fetched,
            skipped=skipped,
            duration_sec=time.time() - start_time
        )
        return records

    @staticmethod
    def _build_record(station: StationDescriptor, timestamp: str,
                      values_at: Dict[str, Any], variables: List[str]) -> Dict[str, Any]:
        record = {
            'device_id': station.device_id,
            'timestamp': timestamp,
            'date': datetime.fromtimestamp(int(timestamp), tz=timezone.utc),
        }
        for variable in variables:
            record[variable] = values_at.get(variable, ABSENT)
        return record
