"""
Structured JSON Logging for Historical Ingestion

Provides both human-readable console logs and structured JSON logs for analysis.
"""
import json
import logging
from pathlib import Path
from datetime import datetime, timezone


class JSONFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured JSON logs.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if provided
        if hasattr(record, 'extra_data'):
            log_data.update(record.extra_data)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """
    Logger that outputs both human-readable and structured JSON logs.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.json_log_file = None

    def setup_json_logging(self, log_file: Path):
        """
        Setup JSON logging to a separate file.

        Args:
            log_file: Path to JSON log file
        """
        self.json_log_file = log_file

        json_handler = logging.FileHandler(log_file)
        json_handler.setLevel(logging.DEBUG)
        json_handler.setFormatter(JSONFormatter())

        self.logger.addHandler(json_handler)

    def log_event(self, level: str, message: str, **extra_data):
        """
        Log an event with structured data.

        Args:
            level: Log level (INFO, WARNING, ERROR, etc.)
            message: Human-readable message
            **extra_data: Additional structured data to log
        """
        log_method = getattr(self.logger, level.lower())

        # Attach extra data to the record
        extra = {'extra_data': extra_data} if extra_data else {}

        log_method(message, extra=extra)

    def log_token_acquired(self, expires_in: int):
        """Log a new access token (its lifetime only, never the token)."""
        self.log_event(
            'INFO',
            f"Access token acquired, expires in {expires_in}s",
            event_type="token_acquired",
            expires_in_seconds=expires_in
        )

    def log_page_fetched(self, device_id: str, module_id: str, variable_type: str,
                         date_begin: int, entries: int, page: int):
        """
        Log one getmeasure page.

        Args:
            device_id: Station id
            module_id: Module id
            variable_type: Measurement type requested
            date_begin: Begin of the window for this page (epoch seconds)
            entries: Number of timestamps returned
            page: 1-based page number within the fetch
        """
        self.log_event(
            'DEBUG',
            f"{device_id}/{module_id} {variable_type} page {page}: {entries} timestamps",
            event_type="page_fetched",
            device_id=device_id,
            module_id=module_id,
            variable_type=variable_type,
            date_begin=date_begin,
            entries=entries,
            page=page
        )

    def log_station_merged(self, device_id: str, records: int, fetched: list,
                           skipped: list, duration_sec: float):
        """
        Log a station whose variables were all fetched and merged.

        Args:
            device_id: Station id
            records: Number of merged timestep records
            fetched: Requested variables the station has a module for
            skipped: Requested variables the station cannot provide
            duration_sec: Time taken for the station
        """
        self.log_event(
            'INFO',
            f"{device_id} merged: {records} records, {len(fetched)} variables",
            event_type="station_merged",
            device_id=device_id,
            records=records,
            variables_fetched=fetched,
            variables_skipped=skipped,
            duration_seconds=round(duration_sec, 2)
        )

    def log_run_complete(self, total_stations: int, total_records: int, duration_sec: float):
        """
        Log overall batch completion with structured data.

        Args:
            total_stations: Stations processed
            total_records: Records in the final dataset
            duration_sec: Total run duration
        """
        self.log_event(
            'INFO',
            f"Run complete: {total_stations} stations, {total_records} records",
            event_type="run_complete",
            total_stations=total_stations,
            total_records=total_records,
            duration_seconds=round(duration_sec, 2)
        )
