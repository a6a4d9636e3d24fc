"""
Historical Measurement Ingestion Module

Sequential per-station ingestion from the Netatmo getmeasure API.
Each variable is paged past the 1024-timestamp cap and merged per timestamp.
"""

from .orchestrate import StationBatchCoordinator, run_historical_export
from .merger import VariableMerger
from .paginator import MeasurementPaginator
from .variables import canonicalize

__all__ = [
    'MeasurementPaginator',
    'StationBatchCoordinator',
    'VariableMerger',
    'canonicalize',
    'run_historical_export',
]
