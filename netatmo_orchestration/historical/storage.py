"""
Atomic Storage Handler

Implements the "write-and-rename" pattern for CSV outputs, so a station
cache or export file on disk is always complete. Also shapes the merged
dataset into the export table.
"""
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pandas as pd

EXPORT_FIXED_COLUMNS = ['device_id', 'timestamp', 'isoTime']


def atomic_write_csv(frame: pd.DataFrame, final_path: Path) -> None:
    """
    Atomically write a DataFrame to CSV using write-and-rename.

    If the process crashes mid-write, the partial file is left under a
    temporary name and the destination keeps its previous content.

    Args:
        frame: Table to write (index is not written)
        final_path: Final destination path for the file

    Raises:
        OSError: If the write fails; the temporary file is removed first
    """
    final_path = Path(final_path)
    final_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory as the target, so the rename stays on one filesystem
    temp_path = final_path.parent / f"{final_path.name}.{uuid.uuid4().hex[:8]}.tmp"

    try:
        frame.to_csv(temp_path, index=False)
        os.replace(temp_path, final_path)
    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def iso_time(timestamp: Any) -> str:
    """Epoch seconds to UTC ISO-8601 with milliseconds, e.g. 2016-09-01T00:00:00.000Z"""
    moment = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


def dataset_to_frame(dataset: List[Dict[str, Any]], variables: Sequence[str]) -> pd.DataFrame:
    """
    Shape merged records into the export table.

    Columns are device_id, timestamp, isoTime, then one per requested
    variable in request order. Row order is the dataset order.

    Args:
        dataset: Records as produced by the batch coordinator
        variables: Requested variable names

    Returns:
        DataFrame ready to be written as CSV
    """
    columns = EXPORT_FIXED_COLUMNS + list(variables)
    rows = [
        {
            'device_id': record['device_id'],
            'timestamp': record['timestamp'],
            'isoTime': iso_time(record['timestamp']),
            **{variable: record.get(variable) for variable in variables},
        }
        for record in dataset
    ]
    return pd.DataFrame(rows, columns=columns, dtype=object)


def export_dataset(dataset: List[Dict[str, Any]], variables: Sequence[str], output_path: Path) -> Path:
    """
    Write the merged dataset as CSV.

    Args:
        dataset: Records as produced by the batch coordinator
        variables: Requested variable names (one column each)
        output_path: Destination CSV path

    Returns:
        The path written
    """
    output_path = Path(output_path)
    atomic_write_csv(dataset_to_frame(dataset, variables), output_path)
    return output_path
