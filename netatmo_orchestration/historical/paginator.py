"""
Measurement Paginator

getmeasure returns at most MEASURE_RESULT_CAP timestamps per call. The
paginator keeps requesting, moving the window begin to the last timestamp
of the previous page, until a page comes back short.

The boundary timestamp is requested twice (last of one page, first of the
next); merging pages by key stores it exactly once.
"""
import logging
import time
from enum import Enum
from typing import Any, Dict, List

from .api_client import fetch_measure
from .config import MEASURE_RESULT_CAP, PAGE_PAUSE_SECONDS
from .errors import DataError, NetatmoError, ValidationError
from .models import AccessToken, MeasurementWindow
from .structured_logger import StructuredLogger

logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(__name__)


class PageState(Enum):
    REQUESTING = "requesting"
    MORE_DATA = "more_data"
    DONE = "done"
    FAILED = "failed"


class MeasurementPaginator:
    """
    Reads one module/type over an arbitrarily long window.

    Pages are fetched strictly one after another with a fixed pause in
    between. The pause is proactive only; nothing reacts to rate-limit
    responses, and failures are never retried.
    """

    def __init__(self, access_token: AccessToken, pause_seconds: float = PAGE_PAUSE_SECONDS):
        """
        Args:
            access_token: Token shared by every request of the run
            pause_seconds: Fixed delay between two pages of the same fetch
        """
        self.access_token = access_token
        self.pause_seconds = pause_seconds
        self.state = PageState.DONE

    def fetch(self, window: MeasurementWindow, cap: int = MEASURE_RESULT_CAP) -> Dict[str, List[Any]]:
        """
        Fetch every observation in `window`.

        Args:
            window: Module, type, scale and time range to read
            cap: Page size at which the server is assumed to have more data

        Returns:
            Ordered mapping of timestamp string to value list, one entry per
            distinct timestamp (empty if the window holds no data)

        Raises:
            ValidationError: If cap is not a positive integer
            DataError: If a full page does not move the window forward
            AuthError, ApiError, NetworkError: Propagated from the request
        """
        if isinstance(cap, bool) or not isinstance(cap, int) or cap < 1:
            raise ValidationError(f"cap must be a positive integer, got {cap!r}")

        observations: Dict[str, List[Any]] = {}
        current = window
        page_number = 0
        self.state = PageState.REQUESTING

        while self.state is not PageState.DONE:
            if self.state is PageState.MORE_DATA:
                time.sleep(self.pause_seconds)
                self.state = PageState.REQUESTING

            try:
                page = fetch_measure(self.access_token, current)
            except NetatmoError:
                self.state = PageState.FAILED
                raise

            page_number += 1
            structured_logger.log_page_fetched(
                device_id=current.device_id,
                module_id=current.module_id,
                variable_type=current.variable_type,
                date_begin=current.date_begin,
                entries=len(page),
                page=page_number
            )

            # Later pages overwrite the shared boundary timestamp
            observations.update(page)

            if len(page) < cap:
                self.state = PageState.DONE
                continue

            last_timestamp = int(list(page)[-1])
            if last_timestamp <= current.date_begin:
                self.state = PageState.FAILED
                raise DataError(
                    f"Full page for {current.device_id}/{current.module_id} {current.variable_type} "
                    f"ended at {last_timestamp}, window did not advance past {current.date_begin}"
                )
            if last_timestamp >= current.date_end:
                self.state = PageState.DONE
                continue

            current = current.starting_at(last_timestamp)
            self.state = PageState.MORE_DATA

        logger.debug(f"{window.device_id}/{window.module_id} {window.variable_type}: "
                     f"{len(observations)} timestamps in {page_number} pages")
        return observations
