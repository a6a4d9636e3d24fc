import time
from typing import Any, Dict, List, Tuple

import pytest

from netatmo_orchestration.historical.models import (
    AccessToken,
    MeasurementWindow,
    StationDescriptor,
    WindowTemplate,
)

BASE_TS = 1472688000  # 2016-09-01T00:00:00Z
HOUR = 3600


class FakeMeasureServer:
    """Stands in for fetch_measure, paging a fixed series like getmeasure does."""

    def __init__(self, cap: int = 1024) -> None:
        self.cap = cap
        self.series: Dict[Tuple[str, str, str], List[Tuple[int, float]]] = {}
        self.calls: List[MeasurementWindow] = []

    def add(self, device_id: str, module_id: str, variable_type: str,
            timestamps: List[int], values: List[float] = None) -> None:
        values = values if values is not None else [float(i) for i in range(len(timestamps))]
        self.series[(device_id, module_id, variable_type)] = list(zip(timestamps, values))

    def __call__(self, access_token: AccessToken, window: MeasurementWindow) -> Dict[str, List[Any]]:
        self.calls.append(window)
        points = self.series.get((window.device_id, window.module_id, window.variable_type), [])
        in_window = [(ts, v) for ts, v in points if window.date_begin <= ts <= window.date_end]
        return {str(ts): [v] for ts, v in in_window[: self.cap]}


def hourly(count: int, start: int = BASE_TS) -> List[int]:
    return [start + i * HOUR for i in range(count)]


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> List[float]:
    """Record pacing delays instead of sleeping."""
    recorded: List[float] = []
    monkeypatch.setattr(time, "sleep", recorded.append)
    return recorded


@pytest.fixture
def token() -> AccessToken:
    return AccessToken(value="fake-token", expires_in=10800)


@pytest.fixture
def template() -> WindowTemplate:
    return WindowTemplate(scale="1hour", date_begin=BASE_TS, date_end=BASE_TS + 400 * 24 * HOUR)


@pytest.fixture
def station_a() -> StationDescriptor:
    """Outdoor module for temperature and humidity, base station for pressure."""
    return StationDescriptor(
        device_id="70:ee:50:02:3d:2c",
        lon=4.89,
        lat=52.37,
        altitude=2.0,
        timezone="Europe/Amsterdam",
        variables={
            "temperature": "02:00:00:02:39:ba",
            "humidity": "02:00:00:02:39:ba",
            "pressure": "70:ee:50:02:3d:2c",
        },
    )


@pytest.fixture
def station_b() -> StationDescriptor:
    """Rain gauge only."""
    return StationDescriptor(
        device_id="70:ee:50:01:aa:10",
        lon=4.80,
        lat=52.33,
        altitude=-1.0,
        timezone="Europe/Amsterdam",
        variables={"rain": "05:00:00:00:e4:58"},
    )


@pytest.fixture
def server(monkeypatch: pytest.MonkeyPatch) -> FakeMeasureServer:
    fake = FakeMeasureServer()
    monkeypatch.setattr("netatmo_orchestration.historical.paginator.fetch_measure", fake)
    return fake
