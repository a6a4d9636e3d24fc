from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import patch

import pytest

from netatmo_orchestration.historical.errors import DataError, ValidationError
from netatmo_orchestration.historical.models import AccessToken, BoundingBox, StationDescriptor
from netatmo_orchestration.historical.station_directory import (
    classify_modules,
    csv_to_stations,
    get_station_list,
    make_station_list,
    stations_to_csv,
)


@pytest.fixture
def public_data() -> List[Dict[str, Any]]:
    return [
        {
            "_id": "70:ee:50:02:3d:2c",
            "place": {
                "location": [4.8923, 52.3731],
                "altitude": 2,
                "timezone": "Europe/Amsterdam",
            },
            "measures": {
                "02:00:00:02:39:ba": {"res": {}, "type": ["temperature", "humidity"]},
                "70:ee:50:02:3d:2c": {"res": {}, "type": ["pressure"]},
                "05:00:00:00:e4:58": {"rain_60min": 0, "rain_24h": 1.2},
                "06:00:00:00:4a:1e": {"wind_strength": 8, "wind_angle": 240},
            },
        },
        {
            "_id": "70:ee:50:01:aa:10",
            "place": {
                "location": [4.80, 52.33],
                "altitude": -1,
                "timezone": "Europe/Amsterdam",
            },
            "measures": {
                "05:00:00:01:11:22": {"rain_live": 0},
            },
        },
    ]


def test_classify_rain_wind_and_typed_modules() -> None:
    measures = {
        "05:00:00:00:e4:58": {},
        "06:00:00:00:4a:1e": {},
        "02:00:00:02:39:ba": {"type": ["temperature", "humidity"]},
    }

    assert classify_modules(measures) == {
        "rain": "05:00:00:00:e4:58",
        "wind": "06:00:00:00:4a:1e",
        "temperature": "02:00:00:02:39:ba",
        "humidity": "02:00:00:02:39:ba",
    }


def test_make_station_list(public_data: List[Dict[str, Any]]) -> None:
    stations = make_station_list(public_data)

    assert len(stations) == 2
    first = stations[0]
    assert first.device_id == "70:ee:50:02:3d:2c"
    assert (first.lon, first.lat, first.altitude) == (4.8923, 52.3731, 2.0)
    assert first.variables == {
        "temperature": "02:00:00:02:39:ba",
        "humidity": "02:00:00:02:39:ba",
        "pressure": "70:ee:50:02:3d:2c",
        "rain": "05:00:00:00:e4:58",
        "wind": "06:00:00:00:4a:1e",
    }
    assert stations[1].variables == {"rain": "05:00:00:01:11:22"}


def test_make_station_list_malformed_record() -> None:
    with pytest.raises(DataError):
        make_station_list([{"_id": "70:ee:50:02:3d:2c", "measures": {}}])


def test_make_station_list_module_entry_not_a_dict() -> None:
    record = {
        "_id": "70:ee:50:02:3d:2c",
        "place": {"location": [4.89, 52.37], "altitude": 2, "timezone": "Europe/Amsterdam"},
        "measures": {"02:00:00:02:39:ba": "temperature"},
    }

    with pytest.raises(DataError) as excinfo:
        make_station_list([record])

    assert "70:ee:50:02:3d:2c" in str(excinfo.value)


def test_make_station_list_record_not_a_dict() -> None:
    with pytest.raises(DataError) as excinfo:
        make_station_list(["70:ee:50:02:3d:2c"])

    assert "Malformed station record ?" in str(excinfo.value)


def test_csv_round_trip(tmp_path: Path, station_a: StationDescriptor, station_b: StationDescriptor) -> None:
    path = tmp_path / "stations.csv"

    stations_to_csv([station_a, station_b], path)
    loaded = csv_to_stations(path)

    assert loaded == [station_a, station_b]
    assert loaded[1].module_for("temperature") is None
    assert loaded[0].lat == pytest.approx(52.37)


def test_csv_header(tmp_path: Path, station_b: StationDescriptor) -> None:
    path = tmp_path / "stations.csv"

    stations_to_csv([station_b], path)

    header = path.read_text().splitlines()[0]
    assert header == "device_id,lon,lat,altitude,timezone,t_id,h_id,p_id,r_id"


def test_wind_is_not_cached(tmp_path: Path) -> None:
    station = StationDescriptor("id", 1.0, 2.0, 3.0, "UTC", {"wind": "06:00:00:00:4a:1e"})
    path = tmp_path / "stations.csv"

    stations_to_csv([station], path)

    assert csv_to_stations(path)[0].variables == {}


def test_csv_missing_columns(tmp_path: Path) -> None:
    path = tmp_path / "stations.csv"
    path.write_text("device_id,lon,lat\nx,1,2\n")

    with pytest.raises(DataError):
        csv_to_stations(path)


def test_csv_missing_file(tmp_path: Path) -> None:
    with pytest.raises(DataError) as excinfo:
        csv_to_stations(tmp_path / "stations.csv")

    assert "Cannot read station cache" in str(excinfo.value)


def test_csv_empty_file(tmp_path: Path) -> None:
    path = tmp_path / "stations.csv"
    path.write_text("")

    with pytest.raises(DataError):
        csv_to_stations(path)


def test_get_station_list_missing_cache(tmp_path: Path) -> None:
    with pytest.raises(DataError):
        get_station_list(True, tmp_path / "stations.csv")


def test_get_station_list_fetches_and_caches(
    tmp_path: Path, public_data: List[Dict[str, Any]]
) -> None:
    path = tmp_path / "cache" / "stations.csv"
    bbox = BoundingBox(lat_ne=52.427417, lon_ne=4.978180, lat_sw=52.280630, lon_sw=4.717255)

    with patch("netatmo_orchestration.historical.station_directory.fetch_public_data",
               return_value=public_data) as mock_fetch:
        stations = get_station_list(False, path, AccessToken("tok", 10800), bbox)

    mock_fetch.assert_called_once()
    assert len(stations) == 2
    assert path.exists()
    assert [s.device_id for s in get_station_list(True, path)] == [s.device_id for s in stations]


def test_get_station_list_needs_token_for_fetch(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        get_station_list(False, tmp_path / "stations.csv")
