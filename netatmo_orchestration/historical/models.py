"""
Value types shared by the historical ingestion pipeline.

All types are frozen: every request builds its own snapshot and nothing
mutates a structure owned by the caller.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .config import SCALES
from .errors import ValidationError

# Value of a record field when the station has no reading for that variable.
ABSENT = None


@dataclass(frozen=True)
class Credentials:
    """Netatmo app and account credentials for the password grant."""
    client_id: str
    client_secret: str
    username: str
    password: str

    def __post_init__(self):
        missing = [name for name in ('client_id', 'client_secret', 'username', 'password')
                   if not isinstance(getattr(self, name), str) or not getattr(self, name)]
        if missing:
            raise ValidationError(f"Credentials are missing: {', '.join(missing)}")

    def __repr__(self) -> str:
        return f"Credentials(client_id={self.client_id!r}, username={self.username!r})"

    def to_form(self) -> Dict[str, str]:
        """Form parameters for the token endpoint."""
        return {
            'client_id': self.client_id,
            'client_secret': self.client_secret,
            'username': self.username,
            'password': self.password,
            'grant_type': 'password',
        }


@dataclass(frozen=True)
class AccessToken:
    """Bearer token for one run. Never refreshed."""
    value: str
    expires_in: int

    def __repr__(self) -> str:
        return f"AccessToken(expires_in={self.expires_in})"


@dataclass(frozen=True)
class BoundingBox:
    """Geographic rectangle for a public-data directory query."""
    lat_ne: float
    lon_ne: float
    lat_sw: float
    lon_sw: float

    def __post_init__(self):
        if self.lat_ne < self.lat_sw or self.lon_ne < self.lon_sw:
            raise ValidationError(f"North-east corner must lie north-east of south-west corner: {self}")

    def to_params(self) -> Dict[str, float]:
        return {
            'lat_ne': self.lat_ne,
            'lon_ne': self.lon_ne,
            'lat_sw': self.lat_sw,
            'lon_sw': self.lon_sw,
        }


@dataclass(frozen=True)
class StationDescriptor:
    """
    A public weather station and the module measuring each sensor category.

    `variables` maps a canonical category (temperature, humidity, pressure,
    rain, wind) to a module id. Categories the station lacks are simply
    not present.
    """
    device_id: str
    lon: float
    lat: float
    altitude: float
    timezone: str
    variables: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        # Freeze the mapping so the descriptor is immutable all the way down
        object.__setattr__(self, 'variables', MappingProxyType(dict(self.variables)))

    def module_for(self, category: str) -> Optional[str]:
        """Module id measuring `category`, or None if the station lacks one."""
        return self.variables.get(category)


def _check_epoch_range(date_begin: Any, date_end: Any) -> None:
    for name, value in (('date_begin', date_begin), ('date_end', date_end)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be integer epoch seconds, got {value!r}")
    if date_begin > date_end:
        raise ValidationError(f"date_begin ({date_begin}) is after date_end ({date_end})")


@dataclass(frozen=True)
class WindowTemplate:
    """Scale and time range shared by every fetch in a run."""
    scale: str
    date_begin: int
    date_end: int

    def __post_init__(self):
        if self.scale not in SCALES:
            raise ValidationError(f"Unknown scale {self.scale!r}, expected one of {', '.join(SCALES)}")
        _check_epoch_range(self.date_begin, self.date_end)

    @classmethod
    def from_days(cls, start_day: str, end_day: str, scale: str) -> 'WindowTemplate':
        """
        Build a template covering whole UTC days.

        Args:
            start_day: First day, ISO format (e.g., "2016-09-01")
            end_day: Last day, included in the window
            scale: getmeasure scale

        Returns:
            WindowTemplate from start_day 00:00 to the midnight after end_day
        """
        try:
            begin = datetime.fromisoformat(start_day).replace(tzinfo=timezone.utc)
            end = datetime.fromisoformat(end_day).replace(tzinfo=timezone.utc)
        except ValueError as e:
            raise ValidationError(f"Invalid day: {e}") from e
        return cls(
            scale=scale,
            date_begin=int(begin.timestamp()),
            date_end=int(end.timestamp()) + 24 * 60 * 60,
        )


@dataclass(frozen=True)
class MeasurementWindow:
    """One getmeasure query: a single module and type over a time range."""
    device_id: str
    module_id: str
    variable_type: str
    scale: str
    date_begin: int
    date_end: int

    def __post_init__(self):
        if self.scale not in SCALES:
            raise ValidationError(f"Unknown scale {self.scale!r}, expected one of {', '.join(SCALES)}")
        _check_epoch_range(self.date_begin, self.date_end)

    @classmethod
    def for_station(cls, station: StationDescriptor, module_id: str,
                    variable_type: str, template: WindowTemplate) -> 'MeasurementWindow':
        return cls(
            device_id=station.device_id,
            module_id=module_id,
            variable_type=variable_type,
            scale=template.scale,
            date_begin=template.date_begin,
            date_end=template.date_end,
        )

    def starting_at(self, date_begin: int) -> 'MeasurementWindow':
        """Copy of this window with a new begin time."""
        return replace(self, date_begin=date_begin)

    def to_params(self, access_token: AccessToken) -> Dict[str, Any]:
        """Form parameters for a getmeasure request (raw, non-optimized values)."""
        return {
            'access_token': access_token.value,
            'device_id': self.device_id,
            'module_id': self.module_id,
            'type': self.variable_type,
            'scale': self.scale,
            'date_begin': self.date_begin,
            'date_end': self.date_end,
            'optimize': 'false',
        }
