"""
Variable Alias Table

Maps the measurement names a user can request from getmeasure onto the
sensor category the public-data directory files modules under.
"""
from types import MappingProxyType
from typing import Mapping

CANONICAL_CATEGORIES = ('temperature', 'humidity', 'pressure', 'rain', 'wind')

# co2 and noise are measured by the indoor base station, which the
# directory lists under pressure.
VARIABLE_ALIASES: Mapping[str, str] = MappingProxyType({
    'temperature': 'temperature',
    'min_temp': 'temperature',
    'max_temp': 'temperature',
    'date_min_temp': 'temperature',
    'date_max_temp': 'temperature',
    'humidity': 'humidity',
    'min_hum': 'humidity',
    'max_hum': 'humidity',
    'date_min_hum': 'humidity',
    'date_max_hum': 'humidity',
    'pressure': 'pressure',
    'min_pressure': 'pressure',
    'max_pressure': 'pressure',
    'date_min_pressure': 'pressure',
    'date_max_pressure': 'pressure',
    'co2': 'pressure',
    'date_min_co2': 'pressure',
    'date_max_co2': 'pressure',
    'noise': 'pressure',
    'min_noise': 'pressure',
    'max_noise': 'pressure',
    'date_min_noise': 'pressure',
    'date_max_noise': 'pressure',
    'rain': 'rain',
    'sum_rain': 'rain',
    'wind': 'wind',
    'windstrength': 'wind',
    'windangle': 'wind',
    'guststrength': 'wind',
    'gustangle': 'wind',
})


def canonicalize(name: str) -> str:
    """
    Resolve a requested variable name to its canonical sensor category.

    Lookup is case-insensitive. Unknown names come back lowercased and
    unchanged, so no station will ever have a module for them.

    Args:
        name: Variable name as requested (e.g., "MAX_TEMP", "sum_rain")

    Returns:
        Canonical category (e.g., "temperature", "rain")
    """
    lowered = name.lower()
    return VARIABLE_ALIASES.get(lowered, lowered)
