"""
Configuration for Historical Measurement Ingestion

Simple configuration without external dependencies (no Pydantic).
Credentials are read from the environment / .env file.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

from .errors import ValidationError

# Get project root (3 levels up: historical -> netatmo_orchestration -> project_root)
PROJECT_ROOT = Path(__file__).parent.parent.parent.absolute()

# Load environment variables
load_dotenv(PROJECT_ROOT / ".env")

# API Configuration
NETATMO_BASE_URL = "https://api.netatmo.net"
TOKEN_URL = f"{NETATMO_BASE_URL}/oauth2/token"
PUBLIC_DATA_URL = f"{NETATMO_BASE_URL}/api/getpublicdata"
MEASURE_URL = f"{NETATMO_BASE_URL}/api/getmeasure"

CREDENTIAL_ENV_VARS = {
    'client_id': 'NETATMO_CLIENT_ID',
    'client_secret': 'NETATMO_CLIENT_SECRET',
    'username': 'NETATMO_USERNAME',
    'password': 'NETATMO_PASSWORD',
}

# API Limits (published by Netatmo, not enforced by the server in a detectable way)
APP_RATE_LIMIT_PER_10_SEC = 200
APP_QUOTA_PER_HOUR = 2000
USER_RATE_LIMIT_PER_10_SEC = 50
USER_QUOTA_PER_HOUR = 500
MEASURE_RESULT_CAP = 1024  # Max timestamps per getmeasure response

# Pacing (fixed delays, never adjusted at runtime)
PAGE_PAUSE_SECONDS = 0.2
STATION_PAUSE_SECONDS = 0.3

REQUEST_TIMEOUT_SECONDS = 60

# getmeasure time-bucket resolutions
SCALES = ('max', '30min', '1hour', '3hours', '1day', '1week', '1month')
DEFAULT_SCALE = '1hour'

# Default bounding box: Amsterdam
DEFAULT_BBOX = {
    'lat_ne': 52.427417,
    'lon_ne': 4.978180,
    'lat_sw': 52.280630,
    'lon_sw': 4.717255,
}
# Filter out 'not relevant' stations. Oddly, True can return more stations.
DEFAULT_FILTER = True

# Paths
BASE_DATA_DIR = PROJECT_ROOT / "data"
STATIONS_CSV = BASE_DATA_DIR / "stations.csv"
LOGS_DIR = PROJECT_ROOT / "logs"


def get_credentials():
    """
    Read the Netatmo app and user credentials from the environment.

    Returns:
        Credentials with client_id, client_secret, username and password

    Raises:
        ValidationError: If any of the variables is unset or empty
    """
    creds = {key: os.getenv(env_var, '') for key, env_var in CREDENTIAL_ENV_VARS.items()}
    missing = [CREDENTIAL_ENV_VARS[key] for key, value in creds.items() if not value]
    if missing:
        raise ValidationError(f"Missing environment variables: {', '.join(missing)}")

    # models imports this module for SCALES
    from .models import Credentials
    return Credentials(**creds)


# Logging Configuration
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
