"""
Netatmo API Client

Handles all interactions with the Netatmo REST API:
- Password-grant token acquisition
- Public station directory (getpublicdata)
- Historical measurements (getmeasure)

There is no retry layer. Every failure is classified into the
NetatmoError hierarchy and raised to the caller.
"""
import logging
from typing import Any, Dict, List, Optional

import requests

from .config import (
    TOKEN_URL,
    PUBLIC_DATA_URL,
    MEASURE_URL,
    MEASURE_RESULT_CAP,
    REQUEST_TIMEOUT_SECONDS,
)
from .errors import ApiError, AuthError, DataError, NetworkError, ValidationError
from .models import AccessToken, BoundingBox, Credentials, MeasurementWindow

# Set up logger for this module
logger = logging.getLogger(__name__)

# Netatmo error codes meaning the token itself was refused
AUTH_ERROR_CODES = {
    1: "Access token missing",
    2: "Invalid access token",
    3: "Access token expired",
}

def _post(url: str, form: Dict[str, Any]) -> requests.Response:
    """POST a form, turning transport failures into NetworkError."""
    try:
        return requests.post(url, data=form, timeout=REQUEST_TIMEOUT_SECONDS)
    except requests.exceptions.RequestException as e:
        logger.warning(f"Network error calling {url}: {type(e).__name__}: {e}")
        raise NetworkError(f"Network error: {e}", e) from e


def _decode(response: requests.Response) -> Optional[Dict[str, Any]]:
    """Decode a JSON body, returning None when it is not a JSON object."""
    try:
        body = response.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def raise_for_api_error(response: requests.Response, body: Optional[Dict[str, Any]]) -> None:
    """
    Raise the appropriate error for a failed API response.

    Netatmo reports failures as {"error": {"code": N, "message": "..."}}.
    Token problems (codes 1-3, or HTTP 401) become AuthError; everything
    else that is not a 200 with status "ok" becomes ApiError.

    Args:
        response: HTTP response object
        body: Decoded JSON body, or None if it could not be decoded

    Raises:
        AuthError: If the token was missing, invalid or expired
        ApiError: For any other error status or error body
    """
    error = (body or {}).get('error')
    if isinstance(error, dict):
        code = error.get('code')
        message = error.get('message') or AUTH_ERROR_CODES.get(code, 'Unknown error')
        if code in AUTH_ERROR_CODES or response.status_code == 401:
            raise AuthError(response.status_code, message, body)
        raise ApiError(response.status_code, f"Netatmo returned the error: {message}", body)

    if response.status_code == 401:
        raise AuthError(response.status_code, "Unauthorized", body)

    if response.status_code != 200:
        raise ApiError(response.status_code,
                       f"Error querying Netatmo API, status code: {response.status_code}", body)

    if body is None:
        raise ApiError(response.status_code, "Response body is not a JSON object")

    if body.get('status') != 'ok':
        raise ApiError(response.status_code, f"Netatmo returned the status: {body.get('status')}", body)


def request_token(credentials: Credentials) -> AccessToken:
    """
    Obtain an access token using the password grant.

    Args:
        credentials: Credentials for the Netatmo app and user

    Returns:
        AccessToken holding the token and its declared lifetime

    Raises:
        ValidationError: If credentials is not a Credentials instance
        AuthError: On any non-200 response or a response without a token
        NetworkError: On transport failures
    """
    if not isinstance(credentials, Credentials):
        raise ValidationError(f"Expected Credentials, got {type(credentials).__name__}")

    response = _post(TOKEN_URL, credentials.to_form())
    body = _decode(response)

    if response.status_code != 200:
        error = (body or {}).get('error')
        raise AuthError(response.status_code,
                        f"Token request failed, status code: {response.status_code} ({error})", body)

    access_token = (body or {}).get('access_token')
    if not isinstance(access_token, str) or not access_token:
        raise AuthError(response.status_code, "Did not receive an access_token from the Netatmo API", body)

    expires_in = int(body.get('expires_in', 0))
    logger.info(f"Received access token, expires in {expires_in} seconds")
    return AccessToken(value=access_token, expires_in=expires_in)


def fetch_public_data(access_token: AccessToken, bbox: BoundingBox,
                      filter_stations: bool = True) -> List[Dict[str, Any]]:
    """
    Fetch the raw public station records inside a bounding box.

    Args:
        access_token: Token for this run
        bbox: Area to query
        filter_stations: Ask Netatmo to drop stations it deems not relevant

    Returns:
        List of raw station records (the response "body")

    Raises:
        DataError: If no station was returned (bounding box may be too small)
        AuthError, ApiError, NetworkError: On request failures
    """
    form = {'access_token': access_token.value, **bbox.to_params(),
            'filter': 'true' if filter_stations else 'false'}

    logger.debug(f"Fetching public data for {bbox}")
    response = _post(PUBLIC_DATA_URL, form)
    body = _decode(response)
    raise_for_api_error(response, body)

    public_data = body.get('body')
    if not isinstance(public_data, list):
        raise ApiError(response.status_code, "Public data response has no station list", body)
    if not public_data:
        raise DataError("Netatmo returned no public data, bounding box could be too small?")

    logger.debug(f"Retrieved public data for {len(public_data)} stations")
    return public_data


def fetch_measure(access_token: AccessToken, window: MeasurementWindow) -> Dict[str, List[Any]]:
    """
    Fetch one page of raw observations for a single module and type.

    The API returns at most MEASURE_RESULT_CAP timestamps per call; use
    MeasurementPaginator to read a longer window.

    Args:
        access_token: Token for this run
        window: Module, type, scale and time range to query

    Returns:
        Mapping of epoch-second timestamp string to list of values,
        in the order the server returned them (empty if there is no data)

    Raises:
        AuthError, ApiError, NetworkError: On request failures
    """
    logger.debug(f"Fetching {window.variable_type} for {window.device_id}/{window.module_id} "
                 f"from {window.date_begin}")

    response = _post(MEASURE_URL, window.to_params(access_token))
    body = _decode(response)
    raise_for_api_error(response, body)

    observations = body.get('body')
    # An empty result comes back as [] rather than {}
    if observations is None or observations == []:
        return {}
    if not isinstance(observations, dict):
        raise ApiError(response.status_code, "Measure response is not keyed by timestamp", body)

    if len(observations) == MEASURE_RESULT_CAP:
        logger.warning(f"Netatmo limit of {MEASURE_RESULT_CAP} timesteps reached for "
                       f"{window.device_id}/{window.module_id} {window.variable_type}")

    return observations
