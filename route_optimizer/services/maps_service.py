"""
Client for the Google Maps Directions and Distance Matrix APIs.

Every failure (missing key, transport error, non-OK status, malformed
payload) is raised as ExternalServiceError so callers can fall back.
"""
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import requests
from requests.exceptions import HTTPError, RequestException

from dispatch_core.exceptions import ExternalServiceError
from route_optimizer import settings as optimizer_settings
from route_optimizer.core.constants import MAX_SAFE_DISTANCE, MAX_SAFE_TIME
from route_optimizer.core.types_1 import DirectionsResult, Location, RouteLeg

# Set up logging
logger = logging.getLogger(__name__)


class GoogleMapsService:
    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        enabled: Optional[bool] = None,
        deadline: Optional[float] = None
    ):
        """
        Initialize the maps client.

        Args:
            api_key: Google Maps API key. Defaults to GOOGLE_MAPS_API_KEY.
            timeout: Per-request timeout in seconds.
            enabled: Set False to make every call fail fast.
            deadline: Overall seconds one call may take across its retries.
        """
        self.api_key = api_key if api_key is not None else optimizer_settings.GOOGLE_MAPS_API_KEY
        self.timeout = timeout if timeout is not None else optimizer_settings.MAPS_REQUEST_TIMEOUT_SECONDS
        self.enabled = enabled if enabled is not None else optimizer_settings.USE_MAPS_API
        self.deadline = deadline if deadline is not None else optimizer_settings.MAPS_TOTAL_DEADLINE_SECONDS

    @property
    def is_available(self) -> bool:
        return bool(self.enabled and self.api_key)

    def get_route(
        self,
        origin: Location,
        destination: Location,
        waypoints: List[Location],
        optimize_waypoints: bool = True
    ) -> DirectionsResult:
        """
        Request driving directions through ``waypoints``.

        Returns:
            DirectionsResult with distances in km and durations in minutes.
            ``waypoint_order`` is the visiting order of ``waypoints`` chosen by
            the API (their input order when not optimizing).
        """
        params = {
            'origin': origin.as_param(),
            'destination': destination.as_param(),
            'mode': 'driving',
            'units': 'metric',
        }
        if waypoints:
            points = '|'.join(w.as_param() for w in waypoints)
            params['waypoints'] = f"optimize:true|{points}" if optimize_waypoints else points

        response = self._request(optimizer_settings.GOOGLE_DIRECTIONS_API_URL, params)
        try:
            route = response['routes'][0]
            legs = [
                RouteLeg(
                    distance_km=leg['distance']['value'] / 1000.0,
                    duration_minutes=leg['duration']['value'] / 60.0
                )
                for leg in route['legs']
            ]
            waypoint_order = list(route.get('waypoint_order', range(len(waypoints))))
            polyline = route.get('overview_polyline', {}).get('points')
        except (KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError(f"Malformed directions response: {e}")

        if sorted(waypoint_order) != list(range(len(waypoints))):
            raise ExternalServiceError("Directions response has an invalid waypoint order")

        return DirectionsResult(
            distance_km=sum(leg.distance_km for leg in legs),
            duration_minutes=sum(leg.duration_minutes for leg in legs),
            waypoint_order=waypoint_order,
            legs=legs,
            polyline=polyline,
        )

    def get_distance_matrix(
        self,
        origins: List[Location],
        destinations: List[Location]
    ) -> Tuple[List[List[float]], List[List[float]]]:
        """
        Request road distances between every origin and destination.

        Returns:
            Tuple containing (distance_matrix_km, time_matrix_min). Unreachable
            pairs get MAX_SAFE_DISTANCE and MAX_SAFE_TIME.
        """
        params = {
            'origins': '|'.join(o.as_param() for o in origins),
            'destinations': '|'.join(d.as_param() for d in destinations),
            'units': 'metric',
        }
        response = self._request(optimizer_settings.GOOGLE_DISTANCE_MATRIX_API_URL, params)

        distance_matrix_km = []
        time_matrix_min = []
        for row in response.get('rows', []):
            dist_row_km = []
            time_row_min = []
            for element in row.get('elements', []):
                if element.get('status') == 'OK':
                    dist_row_km.append(element.get('distance', {}).get('value', 0) / 1000.0)
                    time_row_min.append(element.get('duration', {}).get('value', 0) / 60.0)
                else:
                    logger.warning(f"Distance matrix element status {element.get('status')}; using safe maximum")
                    dist_row_km.append(MAX_SAFE_DISTANCE)
                    time_row_min.append(MAX_SAFE_TIME)
            distance_matrix_km.append(dist_row_km)
            time_matrix_min.append(time_row_min)

        if len(distance_matrix_km) != len(origins):
            raise ExternalServiceError("Distance matrix response does not match the request")
        return distance_matrix_km, time_matrix_min

    def _request(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Sends a GET request with retry logic using exponential backoff, bounded by the deadline."""
        if not self.enabled:
            raise ExternalServiceError("Maps API is disabled")
        if not self.api_key:
            raise ExternalServiceError("Google Maps API key is not configured")

        params = dict(params, key=self.api_key)
        deadline = time.monotonic() + self.deadline
        for attempt in range(optimizer_settings.MAX_RETRIES):
            last_attempt = attempt == optimizer_settings.MAX_RETRIES - 1
            sleep_time = optimizer_settings.RETRY_DELAY_SECONDS * (optimizer_settings.BACKOFF_FACTOR ** attempt)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise ExternalServiceError(f"Maps API deadline of {self.deadline}s exceeded")
            try:
                response = requests.get(url, params=params, timeout=min(self.timeout, remaining))
                response.raise_for_status()
                data = response.json()
            except HTTPError as http_err:
                status_code = http_err.response.status_code if http_err.response is not None else None
                if status_code == 429 and not last_attempt:
                    logger.info(f"Rate limit exceeded, retrying in {sleep_time} seconds")
                    self._sleep_before_retry(sleep_time, deadline)
                    continue
                raise ExternalServiceError(f"Maps API HTTP error: {http_err}")
            except RequestException as req_err:
                logger.warning(f"Maps API request failed: {req_err}")
                if not last_attempt:
                    logger.info(f"Retrying in {sleep_time} seconds")
                    self._sleep_before_retry(sleep_time, deadline)
                    continue
                raise ExternalServiceError(f"Maps API unreachable: {req_err}")
            except ValueError as json_err:
                raise ExternalServiceError(f"Maps API returned invalid JSON: {json_err}")

            if not isinstance(data, dict):
                raise ExternalServiceError(f"Maps API returned an unexpected payload: {type(data).__name__}")

            status = data.get('status')
            if status == 'OK':
                return data
            if status == 'OVER_QUERY_LIMIT' and not last_attempt:
                logger.info(f"Rate limit exceeded, retrying in {sleep_time} seconds")
                self._sleep_before_retry(sleep_time, deadline)
                continue
            raise ExternalServiceError(
                f"Maps API error {status}: {data.get('error_message', 'Unknown API error')}"
            )

        raise ExternalServiceError("All maps API request retries failed")

    def _sleep_before_retry(self, sleep_time: float, deadline: float) -> None:
        # No retry when the backoff alone would run past the deadline
        if time.monotonic() + sleep_time >= deadline:
            raise ExternalServiceError(f"Maps API deadline of {self.deadline}s exceeded")
        time.sleep(sleep_time)
