import os
import logging

from dispatch_core.utils.env_loader import load_env_from_file

logger = logging.getLogger(__name__)

# Load environment variables from the app directory or the project root
for path in (
    os.path.join(os.path.dirname(__file__), 'env_var.env'),
    os.path.join(os.path.dirname(os.path.dirname(__file__)), 'env_var.env'),
):
    if load_env_from_file(path):
        break

# Google Maps API configuration. Without a key the heuristic is used.
GOOGLE_MAPS_API_KEY = os.getenv('GOOGLE_MAPS_API_KEY')
GOOGLE_DIRECTIONS_API_URL = 'https://maps.googleapis.com/maps/api/directions/json'
GOOGLE_DISTANCE_MATRIX_API_URL = 'https://maps.googleapis.com/maps/api/distancematrix/json'
USE_MAPS_API = os.getenv('USE_MAPS_API', 'True').lower() == 'true'

# API request settings
MAPS_REQUEST_TIMEOUT_SECONDS = float(os.getenv('MAPS_REQUEST_TIMEOUT_SECONDS', 10))
# Budget for one call including retries, after which the heuristic takes over
MAPS_TOTAL_DEADLINE_SECONDS = float(os.getenv('MAPS_TOTAL_DEADLINE_SECONDS', 15))
MAX_RETRIES = 3
BACKOFF_FACTOR = 2  # Exponential backoff
RETRY_DELAY_SECONDS = 1

# Travel model used for ETAs and the heuristic's duration estimate
AVERAGE_SPEED_KMH = 30.0
SERVICE_TIME_PER_STOP_MINUTES = 5

# Depot used when neither a start location nor the driver's position is known
DEFAULT_START_LATITUDE = float(os.getenv('DEFAULT_START_LATITUDE', 8.4840))
DEFAULT_START_LONGITUDE = float(os.getenv('DEFAULT_START_LONGITUDE', -13.2299))
