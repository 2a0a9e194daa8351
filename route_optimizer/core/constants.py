# Earth radius used by every great-circle computation
EARTH_RADIUS_KM = 6371.0

# Degrees of latitude per kilometre are approximated as 1/111
KM_PER_DEGREE_LATITUDE = 111.0

# Stand-in for unreachable pairs in a distance matrix
MAX_SAFE_DISTANCE = 1e6        # Maximum safe distance value (km)

# Stand-in for unreachable pairs in a time matrix
MAX_SAFE_TIME = 24 * 60        # Maximum safe time value (minutes) - 24 hours

# --- Optimization methods recorded on a Route ---
METHOD_MAPS_API = 'maps_api'
METHOD_NEAREST_NEIGHBOR = 'nearest_neighbor'
METHOD_SINGLE_STOP = 'single_stop'
