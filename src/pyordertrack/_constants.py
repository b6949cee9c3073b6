"""Internal constants shared across the library."""

BASE_URL = "http://localhost:5000/api/v1"
USER_AGENT = "pyordertrack/0.1"

#: Mean Earth radius used by the haversine distance, in kilometres.
EARTH_RADIUS_KM = 6371.0

# ------------------------------------------------------------------
# Channel event names
# ------------------------------------------------------------------

EVENT_ORDER_UPDATE = "orderUpdate"
EVENT_JOIN_ORDER = "joinOrder"
EVENT_LEAVE_ORDER = "leaveOrder"
# Older backends push these directly instead of a full order projection.
EVENT_AGENT_LOCATION_UPDATE = "agent_location_update"
EVENT_ORDER_STATUS_UPDATE = "order_status_update"

# ------------------------------------------------------------------
# Default store location (origin marker when the order carries none)
# ------------------------------------------------------------------

DEFAULT_STORE_LATITUDE = 20.2961
DEFAULT_STORE_LONGITUDE = 85.8245

MAPBOX_DIRECTIONS_URL = "https://api.mapbox.com"
OSRM_DIRECTIONS_URL = "https://router.project-osrm.org"
