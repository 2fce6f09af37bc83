DOMAIN = "gps_tracking"
VERSION = "0.3.0"

# Config entry keys
CONF_ENTRY_NAME = "entry_name"
CONF_SOURCE_ENTITY = "source_entity"
CONF_PRESET = "preset"
CONF_INTERVAL_MS = "interval_ms"
CONF_DISTANCE_FILTER = "distance_filter"
CONF_ACCURACY = "accuracy"
CONF_BACKGROUND_MODE = "background_mode"
CONF_ALLOW_BACKGROUND = "allow_background"
CONF_NOTIFICATION_TITLE = "notification_title"
CONF_NOTIFICATION_MESSAGE = "notification_message"
CONF_FETCH_ELEVATION = "fetch_elevation"

# Keys that make up a TrackingConfig, in validation order
TRACKING_CONFIG_KEYS = (
    CONF_INTERVAL_MS,
    CONF_DISTANCE_FILTER,
    CONF_ACCURACY,
    CONF_BACKGROUND_MODE,
    CONF_NOTIFICATION_TITLE,
    CONF_NOTIFICATION_MESSAGE,
)

PRESET_CUSTOM = "custom"

# Limits
MIN_INTERVAL_MS = 1000          # 1 second
MAX_INTERVAL_MS = 3600000       # 1 hour
MIN_DISTANCE_FILTER = 0         # metres
MAX_DISTANCE_FILTER = 1000      # metres
MAX_LOCATION_HISTORY = 1000     # accepted points kept per session

# Advisory thresholds (warnings only)
BATTERY_WARNING_INTERVAL_MS = 5000
BACKGROUND_WARNING_INTERVAL_MS = 10000
LOW_ACCURACY_MIN_DISTANCE_FILTER = 50

# Defaults
DEFAULT_INTERVAL_MS = 5000
DEFAULT_DISTANCE_FILTER = 10
DEFAULT_NOTIFICATION_TITLE = "GPS Tracking Active"
DEFAULT_NOTIFICATION_MESSAGE = "Your location is being tracked"

# Sample plausibility
MAX_REASONABLE_SPEED = 83.33        # m/s, ~300 km/h
MAX_REASONABLE_ACCURACY = 5000.0    # metres
DEFAULT_ACCURACY_THRESHOLD = 100.0  # metres
LOW_QUALITY_ACCURACY = 1000.0       # metres, advisory only
NULL_ISLAND = (0.0, 0.0)

EARTH_RADIUS_M = 6371000.0

# Presets for common use cases (keys map onto TrackingConfig fields)
TRACKING_PRESETS: dict[str, dict] = {
    # Updates every second, for turn-by-turn navigation
    "navigation": {
        "interval_ms": 1000,
        "distance_filter": 5,
        "accuracy": "high",
        "background_mode": True,
        "notification_title": "Navigation Active",
        "notification_message": "Tracking your route",
    },
    "fitness": {
        "interval_ms": 5000,
        "distance_filter": 10,
        "accuracy": "high",
        "background_mode": True,
        "notification_title": "Fitness Tracking",
        "notification_message": "Recording your workout",
    },
    "general": {
        "interval_ms": 30000,
        "distance_filter": 50,
        "accuracy": "medium",
        "background_mode": True,
        "notification_title": "Location Tracking",
        "notification_message": "Tracking your location",
    },
    # Every 5 minutes, low accuracy
    "battery_saver": {
        "interval_ms": 300000,
        "distance_filter": 100,
        "accuracy": "low",
        "background_mode": True,
        "notification_title": "Background Tracking",
        "notification_message": "Tracking with battery optimization",
    },
}

# Coordinator refresh (seconds); keeps duration/statistics sensors current
STATUS_REFRESH_INTERVAL = 30

# Elevation re-fetch guards
MIN_ELEVATION_UPDATE_DELAY = 300   # minimum seconds between elevation re-fetches
MIN_ELEVATION_DISTANCE = 0.0045    # ~500 m as a coordinate delta in decimal degrees
                                   # (1° latitude ≈ 111 km → 500 m ≈ 0.0045°; same value used
                                   #  for longitude as a conservative mid-latitude approximation)

ELEVATION_API_URL = "https://api.open-meteo.com/v1/elevation"
ELEVATION_REQUEST_TIMEOUT = 15     # seconds
