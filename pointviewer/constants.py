"""Configuration constants, environment loading and logging setup."""

import os
import logging

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# ── Remote processing service ─────────────────────────────────────────
API_BASE_URL = os.environ.get("POINTVIEWER_API_URL", "http://localhost:8000").rstrip("/")
HTTP_TIMEOUT = float(os.environ.get("POINTVIEWER_HTTP_TIMEOUT", "30"))

# ── Job polling ──────────────────────────────────────────────────────
POLL_INTERVAL_PROCESSING = 1.5  # seconds, while the job reports "processing"
POLL_INTERVAL_IDLE = 2.0        # seconds, any other non-terminal status
MAX_POLLS = 150                 # ~5 minutes at the idle cadence
IMMEDIATE_RETRIES = 5           # consecutive poll failures retried without delay
RETRY_BACKOFF = 5.0             # seconds between retries after that

# ── Decoding ─────────────────────────────────────────────────────────
COLOR_SAMPLE_SIZE = 1000
DEFAULT_COLOR = (255, 255, 255)

# ── Georeferencing ───────────────────────────────────────────────────
# WGS 84 / UTM zone 13N covers the deployment region (Boulder, CO).
# Set POINTVIEWER_GEOCODE_ZONE=1 to derive the zone from the address instead.
DEFAULT_UTM_EPSG = int(os.environ.get("POINTVIEWER_UTM_EPSG", "32613"))
USE_GEOCODED_ZONE = os.environ.get("POINTVIEWER_GEOCODE_ZONE", "").strip() in ("1", "true", "yes")
GEOGRAPHIC_EPSG = 4326

# Shown when a job yields no points at all
FALLBACK_CENTER = (-105.2705, 40.015)  # (lon, lat)

GEOCODER_USER_AGENT = "pointviewer-app/1.0"
GEOCODER_TIMEOUT = 30

# ── Camera ───────────────────────────────────────────────────────────
DEFAULT_ADDRESS = "1250 Wildwood Road, Boulder, CO"
DEFAULT_BUFFER_KM = 1.0

DEFAULT_VIEW_STATE = {
    'longitude': FALLBACK_CENTER[0],
    'latitude': FALLBACK_CENTER[1],
    'zoom': 15.0,
    'pitch': 60.0,
    'bearing': 0.0,
}

# Pitch/bearing applied when framing a finished point cloud
FRAMED_PITCH = 60.0
FRAMED_BEARING = 0.0

CAMERA_LIMITS = {
    'zoom': (8.0, 22.0),
    'pitch': (0.0, 85.0),
    'bearing': (-180.0, 180.0),
}

# Quick views offered by the camera panel: (pitch, bearing)
CAMERA_PRESETS = {
    'top': (0.0, 0.0),
    'angle': (45.0, 0.0),
    'side': (85.0, 0.0),
    'corner': (45.0, 45.0),
}

POINT_SIZE_DEFAULT = 1.0
POINT_SIZE_RANGE = (0.5, 50.0)

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)
