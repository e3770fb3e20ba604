import logging
from dataclasses import dataclass
from typing import Optional

from geopy.geocoders import Nominatim, Photon
from geopy.exc import GeopyError
from geopy.extra.rate_limiter import RateLimiter

from . import constants
from .coordinates import utm_epsg_for

logger = logging.getLogger(__name__)


@dataclass
class GeocodedAddress:
    latitude: float
    longitude: float
    display_name: str

    @property
    def utm_epsg(self) -> int:
        return utm_epsg_for(self.longitude, self.latitude)


class GeocoderService:
    """Resolve a street address to a point: Photon first, Nominatim as fallback.

    Used to pick the UTM zone of the returned point cloud, so only the
    location matters; extents are ignored.
    """

    def __init__(self, user_agent: str = constants.GEOCODER_USER_AGENT,
                 timeout: int = constants.GEOCODER_TIMEOUT):
        self._photon = Photon(user_agent=user_agent, timeout=timeout)
        self._geocode_photon = RateLimiter(
            self._photon.geocode,
            min_delay_seconds=0.5,
        )
        self._nominatim = Nominatim(user_agent=user_agent, timeout=timeout)
        self._geocode_nominatim = RateLimiter(
            self._nominatim.geocode,
            min_delay_seconds=1.0,
        )

    def locate(self, address: str) -> GeocodedAddress:
        """Geocode *address*.

        Raises ``ValueError`` when neither backend can resolve it.
        """
        for label, geocode in (("Photon", self._geocode_photon),
                               ("Nominatim", self._geocode_nominatim)):
            result = self._try(label, geocode, address)
            if result is not None:
                return result

        raise ValueError(f"Could not geocode address: {address}")

    def _try(self, label: str, geocode, address: str) -> Optional[GeocodedAddress]:
        try:
            logger.info(f"Trying {label} for '{address}'...")
            geo_result = geocode(address, exactly_one=True)
        except GeopyError as e:
            logger.warning(f"{label} failed: {e}")
            return None

        if geo_result is None:
            logger.info(f"{label} returned no results")
            return None

        return GeocodedAddress(
            latitude=geo_result.latitude,
            longitude=geo_result.longitude,
            display_name=geo_result.address or address,
        )
