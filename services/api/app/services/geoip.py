"""GeoIP lookup for taps that arrive without location data."""

import ipaddress
from pathlib import Path

import geoip2.database
import geoip2.errors
import httpx
import structlog

from app.core.config import get_settings
from app.schemas.enums import GeoMethod
from app.schemas.tap import GeoData

settings = get_settings()
logger = structlog.get_logger()

IP_API_URL = "http://ip-api.com/json/{ip}"
IP_API_FIELDS = "status,country,regionName,city,lat,lon,timezone"


class GeoIPService:
    """Resolve an IP address to an approximate location.

    Uses a MaxMind GeoIP2 City database when one is configured and falls
    back to the ip-api.com free tier otherwise (rate limited, for
    development).

    Usage:
        service = GeoIPService()
        geo = await service.lookup("8.8.8.8")
    """

    def __init__(self, geoip_database_path: str | None = None):
        self._reader: geoip2.database.Reader | None = None
        self._database_path = geoip_database_path or settings.geoip_database_path

        if self._database_path:
            self._open_database()

    def _open_database(self) -> None:
        path = Path(self._database_path)
        if not path.exists():
            logger.warning("GeoIP2 database not found", path=str(path))
            return
        self._reader = geoip2.database.Reader(str(path))
        logger.info("GeoIP2 database loaded", path=str(path))

    async def lookup(self, ip_address: str | None) -> GeoData | None:
        """Look up the location of an IP address.

        Returns None for missing, malformed, private or unknown addresses.
        """
        if not ip_address or not is_public_ip(ip_address):
            return None

        if self._reader:
            return self._lookup_database(ip_address)
        return await self._lookup_ip_api(ip_address)

    def _lookup_database(self, ip_address: str) -> GeoData | None:
        try:
            response = self._reader.city(ip_address)
        except geoip2.errors.AddressNotFoundError:
            logger.debug("GeoIP2 address not found", ip=ip_address)
            return None

        return GeoData(
            latitude=response.location.latitude,
            longitude=response.location.longitude,
            accuracy=(
                response.location.accuracy_radius * 1000
                if response.location.accuracy_radius
                else None
            ),
            city=response.city.name,
            region=response.subdivisions.most_specific.name,
            country=response.country.name,
            timezone=response.location.time_zone,
            method=GeoMethod.IP_GEOLOCATION,
        )

    async def _lookup_ip_api(self, ip_address: str) -> GeoData | None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    IP_API_URL.format(ip=ip_address),
                    params={"fields": IP_API_FIELDS},
                    timeout=2.0,
                )
        except httpx.HTTPError as e:
            logger.debug("IP-API lookup failed", ip=ip_address, error=str(e))
            return None

        if response.status_code != 200:
            return None
        data = response.json()
        if data.get("status") != "success":
            return None

        return GeoData(
            latitude=data.get("lat"),
            longitude=data.get("lon"),
            city=data.get("city"),
            region=data.get("regionName"),
            country=data.get("country"),
            timezone=data.get("timezone"),
            method=GeoMethod.IP_GEOLOCATION,
        )

    def close(self) -> None:
        """Close the GeoIP2 database reader."""
        if self._reader:
            self._reader.close()
            self._reader = None


def is_public_ip(ip_address: str) -> bool:
    """True for a well-formed, globally routable address."""
    try:
        return ipaddress.ip_address(ip_address).is_global
    except ValueError:
        return False


# Global service instance
_geoip_service: GeoIPService | None = None


def get_geoip_service() -> GeoIPService:
    """Get the global GeoIP service instance."""
    global _geoip_service
    if _geoip_service is None:
        _geoip_service = GeoIPService()
    return _geoip_service


def close_geoip_service() -> None:
    """Close the global GeoIP service."""
    global _geoip_service
    if _geoip_service:
        _geoip_service.close()
        _geoip_service = None
