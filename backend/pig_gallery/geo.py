"""
Origin labels for submitter addresses.

Public addresses are looked up in a local MaxMind city database (GeoLite2 or
GeoIP2). Lookups never raise: anything that cannot be resolved gets
``UNKNOWN_LABEL``.
"""

import ipaddress
from typing import Optional

import geoip2.database
import geoip2.errors
import structlog
from maxminddb import InvalidDatabaseError

logger = structlog.get_logger()

LOCAL_LABEL = "Local"
UNKNOWN_LABEL = "Unknown"

COUNTRY_NAMES = {
    "CN": "China",
    "US": "United States",
    "GB": "United Kingdom",
    "JP": "Japan",
    "KR": "South Korea",
    "FR": "France",
    "DE": "Germany",
    "CA": "Canada",
    "AU": "Australia",
    "IN": "India",
    "BR": "Brazil",
    "RU": "Russia",
    "IT": "Italy",
    "ES": "Spain",
    "MX": "Mexico",
    "ID": "Indonesia",
    "NL": "Netherlands",
    "SA": "Saudi Arabia",
    "TR": "Turkey",
    "CH": "Switzerland",
    "TW": "Taiwan",
    "HK": "Hong Kong",
    "SG": "Singapore",
    "MY": "Malaysia",
    "TH": "Thailand",
    "VN": "Vietnam",
    "PH": "Philippines",
}


def parse_address(address: Optional[str]):
    if not isinstance(address, str) or not address:
        return None
    try:
        ip = ipaddress.ip_address(address.strip())
    except ValueError:
        return None
    if ip.version == 6 and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return ip


def is_local_address(ip) -> bool:
    return ip.is_private or ip.is_loopback or ip.is_link_local


class GeoResolver:
    def __init__(self, database_path: Optional[str] = None, reader=None):
        self.database_path = database_path
        self._reader = reader
        self._unavailable = reader is None and not database_path

    def _get_reader(self):
        if self._reader is not None or self._unavailable:
            return self._reader
        try:
            self._reader = geoip2.database.Reader(self.database_path)
        except (OSError, InvalidDatabaseError, ValueError) as e:
            logger.warning("geoip_unavailable", path=self.database_path, error=str(e))
            self._unavailable = True
        return self._reader

    def resolve(self, address: Optional[str]) -> str:
        ip = parse_address(address)
        if ip is None:
            return UNKNOWN_LABEL
        if is_local_address(ip):
            return LOCAL_LABEL

        reader = self._get_reader()
        if reader is None:
            return UNKNOWN_LABEL
        try:
            geo = reader.city(str(ip))
        except (geoip2.errors.GeoIP2Error, ValueError, TypeError):
            return UNKNOWN_LABEL

        country_code = geo.country.iso_code if geo.country else None
        if not country_code:
            return UNKNOWN_LABEL
        city = geo.city.name if geo.city else None
        if isinstance(city, str) and city.strip():
            return city.strip()
        return COUNTRY_NAMES.get(country_code, country_code)

    def close(self) -> None:
        if self._reader is not None:
            self._reader.close()
            self._reader = None
