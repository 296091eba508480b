# localpress/services/geolocation.py
import ipaddress
import logging
from typing import Optional

import requests

from localpress import config

logger = logging.getLogger("localpress.geolocation")

UNKNOWN = {"city": "Unknown", "state": "Unknown", "country": "Unknown", "postal_code": ""}
DEVELOPMENT = {"city": "Development", "state": "Local", "country": "US", "postal_code": "00000"}


def client_ip(forwarded_for: Optional[str], real_ip: Optional[str], peer: Optional[str]) -> str:
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return real_ip or peer or "unknown"


def is_local(ip: str) -> bool:
    if ip in ("unknown", "testclient", "localhost"):
        return True
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return True
    return addr.is_loopback or addr.is_private


def lookup(ip: str) -> dict:
    """Coarse location for an IP. Never raises; failures come back as Unknown."""
    if is_local(ip):
        return dict(DEVELOPMENT)

    try:
        res = requests.get(
            f"{config.GEOLOCATION_URL}/{ip}/json/",
            headers={"User-Agent": "LocalPress-Analytics/1.0"},
            timeout=config.HTTP_TIMEOUT,
        )
        res.raise_for_status()
        data = res.json()
    except (requests.RequestException, ValueError) as e:
        logger.error("Geolocation error: %s", e)
        return dict(UNKNOWN)

    return {
        "city": data.get("city") or "Unknown",
        "state": data.get("region") or "Unknown",
        "country": data.get("country") or "Unknown",
        "postal_code": data.get("postal") or "",
    }
