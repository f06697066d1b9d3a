"""Helpers for pulling client details and numeric parameters out of requests."""

from typing import Optional

from fastapi import Request

FALLBACK_CLIENT_IP = "127.0.0.1"
# Largest value a signed 64-bit INTEGER column or OFFSET accepts.
MAX_DB_INT = 2**63 - 1


def get_client_ip(request: Request, trust_proxy_headers: bool = True) -> str:
    if trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = request.headers.get("x-real-ip")
        if real_ip and real_ip.strip():
            return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return FALLBACK_CLIENT_IP


def parse_int(raw: Optional[str], default: int) -> int:
    """Parse a query value, falling back to ``default`` when missing or malformed."""
    if raw is None:
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def parse_page(raw: Optional[str], page_size: int = 1) -> int:
    """Return a page number whose offset ``page * page_size`` fits the database."""
    page = max(parse_int(raw, 0), 0)
    return min(page, MAX_DB_INT // max(page_size, 1))


def parse_limit(raw: Optional[str], default: int, maximum: int) -> int:
    limit = parse_int(raw, default)
    if limit <= 0:
        return default
    return min(limit, maximum)


def parse_id(raw: Optional[str]) -> Optional[int]:
    """Return a positive integer id, or None for anything else."""
    value = parse_int(raw, 0)
    return value if 0 < value <= MAX_DB_INT else None
