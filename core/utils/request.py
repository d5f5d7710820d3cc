from typing import Optional

from django.core.exceptions import ValidationError
from django.core.validators import validate_ipv46_address
from django.http import HttpRequest


def clean_ip(value) -> Optional[str]:
    """Return the address if it is a valid IPv4/IPv6 literal, else None."""
    if not value:
        return None
    value = str(value).strip()
    try:
        validate_ipv46_address(value)
    except ValidationError:
        return None
    return value


def get_client_ip(request: HttpRequest) -> Optional[str]:
    """
    Resolve client IP safely.

    X-Forwarded-For is client controlled: a malformed first hop falls back
    to REMOTE_ADDR.
    """
    if not request:
        return None

    xff = request.META.get("HTTP_X_FORWARDED_FOR")
    if xff:
        ip = clean_ip(xff.split(",")[0])
        if ip:
            return ip

    return clean_ip(request.META.get("REMOTE_ADDR"))


def get_user_agent(request: HttpRequest) -> Optional[str]:
    if not request:
        return None
    return request.META.get("HTTP_USER_AGENT")
