"""Client address resolution behind proxies."""

from collections.abc import Mapping


def resolve_client_ip(headers: Mapping[str, str], client_host: str | None) -> str | None:
    """Best-effort client address.

    Preference: first hop of X-Forwarded-For, then X-Real-IP, then the
    socket address.
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return client_host or None
