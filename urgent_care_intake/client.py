"""Client metadata captured with lookups and visits."""

from dataclasses import dataclass
from typing import Mapping


@dataclass(frozen=True)
class ClientInfo:
    ip_address: str = "0.0.0.0"
    user_agent: str = ""
    session_id: str = ""


def client_ip_from_headers(headers: Mapping[str, str], remote_addr: str | None = None) -> str:
    """Resolve the client IP, preferring proxy headers over the socket address.

    ``X-Forwarded-For`` may carry a chain of addresses; the first one is the client.
    """
    normalized = {k.lower(): v for k, v in headers.items()}

    client_ip = normalized.get("client-ip", "").strip()
    if client_ip:
        return client_ip

    forwarded = normalized.get("x-forwarded-for", "")
    if forwarded.strip():
        return forwarded.split(",")[0].strip()

    return remote_addr or "0.0.0.0"


def client_info_from_request(
    headers: Mapping[str, str],
    remote_addr: str | None = None,
    session_id: str = "",
) -> ClientInfo:
    """Build ClientInfo from request headers and transport details."""
    user_agent = next((v for k, v in headers.items() if k.lower() == "user-agent"), "")
    return ClientInfo(
        ip_address=client_ip_from_headers(headers, remote_addr),
        user_agent=user_agent,
        session_id=session_id,
    )
