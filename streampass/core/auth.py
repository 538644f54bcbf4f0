"""
Caller identity for the StreamPass API.

Subscriber and owner calls carry the caller's address in ``X-User-Id``;
protocol callbacks carry the calling host in ``X-Protocol-Host``.
"""
from typing import Optional

from fastapi import Header, HTTPException


async def get_current_user_id(
    x_user_id: Optional[str] = Header(None, description="Caller address"),
) -> str:
    """
    Extract the calling address.

    Raises:
        HTTPException 401: Missing X-User-Id header
    """
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()

    raise HTTPException(
        status_code=401,
        detail={
            "error": "unauthorized",
            "message": "Missing X-User-Id header",
        },
    )


async def get_protocol_host(
    x_protocol_host: Optional[str] = Header(None, description="Calling streaming protocol host"),
) -> str:
    """Return the declared protocol host; validation against config happens in the handler."""
    return (x_protocol_host or "").strip()
