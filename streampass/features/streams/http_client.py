"""
HTTP client for a streaming protocol gateway.

Gateway contract:
- GET    {base}/v1/flows/{token}/{sender}/{receiver} -> {"flow_rate": "<int>"} (404 = no flow)
- DELETE {base}/v1/flows/{token}/{sender}/{receiver} -> 204 (404 = no flow)

Flow rates travel as decimal strings so 256-bit values survive JSON.
"""
import logging
from typing import Optional
from urllib.parse import quote

import httpx

from streampass.core.config import settings
from streampass.core.errors import FlowNotFoundError, StreamingProtocolError
from streampass.features.streams.protocol import FlowInfo

logger = logging.getLogger("streampass")


class HttpStreamingProtocol:
    """StreamingProtocol backed by a gateway reachable over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        url = base_url or settings.STREAM_PROTOCOL_URL
        if not url and client is None:
            raise StreamingProtocolError("STREAM_PROTOCOL_URL not configured")
        self._client = client or httpx.Client(
            base_url=url,
            timeout=timeout or settings.STREAM_PROTOCOL_TIMEOUT_SECONDS,
        )

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _path(token: str, sender: str, receiver: str) -> str:
        return "/v1/flows/{}/{}/{}".format(
            quote(token, safe=""), quote(sender, safe=""), quote(receiver, safe="")
        )

    def get_flow(self, token: str, sender: str, receiver: str) -> FlowInfo:
        try:
            response = self._client.get(self._path(token, sender, receiver))
        except httpx.HTTPError as e:
            raise StreamingProtocolError(f"Flow lookup failed: {e}")

        if response.status_code == 404:
            return FlowInfo(token=token, sender=sender, receiver=receiver, flow_rate=0)
        if response.status_code != 200:
            raise StreamingProtocolError(f"Flow lookup failed with status {response.status_code}")

        try:
            rate = int(response.json()["flow_rate"])
        except (ValueError, KeyError, TypeError) as e:
            raise StreamingProtocolError(f"Malformed flow payload: {e}")
        return FlowInfo(token=token, sender=sender, receiver=receiver, flow_rate=max(rate, 0))

    def delete_flow(self, token: str, sender: str, receiver: str) -> None:
        try:
            response = self._client.delete(self._path(token, sender, receiver))
        except httpx.HTTPError as e:
            raise StreamingProtocolError(f"Flow deletion failed: {e}")

        if response.status_code == 404:
            raise FlowNotFoundError("Flow does not exist")
        if response.status_code not in (200, 202, 204):
            raise StreamingProtocolError(f"Flow deletion failed with status {response.status_code}")
        logger.info("protocol.flow_deleted", extra={"subscriber": sender, "event_type": "receiver_delete"})
