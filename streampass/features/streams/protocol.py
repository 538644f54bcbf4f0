"""
Streaming protocol interface.

The streaming protocol owns the truth about flows (existence and rate).
StreamPass only queries it and, when a pass stops backing a stream, asks it
to delete the sender's flow. Implementations:

- InMemoryStreamingProtocol (memory.py): in-process host for dev and tests
- HttpStreamingProtocol (http_client.py): client for a protocol gateway
"""
from typing import Protocol
from dataclasses import dataclass


@dataclass(frozen=True)
class FlowInfo:
    """A flow as observed from the protocol."""
    token: str
    sender: str
    receiver: str
    flow_rate: int

    @property
    def exists(self) -> bool:
        return self.flow_rate > 0


class StreamingProtocol(Protocol):
    """
    Outbound surface of the streaming protocol.

    Implementations must be synchronous and must not call back into the
    receiving app while serving these two calls.
    """

    def get_flow(self, token: str, sender: str, receiver: str) -> FlowInfo:
        """
        Return the current flow from sender to receiver.

        A missing flow is reported as flow_rate 0, never as an error.

        Raises:
            StreamingProtocolError: If the protocol cannot be reached
        """
        ...

    def delete_flow(self, token: str, sender: str, receiver: str) -> None:
        """
        Delete the flow from sender to receiver on the receiver's behalf.

        Raises:
            FlowNotFoundError: If no such flow exists
            StreamingProtocolError: If the protocol cannot be reached
        """
        ...
