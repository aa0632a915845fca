"""Abstract connection protocol for JSON text communication."""

from abc import ABC, abstractmethod


class ConnectionProtocol(ABC):
    """
    Abstract interface for a client connection.

    The session layer only talks to this interface, so message handling
    can be exercised without real WebSocket connections.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the connection can still accept outbound frames."""
        ...

    @abstractmethod
    async def send_text(self, data: str) -> None:
        """
        Send one text frame to the client.
        """
        ...

    @abstractmethod
    async def receive_text(self) -> str:
        """
        Receive one text frame from the client.
        """
        ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None:
        """
        Close the connection.
        """
        ...
