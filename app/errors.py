from typing import List, Optional


class ClientError(Exception):
    """Base class for failures reported by the registration client."""


class ServerConnectionError(ClientError, ConnectionError):
    """Connect, send or receive failed at the transport level."""


class ProtocolViolationError(ClientError):
    """The service sent something the client does not understand."""


class DisconnectionError(ClientError):
    """
    Closing the connection failed.

    Attributes:
        failures: One (resource name, exception) pair per close that failed,
                  in the order the closes were attempted
    """

    def __init__(self, message: str, failures: Optional[List[tuple]] = None):
        super().__init__(message)
        self.failures = failures or []
