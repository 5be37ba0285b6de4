from dataclasses import dataclass
from typing import Generic, Optional, TypeVar
from app.errors import ClientError, DisconnectionError

T = TypeVar("T")


@dataclass(frozen=True)
class ExchangeResult(Generic[T]):
    """
    Outcome of one request/response exchange with the registration service.

    Exactly one of value/error is meaningful: a result is successful when
    error is None. A failed cleanup never turns a success into a failure;
    it is carried in cleanup_error instead.

    Attributes:
        value: Decoded response (course list or confirmation message)
        error: ServerConnectionError or ProtocolViolationError that ended the exchange
        cleanup_error: DisconnectionError raised while closing the connection, if any
    """
    value: Optional[T] = None
    error: Optional[ClientError] = None
    cleanup_error: Optional[DisconnectionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status(self) -> str:
        return "success" if self.ok else "error"

    def unwrap(self) -> T:
        """Return the value, or raise the error that ended the exchange."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: T, cleanup_error: Optional[DisconnectionError] = None) -> "ExchangeResult[T]":
        return cls(value=value, cleanup_error=cleanup_error)

    @classmethod
    def failure(cls, error: ClientError, cleanup_error: Optional[DisconnectionError] = None) -> "ExchangeResult[T]":
        return cls(error=error, cleanup_error=cleanup_error)
