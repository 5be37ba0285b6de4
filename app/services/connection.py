import logging
import socket
from typing import Any, BinaryIO, List, Optional

from app.errors import ClientError, DisconnectionError, ServerConnectionError
from app.utils.serialization import MessageReader, MessageWriter

logger = logging.getLogger(__name__)


class Connection:
    """
    One socket to the registration service plus the two channels built on it.

    A Connection lives for a single exchange: open() it, send and receive,
    then close() it. It is not safe to share between threads.
    """

    def __init__(self, sock: socket.socket, writer: MessageWriter, reader: MessageReader):
        self.sock = sock
        self.writer = writer
        self.reader = reader

    @classmethod
    def open(cls, host: str, port: int,
             connect_timeout: Optional[float] = None,
             read_timeout: Optional[float] = None) -> "Connection":
        """
        Connects and sets up the outbound channel, then the inbound one.

        Raises:
            ServerConnectionError: If the service cannot be reached or drops the handshake
            ProtocolViolationError: If the service sends a foreign stream header
        """
        try:
            sock = socket.create_connection((host, port), timeout=connect_timeout)
        except OSError as e:
            raise ServerConnectionError(f"Cannot connect to {host}:{port}: {e}") from e

        streams = []
        try:
            sock.settimeout(read_timeout)
            streams.append(sock.makefile("wb"))
            writer = MessageWriter(streams[-1])
            streams.append(sock.makefile("rb"))
            reader = MessageReader(streams[-1])
        except ClientError:
            _discard(streams, sock)
            raise
        except OSError as e:
            _discard(streams, sock)
            raise ServerConnectionError(f"Handshake with {host}:{port} failed: {e}") from e

        logger.debug(f"Connected to {host}:{port}")
        return cls(sock, writer, reader)

    def send(self, value: Any) -> None:
        """Writes one message and flushes it to the service."""
        try:
            self.writer.write_message(value)
            self.writer.flush()
        except OSError as e:
            raise ServerConnectionError(f"Send failed: {e}") from e

    def receive(self) -> Any:
        """Blocks until one message has been read from the service."""
        try:
            return self.reader.read_message()
        except ClientError:
            raise
        except OSError as e:
            raise ServerConnectionError(f"Receive failed: {e}") from e

    def close(self) -> None:
        """
        Closes the inbound channel, the outbound channel and the socket.

        Every close is attempted even if an earlier one fails.

        Raises:
            DisconnectionError: After all three attempts, if any of them failed
        """
        failures = []
        for name, closer in (("reader", self.reader.close),
                             ("writer", self.writer.close),
                             ("socket", self.sock.close)):
            try:
                closer()
            except OSError as e:
                logger.warning(f"Error closing {name}: {e}")
                failures.append((name, e))

        if failures:
            names = ", ".join(name for name, _ in failures)
            raise DisconnectionError(f"Failed to close {names}", failures)


def _discard(streams: List[BinaryIO], sock: socket.socket) -> None:
    # Release whatever a failed open() managed to create.
    for closer in [s.close for s in reversed(streams)] + [sock.close]:
        try:
            closer()
        except OSError as e:
            logger.debug(f"Ignoring close error after failed connect: {e}")
