import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from config.settings import get_server_config
from app.errors import ClientError, DisconnectionError, ProtocolViolationError
from app.models.course import Course
from app.models.exchange_result import ExchangeResult
from app.models.registration_form import RegistrationForm
from app.services.connection import Connection

logger = logging.getLogger(__name__)

LOAD_COMMAND = "CHARGER"
REGISTER_COMMAND = "INSCRIRE"


def expect_course_list(value: Any) -> List[Course]:
    if not isinstance(value, list) or not all(isinstance(c, Course) for c in value):
        raise ProtocolViolationError(f"Expected a course list, got {type(value).__name__}")
    return value


def expect_string(value: Any) -> str:
    if not isinstance(value, str):
        raise ProtocolViolationError(f"Expected a confirmation message, got {type(value).__name__}")
    return value


class ProtocolClient:
    """
    Client for the course registration service.

    Every public operation opens its own connection, performs exactly one
    exchange and closes the connection before returning, whatever happened.
    Failures are returned inside the ExchangeResult rather than raised.

    Args:
        server_config: Dictionary with host, port, connect_timeout and
                       read_timeout. Read from the environment when omitted.
        connection_factory: Callable with the signature of Connection.open
    """

    def __init__(self, server_config: Optional[Dict[str, Any]] = None,
                 connection_factory: Callable[..., Connection] = Connection.open):
        config = get_server_config()
        if server_config:
            config.update(server_config)
        self.host = config["host"]
        self.port = config["port"]
        self.connect_timeout = config.get("connect_timeout")
        self.read_timeout = config.get("read_timeout")
        self._connection_factory = connection_factory
        self._busy = threading.Lock()
        self._courses: List[Course] = []
        self._confirmation_message: Optional[str] = None

    @property
    def courses(self) -> Tuple[Course, ...]:
        """Course list from the last successful load_courses call."""
        return tuple(self._courses)

    @property
    def confirmation_message(self) -> Optional[str]:
        """Confirmation text from the last successful register call."""
        return self._confirmation_message

    def load_courses(self, term: str) -> ExchangeResult[List[Course]]:
        """
        Requests the courses offered during a term.

        Args:
            term: Term identifier (e.g., "Hiver", "Ete", "Automne")

        Returns:
            ExchangeResult holding the courses in the order the service sent them
        """
        logger.info(f"Loading courses for term {term}")
        result = self._exchange([f"{LOAD_COMMAND} {term}"], expect_course_list)
        if result.ok:
            self._courses = list(result.value)
            logger.info(f"Received {len(result.value)} courses for term {term}")
        return result

    def register(self, form: RegistrationForm) -> ExchangeResult[str]:
        """
        Submits a registration form.

        The command and the form travel as two separate messages.

        Returns:
            ExchangeResult holding the service's confirmation message
        """
        if not isinstance(form, RegistrationForm):
            raise TypeError("register() expects a RegistrationForm")

        logger.info(f"Registering to course {form.course.code}")
        result = self._exchange([REGISTER_COMMAND, form], expect_string)
        if result.ok:
            self._confirmation_message = result.value
            logger.info(f"Registration answered: {result.value}")
        return result

    def _connect(self) -> Connection:
        return self._connection_factory(
            self.host, self.port,
            connect_timeout=self.connect_timeout,
            read_timeout=self.read_timeout,
        )

    def _disconnect(self, connection: Connection) -> Optional[DisconnectionError]:
        try:
            connection.close()
        except DisconnectionError as e:
            logger.warning(f"Error disconnecting from {self.host}:{self.port}: {e}")
            return e
        logger.debug(f"Disconnected from {self.host}:{self.port}")
        return None

    def _exchange(self, messages: List[Any], expect: Callable[[Any], Any]) -> ExchangeResult:
        if not self._busy.acquire(blocking=False):
            raise RuntimeError("Another operation is already running on this client")

        try:
            try:
                connection = self._connect()
            except ClientError as e:
                logger.error(f"Connection to {self.host}:{self.port} failed: {e}")
                return ExchangeResult.failure(e)

            value = None
            error = None
            try:
                for message in messages:
                    connection.send(message)
                value = expect(connection.receive())
            except ClientError as e:
                logger.error(f"Exchange with {self.host}:{self.port} failed: {e}")
                error = e
            finally:
                cleanup_error = self._disconnect(connection)

            if error is not None:
                return ExchangeResult.failure(error, cleanup_error)
            return ExchangeResult.success(value, cleanup_error)
        finally:
            self._busy.release()
