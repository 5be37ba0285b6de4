import threading

import pytest

from fake_service import CLOSE, SILENT, Raw
from app.errors import DisconnectionError, ProtocolViolationError, ServerConnectionError
from app.models.course import Course
from app.models.registration_form import RegistrationForm
from app.services.protocol_client import ProtocolClient

HIVER = [Course("IFT1015", "Programmation 1"), Course("IFT2015", "Algorithmes")]


def _form(course=HIVER[0]):
    return RegistrationForm("Ana", "Tremblay", "ana@umontreal.ca", "20231234", course)


class ScriptedConnection:
    """Connection double that records every call in order."""

    def __init__(self, reply=None, receive_error=None, send_error=None, close_error=None):
        self.events = []
        self.reply = reply
        self.receive_error = receive_error
        self.send_error = send_error
        self.close_error = close_error

    def send(self, value):
        self.events.append(("send", value))
        if self.send_error:
            raise self.send_error

    def receive(self):
        self.events.append(("receive",))
        if self.receive_error:
            raise self.receive_error
        return self.reply

    def close(self):
        self.events.append(("close",))
        if self.close_error:
            raise self.close_error


def _client_with(*connections):
    opened = []
    pending = list(connections)

    def factory(host, port, connect_timeout=None, read_timeout=None):
        conn = pending.pop(0)
        if isinstance(conn, Exception):
            raise conn
        opened.append(conn)
        return conn

    client = ProtocolClient({"host": "registration.test", "port": 1337}, connection_factory=factory)
    return client, opened


# Against the loopback service


def test_load_courses_hiver(fake_service):
    service = fake_service(lambda messages: HIVER)
    client = ProtocolClient(service.config)

    result = client.load_courses("Hiver")

    assert result.ok
    assert result.value == HIVER
    assert client.courses == tuple(HIVER)
    assert service.received == [["CHARGER Hiver"]]


def test_register_confirmation(fake_service):
    service = fake_service(lambda messages: "Inscription confirmée")
    client = ProtocolClient(service.config)
    form = _form()

    result = client.register(form)

    assert result.unwrap() == "Inscription confirmée"
    assert client.confirmation_message == "Inscription confirmée"
    assert service.received == [["INSCRIRE", form]]


def test_one_connection_per_call(fake_service):
    service = fake_service(lambda messages: HIVER if messages[0].startswith("CHARGER") else "ok")
    client = ProtocolClient(service.config)

    for _ in range(3):
        assert client.load_courses("Automne").ok
    assert client.register(_form()).ok

    assert service.wait_finished(4)
    assert service.connections == 4
    assert service.finished == 4


def test_failed_calls_still_disconnect(fake_service):
    service = fake_service(lambda messages: "not a course list")
    client = ProtocolClient(service.config)

    for _ in range(2):
        assert not client.load_courses("Ete").ok

    assert service.wait_finished(2)
    assert service.connections == 2


def test_wrong_response_shape_keeps_previous_courses(fake_service):
    replies = iter([HIVER, "Inscription confirmée"])
    service = fake_service(lambda messages: next(replies))
    client = ProtocolClient(service.config)
    assert client.load_courses("Hiver").ok

    result = client.load_courses("Ete")

    assert isinstance(result.error, ProtocolViolationError)
    assert client.courses == tuple(HIVER)


def test_course_list_where_confirmation_expected(fake_service):
    service = fake_service(lambda messages: HIVER)
    client = ProtocolClient(service.config)

    result = client.register(_form())

    assert isinstance(result.error, ProtocolViolationError)
    assert client.confirmation_message is None


def test_garbage_response(fake_service):
    service = fake_service(lambda messages: Raw(b"\x00\x00\x00\x03abc"))
    client = ProtocolClient(service.config)

    result = client.load_courses("Hiver")

    assert isinstance(result.error, ProtocolViolationError)


def test_service_hangs_up(fake_service):
    service = fake_service(lambda messages: CLOSE)
    client = ProtocolClient(service.config)

    result = client.register(_form())

    assert isinstance(result.error, ServerConnectionError)
    assert client.confirmation_message is None


def test_read_timeout(fake_service):
    service = fake_service(lambda messages: SILENT)
    client = ProtocolClient(dict(service.config, read_timeout=0.2))

    result = client.load_courses("Hiver")

    assert isinstance(result.error, ServerConnectionError)
    assert client.courses == ()
    assert service.wait_finished(1)


def test_service_unreachable(unused_port):
    client = ProtocolClient({"host": "127.0.0.1", "port": unused_port, "connect_timeout": 1.0})

    result = client.load_courses("Hiver")

    assert isinstance(result.error, ServerConnectionError)
    with pytest.raises(ConnectionError):
        result.unwrap()


# Against a scripted connection


def test_load_courses_sends_one_message():
    conn = ScriptedConnection(reply=HIVER)
    client, _ = _client_with(conn)

    client.load_courses("Hiver")

    assert conn.events == [("send", "CHARGER Hiver"), ("receive",), ("close",)]


def test_register_sends_command_then_form_before_reading():
    form = _form()
    conn = ScriptedConnection(reply="ok")
    client, _ = _client_with(conn)

    client.register(form)

    assert conn.events == [("send", "INSCRIRE"), ("send", form), ("receive",), ("close",)]


def test_connect_failure_sends_nothing():
    client, opened = _client_with(ServerConnectionError("refused"))

    result = client.load_courses("Hiver")

    assert isinstance(result.error, ServerConnectionError)
    assert result.cleanup_error is None
    assert opened == []


def test_send_failure_still_disconnects():
    conn = ScriptedConnection(send_error=ServerConnectionError("reset"))
    client, _ = _client_with(conn)

    result = client.register(_form())

    assert isinstance(result.error, ServerConnectionError)
    assert conn.events == [("send", "INSCRIRE"), ("close",)]


def test_disconnect_error_does_not_overturn_success():
    conn = ScriptedConnection(reply=HIVER, close_error=DisconnectionError("socket"))
    client, _ = _client_with(conn)

    result = client.load_courses("Hiver")

    assert result.ok
    assert result.value == HIVER
    assert isinstance(result.cleanup_error, DisconnectionError)
    assert client.courses == tuple(HIVER)


def test_exchange_error_takes_precedence_over_disconnect_error():
    conn = ScriptedConnection(receive_error=ServerConnectionError("reset"),
                              close_error=DisconnectionError("socket"))
    client, _ = _client_with(conn)

    result = client.register(_form())

    assert isinstance(result.error, ServerConnectionError)
    assert isinstance(result.cleanup_error, DisconnectionError)


def test_unexpected_error_still_disconnects():
    conn = ScriptedConnection(receive_error=RuntimeError("bug"))
    client, _ = _client_with(conn)

    with pytest.raises(RuntimeError):
        client.load_courses("Hiver")
    assert conn.events[-1] == ("close",)


def test_register_rejects_non_form():
    client, opened = _client_with()
    with pytest.raises(TypeError):
        client.register({"first_name": "Ana"})
    assert opened == []


def test_overlapping_calls_are_refused():
    entered = threading.Event()
    release = threading.Event()

    class BlockingConnection(ScriptedConnection):
        def receive(self):
            entered.set()
            release.wait(5.0)
            return HIVER

    client, _ = _client_with(BlockingConnection())
    worker = threading.Thread(target=client.load_courses, args=("Hiver",))
    worker.start()
    try:
        assert entered.wait(5.0)
        with pytest.raises(RuntimeError):
            client.load_courses("Ete")
    finally:
        release.set()
        worker.join(5.0)
    assert client.courses == tuple(HIVER)


def test_config_from_environment(monkeypatch):
    monkeypatch.setenv("REGISTRATION_HOST", "inscription.example")
    monkeypatch.setenv("REGISTRATION_PORT", "4242")
    monkeypatch.setenv("REGISTRATION_READ_TIMEOUT", "0")

    client = ProtocolClient()

    assert (client.host, client.port) == ("inscription.example", 4242)
    assert client.read_timeout is None
    assert client.connect_timeout == 10.0
