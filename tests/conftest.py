import socket

import pytest

from fake_service import FakeRegistrationService
from app.utils.serialization import STREAM_HEADER


@pytest.fixture
def fake_service():
    services = []

    def start(responder, header=STREAM_HEADER):
        service = FakeRegistrationService(responder, header=header).start()
        services.append(service)
        return service

    yield start
    for service in services:
        service.stop()


@pytest.fixture
def unused_port():
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port
