"""
Wire codec for the registration service.

A connection carries two independent channels, one per direction. Each
channel starts with a 4-byte stream header written by the sending side
when its channel is created, followed by frames:

    [length: 4 bytes, big-endian][UTF-8 JSON: {"type": <tag>, "value": <payload>}]

Tags:
    "string"             plain text (commands, confirmation messages)
    "course"             {"code": ..., "name": ...}
    "course_list"        [course, ...]
    "registration_form"  {"first_name", "last_name", "email", "student_id", "course"}
"""
import json
import logging
import struct
from typing import Any, BinaryIO, Dict, List

from app.errors import ProtocolViolationError, ServerConnectionError
from app.models.course import Course
from app.models.registration_form import RegistrationForm

logger = logging.getLogger(__name__)

STREAM_HEADER = b"CRP\x00"
LENGTH_PREFIX = struct.Struct("!I")
MAX_FRAME_SIZE = 16 * 1024 * 1024

STRING = "string"
COURSE = "course"
COURSE_LIST = "course_list"
REGISTRATION_FORM = "registration_form"


def encode_value(value: Any) -> Dict[str, Any]:
    """
    Converts a Python value into its tagged JSON envelope.

    Raises:
        TypeError: If the value has no wire representation
    """
    if isinstance(value, str):
        return {"type": STRING, "value": value}
    if isinstance(value, Course):
        return {"type": COURSE, "value": value.to_dict()}
    if isinstance(value, RegistrationForm):
        return {"type": REGISTRATION_FORM, "value": value.to_dict()}
    if isinstance(value, (list, tuple)) and all(isinstance(c, Course) for c in value):
        return {"type": COURSE_LIST, "value": [c.to_dict() for c in value]}
    raise TypeError(f"Cannot serialize value of type {type(value).__name__}")


def _parse_course(data: Any) -> Course:
    if not isinstance(data, dict):
        raise ProtocolViolationError(f"Expected a course object, got {type(data).__name__}")
    if not isinstance(data.get("code"), str) or not isinstance(data.get("name"), str):
        raise ProtocolViolationError(f"Malformed course: {data!r}")
    return Course.from_dict(data)


def parse_course_list(data: Any) -> List[Course]:
    """Builds courses from a decoded course_list payload, keeping their order."""
    if not isinstance(data, list):
        raise ProtocolViolationError(f"Expected a list of courses, got {type(data).__name__}")
    return [_parse_course(item) for item in data]


def parse_registration_form(data: Any) -> RegistrationForm:
    if not isinstance(data, dict):
        raise ProtocolViolationError(f"Expected a registration form, got {type(data).__name__}")
    _parse_course(data.get("course"))
    try:
        return RegistrationForm.from_dict(data)
    except (KeyError, ValueError, TypeError) as e:
        raise ProtocolViolationError(f"Malformed registration form: {e}") from e


def decode_value(envelope: Any) -> Any:
    """
    Converts a tagged JSON envelope back into a Python value.

    Raises:
        ProtocolViolationError: If the envelope or its payload is malformed
    """
    if not isinstance(envelope, dict) or "type" not in envelope or "value" not in envelope:
        raise ProtocolViolationError("Frame is not a tagged value")

    tag = envelope["type"]
    payload = envelope["value"]

    if tag == STRING:
        if not isinstance(payload, str):
            raise ProtocolViolationError("String frame does not hold a string")
        return payload
    if tag == COURSE:
        return _parse_course(payload)
    if tag == COURSE_LIST:
        return parse_course_list(payload)
    if tag == REGISTRATION_FORM:
        return parse_registration_form(payload)
    raise ProtocolViolationError(f"Unknown frame type: {tag!r}")


def encode_frame(value: Any) -> bytes:
    body = json.dumps(encode_value(value), ensure_ascii=False).encode("utf-8")
    return LENGTH_PREFIX.pack(len(body)) + body


def decode_frame(body: bytes) -> Any:
    try:
        envelope = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProtocolViolationError(f"Undecodable frame: {e}") from e
    return decode_value(envelope)


class MessageWriter:
    """Outbound channel. Sends the stream header as soon as it is created."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self._stream.write(STREAM_HEADER)
        self._stream.flush()

    def write_message(self, value: Any) -> None:
        self._stream.write(encode_frame(value))

    def flush(self) -> None:
        self._stream.flush()

    def close(self) -> None:
        self._stream.close()


class MessageReader:
    """Inbound channel. Blocks on creation until the peer's stream header arrives."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        header = self._read_exact(len(STREAM_HEADER))
        if header != STREAM_HEADER:
            raise ProtocolViolationError(f"Unexpected stream header: {header!r}")

    def _read_exact(self, size: int) -> bytes:
        data = self._stream.read(size)
        if data is None or len(data) < size:
            raise ServerConnectionError("Connection closed by peer")
        return data

    def read_message(self) -> Any:
        (length,) = LENGTH_PREFIX.unpack(self._read_exact(LENGTH_PREFIX.size))
        if length > MAX_FRAME_SIZE:
            raise ProtocolViolationError(f"Frame of {length} bytes exceeds limit of {MAX_FRAME_SIZE}")
        body = self._read_exact(length) if length else b""
        value = decode_frame(body)
        logger.debug(f"Received frame of {length} bytes")
        return value

    def close(self) -> None:
        self._stream.close()
