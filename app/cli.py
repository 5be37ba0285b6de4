import argparse
import json
import logging
import sys
from typing import Any, Callable, Dict, List, Optional

from app.models.exchange_result import ExchangeResult
from app.models.registration_form import RegistrationForm
from app.services.protocol_client import ProtocolClient
from app.utils.validation import validate_registration_fields, validate_student_fields

logger = logging.getLogger(__name__)

TERMS = ["Hiver", "Ete", "Automne"]

EXIT_OK = 0
EXIT_EXCHANGE_FAILED = 1
EXIT_INVALID_INPUT = 2


def _emit(payload: Dict[str, Any], as_json: bool, lines: List[str]) -> None:
    if as_json:
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        for line in lines:
            print(line)


def _failed(result: ExchangeResult, as_json: bool) -> int:
    message = f"{type(result.error).__name__}: {result.error}"
    _emit({"status": result.status, "message": message}, as_json, [])
    if not as_json:
        print(message, file=sys.stderr)
    return EXIT_EXCHANGE_FAILED


def cmd_courses(client: ProtocolClient, args: argparse.Namespace) -> int:
    result = client.load_courses(args.term)
    if not result.ok:
        return _failed(result, args.json)

    payload = {
        "status": result.status,
        "term": args.term,
        "courses": [course.to_dict() for course in result.value],
    }
    _emit(payload, args.json, [f"{c.code}\t{c.name}" for c in result.value])
    return EXIT_OK


def _invalid(errors: List[str], as_json: bool) -> int:
    _emit({"status": "error", "message": "Invalid registration form", "errors": errors},
          as_json, [])
    if not as_json:
        print("Invalid registration form:", file=sys.stderr)
        for error in errors:
            print(f"- {error}", file=sys.stderr)
    return EXIT_INVALID_INPUT


def cmd_register(client: ProtocolClient, args: argparse.Namespace) -> int:
    # Typed-in fields are checked before anything goes over the network.
    errors = validate_student_fields(args.first_name, args.last_name, args.email, args.student_id)
    if errors:
        return _invalid(errors, args.json)

    loaded = client.load_courses(args.term)
    if not loaded.ok:
        return _failed(loaded, args.json)

    course = next((c for c in loaded.value if c.code == args.course_code), None)
    errors = validate_registration_fields(
        args.first_name, args.last_name, args.email, args.student_id, course
    )
    if errors:
        return _invalid(errors, args.json)

    form = RegistrationForm(
        first_name=args.first_name,
        last_name=args.last_name,
        email=args.email,
        student_id=args.student_id,
        course=course,
    )
    result = client.register(form)
    if not result.ok:
        return _failed(result, args.json)

    _emit({"status": result.status, "message": result.value}, args.json, [result.value])
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="registration-client",
                                description="Course registration service client.")
    p.add_argument("--log-level", default=None,
                   choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_common(x: argparse.ArgumentParser) -> None:
        x.add_argument("--host", default=None)
        x.add_argument("--port", type=int, default=None)
        x.add_argument("--json", action="store_true")
        x.add_argument("--term", choices=TERMS, required=True)

    courses = sub.add_parser("courses", help="list the courses offered during a term")
    add_common(courses)
    courses.set_defaults(func=cmd_courses)

    register = sub.add_parser("register", help="register a student to one course")
    add_common(register)
    register.add_argument("--course-code", required=True)
    register.add_argument("--first-name", required=True)
    register.add_argument("--last-name", required=True)
    register.add_argument("--email", required=True)
    register.add_argument("--student-id", required=True)
    register.set_defaults(func=cmd_register)

    return p


def run(argv: Optional[List[str]] = None,
        client_factory: Callable[..., ProtocolClient] = ProtocolClient) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        logging.getLogger().setLevel(args.log_level)

    overrides = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port

    client = client_factory(server_config=overrides)
    return int(args.func(client, args))
