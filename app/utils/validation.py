import re
from typing import List, Optional

from app.models.course import Course

_LETTERS = "a-zA-ZáàâäãåçéèêëíìîïñóòôöõúùûüýÿæœÁÀÂÄÃÅÇÉÈÊËÍÌÎÏÑÓÒÔÖÕÚÙÛÜÝŸÆŒ"

NAME_PATTERN = re.compile(rf"^(?=\s*\S)[{_LETTERS}._\s-]{{2,60}}$")
EMAIL_PATTERN = re.compile(
    r"^(?=.{1,25}@)[A-Za-z0-9_-]+(\.[A-Za-z0-9_-]+)*@"
    r"[^-][A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*(\.[A-Za-z]{2,})$"
)
STUDENT_ID_PATTERN = re.compile(r"^[0-9]{8}$")

COURSE_MISSING = "A course must be selected from the offered courses"


def _matches(pattern: re.Pattern, value: Optional[str]) -> bool:
    return value is not None and pattern.fullmatch(value) is not None


def validate_student_fields(first_name: Optional[str], last_name: Optional[str],
                            email: Optional[str], student_id: Optional[str]) -> List[str]:
    """Checks the typed-in fields; returns error messages, empty when valid."""
    errors = []
    if not _matches(NAME_PATTERN, first_name):
        errors.append("First name is missing or has an invalid format")
    if not _matches(NAME_PATTERN, last_name):
        errors.append("Last name is missing or has an invalid format")
    if not _matches(EMAIL_PATTERN, email):
        errors.append("Email is missing or has an invalid format")
    if not _matches(STUDENT_ID_PATTERN, student_id):
        errors.append("Student ID is missing or is not 8 digits")
    return errors


def validate_registration_fields(first_name: Optional[str], last_name: Optional[str],
                                 email: Optional[str], student_id: Optional[str],
                                 course: Optional[Course]) -> List[str]:
    """
    Checks registration input before a RegistrationForm is built.

    All fields are checked so the user sees every problem at once.

    Returns:
        List of error messages, empty when the input is valid
    """
    errors = validate_student_fields(first_name, last_name, email, student_id)
    if course is None:
        errors.append(COURSE_MISSING)
    return errors
