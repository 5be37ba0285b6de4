from dataclasses import dataclass
from typing import Dict, Any
from app.models.course import Course


@dataclass(frozen=True)
class RegistrationForm:
    """
    A student's request to register for one course.

    Field formats are checked by the caller before the form is built
    (see app.utils.validation). The form itself only refuses to exist
    without all five fields.

    Attributes:
        first_name: Student's first name
        last_name: Student's last name
        email: Contact email address
        student_id: Student identification number (8 digits)
        course: The course selected from a term's offering
    """
    first_name: str
    last_name: str
    email: str
    student_id: str
    course: Course

    def __post_init__(self):
        for field in ("first_name", "last_name", "email", "student_id"):
            value = getattr(self, field)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{field} must be a non-empty string")
        if not isinstance(self.course, Course):
            raise TypeError("course must be a Course")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "student_id": self.student_id,
            "course": self.course.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistrationForm":
        return cls(
            first_name=data["first_name"],
            last_name=data["last_name"],
            email=data["email"],
            student_id=data["student_id"],
            course=Course.from_dict(data["course"]),
        )
