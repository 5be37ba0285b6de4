from dataclasses import dataclass
from typing import Dict, Any


@dataclass(frozen=True)
class Course:
    """
    Represents a course offered during a term.

    Attributes:
        code: Course code, unique within a term (e.g., "IFT1015")
        name: Course name as displayed to students (e.g., "Programmation 1")
    """
    code: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Course":
        return cls(code=data["code"], name=data["name"])
