from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Union

from src.shared.utils import parse_date, split_full_name, split_subjects


class TeacherProfile(BaseModel):
    model_config = ConfigDict(extra="allow")

    subjectsTaught: List[str] = Field(default_factory=list)


class TeacherAccount(BaseModel):
    """Profesor tal como lo devuelve /api/admin/teachers"""
    model_config = ConfigDict(extra="allow")

    id: Union[int, str]
    firstName: str = ""
    lastName: str = ""
    email: str
    teacherProfile: Optional[TeacherProfile] = None
    createdAt: Optional[str] = None

    def to_summary(self) -> dict:
        return {
            "id": str(self.id),
            "name": f"{self.firstName} {self.lastName}".strip(),
            "email": self.email,
            "subjects": self.teacherProfile.subjectsTaught if self.teacherProfile else [],
            "dateAdded": parse_date(self.createdAt),
        }


class NewTeacherRequest(BaseModel):
    """Cuerpo de POST /api/admin/teachers"""
    firstName: str
    lastName: str
    email: str
    password: str
    subjects: List[str]

    @classmethod
    def from_form(cls, form: dict) -> "NewTeacherRequest":
        first_name, last_name = split_full_name(form.get("name", "").strip())
        return cls(
            firstName=first_name,
            lastName=last_name,
            email=form["email"].strip(),
            password=form["password"],
            subjects=split_subjects(form.get("subjects")),
        )
