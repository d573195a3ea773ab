from pydantic import BaseModel, ConfigDict
from typing import List, Optional, Union

from src.shared.constants import CHAPTER_STATUS_CYCLE

Identifier = Union[int, str]


class TeacherSubject(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Identifier
    name: str
    classLevel: Optional[int] = None
    description: Optional[str] = ""
    isVisible: Optional[bool] = None


class TeacherChapter(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Identifier
    title: str
    description: Optional[str] = ""
    subjectId: Optional[Identifier] = None
    orderIndex: Optional[int] = None
    status: Optional[str] = None
    isVisible: Optional[bool] = None


class TeacherContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Identifier
    title: str
    contentType: str
    chapterId: Optional[Identifier] = None
    approved: bool = False
    isVisible: Optional[bool] = None
    fileUrl: Optional[str] = None
    duration: Optional[Union[str, float]] = None
    fileSize: Optional[Union[str, int]] = None


# Modelo de cada nivel de la jerarquía del profesor
LEVEL_MODELS = {
    "subjects": TeacherSubject,
    "chapters": TeacherChapter,
    "content": TeacherContent,
}


def next_status(status: Optional[str]) -> str:
    """not-started (o sin estado) -> in-progress -> completed -> not-started"""
    return CHAPTER_STATUS_CYCLE.get(status or "not-started", "in-progress")


def next_visibility(is_visible: Optional[bool]) -> bool:
    """Un elemento sin valor explícito se considera visible, así que el cambio lo oculta"""
    return is_visible is False


def status_label(status: Optional[str]) -> str:
    if not status or status == "not-started":
        return "Not Started"
    return status.replace("-", " ")


def parse_level(items: List[dict], level: str) -> List[dict]:
    model = LEVEL_MODELS[level]
    return [model.model_validate(item).model_dump() for item in items]
