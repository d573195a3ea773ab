from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Union

Identifier = Union[int, str]


class TeacherRef(BaseModel):
    model_config = ConfigDict(extra="allow")

    firstName: str = ""
    lastName: str = ""


class ContentItem(BaseModel):
    """Video o documento publicado dentro de un capítulo"""
    model_config = ConfigDict(extra="allow")

    id: Identifier
    title: str
    contentType: str
    description: Optional[str] = ""
    fileUrl: Optional[str] = None
    duration: Optional[float] = None
    fileSize: Optional[int] = None
    youtubeVideoId: Optional[str] = None
    embedUrl: Optional[str] = None
    watchUrl: Optional[str] = None
    thumbnailUrl: Optional[str] = None
    createdAt: Optional[str] = None
    approved: bool = False
    teacher: Optional[TeacherRef] = None


class Chapter(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Identifier
    title: str
    content: List[ContentItem] = Field(default_factory=list)


class Subject(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: Identifier
    name: str
    description: Optional[str] = ""
    chapters: List[Chapter] = Field(default_factory=list)


class ClassLevel(BaseModel):
    """Clase (nivel 9-12) tal como la devuelve /api/students/dashboard"""
    model_config = ConfigDict(extra="allow")

    classLevel: int
    subjects: List[Subject] = Field(default_factory=list)
    enrollmentCount: int = 0
    contentCount: int = 0
    isEnrolled: bool = False


def approved_content(chapter: dict, content_type: str = None) -> List[dict]:
    """Contenido aprobado de un capítulo; 'notes' agrupa pdf y document"""
    items = [c for c in chapter.get("content", []) if c.get("approved")]
    if content_type == "video":
        return [c for c in items if c.get("contentType") == "video"]
    if content_type == "notes":
        return [c for c in items if c.get("contentType") in ("pdf", "document")]
    return items


def chapter_counts(chapter: dict) -> dict:
    return {
        "total": len(approved_content(chapter)),
        "videos": len(approved_content(chapter, "video")),
        "notes": len(approved_content(chapter, "notes")),
    }


def subject_counts(subject: dict) -> dict:
    counts = {"total": 0, "videos": 0, "notes": 0}
    for chapter in subject.get("chapters", []):
        for key, value in chapter_counts(chapter).items():
            counts[key] += value
    return counts


def build_playlist(chapter: dict, content_id) -> dict:
    """
    Lista de reproducción con los videos aprobados del capítulo.

    Returns:
        dict con el video actual, la lista y los ids anterior/siguiente
    """
    videos = approved_content(chapter, "video")
    index = next((i for i, v in enumerate(videos) if str(v.get("id")) == str(content_id)), 0)
    return {
        "current": videos[index] if videos else None,
        "playlist": videos,
        "index": index,
        "previousId": videos[index - 1]["id"] if index > 0 else None,
        "nextId": videos[index + 1]["id"] if index + 1 < len(videos) else None,
    }
