"""
Navegación jerárquica clase → materia → capítulo → contenido.

La vista actual se deriva de las selecciones: no existe un estado con un
capítulo seleccionado y sin materia, porque select_chapter lo rechaza.
"""

from enum import Enum
from typing import List, Optional

from src.shared.constants import CONTENT_FILTERS
from src.shared.exceptions import NavigationError


class NavigationLevel(Enum):
    CLASSES = "classes"
    SUBJECTS = "subjects"
    CHAPTERS = "chapters"
    CONTENT = "content"


_DEPTH = {
    NavigationLevel.CLASSES: 0,
    NavigationLevel.SUBJECTS: 1,
    NavigationLevel.CHAPTERS: 2,
    NavigationLevel.CONTENT: 3,
}


def _coerce_level(level) -> NavigationLevel:
    if isinstance(level, NavigationLevel):
        return level
    try:
        return NavigationLevel(level)
    except ValueError:
        raise NavigationError(f"Invalid navigation level: {level}")


class DrillDownNavigator:
    """Estado de navegación de los paneles de estudiante y profesor"""

    def __init__(self):
        self.selected_class = None
        self.selected_subject = None
        self.selected_chapter = None
        self.search_term = ""
        self.content_filter = "all"

    @property
    def current_view(self) -> NavigationLevel:
        if self.selected_chapter is not None:
            return NavigationLevel.CONTENT
        if self.selected_subject is not None:
            return NavigationLevel.CHAPTERS
        if self.selected_class is not None:
            return NavigationLevel.SUBJECTS
        return NavigationLevel.CLASSES

    def select(self, level, entity):
        """
        Avanza un nivel seleccionando `entity` en la vista `level`.

        Args:
            level: Vista en la que se hace la selección (classes, subjects o chapters)
            entity: Entidad seleccionada
        """
        level = _coerce_level(level)
        if entity is None:
            raise NavigationError("Nothing was selected")
        if level == NavigationLevel.CLASSES:
            self.select_class(entity)
        elif level == NavigationLevel.SUBJECTS:
            self.select_subject(entity)
        elif level == NavigationLevel.CHAPTERS:
            self.select_chapter(entity)
        else:
            raise NavigationError("Content has no deeper level")

    def select_class(self, entity):
        self.selected_class = entity
        self.selected_subject = None
        self.selected_chapter = None
        self.search_term = ""

    def select_subject(self, entity):
        if self.selected_class is None:
            raise NavigationError("Please select a class first")
        self.selected_subject = entity
        self.selected_chapter = None
        self.search_term = ""

    def select_chapter(self, entity):
        if self.selected_subject is None:
            raise NavigationError("Please select a subject first")
        self.selected_chapter = entity
        self.search_term = ""
        self.content_filter = "all"

    def back(self, to_level):
        """
        Retrocede hasta la vista `to_level`, limpiando las selecciones de ese nivel y de los inferiores.
        """
        to_level = _coerce_level(to_level)
        if _DEPTH[to_level] > _DEPTH[self.current_view]:
            raise NavigationError(f"Cannot go back to {to_level.value} from {self.current_view.value}")

        leaving_content = self.current_view == NavigationLevel.CONTENT and to_level != NavigationLevel.CONTENT
        if _DEPTH[to_level] <= _DEPTH[NavigationLevel.CHAPTERS]:
            self.selected_chapter = None
        if _DEPTH[to_level] <= _DEPTH[NavigationLevel.SUBJECTS]:
            self.selected_subject = None
        if to_level == NavigationLevel.CLASSES:
            self.selected_class = None
        if leaving_content:
            self.content_filter = "all"
        self.search_term = ""

    def search(self, term: Optional[str]):
        self.search_term = (term or "").strip()

    def set_content_filter(self, content_filter: str):
        if content_filter not in CONTENT_FILTERS:
            raise NavigationError(f"Invalid content filter: {content_filter}")
        self.content_filter = content_filter

    def filter_items(self, items: List[dict], level=None) -> List[dict]:
        """
        Aplica el término de búsqueda (y el filtro de tipo en la vista de contenido).
        Las clases nunca se filtran.
        """
        level = _coerce_level(level) if level is not None else self.current_view
        items = list(items or [])
        term = self.search_term.lower()

        if level == NavigationLevel.CLASSES:
            return items
        if level == NavigationLevel.SUBJECTS:
            return [i for i in items if term in str(i.get("name") or "").lower()] if term else items
        if level == NavigationLevel.CHAPTERS:
            return [i for i in items if term in str(i.get("title") or i.get("name") or "").lower()] if term else items

        if self.content_filter == "video":
            items = [i for i in items if i.get("contentType") == "video"]
        elif self.content_filter == "notes":
            items = [i for i in items if i.get("contentType") in ("pdf", "document")]
        if not term:
            return items
        return [i for i in items if term in str(i.get("title") or "").lower() or term in teacher_name(i).lower()]

    def to_dict(self) -> dict:
        return {
            "view": self.current_view.value,
            "selectedClass": self.selected_class,
            "selectedSubject": self.selected_subject,
            "selectedChapter": self.selected_chapter,
            "searchTerm": self.search_term,
            "contentFilter": self.content_filter,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "DrillDownNavigator":
        navigator = cls()
        if not data:
            return navigator
        navigator.selected_class = data.get("selectedClass")
        if navigator.selected_class is not None:
            navigator.selected_subject = data.get("selectedSubject")
        if navigator.selected_subject is not None:
            navigator.selected_chapter = data.get("selectedChapter")
        navigator.search_term = data.get("searchTerm") or ""
        content_filter = data.get("contentFilter")
        navigator.content_filter = content_filter if content_filter in CONTENT_FILTERS else "all"
        return navigator


def teacher_name(item: dict) -> str:
    teacher = item.get("teacher") or {}
    if not isinstance(teacher, dict):
        return str(teacher)
    return f"{teacher.get('firstName', '')} {teacher.get('lastName', '')}".strip()
