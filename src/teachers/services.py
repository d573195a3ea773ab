from functools import partial
from typing import List, Tuple

from pydantic import ValidationError as PydanticValidationError

from src.shared.api_client import ensure_success, DownloadedFile
from src.shared.error_handling import ErrorKind, TEACHER_PROFILE, classify_dashboard_error
from src.shared.exceptions import ApiError
from src.shared.logging import log_info, log_warning
from src.shared.standardization import BaseService
from src.shared.utils import resolve_file_url, add_query_param, sanitize_filename, extension_for
from src.teachers.models import parse_level, next_visibility

INVALID_RESPONSE_MESSAGE = "Invalid response from server. Please try again."

# Ruta de listado por nivel: subjects/<classLevel>, chapters/<subjectId>, content/<chapterId>
LEVEL_ENDPOINTS = {
    "subjects": "/api/teachers/subjects/{}",
    "chapters": "/api/teachers/chapters/{}",
    "content": "/api/teachers/content/{}",
}

VISIBILITY_LABELS = {
    "subjects": "Subject",
    "chapters": "Chapter",
    "content": "Content",
}


def teacher_classifier(operation: str):
    return partial(classify_dashboard_error, operation=operation, contact="support")


class TeacherService(BaseService):
    """Panel del profesor: materias, capítulos, contenido y visibilidad"""

    def fetch_level(self, token: str, level: str, parent_id) -> List[dict]:
        """Lista un nivel de la jerarquía con reintentos"""
        operation = f"load {level}"

        def attempt():
            body = self.api.get(LEVEL_ENDPOINTS[level].format(parent_id), token=token, profile=TEACHER_PROFILE)
            ensure_success(body, f"Failed to fetch {level}")
            if not isinstance(body.get("data"), list):
                raise ApiError(ErrorKind.UNKNOWN, INVALID_RESPONSE_MESSAGE)
            try:
                return parse_level(body["data"], level)
            except PydanticValidationError:
                raise ApiError(ErrorKind.UNKNOWN, INVALID_RESPONSE_MESSAGE)

        return self.run_with_retry(attempt, operation, teacher_classifier(operation))

    def create_subject(self, token: str, name: str, class_level: int, description: str = "") -> dict:
        def attempt():
            body = self.api.post("/api/teachers/subjects", token=token, profile=TEACHER_PROFILE,
                                 json={"name": name, "classLevel": class_level, "description": description})
            return ensure_success(body, "Failed to create subject")

        body = self.run_with_retry(attempt, "create subject", teacher_classifier("create subject"))
        log_info(f"Materia '{name}' creada para la clase {class_level}", "teachers.services")
        return body

    def create_chapter(self, token: str, name: str, subject_id, description: str = "") -> dict:
        """Crea un capítulo; un único intento"""
        try:
            body = self.api.post("/api/teachers/chapters", token=token, profile=TEACHER_PROFILE,
                                 json={"name": name, "subjectId": subject_id, "description": description})
        except ApiError as e:
            if e.kind in (ErrorKind.NETWORK, ErrorKind.TIMEOUT):
                raise ApiError(e.kind, "Unable to create chapter. Please try again.")
            raise
        ensure_success(body, "Please try again")
        log_info(f"Capítulo '{name}' creado en la materia {subject_id}", "teachers.services")
        return body

    def toggle_visibility(self, token: str, level: str, item: dict) -> bool:
        """
        Cambia la visibilidad de una materia, capítulo o contenido.

        Returns:
            bool: La nueva visibilidad

        Raises:
            ApiError: Si la API rechaza el cambio; `details.isVisible` conserva el valor anterior
        """
        previous = item.get("isVisible")
        visible = next_visibility(previous)
        label = VISIBILITY_LABELS[level]
        try:
            body = self.api.patch(f"/api/teachers/{level}/{item['id']}/visibility", token=token,
                                  profile=TEACHER_PROFILE, json={"isVisible": visible})
            ensure_success(body, f"Failed to update {label.lower()} visibility")
        except ApiError as e:
            if e.kind == ErrorKind.AUTHENTICATION:
                raise
            log_warning(f"Visibilidad de {level}/{item['id']} sin cambios: {e.message}", "teachers.services")
            message = e.message if e.kind == ErrorKind.UNKNOWN else f"Failed to update {label.lower()} visibility"
            raise ApiError(e.kind, message, status=e.status, details={"id": item["id"], "isVisible": previous})
        return visible

    def download_filename(self, content: dict) -> str:
        extension = extension_for(None, content.get("contentType")) or "file"
        return f"{sanitize_filename(content.get('title'))}.{extension}"

    def download(self, token: str, content: dict, max_bytes: int) -> Tuple[DownloadedFile, str]:
        """Descarga a través del proxy de la API; devuelve (archivo, nombre)"""
        full_url = resolve_file_url(self.api.base_url, content.get("fileUrl"))
        if not full_url:
            raise ApiError(ErrorKind.NOT_FOUND, "This content has no file attached.", status=404)
        filename = self.download_filename(content)
        downloaded = self.api.download("/api/download/proxy", token=token, max_bytes=max_bytes,
                                       params={"url": full_url, "filename": filename})
        return downloaded, filename

    def fallback_url(self, content: dict) -> str:
        """URL directa con fl_attachment=true, usada si el proxy falla"""
        full_url = resolve_file_url(self.api.base_url, content.get("fileUrl"))
        return add_query_param(full_url, "fl_attachment", "true") if full_url else None
