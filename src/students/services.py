from functools import partial
from typing import List, Optional, Tuple
from urllib.parse import quote

from pydantic import ValidationError as PydanticValidationError

from src.shared.api_client import DownloadedFile
from src.shared.constants import CLOUDINARY_URL_PREFIX
from src.shared.error_handling import (
    ErrorKind, STUDENT_PROFILE, classify_dashboard_error, describe_download_failure
)
from src.shared.exceptions import ApiError, AppException
from src.shared.logging import log_info, log_warning
from src.shared.navigation import DrillDownNavigator
from src.shared.standardization import BaseService
from src.shared.utils import resolve_file_url, download_filename
from src.students.models import ClassLevel

INVALID_RESPONSE_MESSAGE = "Invalid response from server. Please try again."
NO_CLASSES_MESSAGE = "You haven't enrolled in any classes yet. Contact your teacher for enrollment."

# Acciones de seguimiento de progreso aceptadas por la API
PROGRESS_ACTIONS = ("start_viewing", "view_document", "download_document")


def _same_id(a, b) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def resolve_selection(classes: List[dict], navigator: DrillDownNavigator) -> Tuple[Optional[dict], Optional[dict], Optional[dict]]:
    """
    Busca en la jerarquía las entidades seleccionadas (guardadas por id).
    Si una selección ya no existe, el navegador retrocede al último nivel válido.
    """
    selected_class = next((c for c in classes if _same_id(c.get("classLevel"), navigator.selected_class)), None)
    if selected_class is None:
        if navigator.selected_class is not None:
            navigator.back("classes")
        return None, None, None

    subject = next((s for s in selected_class.get("subjects", []) if _same_id(s.get("id"), navigator.selected_subject)), None)
    if subject is None:
        if navigator.selected_subject is not None:
            navigator.back("subjects")
        return selected_class, None, None

    chapter = next((c for c in subject.get("chapters", []) if _same_id(c.get("id"), navigator.selected_chapter)), None)
    if chapter is None and navigator.selected_chapter is not None:
        navigator.back("chapters")
    return selected_class, subject, chapter


def document_view(base_url: str, content: dict) -> dict:
    """URLs para abrir un archivo; los PDF alojados en Cloudinary usan un visor embebido"""
    url = resolve_file_url(base_url, content.get("fileUrl"))
    if not url:
        raise AppException("This content has no file attached.", AppException.NOT_FOUND)
    view = {"title": content.get("title"), "url": url, "viewerUrl": None}
    if url.startswith(CLOUDINARY_URL_PREFIX) and content.get("contentType") in ("pdf", "document"):
        view["viewerUrl"] = f"https://docs.google.com/gview?url={quote(url, safe='')}&embedded=true"
    return view


class StudentService(BaseService):
    """Panel del estudiante: jerarquía de clases, inscripción, progreso y descargas"""

    def fetch_dashboard(self, token: str) -> List[dict]:
        """Obtiene la jerarquía completa de clases con reintentos"""

        def attempt():
            body = self.api.get("/api/students/dashboard", token=token, profile=STUDENT_PROFILE)
            data = body.get("data")
            if not isinstance(data, dict) or not isinstance(data.get("classes"), list):
                raise ApiError(ErrorKind.UNKNOWN, INVALID_RESPONSE_MESSAGE)
            try:
                return [ClassLevel.model_validate(c).model_dump() for c in data["classes"]]
            except PydanticValidationError:
                raise ApiError(ErrorKind.UNKNOWN, INVALID_RESPONSE_MESSAGE)

        return self.run_with_retry(attempt, "load your dashboard",
                                   partial(classify_dashboard_error, operation="load your dashboard"))

    def enroll(self, token: str, classes: List[dict], class_level: int) -> dict:
        """Inscribe al estudiante en la primera materia de la clase"""
        class_data = next((c for c in classes if c.get("classLevel") == class_level), None)
        if not class_data or not class_data.get("subjects"):
            raise AppException("No subjects are available for enrollment in this class yet.", AppException.NOT_FOUND)

        first_subject = class_data["subjects"][0]
        try:
            body = self.api.post(f"/api/students/enroll/{first_subject['id']}", token=token, profile=STUDENT_PROFILE)
        except ApiError as e:
            if e.kind == ErrorKind.AUTHENTICATION:
                raise
            log_warning(f"Inscripción fallida en la clase {class_level}: {e.message}", "students.services")
            raise ApiError(e.kind, "Failed to enroll. Please try again.", status=e.status, error_code=e.error_code)
        log_info(f"Estudiante inscrito en la materia {first_subject['id']}", "students.services")
        return body

    def track_progress(self, token: str, content_id, action: str) -> bool:
        """
        Registra el progreso del estudiante. Un fallo solo se registra en el log:
        nunca impide ver o descargar el contenido.
        """
        if action not in PROGRESS_ACTIONS:
            raise AppException(f"Invalid progress action: {action}")

        def attempt():
            return self.api.post("/api/students/progress", token=token, profile=STUDENT_PROFILE,
                                 json={"contentId": content_id, "action": action})

        try:
            self.run_with_retry(attempt, "track progress",
                                partial(classify_dashboard_error, operation="track progress"))
        except ApiError as e:
            log_warning(f"No se pudo registrar el progreso ({action}) del contenido {content_id}: {e.message}",
                        "students.services")
            return False
        return True

    def file_url(self, content: dict) -> str:
        url = resolve_file_url(self.api.base_url, content.get("fileUrl"))
        if not url:
            raise AppException("This content has no file attached.", AppException.NOT_FOUND)
        return url

    def view_document(self, content: dict) -> dict:
        return document_view(self.api.base_url, content)

    def download(self, token: str, content: dict, max_bytes: int) -> Tuple[DownloadedFile, str]:
        """
        Descarga el archivo del contenido. Los archivos de Cloudinary se piden sin
        token; los alojados en la API, con el token del estudiante.
        """
        url = self.file_url(content)
        auth_token = None if url.startswith(CLOUDINARY_URL_PREFIX) else token
        try:
            downloaded = self.api.download(url, token=auth_token, max_bytes=max_bytes)
        except ApiError as e:
            message, fallback_allowed = describe_download_failure(e)
            log_warning(f"Descarga fallida de {url}: {e.message}", "students.services")
            raise ApiError(e.kind, message, status=e.status, error_code=e.error_code,
                           details={"fallbackUrl": url if fallback_allowed else None})
        filename = download_filename(content.get("title"), downloaded.content_type, content.get("contentType"))
        return downloaded, filename
