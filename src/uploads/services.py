"""
Flujo de subida de contenido del profesor.

Cuatro pasos en secuencia contra la API:
1. Crear la materia "General" si no se eligió materia
2. Crear un capítulo con el título del contenido si no se eligió capítulo
3. Subir el archivo (multipart) a /api/upload/:type
4. Crear el registro de contenido en /api/teachers/content

No hay compensación: si un paso falla después de crear la materia o el
capítulo, esos registros quedan en la plataforma. El fallo se registra en el
log con los identificadores creados y se devuelve en los detalles del error.
"""

from typing import Callable

from flask import current_app
from pydantic import ValidationError as PydanticValidationError

from src.shared.constants import DEFAULT_SUBJECT_NAME
from src.shared.error_handling import ErrorKind, TEACHER_PROFILE, PLAIN_PROFILE
from src.shared.exceptions import AppException, ApiError
from src.shared.logging import log_info, log_warning
from src.shared.standardization import BaseService
from src.teachers.services import TeacherService
from src.uploads.models import (
    UPLOAD_STAGES, UploadRequest, UploadedFile, needs_compression, build_content_record
)


class UploadError(AppException):
    """Fallo de un paso del flujo de subida"""

    def __init__(self, message: str, stage: str, orphaned: dict = None):
        details = {"stage": stage}
        if orphaned:
            details["orphaned"] = orphaned
        super().__init__(f"Upload failed: {message}", AppException.BAD_GATEWAY, details)
        self.stage = stage


class UploadService(BaseService):
    """Ejecuta el flujo de subida e informa de cada etapa con `report`"""

    def __init__(self, api_client=None, retry_executor=None, teacher_service: TeacherService = None):
        super().__init__(api_client, retry_executor)
        self.teacher_service = teacher_service or TeacherService(api_client, retry_executor)

    def run(self, token: str, upload: UploadRequest, file_storage, upload_id: str,
            report: Callable[..., None] = None) -> dict:
        """
        Sube un archivo y crea su contenido.

        Args:
            token: Token de acceso del profesor
            upload: Formulario validado
            file_storage: Archivo recibido (werkzeug FileStorage)
            upload_id: Identificador de la subida, compartido con el canal de progreso
            report: Callback (stage, percentage, message, **extra) para cada etapa

        Returns:
            dict: Resumen del contenido subido

        Raises:
            UploadError: Si falla cualquiera de los pasos
        """
        def stage(name, percentage=None, message=None, **extra):
            default_percentage, default_message = UPLOAD_STAGES[name]
            if report:
                report(name, default_percentage if percentage is None else percentage,
                       message or default_message, **extra)

        created = {}
        stage("preparing")
        compress = needs_compression(upload.contentType, upload.extension, upload.fileSize,
                                     current_app.config.get("COMPRESSION_THRESHOLD_MB", 100))
        stage("validating", totalSize=upload.fileSize, needsCompression=compress)

        subject_id = upload.subjectId
        subject_name = upload.subjectName
        if not subject_id:
            stage("subject")
            subject = self._create_default_subject(token, upload.classLevel)
            subject_id = subject["id"]
            subject_name = DEFAULT_SUBJECT_NAME
            created["subjectId"] = subject_id
        elif upload.contentType == "video" and not subject_name:
            subject_name = self._subject_name(token, upload.classLevel, subject_id)

        chapter_id = upload.chapterId
        chapter_title = None
        if not chapter_id:
            stage("chapter")
            chapter = self._create_chapter(token, upload.title, subject_id, created)
            chapter_id = chapter["id"]
            chapter_title = chapter.get("title") or upload.title
            created["chapterId"] = chapter_id

        if compress:
            stage("compression")
            stage("uploading", percentage=50)
        else:
            stage("uploading")
        upload_body = self._upload_file(token, upload, file_storage, upload_id, subject_name, created)

        try:
            uploaded = UploadedFile.model_validate((upload_body.get("data") or {}).get("file") or {})
        except PydanticValidationError:
            self._report_orphans(created, "upload")
            raise UploadError("File upload failed", "uploading", created)

        stage("content")
        self._create_content(token, build_content_record(upload, uploaded, chapter_id), created)
        stage("complete")
        log_info(f"Contenido '{upload.title}' subido ({upload.contentType}, clase {upload.classLevel})",
                 "uploads.services")

        summary = {
            "title": upload.title,
            "type": upload.contentType,
            "class": upload.classLevel,
            "subject": subject_name or DEFAULT_SUBJECT_NAME,
            "chapter": chapter_title or upload.title,
            "fileName": upload.fileName,
        }
        if upload.contentType == "video" and uploaded.youtubeVideoId:
            summary.update({
                "youtubeVideoId": uploaded.youtubeVideoId,
                "youtubeUrl": uploaded.watchUrl,
                "platform": "YouTube",
                "processingStatus": uploaded.processingStatus,
                "note": (upload_body.get("data") or {}).get("note"),
            })
        elif upload.contentType == "document":
            summary["platform"] = "Cloudinary"
        return summary

    def _report_orphans(self, created: dict, step: str):
        if created:
            log_warning(f"Subida interrumpida en '{step}'; quedan registros sin contenido: {created}",
                        "uploads.services")

    def _post_step(self, path: str, token: str, json: dict, created: dict, step: str, failure: str) -> dict:
        try:
            body = self.api.post(path, token=token, json=json, profile=TEACHER_PROFILE)
        except ApiError as e:
            if e.kind == ErrorKind.AUTHENTICATION:
                self._report_orphans(created, step)
                raise
            log_warning(f"Paso '{step}' de la subida falló: {e.message}", "uploads.services")
            self._report_orphans(created, step)
            raise UploadError(failure, step, created)
        if not body.get("success"):
            self._report_orphans(created, step)
            raise UploadError(body.get("message") or failure, step, created)
        return body

    def _create_default_subject(self, token: str, class_level: int) -> dict:
        body = self._post_step("/api/teachers/subjects", token,
                               {"name": DEFAULT_SUBJECT_NAME, "classLevel": int(class_level)},
                               {}, "subject", "Failed to create subject")
        subject = (body.get("data") or {}).get("subject")
        if not subject or "id" not in subject:
            raise UploadError("Failed to create subject", "subject")
        return subject

    def _create_chapter(self, token: str, title: str, subject_id, created: dict) -> dict:
        body = self._post_step("/api/teachers/chapters", token,
                               {"title": title, "subjectId": int(subject_id), "description": f"Chapter for {title}"},
                               created, "chapter", "Failed to create chapter")
        chapter = (body.get("data") or {}).get("chapter")
        if not chapter or "id" not in chapter:
            self._report_orphans(created, "chapter")
            raise UploadError("Failed to create chapter", "chapter", created)
        return chapter

    def _subject_name(self, token: str, class_level: int, subject_id) -> str:
        """Nombre de la materia elegida; la API lo exige en la subida de videos"""
        try:
            subjects = self.teacher_service.fetch_level(token, "subjects", class_level)
        except ApiError as e:
            if e.kind == ErrorKind.AUTHENTICATION:
                raise
            log_warning(f"No se pudo obtener el nombre de la materia {subject_id}: {e.message}", "uploads.services")
            return DEFAULT_SUBJECT_NAME
        subject = next((s for s in subjects if str(s.get("id")) == str(subject_id)), None)
        return subject["name"] if subject else DEFAULT_SUBJECT_NAME

    def _upload_file(self, token: str, upload: UploadRequest, file_storage, upload_id: str,
                     subject_name: str, created: dict) -> dict:
        form = {
            "title": upload.title,
            "description": upload.description or "",
            "uploadId": upload_id,
        }
        if upload.contentType == "video":
            form["subject"] = subject_name or DEFAULT_SUBJECT_NAME
        files = {
            upload.contentType: (upload.fileName, file_storage.stream,
                                 file_storage.mimetype or "application/octet-stream")
        }
        try:
            body = self.api.post(f"/api/upload/{upload.contentType}", token=token, data=form, files=files,
                                 profile=PLAIN_PROFILE, timeout=current_app.config.get("UPLOAD_TIMEOUT"))
        except ApiError as e:
            if e.kind == ErrorKind.AUTHENTICATION:
                self._report_orphans(created, "uploading")
                raise
            log_warning(f"Subida del archivo {upload.fileName} falló: {e.message}", "uploads.services")
            self._report_orphans(created, "uploading")
            raise UploadError("Upload failed", "uploading", created)
        if not body.get("success"):
            self._report_orphans(created, "uploading")
            raise UploadError(body.get("message") or "File upload failed", "uploading", created)
        return body

    def _create_content(self, token: str, record: dict, created: dict) -> dict:
        return self._post_step("/api/teachers/content", token, record, created, "content",
                               "Content creation failed")
