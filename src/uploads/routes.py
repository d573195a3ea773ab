import uuid

from flask import g, request

from .models import UploadRequest
from .progress import get_progress_tracker, describe_progress
from .services import UploadService
from src.shared.decorators import get_form_data
from src.shared.standardization import APIBlueprint, APIRoute, ErrorCodes
from src.shared.validators import validate_upload_form, parse_class_level

uploads_bp = APIBlueprint('uploads', __name__)
upload_service = UploadService()


@uploads_bp.route('/teacher/upload', methods=['POST'])
@APIRoute.standard(role="teacher")
def upload_content():
    """
    Sube un archivo de video o documento y crea su contenido.

    El cliente puede enviar su propio `uploadId` para consultar el progreso
    mientras la petición sigue abierta; si no, se genera uno.
    """
    data = get_form_data()
    file_storage = request.files.get('file')
    validate_upload_form(data, file_storage is not None and bool(file_storage.filename))

    upload_id = data.get('uploadId') or str(uuid.uuid4())
    stream = file_storage.stream
    stream.seek(0, 2)
    file_size = stream.tell()
    stream.seek(0)

    upload = UploadRequest(
        title=data['title'].strip(),
        description=(data.get('description') or '').strip(),
        type=data['type'],
        classLevel=parse_class_level(data['classLevel']),
        subjectId=(data.get('subjectId') or '').strip() or None,
        subjectName=data.get('subjectName') or None,
        chapterId=(data.get('chapterId') or '').strip() or None,
        fileName=file_storage.filename,
        fileSize=file_size,
    )

    tracker = get_progress_tracker()
    user_id = str((g.current_user or {}).get('id', ''))
    # La sala se abre antes de enviar el archivo para no perder eventos
    tracker.join(upload_id, user_id)

    def report(stage, percentage, message, **extra):
        tracker.update_stage(upload_id, stage, percentage, message, **extra)

    try:
        summary = upload_service.run(g.access_token, upload, file_storage, upload_id, report)
    finally:
        tracker.leave(upload_id)

    summary["uploadId"] = upload_id
    return APIRoute.success(data=summary, message="Content uploaded successfully!", status_code=201)


@uploads_bp.route('/teacher/upload/<upload_id>/progress', methods=['GET'])
@APIRoute.standard(role="teacher")
def upload_progress(upload_id):
    """Último estado conocido de una subida"""
    record = get_progress_tracker().latest(upload_id)
    # Solo el profesor que inició la subida puede consultarla
    if record is None or str(record.get('userId')) != str((g.current_user or {}).get('id', '')):
        return APIRoute.error(ErrorCodes.UPLOAD_NOT_FOUND, "No progress recorded for this upload", status_code=404)
    return APIRoute.success(data=describe_progress(record))
