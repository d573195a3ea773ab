from io import BytesIO

from flask import current_app, g, send_file

from .models import approved_content, build_playlist, chapter_counts, subject_counts
from .services import StudentService, resolve_selection, NO_CLASSES_MESSAGE
from src.shared.decorators import get_form_data
from src.shared.exceptions import AppException, NavigationError
from src.shared.navigation import DrillDownNavigator, NavigationLevel
from src.shared.session import get_session_context
from src.shared.standardization import APIBlueprint, APIRoute

students_bp = APIBlueprint('students', __name__)
student_service = StudentService()

NAVIGATION_STATE_KEY = "studentNavigation"
CONTENT_NOT_FOUND_MESSAGE = "Content not found. It may have been removed or you may not have access."


def _load_navigator() -> DrillDownNavigator:
    return DrillDownNavigator.from_dict(get_session_context().get_state(NAVIGATION_STATE_KEY))


def _save_navigator(navigator: DrillDownNavigator):
    get_session_context().set_state(NAVIGATION_STATE_KEY, navigator.to_dict())


def _summary(item: dict, level: NavigationLevel) -> dict:
    """Entrada de lista para cada nivel, sin la jerarquía anidada"""
    if level == NavigationLevel.CLASSES:
        return {
            "classLevel": item["classLevel"],
            "isEnrolled": item.get("isEnrolled", False),
            "enrollmentCount": item.get("enrollmentCount", 0),
            "contentCount": item.get("contentCount", 0),
            "subjectCount": len(item.get("subjects", [])),
        }
    if level == NavigationLevel.SUBJECTS:
        return {
            "id": item["id"],
            "name": item["name"],
            "description": item.get("description"),
            "chapterCount": len(item.get("chapters", [])),
            "counts": subject_counts(item),
        }
    if level == NavigationLevel.CHAPTERS:
        return {"id": item["id"], "title": item["title"], "counts": chapter_counts(item)}
    return item


def render_dashboard(classes, navigator: DrillDownNavigator) -> dict:
    """Modelo de vista del panel para la vista actual de la navegación"""
    selected_class, subject, chapter = resolve_selection(classes, navigator)
    view = navigator.current_view

    if view == NavigationLevel.CLASSES:
        source = classes
    elif view == NavigationLevel.SUBJECTS:
        source = selected_class.get("subjects", [])
    elif view == NavigationLevel.CHAPTERS:
        source = subject.get("chapters", [])
    else:
        source = approved_content(chapter)

    model = {
        "user": g.current_user,
        "navigation": navigator.to_dict(),
        "breadcrumb": {
            "classLevel": selected_class["classLevel"] if selected_class else None,
            "subject": subject["name"] if subject else None,
            "chapter": chapter["title"] if chapter else None,
        },
        "items": [_summary(item, view) for item in navigator.filter_items(source, view)],
        "message": None,
    }
    if chapter is not None:
        model["counts"] = chapter_counts(chapter)
    if not classes:
        model["message"] = NO_CLASSES_MESSAGE
    return model


def _dashboard_response(navigator: DrillDownNavigator, classes=None):
    if classes is None:
        classes = student_service.fetch_dashboard(g.access_token)
    model = render_dashboard(classes, navigator)
    _save_navigator(navigator)
    return APIRoute.success(data=model)


@students_bp.route('/student/dashboard', methods=['GET'])
@APIRoute.standard(role="student")
def dashboard():
    """Panel del estudiante en la vista de navegación actual"""
    return _dashboard_response(_load_navigator())


@students_bp.route('/student/dashboard/select', methods=['POST'])
@APIRoute.standard(role="student", required_fields=['level', 'id'])
def select():
    """Selecciona una clase, materia o capítulo y avanza un nivel"""
    navigator = _load_navigator()
    level = g.form_data['level']
    entity_id = g.form_data['id']
    if level == NavigationLevel.CLASSES.value:
        try:
            entity_id = int(entity_id)
        except (TypeError, ValueError):
            raise NavigationError("Invalid class level")
    navigator.select(level, entity_id)
    return _dashboard_response(navigator)


@students_bp.route('/student/dashboard/back', methods=['POST'])
@APIRoute.standard(role="student", required_fields=['level'])
def back():
    navigator = _load_navigator()
    navigator.back(g.form_data['level'])
    return _dashboard_response(navigator)


@students_bp.route('/student/dashboard/search', methods=['POST'])
@APIRoute.standard(role="student")
def search():
    navigator = _load_navigator()
    navigator.search(get_form_data().get('term'))
    return _dashboard_response(navigator)


@students_bp.route('/student/dashboard/filter', methods=['POST'])
@APIRoute.standard(role="student", required_fields=['filter'])
def content_filter():
    navigator = _load_navigator()
    navigator.set_content_filter(g.form_data['filter'])
    return _dashboard_response(navigator)


@students_bp.route('/student/enroll/<int:class_level>', methods=['POST'])
@APIRoute.standard(role="student")
def enroll(class_level):
    """Inscripción en la primera materia de la clase; devuelve el panel actualizado"""
    classes = student_service.fetch_dashboard(g.access_token)
    student_service.enroll(g.access_token, classes, class_level)
    return _dashboard_response(_load_navigator())


def _selected_content(content_id):
    """Contenido aprobado del capítulo seleccionado, junto con el capítulo"""
    navigator = _load_navigator()
    classes = student_service.fetch_dashboard(g.access_token)
    _, _, chapter = resolve_selection(classes, navigator)
    if chapter is None:
        raise NavigationError("Chapter not selected. Please navigate properly through the interface.")
    content = next((c for c in approved_content(chapter) if str(c.get("id")) == str(content_id)), None)
    if content is None:
        raise AppException(CONTENT_NOT_FOUND_MESSAGE, AppException.NOT_FOUND)
    return chapter, content


@students_bp.route('/student/content/<content_id>/view', methods=['POST'])
@APIRoute.standard(role="student")
def view_content(content_id):
    """
    Abre un contenido. Los videos devuelven la lista de reproducción del capítulo
    (solo videos aprobados); los documentos, la URL resuelta del archivo.
    """
    chapter, content = _selected_content(content_id)

    if content.get("contentType") == "video":
        student_service.track_progress(g.access_token, content["id"], "start_viewing")
        playlist = build_playlist(chapter, content["id"])
        if not playlist["playlist"]:
            raise AppException("No approved videos found in this chapter.", AppException.NOT_FOUND)
        return APIRoute.success(data={"player": playlist})

    student_service.track_progress(g.access_token, content["id"], "view_document")
    return APIRoute.success(data={"document": student_service.view_document(content)})


@students_bp.route('/student/content/<content_id>/download', methods=['POST'])
@APIRoute.standard(role="student")
def download_content(content_id):
    """Descarga el archivo con el nombre derivado del título"""
    _, content = _selected_content(content_id)
    student_service.track_progress(g.access_token, content["id"], "download_document")
    downloaded, filename = student_service.download(
        g.access_token, content, current_app.config["MAX_DOWNLOAD_BYTES"]
    )
    return send_file(BytesIO(downloaded.content), mimetype=downloaded.content_type,
                     as_attachment=True, download_name=filename)
