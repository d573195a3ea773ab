from io import BytesIO

from flask import current_app, g, send_file, abort

from .models import next_status, status_label
from .services import TeacherService, VISIBILITY_LABELS
from src.shared.constants import CLASS_LEVELS
from src.shared.decorators import get_form_data
from src.shared.exceptions import ApiError, AppException, NavigationError
from src.shared.logging import log_warning
from src.shared.navigation import DrillDownNavigator, NavigationLevel
from src.shared.session import get_session_context
from src.shared.standardization import APIBlueprint, APIRoute
from src.shared.validators import validate_named_entity_form, parse_class_level
from src.students.services import document_view

teachers_bp = APIBlueprint('teachers', __name__)
teacher_service = TeacherService()

NAVIGATION_STATE_KEY = "teacherNavigation"
CHAPTER_STATUS_KEY = "teacherChapterStatus"


def _load_navigator() -> DrillDownNavigator:
    return DrillDownNavigator.from_dict(get_session_context().get_state(NAVIGATION_STATE_KEY))


def _save_navigator(navigator: DrillDownNavigator):
    get_session_context().set_state(NAVIGATION_STATE_KEY, navigator.to_dict())


def _chapter_statuses() -> dict:
    return get_session_context().get_state(CHAPTER_STATUS_KEY) or {}


def _entity_id(entity):
    return entity.get("id") if isinstance(entity, dict) else entity


def _with_local_status(chapters):
    statuses = _chapter_statuses()
    for chapter in chapters:
        status = statuses.get(str(chapter["id"]), chapter.get("status"))
        chapter["status"] = status or "not-started"
        chapter["statusLabel"] = status_label(status)
    return chapters


def _level_items(navigator: DrillDownNavigator):
    """Elementos de la vista actual, pedidos a la API según el nivel"""
    view = navigator.current_view
    token = g.access_token
    if view == NavigationLevel.CLASSES:
        return [{"classLevel": level} for level in CLASS_LEVELS]
    if view == NavigationLevel.SUBJECTS:
        return teacher_service.fetch_level(token, "subjects", navigator.selected_class)
    if view == NavigationLevel.CHAPTERS:
        return _with_local_status(teacher_service.fetch_level(token, "chapters", _entity_id(navigator.selected_subject)))
    return teacher_service.fetch_level(token, "content", _entity_id(navigator.selected_chapter))


def _dashboard_response(navigator: DrillDownNavigator, message: str = None):
    items = _level_items(navigator)
    _save_navigator(navigator)
    return APIRoute.success(data={
        "user": g.current_user,
        "navigation": navigator.to_dict(),
        "items": navigator.filter_items(items),
    }, message=message)


def _find(items, item_id) -> dict:
    item = next((i for i in items if str(i.get("id")) == str(item_id)), None)
    if item is None:
        raise AppException("Content not found. It may have been removed.", AppException.NOT_FOUND)
    return item


@teachers_bp.route('/teacher/dashboard', methods=['GET'])
@APIRoute.standard(role="teacher")
def dashboard():
    return _dashboard_response(_load_navigator())


@teachers_bp.route('/teacher/dashboard/select', methods=['POST'])
@APIRoute.standard(role="teacher", required_fields=['level', 'id'])
def select():
    """
    Avanza un nivel. Para materias y capítulos se guarda {id, name}, que el
    panel usa como ruta de navegación.
    """
    navigator = _load_navigator()
    level = g.form_data['level']
    if level == NavigationLevel.CLASSES.value:
        class_level = parse_class_level(g.form_data['id'])
        if class_level is None:
            raise NavigationError("Invalid class level")
        navigator.select(level, class_level)
    else:
        items = _level_items(navigator)
        if level != navigator.current_view.value:
            raise NavigationError(f"Cannot select {level} from the {navigator.current_view.value} view")
        item = _find(items, g.form_data['id'])
        navigator.select(level, {"id": item["id"], "name": item.get("name") or item.get("title")})
    return _dashboard_response(navigator)


@teachers_bp.route('/teacher/dashboard/back', methods=['POST'])
@APIRoute.standard(role="teacher", required_fields=['level'])
def back():
    navigator = _load_navigator()
    navigator.back(g.form_data['level'])
    return _dashboard_response(navigator)


@teachers_bp.route('/teacher/dashboard/search', methods=['POST'])
@APIRoute.standard(role="teacher")
def search():
    navigator = _load_navigator()
    navigator.search(get_form_data().get('term'))
    return _dashboard_response(navigator)


@teachers_bp.route('/teacher/subjects', methods=['POST'])
@APIRoute.standard(role="teacher")
def create_subject():
    """Crea una materia en la clase seleccionada"""
    data = get_form_data()
    validate_named_entity_form(data, "Subject")
    navigator = _load_navigator()
    class_level = parse_class_level(data.get('classLevel')) or navigator.selected_class
    if class_level is None:
        raise NavigationError("Please select a class first")
    teacher_service.create_subject(g.access_token, data['name'].strip(), class_level,
                                   (data.get('description') or '').strip())
    if navigator.selected_class != class_level:
        navigator.select_class(class_level)
    return _dashboard_response(navigator, "Subject created successfully!")


@teachers_bp.route('/teacher/chapters', methods=['POST'])
@APIRoute.standard(role="teacher")
def create_chapter():
    """Crea un capítulo en la materia seleccionada"""
    data = get_form_data()
    validate_named_entity_form(data, "Chapter")
    navigator = _load_navigator()
    if navigator.selected_subject is None:
        raise NavigationError("Please select a subject first")
    name = data['name'].strip()
    teacher_service.create_chapter(g.access_token, name, _entity_id(navigator.selected_subject),
                                   (data.get('description') or '').strip())
    return _dashboard_response(navigator, f"{name} has been added successfully")


@teachers_bp.route('/teacher/<level>/<item_id>/visibility', methods=['POST'])
@APIRoute.standard(role="teacher")
def toggle_visibility(level, item_id):
    """Muestra u oculta a los estudiantes una materia, capítulo o contenido de la vista actual"""
    if level not in VISIBILITY_LABELS:
        abort(404)
    navigator = _load_navigator()
    if navigator.current_view.value != level:
        raise NavigationError(f"This item is not in the current {level} view")
    item = _find(_level_items(navigator), item_id)
    visible = teacher_service.toggle_visibility(g.access_token, level, item)
    label = VISIBILITY_LABELS[level]
    return APIRoute.success(
        data={"id": item["id"], "isVisible": visible},
        message=f"{label} is now {'visible to' if visible else 'hidden from'} students"
    )


@teachers_bp.route('/teacher/chapters/<chapter_id>/status', methods=['POST'])
@APIRoute.standard(role="teacher")
def cycle_chapter_status(chapter_id):
    """Avanza el estado del capítulo; se guarda solo en la sesión del profesor"""
    navigator = _load_navigator()
    if navigator.current_view != NavigationLevel.CHAPTERS:
        raise NavigationError("Select a subject to manage its chapters")
    chapter = _find(_level_items(navigator), chapter_id)
    status = next_status(chapter.get("status"))
    statuses = dict(_chapter_statuses())
    statuses[str(chapter["id"])] = status
    get_session_context().set_state(CHAPTER_STATUS_KEY, statuses)
    return APIRoute.success(data={"id": chapter["id"], "status": status, "statusLabel": status_label(status)})


def _current_content(content_id):
    navigator = _load_navigator()
    if navigator.current_view != NavigationLevel.CONTENT:
        raise NavigationError("Chapter not selected. Please navigate properly through the interface.")
    return _find(_level_items(navigator), content_id)


@teachers_bp.route('/teacher/content/<content_id>/view', methods=['POST'])
@APIRoute.standard(role="teacher")
def view_content(content_id):
    content = _current_content(content_id)
    return APIRoute.success(data={"document": document_view(teacher_service.api.base_url, content)})


@teachers_bp.route('/teacher/content/<content_id>/download', methods=['POST'])
@APIRoute.standard(role="teacher")
def download_content(content_id):
    """Descarga por el proxy de la API; si falla, redirige a la URL directa del archivo"""
    content = _current_content(content_id)
    try:
        downloaded, filename = teacher_service.download(
            g.access_token, content, current_app.config["MAX_DOWNLOAD_BYTES"]
        )
    except ApiError as e:
        fallback = teacher_service.fallback_url(content)
        if not fallback:
            raise
        log_warning(f"Descarga por proxy fallida ({e.message}); se usa la URL directa", "teachers.routes")
        return APIRoute.redirect_to(fallback)
    return send_file(BytesIO(downloaded.content), mimetype=downloaded.content_type,
                     as_attachment=True, download_name=filename)
