from flask import request, abort

from .services import AuthService
from src.shared.constants import ROLES, DASHBOARD_ROUTES, ENTRY_POINTS, LOGIN_ROUTES, normalize_role
from src.shared.decorators import get_form_data
from src.shared.error_handling import ErrorKind, describe_portal_login_failure
from src.shared.exceptions import ApiError, AppException
from src.shared.limiter import limiter, auth_limit
from src.shared.logging import log_info, log_warning
from src.shared.session import get_session_context
from src.shared.standardization import APIBlueprint, APIRoute, ErrorCodes
from src.shared.validators import (
    validate_login_form, validate_portal_login_form, signup_errors, raise_if_invalid,
    validate_forgot_password_form, validate_reset_password_form
)

auth_bp = APIBlueprint('auth', __name__)
auth_service = AuthService()

# Mensajes asociados al parámetro ?error= de las redirecciones al login
REDIRECT_MESSAGES = {
    "session_expired": "Your session has expired. Please log in again.",
    "access_denied": "Access denied. Please sign in with an account for this portal."
}

CONNECTION_TITLE = "Connection Error"


def _navigation_state_key(role: str) -> str:
    return f"{role}Navigation"


def _start_session(role: str, payload):
    context = get_session_context()
    context.for_role(role).store(payload.user, payload.accessToken, payload.refreshToken)
    context.drop_state(_navigation_state_key(role))


@auth_bp.route('/auth/<portal>', methods=['GET'])
@APIRoute.standard()
def login_page(portal):
    """Estado de la página de login de cada portal"""
    roles = {"login": "student", "teacher-login": "teacher", "admin-login": "admin", "signup": "student"}
    if portal not in roles:
        abort(404)
    error = request.args.get('error')
    return APIRoute.success(data={
        "portal": roles[portal],
        "form": "signup" if portal == "signup" else "login",
        "error": REDIRECT_MESSAGES.get(error) if error else None
    })


@auth_bp.route('/auth/login', methods=['POST'])
@limiter.limit(auth_limit, methods=['POST'])
@APIRoute.standard()
def student_login():
    """Login de estudiante. Redirige al panel del rol devuelto por la API."""
    data = get_form_data()
    email, password = data.get('email'), data.get('password')
    validate_login_form(email, password)

    payload = auth_service.login_student(email, password)
    role = normalize_role(payload.user.get('role'))
    if role not in (ROLES["STUDENT"], ROLES["TEACHER"]):
        log_warning(f"Login con rol no soportado en el portal de estudiantes: {role}", "auth.routes")
        raise AppException("Unknown user role. Please contact support.", AppException.FORBIDDEN)

    _start_session(role, payload)
    return APIRoute.redirect_to(DASHBOARD_ROUTES[role])


@auth_bp.route('/auth/signup', methods=['POST'])
@limiter.limit(auth_limit, methods=['POST'])
@APIRoute.standard()
def student_signup():
    """Registro de estudiante; la cuenta queda con sesión iniciada"""
    data = get_form_data()
    raise_if_invalid(signup_errors(data), "Please fix the validation errors below.")

    payload = auth_service.register_student(data)
    _start_session(ROLES["STUDENT"], payload)
    return APIRoute.redirect_to(DASHBOARD_ROUTES["student"])


@auth_bp.route('/auth/teacher-login', methods=['POST'])
@limiter.limit(auth_limit, methods=['POST'])
@APIRoute.standard()
def teacher_login():
    data = get_form_data()
    validate_portal_login_form(data.get('email'), data.get('password'))
    try:
        payload = auth_service.portal_login("teacher", data['email'], data['password'])
    except ApiError as e:
        if e.kind in (ErrorKind.NETWORK, ErrorKind.TIMEOUT):
            return APIRoute.error(
                ErrorCodes.UPSTREAM_ERROR,
                "Unable to reach the server. Please check your internet connection and try again.",
                {"title": CONNECTION_TITLE}, e.code
            )
        title, description = describe_portal_login_failure(e.message)
        log_warning(f"Login de profesor rechazado: {title}", "auth.routes")
        return APIRoute.error(ErrorCodes.AUTHENTICATION_ERROR, description, {"title": title}, 401)

    _start_session("teacher", payload)
    log_info(f"Profesor autenticado: {payload.user.get('email')}", "auth.routes")
    return APIRoute.redirect_to(DASHBOARD_ROUTES["teacher"])


@auth_bp.route('/auth/admin-login', methods=['POST'])
@limiter.limit(auth_limit, methods=['POST'])
@APIRoute.standard()
def admin_login():
    data = get_form_data()
    validate_portal_login_form(data.get('email'), data.get('password'))
    try:
        payload = auth_service.portal_login("admin", data['email'], data['password'])
    except ApiError as e:
        if e.kind in (ErrorKind.NETWORK, ErrorKind.TIMEOUT):
            return APIRoute.error(ErrorCodes.UPSTREAM_ERROR, "Connection error. Please try again.", status_code=e.code)
        return APIRoute.error(ErrorCodes.AUTHENTICATION_ERROR, e.message or "Login failed", status_code=401)

    _start_session("admin", payload)
    return APIRoute.redirect_to(DASHBOARD_ROUTES["admin"])


def _recovery_role(role: str) -> str:
    role = normalize_role(role)
    if role not in ROLES.values():
        abort(404)
    return role


@auth_bp.route('/auth/<role>/forgot-password', methods=['POST'])
@limiter.limit(auth_limit, methods=['POST'])
@APIRoute.standard()
def forgot_password(role):
    """Envía un código OTP al correo indicado"""
    role = _recovery_role(role)
    data = get_form_data()
    validate_forgot_password_form(data.get('email'))
    try:
        auth_service.request_password_reset(role, data['email'])
    except ApiError as e:
        if e.kind in (ErrorKind.NETWORK, ErrorKind.TIMEOUT):
            return APIRoute.error(ErrorCodes.UPSTREAM_ERROR, "Unable to send OTP at this time. Please try again later.",
                                  {"title": CONNECTION_TITLE}, e.code)
        return APIRoute.error(ErrorCodes.VALIDATION_ERROR, e.message, {"title": "Unable to Send OTP"}, e.code)
    return APIRoute.success(message="Please check your email for the verification code")


@auth_bp.route('/auth/<role>/reset-password', methods=['POST'])
@limiter.limit(auth_limit, methods=['POST'])
@APIRoute.standard()
def reset_password(role):
    """Restablece la contraseña con el código OTP"""
    role = _recovery_role(role)
    data = get_form_data()
    validate_reset_password_form(role, data)
    try:
        auth_service.reset_password(role, data['email'], data['otp'], data['newPassword'])
    except ApiError as e:
        if e.kind in (ErrorKind.NETWORK, ErrorKind.TIMEOUT):
            return APIRoute.error(ErrorCodes.UPSTREAM_ERROR, "Unable to reset password at this time. Please try again later.",
                                  {"title": CONNECTION_TITLE}, e.code)
        return APIRoute.error(ErrorCodes.VALIDATION_ERROR, e.message, {"title": "Password Reset Failed"}, e.code)
    return APIRoute.success(data={"login": LOGIN_ROUTES[role]}, message="You can now sign in with your new password")


@auth_bp.route('/<role>/logout', methods=['POST'])
@APIRoute.standard()
def logout(role):
    """Cierra la sesión del rol: borra sus tres claves y vuelve a su punto de entrada"""
    role = normalize_role(role)
    if role not in ROLES.values():
        abort(404)
    context = get_session_context()
    context.for_role(role).clear()
    context.drop_state(_navigation_state_key(role))
    log_info(f"Sesión de {role} cerrada", "auth.routes")
    return APIRoute.redirect_to(ENTRY_POINTS[role])
