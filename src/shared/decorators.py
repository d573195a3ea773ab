from functools import wraps
from flask import request, jsonify, current_app, redirect, g
from werkzeug.exceptions import HTTPException
from src.shared.constants import LOGIN_ROUTES, normalize_role
from src.shared.exceptions import AppException, ApiError
from src.shared.error_handling import ErrorKind
from src.shared.session import get_session_context
import logging

RELOAD_HINT = "Something went wrong. Please reload the page and try again."


def login_redirect(role: str, error: str = None):
    """Redirección a la página de login del rol, con un código de error opcional"""
    target = LOGIN_ROUTES.get(role, "/")
    if error:
        target = f"{target}?error={error}"
    return redirect(target)


def force_logout(role: str, error: str = "session_expired"):
    """Limpia las claves del rol y redirige a su login"""
    get_session_context().for_role(role).clear()
    return login_redirect(role, error)


def handle_errors(f):
    """Decorador para manejar excepciones en las rutas"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ApiError as e:
            role = getattr(g, "session_role", None)
            if e.kind == ErrorKind.AUTHENTICATION and role:
                current_app.logger.warning(f"Sesión de {role} expirada en {request.path}; se cierra la sesión")
                return force_logout(role)
            response = {
                "success": False,
                "error": e.__class__.__name__,
                "message": str(e.message),
                "kind": e.kind
            }
            if e.details:
                response["details"] = e.details
            return jsonify(response), e.code
        except AppException as e:
            response = {
                "success": False,
                "error": e.__class__.__name__,
                "message": str(e.message)
            }
            # Incluir detalles si existen
            if e.details:
                response["details"] = e.details
            return jsonify(response), e.code
        except HTTPException:
            raise
        except Exception as e:
            current_app.logger.exception(f"Error inesperado: {str(e)}")
            return jsonify({
                "success": False,
                "error": "ERROR_SERVIDOR",
                "message": RELOAD_HINT,
                "recovery": "reload"
            }), 500
    return decorated_function


def role_required(role):
    """
    Decorador que exige una sesión válida del rol indicado.

    Sin usuario o sin token se redirige al login del rol sin llamar a la API.
    Si el usuario almacenado no se puede leer, o el token ya expiró, se limpian
    las claves del rol antes de redirigir.
    """
    role = normalize_role(role)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            logger = logging.getLogger(__name__)
            role_session = get_session_context().for_role(role)

            if not role_session.is_present:
                logger.info(f"Role_required: sin sesión de {role} para {request.path}")
                return login_redirect(role)

            try:
                user = role_session.user
            except ValueError:
                logger.warning(f"Role_required: usuario de {role} ilegible; se limpia la sesión")
                role_session.clear()
                return login_redirect(role)

            user_role = normalize_role(user.get("role"))
            # El panel de administración exige el rol explícito
            if (role == "admin" and user_role != "admin") or (user_role and user_role != role):
                logger.warning(f"Role_required: rol {user_role} sin acceso a {request.path}")
                return login_redirect(role, "access_denied")

            if role_session.token_expired:
                logger.info(f"Role_required: token de {role} expirado")
                return force_logout(role)

            g.session_role = role
            g.current_user = user
            g.access_token = role_session.access_token
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def get_form_data() -> dict:
    """Cuerpo de la petición como diccionario, aceptando JSON o formulario"""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def validate_form(required_fields=None, message: str = "Please fill in all fields"):
    """Decorador para validar el cuerpo (JSON o formulario) de las solicitudes"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            data = get_form_data()

            if required_fields:
                missing_fields = [field for field in required_fields if not str(data.get(field) or "").strip()]
                if missing_fields:
                    return jsonify({
                        "success": False,
                        "error": "CAMPOS_FALTANTES",
                        "message": message,
                        "details": {"missing": missing_fields}
                    }), 400

            g.form_data = data
            return f(*args, **kwargs)
        return decorated_function
    return decorator
