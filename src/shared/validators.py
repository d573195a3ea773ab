"""
Validación de formularios del portal.

Una validación fallida bloquea el envío: la ruta lanza ValidationError antes
de llamar a la API, y handle_errors la convierte en una respuesta 400.

Ejemplos de uso:
    # Formularios con un único mensaje (login)
    validate_login_form(email, password)

    # Formularios con errores por campo (registro)
    errors = signup_errors(form)
    raise_if_invalid(errors, "Please fix the validation errors below.")
"""

import re

from src.shared.constants import CLASS_LEVELS, UPLOAD_TYPES
from src.shared.exceptions import ValidationError
from src.shared.logging import log_debug

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
OTP_PATTERN = re.compile(r"^\d{6}$")

# Longitud mínima de la nueva contraseña en el restablecimiento, por rol
RESET_PASSWORD_MIN_LENGTH = {
    "student": 6,
    "teacher": 8,
    "admin": 8
}


def _text(value) -> str:
    return str(value).strip() if value is not None else ""


def raise_if_invalid(errors: dict, message: str = None):
    """
    Lanza ValidationError si hay errores.

    Sin mensaje de resumen se usa el primer error encontrado.
    """
    if not errors:
        return
    log_debug(f"Formulario rechazado: {', '.join(errors.keys())}", "validators")
    raise ValidationError(message or next(iter(errors.values())), errors)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(_text(email)))


def validate_login_form(email, password):
    """Login de estudiante: campos completos, email con @ y contraseña de al menos 6 caracteres"""
    email, password = _text(email), password or ""
    if not email or not password:
        raise_if_invalid({"form": "Please fill in all fields"})
    if "@" not in email:
        raise_if_invalid({"email": "Please enter a valid email address"})
    if len(password) < 6:
        raise_if_invalid({"password": "Password must be at least 6 characters long"})


def validate_portal_login_form(email, password):
    """Login de profesor o administrador"""
    if not _text(email) or not password:
        raise_if_invalid({"form": "Please enter both email and password"})


def signup_errors(form: dict) -> dict:
    """
    Errores por campo del formulario de registro.

    Returns:
        dict: campo -> mensaje; vacío si el formulario es válido
    """
    errors = {}

    for field, label in (("firstName", "First name"), ("lastName", "Last name")):
        value = _text(form.get(field))
        if not value:
            errors[field] = f"{label} is required"
        elif len(value) < 2:
            errors[field] = f"{label} must be at least 2 characters"

    email = _text(form.get("email"))
    if not email:
        errors["email"] = "Email is required"
    elif not is_valid_email(email):
        errors["email"] = "Please enter a valid email address"

    password = form.get("password") or ""
    if not password:
        errors["password"] = "Password is required"
    elif len(password) < 8:
        errors["password"] = "Password must be at least 8 characters long"
    elif not (re.search(r"[a-z]", password) and re.search(r"[A-Z]", password) and re.search(r"\d", password)):
        errors["password"] = ("Password must contain at least one uppercase letter, "
                              "one lowercase letter, and one number")

    confirm = form.get("confirmPassword") or ""
    if not confirm:
        errors["confirmPassword"] = "Please confirm your password"
    elif password != confirm:
        errors["confirmPassword"] = "Passwords don't match"

    class_level = parse_class_level(form.get("classLevel"))
    if class_level is None:
        errors["classLevel"] = "Please select your class level"

    return errors


def parse_class_level(value):
    """Convierte el nivel de clase a entero; None si no es uno de los niveles soportados"""
    try:
        level = int(_text(value))
    except ValueError:
        return None
    return level if level in CLASS_LEVELS else None


def validate_forgot_password_form(email):
    if not _text(email):
        raise_if_invalid({"email": "Please enter your email address"})
    if not is_valid_email(email):
        raise_if_invalid({"email": "Please enter a valid email address"})


def validate_reset_password_form(role: str, form: dict):
    """Código OTP de 6 dígitos, contraseña nueva según el rol y confirmación"""
    otp = _text(form.get("otp"))
    password = form.get("newPassword") or ""
    confirm = form.get("confirmPassword") or ""
    min_length = RESET_PASSWORD_MIN_LENGTH.get(role, 8)

    if not _text(form.get("email")) or not otp or not password or not confirm:
        raise_if_invalid({"form": "Please fill in all fields"})
    if not OTP_PATTERN.match(otp):
        raise_if_invalid({"otp": "Verification code must be exactly 6 digits"})
    if password != confirm:
        raise_if_invalid({"confirmPassword": "Passwords Don't Match"})
    if len(password) < min_length:
        raise_if_invalid({"newPassword": f"Password must be at least {min_length} characters long"})


def validate_teacher_account_form(form: dict):
    """Alta de profesor desde el panel de administración"""
    if not all(_text(form.get(field)) for field in ("name", "email", "password", "subjects")):
        raise_if_invalid({"form": "Please fill in all fields"})
    if not is_valid_email(form.get("email")):
        raise_if_invalid({"email": "Please enter a valid email address"})


def validate_upload_form(form: dict, file_present: bool):
    """Subida de contenido: archivo, título, tipo y clase"""
    if not file_present or not all(_text(form.get(field)) for field in ("title", "type", "classLevel")):
        raise_if_invalid({"form": "Please fill in all required fields and select a file."})
    if _text(form.get("type")) not in UPLOAD_TYPES:
        raise_if_invalid({"type": f"Unsupported content type. Allowed types: {', '.join(UPLOAD_TYPES)}"})
    if parse_class_level(form.get("classLevel")) is None:
        raise_if_invalid({"classLevel": "Please select a valid class"})
    # Materia y capítulo son opcionales, pero si llegan deben ser identificadores numéricos
    for field, label in (("subjectId", "subject"), ("chapterId", "chapter")):
        value = _text(form.get(field))
        if value and not value.isdigit():
            raise_if_invalid({field: f"Please select a valid {label}"})


def validate_named_entity_form(form: dict, label: str):
    """Creación de materia o capítulo: nombre obligatorio"""
    if not _text(form.get("name")):
        raise_if_invalid({"name": f"{label} name is required"})
