"""
Clasificación de errores de la API de la plataforma.

Dos etapas:
1. Los perfiles de estado (StatusProfile) traducen una respuesta HTTP fallida
   en un ApiError con un mensaje legible. Cada pantalla usa su propio perfil
   porque el mismo 401 significa "credenciales inválidas" en el login y
   "sesión expirada" en un panel.
2. Los clasificadores deciden, a partir del texto del error, si conviene
   reintentar y qué mensaje final se muestra al usuario.

Ejemplo:
    classify = partial(classify_dashboard_error, operation="load subjects")
    result = executor.execute(fetch, "load subjects", classify)
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from src.shared.constants import DATABASE_ERROR_CODES


class ErrorKind:
    """Taxonomía de errores del lado del portal."""
    NETWORK = "network"
    TIMEOUT = "timeout"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    DATABASE_UNAVAILABLE = "database_unavailable"
    DATABASE_TIMEOUT = "database_timeout"
    DATABASE_ERROR = "database_error"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    UNKNOWN = "unknown"


# Mensajes para fallos sin respuesta HTTP
TIMEOUT_MESSAGE = "Request timed out. Please check your internet connection and try again."
NETWORK_MESSAGE = "Network error. Please check your internet connection and try again."

_DATABASE_MESSAGES = {
    "DATABASE_UNAVAILABLE": (ErrorKind.DATABASE_UNAVAILABLE,
                             "Database temporarily unavailable. Please try again in a few moments."),
    "DATABASE_TIMEOUT": (ErrorKind.DATABASE_TIMEOUT,
                         "Database connection timeout. Please try again."),
    "DATABASE_ERROR": (ErrorKind.DATABASE_ERROR,
                       "Database service temporarily unavailable. Please try again later."),
}


def kind_for_status(status: int) -> str:
    """Clasificación genérica de un código HTTP."""
    if status == 400:
        return ErrorKind.VALIDATION
    if status == 401:
        return ErrorKind.AUTHENTICATION
    if status == 403:
        return ErrorKind.AUTHORIZATION
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 409:
        return ErrorKind.CONFLICT
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status >= 500:
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


class StatusProfile:
    """
    Traduce códigos HTTP a mensajes para un contexto concreto.

    Args:
        name: Nombre del perfil, solo para logs
        messages: Mensaje fijo por código de estado
        server_message: Mensaje para cualquier 5xx sin entrada propia
        fallback: Plantilla para el resto de fallos; recibe {reason}
        body_message_statuses: Códigos cuyo mensaje se toma del cuerpo de la respuesta
        database_aware: Si True, un 503 con código de base de datos se subclasifica
    """

    def __init__(self, name: str, messages: Dict[int, str] = None,
                 server_message: Optional[str] = None,
                 fallback: str = "Request failed: {reason}",
                 body_message_statuses: Tuple[int, ...] = (),
                 database_aware: bool = False):
        self.name = name
        self.messages = messages or {}
        self.server_message = server_message
        self.fallback = fallback
        self.body_message_statuses = body_message_statuses
        self.database_aware = database_aware

    def describe(self, status: int, reason: str = "", body: dict = None) -> Tuple[str, str, Optional[str]]:
        """
        Devuelve (kind, mensaje, código de error del servidor) para una respuesta fallida.
        """
        body = body if isinstance(body, dict) else {}
        error_code = body.get("code")
        kind = kind_for_status(status)

        if status in self.body_message_statuses and body.get("message"):
            return kind, body["message"], error_code

        if self.database_aware and status == 503:
            if error_code in DATABASE_ERROR_CODES:
                db_kind, message = _DATABASE_MESSAGES[error_code]
                return db_kind, message, error_code
            return ErrorKind.SERVER, "Service temporarily unavailable. Please try again later.", error_code

        if status in self.messages:
            return kind, self.messages[status], error_code

        if status >= 500 and self.server_message:
            return kind, self.server_message, error_code

        if not self.messages and body.get("message"):
            return kind, body["message"], error_code

        return kind, self.fallback.format(reason=reason or status), error_code


LOGIN_PROFILE = StatusProfile(
    "login",
    messages={
        401: "Invalid credentials. Please check your email and password.",
        403: "Account access denied. Please contact support.",
        404: "User account not found. Please check your email address.",
        429: "Too many login attempts. Please wait a few minutes before trying again.",
    },
    server_message="Server error. Please try again later.",
    fallback="Authentication failed: {reason}",
    database_aware=True,
)

REGISTRATION_PROFILE = StatusProfile(
    "registration",
    messages={
        400: "Invalid registration data. Please check your information.",
        409: "Email already exists. Please use a different email address.",
        429: "Too many registration attempts. Please wait a few minutes before trying again.",
    },
    server_message="Server error. Please try again later.",
    fallback="Registration failed: {reason}",
    body_message_statuses=(400,),
)

STUDENT_PROFILE = StatusProfile(
    "student",
    messages={
        401: "Authentication expired. Please login again.",
        403: "Access denied. You do not have permission to view this content.",
        404: "Content not found. It may have been removed or you may not have access.",
        500: "Server error. Please try again later or contact support.",
    },
    server_message="Server error. Please try again later.",
)

TEACHER_PROFILE = StatusProfile(
    "teacher",
    messages={
        401: "Authentication expired. Please login again.",
        403: "Access denied. You do not have permission to perform this action.",
        404: "Content not found. It may have been removed.",
    },
    server_message="Server error. Please try again later.",
)

DOWNLOAD_PROFILE = StatusProfile(
    "download",
    messages={
        401: "Authentication expired. Please log in again.",
        403: "Access denied. You do not have permission to download this file.",
        404: "File not found. It may have been moved or deleted.",
    },
    fallback="Failed to fetch file: {reason}",
)

# Formularios simples (login de profesor/administrador, recuperación de contraseña):
# se muestra el mensaje que devuelve la API.
PLAIN_PROFILE = StatusProfile("plain")


@dataclass
class ErrorClassification:
    """Resultado de clasificar un error: si se reintenta y qué se muestra."""
    retryable: bool
    message: str
    kind: str = ErrorKind.UNKNOWN
    connection_error: bool = False
    security_message: Optional[str] = None


def _error_text(error) -> str:
    return getattr(error, "message", None) or str(error) or ""


def _error_code(error) -> Optional[str]:
    return getattr(error, "error_code", None)


def _error_kind(error) -> str:
    return getattr(error, "kind", ErrorKind.UNKNOWN)


def _transport_message(text: str, operation: str) -> Optional[Tuple[str, bool]]:
    # Devuelve (mensaje, es_error_de_conexion) para timeouts y fallos de red
    if "timed out" in text:
        return (f"Request timed out while trying to {operation}. "
                "Please check your connection and try again."), False
    if "Network error" in text or "Failed to fetch" in text:
        return (f"Network error while trying to {operation}. "
                "Please check your internet connection."), True
    return None


def classify_login_error(error, operation: str = "log in") -> ErrorClassification:
    """Clasificador del login de estudiantes."""
    text = _error_text(error)
    code = _error_code(error)
    kind = _error_kind(error)
    retryable = not any(marker in text for marker in ("Invalid credentials", "Account locked", "Too many"))

    transport = _transport_message(text, operation)
    if transport:
        message, connection = transport
        return ErrorClassification(retryable, message, kind, connection_error=connection)
    if "Database temporarily unavailable" in text or code == "DATABASE_UNAVAILABLE":
        return ErrorClassification(retryable, "Our services are temporarily unavailable. Please try again in a few moments.",
                                   kind, connection_error=True)
    if "Database connection timeout" in text or code == "DATABASE_TIMEOUT":
        return ErrorClassification(retryable, "Connection timeout. Please check your internet connection and try again.",
                                   kind, connection_error=True)
    if "Database service temporarily unavailable" in text or code == "DATABASE_ERROR":
        return ErrorClassification(retryable, "Our database service is temporarily unavailable. Please try again later.",
                                   kind, connection_error=True)
    if "Invalid credentials" in text:
        return ErrorClassification(False, "Invalid email or password. Please check your credentials and try again.",
                                   kind, security_message="Invalid login attempt detected.")
    if "Account locked" in text:
        return ErrorClassification(False, "Your account has been temporarily locked due to multiple failed login "
                                          "attempts. Please try again later.",
                                   kind, security_message="Account security measure activated.")
    if "Email not verified" in text:
        return ErrorClassification(retryable, "Please verify your email address before logging in. "
                                              "Check your email for verification link.", kind)
    if "Server error" in text:
        return ErrorClassification(retryable, f"Server error while trying to {operation}. Please try again later.", kind)
    return ErrorClassification(retryable, text or f"Failed to {operation}", kind)


def classify_signup_error(error, operation: str = "create account") -> ErrorClassification:
    """Clasificador del registro de estudiantes."""
    text = _error_text(error)
    kind = _error_kind(error)
    retryable = not any(marker in text for marker in ("Email already exists", "Too many"))

    transport = _transport_message(text, operation)
    if transport:
        message, connection = transport
        return ErrorClassification(retryable, message, kind, connection_error=connection)
    if "Email already exists" in text:
        return ErrorClassification(False, "An account with this email address already exists. "
                                          "Please use a different email or try logging in.", kind)
    if "Invalid email format" in text:
        return ErrorClassification(retryable, "Please enter a valid email address.", kind)
    if "Password too weak" in text:
        return ErrorClassification(retryable, "Password is too weak. Please choose a stronger password with at least "
                                              "8 characters, including uppercase, lowercase, and numbers.", kind)
    if "Server error" in text:
        return ErrorClassification(retryable, f"Server error while trying to {operation}. Please try again later.", kind)
    return ErrorClassification(retryable, text or f"Failed to {operation}", kind)


def classify_dashboard_error(error, operation: str, contact: str = "your teacher") -> ErrorClassification:
    """
    Clasificador de los paneles de estudiante y profesor.

    Todo se reintenta salvo la sesión expirada: la sesión del rol ya se limpió
    y un nuevo intento no puede tener éxito.
    """
    text = _error_text(error)
    kind = _error_kind(error)
    retryable = kind != ErrorKind.AUTHENTICATION and "Authentication expired" not in text

    transport = _transport_message(text, operation)
    if transport:
        message, connection = transport
        return ErrorClassification(retryable, message, kind, connection_error=connection)
    if "Authentication expired" in text:
        return ErrorClassification(False, "Your session has expired. Please log in again.", ErrorKind.AUTHENTICATION)
    if "Access denied" in text:
        return ErrorClassification(retryable, f"You don't have permission to {operation}. Please contact {contact}.", kind)
    if "not found" in text:
        return ErrorClassification(retryable, "The requested content was not found. It may have been removed.", kind)
    if "Server error" in text:
        return ErrorClassification(retryable, f"Server error while trying to {operation}. Please try again later.", kind)
    return ErrorClassification(retryable, text or f"Failed to {operation}", kind)


def describe_portal_login_failure(message: Optional[str]) -> Tuple[str, str]:
    """
    Título y descripción para un login fallido de profesor o administrador.
    """
    lowered = (message or "").lower()
    if "access denied" in lowered or "not authorized" in lowered:
        return ("Access Restricted",
                "This account is not authorized for teacher access. Please contact your administrator.")
    if "invalid" in lowered or "incorrect" in lowered:
        return "Invalid Credentials", "The email or password you entered is incorrect."
    if "not found" in lowered:
        return "Account Not Found", "No teacher account found with this email address."
    if "suspended" in lowered or "deactivated" in lowered:
        return "Account Suspended", "This account has been suspended. Please contact your administrator."
    if message:
        return "Authentication Failed", message
    return "Authentication Failed", "Please check your credentials and try again"


def describe_download_failure(error) -> Tuple[str, bool]:
    """
    Mensaje para una descarga fallida y si se permite abrir el archivo directamente.
    """
    text = _error_text(error)
    kind = _error_kind(error)
    message = "Download failed. "

    if kind == ErrorKind.TIMEOUT or "timed out" in text:
        message += "Download timed out. Please try again with a stable internet connection."
    elif kind == ErrorKind.NETWORK or "Network error" in text:
        message += "Network error. Please check your connection and try again."
    elif "too large" in text:
        message += text
    elif "Authentication" in text:
        message += "Please log in again to download files."
    elif "Access denied" in text:
        message += "You do not have permission to download this file."
    elif "not found" in text:
        message += "File not found. Please contact your teacher."
    else:
        message += "Please try viewing the file instead, or contact your teacher."

    fallback_allowed = not any(marker in text for marker in ("Authentication", "Access denied", "too large"))
    return message, fallback_allowed
