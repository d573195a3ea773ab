"""
Excepciones personalizadas para el portal.

Estas excepciones son capturadas por el decorador handle_errors en decorators.py
y convertidas automáticamente en respuestas JSON apropiadas.

Ejemplos de uso:
    # Lanzar una excepción básica
    raise AppException("Datos inválidos", 400)

    # Error devuelto por la API de la plataforma
    raise ApiError(ErrorKind.NOT_FOUND, "Content not found.", status=404)

    # Incluir detalles de validación de formulario
    raise ValidationError("Please fix the validation errors below.", {"email": "Email is required"})
"""

class AppException(Exception):
    """
    Excepción base para errores de la aplicación.

    Permite especificar un código HTTP personalizado y detalles adicionales.
    """

    # Códigos de error HTTP comunes
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    TOO_MANY_REQUESTS = 429
    INTERNAL_ERROR = 500
    BAD_GATEWAY = 502

    def __init__(self, message: str, code: int = BAD_REQUEST, details: dict = None):
        """
        Inicializa una nueva excepción de aplicación.

        Args:
            message: Mensaje descriptivo del error
            code: Código HTTP de estado (por defecto 400)
            details: Diccionario con detalles adicionales del error
        """
        self.message = message
        self.code = code
        self.details = details
        super().__init__(self.message)


class ValidationError(AppException):
    """Formulario inválido. Se detecta antes de llamar a la API."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, AppException.BAD_REQUEST, details)


class NavigationError(AppException):
    """Transición inválida en la navegación clase → materia → capítulo → contenido."""

    def __init__(self, message: str):
        super().__init__(message, AppException.BAD_REQUEST)


class ApiError(AppException):
    """
    Error al llamar a la API de la plataforma.

    El mensaje ya está redactado para el usuario; `kind` clasifica el error
    (ver src.shared.error_handling.ErrorKind) y `status` conserva el código
    HTTP de la respuesta original cuando existe.
    """

    def __init__(self, kind: str, message: str, status: int = None,
                 error_code: str = None, details: dict = None):
        self.kind = kind
        self.status = status
        self.error_code = error_code
        super().__init__(message, _portal_status(status), details)


def _portal_status(upstream_status):
    # Los fallos de red o del servidor remoto se exponen como 502
    if upstream_status is None or upstream_status >= 500:
        return AppException.BAD_GATEWAY
    return upstream_status
