"""
Estandarización del portal

Este módulo unifica:
1. Estandarización de rutas (APIBlueprint, APIRoute)
2. Estandarización de servicios (BaseService: cliente de la API + reintentos)
3. Códigos de error estandarizados (ErrorCodes)
"""

from flask import jsonify, Blueprint, redirect, current_app, g
from src.shared.api_client import get_api_client, PlatformApiClient
from src.shared.decorators import handle_errors, role_required, validate_form
from src.shared.exceptions import AppException, ApiError
from src.shared.retry import RetryExecutor, RetryResult, RetryStatus
from src.shared.utils import ensure_json_serializable
from typing import List, Any, Callable, Optional

#-------------------------------------------------------
# ESTANDARIZACIÓN DE RUTAS
#-------------------------------------------------------

class APIBlueprint(Blueprint):
    """Blueprint de las rutas del portal"""

    def __init__(self, name, import_name, **kwargs):
        super().__init__(name, import_name, **kwargs)


class APIRoute:
    """
    Clase de utilidad para estandarizar rutas y respuestas.
    """

    @staticmethod
    def standard(role: str = None, required_fields: List[str] = None, message: str = None):
        """
        Decorador compuesto que aplica los decoradores estándar del portal.

        Args:
            role: Si se indica, la ruta exige una sesión válida de ese rol
            required_fields: Campos obligatorios del cuerpo (JSON o formulario)
            message: Mensaje cuando faltan campos obligatorios
        """
        decorators = [handle_errors]

        # La sesión se comprueba antes de leer el cuerpo
        if role:
            decorators.append(role_required(role))

        if required_fields:
            if message:
                decorators.append(validate_form(required_fields, message))
            else:
                decorators.append(validate_form(required_fields))

        def decorator(f):
            for decorator in reversed(decorators):
                f = decorator(f)
            return f

        return decorator

    @staticmethod
    def success(data: Any = None, message: str = None, status_code: int = 200) -> tuple:
        """
        Crea una respuesta exitosa estandarizada.

        Returns:
            Tupla (response, status_code) para retornar desde una ruta Flask
        """
        response = {"success": True}

        if data is not None:
            response["data"] = ensure_json_serializable(data)

        if message:
            response["message"] = message

        return jsonify(response), status_code

    @staticmethod
    def error(error_code: str, message: str, details: dict = None, status_code: int = 400) -> tuple:
        """
        Crea una respuesta de error estandarizada.

        Args:
            error_code: Código de error único (ver ErrorCodes)
            message: Mensaje para el usuario
            details: Detalles adicionales del error (opcional)
            status_code: Código de estado HTTP (por defecto 400)
        """
        response = {
            "success": False,
            "error": error_code,
            "message": message
        }

        if details:
            response["details"] = details

        return jsonify(response), status_code

    @staticmethod
    def from_app_exception(exception: AppException) -> tuple:
        response = {
            "success": False,
            "error": exception.__class__.__name__,
            "message": exception.message
        }

        if exception.details:
            response["details"] = exception.details

        return jsonify(response), exception.code

    @staticmethod
    def redirect_to(location: str, code: int = 302):
        """Redirección del navegador (equivalente a cambiar de página)"""
        return redirect(location, code=code)

#-------------------------------------------------------
# ESTANDARIZACIÓN DE SERVICIOS
#-------------------------------------------------------

class BaseService:
    """
    Clase base de los servicios del portal.

    Los servicios no guardan estado propio: la fuente de verdad es la API de
    la plataforma y el token llega en cada llamada.
    """

    def __init__(self, api_client: PlatformApiClient = None, retry_executor: RetryExecutor = None):
        self._api_client = api_client
        self._retry_executor = retry_executor

    @property
    def api(self) -> PlatformApiClient:
        return self._api_client or get_api_client()

    @property
    def retry(self) -> RetryExecutor:
        return self._retry_executor or RetryExecutor.from_config(current_app.config)

    @staticmethod
    def current_token() -> Optional[str]:
        return getattr(g, "access_token", None)

    def run_with_retry(self, operation: Callable[[], Any], operation_name: str, classify) -> Any:
        """
        Ejecuta `operation` con reintentos y devuelve su valor.

        Raises:
            ApiError: Con el mensaje clasificado si todos los intentos fallan
        """
        result = self.retry.execute(operation, operation_name, classify)
        if result.ok:
            return result.value
        raise error_from_result(result)


def error_from_result(result: RetryResult) -> ApiError:
    """Convierte un resultado fallido en la ApiError que se muestra al usuario"""
    original = result.error
    classification = result.classification
    details = {
        "attempts": result.attempts,
        "retryable": result.status == RetryStatus.RETRYABLE_FAILURE,
        "connectionError": classification.connection_error,
    }
    if classification.security_message:
        details["securityNotice"] = classification.security_message
    return ApiError(
        classification.kind,
        result.message,
        status=getattr(original, "status", None),
        error_code=getattr(original, "error_code", None),
        details=details,
    )

#-------------------------------------------------------
# CÓDIGOS DE ERROR
#-------------------------------------------------------

class ErrorCodes:
    """
    Códigos de error estandarizados del portal.
    """

    # Errores de validación
    MISSING_FIELDS = "CAMPOS_FALTANTES"             # 400 - Faltan campos requeridos
    VALIDATION_ERROR = "ERROR_VALIDACION"           # 400 - Formulario inválido
    NAVIGATION_ERROR = "ERROR_NAVEGACION"           # 400 - Transición de navegación inválida

    # Errores de autenticación y autorización
    AUTHENTICATION_ERROR = "ERROR_AUTENTICACION"    # 401 - Credenciales o sesión inválidas
    ACCESS_DENIED = "ACCESO_DENEGADO"               # 403 - Sin acceso al recurso

    # Errores de recursos
    RESOURCE_NOT_FOUND = "RECURSO_NO_ENCONTRADO"    # 404 - Recurso o ruta inexistente
    UPLOAD_NOT_FOUND = "SUBIDA_NO_ENCONTRADA"       # 404 - Sin progreso para la subida

    # Errores de la API de la plataforma
    UPSTREAM_ERROR = "ERROR_API"                    # 502 - La API respondió con error o no respondió
    DOWNLOAD_ERROR = "ERROR_DESCARGA"               # 502 - Descarga fallida

    # Errores de servidor
    SERVER_ERROR = "ERROR_SERVIDOR"                 # 500 - Error interno del portal
