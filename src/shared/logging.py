import logging
from flask import current_app, has_app_context

def get_logger(name: str = None) -> logging.Logger:
    """
    Obtiene un logger para el módulo especificado.
    Dentro de un contexto de Flask se usa un hijo del logger de la aplicación,
    de modo que el nombre del módulo aparece en cada línea.

    Args:
        name: Nombre del módulo o servicio que solicita el logger

    Returns:
        logging.Logger: Logger configurado
    """
    if has_app_context():
        if name:
            return current_app.logger.getChild(name)
        return current_app.logger
    return logging.getLogger(name)

def log_error(message: str, error: Exception = None, module: str = None):
    """
    Registra un mensaje de error en el log.

    Args:
        message: Mensaje descriptivo del error
        error: Excepción que causó el error (opcional)
        module: Nombre del módulo donde ocurrió el error (opcional)
    """
    logger = get_logger(module)
    if error:
        logger.error(f"{message}: {str(error)}")
    else:
        logger.error(message)

def log_info(message: str, module: str = None):
    """Registra un mensaje informativo en el log."""
    get_logger(module).info(message)

def log_warning(message: str, module: str = None):
    """Registra un mensaje de advertencia en el log."""
    get_logger(module).warning(message)

def log_debug(message: str, module: str = None):
    """Registra un mensaje de depuración en el log."""
    get_logger(module).debug(message)

def log_api_call(method: str, path: str, status=None, elapsed: float = None, module: str = "api_client"):
    """
    Registra una llamada a la API de la plataforma.

    Args:
        method: Método HTTP
        path: Ruta relativa a la URL base
        status: Código de estado recibido, o None si no hubo respuesta
        elapsed: Duración de la llamada en segundos
    """
    duration = f" ({elapsed:.2f}s)" if elapsed is not None else ""
    if status is None:
        get_logger(module).warning(f"API {method} {path} sin respuesta{duration}")
    elif status >= 400:
        get_logger(module).warning(f"API {method} {path} - Status: {status}{duration}")
    else:
        get_logger(module).debug(f"API {method} {path} - Status: {status}{duration}")
