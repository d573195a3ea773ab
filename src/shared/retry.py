"""
Ejecución de operaciones contra la API con reintentos y backoff exponencial.

Un intento fallido se clasifica con la función `classify` que recibe el
llamador (ver src.shared.error_handling). Si el error no es reintentable se
devuelve de inmediato; si lo es, se espera base_delay * 2^(n-1) segundos
antes del siguiente intento.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from src.shared.error_handling import ErrorClassification
from src.shared.logging import log_info, log_warning


class RetryStatus(Enum):
    SUCCESS = "success"
    RETRYABLE_FAILURE = "retryable_failure"
    TERMINAL_FAILURE = "terminal_failure"


@dataclass
class RetryResult:
    """Resultado etiquetado de una operación con reintentos."""
    status: RetryStatus
    value: Any = None
    message: Optional[str] = None
    error: Optional[Exception] = None
    attempts: int = 0
    classification: Optional[ErrorClassification] = None

    @property
    def ok(self) -> bool:
        return self.status == RetryStatus.SUCCESS


class RetryExecutor:
    """
    Ejecutor de reintentos. No guarda estado entre llamadas: cada `execute`
    empieza con el contador de intentos en cero.
    """

    def __init__(self, max_attempts: int = 3, base_delay: float = 1.0, sleep: Callable[[float], None] = time.sleep):
        self.max_attempts = max(1, int(max_attempts))
        self.base_delay = base_delay
        self.sleep = sleep

    @classmethod
    def from_config(cls, config) -> "RetryExecutor":
        """Crea un ejecutor a partir de la configuración de la aplicación"""
        return cls(
            max_attempts=config.get("RETRY_MAX_ATTEMPTS", 3),
            base_delay=config.get("RETRY_BASE_DELAY", 1.0),
        )

    def delay_for(self, attempt: int) -> float:
        """Espera tras el intento número `attempt` (1, 2, 4... veces base_delay)"""
        return self.base_delay * (2 ** (attempt - 1))

    def execute(self, operation: Callable[[], Any], operation_name: str,
                classify: Callable[[Exception], ErrorClassification]) -> RetryResult:
        """
        Ejecuta `operation` hasta max_attempts veces.

        Args:
            operation: Función sin argumentos que realiza la llamada
            operation_name: Nombre de la operación, para los logs
            classify: Clasificador de errores (reintentable + mensaje)

        Returns:
            RetryResult: SUCCESS con el valor, o un fallo con el mensaje para el usuario
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                value = operation()
                if attempt > 1:
                    log_info(f"{operation_name} completado en el intento {attempt}", "retry")
                return RetryResult(RetryStatus.SUCCESS, value=value, attempts=attempt)
            except Exception as e:
                classification = classify(e)
                log_warning(f"{operation_name} falló (intento {attempt}/{self.max_attempts}): {e}", "retry")

                if not classification.retryable:
                    return RetryResult(RetryStatus.TERMINAL_FAILURE, message=classification.message,
                                       error=e, attempts=attempt, classification=classification)

                if attempt >= self.max_attempts:
                    return RetryResult(RetryStatus.RETRYABLE_FAILURE, message=classification.message,
                                       error=e, attempts=attempt, classification=classification)

                delay = self.delay_for(attempt)
                if delay > 0:
                    self.sleep(delay)
