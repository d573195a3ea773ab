from src.shared.exceptions import ApiError
from src.shared.logging import log_warning
from src.shared.standardization import BaseService

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"


class HealthService(BaseService):

    def check_database(self) -> str:
        """Estado de la base de datos de la plataforma; cualquier fallo cuenta como caída"""
        try:
            self.api.get("/api/health/database")
        except ApiError as e:
            log_warning(f"Comprobación de la base de datos fallida: {e.message}", "health.services")
            return UNHEALTHY
        return HEALTHY
