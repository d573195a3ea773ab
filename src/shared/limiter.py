from flask import current_app
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Inicializar limiter
# Usamos get_remote_address para identificar al cliente por IP
# El almacenamiento se toma de RATELIMIT_STORAGE_URI al llamar a init_app
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["2000 per day", "300 per hour"]
)


def auth_limit():
    """Límite de los formularios de credenciales (login, registro, recuperación)"""
    return current_app.config.get("AUTH_RATE_LIMIT", "20 per minute")
