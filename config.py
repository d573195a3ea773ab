import os
import sys
import logging
from dotenv import load_dotenv

load_dotenv()

# Configurar logger
logger = logging.getLogger(__name__)

# Variables de entorno requeridas para producción
REQUIRED_ENV_VARS = ['PLATFORM_API_URL', 'SECRET_KEY']

def validate_env_vars():
    """
    Valida que las variables de entorno requeridas estén configuradas.
    En producción, el portal no debería iniciarse si faltan variables críticas.
    """
    # Solo validar en producción
    if os.getenv('FLASK_ENV') != 'production':
        return True

    missing_vars = [var for var in REQUIRED_ENV_VARS if not os.getenv(var)]
    if missing_vars:
        logger.error(f"Faltan variables de entorno requeridas: {', '.join(missing_vars)}")
        return False
    return True

class Config:
    """Configuración base del portal"""
    # API de la plataforma (fuente de verdad de usuarios y contenido)
    PLATFORM_API_URL = os.getenv('PLATFORM_API_URL', 'http://localhost:5000').rstrip('/')
    # Canal de eventos de progreso de subida (Socket.IO)
    SOCKET_URL = os.getenv('SOCKET_URL', PLATFORM_API_URL)

    # Sesión (reemplaza el almacenamiento local del navegador)
    SECRET_KEY = os.getenv('SECRET_KEY', 'develop-secret-key')
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Tiempos de espera por llamada, en segundos
    REQUEST_TIMEOUT = int(os.getenv('REQUEST_TIMEOUT', 30))
    DOWNLOAD_TIMEOUT = int(os.getenv('DOWNLOAD_TIMEOUT', 60))
    UPLOAD_TIMEOUT = int(os.getenv('UPLOAD_TIMEOUT', 600))

    # Reintentos con backoff exponencial: 1s, 2s, 4s
    RETRY_MAX_ATTEMPTS = int(os.getenv('RETRY_MAX_ATTEMPTS', 3))
    RETRY_BASE_DELAY = float(os.getenv('RETRY_BASE_DELAY', 1.0))

    # Límites de archivos
    MAX_DOWNLOAD_BYTES = int(os.getenv('MAX_DOWNLOAD_MB', 500)) * 1024 * 1024
    COMPRESSION_THRESHOLD_MB = int(os.getenv('COMPRESSION_THRESHOLD_MB', 100))
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_UPLOAD_MB', 2048)) * 1024 * 1024

    # Servidor
    DEBUG = os.getenv('FLASK_DEBUG', '0') == '1'
    PORT = int(os.getenv('PORT', 3000))

    # CORS
    # Formato de CORS_ORIGINS: "http://ejemplo1.com,http://ejemplo2.com"
    CORS_ORIGINS = os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')

    # Límite de intentos en los formularios de credenciales
    RATELIMIT_ENABLED = os.getenv('RATELIMIT_ENABLED', '1') == '1'
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    AUTH_RATE_LIMIT = os.getenv('AUTH_RATE_LIMIT', '20 per minute')

    # Logging
    # Valores posibles: 'none', 'basic', 'detailed'
    API_LOGGING = os.getenv('API_LOGGING', 'basic')

    @classmethod
    def validate(cls):
        """Valida que la configuración sea correcta"""
        if not os.getenv('PLATFORM_API_URL'):
            logger.warning(f"PLATFORM_API_URL no está configurado. Se usará {cls.PLATFORM_API_URL}.")
        if cls.SECRET_KEY == 'develop-secret-key':
            logger.warning("SECRET_KEY tiene el valor por defecto. Esto es inseguro en producción.")


class DevelopmentConfig(Config):
    """Configuración para entorno de desarrollo"""
    DEBUG = True


class ProductionConfig(Config):
    """Configuración para entorno de producción"""
    DEBUG = False
    SESSION_COOKIE_SECURE = True

    @classmethod
    def validate(cls):
        super().validate()
        if not validate_env_vars():
            logger.critical("Faltan variables de entorno críticas en entorno de producción")
            # En producción, fallar si faltan variables críticas
            if os.getenv('ENFORCE_ENV_VALIDATION', '0') == '1':
                sys.exit(1)


class TestingConfig(Config):
    """Configuración para entorno de pruebas"""
    TESTING = True
    DEBUG = True
    PLATFORM_API_URL = 'http://api.test'
    SOCKET_URL = 'http://api.test'
    SECRET_KEY = 'testing-secret-key'
    RETRY_BASE_DELAY = 0
    RATELIMIT_ENABLED = False
    API_LOGGING = 'none'


# Diccionario para seleccionar la configuración según el entorno
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}

# Obtener la configuración activa
env = os.getenv('FLASK_ENV', 'development')
active_config = config_by_name.get(env, DevelopmentConfig)

# Validar configuración
active_config.validate()
