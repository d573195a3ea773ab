from flask import Flask, jsonify, request, session, g
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from config import active_config, validate_env_vars
import logging
import os
import sys
from src.shared.constants import APP_NAME
from src.shared.decorators import RELOAD_HINT
from src.shared.limiter import limiter
from src.shared.session import SessionContext

# Configuración de logging
logging_level = logging.DEBUG if active_config.DEBUG else logging.INFO
logging.basicConfig(
    level=logging_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Verificar variables de entorno críticas
if not validate_env_vars():
    logger.critical("Faltan variables de entorno críticas. Por favor, configure el archivo .env")
    if os.getenv('ENFORCE_ENV_VALIDATION', '0') == '1':
        sys.exit(1)
    else:
        logger.warning("Continuando a pesar de la falta de variables de entorno. Esto puede causar errores.")

# Importar Blueprints
from src.auth.routes import auth_bp
from src.students.routes import students_bp
from src.teachers.routes import teachers_bp
from src.uploads.routes import uploads_bp
from src.admin.routes import admin_bp
from src.health.routes import health_bp

# Campos que nunca se escriben en el log detallado
SENSITIVE_FIELDS = ('password', 'confirmPassword', 'newPassword', 'otp')


def _redact(data):
    if not isinstance(data, dict):
        return data
    return {key: ('***' if key in SENSITIVE_FIELDS else value) for key, value in data.items()}


def create_app(config_object=active_config):
    """
    Crea y configura la aplicación Flask
    """
    app = Flask(APP_NAME)

    # Aplicar configuración
    app.config.from_object(config_object)

    # Configurar CORS
    CORS(app, resources={
        r"/*": {
            "origins": app.config["CORS_ORIGINS"],
            "methods": ["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type"],
            "supports_credentials": True
        }
    })

    # Desactivar modo estricto para slashes en URLs
    app.url_map.strict_slashes = False

    # Límite de peticiones (RATELIMIT_ENABLED y RATELIMIT_STORAGE_URI se leen de la configuración)
    limiter.init_app(app)

    @app.before_request
    def load_session_context():
        g.session_context = SessionContext(session)

    # Sistema unificado de logging para endpoints
    @app.after_request
    def log_response(response):
        api_logging = app.config.get('API_LOGGING', 'basic')

        if api_logging == 'none':
            return response

        method = request.method
        path = request.path
        status = response.status_code

        if api_logging == 'basic':
            logger.info(f"API: {method} {path} - Status: {status}")
            return response

        # Logging detallado (api_logging == 'detailed')
        request_data = None
        if request.method in ['POST', 'PATCH', 'DELETE'] and request.is_json:
            request_data = request.get_json(silent=True)
        elif request.form:
            request_data = request.form.to_dict()
        elif request.args:
            request_data = request.args.to_dict()

        response_data = None
        if response.content_type == 'application/json':
            response_data = response.get_json(silent=True)

        logger.info(f"API REQUEST: {method} {path}")
        if request_data:
            logger.info(f"Request Data: {_redact(request_data)}")

        logger.info(f"API RESPONSE: {method} {path} - Status: {status}")
        if response_data:
            logger.info(f"Response Data: {response_data}")

        return response

    # Registrar manejo de errores global
    @app.errorhandler(500)
    def handle_server_error(error):
        logger.error(f"Error del servidor: {error}")
        return jsonify({
            "success": False,
            "error": "ERROR_SERVIDOR",
            "message": RELOAD_HINT,
            "recovery": "reload"
        }), 500

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({
            "success": False,
            "error": "RECURSO_NO_ENCONTRADO",
            "message": "Page not found"
        }), 404

    @app.errorhandler(413)
    def handle_too_large(error):
        return jsonify({
            "success": False,
            "error": "ERROR_VALIDACION",
            "message": "File is too large to upload"
        }), 413

    @app.errorhandler(429)
    def handle_rate_limited(error):
        return jsonify({
            "success": False,
            "error": "ERROR_AUTENTICACION",
            "message": "Too many attempts. Please wait a moment and try again."
        }), 429

    # Errores no capturados por handle_errors
    @app.errorhandler(Exception)
    def handle_unhandled_exception(error):
        from src.shared.exceptions import AppException

        if isinstance(error, HTTPException):
            return jsonify({
                "success": False,
                "error": error.name,
                "message": error.description
            }), error.code

        if isinstance(error, AppException):
            response = {
                "success": False,
                "error": error.__class__.__name__,
                "message": str(error.message)
            }
            if error.details:
                response["details"] = error.details
            return jsonify(response), error.code

        logger.exception(f"Error no controlado: {error}")
        return jsonify({
            "success": False,
            "error": "ERROR_SERVIDOR",
            "message": RELOAD_HINT,
            "recovery": "reload"
        }), 500

    # Registrar Blueprints (las rutas son las páginas del portal, sin prefijo)
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(students_bp)
    app.register_blueprint(teachers_bp)
    app.register_blueprint(uploads_bp)
    app.register_blueprint(admin_bp)

    return app

# Crear la aplicación para servidores WSGI
app = create_app()

if __name__ == '__main__':
    # Cuando se ejecuta directamente (desarrollo local)
    logger.info(f"Iniciando aplicación en modo {os.getenv('FLASK_ENV', 'development')}")
    app.run(
        debug=app.config['DEBUG'],
        host='0.0.0.0',
        port=app.config['PORT']
    )
