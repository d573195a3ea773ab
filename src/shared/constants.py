# Configuración de la aplicación
APP_NAME = "aula-portal"

# Roles de usuario
ROLES = {
    "STUDENT": "student",
    "TEACHER": "teacher",
    "ADMIN": "admin"
}

# Claves de sesión por rol (mismos nombres que usaba el almacenamiento local del navegador)
STORAGE_KEYS = {
    "student": {
        "user": "user",
        "access_token": "accessToken",
        "refresh_token": "refreshToken"
    },
    "teacher": {
        "user": "teacherUser",
        "access_token": "teacherAccessToken",
        "refresh_token": "teacherRefreshToken"
    },
    "admin": {
        "user": "adminUser",
        "access_token": "adminAccessToken",
        "refresh_token": "adminRefreshToken"
    }
}

# Rutas del portal por rol
LOGIN_ROUTES = {
    "student": "/auth/login",
    "teacher": "/auth/teacher-login",
    "admin": "/auth/admin-login"
}

DASHBOARD_ROUTES = {
    "student": "/student/dashboard",
    "teacher": "/teacher/dashboard",
    "admin": "/admin/dashboard"
}

# Destino tras cerrar sesión
ENTRY_POINTS = {
    "student": "/auth/login",
    "teacher": "/",
    "admin": "/"
}

# Espacio de nombres de la API de recuperación de contraseña por rol
PASSWORD_RECOVERY_PREFIXES = {
    "student": "/api/students/auth",
    "teacher": "/api/teacher/auth",
    "admin": "/api/admin/auth"
}

# Niveles de clase soportados por la plataforma
CLASS_LEVELS = [9, 10, 11, 12]

# Tipos de contenido
CONTENT_TYPES = {
    "VIDEO": "video",
    "PDF": "pdf",
    "DOCUMENT": "document"
}

# Tipos aceptados por el endpoint de subida
UPLOAD_TYPES = ["video", "document"]

# Formatos de video que no requieren compresión
UNCOMPRESSED_VIDEO_FORMATS = ["mp4", "webm"]

# Filtros de contenido en la vista del capítulo
CONTENT_FILTERS = ["all", "video", "notes"]

# Ciclo de estados de un capítulo (vista del profesor)
CHAPTER_STATUS_CYCLE = {
    "not-started": "in-progress",
    "in-progress": "completed",
    "completed": "not-started"
}

# Fases emitidas por el servidor durante una subida
UPLOAD_PHASES = {
    "receiving": "Receiving file...",
    "processing": "Processing file...",
    "compressing": "Compressing video...",
    "uploading": "Uploading to server...",
    "completed": "Upload completed!",
    "error": "Upload failed"
}

# Nombre de la materia creada automáticamente en la subida
DEFAULT_SUBJECT_NAME = "General"
DEFAULT_SCHOOL_NAME = "Default High School"

# Dominio de archivos alojados externamente
CLOUDINARY_URL_PREFIX = "https://res.cloudinary.com"

# Códigos de error de base de datos que devuelve la API en respuestas 503
DATABASE_ERROR_CODES = ["DATABASE_UNAVAILABLE", "DATABASE_TIMEOUT", "DATABASE_ERROR"]


def normalize_role(role: str) -> str:
    """Normaliza un rol recibido de la API a su forma en minúsculas"""
    if not role:
        return role
    return str(role).strip().lower()
