"""
Utilidades generales para todo el portal.

IMPORTANTE: Para decoradores como handle_errors, role_required y validate_form,
importar desde src.shared.decorators, NO desde este archivo.
"""

import math
import re
from datetime import datetime, date
from typing import Optional, Tuple

from src.shared.constants import UPLOAD_PHASES

__all__ = ['parse_date', 'format_bytes', 'format_speed', 'format_time', 'phase_message',
           'sanitize_filename', 'extension_for', 'download_filename', 'resolve_file_url', 'add_query_param',
           'split_full_name', 'split_subjects', 'ensure_json_serializable']

_BYTE_UNITS = ["B", "KB", "MB", "GB"]

# Extensión de descarga según el Content-Type devuelto
_MIME_EXTENSIONS = [
    ("pdf", "pdf"),
    ("video/mp4", "mp4"),
    ("image/jpeg", "jpg"),
    ("image/png", "png"),
    ("text/plain", "txt"),
    ("msword", "doc"),
]

# Extensión por tipo de contenido cuando el Content-Type no la indica
_CONTENT_TYPE_EXTENSIONS = {
    "pdf": "pdf",
    "document": "pdf",
    "video": "mp4",
    "image": "jpg",
}


def parse_date(value) -> Optional[str]:
    """Convierte una fecha ISO (o datetime) a formato YYYY-MM-DD"""
    if not value:
        return None
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).strftime("%Y-%m-%d")
    except ValueError:
        pass
    for format_str in ("%Y-%m-%d", "%d/%m/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(text[:10], format_str).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return None


def format_bytes(size) -> str:
    """1536 -> '1.5 KB'; 0 -> '0 B'"""
    if not size:
        return "0 B"
    value = float(size)
    index = 0
    while value >= 1024 and index < len(_BYTE_UNITS) - 1:
        value /= 1024
        index += 1
    value = round(value, 1)
    text = f"{value:.1f}".rstrip("0").rstrip(".")
    return f"{text} {_BYTE_UNITS[index]}"


def format_speed(bytes_per_second) -> str:
    return f"{format_bytes(bytes_per_second)}/s"


def format_time(seconds) -> str:
    """Tiempo restante: '1h 2m 3s', '2m 3s', '3s'; '--' si no se conoce"""
    if seconds is None or seconds == "":
        return "--"
    try:
        seconds = float(seconds)
    except (TypeError, ValueError):
        return "--"
    if not math.isfinite(seconds) or seconds <= 0:
        return "--"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def phase_message(phase: str) -> str:
    return UPLOAD_PHASES.get(phase, "Processing...")


def sanitize_filename(title: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", (title or "").lower())


def extension_for(mime_type: str, content_type: str = None) -> str:
    mime_type = (mime_type or "").lower()
    for marker, extension in _MIME_EXTENSIONS:
        if marker in mime_type:
            return extension
    return _CONTENT_TYPE_EXTENSIONS.get((content_type or "").lower(), "")


def download_filename(title: str, mime_type: str, content_type: str = None) -> str:
    """Nombre de archivo a partir del título saneado y el tipo"""
    base = sanitize_filename(title) or "download"
    extension = extension_for(mime_type, content_type)
    return f"{base}.{extension}" if extension else base


def resolve_file_url(base_url: str, path: str) -> Optional[str]:
    """
    URL completa de un archivo. Las URLs absolutas (Cloudinary, YouTube) se
    conservan; las rutas relativas se resuelven contra la URL base de la API.
    """
    if not path:
        return None
    if path.startswith(("http://", "https://")):
        return path
    return f"{base_url}{'' if path.startswith('/') else '/'}{path}"


def add_query_param(url: str, name: str, value: str) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{name}={value}"


def split_full_name(name: str, default_last_name: str = "Teacher") -> Tuple[str, str]:
    """'Ana María López' -> ('Ana', 'María López')"""
    parts = (name or "").split()
    if not parts:
        return "", default_last_name
    return parts[0], " ".join(parts[1:]) or default_last_name


def split_subjects(subjects) -> list:
    if isinstance(subjects, list):
        return [str(s).strip() for s in subjects if str(s).strip()]
    return [s.strip() for s in str(subjects or "").split(",") if s.strip()]


def ensure_json_serializable(data):
    """Convierte fechas y conjuntos para garantizar que el objeto sea JSON serializable"""
    if isinstance(data, list) or isinstance(data, tuple) or isinstance(data, set):
        return [ensure_json_serializable(item) for item in data]
    elif isinstance(data, dict):
        return {key: ensure_json_serializable(value) for key, value in data.items()}
    elif isinstance(data, (datetime, date)):
        return data.isoformat()
    elif hasattr(data, "model_dump"):
        return ensure_json_serializable(data.model_dump())
    else:
        return data
