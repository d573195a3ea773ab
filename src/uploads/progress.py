"""
Seguimiento del progreso de subidas.

El servidor de la plataforma publica eventos `upload-progress` por Socket.IO
en una sala por subida. El portal se une a la sala al empezar la subida
(`join-upload-progress`) y la abandona al terminar (`leave-upload-progress`).
No hay reintentos ni orden garantizado: el último mensaje recibido gana.

Además del progreso remoto se guarda la etapa local de la subida
(preparing, validating, subject, chapter, compression, uploading, content,
complete), que es la que se muestra como porcentaje global.
"""

import logging
import threading
from collections import OrderedDict

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError
from flask import current_app

from src.shared.utils import format_bytes, format_speed, format_time, phase_message

logger = logging.getLogger(__name__)

# Registros conservados como máximo (los más antiguos se descartan)
MAX_TRACKED_UPLOADS = 200

_EXTENSION_KEY = "upload_progress"


def upload_percentage(server_progress, needs_compression: bool) -> int:
    """
    Porcentaje global durante la transferencia: 50-90 si hubo compresión,
    40-90 en caso contrario.
    """
    progress = max(0.0, min(100.0, float(server_progress or 0)))
    if needs_compression:
        adjusted = 50 + progress * 0.4
    else:
        adjusted = 40 + progress * 0.5
    return min(90, int(round(adjusted)))


class UploadProgressTracker:
    """
    Suscriptor de progreso de subidas.

    Args:
        server_url: URL del servidor Socket.IO
        client_factory: Constructor del cliente (socketio.Client por defecto)
        reconnection_attempts: Intentos de reconexión del cliente
        reconnection_delay: Espera entre reconexiones, en segundos
    """

    def __init__(self, server_url: str, client_factory=None, reconnection_attempts: int = 5,
                 reconnection_delay: float = 1):
        self.server_url = server_url
        self.client_factory = client_factory or socketio.Client
        self.reconnection_attempts = reconnection_attempts
        self.reconnection_delay = reconnection_delay
        self._client = None
        self._lock = threading.Lock()
        self._records = OrderedDict()
        self._subscriptions = {}
        self.connection_error = None

    @property
    def connected(self) -> bool:
        return bool(self._client is not None and self._client.connected)

    def _build_client(self):
        client = self.client_factory(
            reconnection=True,
            reconnection_attempts=self.reconnection_attempts,
            reconnection_delay=self.reconnection_delay,
        )
        client.on("connect", self._on_connect)
        client.on("disconnect", self._on_disconnect)
        client.on("upload-progress", self._on_progress)
        return client

    def connect(self) -> bool:
        """Conecta el cliente si aún no lo está. Devuelve False si el servidor no responde."""
        with self._lock:
            if self.connected:
                return True
            if self._client is None:
                self._client = self._build_client()
            client = self._client
        try:
            client.connect(self.server_url, transports=["websocket", "polling"])
        except SocketConnectionError as e:
            self.connection_error = str(e)
            logger.warning(f"No se pudo conectar al canal de progreso {self.server_url}: {e}")
            return False
        self.connection_error = None
        return True

    def disconnect(self):
        with self._lock:
            client = self._client
        if client is not None and client.connected:
            client.disconnect()

    def _on_connect(self):
        logger.info(f"Canal de progreso conectado: {self.server_url}")
        # Las salas se pierden al reconectar
        with self._lock:
            subscriptions = list(self._subscriptions.items())
        for upload_id, subscription in subscriptions:
            self._client.emit("join-upload-progress", {"uploadId": upload_id, "userId": subscription["userId"]})

    def _on_disconnect(self, *args):
        logger.info("Canal de progreso desconectado")

    def _store(self, upload_id: str, **values):
        record = self._records.setdefault(upload_id, {"uploadId": upload_id})
        record.update(values)
        self._records.move_to_end(upload_id)
        while len(self._records) > MAX_TRACKED_UPLOADS:
            self._records.popitem(last=False)
        return record

    def join(self, upload_id: str, user_id: str, on_progress=None, on_complete=None, on_error=None) -> bool:
        """
        Se suscribe al progreso de una subida.

        Returns:
            bool: True si el canal está conectado y se envió la suscripción
        """
        with self._lock:
            self._subscriptions[upload_id] = {
                "userId": user_id,
                "on_progress": on_progress,
                "on_complete": on_complete,
                "on_error": on_error,
            }
            self._store(upload_id, userId=user_id)
            connected = self.connected
        if not connected:
            # _on_connect se une a todas las salas registradas
            return self.connect()
        self._client.emit("join-upload-progress", {"uploadId": upload_id, "userId": user_id})
        return True

    def leave(self, upload_id: str):
        """Abandona la sala. El último registro se conserva para consultas posteriores."""
        with self._lock:
            subscribed = self._subscriptions.pop(upload_id, None) is not None
        if subscribed and self.connected:
            self._client.emit("leave-upload-progress", {"uploadId": upload_id})

    def _on_progress(self, data):
        upload_id = (data or {}).get("uploadId")
        with self._lock:
            subscription = self._subscriptions.get(upload_id)
            if subscription is None:
                return
            record = self._records.get(upload_id, {})
            values = {"server": dict(data)}
            if data.get("phase") in ("uploading", "receiving") and record.get("stage") == "uploading":
                values["percentage"] = upload_percentage(data.get("progress"), record.get("needsCompression", False))
            self._store(upload_id, **values)

        if subscription["on_progress"]:
            subscription["on_progress"](data)
        if data.get("phase") == "completed" and subscription["on_complete"]:
            subscription["on_complete"](data)
        if data.get("phase") == "error" and subscription["on_error"]:
            subscription["on_error"](data)

    def update_stage(self, upload_id: str, stage: str, percentage: int, message: str, **extra):
        """Etapa local de la subida (la fija el flujo de subida del portal)"""
        with self._lock:
            self._store(upload_id, stage=stage, percentage=percentage, message=message, **extra)

    def latest(self, upload_id: str):
        with self._lock:
            record = self._records.get(upload_id)
            return dict(record) if record else None


def describe_progress(record: dict) -> dict:
    """Registro de progreso con los valores formateados para mostrar"""
    server = record.get("server") or {}
    described = {
        "uploadId": record.get("uploadId"),
        "stage": record.get("stage"),
        "percentage": record.get("percentage", 0),
        "message": record.get("message"),
        "needsCompression": record.get("needsCompression", False),
        "server": None,
    }
    if server:
        described["server"] = {
            "phase": server.get("phase"),
            "progress": server.get("progress", 0),
            "message": server.get("message") or phase_message(server.get("phase")),
            "error": server.get("error"),
            "bytesUploaded": format_bytes(server.get("bytesUploaded")),
            "totalBytes": format_bytes(server.get("totalBytes")),
            "speed": format_speed(server.get("speed")),
            "eta": format_time(server.get("eta")),
            "fileName": server.get("fileName"),
        }
    return described


def get_progress_tracker() -> UploadProgressTracker:
    """Suscriptor único por aplicación"""
    tracker = current_app.extensions.get(_EXTENSION_KEY)
    if tracker is None:
        tracker = UploadProgressTracker(current_app.config["SOCKET_URL"])
        current_app.extensions[_EXTENSION_KEY] = tracker
    return tracker
