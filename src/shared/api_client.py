"""
Cliente HTTP de la API de la plataforma.

Todas las llamadas del portal pasan por aquí: autenticación Bearer, tiempo de
espera por llamada y traducción de respuestas fallidas a ApiError con el
mensaje del perfil de estado que corresponda a la pantalla.
"""

import time
from dataclasses import dataclass
from typing import Optional

import requests
from flask import current_app

from src.shared.error_handling import (
    ErrorKind, StatusProfile, PLAIN_PROFILE, DOWNLOAD_PROFILE,
    TIMEOUT_MESSAGE, NETWORK_MESSAGE
)
from src.shared.exceptions import ApiError
from src.shared.logging import log_api_call, log_error

FILE_TOO_LARGE_MESSAGE = "File too large to download directly. Please contact your teacher."

_EXTENSION_KEY = "platform_api"


@dataclass
class DownloadedFile:
    content: bytes
    content_type: str
    size: int


class PlatformApiClient:
    """Cliente de la API REST de la plataforma"""

    def __init__(self, base_url: str, timeout: int = 30, download_timeout: int = 60,
                 session: requests.Session = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.download_timeout = download_timeout
        self.session = session or requests.Session()

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    def _headers(self, token: Optional[str]) -> dict:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(self, method: str, path: str, token: Optional[str], timeout: int, **kwargs) -> requests.Response:
        started = time.monotonic()
        try:
            response = self.session.request(method, self.url_for(path), headers=self._headers(token),
                                            timeout=timeout, **kwargs)
        except requests.exceptions.Timeout:
            log_api_call(method, path, None, time.monotonic() - started)
            raise ApiError(ErrorKind.TIMEOUT, TIMEOUT_MESSAGE)
        except requests.exceptions.RequestException as e:
            log_api_call(method, path, None, time.monotonic() - started)
            log_error(f"Error de conexión con la API en {method} {path}", e, "api_client")
            raise ApiError(ErrorKind.NETWORK, NETWORK_MESSAGE)
        log_api_call(method, path, response.status_code, time.monotonic() - started)
        return response

    @staticmethod
    def _decode(response: requests.Response) -> dict:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {"data": body}

    def request(self, method: str, path: str, token: str = None, json: dict = None, data: dict = None,
                files: dict = None, params: dict = None, profile: StatusProfile = PLAIN_PROFILE,
                timeout: int = None) -> dict:
        """
        Realiza una llamada y devuelve el cuerpo JSON decodificado.

        Raises:
            ApiError: Timeout, fallo de red o respuesta con código de error
        """
        response = self._send(method, path, token, timeout or self.timeout,
                              json=json, data=data, files=files, params=params)
        body = self._decode(response)
        if not response.ok:
            kind, message, error_code = profile.describe(response.status_code, response.reason, body)
            raise ApiError(kind, message, status=response.status_code, error_code=error_code)
        return body

    def get(self, path, **kwargs):
        return self.request("GET", path, **kwargs)

    def post(self, path, **kwargs):
        return self.request("POST", path, **kwargs)

    def patch(self, path, **kwargs):
        return self.request("PATCH", path, **kwargs)

    def delete(self, path, **kwargs):
        return self.request("DELETE", path, **kwargs)

    def download(self, url: str, token: str = None, max_bytes: int = None, params: dict = None,
                 profile: StatusProfile = DOWNLOAD_PROFILE) -> DownloadedFile:
        """
        Descarga un archivo completo en memoria, con el tiempo de espera de descargas.

        Args:
            url: URL absoluta o ruta relativa a la API
            token: Token Bearer opcional
            max_bytes: Tamaño máximo aceptado; por encima se rechaza la descarga

        Raises:
            ApiError: Archivo demasiado grande, timeout, fallo de red o respuesta con error
        """
        response = self._send("GET", url, token, self.download_timeout, params=params, stream=True)
        with response:
            if not response.ok:
                kind, message, error_code = profile.describe(response.status_code, response.reason)
                raise ApiError(kind, message, status=response.status_code, error_code=error_code)

            declared = response.headers.get("Content-Length")
            if max_bytes and declared and declared.isdigit() and int(declared) > max_bytes:
                raise ApiError(ErrorKind.VALIDATION, FILE_TOO_LARGE_MESSAGE, status=413)

            chunks = []
            size = 0
            try:
                for chunk in response.iter_content(chunk_size=64 * 1024):
                    size += len(chunk)
                    if max_bytes and size > max_bytes:
                        raise ApiError(ErrorKind.VALIDATION, FILE_TOO_LARGE_MESSAGE, status=413)
                    chunks.append(chunk)
            except requests.exceptions.Timeout:
                raise ApiError(ErrorKind.TIMEOUT, TIMEOUT_MESSAGE)
            except requests.exceptions.RequestException:
                raise ApiError(ErrorKind.NETWORK, NETWORK_MESSAGE)

            content_type = response.headers.get("Content-Type", "application/octet-stream")
            return DownloadedFile(b"".join(chunks), content_type, size)


def ensure_success(body: dict, default_message: str) -> dict:
    """
    Comprueba la bandera `success` del cuerpo de respuesta.

    Raises:
        ApiError: Si la API respondió 2xx pero indicó un fallo
    """
    if not body.get("success"):
        raise ApiError(ErrorKind.UNKNOWN, body.get("message") or default_message, error_code=body.get("code"))
    return body


def get_api_client() -> PlatformApiClient:
    """Cliente único por aplicación, construido con la configuración activa"""
    client = current_app.extensions.get(_EXTENSION_KEY)
    if client is None:
        client = PlatformApiClient(
            current_app.config["PLATFORM_API_URL"],
            timeout=current_app.config.get("REQUEST_TIMEOUT", 30),
            download_timeout=current_app.config.get("DOWNLOAD_TIMEOUT", 60),
        )
        current_app.extensions[_EXTENSION_KEY] = client
    return client
