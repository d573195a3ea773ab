"""
Contexto de sesión por rol.

La sesión de Flask guarda, por cada rol, el usuario (como JSON), el token de
acceso y el token de refresco bajo las mismas claves que usa el resto de la
plataforma (ver STORAGE_KEYS). Las rutas no acceden a las claves
directamente: usan SessionContext.for_role(role).
"""

import json
import time
from typing import Optional

import jwt
from flask import g, session

from src.shared.constants import STORAGE_KEYS, normalize_role


class RoleSession:
    """Acceso tipado a las tres claves de un rol"""

    def __init__(self, storage, role: str):
        if role not in STORAGE_KEYS:
            raise ValueError(f"Rol desconocido: {role}")
        self.storage = storage
        self.role = role
        self.keys = STORAGE_KEYS[role]

    @property
    def raw_user(self):
        return self.storage.get(self.keys["user"])

    @property
    def user(self) -> Optional[dict]:
        """
        Usuario almacenado.

        Raises:
            ValueError: Si el valor guardado no es un objeto JSON válido
        """
        raw = self.raw_user
        if raw is None:
            return None
        if isinstance(raw, dict):
            return raw
        user = json.loads(raw)
        if not isinstance(user, dict):
            raise ValueError("El usuario almacenado no es un objeto")
        return user

    @property
    def access_token(self) -> Optional[str]:
        return self.storage.get(self.keys["access_token"])

    @property
    def refresh_token(self) -> Optional[str]:
        return self.storage.get(self.keys["refresh_token"])

    @property
    def is_present(self) -> bool:
        return bool(self.raw_user) and bool(self.access_token)

    @property
    def token_expired(self) -> bool:
        return token_expired(self.access_token)

    def store(self, user: dict, access_token: str, refresh_token: str = None):
        self.storage[self.keys["user"]] = json.dumps(user)
        self.storage[self.keys["access_token"]] = access_token
        if refresh_token:
            self.storage[self.keys["refresh_token"]] = refresh_token
        else:
            self.storage.pop(self.keys["refresh_token"], None)

    def clear(self):
        """Elimina exactamente las tres claves del rol"""
        for key in self.keys.values():
            self.storage.pop(key, None)


class SessionContext:
    """Contexto de sesión inyectado en cada petición"""

    def __init__(self, storage):
        self.storage = storage

    def for_role(self, role: str) -> RoleSession:
        return RoleSession(self.storage, normalize_role(role))

    @property
    def student(self) -> RoleSession:
        return self.for_role("student")

    @property
    def teacher(self) -> RoleSession:
        return self.for_role("teacher")

    @property
    def admin(self) -> RoleSession:
        return self.for_role("admin")

    def get_state(self, key: str, default=None):
        """Estado de pantalla serializado (navegación, etc.)"""
        return self.storage.get(key, default)

    def set_state(self, key: str, value):
        self.storage[key] = value

    def drop_state(self, key: str):
        self.storage.pop(key, None)


def token_expired(token: Optional[str], now: float = None) -> bool:
    """
    Lee el claim `exp` sin verificar la firma. Los tokens opacos o sin `exp`
    se consideran vigentes: la API es quien decide.
    """
    if not token:
        return True
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.exceptions.InvalidTokenError:
        return False
    exp = claims.get("exp")
    if exp is None:
        return False
    return float(exp) <= (now if now is not None else time.time())


def get_session_context() -> SessionContext:
    """Contexto de la petición actual; se crea si before_request no lo inyectó"""
    context = getattr(g, "session_context", None)
    if context is None:
        context = SessionContext(session)
        g.session_context = context
    return context
