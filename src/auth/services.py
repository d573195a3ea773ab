from functools import partial

from pydantic import ValidationError as PydanticValidationError

from src.auth.models import AuthPayload, LoginRequest, RegistrationRequest, PasswordResetRequest
from src.shared.api_client import ensure_success
from src.shared.constants import PASSWORD_RECOVERY_PREFIXES
from src.shared.error_handling import (
    ErrorKind, LOGIN_PROFILE, REGISTRATION_PROFILE, PLAIN_PROFILE,
    classify_login_error, classify_signup_error
)
from src.shared.exceptions import ApiError
from src.shared.logging import log_info
from src.shared.standardization import BaseService

INVALID_RESPONSE_MESSAGE = "Invalid response from server. Please try again."

# Espacio de nombres del login en la API para cada portal
PORTAL_LOGIN_PATHS = {
    "teacher": "/api/teacher/auth/login",
    "admin": "/api/admin/auth/login"
}


def parse_auth_payload(body: dict) -> AuthPayload:
    try:
        return AuthPayload.model_validate(body.get("data") or {})
    except PydanticValidationError:
        raise ApiError(ErrorKind.UNKNOWN, INVALID_RESPONSE_MESSAGE)


class AuthService(BaseService):
    """Login, registro y recuperación de contraseña contra la API"""

    def login_student(self, email: str, password: str) -> AuthPayload:
        """Login de estudiante con reintentos (3 intentos, backoff 1s/2s/4s)"""
        credentials = LoginRequest(email=email.strip(), password=password)

        def attempt():
            body = self.api.post("/api/auth/login", json=credentials.model_dump(), profile=LOGIN_PROFILE)
            ensure_success(body, "Login failed. Please try again.")
            return parse_auth_payload(body)

        payload = self.run_with_retry(attempt, "log in", partial(classify_login_error, operation="log in"))
        log_info(f"Login correcto de {credentials.email}", "auth.services")
        return payload

    def register_student(self, form: dict) -> AuthPayload:
        """Registro de estudiante con reintentos"""
        registration = RegistrationRequest.from_form(form)

        def attempt():
            body = self.api.post("/api/auth/register", json=registration.model_dump(), profile=REGISTRATION_PROFILE)
            ensure_success(body, "Registration failed. Please try again.")
            return parse_auth_payload(body)

        payload = self.run_with_retry(attempt, "create account",
                                      partial(classify_signup_error, operation="create account"))
        log_info(f"Cuenta de estudiante creada para {registration.email}", "auth.services")
        return payload

    def portal_login(self, role: str, email: str, password: str) -> AuthPayload:
        """Login de profesor o administrador: un único intento"""
        credentials = LoginRequest(email=email.strip(), password=password)
        body = self.api.post(PORTAL_LOGIN_PATHS[role], json=credentials.model_dump(), profile=PLAIN_PROFILE)
        ensure_success(body, "Login failed")
        return parse_auth_payload(body)

    def request_password_reset(self, role: str, email: str) -> dict:
        """Solicita el envío de un código OTP al correo del usuario"""
        body = self.api.post(f"{PASSWORD_RECOVERY_PREFIXES[role]}/forgot-password",
                             json={"email": email.strip()}, profile=PLAIN_PROFILE)
        return ensure_success(body, "Please verify your email address and try again")

    def reset_password(self, role: str, email: str, otp: str, new_password: str) -> dict:
        """Cambia la contraseña usando el código OTP recibido"""
        reset = PasswordResetRequest(email=email.strip(), otp=otp.strip(), newPassword=new_password)
        body = self.api.post(f"{PASSWORD_RECOVERY_PREFIXES[role]}/reset-password",
                             json=reset.model_dump(), profile=PLAIN_PROFILE)
        return ensure_success(body, "Unable to update password. Please try the process again.")
