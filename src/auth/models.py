from pydantic import BaseModel, Field
from typing import Optional

from src.shared.constants import DEFAULT_SCHOOL_NAME


class LoginRequest(BaseModel):
    """Credenciales enviadas a los endpoints de login"""
    email: str
    password: str


class RegistrationRequest(BaseModel):
    """Cuerpo de /api/auth/register para un estudiante nuevo"""
    firstName: str
    lastName: str
    email: str
    password: str
    role: str = "student"
    classLevel: int
    schoolName: str = DEFAULT_SCHOOL_NAME

    @classmethod
    def from_form(cls, form: dict) -> "RegistrationRequest":
        return cls(
            firstName=str(form.get("firstName", "")).strip(),
            lastName=str(form.get("lastName", "")).strip(),
            email=str(form.get("email", "")).strip().lower(),
            password=form.get("password", ""),
            classLevel=int(form.get("classLevel")),
        )


class AuthPayload(BaseModel):
    """Bloque `data` de una respuesta de login o registro"""
    user: dict
    accessToken: str
    refreshToken: Optional[str] = None


class PasswordResetRequest(BaseModel):
    email: str
    otp: str = Field(..., min_length=6, max_length=6)
    newPassword: str
