from functools import partial
from typing import List

from pydantic import ValidationError as PydanticValidationError

from src.admin.models import TeacherAccount, NewTeacherRequest
from src.shared.error_handling import ErrorKind, classify_dashboard_error
from src.shared.exceptions import ApiError
from src.shared.logging import log_info, log_warning
from src.shared.standardization import BaseService

TEACHERS_PATH = "/api/admin/teachers"


class AdminService(BaseService):
    """Gestión de cuentas de profesor"""

    def list_teachers(self, token: str) -> List[dict]:
        def attempt():
            body = self.api.get(TEACHERS_PATH, token=token)
            if not body.get("success"):
                raise ApiError(ErrorKind.UNKNOWN, body.get("message") or "Failed to load teachers")
            teachers = []
            for raw in body.get("data") or []:
                try:
                    teachers.append(TeacherAccount.model_validate(raw).to_summary())
                except PydanticValidationError:
                    log_warning(f"Profesor con formato inválido omitido: {raw!r}", "admin.services")
            return teachers

        return self.run_with_retry(attempt, "load teachers",
                                   partial(classify_dashboard_error, operation="load teachers", contact="support"))

    def create_teacher(self, token: str, request: NewTeacherRequest) -> dict:
        """
        Crea la cuenta. Devuelve las credenciales para mostrarlas una sola vez;
        la contraseña no se guarda en el portal.
        """
        try:
            body = self.api.post(TEACHERS_PATH, token=token, json=request.model_dump())
        except ApiError as e:
            if e.kind == ErrorKind.AUTHENTICATION:
                raise
            log_warning(f"Alta de profesor {request.email} fallida: {e.message}", "admin.services")
            message = f"Error adding teacher: {e.message}" if e.status else "Error adding teacher. Please try again."
            raise ApiError(e.kind, message, status=e.status, error_code=e.error_code)
        if not body.get("success"):
            raise ApiError(ErrorKind.UNKNOWN, f"Error adding teacher: {body.get('message')}")
        log_info(f"Profesor {request.email} creado", "admin.services")
        return {
            "name": f"{request.firstName} {request.lastName}",
            "email": request.email,
            "password": request.password,
        }

    def delete_teacher(self, token: str, teacher_id: str):
        """Elimina el profesor y revoca su acceso"""
        try:
            body = self.api.delete(f"{TEACHERS_PATH}/{teacher_id}", token=token)
        except ApiError as e:
            if e.kind == ErrorKind.AUTHENTICATION:
                raise
            log_warning(f"Baja del profesor {teacher_id} fallida: {e.message}", "admin.services")
            message = f"Error removing teacher: {e.message}" if e.status else "Error removing teacher. Please try again."
            raise ApiError(e.kind, message, status=e.status, error_code=e.error_code)
        if not body.get("success"):
            raise ApiError(ErrorKind.UNKNOWN, f"Error removing teacher: {body.get('message')}")
        log_info(f"Profesor {teacher_id} eliminado", "admin.services")
