from flask import g

from .models import NewTeacherRequest
from .services import AdminService
from src.shared.decorators import get_form_data
from src.shared.standardization import APIBlueprint, APIRoute
from src.shared.validators import validate_teacher_account_form

admin_bp = APIBlueprint('admin', __name__)
admin_service = AdminService()


def _teachers_view(message: str = None, credentials: dict = None, status_code: int = 200):
    teachers = admin_service.list_teachers(g.access_token)
    data = {
        "user": g.current_user,
        "teachers": teachers,
        "stats": {
            "totalTeachers": len(teachers),
            "totalSubjects": len({subject for teacher in teachers for subject in teacher["subjects"]}),
        },
    }
    if credentials:
        data["credentials"] = credentials
    return APIRoute.success(data=data, message=message, status_code=status_code)


@admin_bp.route('/admin/dashboard', methods=['GET'])
@APIRoute.standard(role="admin")
def dashboard():
    return _teachers_view()


@admin_bp.route('/admin/teachers', methods=['POST'])
@APIRoute.standard(role="admin")
def add_teacher():
    """Alta de profesor; las credenciales solo se devuelven en esta respuesta"""
    data = get_form_data()
    validate_teacher_account_form(data)
    credentials = admin_service.create_teacher(g.access_token, NewTeacherRequest.from_form(data))
    credentials["name"] = data["name"].strip()
    return _teachers_view("Teacher added successfully", credentials, status_code=201)


@admin_bp.route('/admin/teachers/<teacher_id>', methods=['DELETE'])
@admin_bp.route('/admin/teachers/<teacher_id>/delete', methods=['POST'])
@APIRoute.standard(role="admin")
def remove_teacher(teacher_id):
    name = get_form_data().get('name') or "Teacher"
    admin_service.delete_teacher(g.access_token, teacher_id)
    return _teachers_view(f"{name} has been successfully removed and their access has been revoked.")
