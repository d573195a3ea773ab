from datetime import datetime, timezone

from .services import HealthService
from src.shared.constants import CLASS_LEVELS, LOGIN_ROUTES, DASHBOARD_ROUTES
from src.shared.session import get_session_context
from src.shared.standardization import APIBlueprint, APIRoute

health_bp = APIBlueprint('health', __name__)
health_service = HealthService()

PORTALS = [
    {"role": "student", "title": "Student Portal", "description": "Access your classes, videos and notes"},
    {"role": "teacher", "title": "Teacher Portal", "description": "Upload and organize content for your classes"},
    {"role": "admin", "title": "Admin Portal", "description": "Manage teacher accounts"},
]


@health_bp.route('/', methods=['GET'])
@APIRoute.standard()
def landing():
    """Portales disponibles; si ya hay sesión del rol, el enlace apunta a su panel"""
    context = get_session_context()
    portals = []
    for portal in PORTALS:
        signed_in = context.for_role(portal["role"]).is_present
        portals.append(dict(portal,
                            signedIn=signed_in,
                            href=DASHBOARD_ROUTES[portal["role"]] if signed_in else LOGIN_ROUTES[portal["role"]]))
    return APIRoute.success(data={"portals": portals, "classes": CLASS_LEVELS})


@health_bp.route('/health/database', methods=['GET'])
@APIRoute.standard()
def database_health():
    status = health_service.check_database()
    return APIRoute.success(data={
        "status": status,
        "checkedAt": datetime.now(timezone.utc).isoformat(),
    }, status_code=200 if status == "healthy" else 503)
