"""REST API definition using Flask-RESTX."""
from __future__ import annotations

from flask import Blueprint, Flask, current_app
from flask_restx import Api

from ..errors import PlanningError
from ..extensions import db
from .dashboard import ns as dashboard_ns
from .enrollments import ns as enrollments_ns
from .groups import ns as groups_ns
from .health import ns as health_ns
from .notifications import ns as notifications_ns
from .seances import ns as seances_ns
from .students import ns as students_ns
from .trainings import ns as trainings_ns
from .users import ns as users_ns


def register_namespaces(api: Api) -> None:
    """Register all API namespaces."""
    api.add_namespace(health_ns, path="/health")
    api.add_namespace(users_ns, path="/users")
    api.add_namespace(trainings_ns, path="/trainings")
    api.add_namespace(students_ns, path="/students")
    api.add_namespace(groups_ns, path="/groups")
    api.add_namespace(enrollments_ns, path="/enrollments")
    api.add_namespace(seances_ns, path="/seances")
    api.add_namespace(notifications_ns, path="/notifications")
    api.add_namespace(dashboard_ns, path="/dashboard")


def register_error_handlers(api: Api) -> None:
    @api.errorhandler(PlanningError)
    def handle_planning_error(error: PlanningError):
        db.session.rollback()
        current_app.logger.info("Request rejected (%s): %s", error.error_code, error.message)
        return error.payload(), error.status_code


def init_api(app: Flask) -> Api:
    url_prefix = app.config.get("URL_PREFIX", "")
    blueprint = Blueprint("api", __name__, url_prefix=f"{url_prefix}/api")
    api = Api(
        blueprint,
        version=app.config.get("API_VERSION", "0.1.0"),
        title=app.config.get("API_TITLE", "Planning des formations API"),
        doc="/docs",
    )
    register_namespaces(api)
    register_error_handlers(api)
    app.register_blueprint(blueprint)
    return api
