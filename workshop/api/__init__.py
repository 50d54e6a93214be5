from flask import Blueprint, jsonify

from workshop.logging_config import get_logger
from workshop.scheduling.errors import SchedulingError

logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


@api_bp.errorhandler(SchedulingError)
def handle_scheduling_error(exc):
    logger.warning("Scheduling request rejected", error=exc.code, message=str(exc))
    return jsonify(exc.to_dict()), exc.http_status


from workshop.api import routes
