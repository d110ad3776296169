"""
API routes (JSON status endpoints).

Handles:
- /health - Health check endpoint
- /api/config - Public server settings
- /api/queues - Registered queues
- /api/queues/<resource> - One queue, resolved the way requests are
- /api/privacy - Resolved privacy policy

All endpoints are read-only views of the ServerContext loaded at startup.
"""

from flask import Blueprint, current_app, request

from logging_config import get_logger
from services.queue_registry import GENERIC_RESOURCE


# Module logger
logger = get_logger(__name__)

api_bp = Blueprint("api", __name__)


def _context():
    return current_app.config.get("SERVER_CONTEXT")


def _unavailable():
    return {"error": "Server configuration not loaded"}, 503


@api_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint with service status."""
    health_status = {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {}
    }

    # Check configuration
    context = _context()
    if context and context.config.is_finalized:
        health_status["checks"]["configuration"] = "loaded"
        health_status["checks"]["queues"] = len(context.registry)
        health_status["checks"]["listeners"] = len(context.config.listeners)
    else:
        health_status["checks"]["configuration"] = "not_loaded"
        health_status["status"] = "degraded"

    # Check cleanup service (optional - only runs when a job store is attached)
    cleanup_service = current_app.config.get("CLEANUP_SERVICE")
    if cleanup_service is None:
        health_status["checks"]["job_cleanup"] = "disabled"
    elif cleanup_service.is_running:
        health_status["checks"]["job_cleanup"] = "running"
    else:
        health_status["checks"]["job_cleanup"] = "stopped"
        health_status["status"] = "degraded"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code


@api_bp.route("/api/config", methods=["GET"])
def server_config():
    """Public (non-secret) server settings."""
    context = _context()
    if context is None:
        return _unavailable()

    data = context.config.to_dict()
    data["config_directory"] = context.config_directory
    return data


@api_bp.route("/api/queues", methods=["GET"])
def queues():
    """
    List registered queues in resource order.

    Query Parameters:
        attributes: "1" to include each queue's loaded attributes
    """
    context = _context()
    if context is None:
        return _unavailable()

    include_attributes = request.args.get("attributes") == "1"
    return {
        "default_printer": context.config.default_printer.value,
        "generic_resource": GENERIC_RESOURCE,
        "queues": [queue.to_dict(include_attributes=include_attributes) for queue in context.registry],
    }


@api_bp.route("/api/queues/<path:resource>", methods=["GET"])
def queue_detail(resource: str):
    """
    Resolve a request resource to its queue.

    Uses QueueRegistry.find(), so /api/queues/ipp/print returns the queue
    that answers the generic resource.
    """
    context = _context()
    if context is None:
        return _unavailable()

    path = "/" + resource
    queue = context.registry.find(path)
    if queue is None:
        logger.debug(f"No queue for resource {path}")
        return {"error": f"No queue at {path}"}, 404

    return queue.to_dict(include_attributes=True)


@api_bp.route("/api/privacy", methods=["GET"])
def privacy():
    """Resolved privacy policy and the attributes advertised for it."""
    context = _context()
    if context is None:
        return _unavailable()

    return {
        "advertised": context.privacy.advertised_attributes(),
        "policy": context.privacy.to_dict(),
    }
