"""
Print job routes (JSON).

Handles:
- GET  /api/jobs                     - Job history for the session user
- POST /api/jobs                     - Create a job and send it to the printer
- GET  /api/jobs/<id>                - One job (owner only)
- POST /api/jobs/<id>/reconcile      - Refresh status from the printer queue
- POST /api/jobs/<id>/resubmit       - Retry a pending job
- POST /api/jobs/<id>/cancel         - Cancel a job

The uploaded file has already been validated and stored by the upload
layer; this blueprint receives its stored path and original name.
"""

from flask import Blueprint, current_app, jsonify, request, session

from core.exceptions import MissingDataError, ValidationError
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

jobs_bp = Blueprint("jobs", __name__, url_prefix="/api/jobs")


def _lifecycle():
    return current_app.config["JOB_LIFECYCLE"]


def _current_user_id():
    """Session user id; MissingDataError (400) if the session has none."""
    user_id = session.get("user_id")
    if user_id is None:
        raise MissingDataError(["user_id"])
    return user_id


@jobs_bp.route("", methods=["GET"])
def list_jobs():
    jobs = _lifecycle().list_for_user(_current_user_id())
    return jsonify({"jobs": [job.to_dict() for job in jobs]})


@jobs_bp.route("", methods=["POST"])
def create_job():
    """
    Create a job from an uploaded document.

    Body:
        {"document_name": "a.pdf", "document_path": "/uploads/..", "settings": {...}}

    A printer that cannot be reached is not an error: the job is stored as
    pending (202) and the message explains that it was not sent yet.
    """
    user_id = _current_user_id()
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError(
            "Request body must be a JSON object",
            {"received": type(payload).__name__},
        )

    outcome = _lifecycle().create_and_submit(
        user_id,
        payload.get("document_name"),
        payload.get("document_path"),
        payload.get("settings"),
    )

    logger.info(f"Job {outcome.job.id} created for user {user_id}: {outcome.job.status.value}")
    status_code = 201 if outcome.submission.success else 202
    return jsonify(outcome.to_dict()), status_code


@jobs_bp.route("/<int:job_id>", methods=["GET"])
def get_job(job_id: int):
    job = _lifecycle().get(job_id, _current_user_id())
    return jsonify(job.to_dict())


@jobs_bp.route("/<int:job_id>/reconcile", methods=["POST"])
def reconcile_job(job_id: int):
    job = _lifecycle().reconcile(job_id, _current_user_id())
    return jsonify(job.to_dict())


@jobs_bp.route("/<int:job_id>/resubmit", methods=["POST"])
def resubmit_job(job_id: int):
    outcome = _lifecycle().resubmit(job_id, _current_user_id())
    status_code = 200 if outcome.submission.success else 202
    return jsonify(outcome.to_dict()), status_code


@jobs_bp.route("/<int:job_id>/cancel", methods=["POST"])
def cancel_job(job_id: int):
    job = _lifecycle().cancel(job_id, _current_user_id())
    return jsonify(job.to_dict())
