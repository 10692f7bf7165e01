"""
Auth Routes for ProjectFlow.
Sign-in, sign-up, sign-out and session restore through the Supabase
identity adapter, plus the student roster used when assigning tasks.
"""
import logging
from flask import Blueprint, request, jsonify, current_app

from ..identity import INVALID_CREDENTIALS, PROFILE_NOT_FOUND, NETWORK_UNAVAILABLE

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    INVALID_CREDENTIALS: 401,
    PROFILE_NOT_FOUND: 404,
    NETWORK_UNAVAILABLE: 503,  # retry, not fix input
}


def _identity():
    return current_app.extensions['projectflow_identity']


def _result_response(result, success_status=200):
    """Map an identity result dict to a JSON response."""
    if result.get("success"):
        return jsonify(result), success_status
    status = ERROR_STATUS.get(result.get("kind"), 400)
    return jsonify(result), status


@auth_bp.route('/api/auth/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    result = _identity().sign_in(data.get("email", "").strip(), data.get("password", ""))
    return _result_response(result)


@auth_bp.route('/api/auth/signup', methods=['POST'])
def signup():
    data = request.get_json(silent=True) or {}
    if data.get("confirmPassword") is not None and data.get("confirmPassword") != data.get("password"):
        return jsonify({"success": False, "error": "Passwords do not match", "kind": "password_mismatch"}), 400
    result = _identity().sign_up(
        data.get("name", "").strip(),
        data.get("email", "").strip(),
        data.get("password", ""),
        data.get("role", ""),
    )
    return _result_response(result, success_status=201)


@auth_bp.route('/api/auth/logout', methods=['POST'])
def logout():
    user = _identity().current_user
    _identity().sign_out()
    logger.info("Signed out %s", (user or {}).get("email", "unknown user"))
    return jsonify({"success": True})


@auth_bp.route('/api/auth/session', methods=['GET'])
def session():
    """Restore the signed-in user, if any."""
    result = _identity().get_current_session()
    if result is None:
        return jsonify({"success": False, "user": None})
    return jsonify(result)


@auth_bp.route('/api/students', methods=['GET'])
def list_students():
    """Students a teacher can assign (?teacherId= narrows when supported)."""
    teacher_id = request.args.get("teacherId")
    students = _identity().get_students_by_teacher(teacher_id)
    return jsonify({"students": students})
