"""
Project and task API routes for ProjectFlow.
Teachers create projects and tasks, score submissions and request rework;
students list their tasks and submit files.
"""
import logging
from flask import Blueprint, request, jsonify, current_app

from ..models import project_view, task_view
from ..project_store import InvalidScoreError
from ..uploads import encode_upload, reference_file

project_bp = Blueprint('projects', __name__)
logger = logging.getLogger(__name__)


def _store():
    return current_app.extensions['projectflow_store']


def _identity():
    return current_app.extensions['projectflow_identity']


def _not_found(what):
    return jsonify({"error": f"{what} not found"}), 404


@project_bp.route('/api/status', methods=['GET'])
def status():
    return jsonify({"status": "ok", "projects": len(_store().projects)})


# ============ Projects ============

@project_bp.route('/api/projects', methods=['GET'])
def list_projects():
    """List all projects, optionally filtered by ?teacherId= or ?studentId=."""
    teacher_id = request.args.get('teacherId')
    student_id = request.args.get('studentId')
    if teacher_id:
        projects = _store().get_projects_by_teacher(teacher_id)
    elif student_id:
        projects = _store().get_projects_by_student(student_id)
    else:
        projects = _store().projects
    return jsonify({"projects": [project_view(p) for p in projects]})


@project_bp.route('/api/projects', methods=['POST'])
def create_project():
    data = request.get_json(silent=True) or {}
    if not data.get('title') or not data.get('teacherId'):
        return jsonify({"error": "title and teacherId are required"}), 400
    try:
        project = _store().create_project(data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"project": project_view(project)}), 201


@project_bp.route('/api/projects/<project_id>', methods=['GET'])
def get_project(project_id):
    project = _store().get_project(project_id)
    if project is None:
        return _not_found("Project")
    return jsonify({"project": project_view(project)})


@project_bp.route('/api/projects/<project_id>', methods=['PATCH'])
def update_project(project_id):
    data = request.get_json(silent=True) or {}
    try:
        project = _store().update_project(project_id, data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    if project is None:
        return _not_found("Project")
    return jsonify({"project": project_view(project)})


@project_bp.route('/api/projects/<project_id>', methods=['DELETE'])
def delete_project(project_id):
    deleted = _store().delete_project(project_id)
    return jsonify({"status": "deleted" if deleted else "not_found"})


@project_bp.route('/api/projects/<project_id>/stats', methods=['GET'])
def project_stats(project_id):
    stats = _store().get_task_stats(project_id)
    if stats is None:
        return _not_found("Project")
    return jsonify({"stats": stats})


# ============ Tasks ============

@project_bp.route('/api/projects/<project_id>/tasks', methods=['POST'])
def add_task(project_id):
    """
    Add a task. Expects {title, description, assignedTo, status, deadline}
    and optionally assignedToNames. Every assigned id must be in the roster;
    names the client omits come from the roster.
    """
    data = request.get_json(silent=True) or {}
    assigned_to = data.get('assignedTo') or []
    if not data.get('title') or not assigned_to:
        return jsonify({"error": "title and at least one assigned student are required"}), 400

    project = _store().get_project(project_id)
    if project is None:
        return _not_found("Project")
    roster_names, unknown = _identity().resolve_student_names(assigned_to, project["teacherId"])
    if unknown:
        logger.warning("Rejected task for project %s: students not in roster: %s",
                       project_id, ", ".join(unknown))
        return jsonify({"error": "Unknown students: " + ", ".join(unknown)}), 400

    names = data.get('assignedToNames')
    if names is None:
        names = roster_names

    try:
        task = _store().add_task(project_id, data, names)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    if task is None:
        return _not_found("Project")
    return jsonify({"task": task_view(task)}), 201


@project_bp.route('/api/projects/<project_id>/tasks/<task_id>', methods=['PATCH'])
def update_task(project_id, task_id):
    data = request.get_json(silent=True) or {}
    try:
        task = _store().update_task(project_id, task_id, data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    if task is None:
        return _not_found("Task")
    return jsonify({"task": task_view(task)})


@project_bp.route('/api/projects/<project_id>/tasks/<task_id>/submit', methods=['POST'])
def submit_task(project_id, task_id):
    """
    Submit (or resubmit) a task.

    Accepts multipart form data with a `file` field, or JSON carrying
    fileName/fileUrl. Other fields: studentId, studentName, comments.
    """
    if request.files:
        form = request.form
        try:
            file_info = encode_upload(request.files.get('file'))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        data = {k: form.get(k) for k in ('studentId', 'studentName', 'comments') if form.get(k)}
    else:
        data = request.get_json(silent=True) or {}
        try:
            file_info = reference_file(data.get('fileName'), data.get('fileUrl'))
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

    if not data.get('studentId'):
        return jsonify({"error": "studentId is required"}), 400

    submission = {
        "id": data.get('id'),
        "studentId": data['studentId'],
        "studentName": data.get('studentName', ''),
        "fileName": file_info["fileName"],
        "fileUrl": file_info["fileUrl"],
        "comments": data.get('comments') or None,
        # Students submitting from the portal always clear the rework flag
        "resubmissionRequired": False,
    }
    # Scores are only set through the score endpoint; the store keeps the previous one
    task = _store().submit_task(project_id, task_id, submission)
    if task is None:
        return _not_found("Task")
    return jsonify({"task": task_view(task)})


@project_bp.route('/api/projects/<project_id>/tasks/<task_id>/score', methods=['POST'])
def score_task(project_id, task_id):
    data = request.get_json(silent=True) or {}
    try:
        submission = _store().score_task(project_id, task_id, data.get('score'))
    except InvalidScoreError as e:
        return jsonify({"error": str(e), "kind": "invalid_score"}), 400
    if submission is None:
        return _not_found("Submission")
    return jsonify({"submission": submission})


@project_bp.route('/api/projects/<project_id>/tasks/<task_id>/request-resubmission', methods=['POST'])
def request_resubmission(project_id, task_id):
    task = _store().request_resubmission(project_id, task_id)
    if task is None:
        return _not_found("Submission")
    return jsonify({"task": task_view(task)})


# ============ Dashboards ============

@project_bp.route('/api/teachers/<teacher_id>/projects', methods=['GET'])
def teacher_projects(teacher_id):
    projects = _store().get_projects_by_teacher(teacher_id)
    return jsonify({"projects": [project_view(p) for p in projects]})


@project_bp.route('/api/students/<student_id>/projects', methods=['GET'])
def student_projects(student_id):
    projects = _store().get_projects_by_student(student_id)
    return jsonify({"projects": [project_view(p) for p in projects]})


@project_bp.route('/api/students/<student_id>/tasks', methods=['GET'])
def student_tasks(student_id):
    pairs = _store().get_tasks_by_student(student_id)
    return jsonify({"tasks": [
        {"project": project_view(p["project"]), "task": task_view(p["task"])}
        for p in pairs
    ]})
