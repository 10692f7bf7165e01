"""
Record Factories
================
Builders for the records ProjectFlow stores: users, projects, tasks and
task submissions. Records are plain dicts with camelCase keys so they can be
written to and read from the JSON snapshot unchanged.

Factories only check structure (enum values, aligned assignee lists).
Form-level validation is the caller's job.
"""
import copy

USER_ROLES = ("teacher", "student")
PROJECT_STATUSES = ("active", "completed", "archived")
TASK_STATUSES = ("pending", "in_progress", "completed")

DEFAULT_AVATARS = {
    "teacher": "\U0001F469\u200d\U0001F3EB",
    "student": "\U0001F468\u200d\U0001F393",
}


def _check_choice(value, choices, field):
    if value not in choices:
        raise ValueError(f"Invalid {field}: {value!r} (expected one of {', '.join(choices)})")
    return value


def create_user(id, name, email, role, avatar=None) -> dict:
    """Build a user profile. Avatar falls back to a role default."""
    _check_choice(role, USER_ROLES, "role")
    return {
        "id": id,
        "name": name,
        "email": email,
        "role": role,
        "avatar": avatar or DEFAULT_AVATARS[role],
    }


def create_project(id, title, description, teacher_id, teacher_name, created_at,
                   deadline, status="active", tasks=None) -> dict:
    _check_choice(status, PROJECT_STATUSES, "project status")
    return {
        "id": id,
        "title": title,
        "description": description,
        "teacherId": teacher_id,
        "teacherName": teacher_name,
        "createdAt": created_at,
        "deadline": deadline,
        "status": status,
        "tasks": list(tasks) if tasks else [],
    }


def make_assignees(student_ids, student_names) -> list:
    """
    Zip student ids with their display names into assignee pairs.

    Args:
        student_ids: Ordered student ids
        student_names: Display names in the same order

    Returns:
        List of {"studentId", "studentName"} dicts
    """
    student_ids = list(student_ids or [])
    student_names = list(student_names or [])
    if len(student_ids) != len(student_names):
        raise ValueError(
            f"Got {len(student_ids)} student ids but {len(student_names)} names"
        )
    return [
        {"studentId": sid, "studentName": name}
        for sid, name in zip(student_ids, student_names)
    ]


def create_task(id, project_id, title, description, assignees, created_at,
                status="pending", deadline=None, submission=None) -> dict:
    """
    Build a task. `assignees` is a list of {"studentId", "studentName"}
    pairs (see make_assignees) and must not be empty.
    """
    _check_choice(status, TASK_STATUSES, "task status")
    if not assignees:
        raise ValueError("A task needs at least one assigned student")
    return {
        "id": id,
        "projectId": project_id,
        "title": title,
        "description": description,
        "assignees": [dict(a) for a in assignees],
        "status": status,
        "createdAt": created_at,
        "deadline": deadline,
        "submission": submission,
    }


def create_task_submission(id, task_id, student_id, student_name, file_name, file_url,
                           submitted_at, comments=None, score=None,
                           resubmission_required=False) -> dict:
    return {
        "id": id,
        "taskId": task_id,
        "studentId": student_id,
        "studentName": student_name,
        "fileName": file_name,
        "fileUrl": file_url,
        "submittedAt": submitted_at,
        "comments": comments,
        "score": score,
        "resubmissionRequired": resubmission_required,
    }


def assignee_ids(task: dict) -> list:
    """Student ids assigned to a task, in assignment order."""
    return [a["studentId"] for a in task.get("assignees", [])]


def task_view(task: dict) -> dict:
    """Copy of a task with the flat assignedTo/assignedToNames lists added."""
    view = copy.deepcopy(task)
    view["assignedTo"] = [a["studentId"] for a in task.get("assignees", [])]
    view["assignedToNames"] = [a["studentName"] for a in task.get("assignees", [])]
    return view


def project_view(project: dict) -> dict:
    """Copy of a project whose tasks carry the flat assignee lists."""
    view = copy.deepcopy(project)
    view["tasks"] = [task_view(t) for t in project.get("tasks", [])]
    return view
