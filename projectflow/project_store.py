"""
Project Store
=============
Owns the collection of projects and every task/submission mutation.

The store is constructed explicitly and handed to whatever needs it (the
Flask app keeps it in `app.extensions`). It loads the snapshot on creation,
and every mutation ends by writing the whole collection back to local
storage. Readers always get deep copies, so outside code cannot bypass the
operations below.

Missing project/task ids never raise: lookups return None (or False for
delete). Bad input that would break an invariant raises a ValueError
subclass before anything is changed.
"""
import copy
import math
import uuid
import logging
import threading
from datetime import datetime, timezone

from .models import (
    PROJECT_STATUSES, TASK_STATUSES,
    create_project, create_task, make_assignees, assignee_ids,
)
from .storage import load_projects, save_projects

logger = logging.getLogger(__name__)

SCORE_MIN = 0.0
SCORE_MAX = 100.0

# Fields that only the store itself sets
PROJECT_PROTECTED_FIELDS = ("id", "tasks", "createdAt")
TASK_PROTECTED_FIELDS = ("id", "projectId", "createdAt", "submission")


class InvalidScoreError(ValueError):
    """Score input was not a number in [0, 100]."""


class InvalidStatusError(ValueError):
    """Status change would break the task completion rule."""


def _utc_now_iso():
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def _new_id():
    return uuid.uuid4().hex


def parse_score(raw_score) -> float:
    """
    Parse a teacher-entered score.

    Accepts numbers or numeric strings ("77", " 82.5 ").

    Raises:
        InvalidScoreError: not numeric, not finite, or outside [0, 100]
    """
    if raw_score is None or isinstance(raw_score, bool):
        raise InvalidScoreError(f"Score must be a number, got {raw_score!r}")
    try:
        score = float(str(raw_score).strip())
    except ValueError:
        raise InvalidScoreError(f"Score must be a number, got {raw_score!r}")
    if not math.isfinite(score):
        raise InvalidScoreError(f"Score must be a finite number, got {raw_score!r}")
    if score < SCORE_MIN or score > SCORE_MAX:
        raise InvalidScoreError(f"Score must be between 0 and 100, got {score:g}")
    return score


class ProjectStore:
    """In-memory project collection with write-through persistence."""

    def __init__(self, storage, clock=None, id_factory=None):
        """
        Args:
            storage: LocalStorage used for the snapshot
            clock: callable returning an ISO timestamp (defaults to UTC now)
            id_factory: callable returning a fresh unique id
        """
        self.storage = storage
        self._clock = clock or _utc_now_iso
        self._new_id = id_factory or _new_id
        self._lock = threading.RLock()
        self._projects = load_projects(storage)
        logger.info("Loaded %d project(s) from storage", len(self._projects))

    # ══════════════════════════════════════════════════════════════
    # INTERNAL HELPERS
    # ══════════════════════════════════════════════════════════════

    def _persist(self):
        save_projects(self.storage, self._projects)

    def _fresh_id(self, taken):
        new_id = self._new_id()
        while new_id in taken:
            new_id = self._new_id()
        return new_id

    def _find_project(self, project_id):
        for project in self._projects:
            if project["id"] == project_id:
                return project
        return None

    def _find_task(self, project_id, task_id):
        project = self._find_project(project_id)
        if project is None:
            return None
        for task in project["tasks"]:
            if task["id"] == task_id:
                return task
        return None

    def close(self):
        """Write the final snapshot."""
        with self._lock:
            self._persist()

    # ══════════════════════════════════════════════════════════════
    # PROJECTS
    # ══════════════════════════════════════════════════════════════

    def create_project(self, data: dict) -> dict:
        """
        Create a project from {title, description, teacherId, teacherName,
        deadline, status}. Id, createdAt and the empty task list are set here.
        """
        with self._lock:
            project = create_project(
                self._fresh_id({p["id"] for p in self._projects}),
                data.get("title", ""),
                data.get("description", ""),
                data.get("teacherId"),
                data.get("teacherName", ""),
                self._clock(),
                data.get("deadline"),
                status=data.get("status") or "active",
            )
            self._projects.append(project)
            self._persist()
            logger.info("Created project %s (%s)", project["id"], project["title"])
            return copy.deepcopy(project)

    def update_project(self, project_id, updates: dict):
        """Merge `updates` into a project. Returns the project or None."""
        with self._lock:
            project = self._find_project(project_id)
            if project is None:
                logger.debug("update_project: no project %s", project_id)
                return None
            changes = {k: v for k, v in updates.items() if k not in PROJECT_PROTECTED_FIELDS}
            if "status" in changes and changes["status"] not in PROJECT_STATUSES:
                raise ValueError(f"Invalid project status: {changes['status']!r}")
            project.update(changes)
            self._persist()
            logger.info("Updated project %s: %s", project_id, ", ".join(sorted(changes)) or "no changes")
            return copy.deepcopy(project)

    def delete_project(self, project_id) -> bool:
        """Remove a project with all its tasks. Deleting a missing id is a no-op."""
        with self._lock:
            remaining = [p for p in self._projects if p["id"] != project_id]
            if len(remaining) == len(self._projects):
                logger.debug("delete_project: no project %s", project_id)
                return False
            self._projects = remaining
            self._persist()
            logger.info("Deleted project %s", project_id)
            return True

    # ══════════════════════════════════════════════════════════════
    # TASKS
    # ══════════════════════════════════════════════════════════════

    def add_task(self, project_id, task_data: dict, student_names=None):
        """
        Append a task to a project.

        Args:
            project_id: Parent project id
            task_data: {title, description, assignedTo, status, deadline}
            student_names: Display names aligned with task_data["assignedTo"]

        Returns:
            The new task, or None if the project does not exist
        """
        with self._lock:
            project = self._find_project(project_id)
            if project is None:
                logger.debug("add_task: no project %s", project_id)
                return None
            assignees = make_assignees(task_data.get("assignedTo"), student_names)
            task = create_task(
                self._fresh_id({t["id"] for t in project["tasks"]}),
                project_id,
                task_data.get("title", ""),
                task_data.get("description", ""),
                assignees,
                self._clock(),
                status=task_data.get("status") or "pending",
                deadline=task_data.get("deadline"),
            )
            project["tasks"].append(task)
            self._persist()
            logger.info("Added task %s to project %s (%d assignee(s))",
                        task["id"], project_id, len(assignees))
            return copy.deepcopy(task)

    def update_task(self, project_id, task_id, updates: dict):
        """Merge `updates` into one task. Returns the task or None."""
        with self._lock:
            task = self._find_task(project_id, task_id)
            if task is None:
                logger.debug("update_task: no task %s in project %s", task_id, project_id)
                return None

            changes = {k: v for k, v in updates.items() if k not in TASK_PROTECTED_FIELDS}

            # Accept the flat id/name lists as well as assignee pairs
            if "assignedTo" in changes or "assignedToNames" in changes:
                changes["assignees"] = make_assignees(
                    changes.pop("assignedTo", assignee_ids(task)),
                    changes.pop("assignedToNames", None),
                )
            if "assignees" in changes:
                if not changes["assignees"]:
                    raise ValueError("A task needs at least one assigned student")
                changes["assignees"] = [
                    {"studentId": a["studentId"], "studentName": a["studentName"]}
                    for a in changes["assignees"]
                ]

            if "status" in changes:
                status = changes["status"]
                if status not in TASK_STATUSES:
                    raise ValueError(f"Invalid task status: {status!r}")
                submission = task.get("submission")
                if status == "completed" and (
                        not submission or submission.get("resubmissionRequired")):
                    raise InvalidStatusError(
                        "A task can only be completed once an accepted submission exists"
                    )

            task.update(changes)
            self._persist()
            logger.info("Updated task %s in project %s: %s",
                        task_id, project_id, ", ".join(sorted(changes)) or "no changes")
            return copy.deepcopy(task)

    # ══════════════════════════════════════════════════════════════
    # SUBMISSIONS
    # ══════════════════════════════════════════════════════════════

    def submit_task(self, project_id, task_id, submission: dict):
        """
        Set or replace a task's submission.

        - A submission without a score keeps the previous score.
        - A supplied score must be a number in [0, 100].
        - resubmissionRequired explicitly False completes the task;
          anything else leaves it in progress.
        - A resubmission keeps the first submission id.

        Returns:
            The updated task, or None if it does not exist

        Raises:
            InvalidScoreError: the supplied score is not a number in [0, 100]
        """
        with self._lock:
            task = self._find_task(project_id, task_id)
            if task is None:
                logger.debug("submit_task: no task %s in project %s", task_id, project_id)
                return None

            score = submission.get("score")
            if score is not None:
                score = parse_score(score)

            previous = task.get("submission") or {}
            new_submission = copy.deepcopy(submission)

            if previous.get("id"):
                new_submission["id"] = previous["id"]
            elif not new_submission.get("id"):
                new_submission["id"] = self._new_id()
            new_submission["taskId"] = task_id
            new_submission.setdefault("submittedAt", self._clock())
            new_submission.setdefault("comments", None)

            new_submission["score"] = score if score is not None else previous.get("score")

            accepted = "resubmissionRequired" in submission and submission["resubmissionRequired"] is False
            new_submission["resubmissionRequired"] = bool(submission.get("resubmissionRequired", False))

            task["submission"] = new_submission
            task["status"] = "completed" if accepted else "in_progress"
            self._persist()
            logger.info("Submission %s for task %s by %s (%s)",
                        new_submission["id"], task_id, new_submission.get("studentId"),
                        "resubmitted" if previous else "first submission")
            return copy.deepcopy(task)

    def score_task(self, project_id, task_id, raw_score):
        """
        Record a score on a task's submission.

        Returns:
            The updated submission, or None if there is no submission to score

        Raises:
            InvalidScoreError: raw_score is not a number in [0, 100]
        """
        with self._lock:
            task = self._find_task(project_id, task_id)
            if task is None or not task.get("submission"):
                logger.debug("score_task: nothing to score for task %s in project %s", task_id, project_id)
                return None
            score = parse_score(raw_score)
            task["submission"]["score"] = score
            self._persist()
            logger.info("Scored task %s in project %s: %g", task_id, project_id, score)
            return copy.deepcopy(task["submission"])

    def request_resubmission(self, project_id, task_id):
        """Flag a submission for rework and move the task back to in_progress."""
        with self._lock:
            task = self._find_task(project_id, task_id)
            if task is None or not task.get("submission"):
                logger.debug("request_resubmission: no submission for task %s in project %s",
                             task_id, project_id)
                return None
            task["submission"]["resubmissionRequired"] = True
            task["status"] = "in_progress"
            self._persist()
            logger.info("Resubmission requested for task %s in project %s", task_id, project_id)
            return copy.deepcopy(task)

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @property
    def projects(self) -> list:
        with self._lock:
            return copy.deepcopy(self._projects)

    def get_project(self, project_id):
        with self._lock:
            project = self._find_project(project_id)
            return copy.deepcopy(project) if project is not None else None

    def get_task(self, project_id, task_id):
        with self._lock:
            task = self._find_task(project_id, task_id)
            return copy.deepcopy(task) if task is not None else None

    def get_projects_by_teacher(self, teacher_id) -> list:
        with self._lock:
            return [copy.deepcopy(p) for p in self._projects if p["teacherId"] == teacher_id]

    def get_projects_by_student(self, student_id) -> list:
        """Projects with at least one task assigned to the student."""
        with self._lock:
            return [
                copy.deepcopy(p) for p in self._projects
                if any(student_id in assignee_ids(t) for t in p["tasks"])
            ]

    def get_tasks_by_student(self, student_id) -> list:
        """All {project, task} pairs for a student, in project then task order."""
        with self._lock:
            result = []
            for project in self._projects:
                for task in project["tasks"]:
                    if student_id in assignee_ids(task):
                        result.append({
                            "project": copy.deepcopy(project),
                            "task": copy.deepcopy(task),
                        })
            return result

    def get_task_stats(self, project_id):
        """Task counts by status for one project, or None if it does not exist."""
        with self._lock:
            project = self._find_project(project_id)
            if project is None:
                return None
            statuses = [t["status"] for t in project["tasks"]]
            return {
                "total": len(statuses),
                "completed": statuses.count("completed"),
                "in_progress": statuses.count("in_progress"),
                "pending": statuses.count("pending"),
            }
