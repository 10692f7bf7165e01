"""
Test: Record factories and task views.
"""
import pytest
from projectflow.models import (
    create_user, create_project, create_task, create_task_submission,
    make_assignees, assignee_ids, task_view, project_view, DEFAULT_AVATARS,
)


class TestCreateUser:
    def test_fields(self):
        user = create_user("S1", "Alice", "alice@example.com", "student", "A")
        assert user == {"id": "S1", "name": "Alice", "email": "alice@example.com",
                        "role": "student", "avatar": "A"}

    def test_default_avatar_by_role(self):
        assert create_user("T1", "T", "t@x", "teacher")["avatar"] == DEFAULT_AVATARS["teacher"]
        assert create_user("S1", "S", "s@x", "student")["avatar"] == DEFAULT_AVATARS["student"]

    def test_rejects_unknown_role(self):
        with pytest.raises(ValueError):
            create_user("A1", "Admin", "a@x", "admin")


class TestCreateProject:
    def test_defaults(self):
        project = create_project("P1", "Title", "Desc", "T1", "Teacher", "2024-01-01", "2024-02-01")
        assert project["status"] == "active"
        assert project["tasks"] == []
        assert project["teacherId"] == "T1"

    def test_tasks_list_is_copied(self):
        tasks = []
        project = create_project("P1", "T", "D", "T1", "N", "c", "d", tasks=tasks)
        project["tasks"].append({"id": "x"})
        assert tasks == []

    def test_rejects_unknown_status(self):
        with pytest.raises(ValueError):
            create_project("P1", "T", "D", "T1", "N", "c", "d", status="paused")


class TestAssignees:
    def test_pairs_keep_order(self):
        pairs = make_assignees(["S2", "S1"], ["Bob", "Alice"])
        assert pairs == [
            {"studentId": "S2", "studentName": "Bob"},
            {"studentId": "S1", "studentName": "Alice"},
        ]

    def test_mismatched_lengths(self):
        with pytest.raises(ValueError):
            make_assignees(["S1", "S2"], ["Alice"])

    def test_missing_names(self):
        with pytest.raises(ValueError):
            make_assignees(["S1"], None)


class TestCreateTask:
    def test_defaults(self):
        task = create_task("K1", "P1", "T", "D", make_assignees(["S1"], ["Alice"]), "c")
        assert task["status"] == "pending"
        assert task["deadline"] is None
        assert task["submission"] is None
        assert task["projectId"] == "P1"

    def test_requires_assignees(self):
        with pytest.raises(ValueError):
            create_task("K1", "P1", "T", "D", [], "c")

    def test_rejects_unknown_status(self):
        with pytest.raises(ValueError):
            create_task("K1", "P1", "T", "D", make_assignees(["S1"], ["A"]), "c", status="done")


class TestCreateTaskSubmission:
    def test_defaults(self):
        sub = create_task_submission("X1", "K1", "S1", "Alice", "a.pdf", "/a.pdf", "t")
        assert sub["comments"] is None
        assert sub["score"] is None
        assert sub["resubmissionRequired"] is False


class TestViews:
    def test_task_view_adds_flat_lists(self):
        task = create_task("K1", "P1", "T", "D", make_assignees(["S1", "S2"], ["Alice", "Bob"]), "c")
        view = task_view(task)
        assert view["assignedTo"] == ["S1", "S2"]
        assert view["assignedToNames"] == ["Alice", "Bob"]
        assert "assignedTo" not in task

    def test_assignee_ids(self):
        task = create_task("K1", "P1", "T", "D", make_assignees(["S3"], ["Cara"]), "c")
        assert assignee_ids(task) == ["S3"]

    def test_project_view(self):
        task = create_task("K1", "P1", "T", "D", make_assignees(["S1"], ["Alice"]), "c")
        project = create_project("P1", "T", "D", "T1", "N", "c", "d", tasks=[task])
        view = project_view(project)
        assert view["tasks"][0]["assignedToNames"] == ["Alice"]
        assert "assignedToNames" not in project["tasks"][0]
