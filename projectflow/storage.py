"""
Local Storage
=============
Durable key/value storage for ProjectFlow. Each key is one JSON file under
the data directory, so the projects snapshot and the signed-in user profile
can be read, replaced and removed independently.
"""
import os
import json
import logging
import tempfile

from .config import PROJECTS_KEY, SCHEMA_VERSION_KEY, SCHEMA_VERSION

logger = logging.getLogger(__name__)


class IncompatibleSnapshotError(Exception):
    """The stored snapshot was written by a newer schema version."""


class LocalStorage:
    """JSON document per key, written atomically."""

    def __init__(self, data_dir):
        self.data_dir = os.path.expanduser(str(data_dir))
        os.makedirs(self.data_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        safe_key = "".join(c for c in str(key) if c.isalnum() or c in '-_')
        if not safe_key:
            raise ValueError(f"Invalid storage key: {key!r}")
        return os.path.join(self.data_dir, f"{safe_key}.json")

    def get_item(self, key: str, default=None):
        """Return the stored value, or `default` if missing or unreadable."""
        path = self._path(key)
        if not os.path.exists(path):
            return default
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not read storage key %s: %s", key, e)
            return default

    def set_item(self, key: str, value):
        """Replace the value stored under `key`."""
        path = self._path(key)
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(value, f, indent=2)
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def remove_item(self, key: str):
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)

    def keys(self) -> list:
        return sorted(
            f[:-len('.json')] for f in os.listdir(self.data_dir)
            if f.endswith('.json')
        )


def _migrate_v1_task(task: dict) -> dict:
    """Fold parallel assignedTo/assignedToNames arrays into assignee pairs."""
    if "assignees" in task:
        return task
    ids = task.pop("assignedTo", None) or []
    names = task.pop("assignedToNames", None) or []
    # v1 data could be misaligned; fall back to the id as display name
    task["assignees"] = [
        {"studentId": sid, "studentName": names[i] if i < len(names) else sid}
        for i, sid in enumerate(ids)
    ]
    return task


def load_projects(storage: LocalStorage) -> list:
    """
    Load the projects snapshot, migrating older layouts.

    Returns:
        List of project dicts (empty when nothing is stored)

    Raises:
        IncompatibleSnapshotError: snapshot written by a newer schema
    """
    projects = storage.get_item(PROJECTS_KEY, default=None)
    if projects is None:
        return []
    if not isinstance(projects, list):
        logger.warning("Ignoring malformed projects snapshot (%s)", type(projects).__name__)
        return []

    version = storage.get_item(SCHEMA_VERSION_KEY, default=1)
    if not isinstance(version, int) or version > SCHEMA_VERSION:
        raise IncompatibleSnapshotError(
            f"Projects snapshot has schema version {version!r}; "
            f"this build reads up to {SCHEMA_VERSION}"
        )

    if version < 2:
        logger.info("Migrating projects snapshot from schema v%s to v%s", version, SCHEMA_VERSION)
        for project in projects:
            project["tasks"] = [_migrate_v1_task(t) for t in project.get("tasks", [])]

    return projects


def save_projects(storage: LocalStorage, projects: list):
    """Write the full projects snapshot and its schema version."""
    storage.set_item(PROJECTS_KEY, projects)
    storage.set_item(SCHEMA_VERSION_KEY, SCHEMA_VERSION)
