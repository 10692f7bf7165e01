"""
ProjectFlow Backend Package
===========================

Flask-based backend for ProjectFlow, a project and task tracker for
teachers and students.

Structure:
- models.py: Record factories (users, projects, tasks, submissions)
- storage.py: Durable key/value JSON storage
- project_store.py: Project/task/submission state and its mutations
- identity.py: Supabase-backed sign-in, sign-up and roster
- uploads.py: File to data URL conversion for submissions
- routes/: API route blueprints
- config.py: Configuration management
"""

from .config import config, Config

__version__ = "1.0.0"

__all__ = ['config', 'Config']
