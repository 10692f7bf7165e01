"""
Configuration management for the ProjectFlow backend.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Local storage location (one JSON document per storage key)
HOME_DIR = Path.home()
DATA_DIR = os.getenv("PROJECTFLOW_DATA_DIR", str(HOME_DIR / ".projectflow_data"))

# Storage keys
PROJECTS_KEY = "projectflow_projects"
SCHEMA_VERSION_KEY = "projectflow_schema_version"
USER_KEY = "projectflow_user"

# Current layout of the projects snapshot.
# 1 = parallel assignedTo/assignedToNames arrays, 2 = assignee pairs
SCHEMA_VERSION = 2

# Identity provider (Supabase)
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "")
PROFILES_TABLE = "profiles"

# Server configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
DEBUG = os.getenv("DEBUG", "false").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
AUTH_DISABLED = os.getenv("PROJECTFLOW_AUTH_DISABLED", "false").lower() in ("1", "true", "yes")

# Submissions are embedded as data URLs, so keep them small
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))


class Config:
    """Application configuration class."""

    def __init__(self):
        self.data_dir = DATA_DIR
        self.supabase_url = SUPABASE_URL
        self.supabase_anon_key = SUPABASE_ANON_KEY
        self.supabase_jwt_secret = SUPABASE_JWT_SECRET
        self.auth_disabled = AUTH_DISABLED
        self.max_upload_bytes = MAX_UPLOAD_BYTES
        self.log_level = LOG_LEVEL

    def to_dict(self):
        return {
            "data_dir": self.data_dir,
            "supabase_url": self.supabase_url,
            "auth_disabled": self.auth_disabled,
            "max_upload_bytes": self.max_upload_bytes,
            "log_level": self.log_level,
        }

    def update(self, data: dict):
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)


# Global config instance
config = Config()
