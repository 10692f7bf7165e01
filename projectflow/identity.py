"""
Identity Provider for ProjectFlow.
Wraps Supabase auth and the `profiles` table: sign-in, sign-up, session
restore, sign-out and the student roster.

Every operation returns an explicit result dict instead of raising:
    {"success": True, "user": {...}}
    {"success": False, "error": "<message>", "kind": "<error kind>"}
"""
import os
import logging

import httpx
from supabase import create_client, AuthError, AuthRetryableError

from .config import USER_KEY, PROFILES_TABLE
from .models import USER_ROLES, create_user

logger = logging.getLogger(__name__)

# Error kinds surfaced to callers
INVALID_CREDENTIALS = "invalid_credentials"
EMAIL_TAKEN = "email_taken"
WEAK_PASSWORD = "weak_password"
MISSING_FIELDS = "missing_fields"
INVALID_ROLE = "invalid_role"
PROFILE_NOT_FOUND = "profile_not_found"
NETWORK_UNAVAILABLE = "network_unavailable"
AUTH_FAILURE = "auth_failure"

ERROR_MESSAGES = {
    INVALID_CREDENTIALS: "Invalid email or password",
    EMAIL_TAKEN: "An account with this email already exists",
    WEAK_PASSWORD: "Password is too weak. Use at least 6 characters.",
    MISSING_FIELDS: "All fields are required",
    INVALID_ROLE: "Role must be teacher or student",
    PROFILE_NOT_FOUND: "Profile not found",
    NETWORK_UNAVAILABLE: "Could not reach the sign-in service. Check your connection and try again.",
    AUTH_FAILURE: "Authentication failed. Please try again.",
}

# Supabase error codes (newer API versions) mapped to error kinds
_CODE_KINDS = {
    "invalid_credentials": INVALID_CREDENTIALS,
    "email_not_confirmed": INVALID_CREDENTIALS,
    "user_already_exists": EMAIL_TAKEN,
    "email_exists": EMAIL_TAKEN,
    "weak_password": WEAK_PASSWORD,
}

# Message fragments for older API versions without error codes
_MESSAGE_KINDS = [
    ("invalid login credentials", INVALID_CREDENTIALS),
    ("already registered", EMAIL_TAKEN),
    ("already exists", EMAIL_TAKEN),
    ("password should be", WEAK_PASSWORD),
    ("weak password", WEAK_PASSWORD),
]


def failure(kind, message=None) -> dict:
    return {"success": False, "error": message or ERROR_MESSAGES[kind], "kind": kind}


def success(user) -> dict:
    return {"success": True, "user": user}


def classify_auth_error(error) -> str:
    """Map a Supabase auth error to one of the error kinds above."""
    if isinstance(error, AuthRetryableError):
        return NETWORK_UNAVAILABLE
    code = getattr(error, "code", None)
    if code in _CODE_KINDS:
        return _CODE_KINDS[code]
    message = str(getattr(error, "message", "") or error).lower()
    for fragment, kind in _MESSAGE_KINDS:
        if fragment in message:
            return kind
    return AUTH_FAILURE


class IdentityProvider:
    """Supabase-backed identity adapter that remembers the signed-in user."""

    def __init__(self, storage, client=None, url=None, key=None):
        """
        Args:
            storage: LocalStorage that keeps the signed-in user snapshot
            client: Supabase client (created lazily from url/key when omitted)
        """
        self.storage = storage
        self._client = client
        self._url = url
        self._key = key

    def _get_client(self):
        """Get or create the Supabase client."""
        if self._client is None:
            url = self._url or os.getenv("SUPABASE_URL")
            key = self._key or os.getenv("SUPABASE_ANON_KEY")
            if not url or not key:
                raise RuntimeError("Supabase credentials not configured. Check SUPABASE_URL and SUPABASE_ANON_KEY in .env")
            self._client = create_client(url, key)
        return self._client

    def _call(self, action, fn):
        """Run one provider request and turn failures into a result dict."""
        try:
            return fn()
        except httpx.TransportError as e:
            logger.warning("%s: identity provider unreachable: %s", action, e)
            return failure(NETWORK_UNAVAILABLE)
        except AuthError as e:
            kind = classify_auth_error(e)
            logger.warning("%s failed (%s): %s", action, kind, e)
            if kind == AUTH_FAILURE:
                return failure(kind, getattr(e, "message", None) or str(e) or None)
            return failure(kind)
        except Exception as e:
            logger.error("%s failed: %s", action, str(e))
            return failure(AUTH_FAILURE)

    def _fetch_profile(self, user_id):
        res = (self._get_client().table(PROFILES_TABLE)
               .select("*").eq("id", user_id).limit(1).execute())
        rows = res.data or []
        if not rows:
            return None
        row = rows[0]
        return create_user(row["id"], row.get("name", ""), row.get("email", ""),
                           row.get("role"), row.get("avatar"))

    def _remember(self, user):
        self.storage.set_item(USER_KEY, user)

    # ══════════════════════════════════════════════════════════════
    # SESSION
    # ══════════════════════════════════════════════════════════════

    def sign_in(self, email, password) -> dict:
        if not email or not password:
            return failure(MISSING_FIELDS)

        def _sign_in():
            res = self._get_client().auth.sign_in_with_password(
                {"email": email, "password": password})
            profile = self._fetch_profile(res.user.id)
            if profile is None:
                logger.warning("Signed in %s but no profile row exists", email)
                return failure(PROFILE_NOT_FOUND)
            self._remember(profile)
            logger.info("User signed in: %s (%s)", profile["email"], profile["role"])
            return success(profile)

        return self._call("sign_in", _sign_in)

    def sign_up(self, name, email, password, role) -> dict:
        if not name or not email or not password or not role:
            return failure(MISSING_FIELDS)
        if role not in USER_ROLES:
            return failure(INVALID_ROLE)

        def _sign_up():
            client = self._get_client()
            res = client.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"name": name, "role": role}},
            })
            user = create_user(res.user.id, name, email, role)
            client.table(PROFILES_TABLE).insert(user).execute()
            self._remember(user)
            logger.info("User signed up: %s (%s)", email, role)
            return success(user)

        return self._call("sign_up", _sign_up)

    def get_current_session(self):
        """
        Restore the signed-in user.

        Returns:
            success(user) or None when nobody is signed in. If the provider
            cannot be reached, the stored user snapshot is used instead.
        """
        def _restore():
            res = self._get_client().auth.get_user()
            if not res or not res.user:
                return None
            profile = self._fetch_profile(res.user.id)
            if profile is None:
                return None
            self._remember(profile)
            return success(profile)

        try:
            result = _restore()
        except httpx.TransportError as e:
            stored = self.storage.get_item(USER_KEY)
            logger.warning("Session restore offline, using stored user: %s", e)
            return success(stored) if stored else None
        except AuthError as e:
            if isinstance(e, AuthRetryableError):
                stored = self.storage.get_item(USER_KEY)
                return success(stored) if stored else None
            logger.info("No active session: %s", e)
            result = None
        except Exception as e:
            logger.error("Session restore failed: %s", str(e))
            result = None

        if result is None:
            self.storage.remove_item(USER_KEY)
        return result

    def sign_out(self):
        """Forget the stored user; a failed provider call is only logged."""
        self.storage.remove_item(USER_KEY)
        try:
            self._get_client().auth.sign_out()
        except Exception as e:
            logger.warning("Provider sign-out failed: %s", str(e))

    @property
    def current_user(self):
        return self.storage.get_item(USER_KEY)

    # ══════════════════════════════════════════════════════════════
    # ROSTER
    # ══════════════════════════════════════════════════════════════

    def list_profiles(self) -> list:
        """All profiles visible to the signed-in user ([] on failure)."""
        try:
            res = (self._get_client().table(PROFILES_TABLE)
                   .select("id,name,email,role,avatar").execute())
        except Exception as e:
            logger.error("Could not load profiles: %s", str(e))
            return []
        profiles = []
        for row in res.data or []:
            if row.get("role") not in USER_ROLES:
                logger.debug("Skipping profile %s with role %r", row.get("id"), row.get("role"))
                continue
            profiles.append(create_user(row["id"], row.get("name", ""), row.get("email", ""),
                                        row["role"], row.get("avatar")))
        return profiles

    def get_students(self) -> list:
        return [p for p in self.list_profiles() if p["role"] == "student"]

    def get_students_by_teacher(self, teacher_id) -> list:
        # No class membership table exists yet, so every teacher sees all students
        return self.get_students()

    def resolve_student_names(self, student_ids, teacher_id=None):
        """
        Look up display names for student ids in the roster.

        Returns:
            (names, unknown_ids): names aligned with student_ids, and the ids
            that are not in the roster
        """
        roster = {s["id"]: s["name"] for s in self.get_students_by_teacher(teacher_id)}
        names = [roster.get(sid) for sid in student_ids]
        unknown = [sid for sid in student_ids if sid not in roster]
        return names, unknown
