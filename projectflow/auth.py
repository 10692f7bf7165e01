"""
Supabase JWT Authentication for ProjectFlow.
Validates Bearer tokens on all /api/ routes except public endpoints.
"""
import jwt
from flask import request, jsonify, g, current_app


# Routes that don't require authentication
PUBLIC_PREFIXES = [
    '/api/auth/',          # Login, signup, logout, session restore
]

PUBLIC_EXACT = [
    '/api/status',
]


def get_jwt_secret():
    """Get the Supabase JWT secret from app config."""
    secret = current_app.config.get('SUPABASE_JWT_SECRET')
    if not secret:
        raise RuntimeError('SUPABASE_JWT_SECRET not configured')
    return secret


def validate_token(token):
    """
    Validate a Supabase JWT and return the decoded payload.
    Returns None if invalid.
    """
    try:
        payload = jwt.decode(
            token,
            get_jwt_secret(),
            algorithms=['HS256'],
            audience='authenticated',
        )
        return payload
    except jwt.InvalidTokenError:
        # Covers expiry, bad signature and wrong audience
        return None


def is_public_route(path):
    """Check if a route is public (no auth required)."""
    if path in PUBLIC_EXACT:
        return True
    for prefix in PUBLIC_PREFIXES:
        if path.startswith(prefix):
            return True
    return False


def init_auth(app):
    """
    Register the before_request auth hook on the Flask app.
    Call this BEFORE registering blueprints.
    """
    @app.before_request
    def check_auth():
        if not request.path.startswith('/api/'):
            return None

        if is_public_route(request.path):
            return None

        # Local development without Supabase
        if app.config.get('AUTH_DISABLED'):
            g.user_id = 'local-dev'
            g.user_email = ''
            g.user_role = None
            return None

        if request.method == 'OPTIONS':
            return None

        auth_header = request.headers.get('Authorization', '')
        if not auth_header.startswith('Bearer '):
            return jsonify({'error': 'Authentication required'}), 401

        token = auth_header[7:]  # Strip 'Bearer '
        payload = validate_token(token)
        if payload is None:
            return jsonify({'error': 'Invalid or expired token'}), 401

        # Attach user info to Flask's g object for use in route handlers.
        # Role comes from the signup metadata and is not verified server-side.
        g.user_id = payload.get('sub')
        g.user_email = payload.get('email', '')
        g.user_role = (payload.get('user_metadata') or {}).get('role')
