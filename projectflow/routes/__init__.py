"""
ProjectFlow API Routes
======================

All API route blueprints for the ProjectFlow application.

Usage:
    from projectflow.routes import register_routes
    register_routes(app, store, identity)
"""
from .auth_routes import auth_bp
from .project_routes import project_bp


def register_routes(app, store, identity):
    """Attach the store and identity adapter, then register all blueprints."""

    app.extensions['projectflow_store'] = store
    app.extensions['projectflow_identity'] = identity

    app.register_blueprint(auth_bp)
    app.register_blueprint(project_bp)


__all__ = [
    'register_routes',
    'auth_bp',
    'project_bp',
]
