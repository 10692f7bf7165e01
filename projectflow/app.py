#!/usr/bin/env python3
"""
ProjectFlow - Project & Task Tracking for Teachers and Students
===============================================================
Run: python3 -m projectflow.app
Then call the API at: http://localhost:3000/api/
"""
import atexit
import logging

from flask import Flask
from flask_cors import CORS

from .config import config, HOST, PORT, DEBUG, SUPABASE_JWT_SECRET
from .storage import LocalStorage
from .project_store import ProjectStore
from .identity import IdentityProvider
from .auth import init_auth
from .routes import register_routes

logger = logging.getLogger(__name__)


def configure_logging(level=None):
    logging.basicConfig(
        level=getattr(logging, str(level or config.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(store=None, identity=None, config_overrides=None):
    """
    Build the Flask app.

    Args:
        store: ProjectStore to serve (built from config.data_dir when omitted)
        identity: IdentityProvider (built on the same storage when omitted)
        config_overrides: Extra Flask config values (tests use this)
    """
    app = Flask(__name__)
    app.config.update(
        SUPABASE_JWT_SECRET=config.supabase_jwt_secret or SUPABASE_JWT_SECRET,
        AUTH_DISABLED=config.auth_disabled,
        MAX_CONTENT_LENGTH=config.max_upload_bytes * 2,
    )
    if config_overrides:
        app.config.update(config_overrides)

    CORS(app)

    # ══════════════════════════════════════════════════════════════
    # AUTHENTICATION
    # ══════════════════════════════════════════════════════════════
    init_auth(app)

    # ══════════════════════════════════════════════════════════════
    # STATE
    # ══════════════════════════════════════════════════════════════
    if store is None or identity is None:
        storage = LocalStorage(config.data_dir)
        if store is None:
            store = ProjectStore(storage)
            # Final snapshot on interpreter exit
            atexit.register(store.close)
        if identity is None:
            identity = IdentityProvider(storage, url=config.supabase_url, key=config.supabase_anon_key)

    register_routes(app, store, identity)
    logger.debug("Config: %s", config.to_dict())
    logger.info("ProjectFlow app ready (%d projects)", len(store.projects))
    return app


if __name__ == '__main__':
    configure_logging()
    create_app().run(host=HOST, port=PORT, debug=DEBUG)
