"""Initialize the Flask app and its shared store."""

import json
import os

import firebase_admin
from firebase_admin import credentials, firestore
from flask import Flask

from .core.constants import (
    DEFAULT_FIRESTORE_COLLECTION,
    DEFAULT_STORE_BACKEND,
    NAMESPACE_PREFIX,
)
from .extensions import get_store, init_store
from .realtime import (
    FirestoreStorageArea,
    MemoryStorageArea,
    SqliteStorageArea,
    Store,
)


def _init_firebase(app):
    """Initialize the Firebase Admin SDK from the first credentials found."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        try:
            options = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")


def _create_store(app):
    """Build the storage area named by STORE_BACKEND and wrap it in a Store."""
    backend = app.config["STORE_BACKEND"]
    if backend == "memory":
        area = MemoryStorageArea()
    elif backend == "sqlite":
        area = SqliteStorageArea(app.config["STORE_PATH"])
    elif backend == "firestore":
        if not app.config.get("TESTING"):
            _init_firebase(app)
        area = FirestoreStorageArea(
            firestore.client(), app.config["FIRESTORE_COLLECTION"]
        )
    else:
        raise ValueError(f"Unknown STORE_BACKEND '{backend}'.")

    app.logger.info(f"Using {backend} storage for the realtime store.")
    return Store(area, namespace=app.config["STORE_NAMESPACE"])


def create_app(test_config=None, store=None):
    """Create and configure an instance of the Flask application.

    ``store`` replaces the store that would be built from configuration,
    so tests can share one storage area between several apps.
    """
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        STORE_BACKEND=os.environ.get("STORE_BACKEND") or DEFAULT_STORE_BACKEND,
        STORE_PATH=os.environ.get("STORE_PATH")
        or os.path.join(app.instance_path, "arenasync.sqlite3"),
        STORE_NAMESPACE=os.environ.get("STORE_NAMESPACE") or NAMESPACE_PREFIX,
        FIRESTORE_COLLECTION=os.environ.get("FIRESTORE_COLLECTION")
        or DEFAULT_FIRESTORE_COLLECTION,
    )

    if test_config:
        app.config.update(test_config)

    # Ensure the instance folder exists
    try:
        os.makedirs(app.instance_path)
    except OSError:
        pass

    init_store(app, store or _create_store(app))

    # Register blueprints
    from . import tournament as tournament_bp

    app.register_blueprint(tournament_bp.bp)

    from . import chat as chat_bp

    app.register_blueprint(chat_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def pick_up_external_changes():
        """Deliver writes made by sibling processes before handling the request."""
        get_store().poll()

    return app
