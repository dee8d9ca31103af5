"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials, firestore
from firebase_admin import exceptions as firebase_exceptions
from flask import Flask, current_app, g, request, session
from google.api_core import exceptions as google_exceptions
from werkzeug.middleware.proxy_fix import ProxyFix

from .core.constants import USERS_COLLECTION
from .extensions import csrf, mail


def _env_flag(name, default):
    return (os.environ.get(name) or default).lower() in ["true", "1", "t"]


def _load_credentials(app):
    """Return ``(credential, project_id)`` from the first source that works.

    Sources, in order: the FIREBASE_CREDENTIALS_JSON environment variable, a
    firebase_credentials.json file beside the package, then the application
    default credentials of the runtime.
    """
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            return credentials.Certificate(cred_info), cred_info.get("project_id")
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Ignoring malformed FIREBASE_CREDENTIALS_JSON: {e}")

    cred_path = os.path.join(
        os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
    )
    if os.path.exists(cred_path):
        try:
            with open(cred_path, "r") as f:
                project_id = json.load(f).get("project_id")
            return credentials.Certificate(cred_path), project_id
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Ignoring unreadable {cred_path}: {e}")

    try:
        return credentials.ApplicationDefault(), os.environ.get("FIREBASE_PROJECT_ID")
    except Exception as e:
        app.logger.error(f"No Firebase credentials found: {e}")
        return None, None


def _init_firebase(app):
    """Initialize the Firebase Admin SDK once per process."""
    if firebase_admin._apps:
        return
    cred, project_id = _load_credentials(app)
    if cred is None:
        return
    options = {"projectId": project_id} if project_id else {}
    try:
        firebase_admin.initialize_app(cred, options)
    except ValueError:
        app.logger.info("Firebase app already initialized.")


def _uid_from_bearer_token():
    """Return the uid carried by a Firebase ID token in the Authorization header."""
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    id_token = header.split(" ", 1)[1].strip()
    if not id_token:
        return None
    try:
        decoded_token = firebase_auth.verify_id_token(id_token)
    except (ValueError, firebase_exceptions.FirebaseError) as e:
        current_app.logger.warning(f"Rejected bearer token: {e}")
        return None
    return decoded_token.get("uid")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        MAIL_SERVER=os.environ.get("MAIL_SERVER") or "smtp.gmail.com",
        MAIL_PORT=int(os.environ.get("MAIL_PORT") or 587),
        MAIL_USE_TLS=_env_flag("MAIL_USE_TLS", "true"),
        MAIL_USE_SSL=_env_flag("MAIL_USE_SSL", "false"),
        MAIL_USERNAME=os.environ.get("MAIL_USERNAME"),
        MAIL_PASSWORD=os.environ.get("MAIL_PASSWORD"),
        MAIL_DEFAULT_SENDER=os.environ.get("MAIL_DEFAULT_SENDER")
        or "noreply@kickabout.app",
        MEETUP_TRANSACTION_MAX_ATTEMPTS=int(
            os.environ.get("MEETUP_TRANSACTION_MAX_ATTEMPTS") or 5
        ),
        DEFAULT_PAGE_SIZE=int(os.environ.get("DEFAULT_PAGE_SIZE") or 20),
        MAX_PAGE_SIZE=int(os.environ.get("MAX_PAGE_SIZE") or 100),
        NOTIFY_WAITLIST_PROMOTION=_env_flag("NOTIFY_WAITLIST_PROMOTION", "true"),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _init_firebase(app)

    # Initialize extensions
    mail.init_app(app)
    csrf.init_app(app)

    from . import auth, error_handlers, game, group, meetup, stats

    api_blueprints = (auth.bp, group.bp, meetup.bp, game.bp, stats.bp)
    for blueprint in api_blueprints:
        app.register_blueprint(blueprint)
        # JSON clients authenticate with the session cookie or a bearer token.
        csrf.exempt(blueprint)
    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def load_logged_in_user():
        """Resolve the actor of the request into g.user, or leave it None."""
        g.user = None
        user_id = session.get("user_id") or _uid_from_bearer_token()
        if user_id is None:
            return

        try:
            db = firestore.client()
            user_doc = db.collection(USERS_COLLECTION).document(user_id).get()
        except google_exceptions.GoogleAPICallError as e:
            current_app.logger.error(f"Could not load user {user_id}: {e}")
            session.clear()
            return

        if not user_doc.exists:
            current_app.logger.warning(f"Unknown user {user_id}; clearing session.")
            session.clear()
            return
        g.user = user_doc.to_dict() or {}
        g.user["uid"] = user_id

    @app.route("/health")
    def health_check():
        """Perform a simple health check."""
        return "OK", 200

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
