"""Routes for the auth blueprint."""

from firebase_admin import auth as firebase_auth
from firebase_admin import firestore
from firebase_admin import exceptions as firebase_exceptions
from flask import current_app, jsonify, request, session

from kickabout.core.constants import USERS_COLLECTION
from kickabout.errors import AuthenticationError, NotFoundError, ValidationError

from . import bp


@bp.route("/session_login", methods=["POST"])
def session_login():
    """Exchange a Firebase ID token for a server-side session.

    The client signs in with the Firebase SDK and posts the resulting ID token
    here; subsequent requests can then rely on the session cookie.
    """
    payload = request.get_json(silent=True) or {}
    id_token = payload.get("idToken")
    if not id_token:
        raise ValidationError("idToken is required.")

    try:
        decoded_token = firebase_auth.verify_id_token(id_token)
    except (ValueError, firebase_exceptions.FirebaseError) as e:
        current_app.logger.error(f"Error during session login: {e}")
        raise AuthenticationError("Invalid token.") from e

    uid = decoded_token["uid"]
    db = firestore.client()
    user_doc = db.collection(USERS_COLLECTION).document(uid).get()
    if not user_doc.exists:
        raise NotFoundError("User not found.")

    session["user_id"] = uid
    return jsonify({"status": "success", "data": {"uid": uid}})


@bp.route("/logout", methods=["POST"])
def logout():
    """Clear the server-side session."""
    session.clear()
    return jsonify({"status": "success", "data": None})
