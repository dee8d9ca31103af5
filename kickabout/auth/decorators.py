"""Decorators for the auth blueprint."""

from functools import wraps

from flask import g

from kickabout.errors import AuthenticationError


def login_required(f=None):
    """Reject the request unless an actor was resolved for it.

    Usage:
    @login_required
    def protected_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if getattr(g, "user", None) is None:
                raise AuthenticationError(
                    "You are not logged in! Please log in to get access."
                )
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator


def current_user_id():
    """Return the uid of the acting user."""
    return g.user["uid"]
