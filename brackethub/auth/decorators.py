"""Decorators for the auth blueprint."""

from functools import wraps

from flask import g, jsonify


def login_required(f=None, profile_required=False):
    """Reject the request with a 401 if no user is logged in.

    Usage:
    @login_required
    def protected_view():
        ...

    @login_required(profile_required=True)
    def player_view():
        ...
    """

    def decorator(func):
        @wraps(func)
        def decorated_function(*args, **kwargs):
            if g.get("user_id") is None:
                return (
                    jsonify({"status": "error", "message": "Please log in first."}),
                    401,
                )
            if profile_required and not g.get("user"):
                return (
                    jsonify(
                        {
                            "status": "error",
                            "message": "Create a profile before joining tournaments.",
                        }
                    ),
                    403,
                )
            return func(*args, **kwargs)

        return decorated_function

    if f:
        return decorator(f)
    return decorator
