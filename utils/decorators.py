from __future__ import annotations
from functools import wraps
from flask import request, g, abort, current_app
from utils.security import InvalidAccessToken


def jwt_required():
    """
    Require a valid bearer access token. The token is trusted on signature and
    expiry alone; the caller's id is exposed as g.current_user_id.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            auth = request.headers.get("Authorization", "")
            if not auth.startswith("Bearer "):
                abort(401, description="Missing or invalid Authorization header")
            token = auth.split(" ", 1)[1].strip()
            signer = current_app.extensions["token_signer"]
            try:
                decoded = signer.decode_access_token(token)
            except InvalidAccessToken as e:
                abort(401, description=str(e))

            g.current_user_id = decoded["sub"]
            g.current_claims = decoded
            return fn(*args, **kwargs)

        return wrapper

    return decorator
