import logging
from functools import wraps
from flask import request
from flask_login import current_user
from ims.constants import Role
from ims.errors import Unauthenticated, Forbidden

logger = logging.getLogger(__name__)


def roles_required(*roles):
    """Role gate for API views; anonymous callers get a 401."""
    allowed = {Role(r) for r in roles}

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                raise Unauthenticated("Not authorized, no token provided")

            role = Role(current_user.role)
            if role not in allowed:
                logger.warning(
                    "Forbidden | path=%s | user=%s | role=%s", request.path, current_user.id, role.value
                )
                raise Forbidden(f"User role {role.value} is not authorized to access this route")
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def bearer_token(req):
    header = req.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header.split(' ', 1)[1].strip() or None
    return None
