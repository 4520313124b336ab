# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g


def require_tenant(f):
    """
    Establish tenant context from request headers.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.tenant_id: The tenant every engine call is scoped to - REQUIRED
    - g.user_id: The acting user (recorded as creator/voider) - REQUIRED

    Authentication happens upstream; this only carries its result inward.
    Returns 401 if either header is missing.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        tenant_id = (request.headers.get("X-Tenant-Id") or "").strip()
        user_id = (request.headers.get("X-User-Id") or "").strip()

        if not tenant_id:
            return jsonify({"error": "Missing tenant context"}), 401
        if not user_id:
            return jsonify({"error": "Missing user context"}), 401

        g.tenant_id = tenant_id
        g.user_id = user_id

        return f(*args, **kwargs)

    return decorated_function
