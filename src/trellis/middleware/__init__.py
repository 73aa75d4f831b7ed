"""Middleware: plain ``(ctx, next)`` handlers registered with ``app.use``.

Built-in middleware:
    cors -- Cross-Origin Resource Sharing
    bearer_auth -- Signed bearer token authentication
    require_role -- Role check on the authenticated identity
"""

from trellis.middleware.auth import bearer_auth, require_role
from trellis.middleware.cors import CORSConfig, cors

__all__ = [
    "CORSConfig",
    "bearer_auth",
    "cors",
    "require_role",
]
