"""
Admin authentication for account maintenance operations.

Admin credentials come from configuration (ADMIN_API_KEYS, comma-separated)
and are presented in the X-Admin-Key header. Several keys may be valid at
once so a key can be rotated without downtime.

Security guarantees:
- No credential is compiled into the code
- Keys are compared in constant time
- The audited actor is a hash prefix of the key, never the key itself
"""
import hashlib
import hmac
from dataclasses import dataclass
from typing import List, Optional

from fastapi import Request

from repurpose.core.config import settings
from repurpose.core.errors import PermissionError, ServiceUnavailableError

ADMIN_KEY_HEADER = "X-Admin-Key"


@dataclass(frozen=True)
class AdminActor:
    """Represents an authenticated admin credential."""
    actor_id: str  # "key:<hash>"
    auth_mechanism: str = "x_admin_key"


def actor_id_for_key(key: str) -> str:
    key_hash = hashlib.sha256(key.encode()).hexdigest()[:16]
    return f"key:{key_hash}"


def match_admin_key(presented: str, configured: List[str]) -> Optional[str]:
    """Return the configured key equal to `presented`, or None.

    Every configured key is compared so the timing does not reveal which
    position matched.
    """
    matched = None
    presented_bytes = presented.encode()
    for key in configured:
        if hmac.compare_digest(presented_bytes, key.encode()):
            matched = key
    return matched


def require_admin(request: Request) -> AdminActor:
    """
    FastAPI dependency: Require an admin credential.

    Usage:
        @router.post("/admin/upgrade")
        def upgrade(actor: AdminActor = Depends(require_admin)):
            ...

    Raises:
        ServiceUnavailableError 503: No admin keys configured
        PermissionError 403: Missing or wrong key
    """
    configured = settings.admin_keys()
    if not configured:
        raise ServiceUnavailableError(
            "Admin authentication not configured",
            code="admin_auth_unconfigured",
        )

    presented = request.headers.get(ADMIN_KEY_HEADER, "").strip()
    if not presented:
        raise PermissionError("Invalid admin secret")

    matched = match_admin_key(presented, configured)
    if matched is None:
        raise PermissionError("Invalid admin secret")

    return AdminActor(actor_id=actor_id_for_key(matched))
