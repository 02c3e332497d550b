"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, response envelope, service error mapping)
lives here; every sub-router imports what it needs from this package.
"""

import logging
import os
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from sqlalchemy.exc import IntegrityError
from slowapi import Limiter
from slowapi.util import get_remote_address

from sportmanager.utils.errors import NotFoundError, ValidationErrors

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
if IS_TEST_ENV:
    limiter = Limiter(key_func=get_remote_address)

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()
else:
    limiter = Limiter(key_func=get_remote_address)

# ---------------------------------------------------------------------------
# Shared constants and helpers
# ---------------------------------------------------------------------------
INVALID_CREDENTIALS_RESPONSE = HTTPException(status_code=401, detail="Invalid email or password")
MISSING_CREDENTIALS_RESPONSE = HTTPException(status_code=400, detail="Email and password are required")


def envelope(data: Any = None, message: str = "OK", **extra) -> dict:
    """Standard success body: {success, message, data?, ...extra}."""
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    body.update(extra)
    return body


def service_error(e: Exception, action: str) -> HTTPException:
    """
    Map an exception raised by a service to an HTTPException.

    NotFoundError -> 404, PermissionError -> 403, ValidationErrors -> 400 with
    the collected messages, other ValueErrors and IntegrityError -> 400,
    anything else -> 500.
    """
    if isinstance(e, IntegrityError):
        logger.warning(f"Integrity error {action}: {e.orig}")
        return HTTPException(status_code=400, detail="Duplicate or conflicting record")
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, PermissionError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, ValidationErrors):
        return HTTPException(status_code=400, detail={"message": str(e), "errors": e.errors})
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    logger.error(f"Error {action}: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=f"Error {action}: {str(e)}")


def parse_optional_int(value: Optional[str], name: str) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{name} must be an integer")


# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from sportmanager.api.routes.health import router as health_router  # noqa: E402
from sportmanager.api.routes.auth import router as auth_router  # noqa: E402
from sportmanager.api.routes.members_auth import router as members_auth_router  # noqa: E402
from sportmanager.api.routes.players import router as players_router  # noqa: E402
from sportmanager.api.routes.coaches import router as coaches_router  # noqa: E402
from sportmanager.api.routes.sessions import router as sessions_router  # noqa: E402
from sportmanager.api.routes.subgroups import router as subgroups_router  # noqa: E402
from sportmanager.api.routes.training_sessions import router as training_sessions_router  # noqa: E402
from sportmanager.api.routes.attendance import router as attendance_router  # noqa: E402
from sportmanager.api.routes.events import router as events_router  # noqa: E402
from sportmanager.api.routes.payments import router as payments_router  # noqa: E402

router = APIRouter()
router.include_router(health_router)
router.include_router(auth_router)
router.include_router(members_auth_router)
router.include_router(players_router)
router.include_router(coaches_router)
router.include_router(sessions_router)
router.include_router(subgroups_router)
router.include_router(training_sessions_router)
router.include_router(attendance_router)
router.include_router(events_router)
router.include_router(payments_router)
