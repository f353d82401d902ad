"""
Staff authentication.

The staff order list and every staff lifecycle command (pause, resume,
status override, prep time) sit behind HTTP Basic auth against
STAFF_USERNAME / STAFF_PASSWORD. Customers never authenticate here; their
checkout and order views are open.

With no STAFF_PASSWORD configured the staff surface answers 503 instead of
letting anyone in. Rejected attempts are logged with the username tried,
never the password.
"""

import logging
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from . import config

logger = logging.getLogger(__name__)

# One realm for all staff routes so browsers reuse the login
staff_basic = HTTPBasic(realm="Cafe Orders Staff")


def _matches(given: str, expected: str) -> bool:
    return secrets.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def verify_staff_credentials(
    credentials: HTTPBasicCredentials = Depends(staff_basic),
) -> str:
    """
    FastAPI dependency for staff routes. Returns the staff username.

    Raises:
        HTTPException (503): STAFF_PASSWORD is not set.
        HTTPException (401): Wrong username or password.
    """
    if not config.STAFF_PASSWORD:
        logger.error("Staff request refused: STAFF_PASSWORD is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Staff access is not configured",
        )

    # Both comparisons always run so timing does not reveal which one failed
    username_ok = _matches(credentials.username, config.STAFF_USERNAME)
    password_ok = _matches(credentials.password, config.STAFF_PASSWORD)

    if not (username_ok and password_ok):
        logger.warning("Rejected staff login for user %r", credentials.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid staff credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

    return credentials.username
