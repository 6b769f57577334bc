import logging
import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from app.core.config import settings
from app.core.exceptions import AuthenticationFailed


# Initialize logger for tracking token events
logger = logging.getLogger(__name__)


# ----- JWT --------

def create_access_token(user) -> str:
    """
    Generates a short-lived JWT Access Token.

    Token issuance belongs to the account service; this helper only exists
    so the seed script and the test-suite can act as a signed-in user.

    Payload:
    - sub: The User UUID (Standard subject claim)
    - type: Always "access"
    - email: Included for quick frontend display without a DB lookup
    - role: The role of the user
    - exp: Expiration timestamp
    """

    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.access_token_expire_minutes)

    # UUID objects aren't JSON serializable by default
    payload = {
        "sub": str(user.id),
        "type": "access",
        "email": str(user.email),
        "role": user.role.value,
        "iat": now,
        "exp": expire,
    }

    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    logger.debug(f"JWT: Access token created for user {user.id}")
    return token


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verifies an access token and returns the user id it was issued for.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"leeway": 30},
        )
    except JWTError:
        logger.warning("JWT Decode Failed")
        raise AuthenticationFailed("Token is invalid or has expired")

    if payload.get("type") != "access":
        raise AuthenticationFailed("Invalid token type")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise AuthenticationFailed("Invalid authentication token")

    try:
        return uuid.UUID(user_id_str)
    except (ValueError, AttributeError):
        raise AuthenticationFailed("Invalid user identifier format")
