import logging
from typing import Callable, Type, TypeVar

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationFailed
from app.core.security import decode_access_token
from app.crud.user import UserCRUD
from app.db.sessions import get_async_session
from app.models.user import User


# Initialize logger for security events
logger = logging.getLogger(__name__)

# HTTPBearer is used for "Authorization: Bearer <token>" headers
oauth2_scheme = HTTPBearer(auto_error=False)

T = TypeVar("T")


async def get_current_user(
    token: HTTPAuthorizationCredentials | None = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_async_session),
) -> User:
    """
    Dependency that authenticates requests using a JWT.
    """
    if not token:
        raise AuthenticationFailed("Not authenticated")

    user_id = decode_access_token(token.credentials)

    # DATABASE VERIFICATION
    user = await UserCRUD(session).get_by_id(user_id)

    if not user:
        logger.warning(f"Auth Failure: User {user_id} not found in database.")
        raise AuthenticationFailed("User not found")

    return user


# SERVICE DEPENDENCIES

def get_service(service_cls: Type[T]) -> Callable[..., T]:
    """Build `service_cls` over the request's database session."""
    def _get(db: AsyncSession = Depends(get_async_session)) -> T:
        return service_cls(db)

    return _get
