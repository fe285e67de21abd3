from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from stylebook.config import get_settings
from stylebook.database import get_db
from stylebook.models.user import User
from stylebook.schemas.auth import TokenPayload
from stylebook.schemas.user import UserSyncRequest
from stylebook.services.user_service import UserService

settings = get_settings()

TOKEN_ALGORITHM = "HS256"
TOKEN_LIFETIME = timedelta(days=7)

bearer_scheme = HTTPBearer(auto_error=False)

# Headers set by a forward-auth proxy (Authelia, TinyAuth, ...)
REMOTE_USER_HEADER = "Remote-User"
REMOTE_EMAIL_HEADER = "Remote-Email"
REMOTE_NAME_HEADER = "Remote-Name"


def create_access_token(external_id: str, expires_delta: timedelta | None = None) -> str:
    issued = datetime.now(timezone.utc)
    claims = {"sub": external_id, "iat": issued, "exp": issued + (expires_delta or TOKEN_LIFETIME)}
    return jwt.encode(claims, settings.secret_key, algorithm=TOKEN_ALGORITHM)


def decode_token(token: str) -> TokenPayload:
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[TOKEN_ALGORITHM])
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
    return TokenPayload(**claims)


async def _user_from_proxy(request: Request, user_service: UserService) -> Optional[User]:
    remote_user = request.headers.get(REMOTE_USER_HEADER)
    if not remote_user:
        return None

    existing = await user_service.get_by_external_id(remote_user)
    sync_data = UserSyncRequest(
        external_id=remote_user,
        email=request.headers.get(REMOTE_EMAIL_HEADER)
        or (existing.email if existing else f"{remote_user}@example.com"),
        display_name=request.headers.get(REMOTE_NAME_HEADER)
        or (existing.display_name if existing else remote_user),
    )
    user, _ = await user_service.sync_from_provider(sync_data)
    return user


async def get_current_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Resolve the caller from forward-auth headers (when trusted) or a bearer token."""
    user_service = UserService(db)
    user = None

    if settings.auth_trust_header:
        user = await _user_from_proxy(request, user_service)

    if user is None and credentials:
        user = await user_service.get_by_external_id(decode_token(credentials.credentials).sub)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
