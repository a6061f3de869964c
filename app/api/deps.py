from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

import app.repositories.user as user_repo
from app.core.security import decode_token
from app.db.models.user import User
from app.domain.enums import UserStatus
from app.errors import UnauthorizedError
from app.services.notifications import Notifier

# Tokens are issued by the external auth service; we only verify them
bearer_scheme = HTTPBearer(auto_error=False)


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_db(request: Request):
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


def get_notifier(request: Request) -> Notifier | None:
    return getattr(request.app.state, "notifier", None)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Get the current authenticated user from JWT token."""
    if credentials is None:
        raise _credentials_exception("Not authenticated")

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise _credentials_exception()

    # Validate token type - must be "access" token
    if payload.get("type") != "access":
        raise _credentials_exception()

    sub = payload.get("sub")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise _credentials_exception()

    user = user_repo.get_user_by_id(db, user_id)
    if user is None:
        raise _credentials_exception("User not found")

    if user.status == UserStatus.SUSPENDED:
        raise UnauthorizedError("User is suspended")

    return user


def require_roles(*role_names: str):
    """
    Create a dependency that requires the current user to have one of the specified roles.

    Example:
        Depends(require_roles("tenant"))
        Depends(require_roles("landlord", "admin"))
    """
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in role_names:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
            )
        return current_user

    return role_checker
