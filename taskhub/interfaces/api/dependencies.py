"""FastAPI dependency utilities."""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from taskhub.domain.entities import User
from taskhub.infrastructure.database import get_db
from taskhub.infrastructure.notifications import NotificationHub, NotificationRouter
from taskhub.infrastructure.repositories import UserRepository
from taskhub.infrastructure.security import decode_access_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def resolve_current_user(token: str, db: Session) -> User:
    """Resolve the authenticated user for the provided token."""

    try:
        payload = decode_access_token(token)
    except ValueError as exc:
        raise _credentials_exception() from exc

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise _credentials_exception()

    user = UserRepository(db).get(user_id)
    if user is None:
        raise _credentials_exception()
    return user


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Return the authenticated user from the provided token."""

    return resolve_current_user(token, db)


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Ensure the authenticated user is active."""

    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Inactive user",
        )
    return current_user


def get_notification_hub(request: Request) -> NotificationHub:
    return request.app.state.notification_hub


def get_notification_router(
    hub: NotificationHub = Depends(get_notification_hub),
) -> NotificationRouter:
    """Router that business endpoints use to emit realtime events."""

    return hub.router
