from collections.abc import Generator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.security import decode_token
from app.db.session import SessionLocal
from app.db.store import SqlCoverageStore
from app.models.user import User
from app.services.authorization import RoleAuthorizer
from app.services.coverage import CoverageCoordinator
from app.services.directory import SqlDirectory
from app.services.notifications import DatabaseNotificationSink

security = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token)
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError as exc:
        raise credentials_exception from exc

    user = db.get(User, user_id)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")
    return user


def get_authorizer() -> RoleAuthorizer:
    return RoleAuthorizer.from_settings(get_settings())


def get_coordinator(
    db: Session = Depends(get_db),
    authorizer: RoleAuthorizer = Depends(get_authorizer),
) -> CoverageCoordinator:
    settings = get_settings()
    return CoverageCoordinator(
        store=SqlCoverageStore(db),
        authorizer=authorizer,
        directory=SqlDirectory(db),
        notifier=DatabaseNotificationSink(db, realtime=settings.notification_realtime_enabled),
        settings=settings,
    )
