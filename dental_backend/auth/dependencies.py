from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from dental_backend.auth import jwt_handler
from dental_backend.database import get_db
from dental_backend.models.user import ROLE_ADMIN, ROLE_DENTIST, ROLE_PATIENT, User

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except Exception as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    user = db.query(User).filter(User.id == int(subject)).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def require_role(user: User, *roles: str) -> User:
    if user.role not in roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Only {' or '.join(roles)} users can do this.",
        )
    return user


def get_current_patient(current_user: User = Depends(get_current_user)) -> User:
    return require_role(current_user, ROLE_PATIENT)


def get_current_dentist(current_user: User = Depends(get_current_user)) -> User:
    return require_role(current_user, ROLE_DENTIST)


def get_current_admin(current_user: User = Depends(get_current_user)) -> User:
    return require_role(current_user, ROLE_ADMIN)
