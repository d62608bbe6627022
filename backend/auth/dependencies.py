from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import selectinload

from backend.auth import jwt_handler
from backend.database import SessionLocal
from backend.models.user import User

security = HTTPBearer()

ADMIN_ROLES = {"admin", "super_admin"}


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except Exception as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    email = payload.get("sub")
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    db = SessionLocal()
    try:
        user = (
            db.query(User)
            .options(selectinload(User.provider))
            .filter(User.email == email)
            .first()
        )
    finally:
        db.close()
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def is_admin(user: User) -> bool:
    return (user.role or "").strip().lower() in ADMIN_ROLES


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not is_admin(current_user):
        raise HTTPException(status_code=403, detail="Admin access required")
    return current_user
