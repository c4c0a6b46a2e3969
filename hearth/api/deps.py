"""
FastAPI dependencies (DB session, authentication)
"""
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from hearth.infrastructure.db.session import get_db as _get_db
from hearth.infrastructure.db.models import User


# Re-export get_db for the routers
get_db = _get_db


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Current user from the session cookie

    Raises:
        HTTPException(401): not logged in, or the user no longer exists

    Usage:
        @router.get("/profile")
        def get_profile(user: User = Depends(get_current_user)):
            ...
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    return user
