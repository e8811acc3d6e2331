"""FastAPI dependencies for JWT-based route protection and canvas ownership."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.assumption import Assumption
from ..models.canvas import Canvas
from ..models.user import User
from .auth_utils import decode_access_token

_bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Extract and validate the JWT from the Authorization header.

    Returns the authenticated User ORM instance.
    Raises 401 if token is missing, invalid, or expired.
    """
    if creds is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(creds.credentials)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user


def get_owned_canvas(
    canvas_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Canvas:
    """Resolve ``canvas_id`` from the path and enforce ownership.

    404 if the canvas does not exist, 403 if it belongs to someone else.
    """
    canvas = db.query(Canvas).filter(Canvas.id == str(canvas_id)).first()
    if canvas is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Canvas {canvas_id} not found",
        )
    if str(canvas.user_id) != str(current_user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )
    return canvas


def get_owned_assumption(
    assumption_id: UUID,
    canvas: Canvas = Depends(get_owned_canvas),
    db: Session = Depends(get_db),
) -> Assumption:
    """Resolve ``assumption_id`` within an owned canvas. 404 if absent."""
    assumption = (
        db.query(Assumption)
        .filter(Assumption.id == str(assumption_id), Assumption.canvas_id == str(canvas.id))
        .first()
    )
    if assumption is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Assumption {assumption_id} not found",
        )
    return assumption
