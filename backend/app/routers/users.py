"""User API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import Conflict, ValidationFailed
from app.models.user import User
from app.schemas.user import UserCreate, UserOut
from app.services.event_service import get_user_or_404

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    """Register a user. Display names are unique; they are shown on rides and attendance lists."""
    name = payload.display_name.strip()
    if not name:
        raise ValidationFailed("Display name is required")
    if db.query(User).filter(User.display_name == name).first():
        raise Conflict("Display name is already taken")
    user = User(display_name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s (%s)", user.user_id, user.display_name)
    return user


@router.get("/", response_model=list[UserOut])
def list_users(db: Session = Depends(get_db)):
    return db.query(User).order_by(User.display_name).all()


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, db: Session = Depends(get_db)):
    return get_user_or_404(db, user_id)
