"""
User lookup/creation used by the auth flow.
"""
import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.user import User, DEFAULT_USER_NAME


def find_by_phone(db: Session, phone: str) -> Optional[User]:
    return db.query(User).filter(User.phone == phone).first()


def find_by_id(db: Session, user_id: uuid.UUID) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def create_user(db: Session, phone: str, name: str = DEFAULT_USER_NAME) -> User:
    user = User(phone=phone, name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def find_or_create(db: Session, phone: str) -> tuple[User, bool]:
    """
    Returns (user, is_new_user).
    Two first-time verifications racing on the same phone both end up with the
    single row the unique constraint lets through.
    """
    user = find_by_phone(db, phone)
    if user:
        return user, False

    try:
        return create_user(db, phone), True
    except IntegrityError:
        db.rollback()
        return find_by_phone(db, phone), False
