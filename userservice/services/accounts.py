"""Account lookups and uniqueness checks shared by the user, verification and friendship services."""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from userservice.core.errors import UserAlreadyExistsError, UserNotFoundError
from userservice.models import User


def ensure_available(
    db: Session,
    username: str | None = None,
    email: str | None = None,
    exclude_id: int | None = None,
) -> None:
    """Raise UserAlreadyExistsError if username or email belongs to another user."""
    if username is not None:
        query = db.query(User.id).filter(User.username == username)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first() is not None:
            raise UserAlreadyExistsError("Username is already in use")
    if email is not None:
        query = db.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first() is not None:
            raise UserAlreadyExistsError("Email is already in use")


def commit_or_conflict(db: Session) -> None:
    """Commit; a unique-constraint race becomes UserAlreadyExistsError."""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise UserAlreadyExistsError("Username or email is already in use") from e


def get_user_row(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(f"User {user_id} not found")
    return user


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()
